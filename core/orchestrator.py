"""Generation orchestrator: walks the plan and dispatches each task to its strategy."""

import logging
import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor

from config.defaults import get_setting
from core.categories import Category
from core.errors import FileGenerationError, ProviderUnavailableError, RunCancelled
from core.events import ProgressEvent

logger = logging.getLogger(__name__)

_TEST_SUFFIXES = (".test", ".spec")


def _base_name(path):
    """File name without .tsx/.ts/.jsx/.js and without .test/.spec markers."""
    name = posixpath.basename(path)
    for ext in (".tsx", ".ts", ".jsx", ".js"):
        if name.endswith(ext):
            name = name[:-len(ext)]
            break
    for suffix in _TEST_SUFFIXES:
        if name.endswith(suffix):
            name = name[:-len(suffix)]
    return name


def is_related(task, generated_file):
    """Heuristic relation between a task and an already generated file."""
    if generated_file.path == task.path:
        return False
    task_dir = posixpath.dirname(task.path)
    file_dir = posixpath.dirname(generated_file.path)
    if task_dir == file_dir:
        return True
    if _base_name(task.path) == _base_name(generated_file.path):
        return True
    if generated_file.category == Category.LAYOUT:
        if file_dir == "" or task.path.startswith(file_dir + "/"):
            return True
    if generated_file.category == Category.TYPE and task.category in (Category.COMPONENT, Category.PAGE):
        return True
    return False


def related_files(task, generated):
    """Declared dependencies first, then heuristically related files."""
    by_path = {f.path: f for f in generated}
    result = [by_path[d] for d in task.dependencies if d in by_path]
    chosen = {f.path for f in result}
    for f in generated:
        if f.path not in chosen and is_related(task, f):
            result.append(f)
            chosen.add(f.path)
    return result


def generation_statistics(files):
    total = len(files)
    total_lines = sum(f.line_count for f in files)
    by_type = {}
    for f in files:
        by_type[f.category.value] = by_type.get(f.category.value, 0) + 1
    sizes = [(len(f.content), f.path) for f in files]
    average = sum(s for s, _ in sizes) / total if total else 0
    largest = max(sizes) if sizes else (0, "")

    complexity = "low"
    if total > 50 or average > 5000:
        complexity = "high"
    elif total > 20 or average > 2000:
        complexity = "medium"

    return {
        "totalFiles": total,
        "totalLines": total_lines,
        "filesByType": by_type,
        "averageFileSize": round(average),
        "largestFile": {"path": largest[1], "size": largest[0]},
        "complexity": complexity,
    }


class GenerationOrchestrator:
    """Generates every task of a plan, in dependency order.

    A failing file is reported with a file_error event and skipped, along
    with everything that depends on it. FatalProviderError and RunCancelled
    propagate and end the run.
    """

    def __init__(self, router, stream=True, file_retries=None, batch_size=None):
        self.router = router
        self.stream = stream
        self.file_retries = get_setting("file_retries") if file_retries is None else file_retries
        self.batch_size = batch_size or get_setting("batch_size")

    @staticmethod
    def _check_cancel(cancel_event):
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelled("Run cancelled")

    def generate_one(self, task, generated, context, emit, cancel_event=None):
        """Generate a single task. Returns the GeneratedFile or None on a per-file failure."""
        related = related_files(task, generated)
        attempt = 0
        self._check_cancel(cancel_event)
        emit(ProgressEvent.file_started(task.path, task.category.value))
        while True:
            on_chunk = None
            if self.stream:
                def on_chunk(delta, accumulated, _path=task.path):
                    emit(ProgressEvent.file_chunk(_path, delta, accumulated))
            try:
                result = self.router.generate(task, related, context, on_chunk=on_chunk)
            except ProviderUnavailableError as e:
                if attempt < self.file_retries:
                    attempt += 1
                    logger.warning("Retrying %s after provider failure: %s", task.path, e)
                    self._check_cancel(cancel_event)
                    emit(ProgressEvent.status("generating", f"Retrying {task.path}: {e}"))
                    continue
                logger.warning("Giving up on %s: %s", task.path, e)
                emit(ProgressEvent.file_failed(task.path, str(e)))
                return None
            except FileGenerationError as e:
                logger.warning("Failed to generate %s: %s", task.path, e)
                emit(ProgressEvent.file_failed(task.path, str(e)))
                return None
            emit(ProgressEvent.file_completed(task.path, result.content))
            return result

    def _skip(self, task, failed, emit):
        blocked = next(d for d in task.dependencies if d in failed)
        message = f"Skipped: dependency {blocked} was not generated"
        logger.warning("%s: %s", task.path, message)
        emit(ProgressEvent.file_failed(task.path, message))
        failed.add(task.path)

    def run(self, plan, emit, context, cancel_event=None):
        """Sequential mode: one model call at a time, in generation order."""
        by_path = plan.task_map()
        generated = []
        failed = set()
        for path in plan.generation_order:
            self._check_cancel(cancel_event)
            task = by_path[path]
            if any(d in failed for d in task.dependencies):
                self._skip(task, failed, emit)
                continue
            result = self.generate_one(task, generated, context, emit, cancel_event)
            if result is None:
                failed.add(path)
            else:
                generated.append(result)
        return generated

    def run_batched(self, plan, emit, context, cancel_event=None, batch_size=None):
        """Concurrent mode: up to batch_size tasks per group, groups run one after another.

        A task joins a group only when every dependency is already generated.
        Results are appended here, on the calling thread, after the group finishes.
        """
        batch_size = batch_size or self.batch_size
        by_path = plan.task_map()
        pending = list(plan.generation_order)
        generated = []
        done = set()
        failed = set()
        processed = 0
        total = len(pending)

        lock = threading.Lock()
        aborted = threading.Event()

        def safe_emit(event):
            with lock:
                if not aborted.is_set():
                    emit(event)

        with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="generate") as pool:
            while pending:
                self._check_cancel(cancel_event)
                batch = []
                waiting = []
                for path in pending:
                    task = by_path[path]
                    if any(d in failed for d in task.dependencies):
                        self._skip(task, failed, safe_emit)
                        processed += 1
                    elif len(batch) < batch_size and all(d in done for d in task.dependencies):
                        batch.append(task)
                    else:
                        waiting.append(path)
                pending = waiting
                if not batch:
                    if pending:
                        raise RuntimeError(f"No runnable task among: {', '.join(pending)}")
                    break

                snapshot = list(generated)
                futures = [
                    pool.submit(self.generate_one, task, snapshot, context, safe_emit, cancel_event)
                    for task in batch
                ]
                try:
                    results = [future.result() for future in futures]
                except BaseException:
                    # in-flight calls finish in the pool but their events are dropped
                    aborted.set()
                    if cancel_event is not None:
                        cancel_event.set()
                    raise

                for task, result in zip(batch, results):
                    if result is None:
                        failed.add(task.path)
                    else:
                        generated.append(result)
                        done.add(task.path)
                processed += len(batch)
                safe_emit(ProgressEvent.batch_progress(processed, total, [t.path for t in batch]))
        return generated

    def regenerate_file(self, path, plan, generated, context, emit, cancel_event=None):
        """Generate one planned file again against the current set of files."""
        task = plan.task_map().get(path)
        if task is None:
            raise KeyError(f"{path} is not part of the plan")
        others = [f for f in generated if f.path != path]
        return self.generate_one(task, others, context, emit, cancel_event)
