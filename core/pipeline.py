"""One run end to end: plan → generate → validate, with persisted status."""

import logging
import threading
import time

from agents.planner import PlannerAgent
from core.errors import GenerationPipelineError, RunCancelled
from core.events import EventType, ProgressEvent
from core.orchestrator import GenerationOrchestrator, generation_statistics
from core.quality import failure_reason
from core.state import RunContext
from core.validator import CodeValidator
from manager.router import StrategyRouter
from utils.folder_naming import extract_project_name

logger = logging.getLogger(__name__)


def _elapsed_ms(start):
    return int((time.monotonic() - start) * 1000)


class GenerationPipeline:
    """Drives a RunState through planning → generating → validating → completed|failed.

    Every file is upserted to the store as soon as it completes, so files
    produced before a fatal error stay persisted. The last event emitted is
    always exactly one `complete` or `error`.
    """

    def __init__(self, planner, orchestrator, validator, store, batch=False):
        self.planner = planner
        self.orchestrator = orchestrator
        self.validator = validator
        self.store = store
        self.batch = batch

    def _set_status(self, run, status, emit, message, **fields):
        self.store.update_run(run.id, status=status, **fields)
        logger.info("Run %s: %s", run.id, status)
        emit(ProgressEvent.status(status, message))

    def run(self, run, emit, cancel_event=None):
        """Execute the run. Returns (files, report); report is None if validation never ran."""
        cancel_event = cancel_event or threading.Event()
        files = []
        report = None
        failed_files = []
        categories = {}

        def forward(event):
            if event.type == EventType.FILE_COMPLETE:
                self.store.upsert_artifact(
                    run.project_id, event.path, event.data["content"],
                    category=categories.get(event.path, ""), run_id=run.id,
                )
            elif event.type == EventType.FILE_ERROR:
                failed_files.append(event.path)
            emit(event)

        try:
            self._set_status(run, "planning", emit, "Creating generation plan")
            started = time.monotonic()
            plan = self.planner.create_plan(
                run.specification,
                project_type=run.project_type or None,
                preferences=run.preferences,
                on_chunk=lambda chunk, acc: emit(ProgressEvent.plan_chunk(chunk, acc)),
            )
            self.store.update_run(run.id, plan_ms=_elapsed_ms(started), project_type=plan.project_type)
            categories = {t.path: t.category.value for t in plan.tasks}
            emit(ProgressEvent.plan_complete(plan.to_dict()))

            if cancel_event.is_set():
                raise RunCancelled("Run cancelled")
            self._set_status(run, "generating", emit, f"Generating {len(plan.tasks)} files")
            started = time.monotonic()
            context = RunContext.from_plan(
                run.specification, plan,
                project_name=extract_project_name(run.specification),
                preferences=run.preferences,
            )
            if self.batch:
                files = self.orchestrator.run_batched(plan, forward, context, cancel_event)
            else:
                files = self.orchestrator.run(plan, forward, context, cancel_event)
            self.store.update_run(
                run.id, gen_ms=_elapsed_ms(started), file_count=len(files),
                failed_files=list(failed_files),
            )

            self._set_status(run, "validating", emit, "Validating generated files")
            started = time.monotonic()
            emit(ProgressEvent.validation_started())
            report = self.validator.validate_project(files, project_type=plan.project_type)
            for result in report.files.values():
                emit(ProgressEvent.validation_file_result(
                    result.path, len(result.errors), len(result.warnings), result.score,
                ))
            report_data = report.to_dict()
            emit(ProgressEvent.validation_completed(report_data))
            self.store.update_run(run.id, validate_ms=_elapsed_ms(started), report=report_data)
        except GenerationPipelineError as e:
            logger.warning("Run %s failed: %s", run.id, e)
            self.store.update_run(run.id, status="failed", error=str(e), failed_files=list(failed_files))
            emit(ProgressEvent.run_failed(str(e), runId=run.id))
            return files, report

        stats = generation_statistics(files)
        if report.passed:
            self.store.update_run(run.id, status="completed")
            logger.info("Run %s: completed", run.id)
            emit(ProgressEvent.run_completed(
                f"Generated {len(files)} files", runId=run.id, statistics=stats,
                failedFiles=list(failed_files),
            ))
        else:
            reason = f"Validation failed: {failure_reason(report)}"
            self.store.update_run(run.id, status="failed", error=reason)
            logger.info("Run %s: failed (%s)", run.id, reason)
            emit(ProgressEvent.run_failed(reason, runId=run.id, statistics=stats))
        return files, report


def build_pipeline(llm, store, batch=False, stream=True):
    """Wire planner, router, orchestrator and validator around one LLM handle."""
    return GenerationPipeline(
        planner=PlannerAgent(llm),
        orchestrator=GenerationOrchestrator(StrategyRouter(llm), stream=stream),
        validator=CodeValidator(),
        store=store,
        batch=batch,
    )
