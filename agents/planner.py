"""Planner agent: turns a specification into a repaired, ordered GenerationPlan."""

import logging
import os

from pydantic import ValidationError

from config.stacks import (
    DEFAULT_PREFERENCES,
    DEFAULT_PROJECT_TYPE,
    STACKS,
    TAILWIND_PACKAGES,
    TYPESCRIPT_PACKAGES,
)
from core import scheduler
from core.categories import Category, normalize_category
from core.chunker import SmartChunker
from core.errors import PlanningFailure
from core.schemas import PlanReply
from core.state import FileTask, GenerationPlan, PackageDependency
from manager.classifier import classify_project
from utils.llm import strip_fences

logger = logging.getLogger(__name__)

_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "planner.txt")

_REACT_FRAMEWORKS = {"nextjs", "react"}


def _load_prompt():
    with open(_PROMPT_FILE) as f:
        return f.read()


def _clean_path(path):
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def parse_plan(text, project_type=DEFAULT_PROJECT_TYPE):
    """Validate a raw planner reply into a GenerationPlan (not yet repaired)."""
    try:
        reply = PlanReply.model_validate_json(strip_fences(text))
    except ValidationError as e:
        raise PlanningFailure(f"Planner reply is not a valid plan: {e}") from e

    tasks = []
    seen = set()
    for item in reply.files:
        path = _clean_path(item.path)
        if not path:
            continue
        if path in seen:
            logger.warning("Planner listed %s twice, keeping the first entry", path)
            continue
        seen.add(path)
        category = normalize_category(item.type)
        if category == Category.UNKNOWN:
            logger.info("Unrecognized category %r for %s", item.type, path)
        tasks.append(FileTask(
            path=path,
            category=category,
            description=item.description,
            dependencies=[_clean_path(d) for d in item.dependencies],
            priority=item.priority,
        ))
    if not tasks:
        raise PlanningFailure("Planner reply contains no usable file paths")

    return GenerationPlan(
        tasks=tasks,
        architecture=reply.architecture.model_dump(exclude_none=True),
        dependencies=[PackageDependency(**d.model_dump()) for d in reply.dependencies],
        generation_order=[_clean_path(p) for p in reply.generationOrder],
        project_type=project_type,
    )


def ensure_core_files(plan):
    """Prepend the project type's always-required tasks that are missing."""
    stack = STACKS.get(plan.project_type, STACKS[DEFAULT_PROJECT_TYPE])
    present = set(plan.paths())
    missing = []
    for path, category, description, priority, deps in stack["core_files"]:
        if path in present:
            continue
        missing.append(FileTask(
            path=path,
            category=Category(category),
            description=description,
            dependencies=list(deps),
            priority=priority,
        ))
    if missing:
        logger.info("Added core files: %s", ", ".join(t.path for t in missing))
        plan.tasks = missing + plan.tasks
    return [t.path for t in missing]


def _uses_tailwind(plan):
    if "tailwind" in str(plan.architecture.get("styling", "")).lower():
        return True
    return any(
        t.category == Category.STYLE and "tailwind" in t.description.lower()
        for t in plan.tasks
    )


def enhance_dependencies(plan):
    """Make sure the framework, UI library and required toolchains are listed."""
    stack = STACKS.get(plan.project_type, STACKS[DEFAULT_PROJECT_TYPE])
    have = {d.package for d in plan.dependencies}
    added = []

    def _add(package, version, reason, dep_type):
        if package in have:
            return
        have.add(package)
        plan.dependencies.append(PackageDependency(package, version, reason, dep_type))
        added.append(package)

    for package, version, reason in stack["core_packages"]:
        _add(package, version, reason, "dependency")

    if any(p.endswith((".ts", ".tsx")) for p in plan.paths()):
        for package, version, reason in TYPESCRIPT_PACKAGES:
            if package == "@types/react" and stack["framework"] not in _REACT_FRAMEWORKS:
                continue
            _add(package, version, reason, "devDependency")

    if _uses_tailwind(plan):
        for package, version, reason in TAILWIND_PACKAGES:
            _add(package, version, reason, "devDependency")

    if added:
        logger.info("Added packages: %s", ", ".join(added))
    return added


def repair_plan(plan):
    """Inject core files and packages, repair the graph and recompute the order.

    Idempotent: repairing an already repaired plan changes nothing.
    Raises PlanningFailure (CyclicDependencyError) on a dependency cycle.
    """
    ensure_core_files(plan)
    enhance_dependencies(plan)
    scheduler.repair_graph(plan.tasks)
    plan.generation_order = scheduler.order(plan.tasks)
    return plan


class PlannerAgent:
    """Produces a GenerationPlan from a specification."""

    name = "planner"

    def __init__(self, llm, lines_per_chunk=None):
        self.llm = llm
        self.lines_per_chunk = lines_per_chunk

    def build_message(self, specification, project_type, preferences):
        lines = [
            f"Project type: {project_type} ({STACKS[project_type]['name']})",
            "Preferences:",
        ]
        for key, value in preferences.items():
            lines.append(f"- {key}: {value}")
        lines += ["", "Specification:", specification.strip()]
        return "\n".join(lines)

    def create_plan(self, specification, project_type=None, preferences=None, on_chunk=None):
        """Ask the model for a plan, validate it and run the repair pass.

        on_chunk(delta, accumulated) receives the raw reply in line chunks
        while it streams.
        """
        if not specification or not specification.strip():
            raise PlanningFailure("Specification is empty")
        if not project_type:
            project_type, _ = classify_project(specification)
        if project_type not in STACKS:
            raise PlanningFailure(f"Unknown project type: {project_type}")
        prefs = {**DEFAULT_PREFERENCES, **(preferences or {})}

        system = _load_prompt()
        message = self.build_message(specification, project_type, prefs)

        if on_chunk is None:
            text = self.llm.complete(system, message)
        else:
            chunker = SmartChunker(self.lines_per_chunk)
            text = ""
            accumulated = ""
            for delta in self.llm.stream(system, message):
                text += delta
                for chunk in chunker.drain(delta):
                    accumulated += chunk
                    on_chunk(chunk, accumulated)
            tail = chunker.flush()
            if tail.emit:
                on_chunk(tail.chunk, accumulated + tail.chunk)

        plan = parse_plan(text, project_type)
        repair_plan(plan)
        logger.info("Planned %d files for a %s project", len(plan.tasks), project_type)
        return plan
