"""In-memory project / run / artifact store.

Stands in for the external persistence service: artifacts are upserted by
(project, path) with an incrementing version and listed per project.
"""

import threading
import time
import uuid
from dataclasses import replace

from core.state import Artifact, Project, RunState

_RUN_FIELDS = set(RunState.__dataclass_fields__) - {"id", "project_id"}


def _new_id():
    return str(uuid.uuid4())[:8]


class ArtifactStore:
    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._projects = {}
        self._runs = {}
        self._artifacts = {}    # (project_id, path) -> Artifact

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, owner, name):
        project = Project(id=_new_id(), owner=owner, name=name, created=self._clock())
        with self._lock:
            self._projects[project.id] = project
        return project

    def get_project(self, project_id):
        with self._lock:
            return self._projects.get(project_id)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def create_run(self, project_id, specification, project_type="nextjs", preferences=None, model=""):
        run = RunState(
            id=_new_id(),
            project_id=project_id,
            specification=specification,
            project_type=project_type,
            preferences=dict(preferences or {}),
            model=model,
            created=self._clock(),
        )
        with self._lock:
            if project_id not in self._projects:
                raise KeyError(f"Unknown project: {project_id}")
            self._runs[run.id] = run
        return run

    def get_run(self, run_id):
        with self._lock:
            return self._runs.get(run_id)

    def update_run(self, run_id, **fields):
        unknown = set(fields) - _RUN_FIELDS
        if unknown:
            raise ValueError(f"Unknown run fields: {', '.join(sorted(unknown))}")
        with self._lock:
            run = self._runs[run_id]
            for key, value in fields.items():
                setattr(run, key, value)
            return run

    def list_runs_by_project(self, project_id):
        with self._lock:
            runs = [r for r in self._runs.values() if r.project_id == project_id]
        return sorted(runs, key=lambda r: r.created)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def upsert_artifact(self, project_id, path, content, category="", run_id=""):
        """Create on first call for (project, path), otherwise overwrite and bump the version."""
        key = (project_id, path)
        now = self._clock()
        with self._lock:
            existing = self._artifacts.get(key)
            if existing is None:
                artifact = Artifact(
                    project_id=project_id, path=path, content=content,
                    category=category, version=1, run_id=run_id, updated=now,
                )
                self._artifacts[key] = artifact
                return replace(artifact)
            existing.content = content
            existing.category = category or existing.category
            existing.run_id = run_id or existing.run_id
            existing.version += 1
            existing.updated = now
            return replace(existing)

    def list_artifacts_by_project(self, project_id):
        with self._lock:
            items = [replace(a) for (pid, _), a in self._artifacts.items() if pid == project_id]
        return sorted(items, key=lambda a: a.path)

    def get_artifact(self, project_id, path):
        with self._lock:
            artifact = self._artifacts.get((project_id, path))
        return replace(artifact) if artifact else None
