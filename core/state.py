"""Pipeline state models shared across all stages."""

from __future__ import annotations

from dataclasses import dataclass, field

from core.categories import Category


@dataclass
class FileTask:
    path: str                   # unique within a plan, e.g. "app/page.tsx"
    category: Category
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    priority: int = 5           # 0 = generate first, 10 = last

    def to_dict(self):
        return {
            "path": self.path,
            "type": self.category.value,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "priority": self.priority,
        }


@dataclass
class PackageDependency:
    package: str
    version: str
    reason: str = ""
    type: str = "dependency"    # dependency|devDependency|peerDependency

    def to_dict(self):
        return {
            "package": self.package,
            "version": self.version,
            "reason": self.reason,
            "type": self.type,
        }


@dataclass
class GenerationPlan:
    tasks: list[FileTask] = field(default_factory=list)
    architecture: dict = field(default_factory=dict)
    dependencies: list[PackageDependency] = field(default_factory=list)
    generation_order: list[str] = field(default_factory=list)
    project_type: str = "nextjs"

    def task_map(self) -> dict[str, FileTask]:
        return {t.path: t for t in self.tasks}

    def paths(self) -> list[str]:
        return [t.path for t in self.tasks]

    def ordered_tasks(self) -> list[FileTask]:
        by_path = self.task_map()
        return [by_path[p] for p in self.generation_order]

    def to_dict(self):
        return {
            "projectType": self.project_type,
            "files": [t.to_dict() for t in self.tasks],
            "architecture": dict(self.architecture),
            "dependencies": [d.to_dict() for d in self.dependencies],
            "generationOrder": list(self.generation_order),
        }


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: str
    category: Category
    imports: tuple[str, ...] = ()
    exports: tuple[str, ...] = ()
    metadata: dict = field(default_factory=dict, hash=False, compare=False)

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n")) if self.content else 0

    def to_dict(self):
        return {
            "path": self.path,
            "content": self.content,
            "type": self.category.value,
            "imports": list(self.imports),
            "exports": list(self.exports),
            "metadata": dict(self.metadata),
        }


@dataclass
class Issue:
    source: str         # "syntax", "imports", "framework", "style", "consistency", "security"
    severity: str       # "error", "warning", "info"
    file: str           # which file
    line: int | None
    message: str
    suggestion: str     # fix suggestion

    def to_dict(self):
        return {
            "source": self.source,
            "severity": self.severity,
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class FileValidation:
    path: str
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)
    score: float = 10.0
    metrics: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "path": self.path,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "score": self.score,
            "metrics": dict(self.metrics),
        }


@dataclass
class ValidationReport:
    files: dict[str, FileValidation] = field(default_factory=dict)
    quality_score: float = 10.0
    security_risk: str = "low"          # low|medium|high
    security_issues: list[Issue] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    passed: bool = True

    @property
    def error_count(self) -> int:
        return sum(len(f.errors) for f in self.files.values())

    @property
    def warning_count(self) -> int:
        return sum(len(f.warnings) for f in self.files.values())

    def to_dict(self):
        return {
            "files": [f.to_dict() for f in self.files.values()],
            "qualityScore": self.quality_score,
            "securityRisk": self.security_risk,
            "securityIssues": [i.to_dict() for i in self.security_issues],
            "suggestions": list(self.suggestions),
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "pass": self.passed,
        }


@dataclass
class Project:
    id: str
    owner: str
    name: str
    created: float = 0.0

    def to_dict(self):
        return {"id": self.id, "owner": self.owner, "name": self.name, "created": self.created}


@dataclass
class Artifact:
    project_id: str
    path: str
    content: str
    category: str = ""
    version: int = 1
    run_id: str = ""
    updated: float = 0.0

    def to_dict(self):
        return {
            "projectId": self.project_id,
            "path": self.path,
            "content": self.content,
            "type": self.category,
            "version": self.version,
            "runId": self.run_id,
            "updated": self.updated,
        }


@dataclass
class RunState:
    id: str
    project_id: str
    specification: str
    project_type: str = "nextjs"
    preferences: dict = field(default_factory=dict)
    model: str = ""
    status: str = "pending"             # pending|planning|generating|validating|completed|failed
    error: str = ""
    plan_ms: int | None = None
    gen_ms: int | None = None
    validate_ms: int | None = None
    file_count: int = 0
    failed_files: list[str] = field(default_factory=list)
    report: dict | None = None
    created: float = 0.0

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "specification": self.specification,
            "projectType": self.project_type,
            "model": self.model,
            "status": self.status,
            "error": self.error,
            "timings": {
                "planMs": self.plan_ms,
                "genMs": self.gen_ms,
                "validateMs": self.validate_ms,
            },
            "fileCount": self.file_count,
            "failedFiles": list(self.failed_files),
            "report": self.report,
            "created": self.created,
        }


@dataclass
class RunContext:
    """Read-only context shared by every strategy call in one run."""
    specification: str
    project_type: str = "nextjs"
    project_name: str = "generated-app"
    architecture: dict = field(default_factory=dict)
    dependencies: list[PackageDependency] = field(default_factory=list)
    preferences: dict = field(default_factory=dict)

    @classmethod
    def from_plan(cls, specification, plan, project_name="generated-app", preferences=None):
        return cls(
            specification=specification,
            project_type=plan.project_type,
            project_name=project_name,
            architecture=dict(plan.architecture),
            dependencies=list(plan.dependencies),
            preferences=dict(preferences or {}),
        )

    @property
    def uses_typescript(self) -> bool:
        return bool(self.architecture.get("typescript", self.preferences.get("typescript", True)))
