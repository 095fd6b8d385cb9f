"""API strategy: route handlers and middleware."""

import posixpath

from agents.base import BaseStrategy
from core.categories import Category

# checked in order; a description can imply several methods
_METHOD_KEYWORDS = [
    ("GET", ("list", "get", "fetch", "read", "retrieve", "search", "query")),
    ("POST", ("create", "add", "submit", "post", "register", "upload")),
    ("PUT", ("update", "edit", "replace", "put")),
    ("PATCH", ("patch", "partial", "toggle")),
    ("DELETE", ("delete", "remove", "destroy")),
]


def infer_http_methods(description):
    """HTTP methods implied by a task description, GET when nothing matches."""
    words = description.lower()
    methods = [m for m, keywords in _METHOD_KEYWORDS if any(k in words for k in keywords)]
    return methods or ["GET"]


def endpoint_path(path):
    """app/api/users/[id]/route.ts -> /api/users/[id]; pages/api/x.ts -> /api/x."""
    directory, base = posixpath.split(path)
    stem = base.split(".", 1)[0]
    parts = [p for p in directory.split("/") if p and p not in ("app", "src", "pages")]
    if stem not in ("route", "index"):
        parts.append(stem)
    return "/" + "/".join(parts)


class ApiStrategy(BaseStrategy):
    name = "api"
    prompt_name = "api"

    def instructions(self, task, context):
        if task.category == Category.MIDDLEWARE:
            return [
                "This is request middleware: export a `middleware` function and a `config` matcher.",
            ]
        methods = infer_http_methods(task.description)
        return [
            f"Endpoint: {endpoint_path(task.path)}",
            f"Implement these HTTP methods: {', '.join(methods)}.",
            "Validate request input before use and return JSON with explicit status codes.",
        ]

    def enrich_metadata(self, task, reply, metadata):
        if task.category == Category.MIDDLEWARE:
            return metadata
        if not metadata["apiEndpoints"]:
            route = endpoint_path(task.path)
            metadata["apiEndpoints"] = [f"{m} {route}" for m in infer_http_methods(task.description)]
        metadata["hasAsyncOperations"] = True
        return metadata
