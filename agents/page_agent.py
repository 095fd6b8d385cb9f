"""Page strategy: route files (pages, layouts and the framework's special route files)."""

import posixpath
import re

from agents.base import BaseStrategy
from core.categories import Category

_PARAM_SEGMENT = re.compile(r"^\[{1,2}(?:\.\.\.)?([^\]]+)\]{1,2}$")

_CLIENT_WORDS = ("interactive", "form", "button", "state", "event", "click")


def extract_param_names(path):
    """Names of dynamic route segments, e.g. app/blog/[slug]/page.tsx -> ["slug"]."""
    names = []
    for segment in path.split("/"):
        m = _PARAM_SEGMENT.match(segment)
        if m:
            names.append(m.group(1))
    return names


def route_for(path):
    """URL route a page file serves, e.g. app/(shop)/items/[id]/page.tsx -> /items/[id]."""
    directory = posixpath.dirname(path)
    segments = directory.split("/") if directory else []
    if segments and segments[0] in ("app", "src"):
        segments = segments[1:]
    if segments and segments[0] == "app":
        segments = segments[1:]
    # route groups do not appear in the URL
    segments = [s for s in segments if not (s.startswith("(") and s.endswith(")"))]
    return "/" + "/".join(segments)


def analyze_page(task):
    """Route-level facts about a page task."""
    base = posixpath.basename(task.path)
    stem = base.split(".", 1)[0]
    description = task.description.lower()
    params = extract_param_names(task.path)
    is_layout = task.category == Category.LAYOUT or stem == "layout"
    is_error = task.category in (Category.ERROR, Category.GLOBAL_ERROR) or stem in ("error", "global-error")
    return {
        "route": route_for(task.path),
        "isLayout": is_layout,
        "isErrorPage": is_error,
        "isLoadingPage": task.category == Category.LOADING or stem == "loading",
        "isNotFoundPage": task.category == Category.NOT_FOUND or stem == "not-found",
        "isDynamicRoute": bool(params),
        "params": params,
        "needsMetadata": is_layout or stem == "page",
        "needsClientFeatures": is_error or any(w in description for w in _CLIENT_WORDS),
    }


class PageStrategy(BaseStrategy):
    name = "page"
    prompt_name = "page"

    def instructions(self, task, context):
        info = analyze_page(task)
        lines = [f"Route: {info['route']}"]
        if info["isLayout"]:
            lines.append("This is a layout: render {children} and keep it a server component.")
            if info["route"] == "/":
                lines.append("Root layout: include <html> and <body> and import the global style sheet.")
        if info["isErrorPage"]:
            lines.append("Error boundary: must start with \"use client\" and accept { error, reset } props.")
        if info["isLoadingPage"]:
            lines.append("Loading state: render a lightweight skeleton, no data fetching.")
        if info["isNotFoundPage"]:
            lines.append("Not-found page: explain the missing resource and link back home.")
        if info["isDynamicRoute"]:
            names = ", ".join(info["params"])
            lines.append(f"Dynamic route: read params ({names}) from the page props.")
        if info["needsMetadata"] and not info["needsClientFeatures"]:
            lines.append("Export a `metadata` object with a title and description.")
        if info["needsClientFeatures"]:
            lines.append("Needs interactivity: start the file with \"use client\".")
        return lines

    def enrich_metadata(self, task, reply, metadata):
        metadata["route"] = analyze_page(task)
        return metadata
