"""Utility strategy: helpers, hooks, types, documentation and the fallback for unknown categories."""

from agents.base import BaseStrategy
from core.categories import Category

_GUIDANCE = {
    Category.HOOK: [
        "This is a React hook: name it use<Something>, start the file with \"use client\",",
        "and return a stable object or tuple.",
    ],
    Category.TYPE: [
        "This is a type module: export only types, interfaces, enums and constants.",
    ],
    Category.DOCUMENTATION: [
        "This is Markdown documentation. Cover setup, scripts, folder structure and",
        "required environment variables. Put the Markdown in \"content\".",
    ],
}

_DEFAULT_GUIDANCE = [
    "This is a utility module: small, pure, well-named exported functions.",
]


class UtilityStrategy(BaseStrategy):
    name = "utility"
    prompt_name = "utility"

    def instructions(self, task, context):
        lines = list(_GUIDANCE.get(task.category, _DEFAULT_GUIDANCE))
        if task.category == Category.UNKNOWN:
            lines.append("Infer the file's role from its path and description.")
        return lines
