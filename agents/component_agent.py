"""Component strategy: reusable UI components."""

from agents.base import BaseStrategy

CLIENT_INDICATORS = (
    "interactive", "state", "click", "form", "input", "toggle", "modal",
    "dropdown", "animation", "hook", "effect", "onchange", "onclick",
)


def requires_client_component(task):
    description = task.description.lower()
    return any(word in description for word in CLIENT_INDICATORS)


class ComponentStrategy(BaseStrategy):
    name = "component"
    prompt_name = "component"

    def instructions(self, task, context):
        lines = []
        if requires_client_component(task):
            lines.append("This component is interactive: start the file with \"use client\".")
        else:
            lines.append("Keep this a server component unless it truly needs browser APIs.")
        if context.uses_typescript:
            lines.append("Declare a Props interface and type every prop.")
        styling = context.architecture.get("styling")
        if styling:
            lines.append(f"Style with {styling}.")
        return lines
