"""Category → generator strategy dispatch table."""

from agents.api_agent import ApiStrategy
from agents.component_agent import ComponentStrategy
from agents.config_agent import ConfigStrategy
from agents.page_agent import PageStrategy
from agents.utility_agent import UtilityStrategy
from core.categories import Category, normalize_category

ROUTES = {
    Category.PAGE: "page",
    Category.LAYOUT: "page",
    Category.LOADING: "page",
    Category.ERROR: "page",
    Category.NOT_FOUND: "page",
    Category.GLOBAL_ERROR: "page",
    Category.TEMPLATE: "page",
    Category.DEFAULT: "page",
    Category.COMPONENT: "component",
    Category.API: "api",
    Category.ROUTE: "api",
    Category.MIDDLEWARE: "api",
    Category.UTILITY: "utility",
    Category.HOOK: "utility",
    Category.TYPE: "utility",
    Category.DOCUMENTATION: "utility",
    Category.UNKNOWN: "utility",
    Category.CONFIG: "config",
    Category.STYLE: "config",
    Category.STATIC: "config",
}

FALLBACK = "utility"


class StrategyRouter:
    """Holds one strategy instance per kind and routes tasks to them."""

    def __init__(self, llm, lines_per_chunk=None):
        kwargs = {"lines_per_chunk": lines_per_chunk}
        self.strategies = {
            "page": PageStrategy(llm, **kwargs),
            "component": ComponentStrategy(llm, **kwargs),
            "api": ApiStrategy(llm, **kwargs),
            "utility": UtilityStrategy(llm, **kwargs),
            "config": ConfigStrategy(llm, **kwargs),
        }
        unmapped = [c.value for c in Category if c not in ROUTES]
        if unmapped:
            raise RuntimeError(f"No strategy mapped for categories: {', '.join(unmapped)}")
        self.table = {category: self.strategies[name] for category, name in ROUTES.items()}

    def strategy_for(self, category):
        category = normalize_category(category)
        return self.table.get(category, self.strategies[FALLBACK])

    def generate(self, task, related, context, on_chunk=None):
        return self.strategy_for(task.category).generate(task, related, context, on_chunk=on_chunk)
