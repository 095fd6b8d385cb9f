"""Tests for core.categories and manager.router."""

from unittest.mock import MagicMock

import pytest

from core.categories import Category, category_for_path, normalize_category
from core.state import FileTask, RunContext
from manager.router import ROUTES, StrategyRouter


def test_normalize_exact_values():
    assert normalize_category("page") == Category.PAGE
    assert normalize_category("not-found") == Category.NOT_FOUND
    assert normalize_category(Category.HOOK) == Category.HOOK


def test_normalize_synonyms_and_case():
    assert normalize_category("Components") == Category.COMPONENT
    assert normalize_category("  API   route ") == Category.API
    assert normalize_category("lib") == Category.UTILITY
    assert normalize_category("README") == Category.DOCUMENTATION


def test_normalize_unrecognized_is_unknown():
    assert normalize_category("widget-factory") == Category.UNKNOWN
    assert normalize_category(None) == Category.UNKNOWN
    assert normalize_category("") == Category.UNKNOWN


@pytest.mark.parametrize("path,expected", [
    ("app/page.tsx", Category.PAGE),
    ("app/layout.tsx", Category.LAYOUT),
    ("app/api/users/route.ts", Category.API),
    ("middleware.ts", Category.MIDDLEWARE),
    ("app/globals.css", Category.STYLE),
    ("package.json", Category.CONFIG),
    ("tailwind.config.js", Category.CONFIG),
    ("README.md", Category.DOCUMENTATION),
    ("types/index.ts", Category.TYPE),
    ("hooks/useCart.ts", Category.HOOK),
    ("components/Header.tsx", Category.COMPONENT),
    ("public/logo.svg", Category.STATIC),
    ("lib/utils.ts", Category.UTILITY),
])
def test_category_for_path(path, expected):
    assert category_for_path(path) == expected


def test_every_category_routed():
    assert set(ROUTES) == set(Category)


def test_router_dispatch():
    router = StrategyRouter(MagicMock())
    assert router.strategy_for(Category.PAGE).name == "page"
    assert router.strategy_for(Category.LAYOUT).name == "page"
    assert router.strategy_for(Category.COMPONENT).name == "component"
    assert router.strategy_for(Category.API).name == "api"
    assert router.strategy_for(Category.CONFIG).name == "config"
    assert router.strategy_for(Category.HOOK).name == "utility"


def test_router_unknown_goes_to_utility():
    router = StrategyRouter(MagicMock())
    assert router.strategy_for(Category.UNKNOWN).name == "utility"
    assert router.strategy_for("something-new").name == "utility"


def test_router_generate_delegates():
    llm = MagicMock()
    router = StrategyRouter(llm)
    task = FileTask(path="package.json", category=Category.CONFIG)
    result = router.generate(task, [], RunContext(specification="todo app"))
    assert result.path == "package.json"
    llm.complete.assert_not_called()
