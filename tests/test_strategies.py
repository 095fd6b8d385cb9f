"""Tests for the generator strategies in agents/."""

import json
from unittest.mock import MagicMock

import pytest

from agents.api_agent import ApiStrategy, endpoint_path, infer_http_methods
from agents.base import has_use_client
from agents.component_agent import ComponentStrategy, requires_client_component
from agents.config_agent import ConfigStrategy, build_package_json
from agents.page_agent import PageStrategy, analyze_page, extract_param_names, route_for
from agents.utility_agent import UtilityStrategy
from core.categories import Category
from core.errors import MalformedReplyError
from core.state import FileTask, GeneratedFile, PackageDependency, RunContext
from manager.router import StrategyRouter


def _reply(content, **extra):
    return json.dumps({"content": content, **extra})


def _context(**kwargs):
    kwargs.setdefault("specification", "A todo app")
    return RunContext(**kwargs)


def _llm(reply):
    llm = MagicMock()
    llm.complete.return_value = reply
    return llm


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

def test_route_for():
    assert route_for("app/page.tsx") == "/"
    assert route_for("app/(shop)/items/[id]/page.tsx") == "/items/[id]"
    assert route_for("src/app/blog/page.tsx") == "/blog"


def test_extract_param_names():
    assert extract_param_names("app/blog/[slug]/page.tsx") == ["slug"]
    assert extract_param_names("app/docs/[...parts]/page.tsx") == ["parts"]
    assert extract_param_names("app/[[...opt]]/page.tsx") == ["opt"]
    assert extract_param_names("app/about/page.tsx") == []


def test_analyze_page_error_boundary():
    info = analyze_page(FileTask(path="app/error.tsx", category=Category.ERROR))
    assert info["isErrorPage"] is True
    assert info["needsClientFeatures"] is True


def test_analyze_page_dynamic_layout():
    info = analyze_page(FileTask(path="app/blog/[slug]/layout.tsx", category=Category.LAYOUT))
    assert info["isLayout"] is True
    assert info["isDynamicRoute"] is True
    assert info["params"] == ["slug"]
    assert info["needsMetadata"] is True


def test_page_strategy_adds_route_metadata():
    llm = _llm(_reply("export default function Page() {\n  return null\n}\n"))
    task = FileTask(path="app/about/page.tsx", category=Category.PAGE, description="About us")
    result = PageStrategy(llm).generate(task, [], _context())
    assert result.metadata["route"]["route"] == "/about"
    message = llm.complete.call_args[0][1]
    assert "Route: /about" in message


# ---------------------------------------------------------------------------
# Component
# ---------------------------------------------------------------------------

def test_requires_client_component():
    assert requires_client_component(FileTask("c.tsx", Category.COMPONENT, "Interactive modal"))
    assert not requires_client_component(FileTask("c.tsx", Category.COMPONENT, "Static footer"))


def test_component_detects_use_client():
    llm = _llm(_reply('"use client"\nimport { useState } from "react"\n'))
    task = FileTask(path="components/Counter.tsx", category=Category.COMPONENT, description="A counter")
    result = ComponentStrategy(llm).generate(task, [], _context())
    assert result.metadata["isClientComponent"] is True


def test_has_use_client_after_comment():
    assert has_use_client("// counter\n'use client'\n")
    assert not has_use_client("import x from 'y'\n'use client'\n")


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

def test_infer_http_methods():
    assert infer_http_methods("List and create todos") == ["GET", "POST"]
    assert infer_http_methods("Update or delete one todo") == ["PUT", "DELETE"]
    assert infer_http_methods("Health check") == ["GET"]


def test_endpoint_path():
    assert endpoint_path("app/api/users/[id]/route.ts") == "/api/users/[id]"
    assert endpoint_path("pages/api/hello.ts") == "/api/hello"


def test_api_strategy_default_endpoints():
    llm = _llm(_reply("export async function GET() {}\n"))
    task = FileTask(path="app/api/todos/route.ts", category=Category.API, description="List and create todos")
    result = ApiStrategy(llm).generate(task, [], _context())
    assert result.metadata["apiEndpoints"] == ["GET /api/todos", "POST /api/todos"]
    assert result.metadata["hasAsyncOperations"] is True


def test_api_strategy_keeps_model_endpoints():
    reply = _reply("export async function DELETE() {}\n", metadata={"apiEndpoints": ["DELETE /api/todos/[id]"]})
    task = FileTask(path="app/api/todos/[id]/route.ts", category=Category.API, description="Remove a todo")
    result = ApiStrategy(_llm(reply)).generate(task, [], _context())
    assert result.metadata["apiEndpoints"] == ["DELETE /api/todos/[id]"]


def test_middleware_instructions_come_from_api_strategy():
    task = FileTask(path="middleware.ts", category=Category.MIDDLEWARE, description="Require login")
    strategy = StrategyRouter(MagicMock()).strategy_for(Category.MIDDLEWARE)
    assert isinstance(strategy, ApiStrategy)
    assert "middleware" in strategy.instructions(task, _context())[0]
    assert UtilityStrategy(MagicMock()).instructions(task, _context()) == [
        "This is a utility module: small, pure, well-named exported functions.",
    ]


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_build_package_json():
    context = _context(
        project_name="My Todo App",
        dependencies=[
            PackageDependency("react", "^18.2.0"),
            PackageDependency("next", "^14.0.0"),
            PackageDependency("typescript", "^5.0.0", "", "devDependency"),
        ],
    )
    manifest = json.loads(build_package_json(context))
    assert manifest["name"] == "my-todo-app"
    assert manifest["private"] is True
    assert list(manifest["dependencies"]) == ["next", "react"]
    assert manifest["devDependencies"] == {"typescript": "^5.0.0"}
    assert manifest["scripts"]["dev"] == "next dev"


def test_config_strategy_synthesizes_without_model():
    llm = MagicMock()
    chunks = []
    task = FileTask(path="package.json", category=Category.CONFIG)
    result = ConfigStrategy(llm, lines_per_chunk=2).generate(
        task, [], _context(), on_chunk=lambda c, acc: chunks.append(c),
    )
    assert json.loads(result.content)["version"] == "0.1.0"
    assert "".join(chunks) == result.content
    llm.complete.assert_not_called()
    llm.stream.assert_not_called()


def test_config_strategy_other_files_use_model():
    llm = _llm(_reply("module.exports = {}\n"))
    task = FileTask(path="next.config.js", category=Category.CONFIG)
    result = ConfigStrategy(llm).generate(task, [], _context())
    assert result.content == "module.exports = {}\n"
    llm.complete.assert_called_once()


# ---------------------------------------------------------------------------
# Shared reply handling
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("reply", [
    "Sure! Here is your file:",
    _reply(""),
    json.dumps({"imports": []}),
    _reply("x", errors=["could not decide on a schema"]),
])
def test_malformed_reply_raises(reply):
    task = FileTask(path="lib/utils.ts", category=Category.UTILITY)
    with pytest.raises(MalformedReplyError) as exc:
        UtilityStrategy(_llm(reply)).generate(task, [], _context())
    assert exc.value.path == "lib/utils.ts"


def test_reply_fields_carried_over():
    reply = _reply("export const add = (a, b) => a + b\n", imports=[], exports=["add"], dependencies=["zod"])
    task = FileTask(path="lib/math.ts", category=Category.UTILITY)
    result = UtilityStrategy(_llm(reply)).generate(task, [], _context())
    assert result.exports == ("add",)
    assert result.category == Category.UTILITY
    assert result.metadata["packages"] == ["zod"]


def test_streaming_emits_line_chunks():
    content = "line 1\nline 2\nline 3\nline 4\nend"
    text = _reply(content, exports=["x"])
    llm = MagicMock()
    llm.stream.return_value = iter([text[i:i + 4] for i in range(0, len(text), 4)])
    chunks = []
    task = FileTask(path="lib/x.ts", category=Category.UTILITY)
    result = UtilityStrategy(llm, lines_per_chunk=2).generate(
        task, [], _context(), on_chunk=lambda c, acc: chunks.append((c, acc)),
    )
    assert [c for c, _ in chunks] == ["line 1\nline 2\n", "line 3\nline 4\n", "end"]
    assert chunks[-1][1] == content
    assert result.content == content


def test_related_files_in_message():
    llm = _llm(_reply("export default function Page() { return null }\n"))
    related = [GeneratedFile("components/Header.tsx", "export function Header() {}", Category.COMPONENT,
                             exports=("Header",))]
    task = FileTask(path="app/page.tsx", category=Category.PAGE, dependencies=["components/Header.tsx"])
    PageStrategy(llm).generate(task, related, _context())
    message = llm.complete.call_args[0][1]
    assert "--- components/Header.tsx (exports: Header)" in message
    assert "Declared dependencies: components/Header.tsx" in message
