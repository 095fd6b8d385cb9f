"""Tests for core.validator."""

from core.categories import Category
from core.state import GeneratedFile
from core.validator import (
    CodeValidator,
    check_consistency,
    check_framework,
    check_syntax,
    extract_imports,
    file_score,
    long_functions,
    resolve_import,
    unterminated_strings,
)


def _file(path, content, category=Category.UTILITY, imports=()):
    return GeneratedFile(path=path, content=content, category=category, imports=tuple(imports))


PAGE = """import Link from 'next/link'
import { Header } from '@/components/Header'

export default function Home() {
  return <main><Header /><Link href="/about">About</Link></main>
}
"""

HEADER = """export function Header() {
  return <header>Todo</header>
}
"""


# ---------------------------------------------------------------------------
# Syntax
# ---------------------------------------------------------------------------

def test_balanced_file_has_no_syntax_errors():
    assert check_syntax("app/page.tsx", PAGE) == []


def test_unbalanced_braces():
    errors = check_syntax("lib/a.ts", "export function a() {\n  return 1\n")
    assert len(errors) == 1
    assert "braces" in errors[0].message
    assert errors[0].severity == "error"


def test_invalid_json():
    errors = check_syntax("package.json", '{"name": "x",}')
    assert len(errors) == 1
    assert errors[0].line == 1


def test_css_only_checks_braces():
    assert check_syntax("app/globals.css", "a:not(.b { color: red; }") == []
    assert len(check_syntax("app/globals.css", "body { color: red;")) == 1


def test_unterminated_strings():
    assert unterminated_strings("const a = 'open\nconst b = 1") == [(1, "'")]
    assert unterminated_strings("const t = `multi\nline`") == []
    assert unterminated_strings("// it's a comment\nconst a = 1") == []
    assert unterminated_strings("const s = \"esc \\\" ok\"") == []


VUE_COMPONENT = """<template>
  <p>{{ count }} items, don't panic</p>
</template>

<script setup>
import { ref } from 'vue'
const count = ref(0)
</script>
"""


def test_vue_script_block_checked():
    assert check_syntax("src/App.vue", VUE_COMPONENT) == []
    broken = VUE_COMPONENT.replace("const count = ref(0)", "function f() {\n  if (x) {")
    errors = check_syntax("src/App.vue", broken)
    assert [e.message for e in errors] == ["Unbalanced braces: 3 '{' vs 1 '}'"]


def test_vue_unterminated_string_line():
    broken = VUE_COMPONENT.replace("ref(0)", "ref('0)")
    errors = check_syntax("src/App.vue", broken)
    assert [(e.line, e.message) for e in errors] == [(7, "Unterminated string literal (')")]


def test_vue_unbalanced_braces_fail_the_file():
    content = "function f() {\n  if (x) {\n    return 1\n"
    report = CodeValidator().validate_project([_file("src/App.vue", content, Category.COMPONENT)], "vue")
    result = report.files["src/App.vue"]
    assert len(result.errors) == 1
    assert result.score == 8.0
    assert report.passed is False


def test_jsx_apostrophes_not_flagged():
    content = "export default function A() {\n  return <p>Don't panic</p>\n}\n"
    assert check_syntax("app/page.tsx", content) == []


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

def test_extract_imports():
    content = (
        "import React from 'react'\n"
        "import './globals.css'\n"
        "import type { Todo } from '../types'\n"
        "export { x } from './x'\n"
        "const fs = require('fs')\n"
        "const Chart = await import('./chart')\n"
    )
    assert extract_imports(content) == ["react", "../types", "./globals.css", "./x", "fs", "./chart"]


def test_resolve_import():
    known = {"lib/utils.ts", "components/Header.tsx", "types/index.ts", "src/lib/db.ts"}
    assert resolve_import("app/page.tsx", "../lib/utils", known) == "lib/utils.ts"
    assert resolve_import("app/page.tsx", "@/components/Header", known) == "components/Header.tsx"
    assert resolve_import("components/Header.tsx", "../types", known) == "types/index.ts"
    assert resolve_import("src/app/page.tsx", "@/lib/db", known) == "src/lib/db.ts"
    assert resolve_import("app/page.tsx", "react", known) == "react"
    assert resolve_import("app/page.tsx", "./missing", known) is None
    assert resolve_import("page.tsx", "../../outside", known) is None


def test_unresolved_import_is_error():
    report = CodeValidator().validate_project([
        _file("app/page.tsx", "import { x } from '../lib/nothing'\nexport default function P() { return x }\n",
              Category.PAGE),
    ])
    errors = report.files["app/page.tsx"].errors
    assert any("Unresolved import '../lib/nothing'" in e.message for e in errors)
    assert report.passed is False


# ---------------------------------------------------------------------------
# Framework
# ---------------------------------------------------------------------------

def test_page_without_default_export():
    errors, _ = check_framework(_file("app/about/page.tsx", "export function About() {}\n", Category.PAGE))
    assert len(errors) == 1
    assert "default export" in errors[0].message


def test_client_idioms_without_directive():
    content = "import { useState } from 'react'\nexport function C() { const [a] = useState(0) }\n"
    _, warnings = check_framework(_file("components/C.tsx", content, Category.COMPONENT))
    assert any("use client" in w.message for w in warnings)

    _, warnings = check_framework(_file("components/C.tsx", "'use client'\n" + content, Category.COMPONENT))
    assert not any("use client" in w.message for w in warnings)


def test_use_client_check_only_for_nextjs():
    content = "import { useState } from 'react'\nexport function C() { useState(0) }\n"
    _, warnings = check_framework(_file("src/C.jsx", content, Category.COMPONENT), project_type="react")
    assert warnings == []


def test_use_state_without_import():
    _, warnings = check_framework(
        _file("src/C.jsx", "export function C() { useState(0) }\n", Category.COMPONENT), project_type="react",
    )
    assert [w.message for w in warnings] == ["useState used without importing it from react"]


def test_link_without_next_link():
    _, warnings = check_framework(_file("components/Nav.jsx", "export const Nav = () => <Link href='/' />\n",
                                        Category.COMPONENT))
    assert any("next/link" in w.message for w in warnings)


def test_untyped_props():
    content = "export function Card({ title }) {\n  return <div>{title}</div>\n}\n"
    _, warnings = check_framework(_file("components/Card.tsx", content, Category.COMPONENT))
    assert any("props" in w.message for w in warnings)
    typed = "interface CardProps { title: string }\n" + content.replace("{ title }", "{ title }: CardProps")
    _, warnings = check_framework(_file("components/Card.tsx", typed, Category.COMPONENT))
    assert not any("props" in w.message for w in warnings)


def test_long_functions():
    body = "\n".join(f"  x += {i}" for i in range(60))
    content = f"function big() {{\n{body}\n}}\n"
    assert long_functions(content, 50) == [(1, 62)]
    assert long_functions(content, 100) == []


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------

def test_unused_schema_entity_is_error():
    schema = _file("convex/schema.ts", "export default defineSchema({\n  todos: defineTable({}),\n  tags: defineTable({}),\n})\n")
    query = _file("convex/todos.ts", "export const list = query(async (ctx) => ctx.db.query('todos'))\n")
    errors = check_consistency([schema, query])
    assert list(errors) == ["convex/schema.ts"]
    assert [e.message for e in errors["convex/schema.ts"]] == ["Schema entity 'tags' is declared but never used"]


def test_prisma_models():
    schema = _file("prisma/schema.prisma", "model User {\n  id Int @id\n}\n")
    used = _file("lib/users.ts", "export const find = () => prisma.user.findMany()\n")
    assert check_consistency([schema, used]) == {}


# ---------------------------------------------------------------------------
# Project report
# ---------------------------------------------------------------------------

def test_file_score():
    assert file_score(0, 0) == 10
    assert file_score(1, 2) == 7
    assert file_score(10, 0) == 0


def test_clean_project_passes():
    files = [
        _file("app/page.tsx", PAGE, Category.PAGE),
        _file("components/Header.tsx", HEADER, Category.COMPONENT),
        _file("README.md", "# Todo\n", Category.DOCUMENTATION),
    ]
    report = CodeValidator().validate_project(files)
    assert report.error_count == 0
    assert report.quality_score == 10.0
    assert report.security_risk == "low"
    assert report.passed is True
    assert report.files["app/page.tsx"].metrics["linesOfCode"] == 5


def test_unbalanced_brace_lowers_score():
    files = [_file("lib/a.ts", "export function a() {\n  return 1\n")]
    report = CodeValidator().validate_project(files)
    assert report.files["lib/a.ts"].score <= 8
    assert report.quality_score <= 8
    assert report.passed is False


def test_eval_and_api_key_fail_the_gate():
    content = "const apiKey = 'sk-live-1234567890'\nexport const run = (s) => eval(s)\n"
    report = CodeValidator().validate_project([_file("lib/run.ts", content)])
    assert report.error_count == 0
    assert report.security_risk == "high"
    assert report.passed is False
    kinds = {i.kind for i in report.security_issues}
    assert kinds == {"credentials", "dynamic_eval"}


def test_suggestions_unique_and_capped():
    content = "\n".join(f"console.log({i}); const k{i}: any = {i}" for i in range(20))
    files = [_file(f"lib/f{i}.ts", content) for i in range(15)]
    report = CodeValidator().validate_project(files)
    assert len(report.suggestions) == len(set(report.suggestions))
    assert len(report.suggestions) <= 10
    assert report.warning_count == 30
    assert report.passed is True


def test_report_to_dict_keys():
    data = CodeValidator().validate_project([_file("README.md", "# x\n", Category.DOCUMENTATION)]).to_dict()
    assert {"qualityScore", "securityRisk", "securityIssues", "errorCount", "warningCount", "pass"} <= set(data)
