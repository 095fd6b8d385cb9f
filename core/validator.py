"""Deterministic heuristic validation of a generated file set.

Everything here is a pure function of file content: nothing is executed,
compiled or fetched.
"""

import json
import math
import posixpath
import re

from agents.security import SecurityScanner
from config.defaults import get_setting
from config.rules import STYLE_PATTERNS, TS_ANY
from core.categories import RENDERED_CATEGORIES, Category
from core.quality import report_passes
from core.state import FileValidation, Issue, ValidationReport

CODE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"}
JSX_EXTENSIONS = {".jsx", ".tsx"}
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json", ".css", ".scss")

_BRACKETS = (("{", "}", "braces"), ("(", ")", "parentheses"), ("[", "]", "brackets"))

_IMPORT_PATTERNS = (
    re.compile(r"""\bimport\s+(?:type\s+)?[\w*{}\s,$]+?\s+from\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\bimport\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\bexport\s+(?:type\s+)?[\w*{}\s,$]+?\s+from\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"""\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
)

_DEFAULT_EXPORT = re.compile(r"""\bexport\s+default\b|\bexport\s*\{[^}]*\bas\s+default\b""")
_CLIENT_IDIOMS = re.compile(
    r"""\buse(?:State|Effect|Reducer|LayoutEffect|Transition|Optimistic)\s*\(|"""
    r"""\bon(?:Click|Change|Submit|KeyDown|KeyUp|Input|MouseEnter|MouseLeave)\s*=|"""
    r"""\b(?:window|localStorage|sessionStorage)\."""
)
_USE_STATE = re.compile(r"""(?<![.\w])useState\s*[(<]""")
_REACT_IMPORT = re.compile(r"""\bfrom\s+['"]react['"]|require\(\s*['"]react['"]\s*\)""")
_LINK_TAG = re.compile(r"""<Link\b""")
_NEXT_LINK = re.compile(r"""['"]next/link['"]""")
_FUNCTION_START = re.compile(
    r"""\bfunction\s*\*?\s*[\w$]*\s*\([^)]*\)\s*(?::\s*[^{=;]+)?\{|"""
    r"""=>\s*\{"""
)
_PROPS_DESTRUCTURE = re.compile(r"""\bfunction\s+[A-Z]\w*\s*\(\s*\{[^}]*\}\s*\)|=\s*\(\s*\{[^}]*\}\s*\)\s*=>""")
_PROPS_TYPE = re.compile(r"""\b(?:interface|type)\s+\w*Props\b""")
_BRANCHES = re.compile(r"""\b(?:if|for|while|case|catch)\b|&&|\|\||(?<!\?)\?(?![.?:])""")
_DEFINE_TABLE = re.compile(r"""\b(\w+)\s*:\s*defineTable\s*\(""")
_PRISMA_MODEL = re.compile(r"""^\s*model\s+(\w+)\s*\{""", re.MULTILINE)
_VUE_SCRIPT = re.compile(r"""<script\b[^>]*>(.*?)</script\s*>""", re.DOTALL | re.IGNORECASE)


def _ext(path):
    return posixpath.splitext(path)[1].lower()


def _issue(source, severity, path, line, message, suggestion=""):
    return Issue(source=source, severity=severity, file=path, line=line,
                 message=message, suggestion=suggestion)


def _line_of(content, index):
    return content.count("\n", 0, index) + 1


def unterminated_strings(content, check_single=True):
    """(line, quote) for every string literal left open.

    Comments are skipped; ' and " strings must close on their own line,
    template literals may span lines.
    """
    problems = []
    i = 0
    n = len(content)
    line = 1
    quote = None
    start_line = 0
    while i < n:
        ch = content[i]
        if quote is None:
            nxt = content[i + 1] if i + 1 < n else ""
            if ch == "/" and nxt == "/":
                end = content.find("\n", i)
                i = n if end == -1 else end
                continue
            if ch == "/" and nxt == "*":
                end = content.find("*/", i + 2)
                end = n if end == -1 else end + 2
                line += content.count("\n", i, end)
                i = end
                continue
            if ch in ('"', "`") or (ch == "'" and check_single):
                quote = ch
                start_line = line
        else:
            if ch == "\\":
                if i + 1 < n and content[i + 1] == "\n":
                    line += 1
                i += 2
                continue
            if ch == quote:
                quote = None
            elif ch == "\n" and quote != "`":
                problems.append((start_line, quote))
                quote = None
        if ch == "\n":
            line += 1
        i += 1
    if quote is not None:
        problems.append((start_line, quote))
    return problems


def check_syntax(path, content):
    """Bracket balance and string termination. Returns hard errors."""
    ext = _ext(path)
    errors = []
    if ext == ".json":
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            errors.append(_issue("syntax", "error", path, e.lineno, f"Invalid JSON: {e.msg}",
                                 "Output strict JSON without comments or trailing commas"))
        return errors

    # (first line, source) segments to check
    if ext in CODE_EXTENSIONS or ext in (".css", ".scss", ".less"):
        segments = [(1, content)]
    elif ext == ".vue":
        # <script> blocks only; templates hold free text
        segments = [(_line_of(content, m.start(1)), m.group(1)) for m in _VUE_SCRIPT.finditer(content)]
    else:
        return errors
    pairs = _BRACKETS[:1] if ext in (".css", ".scss", ".less") else _BRACKETS
    source = "".join(body for _, body in segments) if segments else content

    for opening, closing, name in pairs:
        opened = source.count(opening)
        closed = source.count(closing)
        if opened != closed:
            errors.append(_issue(
                "syntax", "error", path, None,
                f"Unbalanced {name}: {opened} '{opening}' vs {closed} '{closing}'",
                f"Close every '{opening}' with a matching '{closing}'",
            ))

    if ext in CODE_EXTENSIONS or ext == ".vue":
        for first_line, body in segments:
            for line, quote in unterminated_strings(body, check_single=ext not in JSX_EXTENSIONS):
                errors.append(_issue("syntax", "error", path, first_line + line - 1,
                                     f"Unterminated string literal ({quote})",
                                     "Close the string on the same line or use a template literal"))
    return errors


def extract_imports(content):
    specs = []
    for pattern in _IMPORT_PATTERNS:
        for m in pattern.finditer(content):
            if m.group(1) not in specs:
                specs.append(m.group(1))
    return specs


def resolve_import(importer, spec, known_paths):
    """Path in known_paths a relative or "@/" import refers to, or None.

    Bare package specifiers are not checked and return the spec unchanged.
    """
    if spec.startswith("@/"):
        target = spec[2:]
    elif spec.startswith("./") or spec.startswith("../") or spec in (".", ".."):
        target = posixpath.normpath(posixpath.join(posixpath.dirname(importer), spec))
    else:
        return spec
    if target.startswith("..") or target.startswith("/"):
        return None

    candidates = [target]
    candidates += [target + ext for ext in RESOLVE_EXTENSIONS]
    candidates += [posixpath.join(target, "index" + ext) for ext in RESOLVE_EXTENSIONS]
    if spec.startswith("@/"):
        candidates += [posixpath.join("src", c) for c in list(candidates)]
    for candidate in candidates:
        if candidate in known_paths:
            return candidate
    return None


def check_imports(f, known_paths):
    if _ext(f.path) not in CODE_EXTENSIONS:
        return []
    specs = list(f.imports)
    for spec in extract_imports(f.content):
        if spec not in specs:
            specs.append(spec)
    errors = []
    for spec in specs:
        if resolve_import(f.path, spec, known_paths) is None:
            errors.append(_issue(
                "imports", "error", f.path, None,
                f"Unresolved import '{spec}'",
                "Generate the missing module or correct the relative import path",
            ))
    return errors


def long_functions(content, limit):
    """(start_line, length) of function bodies longer than `limit` lines."""
    found = []
    for m in _FUNCTION_START.finditer(content):
        open_at = m.end() - 1
        depth = 0
        for i in range(open_at, len(content)):
            ch = content[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    start = _line_of(content, open_at)
                    length = _line_of(content, i) - start + 1
                    if length > limit:
                        found.append((start, length))
                    break
    return found


def check_framework(f, project_type="nextjs"):
    """Category-specific errors and warnings. Returns (errors, warnings)."""
    errors, warnings = [], []
    ext = _ext(f.path)
    if ext not in CODE_EXTENSIONS:
        return errors, warnings
    content = f.content
    stem = posixpath.basename(f.path).split(".", 1)[0]

    if (f.category == Category.PAGE or stem in ("page", "layout")) \
            and not _DEFAULT_EXPORT.search(content):
        errors.append(_issue("framework", "error", f.path, None,
                             "Page/layout file has no default export",
                             "Export the page component as the default export"))

    if project_type == "nextjs" and (f.category in RENDERED_CATEGORIES or f.category == Category.HOOK):
        m = _CLIENT_IDIOMS.search(content)
        if m and not re.match(r"""^\s*(?://[^\n]*\n\s*|/\*.*?\*/\s*)*["']use client["']""",
                              content, re.DOTALL):
            warnings.append(_issue(
                "framework", "warning", f.path, _line_of(content, m.start()),
                "Client-side features used without the \"use client\" directive",
                "Add \"use client\" at the top of files that use state, effects or event handlers",
            ))

    m = _USE_STATE.search(content)
    if m and not _REACT_IMPORT.search(content):
        warnings.append(_issue("framework", "warning", f.path, _line_of(content, m.start()),
                               "useState used without importing it from react",
                               "import { useState } from 'react'"))

    m = _LINK_TAG.search(content)
    if m and project_type == "nextjs" and not _NEXT_LINK.search(content):
        warnings.append(_issue("framework", "warning", f.path, _line_of(content, m.start()),
                               "<Link> used without importing next/link",
                               "import Link from 'next/link'"))

    if f.category == Category.COMPONENT and ext == ".tsx" \
            and _PROPS_DESTRUCTURE.search(content) and not _PROPS_TYPE.search(content):
        warnings.append(_issue("style", "warning", f.path, None,
                               "Component props are not typed",
                               "Declare a Props interface for the component"))
    return errors, warnings


def check_style(f, long_function_lines):
    ext = _ext(f.path)
    if ext not in CODE_EXTENSIONS:
        return []
    warnings = []
    content = f.content
    for pattern, message, suggestion in STYLE_PATTERNS:
        m = pattern.search(content)
        if m:
            count = len(pattern.findall(content))
            warnings.append(_issue("style", "warning", f.path, _line_of(content, m.start()),
                                   f"{message} ({count}x)" if count > 1 else message, suggestion))
    if ext in (".ts", ".tsx"):
        m = TS_ANY.search(content)
        if m:
            warnings.append(_issue("style", "warning", f.path, _line_of(content, m.start()),
                                   "Explicit 'any' type", "Replace 'any' with a concrete type"))
    for start, length in long_functions(content, long_function_lines):
        warnings.append(_issue("style", "warning", f.path, start,
                               f"Function is {length} lines long",
                               f"Split functions longer than {long_function_lines} lines"))
    return warnings


def schema_entities(f):
    """Entities declared by a schema file: Convex defineTable or Prisma models."""
    if f.path.endswith(".prisma"):
        return _PRISMA_MODEL.findall(f.content)
    if posixpath.basename(f.path).split(".", 1)[0] == "schema":
        return _DEFINE_TABLE.findall(f.content)
    return []


def check_consistency(files):
    """Hard errors for schema entities that no other generated file references."""
    errors = {}
    for f in files:
        entities = schema_entities(f)
        if not entities:
            continue
        others = "\n".join(g.content for g in files if g.path != f.path)
        for entity in entities:
            names = {entity, entity[:1].lower() + entity[1:]}
            if not any(re.search(r"\b" + re.escape(n) + r"\b", others) for n in names):
                errors.setdefault(f.path, []).append(_issue(
                    "consistency", "error", f.path, None,
                    f"Schema entity '{entity}' is declared but never used",
                    "Use the entity in a query/handler or remove it from the schema",
                ))
    return errors


def file_metrics(content):
    lines = [ln.strip() for ln in content.split("\n")]
    loc = sum(1 for ln in lines if ln and not ln.startswith(("//", "/*", "*")))
    complexity = 1 + len(_BRANCHES.findall(content))
    maintainability = 171 - 5.2 * math.log(max(loc, 1)) - 0.23 * complexity
    return {
        "linesOfCode": loc,
        "complexity": complexity,
        "maintainability": round(max(0.0, min(100.0, maintainability)), 1),
    }


def file_score(error_count, warning_count):
    return max(0.0, 10 - 2 * error_count - 0.5 * warning_count)


class CodeValidator:
    def __init__(self, scanner=None, long_function_lines=None):
        self.scanner = scanner or SecurityScanner()
        self.long_function_lines = long_function_lines or get_setting("long_function_lines")

    def validate_file(self, f, known_paths, project_type="nextjs"):
        result = FileValidation(path=f.path)
        result.errors.extend(check_syntax(f.path, f.content))
        result.errors.extend(check_imports(f, known_paths))
        errors, warnings = check_framework(f, project_type)
        result.errors.extend(errors)
        result.warnings.extend(warnings)
        result.warnings.extend(check_style(f, self.long_function_lines))
        result.metrics = file_metrics(f.content)
        return result

    def validate_project(self, files, project_type="nextjs"):
        files = list(files)
        known = {f.path for f in files}
        report = ValidationReport()

        for f in files:
            report.files[f.path] = self.validate_file(f, known, project_type)
        for path, errors in check_consistency(files).items():
            report.files[path].errors.extend(errors)
        for result in report.files.values():
            result.score = file_score(len(result.errors), len(result.warnings))

        report.security_issues, report.security_risk = self.scanner.scan(files)

        if report.files:
            mean = sum(r.score for r in report.files.values()) / len(report.files)
            report.quality_score = round(mean, 1)
        report.suggestions = self._suggestions(report)
        report.passed = report_passes(report)
        return report

    @staticmethod
    def _suggestions(report):
        seen = []
        issues = [i for r in report.files.values() for i in r.errors]
        issues += report.security_issues
        issues += [i for r in report.files.values() for i in r.warnings]
        for issue in issues:
            if issue.suggestion and issue.suggestion not in seen:
                seen.append(issue.suggestion)
        return seen[:10]
