"""Security and lint rule patterns for generated JavaScript/TypeScript."""

import re

# Patterns that indicate security issues. Each entry:
# (pattern_regex, severity, kind, message, suggestion)
# kind groups rules for risk escalation; see CRITICAL_KINDS.
SECURITY_PATTERNS = [
    (
        re.compile(r"""\b(?:query|execute|raw|queryRaw|unsafe)\s*\(\s*`[^`]*\$\{"""),
        "error",
        "sql_injection",
        "Possible SQL injection via interpolated query string",
        "Use parameterized queries or the driver's tagged-template API",
    ),
    (
        re.compile(r"""\b(?:query|execute|raw)\s*\(\s*["'][^"'\n]*["']\s*\+"""),
        "error",
        "sql_injection",
        "Possible SQL injection via string concatenation",
        "Use parameterized queries instead of concatenating request data into SQL",
    ),
    (
        re.compile(
            r"""['"]?\b(?:password|passwd|api[_-]?key|apikey|auth[_-]?token|access[_-]?token|"""
            r"""token|secret|client[_-]?secret|private[_-]?key)['"]?\s*[:=]\s*['"][^'"\s]{4,}['"]""",
            re.IGNORECASE,
        ),
        "error",
        "credentials",
        "Hardcoded secret or credential",
        "Read secrets from environment variables (process.env.KEY_NAME)",
    ),
    (
        re.compile(r"""(?<![\w.])eval\s*\("""),
        "error",
        "dynamic_eval",
        "Use of eval() is unsafe",
        "Replace eval() with JSON.parse() or explicit logic",
    ),
    (
        re.compile(r"""\bnew\s+Function\s*\("""),
        "error",
        "dynamic_eval",
        "new Function() evaluates arbitrary code",
        "Replace dynamic code construction with explicit functions",
    ),
    (
        re.compile(r"""\bset(?:Timeout|Interval)\s*\(\s*["'`]"""),
        "warning",
        "string_timer",
        "Timer called with a code string",
        "Pass a function to setTimeout/setInterval instead of a string",
    ),
    (
        re.compile(r"""\bexec(?:Sync)?\s*\(\s*`[^`]*\$\{"""),
        "error",
        "command_injection",
        "Shell command built from interpolated values",
        "Use execFile/spawn with an argument array",
    ),
    (
        re.compile(r"""\.innerHTML\s*=(?!=)"""),
        "warning",
        "xss",
        "Assignment to innerHTML can inject markup",
        "Use textContent or render through the framework",
    ),
    (
        re.compile(r"""\bdangerouslySetInnerHTML\b"""),
        "warning",
        "xss",
        "dangerouslySetInnerHTML renders raw HTML",
        "Sanitize the HTML (e.g. DOMPurify) or render structured content",
    ),
    (
        re.compile(r"""\bdocument\.write\s*\("""),
        "warning",
        "xss",
        "document.write() can inject markup",
        "Build DOM nodes explicitly instead of writing raw HTML",
    ),
]

# Any finding of these kinds puts the project at high risk on its own
CRITICAL_KINDS = {"sql_injection", "credentials", "dynamic_eval", "command_injection"}

# Reads of request data ...
UNTRUSTED_INPUT = re.compile(
    r"""\breq\.(?:body|query|params)\b|\brequest\.(?:json|formData|text)\s*\(|"""
    r"""\bsearchParams\.get\s*\("""
)

# Only files that define request handlers are checked for unvalidated input
HANDLER_DEFINITION = re.compile(
    r"""export\s+(?:async\s+)?function\s+(?:GET|POST|PUT|PATCH|DELETE|middleware)\b|"""
    r"""export\s+const\s+(?:GET|POST|PUT|PATCH|DELETE)\s*=|\(\s*req\s*,\s*res\b"""
)

# ... are acceptable when the same file visibly validates or sanitizes
VALIDATION_CALL = re.compile(
    r"""\b(?:validate\w*|sanitize\w*|safeParse|isValid\w*)\s*\(|"""
    r"""\bz\.(?:object|string|number)\s*\(|\b(?:Joi|yup)\.|"""
    r"""(?<!JSON)\.parse\s*\(|\bDOMPurify\b"""
)

UNTRUSTED_INPUT_RULE = (
    "warning",
    "unvalidated_input",
    "Handler reads request input without visible validation",
    "Validate request data with a schema (e.g. zod) before using it",
)

SCANNED_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".json", ".vue", ".html"}

# Lint-style heuristics used by the validator.
# (pattern, message, suggestion)
STYLE_PATTERNS = [
    (
        re.compile(r"""\bconsole\.log\s*\("""),
        "console.log left in code",
        "Remove debug logging or use a logger",
    ),
]

TS_ANY = re.compile(r""":\s*any\b|\bas\s+any\b|<any>""")
