"""Security scanner: static pattern checks over generated files. Zero LLM calls."""

import posixpath
from dataclasses import dataclass

from config.rules import (
    CRITICAL_KINDS,
    HANDLER_DEFINITION,
    SCANNED_EXTENSIONS,
    SECURITY_PATTERNS,
    UNTRUSTED_INPUT,
    UNTRUSTED_INPUT_RULE,
    VALIDATION_CALL,
)
from core.state import Issue


@dataclass
class SecurityIssue(Issue):
    kind: str = ""      # rule group, e.g. "credentials", "dynamic_eval"

    def to_dict(self):
        data = super().to_dict()
        data["kind"] = self.kind
        return data


def assess_risk(issues):
    """low|medium|high from the number and kind of findings.

    Three or more findings, or any critical kind, is high; two is medium.
    """
    if not issues:
        return "low"
    if len(issues) >= 3:
        return "high"
    if any(getattr(i, "kind", "") in CRITICAL_KINDS for i in issues):
        return "high"
    if len(issues) >= 2:
        return "medium"
    return "low"


class SecurityScanner:
    """Runs the regex rules line by line, plus a file-level untrusted-input check."""

    name = "security"

    def scan_file(self, path, content):
        if posixpath.splitext(path)[1] not in SCANNED_EXTENSIONS:
            return []
        issues = []
        for line_num, line in enumerate(content.split("\n"), 1):
            for pattern, severity, kind, message, suggestion in SECURITY_PATTERNS:
                if pattern.search(line):
                    issues.append(SecurityIssue(
                        source="security",
                        severity=severity,
                        file=path,
                        line=line_num,
                        message=message,
                        suggestion=suggestion,
                        kind=kind,
                    ))

        if HANDLER_DEFINITION.search(content):
            first_read = UNTRUSTED_INPUT.search(content)
            if first_read and not VALIDATION_CALL.search(content):
                severity, kind, message, suggestion = UNTRUSTED_INPUT_RULE
                issues.append(SecurityIssue(
                    source="security",
                    severity=severity,
                    file=path,
                    line=content.count("\n", 0, first_read.start()) + 1,
                    message=message,
                    suggestion=suggestion,
                    kind=kind,
                ))
        return issues

    def scan(self, files):
        """Scan every file. Returns (issues, risk_level)."""
        issues = []
        for f in files:
            issues.extend(self.scan_file(f.path, f.content))
        return issues, assess_risk(issues)
