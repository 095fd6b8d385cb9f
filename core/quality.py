"""Quality gate evaluation."""

from core.state import ValidationReport


def report_passes(report: ValidationReport) -> bool:
    """Both must hold: no hard error in any file, security risk below high."""
    errors = [i for f in report.files.values() for i in f.errors if i.severity == "error"]
    return len(errors) == 0 and report.security_risk != "high"


def failure_reason(report: ValidationReport) -> str:
    """Human-readable reason a report did not pass, "" if it did."""
    reasons = []
    if report.error_count:
        reasons.append(f"{report.error_count} hard error(s)")
    if report.security_risk == "high":
        reasons.append("high security risk")
    return ", ".join(reasons)
