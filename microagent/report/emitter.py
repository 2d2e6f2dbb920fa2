"""Render validation results as text, JSON or markdown.

Every format is deterministic: no timestamps, findings in evaluation order,
so two runs over an unchanged directory produce byte-identical reports.
"""

from __future__ import annotations

from typing import List, Optional

from microagent.report.schema import ValidationReport
from microagent.validator.errors import Severity, ValidationResult

FORMATS = ("text", "json", "markdown")

# Rule id -> checklist label, in evaluation order
CHECKS = [
    ("AGENT.md present", "AGENT_MD"),
    ("tools/ present for documented tools", "TOOLS_DIR"),
    ("Tool scripts exist", "TOOL_SCRIPT"),
    ("Workflow context references resolve", "CONTEXT_REF"),
    ("Environment template provided", "ENV_EXAMPLE"),
    ("Recognized AGENT.md sections", "SECTIONS"),
    ("tools/ and context/ fully walked", "WALK"),
    ("Tool names unique", "TOOL_DUPLICATE"),
    ("Directly invoked scripts executable", "TOOL_EXECUTABLE"),
    ("Workflow tool references resolve", "TOOL_REF"),
    ("Workspace entries under workspace/", "WORKSPACE_PATH"),
    ("Documented variables in .env.example", "ENV_VARS"),
    (".env.example values left blank", "ENV_EXAMPLE_VALUE"),
]

COMPLETE_CHECKS = [
    ("context/, workspace/ and README.md present", "LEVEL"),
]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def summary_line(result: ValidationResult, level: str, strict: bool = False) -> str:
    status = "PASSED" if result.passed(strict=strict) else "FAILED"
    counts = f"{_plural(len(result.errors), 'error')}, {_plural(len(result.warnings), 'warning')}"
    mode = ", strict" if strict else ""
    return f"Agent validation {status} (level: {level}{mode}; {counts})."


def build_report_text(
    result: ValidationResult,
    level: str,
    strict: bool = False,
    hints: bool = False,
) -> str:
    """One line per finding, then a summary line."""
    lines: List[str] = [f.format(with_fix=hints) for f in result.findings]
    lines.append(summary_line(result, level, strict))
    return "\n".join(lines)


def build_report_json(
    result: ValidationResult,
    level: str,
    target: Optional[str] = None,
    strict: bool = False,
) -> str:
    """Structured report: findings, summary counts and overall pass/fail."""
    report = ValidationReport.from_result(result, level=level, target=target, strict=strict)
    return report.model_dump_json(indent=2)


def build_report_markdown(
    result: ValidationResult,
    level: str,
    target: Optional[str] = None,
    strict: bool = False,
) -> str:
    """Build markdown validation report.

    Generates a human-readable markdown report with title, status,
    checks performed, and any errors/warnings.
    """
    lines: List[str] = []

    lines.append("# Micro Agent Validation Report")
    lines.append("")
    if target:
        lines.append(f"**Target**: `{target}`")
    lines.append(f"**Level**: {level}")
    lines.append(f"**Status**: {'PASSED' if result.passed(strict=strict) else 'FAILED'}")
    lines.append("")

    checks = CHECKS + (COMPLETE_CHECKS if level == "complete" else [])
    lines.append("## Checks Performed")
    lines.append("")
    for name, rule_id in checks:
        findings = result.by_rule(rule_id)
        # [ ] failed, [!] warnings only, [x] clean
        if any(f.is_failure for f in findings):
            marker = "[ ]"
        elif findings:
            marker = "[!]"
        else:
            marker = "[x]"
        lines.append(f"- {marker} {name}")
    lines.append("")

    errors = result.errors
    lines.append(f"## Errors ({len(errors)})")
    lines.append("")
    if not errors:
        lines.append("_No errors found._")
        lines.append("")
    for finding in errors:
        lines.append(f"### {finding.rule_id}")
        lines.append(f"**Location**: {finding.location}")
        label = "Fatal" if finding.severity == Severity.FATAL else "Error"
        lines.append(f"**{label}**: {finding.message}")
        if finding.fix_action:
            lines.append(f"**Fix**: {finding.fix_action}")
        lines.append("")

    warnings = result.warnings
    lines.append(f"## Warnings ({len(warnings)})")
    lines.append("")
    if not warnings:
        lines.append("_No warnings._")
        lines.append("")
    for finding in warnings:
        lines.append(f"### {finding.rule_id}")
        lines.append(f"**Location**: {finding.location}")
        lines.append(f"**Warning**: {finding.message}")
        if finding.fix_action:
            lines.append(f"**Fix**: {finding.fix_action}")
        lines.append("")

    return "\n".join(lines).rstrip("\n")


def emit_report(
    result: ValidationResult,
    level: str,
    fmt: str = "text",
    target: Optional[str] = None,
    strict: bool = False,
    hints: bool = False,
) -> str:
    """Render a validation result in the requested format."""
    if fmt == "text":
        return build_report_text(result, level, strict=strict, hints=hints)
    if fmt == "json":
        return build_report_json(result, level, target=target, strict=strict)
    if fmt == "markdown":
        return build_report_markdown(result, level, target=target, strict=strict)
    raise ValueError(f"Unknown report format {fmt!r} (expected one of {', '.join(FORMATS)})")
