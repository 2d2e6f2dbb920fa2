# microagent/validator/errors.py
"""Finding collection and formatting."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

# One line per finding: [SEVERITY] RULE location: message
FINDING_TEMPLATE = "[{severity}] {rule_id} {location}: {message}"
FIX_TEMPLATE = "  Fix: {fix_action}"


class NotFoundError(FileNotFoundError):
    """Raised when the directory to validate does not exist or is not a directory."""


class ConfigError(ValueError):
    """Raised when a validator configuration file cannot be loaded."""


class Severity(str, Enum):
    """Finding severity. FATAL aborts the run; FATAL and ERROR fail it."""
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"


class Finding:
    """Structured rule outcome."""

    def __init__(
        self,
        severity: Severity,
        rule_id: str,
        message: str,
        fix_action: str = "",
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        self.severity = severity
        self.rule_id = rule_id
        self.message = message
        self.fix_action = fix_action
        self.file_path = file_path
        self.line_number = line_number

    @property
    def location(self) -> str:
        """Render file:line, file, or '.' for directory-level findings."""
        if not self.file_path:
            return "."
        if self.line_number:
            return f"{self.file_path}:{self.line_number}"
        return self.file_path

    @property
    def is_failure(self) -> bool:
        return self.severity in (Severity.FATAL, Severity.ERROR)

    def format(self, with_fix: bool = False) -> str:
        """Format finding as a report line."""
        line = FINDING_TEMPLATE.format(
            severity=self.severity.value.upper(),
            rule_id=self.rule_id,
            location=self.location,
            message=self.message,
        )
        if with_fix and self.fix_action:
            line += "\n" + FIX_TEMPLATE.format(fix_action=self.fix_action)
        return line

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to dictionary for JSON serialization."""
        return {
            "severity": self.severity.value,
            "rule": self.rule_id,
            "message": self.message,
            "fix_action": self.fix_action,
            "file_path": self.file_path,
            "line_number": self.line_number,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Finding):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Finding({self.format()!r})"


class ValidationResult:
    """Collects findings in evaluation order."""

    def __init__(self):
        self.findings: List[Finding] = []

    def add(
        self,
        severity: Severity,
        rule_id: str,
        message: str,
        fix_action: str = "",
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
    ) -> Finding:
        finding = Finding(severity, rule_id, message, fix_action, file_path, line_number)
        self.findings.append(finding)
        return finding

    def add_fatal(self, rule_id: str, message: str, fix_action: str = "", **location: Any) -> Finding:
        """Add a fatal finding (aborts remaining checks)."""
        return self.add(Severity.FATAL, rule_id, message, fix_action, **location)

    def add_error(self, rule_id: str, message: str, fix_action: str = "", **location: Any) -> Finding:
        """Add a validation error."""
        return self.add(Severity.ERROR, rule_id, message, fix_action, **location)

    def add_warning(self, rule_id: str, message: str, fix_action: str = "", **location: Any) -> Finding:
        """Add a validation warning (degraded but acceptable, not an error)."""
        return self.add(Severity.WARNING, rule_id, message, fix_action, **location)

    def extend(self, other: "ValidationResult") -> None:
        """Extend with findings from another result."""
        self.findings.extend(other.findings)

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.is_failure]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == Severity.WARNING]

    def has_errors(self) -> bool:
        """Check if any error or fatal findings were collected."""
        return any(f.is_failure for f in self.findings)

    def has_warnings(self) -> bool:
        """Check if any warnings were collected."""
        return any(f.severity == Severity.WARNING for f in self.findings)

    def is_fatal(self) -> bool:
        return any(f.severity == Severity.FATAL for f in self.findings)

    def passed(self, strict: bool = False) -> bool:
        """Pass when no errors were recorded; strict mode also rejects warnings."""
        if strict:
            return not self.findings
        return not self.has_errors()

    def by_rule(self, rule_id: str) -> List[Finding]:
        return [f for f in self.findings if f.rule_id == rule_id]

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "findings": [f.to_dict() for f in self.findings],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "status": "FAIL" if self.has_errors() else "PASS",
        }
