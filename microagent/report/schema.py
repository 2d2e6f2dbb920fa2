"""
Pydantic schema models for the structured validation report.

Usage:
    from microagent.report.schema import ValidationReport

    report = ValidationReport.from_result(result, level="minimum")
    print(report.model_dump_json(indent=2))
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from microagent.validator.errors import Finding, ValidationResult

REPORT_VERSION = "1.0"


class FindingRecord(BaseModel):
    """One rule outcome."""
    severity: Literal["fatal", "error", "warning"] = Field(description="fatal aborts the run; fatal and error fail it")
    rule: str = Field(description="Identifier of the rule that produced the finding (e.g. TOOL_SCRIPT)")
    message: str = Field(description="Human-readable problem statement")
    fix: Optional[str] = Field(None, description="Suggested fix action")
    file: Optional[str] = Field(None, description="File the finding refers to, relative to the agent directory")
    line: Optional[int] = Field(None, description="1-based line number within file")

    @classmethod
    def from_finding(cls, finding: Finding) -> "FindingRecord":
        return cls(
            severity=finding.severity.value,
            rule=finding.rule_id,
            message=finding.message,
            fix=finding.fix_action or None,
            file=finding.file_path,
            line=finding.line_number,
        )


class ReportSummary(BaseModel):
    """Finding counts."""
    errors: int = Field(description="Number of fatal and error findings")
    warnings: int = Field(description="Number of warning findings")


class ValidationReport(BaseModel):
    """Structured report for one validation run."""
    version: str = Field(REPORT_VERSION, description="Report schema version")
    target: Optional[str] = Field(None, description="Validated directory as given on the command line")
    level: Literal["minimum", "complete"] = Field(description="Conformance level checked")
    strict: bool = Field(False, description="Warnings fail the run")
    passed: bool = Field(description="True when no error findings (and, in strict mode, no warnings)")
    summary: ReportSummary
    findings: List[FindingRecord] = Field(default_factory=list, description="Findings in evaluation order")

    @classmethod
    def from_result(
        cls,
        result: ValidationResult,
        level: str,
        target: Optional[str] = None,
        strict: bool = False,
    ) -> "ValidationReport":
        return cls(
            target=target,
            level=level,
            strict=strict,
            passed=result.passed(strict=strict),
            summary=ReportSummary(errors=len(result.errors), warnings=len(result.warnings)),
            findings=[FindingRecord.from_finding(f) for f in result.findings],
        )
