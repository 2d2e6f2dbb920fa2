"""
Test suite for validation report rendering.

Reports must be deterministic: validating the same directory twice yields
byte-identical output in every format.
"""

import json

import pytest

from microagent.report.emitter import (
    build_report_json,
    build_report_markdown,
    build_report_text,
    emit_report,
    summary_line,
)
from microagent.report.schema import ValidationReport
from microagent.validator.errors import Finding, Severity, ValidationResult
from microagent.validator.runner import validate_agent_dir


@pytest.fixture
def mixed_result():
    result = ValidationResult()
    result.add_error(
        "TOOL_SCRIPT",
        "tool references missing script: 'search_videos' invokes tools/youtube.py",
        "Add tools/youtube.py or fix the invocation of 'search_videos'",
        file_path="AGENT.md",
        line_number=12,
    )
    result.add_warning(
        "ENV_EXAMPLE",
        "environment variables documented but no .env.example provided",
        "Add .env.example with one blank assignment per variable: YOUTUBE_API_KEY=",
        file_path=".env.example",
    )
    return result


class TestFindingFormat:
    """Single-line finding rendering."""

    def test_with_line_number(self, mixed_result):
        assert mixed_result.findings[0].format() == (
            "[ERROR] TOOL_SCRIPT AGENT.md:12: "
            "tool references missing script: 'search_videos' invokes tools/youtube.py"
        )

    def test_without_line_number(self, mixed_result):
        assert mixed_result.findings[1].format().startswith("[WARNING] ENV_EXAMPLE .env.example: ")

    def test_directory_level_location(self):
        finding = Finding(Severity.WARNING, "WALK", "symlink cycle at tools/again/ (skipped)")
        assert finding.location == "."

    def test_fix_line(self, mixed_result):
        lines = mixed_result.findings[0].format(with_fix=True).splitlines()
        assert lines[1] == "  Fix: Add tools/youtube.py or fix the invocation of 'search_videos'"


class TestTextReport:

    def test_one_line_per_finding_then_summary(self, mixed_result):
        text = build_report_text(mixed_result, "minimum")
        lines = text.splitlines()

        assert len(lines) == 3
        assert lines[0].startswith("[ERROR] TOOL_SCRIPT")
        assert lines[1].startswith("[WARNING] ENV_EXAMPLE")
        assert lines[2] == "Agent validation FAILED (level: minimum; 1 error, 1 warning)."

    def test_clean_summary(self):
        assert summary_line(ValidationResult(), "complete") == (
            "Agent validation PASSED (level: complete; 0 errors, 0 warnings)."
        )

    def test_strict_summary(self):
        result = ValidationResult()
        result.add_warning("SECTIONS", "AGENT.md has no recognized sections — agent may be under-specified")

        assert summary_line(result, "minimum", strict=True) == (
            "Agent validation FAILED (level: minimum, strict; 0 errors, 1 warning)."
        )

    def test_hints(self, mixed_result):
        text = build_report_text(mixed_result, "minimum", hints=True)
        assert text.count("  Fix: ") == 2


class TestJsonReport:

    def test_structure(self, mixed_result):
        data = json.loads(build_report_json(mixed_result, "minimum", target="agents/youtube"))

        assert data["version"] == "1.0"
        assert data["target"] == "agents/youtube"
        assert data["level"] == "minimum"
        assert data["passed"] is False
        assert data["summary"] == {"errors": 1, "warnings": 1}
        assert data["findings"][0] == {
            "severity": "error",
            "rule": "TOOL_SCRIPT",
            "message": "tool references missing script: 'search_videos' invokes tools/youtube.py",
            "fix": "Add tools/youtube.py or fix the invocation of 'search_videos'",
            "file": "AGENT.md",
            "line": 12,
        }

    def test_strict_flag_changes_passed(self):
        result = ValidationResult()
        result.add_warning("CONTEXT_REF", "workflow references missing context file: 'x' step uses context/a.md")

        assert json.loads(build_report_json(result, "minimum"))["passed"] is True
        assert json.loads(build_report_json(result, "minimum", strict=True))["passed"] is False

    def test_validates_against_schema(self, mixed_result):
        report = ValidationReport.model_validate_json(build_report_json(mixed_result, "complete"))

        assert report.level == "complete"
        assert [f.rule for f in report.findings] == ["TOOL_SCRIPT", "ENV_EXAMPLE"]


class TestMarkdownReport:

    def test_sections(self, mixed_result):
        md = build_report_markdown(mixed_result, "minimum", target="agents/youtube")

        assert md.startswith("# Micro Agent Validation Report")
        assert "**Status**: FAILED" in md
        assert "- [ ] Tool scripts exist" in md
        assert "- [x] AGENT.md present" in md
        assert "## Errors (1)" in md
        assert "## Warnings (1)" in md
        assert "**Location**: AGENT.md:12" in md

    def test_supplemental_checks_listed(self, mixed_result):
        mixed_result.add_warning(
            "TOOL_EXECUTABLE",
            "tool 'run' runs tools/run.sh directly but it is not executable",
            file_path="tools/run.sh",
        )

        md = build_report_markdown(mixed_result, "minimum")

        assert "- [!] Directly invoked scripts executable" in md
        assert "- [!] Environment template provided" in md
        assert "- [x] Documented variables in .env.example" in md

    def test_complete_level_lists_extra_check(self):
        md = build_report_markdown(ValidationResult(), "complete")

        assert "context/, workspace/ and README.md present" in md
        assert "_No errors found._" in md
        assert "_No warnings._" in md

    def test_fatal_label(self):
        result = ValidationResult()
        result.add_fatal("AGENT_MD", "AGENT.md is missing", file_path="AGENT.md")

        md = build_report_markdown(result, "minimum")

        assert "**Fatal**: AGENT.md is missing" in md
        assert "- [ ] AGENT.md present" in md


class TestDeterminism:

    @pytest.mark.parametrize("fmt", ["text", "json", "markdown"])
    def test_reports_are_byte_identical(self, valid_agent, fmt):
        (valid_agent / "tools" / "youtube.py").unlink()
        (valid_agent / ".env.example").unlink()

        first = emit_report(validate_agent_dir(valid_agent), "minimum", fmt, target=str(valid_agent))
        second = emit_report(validate_agent_dir(valid_agent), "minimum", fmt, target=str(valid_agent))

        assert first == second

    def test_unknown_format_rejected(self, mixed_result):
        with pytest.raises(ValueError):
            emit_report(mixed_result, "minimum", "xml")
