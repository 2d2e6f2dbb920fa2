"""
Test fixtures and utilities for Micro Agent validator tests.

This module provides reusable fixtures for testing the validator,
including temporary agent directories, tool scripts, context files, and
helper functions.
"""

import os
import stat
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

from microagent.config.validator_config import reset_config
from microagent.tools.validate_agent import run_cli

# ============================================================================
# Sample AGENT.md
# ============================================================================

YOUTUBE_AGENT_MD = """# YouTube Research Agent

You are a research assistant that finds and summarises YouTube videos.

## Tools

### search_videos

Search YouTube for videos matching a query.

```bash
python tools/youtube.py search_videos --query "<terms>" --max 10
```

- `--json` — machine-readable output

## Workspace

- `workspace/reports/` — one markdown report per topic
- `workspace/notes.md` — running notes between sessions

## Workflows

### Research a topic

1. Read `context/research_guide.md` for the report structure
2. Run `search_videos` with the topic
3. Save the report to `workspace/reports/<topic>.md`

## Environment

```bash
export YOUTUBE_API_KEY=your-key
```
"""


# ============================================================================
# Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Drop cached config and env overrides so every test sees bundled defaults."""
    monkeypatch.delenv("MICROAGENT_LEVEL", raising=False)
    monkeypatch.delenv("MICROAGENT_MAX_WALK_DEPTH", raising=False)
    reset_config()
    yield
    reset_config()


# ============================================================================
# Temporary Agent Fixtures
# ============================================================================


@pytest.fixture
def temp_agent(tmp_path):
    """
    Create a temporary agent directory with minimal valid structure.

    Returns a Path to the temporary directory with:
    - AGENT.md (identity heading only, no recognized sections)
    - tools/ (empty directory)
    """
    agent = tmp_path / "agent"
    agent.mkdir()
    (agent / "tools").mkdir()
    (agent / "AGENT.md").write_text("# Test Agent\n\nYou are a test agent.\n", encoding="utf-8")
    return agent


@pytest.fixture
def valid_agent(temp_agent):
    """
    Create a temporary agent directory that passes at both levels.

    Returns a Path to the temporary directory with:
    - AGENT.md documenting search_videos (YOUTUBE_AGENT_MD)
    - tools/youtube.py
    - context/research_guide.md
    - workspace/.gitkeep
    - .env.example with YOUTUBE_API_KEY=
    - README.md
    """
    write_agent_md(temp_agent, YOUTUBE_AGENT_MD)
    create_tool_script(temp_agent, "youtube.py")
    create_context_file(temp_agent, "research_guide.md")
    (temp_agent / "workspace").mkdir()
    (temp_agent / "workspace" / ".gitkeep").write_text("", encoding="utf-8")
    write_env_example(temp_agent, {"YOUTUBE_API_KEY": ""})
    (temp_agent / "README.md").write_text("# YouTube Research Agent\n", encoding="utf-8")
    return temp_agent


# ============================================================================
# File Helpers
# ============================================================================


def write_agent_md(agent_path: Path, content: str) -> Path:
    """Write AGENT.md into an agent directory."""
    path = agent_path / "AGENT.md"
    path.write_text(content, encoding="utf-8")
    return path


def create_tool_script(agent_path: Path, relative: str, executable: bool = True) -> Path:
    """
    Create a script under tools/.

    Args:
        agent_path: Path to agent root
        relative: Path under tools/ (e.g. "youtube.py" or "auth/setup.sh")
        executable: If True, set the executable bits
    """
    path = agent_path / "tools" / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/usr/bin/env python3\nprint('ok')\n", encoding="utf-8")
    mode = path.stat().st_mode
    if executable:
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    else:
        path.chmod(mode & ~(stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
    return path


def create_context_file(agent_path: Path, relative: str, content: str = "# Reference\n") -> Path:
    """Create a reference file under context/."""
    path = agent_path / "context" / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_env_example(agent_path: Path, variables: Dict[str, str]) -> Path:
    """Write .env.example with one NAME=value line per variable."""
    path = agent_path / ".env.example"
    lines = [f"{name}={value}" for name, value in variables.items()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def rules_of(result) -> List[str]:
    """Rule ids of a ValidationResult's findings, in order."""
    return [f.rule_id for f in result.findings]


# ============================================================================
# Validation Runner Fixtures
# ============================================================================


@pytest.fixture
def run_validator(capsys):
    """
    Fixture that returns a function to run the validator CLI in-process.

    Returns:
        Function(agent_path, flags=[]) -> namespace(returncode, stdout, stderr)
    """
    def _run(agent_path: Path, flags: Optional[List[str]] = None):
        capsys.readouterr()
        returncode = run_cli([str(agent_path)] + list(flags or []))
        captured = capsys.readouterr()
        return SimpleNamespace(returncode=returncode, stdout=captured.out, stderr=captured.err)

    return _run


# ============================================================================
# Assertion Helpers
# ============================================================================


def assert_validator_passed(result):
    """Assert that validator passed (exit code 0)."""
    assert result.returncode == 0, f"Validator failed with stderr: {result.stderr}"


def assert_validator_failed(result):
    """Assert that validator failed (exit code 1)."""
    assert result.returncode == 1, (
        f"Expected exit code 1, got {result.returncode}. Stdout: {result.stdout} Stderr: {result.stderr}"
    )


def assert_finding(output: str, severity: str, rule_id: str):
    """Assert that a report contains a finding line of the given severity and rule."""
    marker = f"[{severity.upper()}] {rule_id} "
    assert marker in output, f"Expected '{marker}' in report. Got: {output}"


def can_symlink(tmp_path: Path) -> bool:
    """True if the platform lets this process create directory symlinks."""
    probe = tmp_path / "_symlink_probe"
    try:
        os.symlink(tmp_path, probe, target_is_directory=True)
    except (OSError, NotImplementedError):
        return False
    probe.unlink()
    return True
