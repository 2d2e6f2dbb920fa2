"""Run one validation pass: scan, parse, check."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from microagent.agent.parser import PARSE_RULE, parse_agent_md
from microagent.agent.scanner import AGENT_MD, scan_layout
from microagent.agent.types import AgentDocument, EntryKind
from microagent.config.validator_config import ValidatorConfig, get_config
from microagent.validator.errors import Finding, Severity, ValidationResult
from microagent.validator.rules import LEVEL_MINIMUM, check_agent

logger = logging.getLogger(__name__)


def load_agent_document(path: Path) -> AgentDocument:
    """Read AGENT.md as UTF-8 and parse it.

    Undecodable bytes are replaced and reported as a PARSE warning rather
    than aborting the run.
    """
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8")
        decode_failed = False
    except UnicodeDecodeError:
        text = raw.decode("utf-8", errors="replace")
        decode_failed = True

    document = parse_agent_md(text, source=AGENT_MD)
    if decode_failed:
        document.findings.insert(
            0,
            Finding(
                Severity.WARNING,
                PARSE_RULE,
                "AGENT.md is not valid UTF-8; undecodable bytes were replaced",
                "Re-save AGENT.md as UTF-8",
                file_path=AGENT_MD,
            ),
        )
    return document


def validate_agent_dir(
    root: Path,
    level: Optional[str] = None,
    config: Optional[ValidatorConfig] = None,
) -> ValidationResult:
    """Validate one Micro Agent directory.

    Args:
        root: Agent directory.
        level: Conformance level; the configured default when omitted.
        config: Validator settings (bundled config if omitted).

    Returns:
        ValidationResult with parse findings followed by rule findings.

    Raises:
        NotFoundError: If root does not exist or is not a directory.
        OSError: If root cannot be listed. An unreadable AGENT.md is a fatal finding instead.
    """
    start_time = time.time()
    config = config or get_config()
    level = level or config.default_level or LEVEL_MINIMUM

    scan = scan_layout(Path(root), config)

    document: Optional[AgentDocument] = None
    entry = scan.entry(EntryKind.AGENT_MD)
    if entry is not None:
        try:
            document = load_agent_document(scan.root / entry.path)
        except OSError as e:
            logger.debug("Cannot read %s: %s", entry.path, e)
            result = ValidationResult()
            result.add_fatal(
                "AGENT_MD",
                f"cannot read AGENT.md: {e.strerror or e}",
                "Make AGENT.md readable by the validating user",
                file_path=AGENT_MD,
            )
            return result

    result = ValidationResult()
    rule_result = check_agent(scan, document, level, config)
    if document is not None and not rule_result.is_fatal():
        result.findings.extend(document.findings)
    result.extend(rule_result)

    logger.debug(
        "Validated %s at %s level in %.3fs: %d errors, %d warnings",
        root, level, time.time() - start_time, len(result.errors), len(result.warnings),
    )
    return result
