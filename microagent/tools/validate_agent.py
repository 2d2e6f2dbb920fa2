#!/usr/bin/env python3
"""
validate_agent.py - Micro Agent conformance validator

Checks that a directory follows the Micro Agent convention:

- AGENT.md exists (fatal if missing: nothing else is checked)
- tools/ exists when AGENT.md documents tools
- Every documented tool invocation names a script under tools/
- Workflow steps that cite `context/...` files point at real files
- Documented environment variables come with a .env.example
- AGENT.md has at least one of Tools / Workspace / Workflows / Environment

With --level complete, context/, workspace/ and README.md are also required.

## CLI Usage

  microagent-validate path/to/agent
  microagent-validate path/to/agent --level complete
  microagent-validate path/to/agent --format json
  microagent-validate path/to/agent --strict --hints

## Exit Codes

0   All validation checks passed
1   Validation failed (at least one error-level finding)
2   Invocation failure (missing or unreadable path, unreadable config)

## Report Format

One line per finding:
  [ERROR] TOOL_SCRIPT AGENT.md:14: tool references missing script: 'search_videos' invokes tools/youtube.py
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from microagent import __version__
from microagent.config.validator_config import VALID_LEVELS, get_config, load_config
from microagent.report.emitter import FORMATS, emit_report
from microagent.validator.errors import ConfigError, NotFoundError, ValidationResult
from microagent.validator.runner import validate_agent_dir

logger = logging.getLogger(__name__)

# Exit codes per contract
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_FATAL_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="microagent-validate",
        description="Micro Agent validator - check a directory against the Micro Agent convention",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - All validation checks passed
  1 - Validation failed (error-level findings)
  2 - Invocation failure (missing or unreadable path, unreadable config)

Examples:
  microagent-validate agents/youtube
  microagent-validate agents/youtube --level complete
  microagent-validate agents/youtube --format json
        """,
    )

    parser.add_argument(
        "path",
        help="Agent directory to validate",
    )

    parser.add_argument(
        "--level",
        choices=list(VALID_LEVELS),
        default=None,
        help="Conformance level (default: minimum, or MICROAGENT_LEVEL)",
    )

    parser.add_argument(
        "--format",
        dest="fmt",
        choices=list(FORMATS),
        default="text",
        help="Report format (default: text)",
    )

    parser.add_argument(
        "--hints",
        action="store_true",
        help="Include a Fix: line under each finding in text reports",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as failures",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Alternate validator YAML config",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output with timing and validation steps",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"microagent-validate {__version__}",
    )

    return parser


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("microagent").setLevel(logging.DEBUG if debug else logging.WARNING)


def _write(report: str, fmt: str, ok: bool) -> None:
    """Structured reports go to stdout; text reports go to stderr on failure."""
    stream = sys.stdout if fmt != "text" or ok else sys.stderr
    print(report, file=stream)


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, validate, print the report, and return the exit code."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)

    try:
        config = load_config(args.config) if args.config else get_config()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    level = args.level or config.default_level

    try:
        result = validate_agent_dir(Path(args.path), level=level, config=config)
    except OSError as e:
        if isinstance(e, NotFoundError):
            message = str(e)
            fix_action = "Pass the path of an existing agent directory"
        else:
            message = f"cannot read agent directory {args.path}: {e.strerror or e}"
            fix_action = "Make the agent directory readable by the validating user"
            if args.debug:
                traceback.print_exc(file=sys.stderr)
        result = ValidationResult()
        result.add_fatal("ROOT", message, fix_action, file_path=args.path)
        _write(emit_report(result, level, args.fmt, target=args.path, strict=args.strict, hints=args.hints), args.fmt, False)
        return EXIT_FATAL_ERROR

    ok = result.passed(strict=args.strict)
    _write(emit_report(result, level, args.fmt, target=args.path, strict=args.strict, hints=args.hints), args.fmt, ok)
    return EXIT_SUCCESS if ok else EXIT_VALIDATION_FAILED


def main() -> None:
    """CLI entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
