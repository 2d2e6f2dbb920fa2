"""
rules.py - Conformance rules for a scanned and parsed Micro Agent.

Rules run once each, in a fixed order, and every failure becomes a Finding.
Only a missing AGENT.md is fatal; it short-circuits the remaining rules.

| Rule            | Severity | Checks                                                   |
|-----------------|----------|----------------------------------------------------------|
| AGENT_MD        | fatal    | AGENT.md exists                                          |
| TOOLS_DIR       | error    | tools/ exists when any tool is documented                |
| TOOL_SCRIPT     | error    | each tool invocation names a script under tools/         |
| CONTEXT_REF     | warning  | workflow `context/...` references exist                  |
| ENV_EXAMPLE     | warning  | documented env vars come with a .env.example             |
| SECTIONS        | warning  | at least one of Tools/Workspace/Workflows/Environment    |
| WALK            | warning  | tools/ and context/ walks were complete                  |
| TOOL_DUPLICATE  | warning  | tool names are unique                                    |
| TOOL_EXECUTABLE | warning  | directly invoked scripts have the executable bit         |
| TOOL_REF        | warning  | workflow `tools/...` references exist                    |
| WORKSPACE_PATH  | warning  | Workspace entries live under workspace/                  |
| ENV_VARS        | warning  | documented env vars appear in .env.example               |
| ENV_EXAMPLE_VALUE | warning | .env.example leaves values blank                        |
| LEVEL           | error    | complete level: context/, workspace/, README.md exist    |

Workflow references to workspace/ are never checked: the agent creates that
directory lazily at runtime.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import posixpath
import re
import shlex
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple

from microagent.agent.scanner import AGENT_MD, ENV_EXAMPLE
from microagent.agent.types import AgentDocument, EntryKind, LayoutScan, ToolDeclaration
from microagent.config.validator_config import ValidatorConfig, get_config
from microagent.validator.errors import ValidationResult

logger = logging.getLogger(__name__)

LEVEL_MINIMUM = "minimum"
LEVEL_COMPLETE = "complete"
LEVELS = (LEVEL_MINIMUM, LEVEL_COMPLETE)

README_MD = "README.md"

_ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")
_ENV_LINE_RE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_PLACEHOLDER_RE = re.compile(r"<[^>]*>|\{[^}]*\}")


# ============================================================================
# Script path extraction
# ============================================================================


def _normalize_path(token: str) -> str:
    path = token.replace("\\", "/")
    idx = path.find("/tools/")
    if idx >= 0 and not path.startswith("tools/"):
        path = path[idx + 1:]
    while path.startswith("./"):
        path = path[2:]
    return posixpath.normpath(path)


def _matches_interpreter(tokens: List[str], prefix: Tuple[str, ...]) -> bool:
    if len(tokens) < len(prefix):
        return False
    head = os.path.basename(tokens[0].replace("\\", "/"))
    # python3.12 matches python3
    if not re.fullmatch(re.escape(prefix[0]) + r"(?:[\d.]+)?(?:\.exe)?", head):
        return False
    return tuple(tokens[1:len(prefix)]) == prefix[1:]


def extract_script_path(invocation: str, config: Optional[ValidatorConfig] = None) -> Tuple[Optional[str], bool]:
    """Best-effort textual extraction of the script a tool invocation runs.

    Returns:
        (path, via_interpreter). path is None when no token looks like a script.
    """
    config = config or get_config()
    try:
        tokens = shlex.split(invocation)
    except ValueError:
        tokens = invocation.split()

    while tokens and _ASSIGNMENT_RE.match(tokens[0]):
        tokens.pop(0)
    if not tokens:
        return None, False

    extensions = config.script_extensions

    for prefix in config.interpreter_prefixes():
        if not _matches_interpreter(tokens, prefix):
            continue
        rest = tokens[len(prefix):]
        fallback: Optional[str] = None
        for i, token in enumerate(rest):
            if token == "-m" and i + 1 < len(rest):
                return _normalize_path(rest[i + 1].replace(".", "/") + ".py"), True
            if token.startswith("-"):
                continue
            if token.lower().endswith(extensions):
                return _normalize_path(token), True
            if fallback is None:
                fallback = token
        return (_normalize_path(fallback) if fallback else None), True

    for token in tokens:
        if token.lower().endswith(extensions):
            return _normalize_path(token), False

    if "/" in tokens[0]:
        return _normalize_path(tokens[0]), False
    return None, False


def resolve_script(path: str, tool_scripts: FrozenSet[str]) -> Optional[str]:
    """Return the scanned script path that ``path`` names, if any."""
    candidates = [path]
    if not path.startswith("tools/"):
        candidates.append(f"tools/{path}")
    for candidate in candidates:
        if candidate in tool_scripts:
            return candidate
    return None


def reference_exists(reference: str, files: Iterable[str]) -> bool:
    """True if a back-tick reference names a scanned file, a directory of them, or a pattern matching one."""
    path = _normalize_path(reference.split()[0]) if reference.split() else ""
    if not path or path == ".":
        return False
    files = list(files)
    if any(ch in path for ch in "*?[") or _PLACEHOLDER_RE.search(path):
        pattern = _PLACEHOLDER_RE.sub("*", path)
        return any(fnmatch.fnmatch(f, pattern) for f in files)
    if path in files:
        return True
    directory = path.rstrip("/") + "/"
    return any(f.startswith(directory) for f in files)


# ============================================================================
# .env.example
# ============================================================================


def read_env_example(path: Path) -> Tuple[List[Tuple[str, str, int]], List[Tuple[int, str]]]:
    """Parse .env.example.

    Returns:
        ([(name, value, line_number)], [(line_number, unparseable line)])
    """
    assignments: List[Tuple[str, str, int]] = []
    unparsed: List[Tuple[int, str]] = []
    text = path.read_text(encoding="utf-8", errors="replace")
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _ENV_LINE_RE.match(line)
        if match is None:
            unparsed.append((line_number, line))
            continue
        value = match.group(2).split(" #", 1)[0].strip().strip("'\"")
        assignments.append((match.group(1), value, line_number))
    return assignments, unparsed


# ============================================================================
# Rule checker
# ============================================================================


class RuleChecker:
    """
    Applies conformance rules to one scan and its parsed AGENT.md.

    Attributes:
        scan: Layout scan of the agent directory
        document: Parsed AGENT.md (None when AGENT.md is missing)
        level: Conformance level ("minimum" or "complete")
        config: Validator settings
    """

    def __init__(
        self,
        scan: LayoutScan,
        document: Optional[AgentDocument],
        level: str = LEVEL_MINIMUM,
        config: Optional[ValidatorConfig] = None,
    ):
        if level not in LEVELS:
            raise ValueError(f"Unknown conformance level {level!r} (expected one of {', '.join(LEVELS)})")
        self.scan = scan
        self.document = document
        self.level = level
        self.config = config or get_config()
        self.result = ValidationResult()
        self._source = document.source if document is not None else AGENT_MD

    def run(self) -> ValidationResult:
        """Run every rule in order and return the collected findings."""
        if not self.check_agent_md():
            return self.result

        self.check_tools_dir()
        self.check_tool_scripts()
        self.check_context_references()
        # Workflow references to workspace/ are intentionally unchecked.
        self.check_env_example()
        self.check_recognized_sections()

        self.check_walk()
        self.check_duplicate_tools()
        self.check_executable_scripts()
        self.check_tool_references()
        self.check_workspace_paths()
        self.check_env_example_contents()
        if self.level == LEVEL_COMPLETE:
            self.check_complete_level()

        logger.debug(
            "Rule check finished: %d errors, %d warnings",
            len(self.result.errors), len(self.result.warnings),
        )
        return self.result

    # ------------------------------------------------------------------
    # Rules 1-7
    # ------------------------------------------------------------------

    def check_agent_md(self) -> bool:
        if self.scan.has(EntryKind.AGENT_MD) and self.document is not None:
            return True
        self.result.add_fatal(
            "AGENT_MD",
            "AGENT.md is missing",
            "Create AGENT.md describing the agent's identity, tools and workflows",
            file_path=AGENT_MD,
        )
        return False

    def check_tools_dir(self) -> None:
        if not self.document.tools or self.scan.has(EntryKind.TOOLS_DIR):
            return
        names = ", ".join(t.name for t in self.document.tools)
        self.result.add_error(
            "TOOLS_DIR",
            f"tools/ directory is missing but AGENT.md documents tools: {names}",
            "Create tools/ with the documented scripts, or remove the Tools section",
            file_path="tools/",
        )

    def _script_for(self, tool: ToolDeclaration) -> Tuple[Optional[str], bool]:
        if not tool.invocation:
            return None, False
        return extract_script_path(tool.invocation, self.config)

    def check_tool_scripts(self) -> None:
        for tool in self.document.tools:
            if not tool.invocation:
                # Already reported by the parser
                continue
            path, _ = self._script_for(tool)
            if path is None:
                self.result.add_warning(
                    "TOOL_SCRIPT",
                    f"cannot determine which script tool '{tool.name}' runs from: {tool.invocation}",
                    "Start the invocation with the script path, e.g. python tools/<script>.py",
                    file_path=self._source,
                    line_number=tool.invocation_line or tool.line_number,
                )
                continue
            if resolve_script(path, self.scan.tool_scripts) is None:
                self.result.add_error(
                    "TOOL_SCRIPT",
                    f"tool references missing script: '{tool.name}' invokes {path}",
                    f"Add {path if path.startswith('tools/') else 'tools/' + path} or fix the invocation of '{tool.name}'",
                    file_path=self._source,
                    line_number=tool.invocation_line or tool.line_number,
                )

    def check_context_references(self) -> None:
        for workflow in self.document.workflows:
            for step in workflow.steps:
                for reference in step.references_under("context/"):
                    if reference_exists(reference, self.scan.context_files):
                        continue
                    self.result.add_warning(
                        "CONTEXT_REF",
                        f"workflow references missing context file: '{workflow.name}' step uses {reference}",
                        f"Add {reference.split()[0]} or update the workflow step",
                        file_path=self._source,
                        line_number=step.line_number,
                    )

    def check_env_example(self) -> None:
        if not self.document.env_vars or self.scan.has(EntryKind.ENV_EXAMPLE):
            return
        self.result.add_warning(
            "ENV_EXAMPLE",
            "environment variables documented but no .env.example provided",
            "Add .env.example with one blank assignment per variable: "
            + ", ".join(f"{name}=" for name in self.document.env_vars),
            file_path=ENV_EXAMPLE,
        )

    def check_recognized_sections(self) -> None:
        if self.document.has_recognized_sections:
            return
        self.result.add_warning(
            "SECTIONS",
            "AGENT.md has no recognized sections — agent may be under-specified",
            "Add at least one of: ## Tools, ## Workspace, ## Workflows, ## Environment",
            file_path=self._source,
        )

    # ------------------------------------------------------------------
    # Supplemental rules
    # ------------------------------------------------------------------

    def check_walk(self) -> None:
        for warning in self.scan.walk_warnings:
            self.result.add_warning(
                "WALK",
                warning,
                "Remove the symlink loop or flatten the directory",
            )

    def check_duplicate_tools(self) -> None:
        seen = set()
        for tool in self.document.tools:
            if tool.name in seen:
                self.result.add_warning(
                    "TOOL_DUPLICATE",
                    f"tool '{tool.name}' is documented more than once",
                    "Give each tool heading a unique name",
                    file_path=self._source,
                    line_number=tool.line_number,
                )
            seen.add(tool.name)

    def check_executable_scripts(self) -> None:
        for tool in self.document.tools:
            path, via_interpreter = self._script_for(tool)
            if path is None or via_interpreter:
                continue
            script = resolve_script(path, self.scan.tool_scripts)
            if script is not None and script in self.scan.non_executable_scripts:
                self.result.add_warning(
                    "TOOL_EXECUTABLE",
                    f"tool '{tool.name}' runs {script} directly but it is not executable",
                    f"chmod +x {script}, or prefix the invocation with its interpreter",
                    file_path=script,
                )

    def check_tool_references(self) -> None:
        for workflow in self.document.workflows:
            for step in workflow.steps:
                for reference in step.references_under("tools/"):
                    if reference_exists(reference, self.scan.tool_scripts):
                        continue
                    self.result.add_warning(
                        "TOOL_REF",
                        f"workflow references missing tool script: '{workflow.name}' step uses {reference}",
                        f"Add {reference.split()[0]} or update the workflow step",
                        file_path=self._source,
                        line_number=step.line_number,
                    )

    def check_workspace_paths(self) -> None:
        for entry in self.document.workspace:
            normalized = _normalize_path(entry.path)
            if normalized == "workspace" or normalized.startswith("workspace/"):
                continue
            self.result.add_warning(
                "WORKSPACE_PATH",
                f"workspace entry {entry.path} is not under workspace/",
                f"Rename to workspace/{entry.path.lstrip('./')}",
                file_path=self._source,
                line_number=entry.line_number,
            )

    def check_env_example_contents(self) -> None:
        entry = self.scan.entry(EntryKind.ENV_EXAMPLE)
        if entry is None:
            return
        path = self.scan.root / entry.path
        try:
            assignments, unparsed = read_env_example(path)
        except OSError as e:
            self.result.add_warning(
                "ENV_EXAMPLE",
                f"cannot read .env.example: {e.strerror or e}",
                "Make .env.example readable",
                file_path=ENV_EXAMPLE,
            )
            return

        for line_number, line in unparsed:
            self.result.add_warning(
                "PARSE",
                f"unrecognized .env.example line: {line}",
                "Use one NAME= assignment per line",
                file_path=ENV_EXAMPLE,
                line_number=line_number,
            )

        listed = {name for name, _, _ in assignments}
        for name in self.document.env_vars:
            if name not in listed:
                self.result.add_warning(
                    "ENV_VARS",
                    f"environment variable {name} is documented but missing from .env.example",
                    f"Add '{name}=' to .env.example",
                    file_path=ENV_EXAMPLE,
                )

        for name, value, line_number in assignments:
            if value:
                self.result.add_warning(
                    "ENV_EXAMPLE_VALUE",
                    f".env.example assigns a value to {name}; values must be left blank",
                    f"Replace the line with '{name}='",
                    file_path=ENV_EXAMPLE,
                    line_number=line_number,
                )

    def check_complete_level(self) -> None:
        required = (
            ("context/", self.scan.has(EntryKind.CONTEXT_DIR), "Create context/ with reference material"),
            ("workspace/", self.scan.has(EntryKind.WORKSPACE_DIR), "Create workspace/ (a .gitkeep placeholder is enough)"),
            (README_MD, self.scan.has_name(README_MD), "Add README.md describing the agent for humans"),
        )
        for name, present, fix_action in required:
            if not present:
                self.result.add_error(
                    "LEVEL",
                    f"complete conformance requires {name}",
                    fix_action,
                    file_path=name,
                )


def check_agent(
    scan: LayoutScan,
    document: Optional[AgentDocument],
    level: str = LEVEL_MINIMUM,
    config: Optional[ValidatorConfig] = None,
) -> ValidationResult:
    """Apply the conformance rules to a scan and its parsed AGENT.md."""
    return RuleChecker(scan, document, level, config).run()
