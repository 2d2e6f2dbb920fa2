"""
scanner.py - Read-only layout scan of a Micro Agent directory.

Classifies the top-level entries of the directory (one level only), then
walks tools/ and context/ into flat sets of relative file paths for the rule
checker. Walks follow directory symlinks but stop at cycles and at the
configured depth, recording a walk warning instead of failing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from microagent.agent.types import DirectoryEntry, EntryKind, LayoutScan
from microagent.config.validator_config import ValidatorConfig, get_config
from microagent.validator.errors import NotFoundError

logger = logging.getLogger(__name__)

AGENT_MD = "AGENT.md"
TOOLS_DIR = "tools"
CONTEXT_DIR = "context"
WORKSPACE_DIR = "workspace"
ENV_EXAMPLE = ".env.example"

# name -> (kind, must be a directory)
_TOP_LEVEL = {
    AGENT_MD: (EntryKind.AGENT_MD, False),
    TOOLS_DIR: (EntryKind.TOOLS_DIR, True),
    CONTEXT_DIR: (EntryKind.CONTEXT_DIR, True),
    WORKSPACE_DIR: (EntryKind.WORKSPACE_DIR, True),
    ENV_EXAMPLE: (EntryKind.ENV_EXAMPLE, False),
}


def classify_entry(path: Path) -> DirectoryEntry:
    """Classify one top-level entry by name and kind."""
    is_dir = path.is_dir()
    kind = EntryKind.OTHER
    expected = _TOP_LEVEL.get(path.name)
    if expected is not None and expected[1] == is_dir:
        kind = expected[0]
    return DirectoryEntry(
        path=path.name,
        is_dir=is_dir,
        kind=kind,
        required=kind == EntryKind.AGENT_MD,
    )


class _Walker:
    """Collect files under one directory, guarding against symlink cycles."""

    def __init__(self, root: Path, config: ValidatorConfig):
        self.root = root
        self.config = config
        self.files: List[Path] = []
        self.warnings: List[str] = []
        self._ancestors: List[str] = []

    def _ignored(self, path: Path) -> bool:
        if path.name.startswith("."):
            return True
        if path.name in self.config.ignored_names:
            return True
        return path.suffix in self.config.ignored_suffixes

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def walk(self, directory: Path, depth: int = 0) -> None:
        real = os.path.realpath(directory)
        # Only an ancestor on the current path forms a cycle
        if real in self._ancestors:
            self.warnings.append(f"symlink cycle at {self._rel(directory)}/ (skipped)")
            return

        if depth >= self.config.max_walk_depth:
            self.warnings.append(
                f"{self._rel(directory)}/ exceeds max walk depth {self.config.max_walk_depth} (skipped)"
            )
            return

        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            self.warnings.append(f"cannot list {self._rel(directory)}/: {e.strerror or e}")
            return

        self._ancestors.append(real)
        try:
            for child in children:
                if self._ignored(child):
                    continue
                if child.is_dir():
                    self.walk(child, depth + 1)
                elif child.is_file():
                    self.files.append(child)
                elif child.is_symlink():
                    self.warnings.append(f"broken symlink {self._rel(child)}")
        finally:
            self._ancestors.pop()


def _walk(root: Path, name: str, config: ValidatorConfig) -> Tuple[List[Path], List[str]]:
    walker = _Walker(root, config)
    walker.walk(root / name)
    return walker.files, walker.warnings


def scan_layout(root: Path, config: Optional[ValidatorConfig] = None) -> LayoutScan:
    """Scan an agent directory.

    Args:
        root: Directory to scan.
        config: Validator settings (bundled config if omitted).

    Returns:
        LayoutScan with classified top-level entries, tool scripts and context files.

    Raises:
        NotFoundError: If root does not exist or is not a directory.
    """
    config = config or get_config()
    root = Path(root)
    if not root.exists():
        raise NotFoundError(f"Agent directory not found: {root}")
    if not root.is_dir():
        raise NotFoundError(f"Not a directory: {root}")

    entries = tuple(classify_entry(p) for p in sorted(root.iterdir(), key=lambda p: p.name))
    kinds = {e.kind for e in entries}

    tool_scripts: List[str] = []
    non_executable: List[str] = []
    context_files: List[str] = []
    walk_warnings: List[str] = []

    if EntryKind.TOOLS_DIR in kinds:
        files, warnings = _walk(root, TOOLS_DIR, config)
        walk_warnings.extend(warnings)
        for path in files:
            rel = path.relative_to(root).as_posix()
            tool_scripts.append(rel)
            if not os.access(path, os.X_OK):
                non_executable.append(rel)

    if EntryKind.CONTEXT_DIR in kinds:
        files, warnings = _walk(root, CONTEXT_DIR, config)
        walk_warnings.extend(warnings)
        for path in files:
            if os.access(path, os.R_OK):
                context_files.append(path.relative_to(root).as_posix())
            else:
                walk_warnings.append(f"unreadable context file {path.relative_to(root).as_posix()}")

    logger.debug(
        "Scanned %s: %d entries, %d tool scripts, %d context files",
        root, len(entries), len(tool_scripts), len(context_files),
    )

    return LayoutScan(
        root=root,
        entries=entries,
        tool_scripts=frozenset(tool_scripts),
        non_executable_scripts=frozenset(non_executable),
        context_files=frozenset(context_files),
        walk_warnings=tuple(walk_warnings),
    )
