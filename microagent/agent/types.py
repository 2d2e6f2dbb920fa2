"""
types.py - Dataclasses for the Micro Agent folder convention.

These types are produced fresh on every validation run: the layout scanner
emits a LayoutScan, the AGENT.md parser emits an AgentDocument, and the rule
checker cross-references the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple

from microagent.validator.errors import Finding


class EntryKind(Enum):
    """Classification of a top-level entry in an agent directory."""
    AGENT_MD = "agent_md"
    TOOLS_DIR = "tools_dir"
    CONTEXT_DIR = "context_dir"
    WORKSPACE_DIR = "workspace_dir"
    ENV_EXAMPLE = "env_example"
    OTHER = "other"


class SectionKind(Enum):
    """Tag for a parsed AGENT.md section."""
    TOOLS = "tools"
    WORKSPACE = "workspace"
    WORKFLOWS = "workflows"
    ENVIRONMENT = "environment"
    OPAQUE = "opaque"


# Canonical section titles, lower-cased
CANONICAL_SECTIONS = {
    "tools": SectionKind.TOOLS,
    "workspace": SectionKind.WORKSPACE,
    "workflows": SectionKind.WORKFLOWS,
    "environment": SectionKind.ENVIRONMENT,
}


# =============================================================================
# Layout Scan
# =============================================================================


@dataclass(frozen=True)
class DirectoryEntry:
    """One top-level entry of the scanned directory."""
    path: str  # Relative to the scan root, POSIX separators
    is_dir: bool
    kind: EntryKind = EntryKind.OTHER
    required: bool = False


@dataclass(frozen=True)
class LayoutScan:
    """Immutable snapshot of one directory scan."""
    root: Path
    entries: Tuple[DirectoryEntry, ...] = ()
    tool_scripts: FrozenSet[str] = frozenset()
    non_executable_scripts: FrozenSet[str] = frozenset()
    context_files: FrozenSet[str] = frozenset()
    walk_warnings: Tuple[str, ...] = ()

    def has(self, kind: EntryKind) -> bool:
        return any(e.kind == kind for e in self.entries)

    def has_name(self, name: str) -> bool:
        return any(e.path == name for e in self.entries)

    def entry(self, kind: EntryKind) -> Optional[DirectoryEntry]:
        for e in self.entries:
            if e.kind == kind:
                return e
        return None


# =============================================================================
# AGENT.md Structure
# =============================================================================


@dataclass
class Section:
    """A heading and everything under it until the next heading of equal or lesser level.

    Level 0 is reserved for the preamble before the first heading.
    ``lines`` holds the section's own raw content; nested headings become
    ``children``.
    """
    level: int
    title: str
    line_number: int = 0
    lines: List[str] = field(default_factory=list)
    children: List["Section"] = field(default_factory=list)
    kind: SectionKind = SectionKind.OPAQUE

    @property
    def content_start(self) -> int:
        """Source line number of ``lines[0]``."""
        return self.line_number + 1 if self.level else 1

    def child_titles(self) -> List[str]:
        return [c.title for c in self.children]


@dataclass(frozen=True)
class ToolDeclaration:
    """A tool documented under the Tools section."""
    name: str
    description: str = ""
    invocation: Optional[str] = None
    flags: Tuple[str, ...] = ()
    line_number: int = 0
    invocation_line: int = 0


@dataclass(frozen=True)
class WorkspaceEntry:
    """A `path` — description item under the Workspace section."""
    path: str
    description: str = ""
    line_number: int = 0


@dataclass(frozen=True)
class WorkflowStep:
    """One ordered step of a workflow."""
    text: str
    line_number: int = 0
    references: Tuple[str, ...] = ()  # Back-tick quoted tokens

    def references_under(self, prefix: str) -> Tuple[str, ...]:
        return tuple(r for r in self.references if r.startswith(prefix))


@dataclass(frozen=True)
class WorkflowDeclaration:
    """A named workflow with its ordered steps."""
    name: str
    steps: Tuple[WorkflowStep, ...] = ()
    line_number: int = 0


@dataclass
class AgentDocument:
    """Everything the parser could extract from one AGENT.md."""
    source: str = "AGENT.md"
    sections: List[Section] = field(default_factory=list)
    tools: List[ToolDeclaration] = field(default_factory=list)
    workspace: List[WorkspaceEntry] = field(default_factory=list)
    workflows: List[WorkflowDeclaration] = field(default_factory=list)
    env_vars: List[str] = field(default_factory=list)
    recognized: List[SectionKind] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def has_recognized_sections(self) -> bool:
        return bool(self.recognized)

    def section(self, kind: SectionKind) -> Optional[Section]:
        """Return the recognized section of the given kind, if any."""
        for top in self.sections:
            if top.kind == kind:
                return top
            for child in top.children:
                if child.kind == kind:
                    return child
        return None
