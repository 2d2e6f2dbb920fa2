"""
microagent/agent - Model of a Micro Agent directory.

- scanner: read-only layout scan (top-level entries, tools/ and context/ files)
- parser: AGENT.md -> tagged section tree + tool/workspace/workflow declarations
- renderer: section tree or declarations -> AGENT.md text
- types: dataclasses shared by all of the above

Usage:
    from microagent.agent import parse_agent_md, scan_layout

    scan = scan_layout(Path("agents/youtube"))
    document = parse_agent_md((scan.root / "AGENT.md").read_text(encoding="utf-8"))
"""

from .types import (
    AgentDocument,
    DirectoryEntry,
    EntryKind,
    LayoutScan,
    Section,
    SectionKind,
    ToolDeclaration,
    WorkflowDeclaration,
    WorkflowStep,
    WorkspaceEntry,
)

from .parser import parse_agent_md

from .renderer import build_agent_md, render_sections

from .scanner import scan_layout

__all__ = [
    "AgentDocument",
    "DirectoryEntry",
    "EntryKind",
    "LayoutScan",
    "Section",
    "SectionKind",
    "ToolDeclaration",
    "WorkflowDeclaration",
    "WorkflowStep",
    "WorkspaceEntry",
    "parse_agent_md",
    "build_agent_md",
    "render_sections",
    "scan_layout",
]
