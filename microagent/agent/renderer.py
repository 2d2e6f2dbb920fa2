"""Render AGENT.md text from a parsed section tree or from declarations."""

from __future__ import annotations

from typing import Iterable, List, Optional

from microagent.agent.types import (
    AgentDocument,
    Section,
    ToolDeclaration,
    WorkflowDeclaration,
    WorkspaceEntry,
)


def _render_section(section: Section, out: List[str]) -> None:
    if section.level:
        out.append(f"{'#' * section.level} {section.title}")
    out.extend(section.lines)
    for child in section.children:
        _render_section(child, out)


def render_sections(document: AgentDocument) -> str:
    """Re-serialize a parsed document's section tree."""
    out: List[str] = []
    for section in document.sections:
        _render_section(section, out)
    return "\n".join(out) + "\n"


def build_agent_md(
    title: str,
    identity: str = "",
    tools: Iterable[ToolDeclaration] = (),
    workspace: Iterable[WorkspaceEntry] = (),
    workflows: Iterable[WorkflowDeclaration] = (),
    env_vars: Iterable[str] = (),
    heading_level: int = 2,
) -> str:
    """Synthesize a canonical AGENT.md.

    Sections with nothing to declare are omitted, so parsing the result
    recognizes exactly the non-empty categories.
    """
    h2 = "#" * heading_level
    h3 = "#" * (heading_level + 1)
    out: List[str] = [f"# {title}", ""]
    if identity:
        out += [identity, ""]

    tools = list(tools)
    if tools:
        out += [f"{h2} Tools", ""]
        for tool in tools:
            out += [f"{h3} {tool.name}", ""]
            if tool.description:
                out += [tool.description, ""]
            if tool.invocation:
                out += ["```bash", tool.invocation, "```", ""]
            documented = [f for f in tool.flags if not tool.invocation or f not in tool.invocation]
            for flag in documented:
                out.append(f"- `{flag}`")
            if documented:
                out.append("")

    workspace = list(workspace)
    if workspace:
        out += [f"{h2} Workspace", ""]
        for entry in workspace:
            line = f"- `{entry.path}`"
            if entry.description:
                line += f" — {entry.description}"
            out.append(line)
        out.append("")

    workflows = list(workflows)
    if workflows:
        out += [f"{h2} Workflows", ""]
        for workflow in workflows:
            out += [f"{h3} {workflow.name}", ""]
            for number, step in enumerate(workflow.steps, start=1):
                out.append(f"{number}. {step.text}")
            out.append("")

    env_vars = list(env_vars)
    if env_vars:
        out += [f"{h2} Environment", "", "```bash"]
        out += [f"export {name}=" for name in env_vars]
        out += ["```", ""]

    return "\n".join(out).rstrip("\n") + "\n"


def section_outline(document: AgentDocument, section: Optional[Section] = None) -> List[tuple]:
    """Nested (title, outline-of-children) pairs, for structural comparison."""
    children = document.sections if section is None else section.children
    return [(c.title, section_outline(document, c)) for c in children]
