"""
parser.py - Parse AGENT.md into a tagged section tree and declarations.

AGENT.md has no schema: no frontmatter, no required headings. The parser
therefore never fails. It splits the text on ATX headings into nested
Sections, tags the four canonical sections (Tools, Workspace, Workflows,
Environment), extracts declarations from them, and records a PARSE warning
for every construct it cannot classify.

Grammar:
    heading        up to 3 spaces, 1-6 '#', whitespace, title, optional closing '#'s
    code block     ``` or ~~~ fence, closed by a bare run (no info string) of the same char, same or longer,
                   or lines indented 4+ spaces / tab after a blank line, outside a list
    list item      '-', '*' or '+' then whitespace
    ordered item   digits, '.' or ')', whitespace
    continuation   indented non-blank line after a list item, joined to that item

Canonical sections are recognized at the top level or as direct children of
an opaque top-level section, so both of these shapes work:

    ## Tools                # Research Agent
                            ## Tools
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from microagent.agent.types import (
    CANONICAL_SECTIONS,
    AgentDocument,
    Section,
    SectionKind,
    ToolDeclaration,
    WorkflowDeclaration,
    WorkflowStep,
    WorkspaceEntry,
)
from microagent.validator.errors import Finding, Severity

logger = logging.getLogger(__name__)

PARSE_RULE = "PARSE"

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})")
_FENCE_CLOSE_RE = re.compile(r"^\s*(`{3,}|~{3,})\s*$")
_BULLET_RE = re.compile(r"^\s*[-*+][ \t]+(.*)$")
_ORDERED_RE = re.compile(r"^\s*\d{1,9}[.)][ \t]+(.*)$")
_INDENTED_CODE_RE = re.compile(r"^(?: {4}|\t)")
_TICK_RE = re.compile(r"`([^`]+)`")
_WORKSPACE_ITEM_RE = re.compile(r"^`([^`]+)`\s*(?:(?:—|–|--|-|:)\s*)?(.*)$")
_FLAG_RE = re.compile(r"(?<![\w-])(--?[A-Za-z][\w-]*)")
_FLAG_ITEM_RE = re.compile(r"^`(--?[A-Za-z][\w-]*)")
_ENV_ASSIGN_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=")
_NAME_SEPARATORS = (" — ", " – ", " - ", ": ")


@dataclass
class Block:
    """One classified piece of section content."""
    kind: str  # "text" | "bullet" | "ordered" | "code"
    text: str
    line_number: int


def normalize_title(title: str) -> str:
    """Lower-case a heading title with back-ticks and trailing punctuation removed."""
    return title.replace("`", "").strip().rstrip(":.").strip().lower()


def _strip_ticks(text: str) -> str:
    return text.replace("`", "").strip()


def _closes_fence(line: str, fence: str) -> bool:
    """A closing fence is a bare run of the opening char, at least as long."""
    match = _FENCE_CLOSE_RE.match(line)
    return match is not None and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence)


class _Parser:
    def __init__(self, text: str, source: str):
        self.lines = text.splitlines()
        self.doc = AgentDocument(source=source)

    def warn(self, message: str, fix_action: str, line_number: Optional[int] = None) -> None:
        self.doc.findings.append(
            Finding(
                Severity.WARNING,
                PARSE_RULE,
                message,
                fix_action,
                file_path=self.doc.source,
                line_number=line_number,
            )
        )

    # ------------------------------------------------------------------
    # Section tree
    # ------------------------------------------------------------------

    def build_tree(self) -> List[Section]:
        preamble = Section(level=0, title="", line_number=0)
        top: List[Section] = []
        stack: List[Section] = []
        current = preamble
        fence: Optional[str] = None
        fence_line = 0

        for line_number, line in enumerate(self.lines, start=1):
            fence_match = _FENCE_RE.match(line)
            if fence is not None:
                if _closes_fence(line, fence):
                    fence = None
                current.lines.append(line)
                continue
            if fence_match:
                fence = fence_match.group(1)
                fence_line = line_number
                current.lines.append(line)
                continue

            heading = _HEADING_RE.match(line)
            if heading is None:
                current.lines.append(line)
                continue

            section = Section(level=len(heading.group(1)), title=heading.group(2).strip(), line_number=line_number)
            while stack and stack[-1].level >= section.level:
                stack.pop()
            if stack:
                stack[-1].children.append(section)
            else:
                top.append(section)
            stack.append(section)
            current = section

        if fence is not None:
            self.warn(
                "unclosed code fence swallows the rest of the file",
                f"Close the code block opened with {fence}",
                fence_line,
            )
        if any(line.strip() for line in preamble.lines):
            top.insert(0, preamble)
        return top

    def recognize(self, sections: List[Section]) -> None:
        for section in sections:
            if section.level == 0:
                continue
            if not self._tag(section):
                for child in section.children:
                    self._tag(child)

    def _tag(self, section: Section) -> bool:
        kind = CANONICAL_SECTIONS.get(normalize_title(section.title))
        if kind is None:
            return False
        if kind in self.doc.recognized:
            self.warn(
                f"duplicate '{section.title}' section ignored",
                f"Merge the content into the first '{section.title}' section",
                section.line_number,
            )
            return True
        section.kind = kind
        self.doc.recognized.append(kind)
        return True

    # ------------------------------------------------------------------
    # Content blocks
    # ------------------------------------------------------------------

    def blocks(self, section: Section, descend: bool = False) -> Iterator[Block]:
        """Classify a section's own lines (and optionally its descendants')."""
        yield from self._classify(section.lines, section.content_start)
        if descend:
            for child in section.children:
                yield from self.blocks(child, descend=True)

    def _classify(self, lines: List[str], first_line: int) -> Iterator[Block]:
        pending: Optional[Block] = None
        code: List[str] = []
        fence: Optional[str] = None
        fence_line = 0
        prev_blank = True

        for offset, line in enumerate(lines):
            line_number = first_line + offset
            fence_match = _FENCE_RE.match(line)

            if fence is not None:
                if _closes_fence(line, fence):
                    yield Block("code", "\n".join(code), fence_line)
                    code = []
                    fence = None
                    prev_blank = False
                else:
                    code.append(line)
                continue

            if fence_match:
                if pending is not None:
                    yield pending
                    pending = None
                fence = fence_match.group(1)
                fence_line = line_number + 1
                continue

            if not line.strip():
                prev_blank = True
                if pending is not None and pending.kind in ("text", "code"):
                    yield pending
                    pending = None
                continue

            bullet = _BULLET_RE.match(line)
            ordered = _ORDERED_RE.match(line)
            indented = line[:1] in (" ", "\t")
            in_list = pending is not None and pending.kind in ("bullet", "ordered")

            if pending is not None and pending.kind == "code" and _INDENTED_CODE_RE.match(line):
                pending.text += "\n" + line.strip()
            elif in_list and indented and not bullet and not ordered:
                pending.text += " " + line.strip()
            elif bullet or ordered:
                if pending is not None:
                    yield pending
                kind = "bullet" if bullet else "ordered"
                pending = Block(kind, (bullet or ordered).group(1).strip(), line_number)
            elif _INDENTED_CODE_RE.match(line) and prev_blank and not in_list:
                if pending is not None:
                    yield pending
                pending = Block("code", line.strip(), line_number)
            elif pending is not None and pending.kind == "text" and not prev_blank:
                pending.text += " " + line.strip()
            else:
                if pending is not None:
                    yield pending
                pending = Block("text", line.strip(), line_number)
            prev_blank = False

        if fence is not None:
            yield Block("code", "\n".join(code), fence_line)
        elif pending is not None:
            yield pending

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def parse_tools(self, section: Section) -> None:
        for block in self._classify(section.lines, section.content_start):
            if block.kind == "code":
                self.warn(
                    "code block in Tools section outside a tool heading is ignored",
                    "Move the command under a '### <tool name>' heading",
                    block.line_number,
                )
        if not section.children:
            self.warn(
                "Tools section declares no tools",
                "Add one sub-heading per tool with its invocation in a code block",
                section.line_number,
            )
        for child in section.children:
            self.doc.tools.append(self._tool(child))

    def _tool(self, section: Section) -> ToolDeclaration:
        name = _strip_ticks(section.title)
        for separator in _NAME_SEPARATORS:
            if separator in name:
                name = name.split(separator, 1)[0].strip()
                break

        invocation: Optional[str] = None
        invocation_line = 0
        description: List[str] = []
        flags: List[str] = []

        for block in self.blocks(section, descend=True):
            if block.kind == "code":
                if invocation is None:
                    invocation, invocation_line = _first_command(block)
                continue
            if block.kind == "bullet":
                flag = _FLAG_ITEM_RE.match(block.text)
                if flag:
                    flags.append(flag.group(1))
                    continue
            description.append(block.text)

        if invocation is None:
            self.warn(
                f"tool '{name}' has no invocation line",
                f"Add a code block with the command that runs '{name}'",
                section.line_number,
            )
        else:
            flags = _FLAG_RE.findall(invocation) + flags

        return ToolDeclaration(
            name=name,
            description=" ".join(description).strip(),
            invocation=invocation,
            flags=tuple(dict.fromkeys(flags)),
            line_number=section.line_number,
            invocation_line=invocation_line,
        )

    def parse_workspace(self, section: Section) -> None:
        for block in self.blocks(section, descend=True):
            if block.kind not in ("bullet", "ordered"):
                continue
            match = _WORKSPACE_ITEM_RE.match(block.text)
            if match is None:
                self.warn(
                    "workspace item without a back-tick quoted path skipped",
                    "Write workspace items as: - `workspace/path` — description",
                    block.line_number,
                )
                continue
            self.doc.workspace.append(
                WorkspaceEntry(
                    path=match.group(1).strip(),
                    description=match.group(2).strip(),
                    line_number=block.line_number,
                )
            )

    def parse_workflows(self, section: Section) -> None:
        for block in self._classify(section.lines, section.content_start):
            if block.kind == "ordered":
                self.warn(
                    "numbered steps outside a workflow heading are ignored",
                    "Put each workflow under its own '### <workflow name>' heading",
                    block.line_number,
                )
                break
        for child in section.children:
            steps = tuple(
                WorkflowStep(
                    text=block.text,
                    line_number=block.line_number,
                    references=tuple(t.strip() for t in _TICK_RE.findall(block.text)),
                )
                for block in self.blocks(child, descend=True)
                if block.kind == "ordered"
            )
            name = _strip_ticks(child.title)
            if not steps:
                self.warn(
                    f"workflow '{name}' has no numbered steps",
                    "List the workflow steps as a numbered list",
                    child.line_number,
                )
            self.doc.workflows.append(WorkflowDeclaration(name=name, steps=steps, line_number=child.line_number))

    def parse_environment(self, section: Section) -> None:
        for block in self.blocks(section, descend=True):
            if block.kind != "code":
                continue
            for line in block.text.splitlines():
                match = _ENV_ASSIGN_RE.match(line)
                if match and match.group(1) not in self.doc.env_vars:
                    self.doc.env_vars.append(match.group(1))

    def parse(self) -> AgentDocument:
        self.doc.sections = self.build_tree()
        self.recognize(self.doc.sections)

        handlers = {
            SectionKind.TOOLS: self.parse_tools,
            SectionKind.WORKSPACE: self.parse_workspace,
            SectionKind.WORKFLOWS: self.parse_workflows,
            SectionKind.ENVIRONMENT: self.parse_environment,
        }
        for kind in list(self.doc.recognized):
            section = self.doc.section(kind)
            if section is not None:
                handlers[kind](section)

        logger.debug(
            "Parsed %s: %d sections, %d tools, %d workspace entries, %d workflows, %d env vars",
            self.doc.source,
            len(self.doc.sections),
            len(self.doc.tools),
            len(self.doc.workspace),
            len(self.doc.workflows),
            len(self.doc.env_vars),
        )
        return self.doc


def _first_command(block: Block) -> Tuple[Optional[str], int]:
    """Return the first command of a code block and its line number.

    Blank lines and '#' comments are skipped, a leading '$ ' prompt is
    removed, and backslash continuations are joined.
    """
    parts: List[str] = []
    start = 0
    for offset, raw in enumerate(block.text.splitlines()):
        line = raw.strip()
        if not parts:
            if not line or line.startswith("#"):
                continue
            if line.startswith("$ "):
                line = line[2:].strip()
            start = block.line_number + offset
        if line.endswith("\\"):
            parts.append(line[:-1].strip())
            continue
        parts.append(line)
        break
    if not parts:
        return None, 0
    return " ".join(p for p in parts if p), start


def parse_agent_md(text: str, source: str = "AGENT.md") -> AgentDocument:
    """Parse AGENT.md text.

    Never raises on malformed markdown; unclassifiable constructs become
    PARSE warnings in ``AgentDocument.findings``.
    """
    return _Parser(text, source).parse()
