"""Constrained markdown → layout-node renderer (deterministic).

The same node stream feeds the PDF, Word and HTML painters, so every surface
shows the same structure. Supported, line by line:

- blank line → spacer; ``---`` / ``***`` → rule
- ``#`` / ``###`` / ``####`` → headings; ``##`` → dark uppercase banner
- legacy ``Group Name:`` lines (< 80 chars) → banner
- a line that is entirely ``**text**`` → bold sub-heading
- ``-`` / ``*`` / ``•`` bullets, ``N.`` numbered items (number kept verbatim)
- GitHub tables (``|`` row followed by a ``|---|`` separator)
- anything else → paragraph

Inline: ``**bold**`` becomes bold runs; ``*italic*`` and `` `code` `` are
flattened to plain text; ``***x***`` collapses to bold.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Layout nodes
# ---------------------------------------------------------------------------


class TextRun(BaseModel):
    text: str
    bold: bool = False


class _RunsMixin(BaseModel):
    runs: list[TextRun] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.runs)


class SpacerNode(BaseModel):
    kind: Literal["spacer"] = "spacer"
    height: int = 5


class RuleNode(BaseModel):
    kind: Literal["rule"] = "rule"


class HeadingNode(BaseModel):
    kind: Literal["heading"] = "heading"
    level: int = Field(..., description="1, 3 or 4; level 2 renders as a banner")
    text: str


class BannerNode(BaseModel):
    """Filled dark block with white uppercase text (``##`` and legacy ``Name:``)."""
    kind: Literal["banner"] = "banner"
    text: str


class SubheadingNode(BaseModel):
    kind: Literal["subheading"] = "subheading"
    text: str


class BulletNode(_RunsMixin):
    kind: Literal["bullet"] = "bullet"
    accent_color: str = "#E85D2B"


class NumberedNode(_RunsMixin):
    kind: Literal["numbered"] = "numbered"
    number: str
    accent_color: str = "#E85D2B"


class TableNode(BaseModel):
    """Generic table; each painter decides how to draw it."""
    kind: Literal["table"] = "table"
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)


class ParagraphNode(_RunsMixin):
    kind: Literal["paragraph"] = "paragraph"
    font_size: int = 10


LayoutNode = Annotated[
    Union[
        SpacerNode,
        RuleNode,
        HeadingNode,
        BannerNode,
        SubheadingNode,
        BulletNode,
        NumberedNode,
        TableNode,
        ParagraphNode,
    ],
    Field(discriminator="kind"),
]

# ---------------------------------------------------------------------------
# Inline parsing
# ---------------------------------------------------------------------------

_BOLD_ITALIC_RE = re.compile(r"\*\*\*([^*]+)\*\*\*")
_CODE_RE = re.compile(r"`([^`\n]+)`")
_ITALIC_RE = re.compile(r"(?<!\*)\*(?!\*)([^*\n]+)\*(?!\*)")
_BOLD_SPLIT_RE = re.compile(r"\*\*([^*\n]+)\*\*")
_LONE_STAR_RE = re.compile(r"(?<!\*)\*(?!\*)")


def parse_inline(raw: str) -> list[TextRun]:
    """Split *raw* into plain and bold runs."""
    pre = _BOLD_ITALIC_RE.sub(r"**\1**", raw)
    pre = _CODE_RE.sub(r"\1", pre)
    pre = _ITALIC_RE.sub(r"\1", pre)

    # Odd-indexed parts of the split are the bold spans
    parts = _BOLD_SPLIT_RE.split(pre)
    runs = [TextRun(text=part, bold=idx % 2 == 1) for idx, part in enumerate(parts) if part]
    return runs or [TextRun(text=raw.replace("**", ""))]


def strip_markers(text: str) -> str:
    """Drop bold/italic markers from heading-like text."""
    return _LONE_STAR_RE.sub("", text.replace("**", "")).strip()


# ---------------------------------------------------------------------------
# Block parsing
# ---------------------------------------------------------------------------

_RULE_RE = re.compile(r"^[-*]{3,}$")
_BOLD_LINE_RE = re.compile(r"^\*\*([^*]+)\*\*$")
_BULLET_RE = re.compile(r"^[-*•] ")
_NUMBERED_RE = re.compile(r"^(\d+)\. (.+)")
_TABLE_SEP_RE = re.compile(r"^\|[-:| ]+\|$")
_HEADING_PREFIXES = (("#### ", 4), ("### ", 3), ("## ", 2), ("# ", 1))

LEGACY_BANNER_MAX_LEN = 80


def _split_row(line: str) -> list[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [strip_markers(cell) for cell in inner.split("|")]


def render_markdown(
    content: str,
    accent_color: str = "#E85D2B",
    body_font_size: int = 10,
) -> list[LayoutNode]:
    """Render *content* into an ordered list of layout nodes.

    Pure and deterministic: the same input always yields the same nodes.
    """
    lines = content.split("\n")
    nodes: list[LayoutNode] = []
    i = 0

    while i < len(lines):
        trimmed = lines[i].strip()
        i += 1

        if not trimmed:
            nodes.append(SpacerNode())
            continue

        if _RULE_RE.match(trimmed):
            nodes.append(RuleNode())
            continue

        heading = next(((p, lvl) for p, lvl in _HEADING_PREFIXES if trimmed.startswith(p)), None)
        if heading:
            prefix, level = heading
            text = strip_markers(trimmed[len(prefix):])
            if level == 2:
                nodes.append(BannerNode(text=text.upper()))
            else:
                nodes.append(HeadingNode(level=level, text=text))
            continue

        if trimmed.startswith("|") and i < len(lines) and _TABLE_SEP_RE.match(lines[i].strip()):
            headers = _split_row(trimmed)
            i += 1
            rows: list[list[str]] = []
            while i < len(lines) and lines[i].strip().startswith("|"):
                rows.append(_split_row(lines[i]))
                i += 1
            nodes.append(TableNode(headers=headers, rows=rows))
            continue

        bold_line = _BOLD_LINE_RE.match(trimmed)
        if bold_line:
            nodes.append(SubheadingNode(text=bold_line.group(1)))
            continue

        if _BULLET_RE.match(trimmed):
            nodes.append(BulletNode(runs=parse_inline(trimmed[2:]), accent_color=accent_color))
            continue

        numbered = _NUMBERED_RE.match(trimmed)
        if numbered:
            nodes.append(NumberedNode(
                number=numbered.group(1),
                runs=parse_inline(numbered.group(2)),
                accent_color=accent_color,
            ))
            continue

        if (
            trimmed.endswith(":")
            and not _BULLET_RE.match(trimmed)
            and len(trimmed) < LEGACY_BANNER_MAX_LEN
        ):
            nodes.append(BannerNode(text=strip_markers(trimmed[:-1]).upper()))
            continue

        nodes.append(ParagraphNode(runs=parse_inline(trimmed), font_size=body_font_size))

    return nodes


# ---------------------------------------------------------------------------
# Plain-text serialisation
# ---------------------------------------------------------------------------


def node_text(node: LayoutNode) -> str:
    """Plain text of a single node, emphasis markers already removed."""
    if isinstance(node, SpacerNode):
        return ""
    if isinstance(node, RuleNode):
        return "---"
    if isinstance(node, BulletNode):
        return f"- {node.text}"
    if isinstance(node, NumberedNode):
        return f"{node.number}. {node.text}"
    if isinstance(node, TableNode):
        return "\n".join(" | ".join(row) for row in [node.headers, *node.rows])
    return node.text


def to_plain_text(nodes: list[LayoutNode]) -> str:
    """Re-serialise a node stream to plain text, one node per line."""
    return "\n".join(node_text(n) for n in nodes)
