"""On-screen preview painter: layout nodes to scrollable HTML markup."""

from __future__ import annotations

import html
from pathlib import Path

from ..models import BrandConfig
from .document import DocumentLayout
from .markdown_layout import (
    BannerNode,
    BulletNode,
    HeadingNode,
    LayoutNode,
    NumberedNode,
    ParagraphNode,
    RuleNode,
    SpacerNode,
    SubheadingNode,
    TableNode,
    TextRun,
)

_HEADING_SIZES = {1: 20, 3: 13, 4: 11}


def _runs(runs: list[TextRun]) -> str:
    return "".join(
        f"<strong>{html.escape(r.text)}</strong>" if r.bold else html.escape(r.text)
        for r in runs
    )


def paint_node(node: LayoutNode, brand: BrandConfig) -> str:
    """HTML for a single node."""
    if isinstance(node, SpacerNode):
        return f'<div style="height:{node.height}px"></div>'
    if isinstance(node, RuleNode):
        return '<hr style="border:none;border-top:1px solid #E5E7EB;margin:8px 0">'
    if isinstance(node, HeadingNode):
        size = _HEADING_SIZES.get(node.level, 12)
        return (
            f'<h{node.level} style="font-size:{size}px;color:{brand.dark_color};margin:8px 0 4px">'
            f"{html.escape(node.text)}</h{node.level}>"
        )
    if isinstance(node, BannerNode):
        return (
            f'<div class="banner" style="background:{brand.dark_color};color:#FFFFFF;'
            'font-weight:bold;text-transform:uppercase;padding:4px 8px;margin:8px 0 4px">'
            f"{html.escape(node.text.upper())}</div>"
        )
    if isinstance(node, SubheadingNode):
        return f'<p style="font-weight:bold;margin:6px 0 2px">{html.escape(node.text)}</p>'
    if isinstance(node, BulletNode):
        return (
            f'<div class="bullet"><span style="color:{node.accent_color}">&bull;</span> '
            f"{_runs(node.runs)}</div>"
        )
    if isinstance(node, NumberedNode):
        return (
            f'<div class="numbered"><span style="color:{node.accent_color};font-weight:bold">'
            f"{html.escape(node.number)}.</span> {_runs(node.runs)}</div>"
        )
    if isinstance(node, TableNode):
        head = "".join(
            f'<th style="background:{brand.dark_color};color:#FFFFFF;text-align:left;padding:4px">'
            f"{html.escape(h)}</th>"
            for h in node.headers
        )
        body = "".join(
            "<tr>" + "".join(
                f'<td style="border-bottom:1px solid #E5E7EB;padding:4px;white-space:pre-line">'
                f"{html.escape(cell)}</td>"
                for cell in row
            ) + "</tr>"
            for row in node.rows
        )
        return f'<table style="border-collapse:collapse;width:100%"><tr>{head}</tr>{body}</table>'
    if isinstance(node, ParagraphNode):
        return f'<p style="font-size:{node.font_size}px;margin:2px 0">{_runs(node.runs)}</p>'
    raise TypeError(f"Unknown layout node: {node!r}")


def paint_html(layout: DocumentLayout) -> str:
    """Standalone HTML page for *layout*."""
    brand = layout.brand
    parts = [
        "<!DOCTYPE html>",
        '<html><head><meta charset="utf-8">',
        f"<title>{html.escape(layout.title)}</title></head>",
        f'<body style="font-family:Helvetica,Arial,sans-serif;font-size:{brand.body_font_size}px;'
        'max-width:800px;margin:0 auto">',
        f'<header style="border-bottom:2px solid {brand.accent_color};padding-bottom:8px">'
        f"<strong>{html.escape(brand.company_name.upper())}</strong> "
        f'<span style="color:#666">{html.escape(brand.website)}</span></header>',
    ]
    for section in layout.sections:
        parts.append(f'<section id="{section.key.value}">')
        parts.append(
            f'<h2 style="color:{brand.accent_color}">{section.ordinal}. {html.escape(section.title)}</h2>'
        )
        parts.extend(paint_node(node, brand) for node in section.nodes)
        parts.append("</section>")
    parts.append(
        f'<footer style="color:#999;font-size:7px">{html.escape(brand.company_name)} · '
        f"{html.escape(brand.website)}</footer>"
    )
    parts.append("</body></html>")
    return "\n".join(parts)


def write_html(layout: DocumentLayout, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(paint_html(layout), encoding="utf-8")
    return out
