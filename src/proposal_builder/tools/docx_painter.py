"""Word painter (python-docx).

Uses the same node stream as the PDF and HTML painters: banners become a
shaded paragraph with white uppercase text, bullets use the built-in
``List Bullet`` style and tables get a dark header row.
"""

from __future__ import annotations

from pathlib import Path

from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor
from docx.text.paragraph import Paragraph

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

WHITE = RGBColor(0xFF, 0xFF, 0xFF)


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color.lstrip("#").upper())


def _shade(element, hex_color: str) -> None:
    """Apply a solid background fill to a paragraph or table cell."""
    props = element.get_or_add_pPr() if hasattr(element, "get_or_add_pPr") else element.get_or_add_tcPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), hex_color.lstrip("#").upper())
    props.append(shd)


def _add_runs(paragraph: Paragraph, runs: list[TextRun], size: int | None = None) -> None:
    for r in runs:
        run = paragraph.add_run(r.text)
        run.bold = r.bold
        if size:
            run.font.size = Pt(size)


def paint_node(doc: DocxDocument, node: LayoutNode, brand: BrandConfig) -> None:
    """Append a single node to *doc*."""
    if isinstance(node, SpacerNode):
        doc.add_paragraph()
    elif isinstance(node, RuleNode):
        doc.add_paragraph("_" * 40).runs[0].font.color.rgb = _rgb("#E5E7EB")
    elif isinstance(node, HeadingNode):
        doc.add_heading(node.text, level=min(node.level, 4))
    elif isinstance(node, BannerNode):
        p = doc.add_paragraph()
        run = p.add_run(node.text.upper())
        run.bold = True
        run.font.color.rgb = WHITE
        _shade(p._p, brand.dark_color)
    elif isinstance(node, SubheadingNode):
        doc.add_paragraph().add_run(node.text).bold = True
    elif isinstance(node, BulletNode):
        _add_runs(doc.add_paragraph(style="List Bullet"), node.runs)
    elif isinstance(node, NumberedNode):
        p = doc.add_paragraph()
        marker = p.add_run(f"{node.number}. ")
        marker.bold = True
        marker.font.color.rgb = _rgb(node.accent_color)
        _add_runs(p, node.runs)
    elif isinstance(node, TableNode):
        columns = max([len(node.headers)] + [len(r) for r in node.rows]) or 1
        table = doc.add_table(rows=1, cols=columns)
        table.style = "Table Grid"
        for idx, header in enumerate(node.headers):
            cell = table.rows[0].cells[idx]
            cell.text = ""
            run = cell.paragraphs[0].add_run(header)
            run.bold = True
            run.font.color.rgb = WHITE
            _shade(cell._tc, brand.dark_color)
        for row in node.rows:
            cells = table.add_row().cells
            for idx, value in enumerate(row[:columns]):
                cells[idx].text = value
    elif isinstance(node, ParagraphNode):
        _add_runs(doc.add_paragraph(), node.runs, node.font_size)
    else:
        raise TypeError(f"Unknown layout node: {node!r}")


def _add_header_footer(doc: DocxDocument, brand: BrandConfig) -> None:
    section = doc.sections[0]
    header = section.header.paragraphs[0]
    run = header.add_run(brand.company_name.upper())
    run.bold = True
    run.font.color.rgb = _rgb(brand.dark_color)
    header.add_run(f"    {brand.website}    CONFIDENTIAL").font.size = Pt(7)
    footer = section.footer.paragraphs[0]
    footer.add_run(f"{brand.company_name} · {brand.website}").font.size = Pt(7)


def paint_docx(layout: DocumentLayout, path: str | Path) -> Path:
    """Write *layout* as a .docx file to *path*."""
    brand = layout.brand
    doc = Document()
    doc.styles["Normal"].font.size = Pt(brand.body_font_size)
    _add_header_footer(doc, brand)

    for idx, section in enumerate(layout.sections):
        if idx:
            doc.add_page_break()
        heading = doc.add_heading(f"{section.ordinal}. {section.title}", level=1)
        for run in heading.runs:
            run.font.color.rgb = _rgb(brand.accent_color)
        for node in section.nodes:
            paint_node(doc, node, brand)

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(out))
    return out
