"""Paginated PDF painter (reportlab).

Every page carries the brand header, a ``Page X of Y`` footer and a faint
diagonal watermark. Bullets and numbered items are wrapped in
``KeepTogether`` and tables repeat their header row, so no item or row is
split across two pages.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from reportlab.lib.colors import Color, HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import (
    BaseDocTemplate,
    Flowable,
    Frame,
    HRFlowable,
    KeepTogether,
    PageBreak,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

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

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 18 * mm
HEADER_HEIGHT = 16 * mm
FOOTER_HEIGHT = 12 * mm
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

GRAY = HexColor("#999999")
RULE_GRAY = HexColor("#E5E7EB")


def _escape_xml(text: str) -> str:
    """Escape XML special characters for reportlab paragraphs."""
    if not text:
        return ""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _runs_markup(runs: list[TextRun]) -> str:
    return "".join(f"<b>{_escape_xml(r.text)}</b>" if r.bold else _escape_xml(r.text) for r in runs)


def _cell_markup(text: str) -> str:
    return _escape_xml(text).replace("\n", "<br/>")


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


def make_styles(brand: BrandConfig) -> dict[str, ParagraphStyle]:
    size = brand.body_font_size
    dark = HexColor(brand.dark_color)
    return {
        "body": ParagraphStyle("body", fontName="Helvetica", fontSize=size, leading=size * 1.45),
        "h1": ParagraphStyle("h1", fontName="Helvetica-Bold", fontSize=20, leading=24, textColor=dark,
                             spaceAfter=6),
        "h3": ParagraphStyle("h3", fontName="Helvetica-Bold", fontSize=size + 3, leading=(size + 3) * 1.3,
                             textColor=dark, spaceBefore=6, spaceAfter=2),
        "h4": ParagraphStyle("h4", fontName="Helvetica-Bold", fontSize=size + 1, leading=(size + 1) * 1.3,
                             textColor=dark, spaceBefore=4, spaceAfter=2),
        "banner": ParagraphStyle("banner", fontName="Helvetica-Bold", fontSize=size, leading=size * 1.3,
                                 textColor=white),
        "subheading": ParagraphStyle("subheading", fontName="Helvetica-Bold", fontSize=size,
                                     leading=size * 1.4, spaceBefore=4),
        "bullet": ParagraphStyle("bullet", fontName="Helvetica", fontSize=size, leading=size * 1.45,
                                 leftIndent=12, bulletIndent=2),
        "section_title": ParagraphStyle("section_title", fontName="Helvetica-Bold", fontSize=15, leading=19,
                                        textColor=HexColor(brand.accent_color), spaceAfter=8),
        "cell": ParagraphStyle("cell", fontName="Helvetica", fontSize=size - 1, leading=(size - 1) * 1.35),
        "cell_head": ParagraphStyle("cell_head", fontName="Helvetica-Bold", fontSize=size - 1,
                                    leading=(size - 1) * 1.35, textColor=white),
    }


# ---------------------------------------------------------------------------
# Node -> flowables
# ---------------------------------------------------------------------------


def _banner(text: str, brand: BrandConfig, styles: dict[str, ParagraphStyle]) -> Table:
    table = Table([[Paragraph(_escape_xml(text.upper()), styles["banner"])]], colWidths=[CONTENT_WIDTH])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), HexColor(brand.dark_color)),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    return table


def _table(node: TableNode, brand: BrandConfig, styles: dict[str, ParagraphStyle]) -> Table:
    columns = max([len(node.headers)] + [len(r) for r in node.rows]) or 1

    def pad(row: list[str]) -> list[str]:
        return list(row) + [""] * (columns - len(row))

    data = [[Paragraph(_cell_markup(h), styles["cell_head"]) for h in pad(node.headers)]]
    data += [[Paragraph(_cell_markup(c), styles["cell"]) for c in pad(row)] for row in node.rows]
    table = Table(data, colWidths=[CONTENT_WIDTH / columns] * columns, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HexColor(brand.dark_color)),
        ("LINEBELOW", (0, 1), (-1, -1), 0.5, RULE_GRAY),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def node_flowables(node: LayoutNode, brand: BrandConfig, styles: dict[str, ParagraphStyle]) -> list[Flowable]:
    """Flowables for a single node."""
    if isinstance(node, SpacerNode):
        return [Spacer(1, node.height)]
    if isinstance(node, RuleNode):
        return [HRFlowable(width="100%", thickness=0.5, color=RULE_GRAY, spaceBefore=4, spaceAfter=4)]
    if isinstance(node, HeadingNode):
        style = styles.get(f"h{node.level}", styles["h4"])
        return [Paragraph(_escape_xml(node.text), style)]
    if isinstance(node, BannerNode):
        return [Spacer(1, 4), _banner(node.text, brand, styles), Spacer(1, 3)]
    if isinstance(node, SubheadingNode):
        return [Paragraph(_escape_xml(node.text), styles["subheading"])]
    if isinstance(node, BulletNode):
        bullet = f'<bullet color="{node.accent_color}">&bull;</bullet>'
        return [KeepTogether([Paragraph(bullet + _runs_markup(node.runs), styles["bullet"])])]
    if isinstance(node, NumberedNode):
        number = f'<bullet color="{node.accent_color}" font="Helvetica-Bold">{_escape_xml(node.number)}.</bullet>'
        return [KeepTogether([Paragraph(number + _runs_markup(node.runs), styles["bullet"])])]
    if isinstance(node, TableNode):
        return [_table(node, brand, styles), Spacer(1, 4)]
    if isinstance(node, ParagraphNode):
        style = styles["body"]
        if node.font_size != brand.body_font_size:
            style = ParagraphStyle(f"body{node.font_size}", parent=style, fontSize=node.font_size,
                                   leading=node.font_size * 1.45)
        return [Paragraph(_runs_markup(node.runs), style)]
    raise TypeError(f"Unknown layout node: {node!r}")


# ---------------------------------------------------------------------------
# Page furniture
# ---------------------------------------------------------------------------


class _PageCountCanvas(pdf_canvas.Canvas):
    """Defers page output until the total page count is known."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._saved_pages: list[dict[str, Any]] = []

    def showPage(self) -> None:  # noqa: N802 - reportlab API
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self.setFont("Helvetica", 7)
            self.setFillColor(GRAY)
            self.drawRightString(PAGE_WIDTH - MARGIN, MARGIN - 4 * mm, f"Page {self._pageNumber} of {total}")
            super().showPage()
        super().save()


def _make_on_page(brand: BrandConfig):
    def draw_page(canvas: pdf_canvas.Canvas, doc: BaseDocTemplate) -> None:
        canvas.saveState()

        # Watermark
        canvas.translate(PAGE_WIDTH / 2, PAGE_HEIGHT / 2)
        canvas.rotate(45)
        wm = HexColor(brand.dark_color)
        canvas.setFillColor(Color(wm.red, wm.green, wm.blue, alpha=0.04))
        canvas.setFont("Helvetica-Bold", 72)
        canvas.drawCentredString(0, 0, brand.watermark)
        canvas.rotate(-45)
        canvas.translate(-PAGE_WIDTH / 2, -PAGE_HEIGHT / 2)

        # Header
        top = PAGE_HEIGHT - MARGIN
        canvas.setFillColor(HexColor(brand.dark_color))
        canvas.setFont("Helvetica-Bold", 10)
        canvas.drawString(MARGIN, top - 4 * mm, brand.company_name.upper())
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(GRAY)
        canvas.drawString(MARGIN, top - 8 * mm, brand.website)
        canvas.drawRightString(PAGE_WIDTH - MARGIN, top - 4 * mm, "CONFIDENTIAL")
        canvas.setStrokeColor(HexColor(brand.accent_color))
        canvas.setLineWidth(2)
        canvas.line(MARGIN, top - 10 * mm, PAGE_WIDTH - MARGIN, top - 10 * mm)

        # Footer (page count is added by the canvas)
        canvas.setStrokeColor(RULE_GRAY)
        canvas.setLineWidth(0.5)
        canvas.line(MARGIN, MARGIN, PAGE_WIDTH - MARGIN, MARGIN)
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(GRAY)
        canvas.drawString(MARGIN, MARGIN - 4 * mm, f"{brand.company_name} · {brand.website}")

        canvas.restoreState()

    return draw_page


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_story(layout: DocumentLayout) -> list[Flowable]:
    brand = layout.brand
    styles = make_styles(brand)
    story: list[Flowable] = []
    for idx, section in enumerate(layout.sections):
        if idx:
            story.append(PageBreak())
        story.append(Paragraph(f"{section.ordinal}. {_escape_xml(section.title)}", styles["section_title"]))
        for node in section.nodes:
            story.extend(node_flowables(node, brand, styles))
    return story


def paint_pdf(layout: DocumentLayout, path: str | Path) -> Path:
    """Write *layout* as an A4 PDF to *path*."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    doc = BaseDocTemplate(
        str(out),
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN + HEADER_HEIGHT,
        bottomMargin=MARGIN + FOOTER_HEIGHT,
        title=layout.title,
        author=layout.brand.company_name,
    )
    frame = Frame(
        MARGIN, MARGIN + FOOTER_HEIGHT / 2, CONTENT_WIDTH,
        PAGE_HEIGHT - 2 * MARGIN - HEADER_HEIGHT - FOOTER_HEIGHT / 2,
        id="content", showBoundary=0,
    )
    doc.addPageTemplates([PageTemplate(id="content", frames=[frame], onPage=_make_on_page(layout.brand))])
    doc.build(build_story(layout), canvasmaker=_PageCountCanvas)
    return out
