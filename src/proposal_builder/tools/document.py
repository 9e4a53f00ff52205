"""Full-proposal layout assembly shared by every painter.

The exported document holds the cover page plus each confirmed section in
registry order. The on-screen preview additionally shows the section being
worked on.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..models import BrandConfig, ProposalAggregate, SectionKey, Theme
from ..sections import SECTION_KEYS, section_layout, section_meta
from .markdown_layout import LayoutNode

# Theme -> (accent, dark); None keeps the brand colours
THEME_COLORS: dict[Theme, tuple[str, str] | None] = {
    Theme.DEFAULT: None,
    Theme.DARK: ("#F97316", "#000000"),
    Theme.MINIMAL: ("#374151", "#1F2937"),
}


class DocumentSection(BaseModel):
    key: SectionKey
    title: str
    ordinal: int
    nodes: list[LayoutNode] = Field(default_factory=list)


class DocumentLayout(BaseModel):
    """Everything a painter needs: branding, palette and per-section nodes."""
    title: str
    client_name: str = ""
    version: int = 1
    brand: BrandConfig
    sections: list[DocumentSection] = Field(default_factory=list)


def themed_brand(brand: BrandConfig, theme: Theme) -> BrandConfig:
    colors = THEME_COLORS.get(theme)
    if colors is None:
        return brand
    accent, dark = colors
    return brand.model_copy(update={"accent_color": accent, "dark_color": dark})


def included_sections(proposal: ProposalAggregate, preview: bool = False) -> list[SectionKey]:
    """Cover page always, then confirmed sections (and, for previews, the current one)."""
    keys: list[SectionKey] = []
    for key in SECTION_KEYS:
        if (
            key == SectionKey.COVER_PAGE
            or key in proposal.confirmed_sections
            or (preview and key == proposal.current_section)
        ):
            keys.append(key)
    return keys


def build_document_layout(
    proposal: ProposalAggregate,
    brand: BrandConfig | None = None,
    preview: bool = False,
) -> DocumentLayout:
    brand = themed_brand(brand or BrandConfig(), proposal.theme)
    sections = []
    for key in included_sections(proposal, preview):
        meta = section_meta(key)
        section = proposal.sections.get(key)
        data = section.data if section else {}
        sections.append(DocumentSection(
            key=key,
            title=meta.title,
            ordinal=meta.ordinal,
            nodes=section_layout(key, data, brand),
        ))
    return DocumentLayout(
        title=proposal.project_title or "Project Proposal",
        client_name=proposal.client_name,
        version=proposal.version,
        brand=brand,
        sections=sections,
    )
