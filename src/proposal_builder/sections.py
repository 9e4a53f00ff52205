"""Section registry: the thirteen proposal sections, in document order.

Each ``SectionKey`` maps to a ``SectionSpec`` carrying its metadata, the typed
data model (defaults included), the collaborator task line and the builder
that turns section data into layout nodes. The registry is checked for
exhaustiveness at import time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from .models import (
    BrandConfig,
    ProposalAggregate,
    ProposalSection,
    RenderType,
    SectionKey,
    SectionMeta,
)
from .tools.markdown_layout import (
    BannerNode,
    BulletNode,
    HeadingNode,
    LayoutNode,
    NumberedNode,
    ParagraphNode,
    TableNode,
    TextRun,
    render_markdown,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d %B %Y"


def format_date(day: date | None = None) -> str:
    """Cover-page date format, e.g. ``05 March 2026``."""
    return (day or date.today()).strftime(DATE_FORMAT)


# ---------------------------------------------------------------------------
# Section data models
# ---------------------------------------------------------------------------


class SectionData(BaseModel):
    """Base for section payloads: camelCase keys, unknown keys kept."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CoverPageData(SectionData):
    client_name: str = ""
    project_title: str = ""
    date: str = Field(default_factory=format_date)
    prepared_by: str = "Team Argos Mob"
    version: str = "1.0"


class IntroductionData(SectionData):
    content: str = ""


class KeyModulesData(SectionData):
    content: str = Field(default="", description="Markdown, grouped by user role or app component")


class TechStackItem(SectionData):
    category: str = ""
    technology: str = ""
    checked: bool = True


class TechStackData(SectionData):
    items: list[TechStackItem] = Field(default_factory=lambda: [
        TechStackItem(category="Frontend", technology="React Native"),
        TechStackItem(category="Backend", technology="Node.js, Express.js"),
        TechStackItem(category="Database", technology="MongoDB / MySQL"),
        TechStackItem(category="Cloud & DevOps", technology="AWS / Digital Ocean"),
        TechStackItem(category="Cloud & DevOps", technology="CI/CD Integration"),
        TechStackItem(category="Cloud & DevOps", technology="NGINX / Apache"),
        TechStackItem(category="Cloud & DevOps", technology="SSL Certification"),
    ])


class DeliveryComponentItem(SectionData):
    name: str = ""
    included: bool = True


class DeliveryComponentsData(SectionData):
    components: list[DeliveryComponentItem] = Field(default_factory=lambda: [
        DeliveryComponentItem(name=name)
        for name in (
            "UI/UX Design", "Android Application", "iOS Application", "Admin Panel",
            "Backend APIs", "Database", "Source Code", "Deployment Support",
        )
    ])


class CostLineItem(SectionData):
    product: str = ""
    estimated_time: str = ""
    estimated_cost: str = ""


_CLIENT_BORNE = "\n".join([
    "Google Map API",
    "Payment gateway",
    "Notification (Google Firebase)",
    "Hosting Server, MongoDB",
    "Play Store Account, App Store Account",
    "SSL Certificate, Open AI tool",
    "Any other API, Domain",
])


class CostEstimationData(SectionData):
    currency: str = "INR"
    line_items: list[CostLineItem] = Field(default_factory=lambda: [
        CostLineItem(product="App", estimated_time="50-60 Days", estimated_cost="3,50,000"),
        CostLineItem(product=_CLIENT_BORNE, estimated_time="", estimated_cost="Shared By Client"),
    ])
    total_project_cost: str = "3,50,000"
    gst: float = 18
    payment_terms: str = "40% Advance, 30% mid-delivery, 20% beta-testing, 10% completion"
    validity_days: int = 30


class TeamMember(SectionData):
    role: str = ""
    count: int = 1


class ProposedTeamData(SectionData):
    members: list[TeamMember] = Field(default_factory=lambda: [
        TeamMember(role="Project Manager", count=1),
        TeamMember(role="UI/UX Designer", count=1),
        TeamMember(role="Frontend Developer", count=2),
        TeamMember(role="Backend Developer", count=2),
        TeamMember(role="QA Tester", count=1),
        TeamMember(role="DevOps Engineer", count=1),
    ])
    total_duration: str = "To be defined"


class AMCData(SectionData):
    percentage: float = 20
    period: str = "Annual"
    inclusions: list[str] = Field(default_factory=lambda: [
        "Performance Monitoring",
        "Security Updates",
        "Minor Enhancements",
        "Technical Support",
        "Server Monitoring",
    ])
    note: str = "AMC starts after warranty period."


class SLATier(SectionData):
    severity: str = ""
    response_time: str = ""
    resolution_time: str = ""


class SLAData(SectionData):
    tiers: list[SLATier] = Field(default_factory=lambda: [
        SLATier(severity="High", response_time="2 Hours", resolution_time="5 Business Hours"),
        SLATier(severity="Medium", response_time="2 Hours", resolution_time="1 Working Day"),
        SLATier(severity="Normal", response_time="2 Hours", resolution_time="2 Working Days"),
    ])
    uptime: str = ""
    maintenance_window: str = ""


class ChangeRequestData(SectionData):
    process: list[str] = Field(default_factory=lambda: [
        "Client submits a written Change Request (CR) document",
        "We review and provide an impact analysis within 3 business days",
        "Revised timeline and cost estimate presented for client approval",
        "Upon written approval, CR is incorporated into the project scope",
        "Original delivery milestones adjusted accordingly",
    ])
    lead_time: str = "3 business days for impact analysis"
    costing_note: str = (
        "All changes are costed at standard rates and require written sign-off before implementation."
    )


class AcceptanceCriteriaData(SectionData):
    intro_text: str = "You agree that the app will be deemed to be accepted on whichever is the earliest of:"
    criteria: list[str] = Field(default_factory=lambda: [
        "You give us written notice of acceptance of the app",
        "The app being submitted to Play Store / App Store",
        "Use of the app by you in the normal course of your business",
    ])
    conclusion_text: str = (
        "Once the app has been accepted, you agree to pay all outstanding fees for the app, "
        "and the warranty period will begin."
    )


class WarrantyData(SectionData):
    period_days: int = 30
    inclusions: list[str] = Field(default_factory=lambda: ["30 Days Warranty for Bug Fixes"])
    exclusions: list[str] = Field(default_factory=lambda: ["Post-warranty changes will be billed separately"])


class LegalSignOffData(SectionData):
    compliance_statement: str = ""
    client_signature_name: str = ""
    provider_signature_name: str = ""


# ---------------------------------------------------------------------------
# Layout builders
# ---------------------------------------------------------------------------


def _field_line(label: str, value: Any, font_size: int) -> ParagraphNode:
    return ParagraphNode(
        runs=[TextRun(text=f"{label}: ", bold=True), TextRun(text=str(value))],
        font_size=font_size,
    )


def _paragraph(text: str, font_size: int) -> ParagraphNode:
    return ParagraphNode(runs=[TextRun(text=text)], font_size=font_size)


def _bullets(items: list[str], brand: BrandConfig) -> list[LayoutNode]:
    return [BulletNode(runs=[TextRun(text=item)], accent_color=brand.accent_color) for item in items if item]


def _markdown(content: str, brand: BrandConfig) -> list[LayoutNode]:
    return render_markdown(content.strip(), brand.accent_color, brand.body_font_size) if content.strip() else []


def _cover_layout(data: CoverPageData, brand: BrandConfig) -> list[LayoutNode]:
    size = brand.body_font_size
    return [
        HeadingNode(level=1, text=data.project_title or "Project Proposal"),
        _field_line("Prepared for", data.client_name or "TBD", size),
        _field_line("Prepared by", data.prepared_by, size),
        _field_line("Date", data.date, size),
        _field_line("Version", data.version, size),
    ]


def _introduction_layout(data: IntroductionData, brand: BrandConfig) -> list[LayoutNode]:
    return _markdown(data.content, brand)


def _key_modules_layout(data: KeyModulesData, brand: BrandConfig) -> list[LayoutNode]:
    if data.content.strip():
        return _markdown(data.content, brand)
    # Structured variant: {"groups": [{"groupName", "features": [{"label", "checked"}]}]}
    nodes: list[LayoutNode] = []
    for group in (data.model_extra or {}).get("groups") or []:
        if not isinstance(group, dict):
            continue
        nodes.append(BannerNode(text=str(group.get("groupName", "")).upper()))
        labels = [
            str(f.get("label", "")) for f in group.get("features") or []
            if isinstance(f, dict) and f.get("checked", True)
        ]
        nodes.extend(_bullets(labels, brand))
    return nodes


def _tech_stack_layout(data: TechStackData, brand: BrandConfig) -> list[LayoutNode]:
    rows = [[item.category, item.technology] for item in data.items if item.checked]
    return [TableNode(headers=["Category", "Technology"], rows=rows)]


def _delivery_layout(data: DeliveryComponentsData, brand: BrandConfig) -> list[LayoutNode]:
    return _bullets([c.name for c in data.components if c.included], brand)


def _cost_layout(data: CostEstimationData, brand: BrandConfig) -> list[LayoutNode]:
    size = brand.body_font_size
    rows = [[li.product, li.estimated_time, li.estimated_cost] for li in data.line_items]
    return [
        TableNode(headers=["Product", "Estimated Time", f"Estimated Cost ({data.currency})"], rows=rows),
        _field_line("Total Project Cost", f"{data.currency} {data.total_project_cost}", size),
        _field_line("GST", f"{data.gst:g}% extra as applicable", size),
        _field_line("Payment Terms", data.payment_terms, size),
        _field_line("Validity", f"{data.validity_days} days from the date of this proposal", size),
    ]


def _team_layout(data: ProposedTeamData, brand: BrandConfig) -> list[LayoutNode]:
    rows = [[m.role, str(m.count)] for m in data.members]
    return [
        TableNode(headers=["Role", "Count"], rows=rows),
        _field_line("Total Duration", data.total_duration, brand.body_font_size),
    ]


def _amc_layout(data: AMCData, brand: BrandConfig) -> list[LayoutNode]:
    size = brand.body_font_size
    nodes: list[LayoutNode] = [
        _paragraph(f"AMC is charged at {data.percentage:g}% of the project cost ({data.period}).", size),
        BannerNode(text="INCLUSIONS"),
        *_bullets(data.inclusions, brand),
    ]
    if data.note:
        nodes.append(_paragraph(data.note, size))
    return nodes


def _sla_layout(data: SLAData, brand: BrandConfig) -> list[LayoutNode]:
    rows = [[t.severity, t.response_time, t.resolution_time] for t in data.tiers]
    nodes: list[LayoutNode] = [TableNode(headers=["Severity", "Response Time", "Resolution Time"], rows=rows)]
    if data.uptime:
        nodes.append(_field_line("Uptime", data.uptime, brand.body_font_size))
    if data.maintenance_window:
        nodes.append(_field_line("Maintenance Window", data.maintenance_window, brand.body_font_size))
    return nodes


def _change_request_layout(data: ChangeRequestData, brand: BrandConfig) -> list[LayoutNode]:
    size = brand.body_font_size
    nodes: list[LayoutNode] = [
        NumberedNode(number=str(idx), runs=[TextRun(text=step)], accent_color=brand.accent_color)
        for idx, step in enumerate(data.process, start=1)
    ]
    nodes.append(_field_line("Lead Time", data.lead_time, size))
    nodes.append(_paragraph(data.costing_note, size))
    return nodes


def _acceptance_layout(data: AcceptanceCriteriaData, brand: BrandConfig) -> list[LayoutNode]:
    size = brand.body_font_size
    nodes: list[LayoutNode] = []
    if data.intro_text:
        nodes.append(_paragraph(data.intro_text, size))
    nodes.extend(_bullets(data.criteria, brand))
    if data.conclusion_text:
        nodes.append(_paragraph(data.conclusion_text, size))
    return nodes


def _warranty_layout(data: WarrantyData, brand: BrandConfig) -> list[LayoutNode]:
    return [
        _field_line("Warranty Period", f"{data.period_days} days from acceptance", brand.body_font_size),
        BannerNode(text="INCLUSIONS"),
        *_bullets(data.inclusions, brand),
        BannerNode(text="EXCLUSIONS"),
        *_bullets(data.exclusions, brand),
    ]


def _legal_layout(data: LegalSignOffData, brand: BrandConfig) -> list[LayoutNode]:
    blank = "______________________"
    return [
        _paragraph(data.compliance_statement, brand.body_font_size),
        TableNode(
            headers=["For the Client", f"For {brand.company_name}"],
            rows=[[data.client_signature_name or blank, data.provider_signature_name or blank]],
        ),
    ]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SectionSpec:
    """Registry entry: metadata, data shape and document renderer for one section."""
    meta: SectionMeta
    data_model: type[SectionData]
    layout: Callable[[Any, BrandConfig], list[LayoutNode]]
    task: str
    prose_field: str | None = None

    @property
    def key(self) -> SectionKey:
        return self.meta.key

    @property
    def title(self) -> str:
        return self.meta.title


def _spec(
    key: SectionKey,
    title: str,
    ordinal: int,
    render_type: RenderType,
    data_model: type[SectionData],
    layout: Callable[[Any, BrandConfig], list[LayoutNode]],
    task: str,
    prose_field: str | None = None,
) -> SectionSpec:
    meta = SectionMeta(key=key, title=title, ordinal=ordinal, render_type=render_type)
    return SectionSpec(meta=meta, data_model=data_model, layout=layout, task=task, prose_field=prose_field)


_SPECS: list[SectionSpec] = [
    _spec(SectionKey.COVER_PAGE, "Cover Page", 1, RenderType.SEMI_DYNAMIC, CoverPageData, _cover_layout,
          "Collect the client name and project title (infer them from the brief when possible) "
          "and confirm the prepared-by field and today's date."),
    _spec(SectionKey.INTRODUCTION, "Introduction", 2, RenderType.DYNAMIC, IntroductionData, _introduction_layout,
          "Write exactly three paragraphs of plain business prose: what the client is building, "
          "the business goals it serves, and how we will deliver it. No headers or bullets.",
          prose_field="content"),
    _spec(SectionKey.KEY_MODULES, "Key Modules", 3, RenderType.DYNAMIC, KeyModulesData, _key_modules_layout,
          "List every functional, user-facing feature grouped by user role or app component "
          "(## GROUP headers, - bullets). Exclude security, non-functional, AI/ML and infrastructure items."),
    _spec(SectionKey.TECH_STACK, "Tech Stack", 4, RenderType.SEMI_DYNAMIC, TechStackData, _tech_stack_layout,
          "Recommend a technology stack; keep the defaults unless the project clearly needs otherwise."),
    _spec(SectionKey.DELIVERY_COMPONENTS, "Delivery Components", 5, RenderType.SEMI_DYNAMIC,
          DeliveryComponentsData, _delivery_layout,
          "Confirm the delivery components and let the user deselect any."),
    _spec(SectionKey.COST_ESTIMATION, "Cost & Estimation", 6, RenderType.DYNAMIC, CostEstimationData, _cost_layout,
          "Present a Product | Estimated Time | Estimated Cost table plus a client-borne row, "
          "total cost, GST, payment terms and validity."),
    _spec(SectionKey.PROPOSED_TEAM, "Proposed Team", 7, RenderType.SEMI_DYNAMIC, ProposedTeamData, _team_layout,
          "Present the proposed team as Role | Count and adjust counts to the project scope."),
    _spec(SectionKey.AMC, "AMC", 8, RenderType.STATIC, AMCData, _amc_layout,
          "Present the annual maintenance contract terms."),
    _spec(SectionKey.SLA, "SLA", 9, RenderType.STATIC, SLAData, _sla_layout,
          "Present the three-tier service level agreement table."),
    _spec(SectionKey.CHANGE_REQUEST, "Change Request", 10, RenderType.STATIC, ChangeRequestData,
          _change_request_layout,
          "Explain the change request process; all changes require written sign-off."),
    _spec(SectionKey.ACCEPTANCE_CRITERIA, "Acceptance Criteria", 11, RenderType.STATIC, AcceptanceCriteriaData,
          _acceptance_layout,
          "Present the acceptance criteria with the intro text, the list and the conclusion."),
    _spec(SectionKey.WARRANTY, "Warranty", 12, RenderType.STATIC, WarrantyData, _warranty_layout,
          "Present the post-delivery warranty. When the period changes, update periodDays "
          "and the inclusion text together."),
    _spec(SectionKey.LEGAL_SIGN_OFF, "Legal & Sign Off", 13, RenderType.STATIC, LegalSignOffData, _legal_layout,
          "Present the legal statement and signature fields, and ask for the client's authorised signatory."),
]

SECTION_SPECS: dict[SectionKey, SectionSpec] = {spec.key: spec for spec in _SPECS}
SECTION_ORDER: list[SectionMeta] = [spec.meta for spec in sorted(_SPECS, key=lambda s: s.meta.ordinal)]
SECTION_KEYS: list[SectionKey] = [meta.key for meta in SECTION_ORDER]


def _check_registry() -> None:
    missing = set(SectionKey) - SECTION_SPECS.keys()
    if missing:
        raise RuntimeError(f"Section registry is missing: {sorted(k.value for k in missing)}")
    ordinals = [meta.ordinal for meta in SECTION_ORDER]
    if ordinals != list(range(1, len(SECTION_ORDER) + 1)):
        raise RuntimeError(f"Section ordinals must be 1..{len(SECTION_ORDER)}, got {ordinals}")


_check_registry()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def section_meta(key: SectionKey) -> SectionMeta:
    return SECTION_SPECS[key].meta


def first_section() -> SectionKey:
    return SECTION_KEYS[0]


def last_section() -> SectionKey:
    return SECTION_KEYS[-1]


def is_last_section(key: SectionKey) -> bool:
    return key == SECTION_KEYS[-1]


def next_section(key: SectionKey) -> SectionKey | None:
    """Registry successor of *key*, or ``None`` for the last section."""
    idx = SECTION_KEYS.index(key)
    return SECTION_KEYS[idx + 1] if idx + 1 < len(SECTION_KEYS) else None


def parse_section_key(value: str) -> SectionKey:
    """Accept ``coverPage``, ``cover_page`` or ``COVER_PAGE``."""
    for key in SectionKey:
        if value in (key.value, key.name, key.name.lower()):
            return key
    raise ValueError(f"Unknown section: {value!r}")


# ---------------------------------------------------------------------------
# Defaults and load-time filling
# ---------------------------------------------------------------------------


def default_data(key: SectionKey, brand: BrandConfig | None = None) -> dict[str, Any]:
    """Default camelCase data dict for *key*."""
    brand = brand or BrandConfig()
    data = SECTION_SPECS[key].data_model().model_dump(mode="json", by_alias=True)
    if key == SectionKey.COVER_PAGE:
        data["preparedBy"] = brand.prepared_by
    elif key == SectionKey.LEGAL_SIGN_OFF:
        data["complianceStatement"] = (
            "This proposal is confidential and intended solely for the named recipient. "
            "All intellectual property developed under this engagement remains the property "
            f"of the client upon full payment. {brand.company_name} adheres to applicable "
            "IT laws and data protection regulations."
        )
        data["providerSignatureName"] = brand.signatory
    return data


def default_sections(brand: BrandConfig | None = None) -> dict[SectionKey, ProposalSection]:
    return {key: ProposalSection(data=default_data(key, brand)) for key in SECTION_KEYS}


def known_sections_only(raw: dict[str, Any]) -> dict[str, Any]:
    """Drop section entries whose key is not in the registry."""
    known = {key.value for key in SectionKey}
    dropped = [k for k in raw if k not in known]
    if dropped:
        logger.debug("Ignoring unknown section keys: %s", dropped)
    return {k: v for k, v in raw.items() if k in known}


def ensure_sections(proposal: ProposalAggregate, brand: BrandConfig | None = None) -> ProposalAggregate:
    """Fill missing sections, and missing fields inside present sections, with defaults.

    Unknown data keys already present are kept.
    """
    filled: dict[SectionKey, ProposalSection] = {}
    for key in SECTION_KEYS:
        defaults = default_data(key, brand)
        existing = proposal.sections.get(key)
        if existing is None:
            filled[key] = ProposalSection(data=defaults)
        else:
            filled[key] = existing.model_copy(update={"data": {**defaults, **existing.data}})
    proposal.sections = filled
    return proposal


# ---------------------------------------------------------------------------
# Typed view and document layout
# ---------------------------------------------------------------------------


def coerce_section_data(key: SectionKey, data: dict[str, Any]) -> SectionData:
    """Validate *data* against the section model, dropping fields that do not fit.

    Model output is not trusted to be well-typed; an offending field falls back
    to its default instead of failing the whole section.
    """
    model_cls = SECTION_SPECS[key].data_model
    payload = dict(data)
    while True:
        try:
            return model_cls.model_validate(payload)
        except SchemaError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err["loc"]} & payload.keys()
            if not bad:
                logger.warning("Section %s data unusable, rendering defaults: %s", key.value, exc)
                return model_cls()
            logger.debug("Section %s: dropping malformed fields %s", key.value, sorted(bad))
            for field in bad:
                payload.pop(field, None)


def section_layout(key: SectionKey, data: dict[str, Any], brand: BrandConfig | None = None) -> list[LayoutNode]:
    """Layout nodes for one section's body."""
    brand = brand or BrandConfig()
    spec = SECTION_SPECS[key]
    return spec.layout(coerce_section_data(key, data), brand)
