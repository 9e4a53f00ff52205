"""Pydantic models for the proposal builder."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SectionKey(str, Enum):
    """The thirteen fixed proposal sections, declared in document order."""
    COVER_PAGE = "coverPage"
    INTRODUCTION = "introduction"
    KEY_MODULES = "keyModules"
    TECH_STACK = "techStack"
    DELIVERY_COMPONENTS = "deliveryComponents"
    COST_ESTIMATION = "costEstimation"
    PROPOSED_TEAM = "proposedTeam"
    AMC = "amc"
    SLA = "sla"
    CHANGE_REQUEST = "changeRequest"
    ACCEPTANCE_CRITERIA = "acceptanceCriteria"
    WARRANTY = "warranty"
    LEGAL_SIGN_OFF = "legalSignOff"


class SectionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CONFIRMED = "confirmed"
    SKIPPED = "skipped"


class RenderType(str, Enum):
    STATIC = "static"
    SEMI_DYNAMIC = "semi_dynamic"
    DYNAMIC = "dynamic"


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    COMPLETE = "complete"


class Theme(str, Enum):
    DEFAULT = "default"
    DARK = "dark"
    MINIMAL = "minimal"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    APPLYING = "applying"
    FAILED = "failed"


class ManualEntryTrigger(str, Enum):
    OFFLINE = "offline"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Proposal aggregate
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    """Persisted and wire shapes use camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionMeta(_CamelModel):
    """Immutable registry metadata for one section."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    key: SectionKey
    title: str
    ordinal: int
    render_type: RenderType


class ProposalSection(_CamelModel):
    """Wraps one section's content together with its review state.

    ``data`` is kept as a plain dict: unknown keys emitted by the model are
    carried forward untouched, the typed view lives in the section registry.
    """
    status: SectionStatus = SectionStatus.PENDING
    data: dict[str, Any] = Field(default_factory=dict)
    ai_generated: bool = False
    user_modified: bool = False


class ProposalAggregate(_CamelModel):
    """The root proposal entity."""
    id: str = Field(default="", description="Opaque, stable identifier")
    session_id: str = Field(default_factory=new_id)
    client_name: str = ""
    project_title: str = ""
    project_brief: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    current_section: SectionKey = SectionKey.COVER_PAGE
    confirmed_sections: list[SectionKey] = Field(
        default_factory=list, description="Confirmation order, no duplicates",
    )
    theme: Theme = Theme.DEFAULT
    status: ProposalStatus = ProposalStatus.DRAFT
    version: int = Field(default=1, ge=1)
    parent_id: str | None = Field(default=None, description="Id of the aggregate this one was forked from")
    sections: dict[SectionKey, ProposalSection] = Field(default_factory=dict)

    @property
    def is_revision(self) -> bool:
        return bool(self.parent_id)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, the shape the document store persists."""
        return self.model_dump(mode="json", by_alias=True)


class ProposalSummary(_CamelModel):
    """Row of the newest-first proposal listing."""
    id: str
    client_name: str = ""
    project_title: str = ""
    status: ProposalStatus = ProposalStatus.DRAFT
    version: int = 1
    parent_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Chat transcript and collaborator request
# ---------------------------------------------------------------------------

class ChatMessage(_CamelModel):
    """One transcript entry; ``content`` may embed a JSON block."""
    id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    section_key: SectionKey | None = None


class HistoryEntry(BaseModel):
    role: MessageRole
    content: str


class ContextBundle(_CamelModel):
    """Project context sent with every turn.

    ``current_section_data`` is the ground truth the collaborator must patch.
    """
    client_name: str = ""
    project_title: str = ""
    project_brief: str = ""
    confirmed_sections: list[SectionKey] = Field(default_factory=list)
    current_section: SectionKey = SectionKey.COVER_PAGE
    current_section_data: dict[str, Any] = Field(default_factory=dict)
    is_revision: bool = False


class ChatRequest(_CamelModel):
    """Request handed to the AI collaborator for one turn."""
    proposal_id: str = Field(..., min_length=1)
    section_key: SectionKey
    user_message: str = Field(..., min_length=1, max_length=4000)
    proposal_context: ContextBundle = Field(default_factory=ContextBundle)
    conversation_history: list[HistoryEntry] = Field(default_factory=list)

    @classmethod
    def build(cls, **fields: Any) -> "ChatRequest":
        """Validate an inbound request, raising :class:`errors.ValidationError` on a bad shape."""
        try:
            return cls.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid chat request: {e.error_count()} error(s): {e}") from e


class ManualEntryRequest(BaseModel):
    """Asks the caller to collect section data by hand."""
    section_key: SectionKey
    trigger: ManualEntryTrigger
    initial_data: dict[str, Any] = Field(default_factory=dict)
    reason: str = ""


class TurnResult(BaseModel):
    """Outcome of one orchestrated chat turn."""
    state: TurnState
    section_key: SectionKey | None = None
    content: str = Field(default="", description="Full accumulated assistant text")
    applied_data: dict[str, Any] | None = Field(default=None, description="Data merged into the section")
    error: str | None = None
    manual_entry: ManualEntryRequest | None = None
    ignored: bool = Field(default=False, description="Turn rejected because another was in flight")


# ---------------------------------------------------------------------------
# Builder configuration (loaded from YAML or Hydra)
# ---------------------------------------------------------------------------

class LLMConfig(BaseModel):
    """OpenAI-compatible connection settings (Groq by default, Azure supported)."""
    api_key: str = Field(default="", description="API key (or ${ENV_VAR})")
    api_version: str = Field(default="", description="API version, Azure endpoints only")
    endpoint: str = Field(default="", description="Base URL of the chat completions API")


class ModelConfig(BaseModel):
    """LLM model per role."""
    default: str = Field(default="openai/gpt-oss-20b", description="Default model")
    writer: str | None = Field(default=None, description="Streaming chat turns")
    drafter: str | None = Field(default=None, description="Non-streaming section drafts")


class BrandConfig(BaseModel):
    """Company identity and document paint settings."""
    company_name: str = Field(default="ArgosMob Tech & AI Pvt. Ltd.")
    website: str = Field(default="https://www.argosmob.in/")
    prepared_by: str = Field(default="Team Argos Mob")
    signatory: str = Field(default="Authorized Signatory, ArgosMob Tech & AI Pvt. Ltd.")
    accent_color: str = Field(default="#E85D2B")
    dark_color: str = Field(default="#0B1220")
    body_font_size: int = Field(default=10)
    watermark: str = Field(default="ArgosMob")


class BuilderConfig(BaseModel):
    """Full builder configuration."""
    store_dir: str = Field(default="proposals/", description="JSON document store directory")
    output_dir: str = Field(default="output/", description="Export directory")

    llm: LLMConfig = Field(default_factory=LLMConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    chat_endpoint: str | None = Field(default=None, description="Remote SSE chat endpoint; overrides the in-process LLM")

    timeout: int = Field(default=120, description="Transport timeout in seconds")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=8192)
    seed: int = Field(default=42)

    history_limit: int = Field(default=20, description="Max section-scoped history messages per turn")
    intro_min_length: int = Field(default=100, description="Minimum prose length for the introduction fallback")
    list_limit: int = Field(default=20, description="Proposals shown by the listing")
    offline: bool = Field(default=False, description="Start sessions in offline (manual entry) mode")

    brand: BrandConfig = Field(default_factory=BrandConfig)
