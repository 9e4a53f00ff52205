"""Session-scoped proposal aggregate store.

One ``ProposalStore`` per session holds the aggregate being edited plus the
session transcript. Every mutation is a no-op when no aggregate is loaded, and
none of them raise; legality checks (e.g. which section may be re-opened)
belong to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import (
    BrandConfig,
    ChatMessage,
    ContextBundle,
    ProposalAggregate,
    ProposalStatus,
    SectionKey,
    SectionStatus,
    utcnow,
)
from .sections import default_sections, ensure_sections, is_last_section, next_section

logger = logging.getLogger(__name__)

# Top-level scalars that set_field may touch
SETTABLE_FIELDS = frozenset({"client_name", "project_title", "project_brief", "theme", "status"})


def build_context(proposal: ProposalAggregate, key: SectionKey | None = None) -> ContextBundle:
    """Context bundle for a turn on *key* (default: the current section)."""
    key = key or proposal.current_section
    section = proposal.sections.get(key)
    return ContextBundle(
        client_name=proposal.client_name,
        project_title=proposal.project_title,
        project_brief=proposal.project_brief,
        confirmed_sections=list(proposal.confirmed_sections),
        current_section=key,
        current_section_data=dict(section.data) if section else {},
        is_revision=proposal.is_revision,
    )


class ProposalStore:
    """Explicit state object for one editing session."""

    def __init__(self, brand: BrandConfig | None = None) -> None:
        self.brand = brand or BrandConfig()
        self.proposal: ProposalAggregate | None = None
        self.messages: list[ChatMessage] = []
        self.is_streaming = False
        self.is_saving = False
        self.next_section_pending = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init_proposal(self, proposal_id: str, session_id: str | None = None, **fields: Any) -> ProposalAggregate:
        """Start a blank aggregate with every section default-seeded."""
        proposal = ProposalAggregate(id=proposal_id, sections=default_sections(self.brand), **fields)
        if session_id:
            proposal.session_id = session_id
        self.proposal = proposal
        return proposal

    def load_proposal(self, proposal: ProposalAggregate) -> ProposalAggregate:
        """Adopt a persisted aggregate, default-filling missing sections and fields."""
        self.proposal = ensure_sections(proposal.model_copy(deep=True), self.brand)
        return self.proposal

    def reset(self) -> None:
        self.proposal = None
        self.messages = []
        self.is_streaming = False
        self.is_saving = False
        self.next_section_pending = False

    # ------------------------------------------------------------------
    # Aggregate mutations
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        if self.proposal is not None:
            self.proposal.updated_at = utcnow()

    def set_field(self, field: str, value: Any) -> None:
        """Update one top-level scalar field."""
        if self.proposal is None:
            return
        if field not in SETTABLE_FIELDS:
            logger.debug("Ignoring set_field on non-scalar field %r", field)
            return
        setattr(self.proposal, field, value)
        self._touch()

    def merge_section_data(self, key: SectionKey, partial: dict[str, Any], *, ai_generated: bool = False) -> None:
        """Shallow-merge *partial* into the section's data; existing keys survive."""
        if self.proposal is None:
            return
        section = self.proposal.sections[key]
        section.data = {**section.data, **partial}
        if section.status != SectionStatus.CONFIRMED:
            section.status = SectionStatus.IN_PROGRESS
        section.user_modified = True
        if ai_generated:
            section.ai_generated = True
        self._touch()

    def confirm_section(self, key: SectionKey, *, advance: bool = True) -> None:
        """Mark *key* confirmed and, when *advance* is set, move to its successor.

        The last section keeps ``current_section`` where it is and completes
        the proposal.
        """
        if self.proposal is None:
            return
        proposal = self.proposal
        if key not in proposal.confirmed_sections:
            proposal.confirmed_sections.append(key)
        proposal.sections[key].status = SectionStatus.CONFIRMED
        if advance:
            proposal.current_section = next_section(key) or key
        if is_last_section(key):
            proposal.status = ProposalStatus.COMPLETE
        self._touch()

    def jump_to_section(self, key: SectionKey) -> None:
        """Point ``current_section`` at *key* with no legality check."""
        if self.proposal is None:
            return
        self.proposal.current_section = key

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def append_to_last_message(self, text: str) -> None:
        """Grow the newest message; earlier text is never rewritten."""
        if not self.messages:
            return
        self.messages[-1].content += text

    def section_messages(self, key: SectionKey) -> list[ChatMessage]:
        return [m for m in self.messages if m.section_key == key]
