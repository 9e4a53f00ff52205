"""Section confirmation and advancement.

A thin layer over :meth:`ProposalStore.confirm_section`. Confirming the
current section schedules exactly one synthesized "begin next section" turn;
the orchestrator picks it up with :meth:`AdvancementEngine.take_pending`.
"""

from __future__ import annotations

import logging

from .errors import ValidationError
from .models import ProposalAggregate, SectionKey
from .sections import SECTION_KEYS, is_last_section, section_meta
from .store import ProposalStore

logger = logging.getLogger(__name__)


def opening_line(proposal: ProposalAggregate, key: SectionKey) -> str:
    """Opening message for *key*; forks say that prior-version data is preloaded."""
    meta = section_meta(key)
    if proposal.is_revision:
        return (
            f"We're revising v{proposal.version - 1}. The {meta.title} data from the previous "
            "version is loaded. Review it and tell me what to change, or approve it as-is."
        )
    return f"Let's work on Section {meta.ordinal}: {meta.title}"


def start_message(proposal: ProposalAggregate) -> str:
    """First message of a fresh session."""
    if proposal.is_revision:
        return (
            f"We're revising v{proposal.version - 1} of this proposal. The Cover Page data from the "
            "previous version is loaded. Review it and tell me what to change, or approve it as-is."
        )
    if proposal.project_brief:
        return f"My project brief: {proposal.project_brief}"
    return "Let's start building the proposal. I'll give you my project details as we go."


def first_unconfirmed(proposal: ProposalAggregate) -> SectionKey | None:
    return next((k for k in SECTION_KEYS if k not in proposal.confirmed_sections), None)


class AdvancementEngine:
    """Confirms sections and schedules the follow-up opening turn."""

    def __init__(self, store: ProposalStore) -> None:
        self.store = store

    def confirm(self, key: SectionKey | None = None) -> bool:
        """Confirm *key* (default: the current section).

        Returns True when a next-section turn was scheduled. Confirming a
        section other than the current one never moves the pointer or
        schedules anything.
        """
        proposal = self.store.proposal
        if proposal is None:
            return False
        key = key or proposal.current_section
        if key != proposal.current_section:
            self.store.confirm_section(key, advance=False)
            logger.debug("Re-confirmed %s without advancing", key.value)
            return False

        revisit = key in proposal.confirmed_sections
        self.store.confirm_section(key)
        if revisit:
            # Re-opened section: resume where the proposal left off
            resume = first_unconfirmed(proposal)
            proposal.current_section = resume or key
            if resume is None:
                return False

        if is_last_section(key) and not revisit:
            return False
        self.store.next_section_pending = True
        return True

    def take_pending(self) -> str | None:
        """Consume the scheduled opening turn, returning its message."""
        proposal = self.store.proposal
        if not self.store.next_section_pending or proposal is None:
            return None
        self.store.next_section_pending = False
        return opening_line(proposal, proposal.current_section)

    def reopen_section(self, key: SectionKey) -> None:
        """Jump back to a confirmed section for edits."""
        proposal = self.store.proposal
        if proposal is None:
            return
        if key not in proposal.confirmed_sections:
            raise ValidationError(f"Section {key.value!r} is not confirmed and cannot be re-opened")
        self.store.jump_to_section(key)
