"""Tests for advancement.py: confirmation, scheduling and re-opening."""

from __future__ import annotations

import pytest

from proposal_builder.advancement import (
    AdvancementEngine,
    first_unconfirmed,
    opening_line,
    start_message,
)
from proposal_builder.errors import ValidationError
from proposal_builder.models import ProposalStatus, SectionKey
from proposal_builder.sections import SECTION_KEYS


@pytest.fixture
def engine(store):
    return AdvancementEngine(store)


class TestConfirm:
    def test_confirm_current_schedules_next(self, store, engine):
        assert engine.confirm() is True
        assert store.proposal.current_section == SectionKey.INTRODUCTION
        assert store.next_section_pending is True
        assert engine.take_pending() == "Let's work on Section 2: Introduction"
        assert engine.take_pending() is None

    def test_confirm_last_section_schedules_nothing(self, store, engine):
        store.jump_to_section(SectionKey.LEGAL_SIGN_OFF)
        assert engine.confirm() is False
        assert store.next_section_pending is False
        assert store.proposal.status == ProposalStatus.COMPLETE
        assert store.proposal.current_section == SectionKey.LEGAL_SIGN_OFF

    def test_confirm_other_section_keeps_pointer(self, store, engine):
        store.jump_to_section(SectionKey.TECH_STACK)
        assert engine.confirm(SectionKey.COVER_PAGE) is False
        assert store.proposal.current_section == SectionKey.TECH_STACK
        assert SectionKey.COVER_PAGE in store.proposal.confirmed_sections
        assert store.next_section_pending is False

    def test_walk_all_sections(self, store, engine):
        for key in SECTION_KEYS:
            assert store.proposal.current_section == key
            engine.confirm()
            engine.take_pending()
        assert store.proposal.confirmed_sections == SECTION_KEYS
        assert store.proposal.status == ProposalStatus.COMPLETE

    def test_revisit_resumes_at_first_unconfirmed(self, store, engine):
        for _ in range(3):
            engine.confirm()
        engine.take_pending()
        engine.reopen_section(SectionKey.COVER_PAGE)
        assert engine.confirm() is True
        assert store.proposal.current_section == SectionKey.TECH_STACK
        assert store.proposal.confirmed_sections.count(SectionKey.COVER_PAGE) == 1

    def test_no_proposal(self):
        from proposal_builder.store import ProposalStore
        assert AdvancementEngine(ProposalStore()).confirm() is False


class TestReopen:
    def test_reopen_confirmed(self, store, engine):
        engine.confirm()
        engine.reopen_section(SectionKey.COVER_PAGE)
        assert store.proposal.current_section == SectionKey.COVER_PAGE

    def test_reopen_unconfirmed_raises(self, engine):
        with pytest.raises(ValidationError):
            engine.reopen_section(SectionKey.SLA)


class TestMessages:
    def test_opening_line(self, store):
        assert opening_line(store.proposal, SectionKey.SLA) == "Let's work on Section 9: SLA"

    def test_opening_line_for_revision(self, store):
        store.proposal.parent_id = "src"
        store.proposal.version = 3
        line = opening_line(store.proposal, SectionKey.INTRODUCTION)
        assert line.startswith("We're revising v2. The Introduction data")

    def test_start_message_with_brief(self, store):
        store.set_field("project_brief", "Food delivery app")
        assert start_message(store.proposal) == "My project brief: Food delivery app"

    def test_start_message_without_brief(self, store):
        assert start_message(store.proposal).startswith("Let's start building the proposal")

    def test_start_message_for_revision(self, store):
        store.proposal.parent_id = "src"
        store.proposal.version = 2
        assert start_message(store.proposal).startswith("We're revising v1 of this proposal")

    def test_first_unconfirmed(self, store):
        store.confirm_section(SectionKey.COVER_PAGE)
        assert first_unconfirmed(store.proposal) == SectionKey.INTRODUCTION
