"""Tests for models.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as SchemaError

from proposal_builder.errors import ProposalError, ValidationError
from proposal_builder.models import (
    BuilderConfig,
    ChatRequest,
    ProposalAggregate,
    ProposalStatus,
    SectionKey,
    SectionMeta,
    Theme,
    TurnResult,
    TurnState,
)


class TestProposalAggregate:
    def test_defaults(self):
        p = ProposalAggregate(id="p1")
        assert p.current_section == SectionKey.COVER_PAGE
        assert p.status == ProposalStatus.DRAFT
        assert p.theme == Theme.DEFAULT
        assert p.version == 1
        assert p.is_revision is False
        assert p.session_id

    def test_version_must_be_positive(self):
        with pytest.raises(SchemaError):
            ProposalAggregate(id="p1", version=0)

    def test_is_revision(self):
        assert ProposalAggregate(id="p2", parent_id="p1", version=2).is_revision is True

    def test_document_round_trip(self):
        p = ProposalAggregate(id="p1", client_name="Acme", confirmed_sections=[SectionKey.COVER_PAGE])
        doc = p.to_document()
        assert doc["clientName"] == "Acme"
        assert doc["confirmedSections"] == ["coverPage"]
        assert doc["parentId"] is None
        assert ProposalAggregate.model_validate(doc) == p

    def test_accepts_snake_case(self):
        assert ProposalAggregate(id="p1", project_title="X").project_title == "X"


class TestSectionMeta:
    def test_frozen(self):
        meta = SectionMeta(key=SectionKey.SLA, title="SLA", ordinal=9, render_type="static")
        with pytest.raises(SchemaError):
            meta.title = "Other"


class TestChatRequest:
    def test_build(self):
        request = ChatRequest.build(proposal_id="p1", section_key="sla", user_message="hi")
        assert request.section_key == SectionKey.SLA
        assert request.conversation_history == []

    def test_message_too_long(self):
        with pytest.raises(ValidationError):
            ChatRequest.build(proposal_id="p1", section_key="sla", user_message="x" * 4001)

    def test_unknown_section(self):
        with pytest.raises(ValidationError):
            ChatRequest.build(proposal_id="p1", section_key="appendix", user_message="hi")

    def test_missing_proposal_id(self):
        with pytest.raises(ValidationError) as excinfo:
            ChatRequest.build(proposal_id="", section_key="sla", user_message="hi")
        assert isinstance(excinfo.value, ProposalError)
        assert "Invalid chat request" in excinfo.value.message


class TestTurnResult:
    def test_defaults(self):
        result = TurnResult(state=TurnState.IDLE)
        assert result.ignored is False
        assert result.applied_data is None
        assert result.manual_entry is None


class TestBuilderConfig:
    def test_defaults(self):
        config = BuilderConfig()
        assert config.models.default == "openai/gpt-oss-20b"
        assert config.history_limit == 20
        assert config.intro_min_length == 100
        assert config.chat_endpoint is None
        assert config.brand.accent_color == "#E85D2B"
