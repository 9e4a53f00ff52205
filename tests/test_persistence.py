"""Tests for persistence.py: JSON file and in-memory document stores."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from proposal_builder.errors import NotFoundError, PersistenceError
from proposal_builder.models import ProposalAggregate, ProposalStatus, SectionKey
from proposal_builder.persistence import (
    InMemoryProposalRepository,
    JsonFileProposalRepository,
    autosave_fields,
)
from proposal_builder.sections import default_sections


def make_proposal(proposal_id: str, created_days_ago: int = 0, **fields) -> ProposalAggregate:
    created = datetime(2020, 1, 10, tzinfo=timezone.utc) - timedelta(days=created_days_ago)
    return ProposalAggregate(
        id=proposal_id, created_at=created, updated_at=created, sections=default_sections(), **fields,
    )


@pytest.fixture(params=["json", "memory"])
def repo(request, tmp_path):
    if request.param == "json":
        return JsonFileProposalRepository(tmp_path / "proposals")
    return InMemoryProposalRepository()


class TestRepositoryContract:
    def test_create_and_read(self, repo):
        proposal = make_proposal("a1", client_name="Acme")
        assert repo.create(proposal) == "a1"
        loaded = repo.read("a1")
        assert loaded.client_name == "Acme"
        assert set(loaded.sections) == set(SectionKey)

    def test_create_assigns_id(self, repo):
        proposal = make_proposal("")
        new_id = repo.create(proposal)
        assert new_id and proposal.id == new_id
        assert repo.read(new_id).id == new_id

    def test_update_replaces_given_fields(self, repo):
        proposal = make_proposal("a1", client_name="Acme", project_title="Old")
        repo.create(proposal)
        proposal.project_title = "New"
        proposal.status = ProposalStatus.COMPLETE
        updated = repo.update("a1", autosave_fields(proposal))
        assert updated.project_title == "New"
        assert repo.read("a1").status == ProposalStatus.COMPLETE
        assert repo.read("a1").created_at == proposal.created_at

    def test_update_refreshes_updated_at(self, repo):
        proposal = make_proposal("a1")
        repo.create(proposal)
        updated = repo.update("a1", {"clientName": "Acme"})
        assert updated.updated_at > proposal.updated_at

    def test_update_rejects_corrupting_fields(self, repo):
        repo.create(make_proposal("a1"))
        with pytest.raises(PersistenceError):
            repo.update("a1", {"version": 0})

    def test_list_newest_first_with_limit(self, repo):
        repo.create(make_proposal("old", created_days_ago=5))
        repo.create(make_proposal("new", created_days_ago=0))
        repo.create(make_proposal("mid", created_days_ago=2))
        assert [s.id for s in repo.list_summaries()] == ["new", "mid", "old"]
        assert [s.id for s in repo.list_summaries(limit=2)] == ["new", "mid"]

    def test_list_summary_fields(self, repo):
        repo.create(make_proposal("a1", client_name="Acme", version=2, parent_id="a0"))
        (summary,) = repo.list_summaries()
        assert summary.client_name == "Acme"
        assert summary.version == 2
        assert summary.parent_id == "a0"

    def test_delete(self, repo):
        repo.create(make_proposal("a1"))
        repo.delete("a1")
        with pytest.raises(NotFoundError):
            repo.read("a1")

    @pytest.mark.parametrize("operation", ["read", "update", "delete"])
    def test_unknown_id(self, repo, operation):
        args = ("nope", {"clientName": "x"}) if operation == "update" else ("nope",)
        with pytest.raises(NotFoundError):
            getattr(repo, operation)(*args)


class TestJsonFileRepository:
    def test_document_is_camel_case(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        repo.create(make_proposal("a1", client_name="Acme"))
        doc = json.loads((tmp_path / "a1.json").read_text(encoding="utf-8"))
        assert doc["clientName"] == "Acme"
        assert doc["currentSection"] == "coverPage"
        assert "coverPage" in doc["sections"]

    def test_unknown_section_keys_dropped(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        repo.create(make_proposal("a1"))
        path = tmp_path / "a1.json"
        doc = json.loads(path.read_text(encoding="utf-8"))
        doc["sections"]["appendix"] = {"status": "pending", "data": {}}
        doc["sections"]["sla"]["data"]["customNote"] = "kept"
        path.write_text(json.dumps(doc), encoding="utf-8")

        loaded = repo.read("a1")
        assert "appendix" not in {k.value for k in loaded.sections}
        assert loaded.sections[SectionKey.SLA].data["customNote"] == "kept"

    def test_corrupt_file(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            repo.read("bad")

    def test_list_skips_corrupt_files(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        repo.create(make_proposal("good"))
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        assert [s.id for s in repo.list_summaries()] == ["good"]

    def test_list_skips_documents_without_created_at(self, tmp_path, caplog):
        repo = JsonFileProposalRepository(tmp_path)
        repo.create(make_proposal("good"))
        (tmp_path / "legacy.json").write_text(json.dumps({"id": "legacy", "clientName": "Old"}), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="proposal_builder.persistence"):
            assert [s.id for s in repo.list_summaries()] == ["good"]
        assert "legacy" in caplog.text

    def test_list_missing_directory(self, tmp_path):
        assert JsonFileProposalRepository(tmp_path / "absent").list_summaries() == []

    def test_unsafe_id(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        with pytest.raises(NotFoundError):
            repo.read("../etc/passwd")

    def test_no_temp_file_left(self, tmp_path):
        repo = JsonFileProposalRepository(tmp_path)
        repo.create(make_proposal("a1"))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a1.json"]


class TestInMemoryRepository:
    def test_list_skips_malformed_documents(self):
        repo = InMemoryProposalRepository()
        repo.create(make_proposal("good"))
        repo.documents["legacy"] = {"id": "legacy"}
        assert [s.id for s in repo.list_summaries()] == ["good"]

    def test_read_returns_independent_copy(self):
        repo = InMemoryProposalRepository()
        repo.create(make_proposal("a1"))
        loaded = repo.read("a1")
        loaded.sections[SectionKey.SLA].data["uptime"] = "changed"
        assert repo.read("a1").sections[SectionKey.SLA].data["uptime"] == ""
