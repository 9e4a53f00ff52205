"""Document store collaborator.

The core only needs create / read / update / list (plus delete); ids are
opaque strings. Updates are PATCH-style: the given top-level fields replace
the stored ones, last write wins, no version check.

Two implementations: :class:`JsonFileProposalRepository` keeps one camelCase
JSON document per proposal under a directory; :class:`InMemoryProposalRepository`
keeps the same documents in a dict.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError as SchemaError

from .errors import NotFoundError, PersistenceError
from .models import ProposalAggregate, ProposalSummary, new_id, utcnow
from .sections import known_sections_only

logger = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ProposalRepository(Protocol):
    def create(self, proposal: ProposalAggregate) -> str: ...
    def read(self, proposal_id: str) -> ProposalAggregate: ...
    def update(self, proposal_id: str, fields: dict[str, Any]) -> ProposalAggregate: ...
    def list_summaries(self, limit: int = 20) -> list[ProposalSummary]: ...
    def delete(self, proposal_id: str) -> None: ...


def autosave_fields(proposal: ProposalAggregate) -> dict[str, Any]:
    """The partial document written after each applied turn."""
    doc = proposal.to_document()
    keys = (
        "clientName", "projectTitle", "projectBrief", "currentSection",
        "confirmedSections", "sections", "theme", "status",
    )
    return {k: doc[k] for k in keys}


def _from_document(doc: dict[str, Any]) -> ProposalAggregate:
    doc = dict(doc)
    doc["sections"] = known_sections_only(doc.get("sections") or {})
    return ProposalAggregate.model_validate(doc)


def _summary(doc: dict[str, Any]) -> ProposalSummary:
    return ProposalSummary.model_validate({
        k: doc.get(k) for k in (
            "id", "clientName", "projectTitle", "status", "version", "parentId", "createdAt", "updatedAt",
        ) if doc.get(k) is not None
    })


def _newest_first(docs: list[dict[str, Any]], limit: int) -> list[ProposalSummary]:
    summaries: list[ProposalSummary] = []
    for doc in docs:
        try:
            summaries.append(_summary(doc))
        except SchemaError as e:
            logger.warning("Skipping malformed proposal %r: %s", doc.get("id"), e)
    summaries.sort(key=lambda s: s.created_at, reverse=True)
    return summaries[:limit]


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class JsonFileProposalRepository:
    """One ``<id>.json`` document per proposal under *root*."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, proposal_id: str) -> Path:
        if not _SAFE_ID_RE.match(proposal_id or ""):
            raise NotFoundError(f"Proposal not found: {proposal_id!r}")
        return self.root / f"{proposal_id}.json"

    def _load(self, path: Path) -> dict[str, Any]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise NotFoundError(f"Proposal not found: {path.stem!r}") from None
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

    def _write(self, path: Path, doc: dict[str, Any]) -> None:
        tmp = path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

    def create(self, proposal: ProposalAggregate) -> str:
        if not proposal.id:
            proposal.id = new_id()
        path = self._path(proposal.id)
        self._write(path, proposal.to_document())
        logger.debug("Created proposal %s", proposal.id)
        return proposal.id

    def read(self, proposal_id: str) -> ProposalAggregate:
        doc = self._load(self._path(proposal_id))
        try:
            return _from_document(doc)
        except SchemaError as e:
            raise PersistenceError(f"Stored proposal {proposal_id!r} is malformed: {e}") from e

    def update(self, proposal_id: str, fields: dict[str, Any]) -> ProposalAggregate:
        path = self._path(proposal_id)
        doc = self._load(path)
        doc.update(fields)
        doc["updatedAt"] = utcnow().isoformat()
        try:
            proposal = _from_document(doc)
        except SchemaError as e:
            raise PersistenceError(f"Update would corrupt proposal {proposal_id!r}: {e}") from e
        self._write(path, proposal.to_document())
        return proposal

    def list_summaries(self, limit: int = 20) -> list[ProposalSummary]:
        if not self.root.is_dir():
            return []
        docs: list[dict[str, Any]] = []
        for path in self.root.glob("*.json"):
            try:
                docs.append(self._load(path))
            except PersistenceError as e:
                logger.warning("Skipping unreadable proposal file: %s", e.message)
        return _newest_first(docs, limit)

    def delete(self, proposal_id: str) -> None:
        path = self._path(proposal_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError(f"Proposal not found: {proposal_id!r}") from None
        except OSError as e:
            raise PersistenceError(f"Cannot delete {path}: {e}") from e


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryProposalRepository:
    """Dict-backed store holding JSON documents, handy for tests and dry runs."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    def _doc(self, proposal_id: str) -> dict[str, Any]:
        try:
            return self.documents[proposal_id]
        except KeyError:
            raise NotFoundError(f"Proposal not found: {proposal_id!r}") from None

    def create(self, proposal: ProposalAggregate) -> str:
        if not proposal.id:
            proposal.id = new_id()
        self.documents[proposal.id] = proposal.to_document()
        return proposal.id

    def read(self, proposal_id: str) -> ProposalAggregate:
        return _from_document(json.loads(json.dumps(self._doc(proposal_id))))

    def update(self, proposal_id: str, fields: dict[str, Any]) -> ProposalAggregate:
        doc = {**self._doc(proposal_id), **json.loads(json.dumps(fields)), "updatedAt": utcnow().isoformat()}
        try:
            proposal = _from_document(doc)
        except SchemaError as e:
            raise PersistenceError(f"Update would corrupt proposal {proposal_id!r}: {e}") from e
        self.documents[proposal_id] = proposal.to_document()
        return proposal

    def list_summaries(self, limit: int = 20) -> list[ProposalSummary]:
        return _newest_first(list(self.documents.values()), limit)

    def delete(self, proposal_id: str) -> None:
        self._doc(proposal_id)
        del self.documents[proposal_id]
