"""Revision forking: derive a new draft version from a persisted proposal."""

from __future__ import annotations

import logging
from datetime import date

from .models import (
    BrandConfig,
    ProposalAggregate,
    ProposalStatus,
    SectionKey,
    SectionStatus,
    new_id,
    utcnow,
)
from .persistence import ProposalRepository
from .sections import ensure_sections, first_section, format_date

logger = logging.getLogger(__name__)


def fork_proposal(
    source: ProposalAggregate,
    today: date | None = None,
    brand: BrandConfig | None = None,
) -> ProposalAggregate:
    """Return an unsaved fork of *source*.

    Section data is deep-copied forward; every section's review state is reset.
    The cover page's ``version`` and ``date`` are rewritten for the new version.
    """
    version = source.version + 1
    forked = ensure_sections(source.model_copy(deep=True), brand)
    for section in forked.sections.values():
        section.status = SectionStatus.PENDING
        section.ai_generated = False
        section.user_modified = False

    cover = forked.sections[SectionKey.COVER_PAGE].data
    cover["version"] = f"{version}.0"
    cover["date"] = format_date(today)

    now = utcnow()
    return forked.model_copy(update={
        "id": "",
        "session_id": new_id(),
        "version": version,
        "parent_id": source.id,
        "status": ProposalStatus.DRAFT,
        "current_section": first_section(),
        "confirmed_sections": [],
        "created_at": now,
        "updated_at": now,
    })


def revise(
    repository: ProposalRepository,
    source_id: str,
    today: date | None = None,
    brand: BrandConfig | None = None,
) -> ProposalAggregate:
    """Fork the stored proposal *source_id* and persist the fork.

    Raises ``NotFoundError`` for an unknown source; nothing is written then.
    """
    source = repository.read(source_id)
    forked = fork_proposal(source, today=today, brand=brand)
    repository.create(forked)
    logger.info("Forked proposal %s v%d into %s v%d", source.id, source.version, forked.id, forked.version)
    return forked
