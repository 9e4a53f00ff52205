"""Best-effort extraction of section data from collaborator replies.

Model output is not a reliable JSON author, so parsing runs in tiers and is
lossy by nature:

1. a fenced ```json block
2. the outermost bare ``{...}`` span
3. section heuristics over plain text (cover-page key scraping, brief
   inference, introduction prose)

Each tier also tries a lightweight repair pass before giving up.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..errors import ParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BARE_RE = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# JSON tiers
# ---------------------------------------------------------------------------


def _attempt_repair(raw: str) -> str | None:
    """Lightweight repair for common LLM JSON mistakes."""
    txt = raw.strip()
    if not txt:
        return None
    if "{" in txt and "}" in txt:
        txt = txt[txt.find("{"):txt.rfind("}") + 1]
    txt = txt.replace("“", '"').replace("”", '"').replace("‘", "'").replace("’", "'")
    txt = re.sub(r",\s*([}\]])", r"\1", txt)
    return txt


def _loads_object(segment: str) -> dict[str, Any]:
    """Parse *segment* as a JSON object, repairing once on failure."""
    errors: list[str] = []
    for candidate in (segment.strip(), _attempt_repair(segment)):
        if not candidate:
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(str(e))
            continue
        if isinstance(value, dict):
            return value
        errors.append(f"expected an object, got {type(value).__name__}")
    raise ParseError("; ".join(errors) or "empty segment")


def parse_json_block(content: str) -> dict[str, Any]:
    """Locate and parse the section JSON object in *content*.

    A fenced block wins over a bare object when both are present.
    Raises :class:`ParseError` when no tier yields an object.
    """
    errors: list[str] = []

    fenced = _FENCE_RE.search(content)
    if fenced:
        try:
            return _loads_object(fenced.group(1))
        except ParseError as e:
            errors.append(f"fenced: {e.message}")

    bare = _BARE_RE.search(content)
    if bare:
        try:
            return _loads_object(bare.group(0))
        except ParseError as e:
            errors.append(f"bare: {e.message}")

    raise ParseError("; ".join(errors) or "no JSON object found")


def extract_json_block(content: str) -> dict[str, Any] | None:
    """Like :func:`parse_json_block` but returns ``None`` on a miss."""
    try:
        return parse_json_block(content)
    except ParseError as e:
        logger.debug("No JSON block in reply: %s", e.message)
        return None


def is_confirmation_ack(data: dict[str, Any]) -> bool:
    """True for an acknowledgement payload such as ``{"confirmed": true}``."""
    return set(data) == {"confirmed"} and data["confirmed"] is True


# ---------------------------------------------------------------------------
# Text heuristics
# ---------------------------------------------------------------------------

_CLIENT_KEY_RE = re.compile(r'"clientName"\s*:\s*"([^"]+)"')
_TITLE_KEY_RE = re.compile(r'"projectTitle"\s*:\s*"([^"]+)"')
_BRIEF_FOR_RE = re.compile(
    r"\bfor\s+([A-Z][A-Za-z0-9\s&.,-]{1,40}?)"
    r"(?:\s+(?:company|client|platform|app|website|portal|project)|[,.\n]|$)"
)


def extract_cover_page_from_text(
    content: str,
    project_brief: str = "",
    client_name: str = "",
    project_title: str = "",
) -> dict[str, str] | None:
    """Scrape cover-page fields from a reply that carried no parseable JSON.

    First looks for quoted ``"clientName": "..."`` and ``"projectTitle": "..."``
    pairs; failing that, and only while the proposal has no client name yet,
    infers one from a ``for <Name>`` phrase in the project brief.
    """
    client_match = _CLIENT_KEY_RE.search(content)
    title_match = _TITLE_KEY_RE.search(content)
    if client_match and title_match:
        return {"clientName": client_match.group(1), "projectTitle": title_match.group(1)}

    if project_brief and not client_name:
        for_match = _BRIEF_FOR_RE.search(project_brief)
        if for_match:
            return {"clientName": for_match.group(1).strip(), "projectTitle": project_title}
    return None


_TRAILING_QUESTIONS = (
    re.compile(r"\**does this introduction look good.*\Z", re.IGNORECASE | re.DOTALL),
    re.compile(r"\**would you like any changes.*\Z", re.IGNORECASE | re.DOTALL),
)


def extract_prose(content: str, min_length: int = 100) -> str | None:
    """Return the reply's prose minus the closing review question.

    ``None`` when what is left is not longer than *min_length* characters.
    """
    prose = content
    for pattern in _TRAILING_QUESTIONS:
        prose = pattern.sub("", prose)
    prose = prose.strip()
    return prose if len(prose) > min_length else None
