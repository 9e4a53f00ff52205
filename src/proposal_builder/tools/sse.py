"""Server-sent-event framing for the collaborator stream.

Wire format, one event per ``data:`` line:

- ``data: {"text": "..."}``  appended reply text
- ``data: {"error": "..."}`` stream-level failure, aborts the turn
- ``data: [DONE]``           end of stream
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"
DONE_FRAME = f"{DATA_PREFIX}{DONE_TOKEN}"


def encode_text(text: str) -> str:
    return f"{DATA_PREFIX}{json.dumps({'text': text})}"


def encode_error(message: str) -> str:
    return f"{DATA_PREFIX}{json.dumps({'error': message})}"


def frames_from_deltas(deltas: Iterable[str]) -> Iterator[str]:
    """Wrap raw text deltas into SSE frames, ending with ``[DONE]``.

    An exception raised by *deltas* becomes a single error frame; no ``[DONE]``
    follows it.
    """
    try:
        for delta in deltas:
            if delta:
                yield encode_text(delta)
    except Exception as e:  # noqa: BLE001 - surfaced to the consumer as an error frame
        logger.debug("Collaborator stream failed: %s", e)
        yield encode_error(str(e) or "Stream error")
        return
    yield DONE_FRAME


@dataclass(frozen=True)
class StreamEvent:
    kind: Literal["text", "error", "done"]
    value: str = ""


def parse_sse_lines(lines: Iterable[str]) -> Iterator[StreamEvent]:
    """Decode SSE lines into events, stopping at ``[DONE]`` or the first error.

    Lines without the ``data:`` prefix and undecodable payloads are skipped.
    A frame may carry several newline-separated lines.
    """
    for frame in lines:
        for line in frame.split("\n"):
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_TOKEN:
                yield StreamEvent("done")
                return
            try:
                parsed = json.loads(payload)
            except json.JSONDecodeError:
                logger.debug("Skipping partial SSE payload: %r", payload[:80])
                continue
            if not isinstance(parsed, dict):
                continue
            if parsed.get("error"):
                yield StreamEvent("error", str(parsed["error"]))
                return
            text = parsed.get("text")
            if text:
                yield StreamEvent("text", str(text))
