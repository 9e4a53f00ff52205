"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from proposal_builder.advancement import AdvancementEngine
from proposal_builder.models import BuilderConfig, ChatRequest
from proposal_builder.orchestrator import ChatOrchestrator
from proposal_builder.persistence import InMemoryProposalRepository
from proposal_builder.store import ProposalStore
from proposal_builder.tools.sse import DONE_FRAME, encode_text


def sse_frames(text: str, chunk_size: int = 7) -> list[str]:
    """Split *text* into SSE text frames followed by the ``[DONE]`` sentinel."""
    frames = [encode_text(text[i:i + chunk_size]) for i in range(0, len(text), chunk_size)]
    return frames + [DONE_FRAME]


class ScriptedTransport:
    """Fake collaborator: replays one scripted reply per request.

    A reply may be a string (streamed in chunks), a list of raw SSE lines, or
    an exception raised when the turn opens.
    """

    def __init__(self, *replies: object) -> None:
        self.replies = list(replies)
        self.requests: list[ChatRequest] = []

    def stream(self, request: ChatRequest) -> Iterator[str]:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else "OK"
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            return iter(reply)
        return iter(sse_frames(str(reply)))


@pytest.fixture
def config() -> BuilderConfig:
    return BuilderConfig()


@pytest.fixture
def store(config: BuilderConfig) -> ProposalStore:
    s = ProposalStore(config.brand)
    s.init_proposal("p1")
    return s


@pytest.fixture
def repository(store: ProposalStore) -> InMemoryProposalRepository:
    repo = InMemoryProposalRepository()
    repo.create(store.proposal)
    return repo


@pytest.fixture
def make_orchestrator(store, repository, config):
    """Factory: orchestrator over the shared store with scripted replies."""

    def _make(*replies: object, **overrides) -> tuple[ChatOrchestrator, ScriptedTransport]:
        transport = ScriptedTransport(*replies)
        cfg = config.model_copy(update=overrides) if overrides else config
        orchestrator = ChatOrchestrator(
            store,
            transport,
            engine=AdvancementEngine(store),
            repository=repository,
            config=cfg,
        )
        return orchestrator, transport

    return _make
