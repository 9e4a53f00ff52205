"""Tests for agents/collaborator.py: LLM and HTTP SSE transports."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import openai
import pytest
import requests

from proposal_builder.agents.collaborator import (
    HttpChatTransport,
    LLMChatTransport,
    make_transport,
)
from proposal_builder.errors import AICollaboratorError
from proposal_builder.models import BuilderConfig, ChatRequest, ManualEntryTrigger, SectionKey, TurnState
from proposal_builder.orchestrator import ChatOrchestrator
from proposal_builder.tools.sse import DONE_FRAME, encode_error, encode_text, parse_sse_lines


@pytest.fixture
def request_():
    return ChatRequest(proposal_id="p1", section_key=SectionKey.SLA, user_message="Show the SLA")


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class TestLLMChatTransport:
    def _transport(self, client, **config):
        return LLMChatTransport(BuilderConfig(**config), client=client)

    def test_streams_deltas_as_frames(self, request_):
        client = MagicMock()
        client.chat.completions.create.return_value = iter([_chunk("Hel"), _chunk(None), _chunk("lo")])
        frames = list(self._transport(client).stream(request_))
        assert frames == [encode_text("Hel"), encode_text("lo"), DONE_FRAME]

    def test_request_parameters(self, request_):
        client = MagicMock()
        client.chat.completions.create.return_value = iter([_chunk("ok")])
        list(self._transport(client, temperature=0.2, max_tokens=512).stream(request_))
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-oss-20b"
        assert kwargs["stream"] is True
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 512
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][-1] == {"role": "user", "content": "Show the SLA"}

    def test_writer_model_used(self, request_):
        client = MagicMock()
        client.chat.completions.create.return_value = iter([_chunk("ok")])
        list(self._transport(client, models={"writer": "big-model"}).stream(request_))
        assert client.chat.completions.create.call_args.kwargs["model"] == "big-model"

    def test_opening_failure_raises(self, request_):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("invalid api key")
        with pytest.raises(AICollaboratorError, match="invalid api key"):
            self._transport(client).stream(request_)

    def test_mid_stream_failure_is_error_frame(self, request_):
        def chunks():
            yield _chunk("partial")
            raise RuntimeError("connection dropped")

        client = MagicMock()
        client.chat.completions.create.return_value = chunks()
        frames = list(self._transport(client).stream(request_))
        assert frames == [encode_text("partial"), encode_error("connection dropped")]

    def test_failure_before_first_chunk_raises(self, request_):
        def chunks():
            raise TimeoutError("read timed out")
            yield  # pragma: no cover

        client = MagicMock()
        client.chat.completions.create.return_value = chunks()
        with pytest.raises(AICollaboratorError, match="read timed out"):
            self._transport(client).stream(request_)

    def test_timeout_before_first_chunk_fails_the_turn(self, store):
        def chunks():
            raise TimeoutError("read timed out")
            yield  # pragma: no cover

        client = MagicMock()
        client.chat.completions.create.return_value = chunks()
        orch = ChatOrchestrator(store, self._transport(client))

        result = orch.send_message("hello")

        assert result.state == TurnState.FAILED
        assert "read timed out" in result.error
        assert result.manual_entry.trigger == ManualEntryTrigger.ERROR

    def test_empty_reply(self, request_):
        client = MagicMock()
        client.chat.completions.create.return_value = iter([])
        assert list(self._transport(client).stream(request_)) == [DONE_FRAME]


class TestHttpChatTransport:
    def _response(self, ok=True, status=200, lines=()):
        response = MagicMock()
        response.ok = ok
        response.status_code = status
        response.text = "Server exploded"
        response.iter_lines.return_value = iter(lines)
        return response

    def test_relays_lines(self, request_):
        session = MagicMock()
        session.post.return_value = self._response(lines=[encode_text("a"), "", DONE_FRAME])
        transport = HttpChatTransport("http://localhost:3000/api/chat", timeout=5, session=session)

        events = list(parse_sse_lines(transport.stream(request_)))

        assert [e.kind for e in events] == ["text", "done"]
        args, kwargs = session.post.call_args
        assert args == ("http://localhost:3000/api/chat",)
        assert kwargs["json"]["proposalId"] == "p1"
        assert kwargs["json"]["sectionKey"] == "sla"
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 5

    def test_http_error_status(self, request_):
        session = MagicMock()
        session.post.return_value = self._response(ok=False, status=500)
        transport = HttpChatTransport("http://x/api/chat", session=session)
        with pytest.raises(AICollaboratorError, match="HTTP 500"):
            transport.stream(request_)

    def test_unreachable(self, request_):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        transport = HttpChatTransport("http://x/api/chat", session=session)
        with pytest.raises(AICollaboratorError, match="unreachable"):
            transport.stream(request_)

    def test_response_closed_after_stream(self, request_):
        session = MagicMock()
        response = self._response(lines=[DONE_FRAME])
        session.post.return_value = response
        list(HttpChatTransport("http://x/api/chat", session=session).stream(request_))
        response.close.assert_called_once()


class TestMakeTransport:
    def test_endpoint_selects_http(self):
        transport = make_transport(BuilderConfig(chat_endpoint="http://localhost:3000/api/chat"))
        assert isinstance(transport, HttpChatTransport)

    def test_default_is_llm(self):
        transport = make_transport(BuilderConfig(llm={"api_key": "test", "endpoint": "https://api.groq.com/openai/v1"}))
        assert isinstance(transport, LLMChatTransport)
