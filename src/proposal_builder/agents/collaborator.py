"""AI collaborator transports.

A transport turns one :class:`ChatRequest` into an iterator of SSE lines
(``data: {"text": ...}`` frames ending with ``data: [DONE]``). The orchestrator
is the single consumer; stopping iteration is how a turn is cancelled.

- :class:`LLMChatTransport` calls an OpenAI-compatible chat completions API
  in-process (Groq by default, Azure OpenAI supported).
- :class:`HttpChatTransport` posts to a remote ``/api/chat`` SSE endpoint.

Connection failures, timeouts and non-2xx statuses raise
:class:`AICollaboratorError`; failures after the stream has started arrive
as an error frame.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Protocol

import openai
import requests
from openai import AzureOpenAI, OpenAI

from ..config import build_role_llm_config
from ..errors import AICollaboratorError
from ..models import BuilderConfig, ChatRequest
from ..tools.sse import frames_from_deltas
from .section_prompts import build_messages

logger = logging.getLogger(__name__)


class ChatTransport(Protocol):
    """Streams the collaborator's reply to one request as SSE lines."""

    def stream(self, request: ChatRequest) -> Iterator[str]: ...


# ---------------------------------------------------------------------------
# In-process LLM transport
# ---------------------------------------------------------------------------


def make_openai_client(entry: dict[str, Any], timeout: float) -> OpenAI:
    """Build an SDK client from one AG2 ``config_list`` entry."""
    if entry.get("api_type") == "azure":
        return AzureOpenAI(
            api_key=entry["api_key"],
            api_version=entry.get("api_version") or None,
            azure_endpoint=entry["azure_endpoint"],
            timeout=timeout,
        )
    return OpenAI(api_key=entry["api_key"], base_url=entry.get("base_url"), timeout=timeout)


class LLMChatTransport:
    """Streams chat completions straight from the LLM provider."""

    def __init__(self, config: BuilderConfig, client: OpenAI | None = None) -> None:
        self.config = config
        llm_config = build_role_llm_config("writer", config)
        self.entry = llm_config["config_list"][0]
        self.client = client or make_openai_client(self.entry, llm_config["timeout"])

    def _deltas(self, request: ChatRequest) -> Iterator[str]:
        try:
            response = self.client.chat.completions.create(
                model=self.entry.get("azure_deployment") or self.entry["model"],
                messages=build_messages(request, self.config.brand),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                stream=True,
            )
        except openai.OpenAIError as e:
            raise AICollaboratorError(f"LLM request failed: {e}") from e

        for chunk in response:
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                yield text

    def stream(self, request: ChatRequest) -> Iterator[str]:
        logger.debug("LLM turn on %s (%d history messages)",
                     request.section_key.value, len(request.conversation_history))
        deltas = self._deltas(request)
        # Opening failures surface as exceptions, mid-stream ones as an error frame
        try:
            first = next(deltas)
        except StopIteration:
            return frames_from_deltas(())
        except AICollaboratorError:
            raise
        except Exception as e:
            raise AICollaboratorError(f"LLM stream failed: {e}") from e
        return frames_from_deltas(_prepend(first, deltas))


def _prepend(first: str, rest: Iterator[str]) -> Iterator[str]:
    yield first
    yield from rest


# ---------------------------------------------------------------------------
# Remote SSE transport
# ---------------------------------------------------------------------------


class HttpChatTransport:
    """Posts the request to a remote chat endpoint and relays its SSE lines."""

    def __init__(self, endpoint: str, timeout: float = 120, session: requests.Session | None = None) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def stream(self, request: ChatRequest) -> Iterator[str]:
        payload = request.model_dump(mode="json", by_alias=True)
        try:
            response = self.session.post(self.endpoint, json=payload, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise AICollaboratorError(f"Chat endpoint unreachable: {e}") from e

        if not response.ok:
            detail = response.text[:200]
            response.close()
            raise AICollaboratorError(f"Chat API error: HTTP {response.status_code} {detail}".strip())
        return self._lines(response)

    def _lines(self, response: requests.Response) -> Iterator[str]:
        try:
            for line in response.iter_lines(decode_unicode=True):
                if line:
                    yield line
        except requests.RequestException as e:
            raise AICollaboratorError(f"Chat stream interrupted: {e}") from e
        finally:
            response.close()


def make_transport(config: BuilderConfig) -> ChatTransport:
    """Remote endpoint when ``chat_endpoint`` is set, otherwise the in-process LLM."""
    if config.chat_endpoint:
        return HttpChatTransport(config.chat_endpoint, timeout=config.timeout)
    return LLMChatTransport(config)
