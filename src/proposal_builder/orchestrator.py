"""Streaming chat orchestrator.

One turn runs ``Idle -> Sending -> Streaming -> Applying | Failed``:

- *Sending* builds a :class:`ChatRequest` from the current section, the
  context bundle (ground-truth section data included) and the history of the
  current section only.
- *Streaming* consumes the transport's SSE lines, appending every text chunk
  to a single placeholder assistant message.
- *Applying* runs JSON extraction over the whole reply once the stream has
  ended, merges the result into the store and auto-saves.
- *Failed* covers transport errors and in-stream error frames; section data
  is left untouched and a manual-entry request is returned instead.

At most one turn is in flight per session; a second ``send_message`` while
streaming is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .advancement import AdvancementEngine, start_message
from .agents.collaborator import ChatTransport
from .errors import AICollaboratorError, NotFoundError, PersistenceError
from .logging_config import NullCallbacks, SessionCallbacks
from .models import (
    BuilderConfig,
    ChatMessage,
    ChatRequest,
    HistoryEntry,
    ManualEntryRequest,
    ManualEntryTrigger,
    MessageRole,
    SectionKey,
    TurnResult,
    TurnState,
)
from .persistence import ProposalRepository, autosave_fields
from .sections import SECTION_SPECS, section_meta
from .store import ProposalStore, build_context
from .tools.json_extract import extract_cover_page_from_text, extract_json_block, extract_prose, is_confirmation_ack
from .tools.sse import parse_sse_lines

logger = logging.getLogger(__name__)


def failure_message(title: str, reason: str) -> str:
    return (
        f"Sorry, the AI assistant is unavailable right now ({reason}). "
        f"You can enter the {title} details manually and we'll move on."
    )


class ChatOrchestrator:
    """Drives chat turns for one session's store."""

    def __init__(
        self,
        store: ProposalStore,
        transport: ChatTransport,
        engine: AdvancementEngine | None = None,
        repository: ProposalRepository | None = None,
        config: BuilderConfig | None = None,
        callbacks: SessionCallbacks | None = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.engine = engine or AdvancementEngine(store)
        self.repository = repository
        self.config = config or BuilderConfig()
        self.callbacks = callbacks or NullCallbacks()
        self.offline = self.config.offline
        self.state = TurnState.IDLE
        self.closed = False

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def send_message(self, text: str) -> TurnResult:
        """Run one chat turn on the current section."""
        proposal = self.store.proposal
        if self.closed or proposal is None:
            return TurnResult(state=self.state, ignored=True)
        if self.store.is_streaming:
            logger.debug("Turn already in flight, ignoring input")
            return TurnResult(state=self.state, ignored=True)
        text = text.strip()
        if not text:
            return TurnResult(state=self.state, ignored=True)

        key = proposal.current_section
        if self.offline:
            return TurnResult(
                state=TurnState.IDLE,
                section_key=key,
                manual_entry=self.manual_entry_request(ManualEntryTrigger.OFFLINE, "Offline mode"),
            )

        # History is read before the new user message is added, so it is never sent twice
        request = ChatRequest.build(
            proposal_id=proposal.id,
            section_key=key,
            user_message=text,
            proposal_context=build_context(proposal, key),
            conversation_history=self.scoped_history(key),
        )

        self.state = TurnState.SENDING
        self.store.add_message(ChatMessage(role=MessageRole.USER, content=text, section_key=key))
        self.store.add_message(ChatMessage(role=MessageRole.ASSISTANT, content="", section_key=key))
        self.store.is_streaming = True
        self.callbacks.on_turn_start(key.value, text)

        try:
            content = self._consume(self.transport.stream(request))
        except AICollaboratorError as e:
            return self._fail(key, e.message or "AI collaborator error")
        finally:
            self.store.is_streaming = False

        if self.closed:
            return TurnResult(state=self.state, section_key=key, content=content, ignored=True)

        self.state = TurnState.APPLYING
        applied = self.apply_response(content, key)
        self.autosave()
        self.callbacks.on_turn_end(key.value, TurnState.APPLYING.value)
        self.state = TurnState.IDLE
        return TurnResult(state=TurnState.APPLYING, section_key=key, content=content, applied_data=applied)

    def _consume(self, lines: Iterable[str]) -> str:
        """Read the stream to its end, growing the placeholder message."""
        self.state = TurnState.STREAMING
        parts: list[str] = []
        events = parse_sse_lines(lines)
        for event in events:
            if self.closed:
                events.close()
                close = getattr(lines, "close", None)
                if close is not None:
                    close()
                break
            if event.kind == "text":
                parts.append(event.value)
                self.store.append_to_last_message(event.value)
                self.callbacks.on_chunk(event.value)
            elif event.kind == "error":
                raise AICollaboratorError(event.value)
        return "".join(parts)

    def _fail(self, key: SectionKey, reason: str) -> TurnResult:
        self.state = TurnState.FAILED
        logger.info("Chat turn on %s failed: %s", key.value, reason)
        content = self.store.messages[-1].content if self.store.messages else ""
        self.store.add_message(ChatMessage(
            role=MessageRole.ASSISTANT,
            content=failure_message(section_meta(key).title, reason),
            section_key=key,
        ))
        self.callbacks.on_error(reason)
        self.callbacks.on_turn_end(key.value, TurnState.FAILED.value)
        return TurnResult(
            state=TurnState.FAILED,
            section_key=key,
            content=content,
            error=reason,
            manual_entry=self.manual_entry_request(ManualEntryTrigger.ERROR, reason),
        )

    def scoped_history(self, key: SectionKey) -> list[HistoryEntry]:
        """Non-empty messages of *key*'s sub-conversation, newest ``history_limit`` kept."""
        entries = [
            HistoryEntry(role=m.role, content=m.content)
            for m in self.store.section_messages(key)
            if m.content.strip()
        ]
        limit = self.config.history_limit
        return entries[-limit:] if limit > 0 else []

    def start(self) -> TurnResult | None:
        """Send the session's opening message; no-op once a transcript exists."""
        proposal = self.store.proposal
        if proposal is None or self.store.messages:
            return None
        return self.send_message(start_message(proposal))

    def run_pending_turn(self) -> TurnResult | None:
        """Send the scheduled next-section opener, if any and nothing is streaming."""
        if self.store.is_streaming or self.closed:
            return None
        message = self.engine.take_pending()
        if message is None:
            return None
        return self.send_message(message)

    def close(self) -> None:
        """Stop consuming the current stream and stop touching session state."""
        self.closed = True

    # ------------------------------------------------------------------
    # Applying replies
    # ------------------------------------------------------------------

    def apply_response(self, content: str, key: SectionKey) -> dict[str, Any] | None:
        """Merge whatever section data *content* carries; returns what was merged."""
        proposal = self.store.proposal
        if proposal is None:
            return None

        data = extract_json_block(content)
        if data is not None and is_confirmation_ack(data):
            return None

        if key == SectionKey.COVER_PAGE:
            src = data if data is not None else extract_cover_page_from_text(
                content, proposal.project_brief, proposal.client_name, proposal.project_title,
            )
            if not src:
                return None
            if isinstance(src.get("clientName"), str):
                self.store.set_field("client_name", src["clientName"])
            if isinstance(src.get("projectTitle"), str):
                self.store.set_field("project_title", src["projectTitle"])
            self.store.merge_section_data(key, src, ai_generated=True)
            return src

        if data is None:
            prose_field = SECTION_SPECS[key].prose_field
            if prose_field is None:
                return None
            prose = extract_prose(content, self.config.intro_min_length)
            if prose is None:
                return None
            data = {prose_field: prose}

        self.store.merge_section_data(key, data, ai_generated=True)
        return data

    def apply_transcript(self) -> int:
        """Re-apply every stored assistant reply; returns how many merged data."""
        applied = 0
        for message in list(self.store.messages):
            if message.role == MessageRole.ASSISTANT and message.section_key and message.content:
                if self.apply_response(message.content, message.section_key) is not None:
                    applied += 1
        return applied

    # ------------------------------------------------------------------
    # Manual entry and confirmation
    # ------------------------------------------------------------------

    def manual_entry_request(self, trigger: ManualEntryTrigger, reason: str = "") -> ManualEntryRequest | None:
        proposal = self.store.proposal
        if proposal is None:
            return None
        key = proposal.current_section
        return ManualEntryRequest(
            section_key=key,
            trigger=trigger,
            initial_data=dict(proposal.sections[key].data),
            reason=reason,
        )

    def submit_manual_entry(self, data: dict[str, Any], trigger: ManualEntryTrigger) -> TurnResult | None:
        """Merge hand-entered data into the current section.

        After a failed turn the section is also confirmed and the next section
        opened; in offline mode the user still has to confirm explicitly.
        """
        proposal = self.store.proposal
        if proposal is None or self.closed:
            return None
        key = proposal.current_section
        self.store.merge_section_data(key, data)
        self.state = TurnState.IDLE
        if trigger == ManualEntryTrigger.ERROR:
            return self.confirm_section(key)
        self.autosave()
        return None

    def confirm_section(self, key: SectionKey | None = None) -> TurnResult | None:
        """Confirm *key* (default: current), save, then run the scheduled opener."""
        proposal = self.store.proposal
        if proposal is None or self.closed:
            return None
        key = key or proposal.current_section
        scheduled = self.engine.confirm(key)
        self.callbacks.on_section_confirmed(key.value, proposal.current_section.value if scheduled else None)
        self.autosave()
        return self.run_pending_turn()

    def autosave(self) -> None:
        """Best-effort PATCH of the aggregate; failures are logged and dropped."""
        proposal = self.store.proposal
        if self.repository is None or proposal is None or self.closed:
            return
        self.store.is_saving = True
        try:
            self.repository.update(proposal.id, autosave_fields(proposal))
        except (PersistenceError, NotFoundError) as e:
            logger.warning("Auto-save of proposal %s failed: %s", proposal.id, e.message)
            self.callbacks.on_warning(f"Auto-save failed: {e.message}")
        finally:
            self.store.is_saving = False
