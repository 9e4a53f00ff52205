"""SectionDrafter agent: one-shot, non-streaming section drafts.

Used for server-side pre-generation (``mode=draft``); the reply goes through
the same extraction path as a streamed chat turn.
"""

from __future__ import annotations

import logging
from typing import Any

import autogen

from ..advancement import opening_line
from ..config import build_role_llm_config
from ..errors import AICollaboratorError
from ..models import BuilderConfig, ProposalAggregate, SectionKey
from ..sections import section_meta
from ..store import build_context
from .section_prompts import build_system_prompt

logger = logging.getLogger(__name__)


def make_section_drafter(
    config: BuilderConfig,
    proposal: ProposalAggregate,
    key: SectionKey,
) -> autogen.AssistantAgent:
    """Create the SectionDrafter agent primed with the proposal context for *key*."""
    return autogen.AssistantAgent(
        name="SectionDrafter",
        system_message=build_system_prompt(key, build_context(proposal, key), config.brand),
        llm_config=build_role_llm_config("drafter", config),
    )


def _reply_text(response: Any) -> str:
    """Extract the drafter's reply from an AG2 chat result."""
    if hasattr(response, "chat_history") and response.chat_history:
        last = response.chat_history[-1]
        return (last.get("content") or "") if isinstance(last, dict) else str(last)
    if hasattr(response, "summary") and response.summary:
        return str(response.summary)
    return ""


def draft_section(
    config: BuilderConfig,
    proposal: ProposalAggregate,
    key: SectionKey,
    instruction: str | None = None,
) -> str:
    """Ask the drafter for a full reply on *key* and return its text."""
    drafter = make_section_drafter(config, proposal, key)
    orchestrator = autogen.UserProxyAgent(
        name="Orchestrator",
        human_input_mode="NEVER",
        code_execution_config=False,
    )
    message = instruction or opening_line(proposal, key)
    logger.info("Drafting %s", section_meta(key).title)
    try:
        response = orchestrator.initiate_chat(drafter, message=message, max_turns=1, silent=True)
    except Exception as e:  # AG2 surfaces provider errors unwrapped
        raise AICollaboratorError(f"Draft of {key.value} failed: {e}") from e

    text = _reply_text(response)
    if not text.strip():
        raise AICollaboratorError(f"Draft of {key.value} came back empty")
    return text
