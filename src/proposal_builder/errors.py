"""Error taxonomy for the proposal builder.

``ValidationError`` and ``NotFoundError`` surface straight to the caller.
``AICollaboratorError`` is caught by the chat orchestrator and turned into the
manual-entry fallback. ``PersistenceError`` is swallowed during auto-save.
``ParseError`` is never fatal; extraction falls back to text heuristics.
"""

from __future__ import annotations


class ProposalError(Exception):
    """Base class for all proposal builder errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ProposalError):
    """Malformed inbound request shape or illegal state transition request."""


class NotFoundError(ProposalError):
    """Missing proposal aggregate or section."""


class AICollaboratorError(ProposalError):
    """Network failure, timeout, non-2xx status or in-stream error payload."""


class PersistenceError(ProposalError):
    """Document store read or write failure."""


class ParseError(ProposalError):
    """No usable JSON payload could be extracted from model output."""
