"""Deterministic tools: markdown layout, JSON extraction, SSE framing and document painters."""

from .json_extract import extract_json_block, is_confirmation_ack
from .markdown_layout import render_markdown, to_plain_text

__all__ = [
    "extract_json_block",
    "is_confirmation_ack",
    "render_markdown",
    "to_plain_text",
]
