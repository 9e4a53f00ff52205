"""Guided, section-by-section proposal authoring with an AI collaborator."""

__version__ = "0.1.0"
