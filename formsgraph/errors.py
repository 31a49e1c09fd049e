"""Exception hierarchy for FormsGraph."""

from __future__ import annotations


class FormsGraphError(Exception):
    """Base class for errors surfaced to the user."""


class FormsXmlError(FormsGraphError):
    """Raised when a Forms XML export cannot be read."""


class ConfigError(FormsGraphError):
    """Raised for invalid configuration keys or values."""
