"""
Error types raised by the Card Query service layer.

Routes and the stream writer translate these into HTTP responses or
in-stream error envelopes; nothing here knows about HTTP.
"""

from typing import Optional


class CardQueryError(Exception):
    """Base class for all Card Query service errors."""


class LLMProviderError(CardQueryError):
    """The LLM provider call failed (network, quota, SDK error)."""


class LLMNotConfiguredError(LLMProviderError):
    """No API key was configured for the LLM provider."""


class LLMOutputParseError(CardQueryError):
    """The LLM response could not be turned into a JSON object."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class DatasetError(CardQueryError):
    """The card dataset is missing, malformed, or contains duplicate names."""
