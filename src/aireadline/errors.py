"""Exception hierarchy for ai-readline."""

from __future__ import annotations


class AIReadlineError(Exception):
    pass


class ConfigError(AIReadlineError):
    """The configuration file is unreadable or holds invalid values."""


class InitializationError(AIReadlineError):
    """The HTTP session could not be set up. Fatal to the caller."""


class SuggestionError(AIReadlineError):
    """A single suggestion request failed; the caller may retry or give up."""


class TransportError(SuggestionError):
    pass


class RemoteError(SuggestionError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code


class ResponseFormatError(SuggestionError):
    pass
