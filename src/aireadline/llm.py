"""Synchronous chat-completion client for ai-readline.

One ``AISession`` per process owns the HTTP client and the per-session prompt
state. ``AISession.fetch`` runs the whole pipeline: assemble the
conversation, POST it, and pull the suggestion out of the reply.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from aireadline.config import AIReadlineConfig
from aireadline.context import assemble
from aireadline.errors import (
    InitializationError,
    RemoteError,
    ResponseFormatError,
    SuggestionError,
    TransportError,
)
from aireadline.history import HistoryLog
from aireadline.prompts import render_system_role, short_program_name

logger = logging.getLogger("aireadline.llm")


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one suggestion request: either a suggestion or an error."""

    suggestion: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AISession:
    """Connection handle plus the prompt state fixed at start-up.

    Not safe for concurrent use from several threads.
    """

    def __init__(
        self,
        config: AIReadlineConfig,
        program_name: str,
        client: httpx.Client,
    ) -> None:
        self.config = config
        self.program_name = program_name
        self.authorization = f"Bearer {config.provider.api_key}"
        self.system_role = render_system_role(config.prompt.system, program_name)
        self.client = client

    @classmethod
    def create(
        cls,
        config: AIReadlineConfig,
        program_name: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> AISession:
        """Set up the session; raises InitializationError if the client fails."""
        name = program_name or short_program_name()
        try:
            client = httpx.Client(
                http2=True,
                timeout=httpx.Timeout(config.provider.timeout),
                transport=transport,
            )
        except Exception as e:
            raise InitializationError(f"Cannot set up HTTP client: {e}") from e
        logger.debug("Session initialized for %s", name)
        return cls(config, name, client)

    def close(self) -> None:
        if not self.client.is_closed:
            self.client.close()

    def __enter__(self) -> AISession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch(
        self,
        prompt: str,
        history: HistoryLog | None = None,
        history_length: int | None = None,
    ) -> FetchResult:
        """Ask the model to complete ``prompt``.

        Failures never propagate: they are logged and returned in the result
        so the editing session carries on without a suggestion.
        """
        if history_length is None:
            history_length = len(history) if history is not None else 0

        try:
            body = assemble(self.config, self, prompt, history, history_length)
            if self.config.verbose:
                logger.debug("Request body: %s", body)
            raw = dispatch(self, self.config.provider.endpoint, self.authorization, body)
            if self.config.verbose:
                logger.debug("Response body: %s", raw)
            return FetchResult(suggestion=extract_content(raw))
        except SuggestionError as e:
            logger.debug("Suggestion request failed: %s", e)
            return FetchResult(error=e)
        except Exception as e:
            logger.exception("Unexpected error while fetching a suggestion")
            return FetchResult(error=e)


def _remote_error_message(response: httpx.Response) -> str:
    """Return the provider's error message, or the start of the raw body."""
    try:
        data = response.json()
        message = data["error"]["message"]
        if isinstance(message, str):
            return message
    except (ValueError, KeyError, TypeError):
        pass
    return response.text[:200] or response.reason_phrase


def dispatch(session: AISession, endpoint: str, auth: str, body: str) -> str:
    """POST ``body`` to ``endpoint`` and return the raw response text.

    Raises TransportError for network-level failures and RemoteError for
    non-2xx replies. No retries.
    """
    try:
        response = session.client.post(
            endpoint,
            content=body.encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": auth,
            },
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise TransportError(f"API call to {endpoint} failed: {e}") from e

    if not response.is_success:
        raise RemoteError(response.status_code, _remote_error_message(response))
    return response.text


def _expect(node: Any, kind: type, path: str) -> Any:
    if not isinstance(node, kind):
        found = "nothing" if node is None else type(node).__name__
        raise ResponseFormatError(f"expected {kind.__name__} at {path}, found {found}")
    return node


def extract_content(raw_response: str) -> str:
    """Return ``choices[0].message.content`` from a chat-completion reply."""
    try:
        root = json.loads(raw_response)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(
            f"invalid JSON on line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e

    root = _expect(root, dict, "response")
    choices = _expect(root.get("choices"), list, "choices")
    if not choices:
        raise ResponseFormatError("expected at least one element in choices")
    first = _expect(choices[0], dict, "choices[0]")
    message = _expect(first.get("message"), dict, "choices[0].message")
    return _expect(message.get("content"), str, "choices[0].message.content")
