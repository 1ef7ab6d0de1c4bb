"""Readline completer that asks the model to finish the current line."""

from __future__ import annotations

import logging
from typing import Any

from aireadline.history import HistoryLog, ReadlineHistory
from aireadline.llm import AISession

logger = logging.getLogger("aireadline.completer")


class AICompleter:
    """``readline`` completer backed by an AISession.

    Readline calls ``complete(text, state)`` with increasing ``state`` until
    it gets None. The request is made on state 0 only; later states see the
    answer kept for that one key press.
    """

    def __init__(self, session: AISession, history: HistoryLog | None = None) -> None:
        self.session = session
        self.history = history
        self._matches: list[str] = []

    def complete(self, text: str, state: int) -> str | None:
        if state == 0:
            self._matches = []
            if text.strip():
                result = self.session.fetch(text, self.history)
                if result.ok and result.suggestion and result.suggestion.strip():
                    self._matches = [result.suggestion.strip()]
                elif result.error is not None:
                    logger.debug("No suggestion for %r: %s", text, result.error)
        if state < len(self._matches):
            return self._matches[state]
        return None


def install(session: AISession, readline_module: Any | None = None) -> AICompleter:
    """Bind Tab to AI completion of the whole line."""
    if readline_module is None:
        import readline as readline_module

    completer = AICompleter(session, ReadlineHistory(readline_module))
    # No delimiters: the completer always sees the whole line typed so far
    readline_module.set_completer_delims("")
    readline_module.set_completer(completer.complete)
    if "libedit" in (readline_module.__doc__ or ""):
        readline_module.parse_and_bind("bind ^I rl_complete")
    else:
        readline_module.parse_and_bind("tab: complete")
    return completer
