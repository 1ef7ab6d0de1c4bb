"""Read-only access to the line editor's history.

Entries are addressed by position, 0 being the oldest. Out-of-range positions
return None rather than raising: a short history is a normal situation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol


class HistoryLog(Protocol):
    def get_entry(self, index: int) -> str | None: ...

    def __len__(self) -> int: ...


class ListHistory:
    """Immutable in-memory history snapshot."""

    def __init__(self, entries: Iterable[str] = ()) -> None:
        self._entries: tuple[str, ...] = tuple(entries)

    def get_entry(self, index: int) -> str | None:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ListHistory({list(self._entries)!r})"


class ReadlineHistory:
    """History kept by the standard ``readline`` module (1-based underneath)."""

    def __init__(self, readline_module: Any | None = None) -> None:
        if readline_module is None:
            import readline as readline_module

        self._readline = readline_module

    def get_entry(self, index: int) -> str | None:
        if index < 0 or index >= len(self):
            return None
        return self._readline.get_history_item(index + 1)

    def __len__(self) -> int:
        return self._readline.get_current_history_length()
