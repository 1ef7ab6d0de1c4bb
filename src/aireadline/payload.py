"""Chat request body builder.

Turns are accumulated as typed objects and only turned into text by
``serialize``, which goes through ``json.dumps``. Runtime strings (shots,
history lines, the live prompt) are never spliced into JSON syntax by hand.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})


@dataclass(frozen=True)
class Turn:
    """One role-tagged message of the conversation."""

    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """Chat-completion request for an OpenAI-style endpoint."""

    model: str
    temperature: float
    turns: list[Turn] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [turn.as_message() for turn in self.turns],
        }

    def serialize(self) -> str:
        # ASCII output escapes lone surrogates as \udcXX; NaN and Infinity raise ValueError
        return json.dumps(self.to_dict(), allow_nan=False)
