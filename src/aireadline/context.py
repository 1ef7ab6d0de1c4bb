"""Conversation assembly for suggestion requests.

Turn order matters to the provider and is fixed:

1. the system role,
2. the program's n-shot examples, user before assistant within each slot,
3. the trailing history window, oldest first,
4. the live prompt.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aireadline.history import HistoryLog
from aireadline.payload import ChatRequest, Turn
from aireadline.safety import sanitize_text
from aireadline.shots import ShotSet, find_shots

if TYPE_CHECKING:
    from aireadline.config import AIReadlineConfig
    from aireadline.llm import AISession

logger = logging.getLogger("aireadline.context")


def shot_turns(shots: ShotSet | None) -> list[Turn]:
    turns: list[Turn] = []
    if shots is None:
        return turns
    for shot in shots.shots:
        if shot.user is not None:
            turns.append(Turn("user", shot.user))
        if shot.assistant is not None:
            turns.append(Turn("assistant", shot.assistant))
    return turns


def history_turns(
    history: HistoryLog | None,
    history_length: int,
    depth: int,
    redact: bool = True,
) -> list[Turn]:
    """Return up to ``depth`` trailing history entries as user turns.

    Entries are taken from positions ``history_length - depth`` through
    ``history_length - 1`` and emitted in that order. Positions the log does
    not hold are skipped.
    """
    turns: list[Turn] = []
    if history is None:
        return turns
    for i in range(depth - 1, -1, -1):
        index = history_length - 1 - i
        if index < 0:
            continue
        line = history.get_entry(index)
        if line is None:
            continue
        turns.append(Turn("user", sanitize_text(line) if redact else line))
    return turns


def assemble_turns(
    system_role: str,
    shots: ShotSet | None,
    history: HistoryLog | None,
    history_length: int,
    depth: int,
    prompt: str,
    redact_history: bool = True,
) -> list[Turn]:
    turns = [Turn("system", system_role)]
    turns.extend(shot_turns(shots))
    turns.extend(history_turns(history, history_length, depth, redact=redact_history))
    turns.append(Turn("user", prompt))
    return turns


def build_request(
    config: AIReadlineConfig,
    session: AISession,
    prompt: str,
    history: HistoryLog | None,
    history_length: int,
) -> ChatRequest:
    turns = assemble_turns(
        system_role=session.system_role,
        shots=find_shots(config, session.program_name),
        history=history,
        history_length=history_length,
        depth=config.prompt.context,
        prompt=prompt,
        redact_history=config.prompt.redact_history,
    )
    logger.debug(
        "Assembled %d turns for %s (context depth %d)",
        len(turns), session.program_name, config.prompt.context,
    )
    return ChatRequest(
        model=config.provider.model,
        temperature=config.provider.temperature,
        turns=turns,
    )


def assemble(
    config: AIReadlineConfig,
    session: AISession,
    prompt: str,
    history: HistoryLog | None,
    history_length: int,
) -> str:
    """Return the serialized request body for ``prompt``."""
    return build_request(config, session, prompt, history, history_length).serialize()
