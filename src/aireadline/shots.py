"""Per-program n-shot examples.

Each program (``bash``, ``psql``, ``gdb``, ...) may carry up to
``NPROMPTS`` example exchanges that steer the model towards that program's
syntax.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aireadline.errors import ConfigError

if TYPE_CHECKING:
    from aireadline.config import AIReadlineConfig

logger = logging.getLogger("aireadline.shots")

# Number of supported n-shot prompts per program
NPROMPTS = 3


@dataclass(frozen=True)
class Shot:
    """An example exchange. Either side may be missing."""

    user: str | None = None
    assistant: str | None = None


@dataclass(frozen=True)
class ShotSet:
    program: str
    shots: tuple[Shot, ...] = ()

    def __post_init__(self) -> None:
        if len(self.shots) > NPROMPTS:
            raise ValueError(f"At most {NPROMPTS} shots per program, got {len(self.shots)}")


def find_shots(config: AIReadlineConfig, program_name: str) -> ShotSet | None:
    """Return the shot set configured for ``program_name``, if any."""
    return config.shots.get(program_name)


def _optional_text(value: Any, where: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{where} must be a string, got {type(value).__name__}")
    return value


def shots_from_dict(raw: Mapping[str, Any]) -> dict[str, ShotSet]:
    """Build shot sets from the ``[shots]`` table of the config file.

    Expected layout::

        [[shots.bash]]
        user = "List files by size"
        assistant = "ls -lS"

    Entries past ``NPROMPTS`` are dropped with a warning.
    """
    result: dict[str, ShotSet] = {}
    for program, entries in raw.items():
        if not isinstance(entries, list):
            raise ConfigError(f"shots.{program} must be an array of tables")
        if len(entries) > NPROMPTS:
            logger.warning(
                "shots.%s has %d entries; only the first %d are used",
                program, len(entries), NPROMPTS,
            )
        shots = []
        for i, entry in enumerate(entries[:NPROMPTS]):
            if not isinstance(entry, dict):
                raise ConfigError(f"shots.{program}[{i}] must be a table")
            shots.append(Shot(
                user=_optional_text(entry.get("user"), f"shots.{program}[{i}].user"),
                assistant=_optional_text(
                    entry.get("assistant"), f"shots.{program}[{i}].assistant"
                ),
            ))
        result[program] = ShotSet(program=program, shots=tuple(shots))
    return result
