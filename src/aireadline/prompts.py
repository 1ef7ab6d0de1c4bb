"""System-role template handling.

The template names the program being edited through a single ``{program}``
slot, filled once per session.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

PROGRAM_SLOT = "{program}"

DEFAULT_SYSTEM_TEMPLATE = """\
You are an assistant who provides expert help on {program}.
The user is typing a command line for it and wants you to complete it.
RULES:
- Return ONLY the text of the completed command line
- NO explanations, NO markdown, NO commentary
- If unsure, return an empty string"""


def count_slots(template: str) -> int:
    return template.count(PROGRAM_SLOT)


def render_system_role(template: str, program_name: str) -> str:
    """Fill the ``{program}`` slot of ``template``.

    Other braces in the template are left alone.
    """
    return template.replace(PROGRAM_SLOT, program_name)


def short_program_name(argv0: str | None = None) -> str:
    """Return the short name of the running program.

    Login shells are started as ``-bash``; script entry points end in ``.py``.
    """
    if argv0 is None:
        argv0 = sys.argv[0] if sys.argv and sys.argv[0] else "python"
    name = os.path.basename(argv0).lstrip("-")
    if name.endswith(".py"):
        name = Path(name).stem
    return name or "python"
