"""Drawing commands exchanged between the model relay and the whiteboard.

Commands stay plain JSON objects (dicts) tagged by ``type``; the TypedDicts
below only document their shape.
"""

import math
from typing import List, TypedDict, Union


COMMAND_TYPES = frozenset({"text", "equation", "line", "rect", "group"})


class TextCommand(TypedDict, total=False):
    type: str
    text: str
    x: float
    y: float
    fontSize: float
    color: str


class EquationCommand(TypedDict, total=False):
    type: str
    latex: str
    x: float
    y: float
    fontSize: float


class LineCommand(TypedDict, total=False):
    type: str
    points: List[float]
    strokeWidth: float


class RectCommand(TypedDict, total=False):
    type: str
    x: float
    y: float
    width: float
    height: float


class GroupCommand(TypedDict, total=False):
    type: str
    x: float
    y: float
    children: list


Command = Union[TextCommand, EquationCommand, LineCommand, RectCommand, GroupCommand]


def command_type(obj):
    if isinstance(obj, dict):
        tag = obj.get("type")
        if isinstance(tag, str):
            return tag
    return None


def is_command(obj, strict=True):
    """True when ``obj`` looks like a command.

    With ``strict`` the tag must be one of COMMAND_TYPES, otherwise any
    string tag is accepted.
    """
    tag = command_type(obj)
    if not tag:
        return False
    return tag in COMMAND_TYPES if strict else True


def number(value, default=0):
    """Coerce a finite JSON number, falling back to ``default`` for anything else."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return value
