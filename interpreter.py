"""Turn drawing commands into drawable descriptors.

Groups are flattened: every descriptor carries absolute canvas coordinates,
the group origins along the way already added in.
"""

import logging
from typing import Iterable

from commands import Command, command_type, number
from drawables import LineDrawable, RectDrawable, TextDrawable
from equation_renderer import EquationRenderer
from math_spans import detect_math, split_math


logger = logging.getLogger(__name__)

TEXT_X = 20
TEXT_FONT_SIZE = 16
EQUATION_FONT_SIZE = 18
STROKE_WIDTH = 2
TEXT_COLOR = "#000"

# Rough glyph advance relative to the font size.
CHAR_WIDTH = 0.6
MATH_CHAR_WIDTH = 0.5
MIN_MATH_WIDTH = 20


def text_width(text, font_size):
    return len(text) * font_size * CHAR_WIDTH


def math_width(latex, font_size):
    return max(MIN_MATH_WIDTH, len(latex) * font_size * MATH_CHAR_WIDTH)


class Interpreter:
    """Dispatches commands by their ``type`` tag.

    ``typeset(latex, x, y, font_size)`` returns the drawable for a formula.
    It defaults to a synchronous :class:`EquationRenderer`; the board
    passes a hook that returns a placeholder and typesets in the background.
    """

    def __init__(self, typeset=None):
        if typeset is None:
            typeset = EquationRenderer().render
        self.typeset = typeset
        self._handlers = {
            "text": self._text,
            "equation": self._equation,
            "line": self._line,
            "rect": self._rect,
            "group": self._group,
        }

    def interpret(self, commands: Iterable[Command], origin=(0, 0)):
        drawables = []
        for command in commands:
            drawables.extend(self.interpret_one(command, origin))
        return drawables

    def interpret_one(self, command: Command, origin=(0, 0)):
        handler = self._handlers.get(command_type(command))
        if handler is None:
            logger.debug("Skipping unknown command: %r", command)
            return []
        return handler(command, origin)

    def _text(self, command, origin):
        text = command.get("text")
        if not isinstance(text, str) or not text:
            return []
        x = origin[0] + (number(command.get("x")) or TEXT_X)
        y = origin[1] + number(command.get("y"))
        font_size = number(command.get("fontSize")) or TEXT_FONT_SIZE
        color = command.get("color")
        if not isinstance(color, str) or not color:
            color = TEXT_COLOR

        spans = detect_math(text)
        if not spans:
            return [TextDrawable(text, x, y, font_size, color)]

        drawables = []
        cursor = x
        for kind, content in split_math(text, spans):
            if kind == "math":
                drawables.append(self.typeset(content, cursor, y, font_size))
                cursor += math_width(content, font_size)
            elif content.strip():
                drawables.append(TextDrawable(content, cursor, y, font_size, color))
                cursor += text_width(content, font_size)
        return drawables

    def _equation(self, command, origin):
        latex = command.get("latex") or command.get("text")
        if not isinstance(latex, str) or not latex:
            return []
        x = origin[0] + number(command.get("x"))
        y = origin[1] + number(command.get("y"))
        font_size = number(command.get("fontSize")) or EQUATION_FONT_SIZE
        return [self.typeset(latex, x, y, font_size)]

    def _line(self, command, origin):
        points = command.get("points")
        if not isinstance(points, list):
            return []
        coords = [number(p) for p in points]
        if len(coords) % 2:
            coords.pop()
        if len(coords) < 4:
            return []
        shifted = tuple(
            c + origin[i % 2] for i, c in enumerate(coords)
        )
        width = number(command.get("strokeWidth")) or STROKE_WIDTH
        return [LineDrawable(shifted, width)]

    def _rect(self, command, origin):
        width = number(command.get("width"))
        height = number(command.get("height"))
        if width < 0 or height < 0:
            return []
        return [RectDrawable(
            origin[0] + number(command.get("x")),
            origin[1] + number(command.get("y")),
            width, height, STROKE_WIDTH,
        )]

    def _group(self, command, origin):
        children = command.get("children")
        if not isinstance(children, list):
            return []
        inner = (
            origin[0] + number(command.get("x")),
            origin[1] + number(command.get("y")),
        )
        return self.interpret(children, inner)


def interpret(commands, typeset=None):
    return Interpreter(typeset).interpret(commands)
