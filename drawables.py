"""Drawable descriptors: what to paint and where, in absolute canvas pixels."""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class TextDrawable:
    text: str
    x: float
    y: float
    font_size: float = 16
    color: str = "#000"
    italic: bool = False
    kind: str = field(default="text", init=False)

    def to_dict(self):
        return {
            "kind": self.kind, "text": self.text, "x": self.x, "y": self.y,
            "fontSize": self.font_size, "color": self.color,
            "italic": self.italic,
        }


@dataclass(frozen=True)
class EquationDrawable:
    latex: str
    x: float
    y: float
    font_size: float
    png: bytes = field(repr=False)
    width: int = 0
    height: int = 0
    kind: str = field(default="equation", init=False)

    def to_dict(self):
        return {
            "kind": self.kind, "latex": self.latex, "x": self.x, "y": self.y,
            "fontSize": self.font_size, "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class PendingEquation:
    """Placeholder for a formula whose typesetting has not finished."""

    latex: str
    x: float
    y: float
    font_size: float
    slot: Optional[int] = None
    kind: str = field(default="pending", init=False)

    label = "Rendering equation..."

    def to_dict(self):
        return {
            "kind": self.kind, "latex": self.latex, "x": self.x, "y": self.y,
            "fontSize": self.font_size, "text": self.label,
        }


@dataclass(frozen=True)
class LineDrawable:
    points: Tuple[float, ...]
    stroke_width: float = 2
    kind: str = field(default="line", init=False)

    def to_dict(self):
        return {
            "kind": self.kind, "points": list(self.points),
            "strokeWidth": self.stroke_width,
        }


@dataclass(frozen=True)
class RectDrawable:
    x: float
    y: float
    width: float
    height: float
    stroke_width: float = 2
    kind: str = field(default="rect", init=False)

    def to_dict(self):
        return {
            "kind": self.kind, "x": self.x, "y": self.y, "width": self.width,
            "height": self.height, "strokeWidth": self.stroke_width,
        }
