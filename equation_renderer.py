"""Typeset LaTeX math into PNG images with matplotlib's mathtext."""

import io
import logging
import threading

from matplotlib import mathtext
from matplotlib.font_manager import FontProperties
from PIL import Image

from drawables import EquationDrawable, TextDrawable
from math_spans import unwrap_math


logger = logging.getLogger(__name__)

# matplotlib's font and parser caches are not thread-safe.
_MATHTEXT_LOCK = threading.Lock()


def typeset(latex, font_size=18, dpi=72, color="#000"):
    """Render ``latex`` to PNG bytes; raises ValueError on bad markup.

    Markup already wrapped in math delimiters, such as ``$x^2$``, is
    accepted too.
    """
    source = unwrap_math(latex)
    if not source:
        raise ValueError("Empty math markup")
    buf = io.BytesIO()
    with _MATHTEXT_LOCK:
        mathtext.math_to_image(
            f"${source}$", buf,
            prop=FontProperties(size=font_size),
            dpi=dpi, format="png", color=color,
        )
    return buf.getvalue()


class EquationRenderer:
    """Produces an image drawable for a formula, or an italic text fallback.

    At 72 dpi one point is one canvas pixel, so ``font_size`` keeps the
    meaning it has for plain text. ``scale`` shrinks the typeset image the
    way the whiteboard displays it.
    """

    def __init__(self, dpi=72, color="#000", scale=0.8):
        self.dpi = dpi
        self.color = color
        self.scale = scale

    def render(self, latex, x, y, font_size=18):
        try:
            png = typeset(latex, font_size, dpi=self.dpi, color=self.color)
            with Image.open(io.BytesIO(png)) as img:
                width, height = img.size
        except Exception as e:
            logger.warning("Typesetting failed for %r: %s", latex, e)
            return TextDrawable(latex, x, y, font_size, italic=True)
        return EquationDrawable(
            latex, x, y, font_size, png,
            width=round(width * self.scale),
            height=round(height * self.scale),
        )

    __call__ = render
