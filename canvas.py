"""Paint drawable descriptors with Pillow, or hand them to the browser as JSON."""

import base64
import io
import logging

from PIL import Image, ImageColor, ImageDraw, ImageFont


logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800
BACKGROUND = "white"
STROKE = "#000"
PLACEHOLDER_COLOR = "#666"


def _font(size):
    return ImageFont.load_default(size=max(1, round(size)))


def _color(value, default=STROKE):
    try:
        return ImageColor.getrgb(value)
    except (ValueError, AttributeError):
        return ImageColor.getrgb(default)


def paint(drawables, width=CANVAS_WIDTH, height=CANVAS_HEIGHT):
    """Return an RGBA image of ``drawables`` painted in order."""
    canvas = Image.new("RGBA", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(canvas)

    for d in drawables:
        if d.kind == "text":
            draw.text((d.x, d.y), d.text, fill=_color(d.color), font=_font(d.font_size))
        elif d.kind == "pending":
            draw.text((d.x, d.y), d.label, fill=PLACEHOLDER_COLOR, font=_font(d.font_size))
        elif d.kind == "equation":
            with Image.open(io.BytesIO(d.png)) as img:
                img = img.convert("RGBA").resize((max(1, d.width), max(1, d.height)))
                canvas.paste(img, (round(d.x), round(d.y)), img)
        elif d.kind == "line":
            pts = list(zip(d.points[::2], d.points[1::2]))
            draw.line(pts, fill=STROKE, width=round(d.stroke_width), joint="curve")
        elif d.kind == "rect":
            x0, y0 = d.x, d.y
            draw.rectangle(
                [x0, y0, x0 + d.width, y0 + d.height],
                outline=STROKE, width=round(d.stroke_width),
            )
        else:
            logger.debug("Nothing to paint for %r", d)
    return canvas


def render_png(drawables, width=CANVAS_WIDTH, height=CANVAS_HEIGHT):
    buf = io.BytesIO()
    paint(drawables, width, height).save(buf, format="PNG")
    return buf.getvalue()


def drawable_json(drawable):
    """Browser form of a drawable; typeset equations carry a data URI."""
    data = drawable.to_dict()
    if drawable.kind == "equation":
        b64 = base64.b64encode(drawable.png).decode("utf-8")
        data["image"] = f"data:image/png;base64,{b64}"
    return data
