import io
import json
import threading
from types import SimpleNamespace

import pytest
from PIL import Image

from board import Board
from drawables import EquationDrawable, TextDrawable


def tiny_png(size=(40, 20)):
    buf = io.BytesIO()
    Image.new("RGBA", size, (0, 0, 0, 255)).save(buf, format="PNG")
    return buf.getvalue()


class FakeModels:

    def __init__(self, chunks=(), text=None, error=None, fail_after=None):
        self.chunks = list(chunks)
        self.text = text
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    def generate_content_stream(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error

        def stream():
            for i, text in enumerate(self.chunks):
                if i == self.fail_after:
                    raise ConnectionResetError("connection reset by peer")
                yield SimpleNamespace(text=text)
        return stream()

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeClient:

    def __init__(self, **kwargs):
        self.models = FakeModels(**kwargs)


class FakeRenderer:
    """Typesets instantly; ``bad`` markup falls back to italic text."""

    def __init__(self, bad=()):
        self.bad = set(bad)
        self.rendered = []

    def render(self, latex, x, y, font_size=18):
        self.rendered.append(latex)
        if latex in self.bad:
            return TextDrawable(latex, x, y, font_size, italic=True)
        return EquationDrawable(latex, x, y, font_size, tiny_png(), width=40, height=20)


class BlockingRenderer(FakeRenderer):
    """Holds every typeset call until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.started = threading.Event()

    def render(self, latex, x, y, font_size=18):
        self.started.set()
        self.release.wait(5)
        return super().render(latex, x, y, font_size)


def to_frames(*commands):
    return "".join(f"data: {json.dumps(c, ensure_ascii=False)}\n\n" for c in commands) + "data: [DONE]\n\n"


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def board(renderer):
    b = Board(renderer=renderer)
    yield b
    b.shutdown()


@pytest.fixture
def frames():
    return to_frames


@pytest.fixture
def make_client():
    return FakeClient


@pytest.fixture
def blocking_renderer():
    r = BlockingRenderer()
    yield r
    r.release.set()
