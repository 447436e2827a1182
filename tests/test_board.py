from concurrent import futures

import pytest

from board import Board
from drawables import EquationDrawable, PendingEquation, TextDrawable
from errors import TransportError


def test_run_appends_in_decode_order(board, frames):
    generation = board.run([frames(
        {"type": "text", "text": "Pythagoras", "x": 20, "y": 20},
        {"type": "equation", "latex": "a^2+b^2=c^2", "x": 20, "y": 60},
        {"type": "rect", "x": 10, "y": 10, "width": 300, "height": 100},
    )], prompt="explain pythagoras")
    board.wait(5)
    assert generation is board.current
    assert [c["type"] for c in generation.commands] == ["text", "equation", "rect"]
    assert [d.kind for d in generation.drawables] == ["text", "equation", "rect"]
    assert generation.loading is False
    assert generation.error is None


def test_equations_show_a_placeholder_until_typeset(blocking_renderer, frames):
    board = Board(renderer=blocking_renderer)
    try:
        board.run([frames({"type": "equation", "latex": "x", "x": 1, "y": 2})])
        (pending,) = board.snapshot()["drawables"]
        assert isinstance(pending, PendingEquation)
        assert pending.slot == 0
        blocking_renderer.release.set()
        board.wait(5)
        (done,) = board.snapshot()["drawables"]
        assert isinstance(done, EquationDrawable)
    finally:
        board.shutdown()


def test_each_equation_fills_its_own_slot(board, frames):
    board.run([frames(
        {"type": "text", "text": "$a$ and $b$", "x": 0, "y": 0},
        {"type": "equation", "latex": "c", "x": 0, "y": 50},
    )])
    board.wait(5)
    drawables = board.snapshot()["drawables"]
    assert [getattr(d, "latex", None) for d in drawables] == ["a", None, "b", "c"]
    assert [d.kind for d in drawables] == ["equation", "text", "equation", "equation"]


def test_new_prompt_suppresses_stale_typesetting(blocking_renderer, frames):
    board = Board(renderer=blocking_renderer)
    try:
        old = board.run([frames({"type": "equation", "latex": "old", "x": 0, "y": 0})], prompt="first")
        assert blocking_renderer.started.wait(5)

        new = board.run([frames({"type": "text", "text": "second answer", "x": 20, "y": 20})], prompt="second")
        blocking_renderer.release.set()
        futures.wait(old.futures, timeout=5)

        state = board.snapshot()
        assert state["generation"] == new.id
        assert state["commands"] == [{"type": "text", "text": "second answer", "x": 20, "y": 20}]
        assert [d.kind for d in state["drawables"]] == ["text"]
        assert isinstance(old.drawables[0], PendingEquation)
    finally:
        board.shutdown()


def test_clear_discards_everything(board, frames):
    board.run([frames({"type": "rect", "x": 0, "y": 0, "width": 1, "height": 1})])
    before = board.current.id
    generation = board.clear()
    assert generation.id > before
    assert board.snapshot()["commands"] == []
    assert board.snapshot()["drawables"] == []


def test_append_to_stale_generation_is_ignored(board):
    old = board.start("a")
    board.start("b")
    assert board.append({"type": "text", "text": "late", "x": 0, "y": 0}, old) == []
    assert old.commands == []


def test_superseded_run_stops_reading(board):
    consumed = []

    def chunks():
        consumed.append(1)
        yield 'data: {"type":"text","text":"one","x":0,"y":0}\n'
        board.start("another prompt")
        consumed.append(2)
        yield 'data: {"type":"text","text":"two","x":0,"y":0}\n'
        consumed.append(3)
        yield 'data: {"type":"text","text":"three","x":0,"y":0}\n'

    generation = board.run(chunks(), prompt="first")
    assert [c["text"] for c in generation.commands] == ["one"]
    assert consumed == [1, 2]
    assert board.current.commands == []


def test_transport_error_keeps_partial_commands(board):
    def chunks():
        yield 'data: {"type":"text","text":"partial","x":0,"y":0}\n'
        raise TransportError("Streaming error", "connection reset")

    generation = board.run(chunks())
    assert [c["text"] for c in generation.commands] == ["partial"]
    assert generation.error == "Streaming error: connection reset"
    assert generation.loading is False


def test_connection_errors_are_transport_errors(board):
    def chunks():
        raise ConnectionResetError("reset")
        yield

    assert board.run(chunks()).error == "reset"


def test_renderer_crash_becomes_italic_text(frames):
    class Broken:
        def render(self, latex, x, y, font_size):
            raise RuntimeError("boom")

    board = Board(renderer=Broken())
    try:
        board.run([frames({"type": "equation", "latex": "\\oops", "x": 1, "y": 1})])
        board.wait(5)
        (d,) = board.snapshot()["drawables"]
        assert d == TextDrawable("\\oops", 1, 1, 18, italic=True)
    finally:
        board.shutdown()


def test_unknown_commands_are_recorded_but_not_drawn(board):
    board.start()
    assert board.append({"type": "sparkle"}) == []
    assert board.snapshot()["commands"] == [{"type": "sparkle"}]


def test_loose_mode(board):
    board.run(['[{"type":"rect","x":0,"y":0,', '"width":2,"height":2}]'], mode="loose")
    assert [d.kind for d in board.snapshot()["drawables"]] == ["rect"]


def test_narration(board, frames):
    board.run([frames(
        {"type": "equation", "latex": "\\pi r^2", "x": 0, "y": 0},
        {"type": "text", "text": "Area of a circle", "x": 0, "y": 0},
    )])
    assert board.narration() == "Area of a circle. Equation:  pi r^2. "


def test_initial_state(board):
    state = board.snapshot()
    assert state == {
        "generation": 0, "prompt": None, "loading": False, "error": None,
        "commands": [], "drawables": [],
    }


@pytest.mark.parametrize("prompt,loading", [("draw", True), (None, False)])
def test_start_marks_loading_for_prompts(board, prompt, loading):
    assert board.start(prompt).loading is loading


def test_error_frame_is_recorded_on_the_generation(board, frames):
    body = frames({"type": "text", "text": "Limits", "x": 20, "y": 20}).replace(
        "data: [DONE]",
        'data: {"error": "Streaming error", "details": "connection reset by peer"}\n\ndata: [DONE]',
    )
    generation = board.run([body])
    assert [c["text"] for c in generation.commands] == ["Limits"]
    assert generation.error == "Streaming error: connection reset by peer"
    assert generation.loading is False


def test_load_puts_a_command_list_on_the_board(board):
    generation = board.load([
        {"type": "text", "text": "Circle", "x": 20, "y": 20},
        "not a command",
        {"type": "equation", "latex": "\\pi r^2", "x": 20, "y": 60},
    ], prompt="area")
    board.wait(5)
    assert generation is board.current
    assert [c["type"] for c in generation.commands] == ["text", "equation"]
    assert [d.kind for d in generation.drawables] == ["text", "equation"]
    assert generation.loading is False


def test_load_shows_raw_text_as_one_text_command(board):
    generation = board.load("I would rather not.", prompt="hi")
    assert generation.commands == [
        {"type": "text", "text": "I would rather not.", "x": 20, "y": 20, "fontSize": 16},
    ]
    (d,) = generation.drawables
    assert (d.text, d.x, d.y, d.font_size) == ("I would rather not.", 20, 20, 16)
