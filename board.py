"""The whiteboard session: one append-only command sequence per prompt.

Every prompt (or clear) opens a new :class:`Generation` with its own command
and drawable lists. Equations are typeset on a thread pool; a finished
typeset result is written back into its slot only while its generation is
still the current one.
"""

import itertools
import logging
from concurrent import futures
from dataclasses import replace

from drawables import PendingEquation, TextDrawable
from equation_renderer import EquationRenderer
from errors import WhiteboardError
from interpreter import TEXT_FONT_SIZE, TEXT_X, Interpreter
from narration import narration_text
from stream_decoder import StreamDecoder


logger = logging.getLogger(__name__)


class Generation:

    def __init__(self, id, prompt=None):
        self.id = id
        self.prompt = prompt
        self.commands = []
        self.drawables = []
        self.futures = []
        self.error = None
        self.loading = prompt is not None

    def __repr__(self):
        return f"<Generation {self.id} commands={len(self.commands)}>"


class Board:

    def __init__(self, renderer=None, max_workers=4):
        self.renderer = renderer or EquationRenderer()
        self._executor = futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="typeset",
        )
        self._ids = itertools.count(1)
        self.current = Generation(0)

    def start(self, prompt=None):
        """Replace the canvas with an empty generation and return it."""
        previous = self.current
        self.current = Generation(next(self._ids), prompt)
        for future in previous.futures:
            future.cancel()
        return self.current

    def clear(self):
        return self.start()

    def is_current(self, generation):
        return generation.id == self.current.id

    def append(self, command, generation=None):
        """Add one decoded command and return the drawables it produced."""
        if generation is None:
            generation = self.current
        if not self.is_current(generation):
            return []

        generation.commands.append(command)
        interpreter = Interpreter(typeset=PendingEquation)
        produced = interpreter.interpret_one(command)

        base = len(generation.drawables)
        generation.drawables.extend(produced)
        for slot, drawable in enumerate(produced, start=base):
            if isinstance(drawable, PendingEquation):
                placeholder = replace(drawable, slot=slot)
                generation.drawables[slot] = placeholder
                self._typeset(generation, placeholder)
        return generation.drawables[base:]

    def _typeset(self, generation, pending):
        future = self._executor.submit(self._resolve, generation, pending)
        generation.futures.append(future)

    def _resolve(self, generation, pending):
        try:
            drawable = self.renderer.render(
                pending.latex, pending.x, pending.y, pending.font_size,
            )
        except Exception as e:
            logger.warning("Equation renderer failed for %r: %s", pending.latex, e)
            drawable = TextDrawable(
                pending.latex, pending.x, pending.y, pending.font_size,
                italic=True,
            )
        if not self.is_current(generation):
            logger.debug("Dropping stale equation %r", pending.latex)
            return
        generation.drawables[pending.slot] = drawable

    def run(self, chunks, generation=None, prompt=None, mode="frame"):
        """Decode ``chunks`` onto the board.

        Reading stops as soon as another prompt or a clear supersedes the
        generation. Stream failures are kept on ``generation.error``; the
        commands decoded so far stay on the canvas.
        """
        if generation is None:
            generation = self.start(prompt)
        generation.loading = True
        decoder = StreamDecoder(mode)
        try:
            for command in decoder.stream(self._until_superseded(generation, chunks)):
                self.append(command, generation)
        except (WhiteboardError, OSError) as e:
            logger.error("Generation %s aborted: %s", generation.id, e)
            generation.error = str(e)
        finally:
            generation.loading = False
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
        return generation

    def load(self, result, generation=None, prompt=None):
        """Put a one-shot reply on the board.

        ``result`` is a command list, or the model's raw text when it could
        not be parsed; raw text is shown as a single text command.
        """
        if generation is None:
            generation = self.start(prompt)
        if isinstance(result, str):
            result = [{
                "type": "text", "text": result,
                "x": TEXT_X, "y": 20, "fontSize": TEXT_FONT_SIZE,
            }]
        for command in result:
            if isinstance(command, dict):
                self.append(command, generation)
        generation.loading = False
        return generation

    def _until_superseded(self, generation, chunks):
        for chunk in chunks:
            if not self.is_current(generation):
                logger.info("Generation %s superseded, dropping stream", generation.id)
                return
            yield chunk

    def wait(self, timeout=None):
        """Block until the current generation has no typesetting pending."""
        return futures.wait(self.current.futures, timeout=timeout)

    def snapshot(self):
        generation = self.current
        return {
            "generation": generation.id,
            "prompt": generation.prompt,
            "loading": generation.loading,
            "error": generation.error,
            "commands": list(generation.commands),
            "drawables": list(generation.drawables),
        }

    def narration(self):
        return narration_text(self.current.commands)

    def shutdown(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
