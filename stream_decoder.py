"""Incremental decoding of the model's command stream.

Two modes are supported. ``frame`` reads server-sent-event lines of the form
``data: <json>`` terminated by ``data: [DONE]``. ``loose`` scans free model
text for brace-balanced ``{...}`` objects and is used when the upstream text
is not frame-delimited.
"""

import codecs
import json
import logging

from commands import is_command
from errors import TransportError


logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
MODES = ("frame", "loose")

def try_json(s):
    try:
        return json.loads(s)
    except ValueError:
        return None


def flat_objects(text):
    """Yield (start, end) of every `{...}` holding no nested object.

    Braces inside JSON strings, such as LaTeX groups, are not structural.
    """
    start = None
    in_string = escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = start is not None
        elif ch == "{":
            start = i
        elif ch == "}" and start is not None:
            yield start, i + 1
            start = None


def _scan(text):
    found = []
    end = 0
    for start, stop in flat_objects(text):
        obj = try_json(text[start:stop])
        if is_command(obj, strict=False):
            found.append(obj)
            end = stop
    return found, end


def extract_commands(text):
    """Return every flat ``{...}`` object in ``text`` that carries a ``type``."""
    return _scan(text or "")[0]


class StreamDecoder:
    """State machine turning arbitrary text chunks into commands.

    Commands are returned from :meth:`feed` as soon as they are fully
    buffered. Once :attr:`done` is set the decoder ignores further input;
    a new generation needs a new decoder.
    An error frame (`{"error": ..., "details": ...}`) from the relay raises
    :class:`~errors.TransportError`.
    """

    def __init__(self, mode="frame"):
        if mode not in MODES:
            raise ValueError(f"Unknown decoder mode: {mode}")
        self.mode = mode
        self.buffer = ""
        self.done = False
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._consumed = False

    def feed(self, chunk):
        if self.done:
            return []
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._bytes.decode(bytes(chunk))
        if not chunk:
            return []
        if self.mode == "loose":
            return self._feed_loose(chunk)
        return self._feed_frames(chunk)

    def close(self):
        """Signal the end of the source and flush what is left."""
        if self.done:
            return []
        tail = self._bytes.decode(b"", final=True)
        commands = self.feed(tail) if tail else []
        if self.mode == "frame" and not self.done:
            rest, self.buffer = self.buffer, ""
            command = self._parse_line(rest)
            if command is not None:
                commands.append(command)
        self.done = True
        return commands

    def stream(self, chunks):
        """Lazily yield commands decoded from ``chunks``.

        The sequence is finite and not restartable: a second call yields
        nothing.
        """
        if self._consumed:
            return
        self._consumed = True
        for chunk in chunks:
            yield from self.feed(chunk)
            if self.done:
                return
        yield from self.close()

    def _feed_frames(self, chunk):
        self.buffer += chunk
        lines = self.buffer.split("\n")
        self.buffer = lines.pop()
        commands = []
        for line in lines:
            command = self._parse_line(line)
            if self.done:
                break
            if command is not None:
                commands.append(command)
        return commands

    def _parse_line(self, line):
        line = line.rstrip("\r")
        if not line.strip() or not line.startswith(FRAME_PREFIX):
            return None
        payload = line[len(FRAME_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            self.done = True
            return None
        obj = try_json(payload)
        if isinstance(obj, dict) and "error" in obj and "type" not in obj:
            raise TransportError(str(obj["error"]), str(obj.get("details") or ""))
        if not is_command(obj):
            logger.debug("Dropping frame: %r", line)
            return None
        return obj

    def _feed_loose(self, chunk):
        self.buffer += chunk
        commands, end = _scan(self.buffer)
        # Text up to the last recovered command is consumed.
        self.buffer = self.buffer[end:]
        return commands


def decode(chunks, mode="frame"):
    """Lazy sequence of commands from a chunk source, using a fresh decoder."""
    return StreamDecoder(mode).stream(chunks)
