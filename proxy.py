"""Relay prompts to Gemini and hand back drawing commands."""

import json
import logging
import re

from google.genai import errors as genai_errors
from google.genai import types

from errors import TransportError, UpstreamError
from stream_decoder import StreamDecoder, try_json
from system_prompt import GENERATE_PROMPT, STREAM_PROMPT


logger = logging.getLogger(__name__)

TEMPERATURE = 0.2
MAX_OUTPUT_TOKENS = 8000

DONE_FRAME = "data: [DONE]\n\n"

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"```\s*$")
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def sse(data):
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


def build_config(instruction):
    return types.GenerateContentConfig(
        system_instruction=instruction,
        temperature=TEMPERATURE,
        max_output_tokens=MAX_OUTPUT_TOKENS,
    )


def stream_model_text(client, prompt, model):
    """Yield the model's raw text as it arrives.

    Raises UpstreamError when the provider refuses the request and
    TransportError when the stream breaks after it started.
    """
    started = False
    try:
        stream = client.models.generate_content_stream(
            model=model, contents=prompt, config=build_config(STREAM_PROMPT),
        )
        for chunk in stream:
            started = True
            if chunk.text:
                yield chunk.text
    except genai_errors.APIError as e:
        if not started:
            raise UpstreamError("Upstream API error", str(e), status=502) from e
        raise TransportError("Streaming error", str(e)) from e
    except Exception as e:
        raise TransportError("Streaming error", str(e)) from e


def stream_events(client, prompt, model):
    """Server-sent-event frames, one per command, ending with ``[DONE]``.

    Model text is not frame-delimited, so commands are recovered with the
    decoder's loose mode.
    """
    decoder = StreamDecoder("loose")
    for command in decoder.stream(stream_model_text(client, prompt, model)):
        yield sse(command)
    yield DONE_FRAME


def strip_fences(text):
    text = text.strip()
    text = _FENCE_START.sub("", text)
    return _FENCE_END.sub("", text).strip()


def parse_commands(raw):
    """Best-effort parse of a whole model reply into a command list, or None."""
    text = strip_fences(raw)
    commands = try_json(text)
    if commands is None:
        match = _JSON_ARRAY.search(text)
        if match:
            commands = try_json(match.group(0))
            if commands is None:
                logger.error("Failed to parse inner JSON: %.200s", match.group(0))
    if isinstance(commands, dict) and isinstance(commands.get("commands"), list):
        commands = commands["commands"]
    return commands if isinstance(commands, list) else None


def generate_commands(client, prompt, model):
    """Non-streaming generation.

    Returns a list of commands, or the model's raw text when it cannot be
    parsed.
    """
    try:
        response = client.models.generate_content(
            model=model, contents=prompt, config=build_config(GENERATE_PROMPT),
        )
    except genai_errors.APIError as e:
        raise UpstreamError("Upstream API error", str(e), status=502) from e

    raw = response.text
    if not isinstance(raw, str):
        raw = response.model_dump_json(exclude_none=True)
    commands = parse_commands(raw)
    if commands is None:
        return raw.strip()
    return commands
