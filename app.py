import json
import logging
import os
import threading
import traceback

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request, stream_with_context
from google import genai
from google.genai import types

import proxy
from board import Board
from canvas import CANVAS_HEIGHT, CANVAS_WIDTH, drawable_json, render_png
from errors import UpstreamError, WhiteboardError

load_dotenv()

app = Flask(__name__)

PORT = 3000

AVAILABLE_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
]

BOARD_MODES = ("stream", "generate")

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")

if GEMINI_API_KEY:
    client = genai.Client(
        api_key=GEMINI_API_KEY,
        http_options=types.HttpOptions(timeout=300_000),
    )
else:
    client = None
    app.logger.warning("GEMINI_API_KEY not set in env!")

board = Board()


def spawn(target, *args, **kwargs):
    thread = threading.Thread(target=target, args=args, kwargs=kwargs, daemon=True)
    thread.start()
    return thread


def read_prompt():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    prompt = str(data.get("prompt") or "").strip()
    model = data.get("model") or AVAILABLE_MODELS[0]
    return prompt, model


def check_prompt(prompt, model):
    """Return an error response for a request the relay cannot serve."""
    if not prompt:
        return jsonify({"error": "Prompt cannot be empty"}), 400
    if model not in AVAILABLE_MODELS:
        return jsonify({"error": f"Unknown model: {model}"}), 400
    if client is None:
        return jsonify({
            "error": "server error",
            "details": "GEMINI_API_KEY is not configured",
        }), 500
    return None


@app.route("/")
def index():
    return HTML_PAGE.replace(
        "/*__MODELS__*/", json.dumps(AVAILABLE_MODELS),
    ).replace(
        "/*__CANVAS__*/", json.dumps([CANVAS_WIDTH, CANVAS_HEIGHT]),
    )


@app.route("/api/gemini", methods=["POST"])
def gemini_stream():
    """Stream commands as `data: <json>` frames, terminated by `data: [DONE]`."""
    prompt, model = read_prompt()
    error = check_prompt(prompt, model)
    if error:
        return error

    events = proxy.stream_events(client, prompt, model)
    try:
        first = next(events)
    except WhiteboardError as e:
        app.logger.error("Gemini API error: %s", e)
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        traceback.print_exc()
        return jsonify({"error": "server error", "details": str(e)}), 500

    def generate():
        yield first
        try:
            yield from events
        except WhiteboardError as e:
            app.logger.error("Streaming error: %s", e)
            yield proxy.sse(e.to_dict())
            yield proxy.DONE_FRAME

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.route("/api/generate", methods=["POST"])
def generate():
    prompt, model = read_prompt()
    error = check_prompt(prompt, model)
    if error:
        return error

    try:
        result = proxy.generate_commands(client, prompt, model)
    except UpstreamError as e:
        app.logger.error("Gemini API error: %s", e)
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        traceback.print_exc()
        return jsonify({"error": "server error", "details": str(e)}), 500

    if isinstance(result, str):
        # Unparseable reply: the page shows it as plain text.
        return jsonify(result)
    return jsonify({"commands": result})


@app.route("/api/board", methods=["POST"])
def board_generate():
    prompt, model = read_prompt()
    error = check_prompt(prompt, model)
    if error:
        return error

    data = request.get_json(silent=True)
    mode = (data if isinstance(data, dict) else {}).get("mode") or BOARD_MODES[0]
    if mode not in BOARD_MODES:
        return jsonify({"error": f"Unknown mode: {mode}"}), 400

    generation = board.start(prompt)
    if mode == "generate":
        spawn(load_reply, generation, prompt, model)
    else:
        events = proxy.stream_events(client, prompt, model)
        spawn(board.run, events, generation=generation)
    return jsonify({"generation": generation.id}), 202


def load_reply(generation, prompt, model):
    """Fetch a one-shot reply and put it on the board."""
    try:
        result = proxy.generate_commands(client, prompt, model)
    except (WhiteboardError, OSError) as e:
        app.logger.error("Generation %s failed: %s", generation.id, e)
        generation.error = str(e)
        generation.loading = False
    else:
        board.load(result, generation)


@app.route("/api/board", methods=["GET"])
def board_state():
    state = board.snapshot()
    state["drawables"] = [drawable_json(d) for d in state["drawables"]]
    return jsonify(state)


@app.route("/api/board", methods=["DELETE"])
def board_clear():
    generation = board.clear()
    return jsonify({"generation": generation.id})


@app.route("/api/board/image.png")
def board_image():
    png = render_png(board.snapshot()["drawables"])
    return Response(png, mimetype="image/png")


@app.route("/api/board/narration")
def board_narration():
    return jsonify({"text": board.narration()})


HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>AI Teacher Whiteboard</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #0f0f0f;
    color: #e0e0e0;
    min-height: 100vh;
    display: flex;
    flex-direction: column;
    align-items: center;
    padding: 24px;
    gap: 16px;
  }

  header { text-align: center; }
  header h1 { font-size: 1.4rem; font-weight: 600; color: #fff; }
  header p { font-size: 0.85rem; color: #888; margin-top: 4px; }

  .controls {
    display: flex;
    gap: 10px;
    align-items: center;
    width: 100%;
    max-width: 1200px;
  }

  input[type=text], select {
    background: #1a1a1a;
    color: #e0e0e0;
    border: 1px solid #2a2a2a;
    border-radius: 8px;
    padding: 10px 12px;
    font-size: 0.9rem;
    outline: none;
    transition: border-color 0.2s;
  }
  input[type=text] { flex: 1; }
  input[type=text]:focus, select:focus { border-color: #8b5cf6; }

  button {
    background: #8b5cf6;
    color: #fff;
    border: none;
    border-radius: 8px;
    padding: 10px 18px;
    font-size: 0.85rem;
    font-weight: 600;
    cursor: pointer;
    transition: background 0.2s;
  }
  button:hover { background: #7c3aed; }
  button:disabled { background: #333; color: #777; cursor: default; }
  button.secondary { background: #1e1e1e; border: 1px solid #2a2a2a; }
  button.secondary:hover { background: #262626; }

  .error {
    width: 100%;
    max-width: 1200px;
    background: #3a1e1e;
    color: #f87171;
    border-radius: 8px;
    padding: 10px 14px;
    font-size: 0.85rem;
    display: none;
  }

  .status { font-size: 0.8rem; color: #888; min-height: 1em; }

  canvas {
    background: #fff;
    border-radius: 10px;
    max-width: 100%;
  }
</style>
</head>
<body>
<header>
  <h1>AI Teacher Whiteboard</h1>
  <p>Ask me to explain any concept and I'll draw it on the whiteboard!</p>
</header>

<div class="controls">
  <input type="text" id="prompt" placeholder="Ask me to explain something... (e.g., 'Explain Taylor series')">
  <select id="model"></select>
  <select id="mode">
    <option value="stream">Streaming</option>
    <option value="generate">One-shot</option>
  </select>
  <button id="generateBtn">Generate</button>
  <button id="clearBtn" class="secondary">Clear</button>
  <button id="speakBtn" class="secondary">&#128266; Speak</button>
</div>
<div class="error" id="error"></div>
<div class="status" id="status"></div>
<canvas id="board"></canvas>

<script>
  const MODELS = /*__MODELS__*/;
  const CANVAS = /*__CANVAS__*/;
  const promptEl = document.getElementById('prompt');
  const modelEl = document.getElementById('model');
  const modeEl = document.getElementById('mode');
  const generateBtn = document.getElementById('generateBtn');
  const errorEl = document.getElementById('error');
  const statusEl = document.getElementById('status');
  const canvas = document.getElementById('board');
  const ctx = canvas.getContext('2d');
  const images = {};
  let generation = null;
  let poller = null;

  canvas.width = CANVAS[0];
  canvas.height = CANVAS[1];
  MODELS.forEach(m => {
    const opt = document.createElement('option');
    opt.value = m; opt.textContent = m;
    modelEl.appendChild(opt);
  });

  function showError(msg) {
    errorEl.textContent = msg || '';
    errorEl.style.display = msg ? 'block' : 'none';
  }

  function image(src) {
    if (!images[src]) {
      const img = new Image();
      img.onload = () => poll();
      img.src = src;
      images[src] = img;
    }
    return images[src];
  }

  function paint(drawables) {
    ctx.clearRect(0, 0, canvas.width, canvas.height);
    ctx.textBaseline = 'top';
    for (const d of drawables) {
      if (d.kind === 'text' || d.kind === 'pending') {
        ctx.font = (d.italic ? 'italic ' : '') + d.fontSize + 'px Arial, sans-serif';
        ctx.fillStyle = d.kind === 'pending' ? '#666' : d.color;
        ctx.fillText(d.text, d.x, d.y);
      } else if (d.kind === 'equation') {
        const img = image(d.image);
        if (img.complete) ctx.drawImage(img, d.x, d.y, d.width, d.height);
      } else if (d.kind === 'line') {
        ctx.beginPath();
        ctx.lineWidth = d.strokeWidth;
        ctx.lineCap = 'round';
        ctx.lineJoin = 'round';
        ctx.strokeStyle = '#000';
        ctx.moveTo(d.points[0], d.points[1]);
        for (let i = 2; i < d.points.length; i += 2) ctx.lineTo(d.points[i], d.points[i + 1]);
        ctx.stroke();
      } else if (d.kind === 'rect') {
        ctx.lineWidth = d.strokeWidth;
        ctx.strokeStyle = '#000';
        ctx.strokeRect(d.x, d.y, d.width, d.height);
      }
    }
  }

  async function poll() {
    const res = await fetch('/api/board');
    const state = await res.json();
    if (generation !== null && state.generation !== generation) return;
    paint(state.drawables);
    showError(state.error ? 'Error: ' + state.error : '');
    const pending = state.drawables.some(d => d.kind === 'pending');
    statusEl.textContent = state.loading ? 'Generating content...' : (pending ? 'Rendering equations...' : '');
    if (!state.loading && !pending) stopPolling();
  }

  function stopPolling() {
    clearInterval(poller);
    poller = null;
    generateBtn.disabled = false;
    generateBtn.textContent = 'Generate';
  }

  async function generate() {
    const prompt = promptEl.value.trim();
    if (!prompt) return;
    showError('');
    generateBtn.disabled = true;
    generateBtn.textContent = 'Generating...';
    try {
      const res = await fetch('/api/board', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ prompt, model: modelEl.value, mode: modeEl.value }),
      });
      const data = await res.json();
      if (!res.ok) throw new Error(data.details || data.error || ('HTTP error! status: ' + res.status));
      generation = data.generation;
      clearInterval(poller);
      poller = setInterval(poll, 400);
    } catch (err) {
      showError('Error: ' + err.message);
      stopPolling();
    }
  }

  async function clearBoard() {
    const res = await fetch('/api/board', { method: 'DELETE' });
    generation = (await res.json()).generation;
    stopPolling();
    showError('');
    statusEl.textContent = '';
    paint([]);
  }

  async function speak() {
    if (!window.speechSynthesis) {
      alert('Speech synthesis not supported in this browser.');
      return;
    }
    const res = await fetch('/api/board/narration');
    const text = (await res.json()).text;
    if (!text) {
      alert('Nothing on the board to speak.');
      return;
    }
    window.speechSynthesis.cancel();
    const utterance = new SpeechSynthesisUtterance(text);
    utterance.lang = 'en-US';
    utterance.rate = 0.95;
    utterance.pitch = 1.0;
    const voices = window.speechSynthesis.getVoices();
    const preferred = voices.find(v => v.name.toLowerCase().includes('female'))
                   || voices.find(v => v.lang === 'en-US');
    if (preferred) utterance.voice = preferred;
    window.speechSynthesis.speak(utterance);
  }

  generateBtn.addEventListener('click', generate);
  document.getElementById('clearBtn').addEventListener('click', clearBoard);
  document.getElementById('speakBtn').addEventListener('click', speak);
  promptEl.addEventListener('keydown', e => { if (e.key === 'Enter') generate(); });
</script>
</body>
</html>
"""


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(f"Backend server listening on {PORT}")
    print(f"API available at http://localhost:{PORT}/api/generate")
    app.run(port=PORT, threaded=True)
