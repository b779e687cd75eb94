# frontend/api.py
import json
import logging
import os
import sys
import threading
import uuid
from collections import OrderedDict

from flask import Flask, Response, jsonify, request, send_from_directory, session, stream_with_context
from werkzeug.exceptions import HTTPException

# allow imports from project root when running `python frontend/api.py`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from frontend.screen import Screen
from nodes.store_api import StoreClient, create_store_stub

log = logging.getLogger(__name__)

# ---- app config ----
APP = Flask(__name__, static_folder="static", static_url_path="")
APP.secret_key = os.environ.get("FRONTEND_SECRET_KEY") or os.urandom(16).hex()

STORE_ADDR = os.environ.get("STORE_ADDR", "127.0.0.1:60051")
MAX_SCREENS = int(os.environ.get("MAX_SCREENS", "500"))

# one screen per browser session, least recently used first
SCREENS = OrderedDict()
SCREENS_LOCK = threading.Lock()

# one client (and gRPC channel) per store address, shared by all screens
STORE_CLIENTS = {}


def create_store_client(address=None):
    """Return the shared StoreClient for the given address (or the configured store)."""
    addr = address or STORE_ADDR
    with SCREENS_LOCK:
        client = STORE_CLIENTS.get(addr)
        if client is None:
            client = StoreClient(create_store_stub(addr))
            STORE_CLIENTS[addr] = client
    return client


def current_screen():
    sid = session.get("screen_id")
    if not sid:
        sid = uuid.uuid4().hex
        session["screen_id"] = sid
    store = create_store_client()
    with SCREENS_LOCK:
        screen = SCREENS.get(sid)
        fresh = screen is None
        if fresh:
            screen = Screen(store)
            SCREENS[sid] = screen
        SCREENS.move_to_end(sid)
        while len(SCREENS) > MAX_SCREENS:
            dropped, _ = SCREENS.popitem(last=False)
            log.info("dropping idle screen %s", dropped)
    if fresh:
        screen.load_devices()
    return screen


def sse(payload):
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _state(screen):
    return jsonify(screen.snapshot())


# ---- static file routes ----
@APP.route("/")
def serve_index():
    return send_from_directory(APP.static_folder, "index.html")


@APP.route("/<path:fn>")
def serve_static(fn):
    safe = os.path.normpath(fn)
    if safe.startswith("..") or os.path.isabs(safe):
        return "Invalid path", 400
    return send_from_directory(APP.static_folder, safe)


# ---- screen routes ----
@APP.route("/state", methods=["GET"])
def get_state():
    return _state(current_screen())


@APP.route("/devices/refresh", methods=["POST"])
def refresh_devices():
    screen = current_screen()
    screen.load_devices()
    return _state(screen)


@APP.route("/select", methods=["POST"])
def select_device():
    payload = request.get_json(silent=True) or {}
    device_id = payload.get("device_id", "")
    if not device_id:
        return jsonify({"error": "device_id is required"}), 400
    screen = current_screen()
    screen.select_device(device_id)
    return _state(screen)


@APP.route("/booking/cancel", methods=["POST"])
def cancel_booking():
    screen = current_screen()
    screen.cancel_booking()
    return _state(screen)


@APP.route("/booking/confirm", methods=["POST"])
def confirm_booking():
    screen = current_screen()
    screen.confirm_booking()
    return _state(screen)


@APP.route("/ride/begin", methods=["POST"])
def begin_ride():
    screen = current_screen()
    screen.begin_ride()
    return _state(screen)


@APP.route("/scan", methods=["POST"])
def handle_scan():
    payload = request.get_json(silent=True) or {}
    screen = current_screen()
    screen.handle_scan(payload.get("data", ""))
    return _state(screen)


@APP.route("/scan/cancel", methods=["POST"])
def cancel_scan():
    screen = current_screen()
    screen.cancel_scan()
    return _state(screen)


@APP.route("/ride/end/request", methods=["POST"])
def request_end_ride():
    screen = current_screen()
    screen.request_end_ride()
    return _state(screen)


@APP.route("/ride/end/dismiss", methods=["POST"])
def dismiss_end_ride():
    screen = current_screen()
    screen.dismiss_end_ride()
    return _state(screen)


@APP.route("/ride/end", methods=["POST"])
def end_ride():
    screen = current_screen()
    screen.end_ride()
    return _state(screen)


# ---- chat routes ----
@APP.route("/chat/open", methods=["POST"])
def open_chat():
    screen = current_screen()
    screen.open_chat()
    return _state(screen)


@APP.route("/chat/close", methods=["POST"])
def close_chat():
    screen = current_screen()
    screen.close_chat()
    return _state(screen)


@APP.route("/chat", methods=["POST"])
def chat():
    payload = request.get_json(silent=True) or {}
    text = payload.get("message", "")
    screen = current_screen()
    assistant = screen.chat
    if assistant is None:
        return jsonify({"error": "chat is not open"}), 409
    if not assistant.claim():
        return jsonify({"error": "a reply is already streaming"}), 409

    def generate():
        for index, message in assistant.stream_reply(text):
            yield sse({"index": index, "message": message})
        yield sse({"done": True})

    resp = Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    # also covers a stream that is closed before it ever runs
    resp.call_on_close(assistant.release)
    return resp


@APP.errorhandler(Exception)
def handle_unexpected(exc):
    if isinstance(exc, HTTPException):
        return exc
    log.exception("unhandled error")
    return jsonify({"error": str(exc)}), 500


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"), format="[%(name)s] %(message)s")
    print("WheelPort front-end listening on http://127.0.0.1:8080")
    APP.run(host="127.0.0.1", port=8080, debug=True)
