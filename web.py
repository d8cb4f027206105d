#!/usr/bin/env python3
"""
Big Monte Web — Flask + WebSocket server for browser-based play.

Each WebSocket connection gets its own GameCoordinator instance.
State is pushed to the client as a JSON snapshot after every action, and
periodically while toasts are on screen so they can expire.
"""
import argparse
import json
import logging
import threading
import time

from flask import Flask, jsonify, render_template, request
from flask_sock import Sock

from frontend_adapter import FrontendAdapter
from game_coordinator import GameCoordinator, default_autosave_path
from game_engine import GameConfig, compute_score, normalize_die_value, to_category
from game_session import MAX_PLAYERS
from settings import load_settings

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.update(
    AUTOSAVE_PATH=None,      # None means ~/.big_monte_autosave.json
    SETTINGS_PATH=None,
    LEADERBOARD_PATH=None,
)
sock = Sock(app)

REFRESH_INTERVAL = 0.5  # seconds between pushes while toasts are visible


def _autosave_path():
    return app.config["AUTOSAVE_PATH"] or default_autosave_path()


@app.route("/")
def index():
    """Landing page with game setup form."""
    has_autosave = GameCoordinator.load_state(_autosave_path()) is not None
    settings = load_settings(app.config["SETTINGS_PATH"])
    return render_template("index.html", has_autosave=has_autosave,
                           preferred_username=settings["preferred_username"],
                           max_players=MAX_PLAYERS)


@app.route("/game")
def game():
    """Main game page — connects to WebSocket for real-time play."""
    return render_template("game.html")


@app.route("/api/score", methods=["POST"])
def api_score():
    """Score a hand without a game: {"category": key, "dice": [..]} -> {"score": n}."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify(error="Expected a JSON object"), 400
    category = to_category(payload.get("category"))
    if category is None:
        return jsonify(error=f"Unknown category {payload.get('category')!r}"), 400
    dice = payload.get("dice")
    dice_count = GameConfig().dice_count
    if not isinstance(dice, list) or len(dice) != dice_count:
        return jsonify(error=f"Expected {dice_count} dice values"), 400
    values = [normalize_die_value(v) for v in dice]
    if None in values:
        return jsonify(error="Dice values must be between 1 and 6"), 400
    return jsonify(category=category.value, dice=values, score=compute_score(category, values))


def _create_adapter(args):
    """Build the adapter for a new connection from its query parameters."""
    settings_path = app.config["SETTINGS_PATH"]
    autosave_path = _autosave_path()

    coordinator = None
    if args.get("resume", "false") == "true":
        coordinator = GameCoordinator.load_state(autosave_path, autosave_path=autosave_path)

    if coordinator is None:
        # Blank names keep their seat and get a casino name
        names = [n.strip() for n in args.get("names", "").split(",")][:MAX_PLAYERS]
        if len(names) == 1 and not names[0]:
            preferred = load_settings(settings_path)["preferred_username"]
            names = [preferred] if preferred else None
        mode = args.get("mode") if args.get("mode") in ("solo", "pass-and-play") else None
        if mode == "solo" and names and len(names) > 1:
            mode = None
        coordinator = GameCoordinator(names=names, mode=mode, autosave_path=autosave_path)

    return FrontendAdapter(coordinator, settings_path=settings_path,
                           leaderboard_path=app.config["LEADERBOARD_PATH"])


@sock.route("/ws")
def websocket(ws):
    """WebSocket handler — one game per connection."""
    adapter = _create_adapter(request.args)
    lock = threading.Lock()
    running = True

    def push():
        with lock:
            ws.send(json.dumps(adapter.get_game_snapshot()))

    def refresh_loop():
        """Background thread: re-push state while toasts are waiting to expire."""
        nonlocal running
        while running:
            time.sleep(REFRESH_INTERVAL)
            if not adapter.toasts:
                continue
            try:
                push()
            except Exception:
                logger.error("Refresh loop error", exc_info=True)
                running = False

    refresh_thread = threading.Thread(target=refresh_loop, daemon=True)
    refresh_thread.start()

    try:
        push()
        while running:
            data = ws.receive()
            if data is None:
                break
            try:
                action = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from client: %s", data)
                continue
            if not isinstance(action, dict):
                logger.warning("Ignoring non-object message: %r", action)
                continue

            with lock:
                _handle_action(adapter, action)
            push()
    except Exception:
        logger.error("WebSocket receive error", exc_info=True)
    finally:
        running = False


def _handle_action(adapter, action):
    """Dispatch a client action to the adapter."""
    cmd = action.get("action", "")

    if cmd == "roll":
        adapter.do_roll()

    elif cmd == "hold":
        idx = action.get("die_index")
        if isinstance(idx, int) and not isinstance(idx, bool):
            adapter.do_hold(idx)

    elif cmd == "score":
        adapter.try_score_category(action.get("category", ""))

    elif cmd == "confirm_zero_yes":
        adapter.confirm_zero_yes()

    elif cmd == "confirm_zero_no":
        adapter.confirm_zero_no()

    elif cmd == "navigate_category":
        direction = action.get("direction", 1)
        if direction in (1, -1):
            adapter.navigate_category(direction)

    elif cmd == "new_round":
        adapter.do_new_round()

    elif cmd == "reset":
        adapter.do_reset()

    elif cmd == "toggle_help":
        adapter.toggle_help()

    elif cmd == "toggle_leaderboard":
        adapter.toggle_leaderboard()

    elif cmd == "close_overlay":
        adapter.close_top_overlay()

    elif cmd == "toggle_dark_mode":
        adapter.toggle_dark_mode()

    elif cmd == "toggle_sound":
        adapter.toggle_sound()

    elif cmd == "set_colors":
        changes = {k: action[k] for k in ("dice_color", "held_color") if k in action}
        if changes:
            adapter.update_settings(**changes)

    elif cmd == "set_username":
        adapter.update_settings(preferred_username=action.get("name", ""))

    elif cmd == "rename_leader":
        if not adapter.rename_leader(action.get("name", "")):
            adapter.push_toast("Could not rename the winner")

    elif cmd == "dismiss_toast":
        adapter.dismiss_toast(action.get("id"))

    else:
        logger.debug("Unknown action from client: %r", cmd)


def main():
    """Entry point for the web server."""
    parser = argparse.ArgumentParser(description="Big Monte Web Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Starting Big Monte web server at http://%s:%s", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
