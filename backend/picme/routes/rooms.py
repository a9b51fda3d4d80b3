from __future__ import annotations

import logging
import uuid

from flask import Blueprint, current_app, jsonify, request

from ..game.errors import ValidationError

bp = Blueprint("rooms", __name__)

logger = logging.getLogger(__name__)


@bp.post("/game")
def game_action():
    """Poll-and-store transport: one POST per action, redacted room back."""
    registry = current_app.extensions["picme"]
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("invalid_payload", "expected a JSON object")

    action = str(data.get("action", "")).strip()
    session_id = str(data.get("sessionId") or "").strip()
    room_id = data.get("roomId", data.get("gameId"))

    if action in ("join", "joinLobby") and not session_id:
        session_id = uuid.uuid4().hex

    payload = dict(data, sessionId=session_id)
    logger.info("[%s] %s from %s", room_id, action, data.get("playerName") or session_id or "-")

    result = registry.dispatch(action, payload)
    if action == "leave":
        return jsonify({"success": True, **result})

    game = registry.get_state(room_id, session_id)
    body = {"success": True, "game": game}
    if action in ("join", "joinLobby"):
        body["sessionId"] = session_id
    return jsonify(body)


@bp.get("/rooms/<code>")
def get_room(code: str):
    registry = current_app.extensions["picme"]
    session_id = request.args.get("sessionId", "")
    return jsonify(registry.get_state(code, session_id))
