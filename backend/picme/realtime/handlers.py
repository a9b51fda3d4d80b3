from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError
from ..game.service import RoomRegistry


logger = logging.getLogger(__name__)


def _room_code(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    return str(payload.get("roomCode", "")).strip()


def register_socketio_handlers(socketio: SocketIO, registry: RoomRegistry) -> None:
    def _broadcast_room_state(room_code: str) -> None:
        room = registry.get_room(room_code)
        if not room:
            return
        # Everyone gets their own view; hands never go to the whole room.
        for p in room.players:
            if p.connected:
                socketio.emit("room:state", registry.get_state(room_code, p.id), to=p.id)

    def _safe_broadcast_room_state(room_code: str) -> None:
        try:
            _broadcast_room_state(room_code)
        except GameError:
            # Room went away between the action and the broadcast.
            return

    def _run(room_code: str, action: Callable[[], dict]) -> tuple[dict | None, str | None]:
        """Returns (state, error_code); exactly one is set."""
        if not room_code:
            emit("game:error", {"error": "invalid_payload", "message": "roomCode is required"})
            return None, "invalid_payload"
        try:
            return action(), None
        except GameError as err:
            logger.info("[%s] action rejected for %s: %s", room_code, request.sid, err.code)
            emit("game:error", err.to_dict())
            return None, err.code

    @socketio.on("room:join")
    def room_join(data):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        name = str(payload.get("name", "")).strip()

        _, error = _run(room_code, lambda: registry.join(room_code, name, request.sid))
        if error:
            return {"ok": False, "error": error}

        join_room(room_code)
        _safe_broadcast_room_state(room_code)
        return {"ok": True, "playerId": request.sid}

    @socketio.on("room:leave")
    def room_leave(data):
        room_code = _room_code(data)
        if room_code:
            leave_room(room_code)
        for affected in registry.leave(request.sid):
            _safe_broadcast_room_state(affected)
        return {"ok": True}

    @socketio.on("room:state")
    def room_state(data):
        room_code = _room_code(data)
        state, error = _run(room_code, lambda: registry.get_state(room_code, request.sid))
        if error:
            return {"ok": False, "error": error}
        emit("room:state", state)
        return {"ok": True}

    @socketio.on("game:start")
    def game_start(data):
        room_code = _room_code(data)
        _, error = _run(room_code, lambda: registry.start_game(room_code))
        if error:
            return {"ok": False, "error": error}
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("game:hint")
    def game_hint(data):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        _, error = _run(
            room_code,
            lambda: registry.give_hint(room_code, request.sid, payload.get("cardId"), payload.get("hint", "")),
        )
        if error:
            return {"ok": False, "error": error}
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("game:choose")
    def game_choose(data):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        state, error = _run(room_code, lambda: registry.choose_card(room_code, request.sid, payload.get("cardId")))
        if error:
            return {"ok": False, "error": error}

        if state["phase"] == "voting":
            socketio.emit("game:cards_ready", {"roomCode": room_code, "cards": state["mixedCards"]}, to=room_code)
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("game:vote")
    def game_vote(data):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        state, error = _run(room_code, lambda: registry.vote(room_code, request.sid, payload.get("cardId")))
        if error:
            return {"ok": False, "error": error}

        if state["phase"] == "reveal":
            socketio.emit(
                "game:round_ended",
                {
                    "roomCode": room_code,
                    "storytellerCardId": state["storytellerCardId"],
                    "selectedCards": state["selectedCards"],
                    "votes": state["votes"],
                    "deltas": state["lastRound"],
                },
                to=room_code,
            )
        elif state["phase"] == "gameEnd":
            socketio.emit(
                "game:ended",
                {
                    "roomCode": room_code,
                    "winner": state["winnerName"],
                    "finalScores": [
                        {"id": p["id"], "name": p["name"], "points": p["points"]} for p in state["players"]
                    ],
                },
                to=room_code,
            )
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("game:next_round")
    def game_next_round(data):
        room_code = _room_code(data)
        _, error = _run(room_code, lambda: registry.next_round(room_code))
        if error:
            return {"ok": False, "error": error}
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("game:restart")
    def game_restart(data):
        room_code = _room_code(data)
        _, error = _run(room_code, lambda: registry.restart(room_code))
        if error:
            return {"ok": False, "error": error}
        _safe_broadcast_room_state(room_code)
        return {"ok": True}

    @socketio.on("disconnect")
    def on_disconnect(*args):
        for affected in registry.leave(request.sid):
            _safe_broadcast_room_state(affected)
