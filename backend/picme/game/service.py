from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Sequence

from . import engine
from . import players as directory
from .cards import card_to_dict
from .errors import NotFoundError, ValidationError
from .models import Card, Room, Rules
from .store import MemoryRoomStore

logger = logging.getLogger(__name__)

OPEN_PHASES = ("storytelling", "selectCards", "voting")
MAX_ROOM_ID_LENGTH = 64


def _room_key(room_id) -> str:
    key = str(room_id or "").strip()
    if not key or len(key) > MAX_ROOM_ID_LENGTH:
        raise ValidationError("invalid_payload", "a room id is required")
    return key


def room_state(room: Room) -> dict:
    """Full snapshot; hands and ownership included."""
    session_of = {p.name: p.id for p in room.players}
    storyteller = room.storyteller
    return {
        "id": room.id,
        "state": room.state,
        "phase": room.phase,
        "round": room.round,
        "storytellerIndex": room.storyteller_index,
        "storyteller": storyteller.name if storyteller else None,
        "hint": room.hint,
        "storytellerCardId": room.storyteller_card_id,
        "selectedCards": [
            {"cardId": sc.card.id, "playerId": session_of.get(sc.player), "playerName": sc.player}
            for sc in room.selected_cards
        ],
        "mixedCards": [{"cardId": c.id, "title": c.title, "imageRef": c.image_ref} for c in room.mixed_cards],
        "votes": [
            {"cardId": v.card_id, "playerId": session_of.get(v.player), "playerName": v.player}
            for v in room.votes
        ],
        "winnerName": room.winner_name,
        "deckSize": len(room.deck),
        "discardSize": len(room.discard),
        "lastRound": [
            {"playerId": session_of.get(d.player), "playerName": d.player, "delta": d.delta, "reason": d.reason}
            for d in room.last_round
        ],
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "points": p.points,
                "connected": p.connected,
                "hand": [card_to_dict(c) for c in p.hand],
            }
            for p in room.players
        ],
    }


def room_public_state(room: Room, viewer_session_id: str | None = None) -> dict:
    """Snapshot for one untrusted viewer: only their own hand, and no
    ownership or vote targets while the round is still open."""
    payload = room_state(room)
    viewer = directory.find_by_session(room, viewer_session_id) if viewer_session_id else None
    viewer_name = viewer.name if viewer else None

    for p in payload["players"]:
        if p["name"] != viewer_name:
            p["handSize"] = len(p.pop("hand"))

    if room.phase in OPEN_PHASES:
        storyteller = room.storyteller
        if not storyteller or storyteller.name != viewer_name:
            payload["storytellerCardId"] = None
        for sc in payload["selectedCards"]:
            if sc["playerName"] != viewer_name:
                sc["cardId"] = None
        for v in payload["votes"]:
            if v["playerName"] != viewer_name:
                v["cardId"] = None

    return payload


class RoomRegistry:
    """Maps room ids to rooms and serializes every action per room.

    Each room has its own re-entrant lock; an action holds it across
    load, validate, mutate and save, so two actions on one room never
    interleave while different rooms proceed in parallel.
    """

    def __init__(
        self,
        card_pool: Sequence[Card],
        store=None,
        rules: Rules | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.card_pool = tuple(card_pool)
        self.store = store if store is not None else MemoryRoomStore()
        self.rules = rules or Rules()
        self.rng = rng or random.Random()
        self._lock = RLock()
        # room id -> [lock, number of threads holding or waiting on it]
        self._room_locks: dict[str, list] = {}

    @contextmanager
    def _room_lock(self, room_id: str) -> Iterator[None]:
        """Hold the room's lock; the entry is dropped once nobody uses it."""
        with self._lock:
            entry = self._room_locks.get(room_id)
            if entry is None:
                entry = self._room_locks[room_id] = [RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._room_locks[room_id]

    @contextmanager
    def _room(self, room_id, create: bool = False) -> Iterator[Room]:
        key = _room_key(room_id)
        with self._room_lock(key):
            room = self.store.get(key)
            if room is None:
                if not create:
                    raise NotFoundError("room_not_found", f"room {key!r} does not exist")
                room = Room(id=key)
                logger.info("[%s] room created", key)
            yield room
            if room.players and directory.connected_players(room):
                self.store.save(room)
            else:
                self.store.delete(key)
                logger.info("[%s] room deleted (no players left)", key)

    # -- player directory -------------------------------------------------

    def join(self, room_id, name: str, session_id: str) -> dict:
        with self._room(room_id, create=True) as room:
            directory.join_or_reconnect(room, name, session_id, self.rules.max_name_length)
            return room_state(room)

    def leave(self, session_id: str) -> list[str]:
        """Drop the session from every room it is in; returns those room ids."""
        affected: list[str] = []
        if not session_id:
            return affected
        for room_id in self.store.list_ids():
            try:
                with self._room(room_id) as room:
                    if directory.leave(room, session_id):
                        engine.settle_departure(room, self.rules, self.rng)
                        affected.append(room.id)
            except NotFoundError:
                # Deleted by a concurrent action between listing and locking.
                continue
        return affected

    # -- phase machine ----------------------------------------------------

    def start_game(self, room_id) -> dict:
        with self._room(room_id) as room:
            engine.start_game(room, self.card_pool, self.rules, self.rng)
            return room_state(room)

    def give_hint(self, room_id, session_id: str, card_id, hint: str) -> dict:
        with self._room(room_id) as room:
            engine.give_hint(room, session_id, card_id, hint, self.rules)
            return room_state(room)

    def choose_card(self, room_id, session_id: str, card_id) -> dict:
        with self._room(room_id) as room:
            engine.choose_card(room, session_id, card_id, self.rng)
            return room_state(room)

    def vote(self, room_id, session_id: str, card_id) -> dict:
        with self._room(room_id) as room:
            engine.vote(room, session_id, card_id, self.rules)
            return room_state(room)

    def next_round(self, room_id) -> dict:
        with self._room(room_id) as room:
            engine.next_round(room, self.rules)
            return room_state(room)

    def restart(self, room_id) -> dict:
        with self._room(room_id) as room:
            engine.restart(room, self.rules)
            return room_state(room)

    # -- reads ------------------------------------------------------------

    def get_state(self, room_id, viewer_session_id: str | None = None) -> dict:
        """Full snapshot, or the redacted one when a viewer is given."""
        key = _room_key(room_id)
        with self._room_lock(key):
            room = self.store.get(key)
            if room is None:
                raise NotFoundError("room_not_found", f"room {key!r} does not exist")
            if viewer_session_id is not None:
                return room_public_state(room, viewer_session_id)
            return room_state(room)

    def get_room(self, room_id) -> Room | None:
        return self.store.get(_room_key(room_id))

    def list_rooms(self) -> list[str]:
        return self.store.list_ids()

    def room_count(self) -> int:
        return len(self.store.list_ids())

    # -- action protocol --------------------------------------------------

    def dispatch(self, action: str, payload: dict) -> dict:
        """Route a transport-agnostic action name to the matching operation."""
        room_id = payload.get("roomId", payload.get("gameId"))
        session_id = str(payload.get("sessionId") or "")
        card_id = payload.get("cardId")

        if action in ("join", "joinLobby"):
            name = payload.get("name", payload.get("playerName", ""))
            return self.join(room_id, name if isinstance(name, str) else "", session_id)
        if action == "leave":
            return {"rooms": self.leave(session_id)}
        if action == "startGame":
            return self.start_game(room_id)
        if action == "giveHint":
            return self.give_hint(room_id, session_id, card_id, payload.get("hint", ""))
        if action == "chooseCard":
            return self.choose_card(room_id, session_id, card_id)
        if action == "vote":
            return self.vote(room_id, session_id, card_id)
        if action == "nextRound":
            return self.next_round(room_id)
        if action == "restart":
            return self.restart(room_id)
        if action == "getState":
            return self.get_state(room_id, payload.get("sessionId") or None)
        raise ValidationError("unknown_action", f"unknown action {action!r}")
