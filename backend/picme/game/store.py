"""Room storage backends.

The registry loads a room, mutates it and saves it back under the room's
lock, so a store only has to be safe for distinct rooms at once.
"""
from __future__ import annotations

import os
from pathlib import Path
from threading import RLock
from urllib.parse import quote, unquote

import orjson

from .cards import card_from_dict, card_to_dict
from .models import Player, Room, ScoreDelta, SelectedCard, Vote


def room_to_dict(room: Room) -> dict:
    return {
        "id": room.id,
        "state": room.state,
        "phase": room.phase,
        "round": room.round,
        "storytellerIndex": room.storyteller_index,
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
        "deck": [card_to_dict(c) for c in room.deck],
        "discard": [card_to_dict(c) for c in room.discard],
        "hint": room.hint,
        "storytellerCardId": room.storyteller_card_id,
        "selectedCards": [{"card": card_to_dict(sc.card), "player": sc.player} for sc in room.selected_cards],
        "mixedCards": [card_to_dict(c) for c in room.mixed_cards],
        "votes": [{"cardId": v.card_id, "player": v.player} for v in room.votes],
        "lastRound": [{"player": d.player, "delta": d.delta, "reason": d.reason} for d in room.last_round],
        "winnerName": room.winner_name,
    }


def room_from_dict(data: dict) -> Room:
    return Room(
        id=data["id"],
        state=data.get("state", "lobby"),
        phase=data.get("phase", "waiting"),
        round=int(data.get("round", 0)),
        storyteller_index=int(data.get("storytellerIndex", 0)),
        players=[
            Player(
                id=p["id"],
                name=p["name"],
                points=int(p.get("points", 0)),
                connected=bool(p.get("connected", True)),
                hand=[card_from_dict(c) for c in p.get("hand", [])],
            )
            for p in data.get("players", [])
        ],
        deck=[card_from_dict(c) for c in data.get("deck", [])],
        discard=[card_from_dict(c) for c in data.get("discard", [])],
        hint=data.get("hint", ""),
        storyteller_card_id=data.get("storytellerCardId"),
        selected_cards=[
            SelectedCard(card=card_from_dict(sc["card"]), player=sc["player"])
            for sc in data.get("selectedCards", [])
        ],
        mixed_cards=[card_from_dict(c) for c in data.get("mixedCards", [])],
        votes=[Vote(card_id=v["cardId"], player=v["player"]) for v in data.get("votes", [])],
        last_round=[
            ScoreDelta(player=d["player"], delta=int(d["delta"]), reason=d["reason"])
            for d in data.get("lastRound", [])
        ],
        winner_name=data.get("winnerName"),
    )


class MemoryRoomStore:
    def __init__(self) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def save(self, room: Room) -> None:
        with self._lock:
            self._rooms[room.id] = room

    def delete(self, room_id: str) -> bool:
        with self._lock:
            return self._rooms.pop(room_id, None) is not None

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._rooms.keys())


class JsonFileRoomStore:
    """One JSON document per room, for the stateless poll transport."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, room_id: str) -> Path:
        return self.directory / f"{quote(room_id, safe='')}.json"

    def get(self, room_id: str) -> Room | None:
        path = self._path(room_id)
        if not path.exists():
            return None
        with path.open("rb") as fh:
            return room_from_dict(orjson.loads(fh.read()))

    def save(self, room: Room) -> None:
        path = self._path(room.id)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("wb") as fh:
            fh.write(orjson.dumps(room_to_dict(room)))
        os.replace(tmp, path)

    def delete(self, room_id: str) -> bool:
        path = self._path(room_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_ids(self) -> list[str]:
        return sorted(unquote(p.name[: -len(".json")]) for p in self.directory.glob("*.json"))
