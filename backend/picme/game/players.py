from __future__ import annotations

import logging

from .errors import NotFoundError, ValidationError
from .models import Player, Room


logger = logging.getLogger(__name__)


def normalize_name(name: str, max_length: int = 16) -> str:
    n = (name or "").strip()
    if not n:
        raise ValidationError("invalid_name", "name is required")
    if len(n) > max_length:
        raise ValidationError("invalid_name", f"name must be at most {max_length} characters")
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        raise ValidationError("invalid_name", "name contains invalid characters")
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            raise ValidationError("invalid_name", "name contains invalid characters")
    return n


def find_by_name(room: Room, name: str) -> Player | None:
    for p in room.players:
        if p.name == name:
            return p
    return None


def find_by_session(room: Room, session_id: str) -> Player | None:
    if not session_id:
        return None
    for p in room.players:
        if p.connected and p.id == session_id:
            return p
    return None


def require_player(room: Room, session_id: str) -> Player:
    player = find_by_session(room, session_id)
    if player is None:
        raise NotFoundError("player_not_found", "no player with this session in the room")
    return player


def connected_players(room: Room) -> list[Player]:
    return [p for p in room.players if p.connected]


def join_or_reconnect(room: Room, name: str, session_id: str, max_name_length: int = 16) -> tuple[Player, bool]:
    """Returns (player, reconnected).

    An existing name keeps its hand and points and only takes over the new
    session. New names are only seated while the room is in the lobby.
    """
    if not session_id:
        raise ValidationError("invalid_payload", "session id is required")
    name = normalize_name(name, max_name_length)

    existing = find_by_name(room, name)
    if existing is not None:
        if room.state == "lobby" and existing.connected and existing.id != session_id:
            raise ValidationError("name_taken", f"name {name!r} is already taken in this room")

        # A session can only stand for one player per room.
        other = find_by_session(room, session_id)
        if other is not None and other is not existing:
            raise ValidationError("invalid_payload", "session already joined under another name")

        old_sid = existing.id
        existing.id = session_id
        existing.connected = True
        logger.info(
            "[%s] %s reconnected (%s -> %s), hand=%d points=%d",
            room.id, name, old_sid, session_id, len(existing.hand), existing.points,
        )
        return existing, True

    # Seats are dealt at start; a late name would have no hand to play from.
    if room.state != "lobby":
        raise ValidationError("game_in_progress", "new players can only join in the lobby")
    if find_by_session(room, session_id) is not None:
        raise ValidationError("invalid_payload", "session already joined under another name")

    player = Player(id=session_id, name=name)
    room.players.append(player)
    logger.info("[%s] %s joined with session %s", room.id, name, session_id)
    return player, False


def leave(room: Room, session_id: str) -> bool:
    """Drop the session from the room.

    Lobby players are removed outright. During a game the record is kept
    (hand and points intact) and marked disconnected so the same name can
    pick it up again; the round stops waiting on a disconnected seat.
    """
    player = find_by_session(room, session_id)
    if player is None:
        return False

    if room.state == "lobby":
        idx = room.players.index(player)
        room.players.remove(player)
        if room.players:
            if idx < room.storyteller_index:
                room.storyteller_index -= 1
            room.storyteller_index %= len(room.players)
        else:
            room.storyteller_index = 0
        logger.info("[%s] %s left the lobby", room.id, player.name)
    else:
        player.connected = False
        logger.info("[%s] %s disconnected mid-game, keeping hand=%d points=%d",
                    room.id, player.name, len(player.hand), player.points)
    return True


def drop_disconnected(room: Room) -> list[str]:
    gone = [p.name for p in room.players if not p.connected]
    if gone:
        room.players = [p for p in room.players if p.connected]
        room.storyteller_index = 0
    return gone
