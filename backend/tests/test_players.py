import pytest

from picme.game import players as directory
from picme.game.errors import NotFoundError, ValidationError
from picme.game.models import Room

from conftest import seat, sid


def test_join_creates_room_and_player(registry):
    state = registry.join("r1", "Alice", sid("Alice"))

    assert state["id"] == "r1"
    assert state["phase"] == "waiting"
    assert state["players"] == [
        {"id": sid("Alice"), "name": "Alice", "points": 0, "connected": True, "hand": []}
    ]


def test_join_strips_and_validates_names(registry):
    registry.join("r1", "  Bob  ", "s1")
    assert registry.get_room("r1").players[0].name == "Bob"

    for bad in ("", "   ", "x" * 17, "<script>", "a\x01b"):
        with pytest.raises(ValidationError) as exc:
            registry.join("r1", bad, "s2")
        assert exc.value.code == "invalid_name"


def test_failed_first_join_does_not_create_room(registry):
    with pytest.raises(ValidationError):
        registry.join("ghost", "", "s1")
    assert registry.get_room("ghost") is None


def test_name_held_by_active_session_is_taken_in_lobby(registry):
    registry.join("r1", "Alice", "s1")

    with pytest.raises(ValidationError) as exc:
        registry.join("r1", "Alice", "s2")

    assert exc.value.code == "name_taken"
    assert registry.get_room("r1").players[0].id == "s1"


def test_same_session_rejoining_is_a_reconnect(registry):
    registry.join("r1", "Alice", "s1")
    registry.join("r1", "Alice", "s1")
    assert len(registry.get_room("r1").players) == 1


def test_one_session_cannot_hold_two_names(registry):
    registry.join("r1", "Alice", "s1")
    with pytest.raises(ValidationError) as exc:
        registry.join("r1", "Bob", "s1")
    assert exc.value.code == "invalid_payload"


def test_new_names_cannot_join_a_running_game(started):
    with pytest.raises(ValidationError) as exc:
        started.join("r1", "Eve", sid("Eve"))
    assert exc.value.code == "game_in_progress"


def test_leave_in_lobby_removes_player(registry):
    seat(registry, "r1", ["Alice", "Bob"])

    assert registry.leave(sid("Alice")) == ["r1"]

    assert [p.name for p in registry.get_room("r1").players] == ["Bob"]


def test_last_player_leaving_deletes_room(registry):
    seat(registry, "r1", ["Alice"])

    registry.leave(sid("Alice"))

    assert registry.get_room("r1") is None
    with pytest.raises(NotFoundError):
        registry.get_state("r1")


def test_leave_covers_every_room_of_the_session(registry):
    registry.join("r1", "Alice", "s1")
    registry.join("r2", "Alice", "s1")
    registry.join("r2", "Bob", "s2")

    assert registry.leave("s1") == ["r1", "r2"]
    assert registry.list_rooms() == ["r2"]


def test_leave_unknown_session_is_harmless(registry):
    seat(registry, "r1", ["Alice"])
    assert registry.leave("nobody") == []
    assert registry.leave("") == []


def test_reconnect_mid_game_preserves_hand_and_points(started):
    room = started.get_room("r1")
    bob = directory.find_by_name(room, "Bob")
    bob.points = 7
    hand = list(bob.hand)

    started.leave(sid("Bob"))
    assert bob.connected is False
    assert started.get_room("r1") is not None

    state = started.join("r1", "Bob", "sid-Bob-2")

    bob_state = next(p for p in state["players"] if p["name"] == "Bob")
    assert bob_state["id"] == "sid-Bob-2"
    assert bob_state["points"] == 7
    assert [c["id"] for c in bob_state["hand"]] == [c.id for c in hand]
    assert directory.find_by_session(room, sid("Bob")) is None


def test_active_name_takeover_is_allowed_mid_game(started):
    state = started.join("r1", "Cara", "sid-Cara-tab2")
    assert any(p["id"] == "sid-Cara-tab2" for p in state["players"])


def test_room_goes_away_when_everyone_disconnects_mid_game(started):
    for name in ["Alice", "Bob", "Cara", "Dan"]:
        started.leave(sid(name))
    assert started.get_room("r1") is None


def test_leave_in_lobby_keeps_storyteller_index_in_bounds():
    room = Room(id="r")
    for name in ["a", "b", "c"]:
        directory.join_or_reconnect(room, name, f"s-{name}")
    room.storyteller_index = 2

    directory.leave(room, "s-c")

    assert 0 <= room.storyteller_index < len(room.players)


def test_require_player_raises_not_found():
    with pytest.raises(NotFoundError) as exc:
        directory.require_player(Room(id="r"), "s1")
    assert exc.value.code == "player_not_found"
