import random

import pytest

from picme.game.models import Card, Rules
from picme.game.service import RoomRegistry
from picme.server import create_app


def make_pool(n=40):
    return tuple(Card(id=i, title=f"Card {i}", image_ref=f"/images/{i}.jpg") for i in range(1, n + 1))


def sid(name):
    return f"sid-{name}"


def seat(registry, room_id, names):
    for name in names:
        registry.join(room_id, name, sid(name))
    return registry.get_room(room_id)


def give_hint(registry, room_id, hint="a quiet morning"):
    """Storyteller plays the first card of their hand; returns it."""
    room = registry.get_room(room_id)
    storyteller = room.storyteller
    card = storyteller.hand[0]
    registry.give_hint(room_id, storyteller.id, card.id, hint)
    return card


def choose_all(registry, room_id):
    room = registry.get_room(room_id)
    storyteller = room.storyteller
    for p in list(room.players):
        if p is not storyteller:
            registry.choose_card(room_id, p.id, p.hand[0].id)


def card_of(room, name):
    return next(sc.card.id for sc in room.selected_cards if sc.player == name)


@pytest.fixture()
def card_pool():
    return make_pool()


@pytest.fixture()
def registry(card_pool):
    return RoomRegistry(card_pool, rng=random.Random(7))


@pytest.fixture()
def started(registry):
    """Four players, game started; Alice tells the first story."""
    seat(registry, "r1", ["Alice", "Bob", "Cara", "Dan"])
    registry.start_game("r1")
    return registry


@pytest.fixture()
def voting(started):
    give_hint(started, "r1")
    choose_all(started, "r1")
    return started


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    CORS_ORIGINS = "*"
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = "threading"
    ROOM_STORE = "memory"
    CARD_POOL = make_pool()
    RANDOM_SEED = 3
    HAND_SIZE = 6
    MIN_PLAYERS = 3
    WINNING_SCORE = 30
    HINT_MIN_LENGTH = 2
    HINT_MAX_LENGTH = 100
    MAX_NAME_LENGTH = 16
    SCORING_RULES = "standard"


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_and_socketio):
    app, socketio = app_and_socketio
    clients = []

    def _connect():
        c = socketio.test_client(app, flask_test_client=app.test_client())
        clients.append(c)
        return c

    yield _connect
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass


@pytest.fixture()
def small_rules():
    return Rules(winning_score=3)
