from __future__ import annotations

import os
import random
import sys

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.cards import load_card_pool
from .game.errors import GameError
from .game.models import Rules
from .game.service import RoomRegistry
from .game.store import JsonFileRoomStore, MemoryRoomStore
from .routes.cards import bp as cards_bp
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .realtime.handlers import register_socketio_handlers


def build_registry(config) -> RoomRegistry:
    card_pool = config.get("CARD_POOL")
    if card_pool is None:
        card_pool = load_card_pool(config.get("CARDS_PATH"))

    if config.get("ROOM_STORE", "memory") == "json":
        store = JsonFileRoomStore(config["DATA_DIR"])
    else:
        store = MemoryRoomStore()

    seed = config.get("RANDOM_SEED")
    rng = random.Random(seed) if seed is not None else None
    return RoomRegistry(card_pool, store=store, rules=Rules.from_config(config), rng=rng)


def create_app(config_class=Config) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if app.config.get("SOCKETIO_ASYNC_MODE"):
        async_mode = app.config["SOCKETIO_ASYNC_MODE"]
    elif env_async_mode:
        async_mode = env_async_mode
    else:
        # Default choice:
        # - Windows: threading (eventlet has known compatibility issues on newer Python)
        # - Python >= 3.13: threading (safer default)
        # - Otherwise: eventlet
        if sys.platform.startswith("win") or sys.version_info >= (3, 13):
            async_mode = "threading"
        else:
            async_mode = "eventlet"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    registry = build_registry(app.config)
    app.extensions["picme"] = registry

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(cards_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    @app.errorhandler(GameError)
    def handle_game_error(err: GameError):
        return jsonify({"success": False, **err.to_dict()}), err.status_code

    register_socketio_handlers(socketio, registry)

    app.logger.info(
        "PicMe ready: %d cards, store=%s, async_mode=%s",
        len(registry.card_pool), type(registry.store).__name__, async_mode,
    )
    return app, socketio
