from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.cards import card_to_dict

bp = Blueprint("cards", __name__)


@bp.get("/cards")
def list_cards():
    registry = current_app.extensions["picme"]
    return jsonify([card_to_dict(c) for c in registry.card_pool])
