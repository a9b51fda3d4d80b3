from __future__ import annotations

import logging
from pathlib import Path

import orjson

from .models import Card


logger = logging.getLogger(__name__)

EXAMPLE_CARDS: tuple[Card, ...] = (
    Card(id=1, title="Beispielkarte 1", image_ref="/images/example1.jpg"),
    Card(id=2, title="Beispielkarte 2", image_ref="/images/example2.jpg"),
)


def card_key(card_id) -> str:
    """Card ids may arrive stringified from a transport; compare on this."""
    return str(card_id).strip()


def card_from_dict(data: dict) -> Card:
    if not isinstance(data, dict) or data.get("id") is None:
        raise ValueError(f"invalid card entry: {data!r}")
    return Card(
        id=data["id"],
        title=str(data.get("title", "")),
        image_ref=str(data.get("image", data.get("imageRef", ""))),
    )


def card_to_dict(card: Card) -> dict:
    return {"id": card.id, "title": card.title, "imageRef": card.image_ref}


def build_card_pool(entries) -> tuple[Card, ...]:
    cards = tuple(c if isinstance(c, Card) else card_from_dict(c) for c in entries)
    seen: set[str] = set()
    for c in cards:
        key = card_key(c.id)
        if key in seen:
            raise ValueError(f"duplicate card id in catalog: {c.id!r}")
        seen.add(key)
    return cards


def load_card_pool(path: str | Path | None) -> tuple[Card, ...]:
    if not path or not Path(path).exists():
        logger.warning("Card catalog %s not found, using example cards", path)
        return EXAMPLE_CARDS

    with Path(path).open("rb") as fh:
        try:
            raw = orjson.loads(fh.read())
        except orjson.JSONDecodeError as exc:
            raise ValueError(f"card catalog {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise ValueError(f"card catalog {path} must be a JSON array")

    pool = build_card_pool(raw)
    logger.info("Loaded %d cards from %s", len(pool), path)
    return pool
