from __future__ import annotations

import random
from collections import Counter
from typing import Iterable, Sequence

from .cards import card_key
from .models import Card, Player, Room


def shuffle(items: Sequence, rng: random.Random | None = None) -> list:
    """Fisher-Yates over a copy; the input is left untouched."""
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def initialize_deck(card_pool: Sequence[Card], rng: random.Random | None = None) -> list[Card]:
    return shuffle(card_pool, rng)


def deal(deck: list[Card], players: Iterable[Player], hand_size: int = 6) -> None:
    """Give each player, in turn order, up to `hand_size` cards off the front of the deck.

    A short deck leaves later players with short (or empty) hands.
    """
    for player in players:
        take = min(hand_size, len(deck))
        player.hand = deck[:take]
        del deck[:take]


def refill(deck: list[Card], players: Iterable[Player], hand_size: int = 6) -> None:
    for player in players:
        missing = hand_size - len(player.hand)
        take = min(max(0, missing), len(deck))
        if take:
            player.hand.extend(deck[:take])
            del deck[:take]


def find_duplicate_card_ids(*groups: Iterable[Card]) -> list:
    counts = Counter(card_key(c.id) for group in groups for c in group)
    return sorted(key for key, n in counts.items() if n > 1)


def cards_in_play(room: Room) -> list[Card]:
    """Every card the room currently holds: hands, deck, table and discard pile."""
    cards: list[Card] = []
    for p in room.players:
        cards.extend(p.hand)
    cards.extend(room.deck)
    cards.extend(sc.card for sc in room.selected_cards)
    cards.extend(room.discard)
    return cards
