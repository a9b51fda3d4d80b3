from __future__ import annotations

import logging
import random
from typing import Sequence

from . import deck as deck_ops
from . import players as directory
from .cards import card_key
from .errors import StateError, ValidationError
from .models import Card, Player, Room, Rules, SelectedCard, Vote
from .scoring import score_round


logger = logging.getLogger(__name__)


def _require_phase(room: Room, *phases: str) -> None:
    if room.phase not in phases:
        raise ValidationError(
            "invalid_phase",
            f"action not allowed in phase {room.phase!r} (expected {', '.join(phases)})",
        )


def _card_in_hand(player: Player, card_id) -> Card:
    key = card_key(card_id)
    for c in player.hand:
        if card_key(c.id) == key:
            return c
    raise ValidationError("card_not_in_hand", f"card {card_id!r} is not in your hand")


def _reset_round(room: Room) -> None:
    room.hint = ""
    room.storyteller_card_id = None
    room.selected_cards = []
    room.mixed_cards = []
    room.votes = []
    room.last_round = []


def _check_cards(room: Room, pool_size: int | None = None) -> None:
    dupes = deck_ops.find_duplicate_card_ids(deck_ops.cards_in_play(room))
    if dupes:
        logger.warning("[%s] duplicate card ids in play: %s", room.id, dupes)
    if pool_size is not None:
        held = len(deck_ops.cards_in_play(room))
        if held != pool_size:
            logger.warning("[%s] %d cards in play but pool has %d", room.id, held, pool_size)


def start_game(
    room: Room,
    card_pool: Sequence[Card],
    rules: Rules,
    rng: random.Random | None = None,
) -> None:
    if room.state != "lobby":
        raise ValidationError("invalid_phase", "game already in progress")
    _require_phase(room, "waiting")

    seated = directory.connected_players(room)
    if len(seated) < rules.min_players:
        raise StateError(
            "not_enough_players",
            f"need at least {rules.min_players} players, have {len(seated)}",
        )
    needed = len(seated) * rules.hand_size
    if len(card_pool) < needed:
        raise StateError(
            "not_enough_cards",
            f"need {needed} cards for {len(seated)} players, pool has {len(card_pool)}",
        )

    dropped = directory.drop_disconnected(room)
    if dropped:
        logger.info("[%s] dropping disconnected players before start: %s", room.id, dropped)

    room.deck = deck_ops.initialize_deck(card_pool, rng)
    room.discard = []
    _reset_round(room)
    for p in room.players:
        p.points = 0
    deck_ops.deal(room.deck, room.players, rules.hand_size)

    room.state = "playing"
    room.phase = "storytelling"
    room.round = 1
    room.storyteller_index = 0
    room.winner_name = None

    logger.info(
        "[%s] game started: %d players, %d cards in pool, %d left in deck, storyteller=%s",
        room.id, len(room.players), len(card_pool), len(room.deck), room.storyteller.name,
    )
    _check_cards(room, len(card_pool))


def give_hint(room: Room, session_id: str, card_id, hint: str, rules: Rules) -> None:
    _require_phase(room, "storytelling")
    player = directory.require_player(room, session_id)
    if player is not room.storyteller:
        raise ValidationError("not_storyteller", "only the storyteller can give the hint")
    card = _card_in_hand(player, card_id)

    text = (hint or "").strip() if isinstance(hint, str) else ""
    if not rules.hint_min_length <= len(text) <= rules.hint_max_length:
        raise ValidationError(
            "invalid_hint",
            f"hint must be {rules.hint_min_length}-{rules.hint_max_length} characters",
        )

    player.hand.remove(card)
    room.hint = text
    room.storyteller_card_id = card.id
    room.selected_cards = [SelectedCard(card=card, player=player.name)]
    room.mixed_cards = []
    room.votes = []
    room.phase = "selectCards"
    logger.info("[%s] %s gave hint %r", room.id, player.name, text)


def choose_card(room: Room, session_id: str, card_id, rng: random.Random | None = None) -> None:
    _require_phase(room, "selectCards")
    player = directory.require_player(room, session_id)
    if player is room.storyteller:
        raise ValidationError("storyteller_cannot_act", "the storyteller already played a card")
    if any(sc.player == player.name for sc in room.selected_cards):
        raise ValidationError("already_submitted", "you already chose a card this round")
    card = _card_in_hand(player, card_id)

    player.hand.remove(card)
    room.selected_cards.append(SelectedCard(card=card, player=player.name))
    logger.debug("[%s] %s chose a card (%d/%d)", room.id, player.name,
                 len(room.selected_cards), len(room.players))

    if _selection_complete(room):
        _open_voting(room, rng)


def _waiting_on(room: Room) -> list[Player]:
    """Connected non-storytellers; disconnected seats never hold up a round."""
    storyteller = room.storyteller
    return [p for p in directory.connected_players(room) if p is not storyteller]


def _selection_complete(room: Room) -> bool:
    chosen = {sc.player for sc in room.selected_cards}
    return all(p.name in chosen for p in _waiting_on(room))


def _votes_complete(room: Room) -> bool:
    voted = {v.player for v in room.votes}
    return all(p.name in voted for p in _waiting_on(room))


def _open_voting(room: Room, rng: random.Random | None = None) -> None:
    # Presentation order only; selected_cards keeps ownership and order.
    room.mixed_cards = deck_ops.shuffle([sc.card for sc in room.selected_cards], rng)
    room.phase = "voting"
    logger.info("[%s] all cards selected, voting opens", room.id)


def _next_connected_index(room: Room, start: int) -> int:
    count = len(room.players)
    for step in range(1, count + 1):
        idx = (start + step) % count
        if room.players[idx].connected:
            return idx
    return start % count


def vote(room: Room, session_id: str, card_id, rules: Rules) -> None:
    _require_phase(room, "voting")
    player = directory.require_player(room, session_id)
    storyteller = room.storyteller
    if player is storyteller:
        raise ValidationError("storyteller_cannot_act", "the storyteller does not vote")
    if any(v.player == player.name for v in room.votes):
        raise ValidationError("already_voted", "you already voted this round")

    key = card_key(card_id)
    target = next((sc for sc in room.selected_cards if card_key(sc.card.id) == key), None)
    if target is None:
        raise ValidationError("unknown_card", f"card {card_id!r} is not on the table")
    if target.player == player.name:
        raise ValidationError("own_card", "you cannot vote for your own card")

    room.votes.append(Vote(card_id=target.card.id, player=player.name))

    if _votes_complete(room):
        _finish_round(room, rules)


def _finish_round(room: Room, rules: Rules) -> None:
    storyteller = room.storyteller
    deltas = score_round(
        storyteller=storyteller.name,
        storyteller_card_id=room.storyteller_card_id,
        selected_cards=room.selected_cards,
        votes=room.votes,
        players=[p.name for p in room.players],
        rules=rules.scoring,
    )
    by_name = {p.name: p for p in room.players}
    for d in deltas:
        if d.player in by_name:
            by_name[d.player].points += d.delta
    room.last_round = deltas

    logger.info(
        "[%s] round %d scored: %s",
        room.id, room.round, {p.name: p.points for p in room.players},
    )

    leaders = [p for p in room.players if p.points >= rules.winning_score]
    if leaders:
        winner = max(leaders, key=lambda p: p.points)
        room.winner_name = winner.name
        room.phase = "gameEnd"
        logger.info("[%s] game over, winner %s with %d points", room.id, winner.name, winner.points)
    else:
        room.phase = "reveal"


def next_round(room: Room, rules: Rules) -> None:
    _require_phase(room, "reveal")

    room.discard.extend(sc.card for sc in room.selected_cards)
    _reset_round(room)
    room.round += 1
    room.storyteller_index = _next_connected_index(room, room.storyteller_index)
    deck_ops.refill(room.deck, room.players, rules.hand_size)
    room.phase = "storytelling"

    logger.info(
        "[%s] round %d, storyteller=%s, deck=%d",
        room.id, room.round, room.storyteller.name, len(room.deck),
    )
    _check_cards(room)


def settle_departure(room: Room, rules: Rules, rng: random.Random | None = None) -> None:
    """Move a running round along after a player disconnects.

    A departed storyteller hands the hint to the next connected player; a
    round that was only waiting on the departed player completes now.
    """
    if room.state != "playing" or not directory.connected_players(room):
        return

    if room.phase == "storytelling" and not room.storyteller.connected:
        room.storyteller_index = _next_connected_index(room, room.storyteller_index)
        logger.info("[%s] storyteller left, %s tells the story", room.id, room.storyteller.name)
    if room.phase == "selectCards" and _selection_complete(room):
        _open_voting(room, rng)
    if room.phase == "voting" and _votes_complete(room):
        _finish_round(room, rules)


def restart(room: Room, rules: Rules | None = None) -> None:
    # A running game may also be abandoned once too few players remain to finish it.
    short_handed = (
        rules is not None
        and room.state == "playing"
        and len(directory.connected_players(room)) < rules.min_players
    )
    if not short_handed:
        _require_phase(room, "waiting", "gameEnd")

    dropped = directory.drop_disconnected(room)
    if dropped:
        logger.info("[%s] dropping disconnected players on restart: %s", room.id, dropped)
    _reset_round(room)
    room.state = "lobby"
    room.phase = "waiting"
    room.round = 0
    room.storyteller_index = 0
    room.winner_name = None
    room.deck = []
    room.discard = []
    for p in room.players:
        p.points = 0
        p.hand = []
    logger.info("[%s] restarted with %d players", room.id, len(room.players))
