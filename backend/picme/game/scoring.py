"""Round scoring.

Pure functions: they read one round's hint/selection/vote data and return
point deltas. Applying the deltas to players is left to the caller.

Two rule sets exist because earlier versions of the game disagreed:

``standard``
    Storyteller +3 unless every voter or no voter found their card.
    Each correct voter +3. Each decoy owner +1 per vote their card drew.
    When all or none found the card, every non-storyteller gets +2.

``lump``
    As above, but a decoy owner's votes are awarded as a single
    ``decoy_votes`` delta and there is no all/none bonus.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from .cards import card_key
from .models import CardId, ScoreDelta, SelectedCard, Vote


SCORING_RULES = ("standard", "lump")

STORYTELLER_POINTS = 3
CORRECT_VOTE_POINTS = 3
DECOY_VOTE_POINTS = 1
ALL_OR_NONE_BONUS = 2


def score_round(
    storyteller: str,
    storyteller_card_id: CardId,
    selected_cards: Sequence[SelectedCard],
    votes: Sequence[Vote],
    players: Iterable[str],
    rules: str = "standard",
) -> list[ScoreDelta]:
    if rules not in SCORING_RULES:
        raise ValueError(f"unknown scoring rules: {rules!r}")

    target = card_key(storyteller_card_id)
    correct_votes = sum(1 for v in votes if card_key(v.card_id) == target)
    all_correct = correct_votes == len(votes)
    none_correct = correct_votes == 0
    all_or_none = all_correct or none_correct

    deltas: list[ScoreDelta] = []

    if all_or_none:
        deltas.append(ScoreDelta(storyteller, 0, "storyteller_all_or_none"))
    else:
        deltas.append(ScoreDelta(storyteller, STORYTELLER_POINTS, "storyteller_mixed"))

    for v in votes:
        if card_key(v.card_id) == target:
            deltas.append(ScoreDelta(v.player, CORRECT_VOTE_POINTS, "correct_vote"))

    owners = {card_key(sc.card.id): sc.player for sc in selected_cards}
    decoy_votes = [
        v for v in votes
        if card_key(v.card_id) != target and owners.get(card_key(v.card_id)) not in (None, storyteller)
    ]

    if rules == "lump":
        per_owner = Counter(owners[card_key(v.card_id)] for v in decoy_votes)
        for sc in selected_cards:
            if sc.player != storyteller and per_owner.get(sc.player):
                deltas.append(ScoreDelta(sc.player, per_owner[sc.player] * DECOY_VOTE_POINTS, "decoy_votes"))
        return deltas

    for v in decoy_votes:
        deltas.append(ScoreDelta(owners[card_key(v.card_id)], DECOY_VOTE_POINTS, "decoy_vote"))

    if all_or_none:
        for name in players:
            if name != storyteller:
                deltas.append(ScoreDelta(name, ALL_OR_NONE_BONUS, "all_or_none_bonus"))

    return deltas


def totals(deltas: Iterable[ScoreDelta]) -> dict[str, int]:
    out: dict[str, int] = {}
    for d in deltas:
        out[d.player] = out.get(d.player, 0) + d.delta
    return out
