from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from ..config import Config


RoomState = Literal["lobby", "playing"]
Phase = Literal["waiting", "storytelling", "selectCards", "voting", "reveal", "gameEnd"]
CardId = Union[int, str]


@dataclass(frozen=True)
class Card:
    id: CardId
    title: str = ""
    image_ref: str = ""


@dataclass
class Player:
    # `id` is the current session; `name` is the durable identity within a room.
    id: str
    name: str
    points: int = 0
    hand: list[Card] = field(default_factory=list)
    connected: bool = True


@dataclass
class SelectedCard:
    card: Card
    player: str


@dataclass
class Vote:
    card_id: CardId
    player: str


@dataclass(frozen=True)
class ScoreDelta:
    player: str
    delta: int
    reason: str


@dataclass
class Room:
    id: str
    state: RoomState = "lobby"
    phase: Phase = "waiting"
    round: int = 0
    storyteller_index: int = 0
    players: list[Player] = field(default_factory=list)
    deck: list[Card] = field(default_factory=list)
    discard: list[Card] = field(default_factory=list)
    hint: str = ""
    storyteller_card_id: CardId | None = None
    selected_cards: list[SelectedCard] = field(default_factory=list)
    mixed_cards: list[Card] = field(default_factory=list)
    votes: list[Vote] = field(default_factory=list)
    last_round: list[ScoreDelta] = field(default_factory=list)
    winner_name: str | None = None

    @property
    def storyteller(self) -> Player | None:
        if not self.players:
            return None
        return self.players[self.storyteller_index % len(self.players)]


@dataclass(frozen=True)
class Rules:
    hand_size: int = 6
    min_players: int = 3
    winning_score: int = 30
    hint_min_length: int = 2
    hint_max_length: int = 100
    max_name_length: int = 16
    scoring: str = "standard"

    @classmethod
    def from_config(cls, config=Config) -> "Rules":
        def get(key, default):
            if isinstance(config, dict):
                return config.get(key, default)
            return getattr(config, key, default)

        return cls(
            hand_size=int(get("HAND_SIZE", cls.hand_size)),
            min_players=int(get("MIN_PLAYERS", cls.min_players)),
            winning_score=int(get("WINNING_SCORE", cls.winning_score)),
            hint_min_length=int(get("HINT_MIN_LENGTH", cls.hint_min_length)),
            hint_max_length=int(get("HINT_MAX_LENGTH", cls.hint_max_length)),
            max_name_length=int(get("MAX_NAME_LENGTH", cls.max_name_length)),
            scoring=str(get("SCORING_RULES", cls.scoring)),
        )
