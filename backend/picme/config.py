import os
from pathlib import Path


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Card catalog (JSON array of {id, title, image})
    CARDS_PATH = os.environ.get(
        "CARDS_PATH",
        str(Path(__file__).resolve().parents[1] / "cards.json"),
    )

    # Storage: "memory" (default) or "json" (one file per room under DATA_DIR)
    ROOM_STORE = os.environ.get("ROOM_STORE", "memory")
    DATA_DIR = os.environ.get("DATA_DIR", str(Path(__file__).resolve().parents[1] / "data"))

    # Game
    HAND_SIZE = int(os.environ.get("HAND_SIZE", "6"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    WINNING_SCORE = int(os.environ.get("WINNING_SCORE", "30"))
    HINT_MIN_LENGTH = int(os.environ.get("HINT_MIN_LENGTH", "2"))
    HINT_MAX_LENGTH = int(os.environ.get("HINT_MAX_LENGTH", "100"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "16"))
    # "standard" or "lump"
    SCORING_RULES = os.environ.get("SCORING_RULES", "standard")

    # Optional fixed seed for deck shuffles
    RANDOM_SEED = int(os.environ["RANDOM_SEED"]) if os.environ.get("RANDOM_SEED") else None
