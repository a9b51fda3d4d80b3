from __future__ import annotations


class GameError(RuntimeError):
    """Base error for rejected actions. `code` is a stable reason code."""

    status_code = 400

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(GameError):
    status_code = 400


class NotFoundError(GameError):
    status_code = 404


class StateError(GameError):
    status_code = 409
