"""
Error taxonomy for rejected requests.

Every rejection carries a stable code for clients and a readable message.
An illegal card play is not an error: it resolves as a forced pickup.
"""


class GameError(Exception):
    """Base exception for requests the server refuses to apply."""

    code = "GAME_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.message, "code": self.code}


class ValidationError(GameError):
    """Malformed or out-of-range input (empty name, bad selection, bad index)."""

    code = "VALIDATION_ERROR"


class Forbidden(GameError):
    """Right request, wrong actor (not host, not your turn, wrong zone)."""

    code = "FORBIDDEN"


class NotFound(GameError):
    """Unknown room code."""

    code = "NOT_FOUND"


class Conflict(GameError):
    """Request does not fit the current phase or stage."""

    code = "CONFLICT"
