from __future__ import annotations


class GameError(Exception):
    """Base for every failure an action can report back to its caller.

    Subclasses are client errors: retrying the same request will fail the
    same way. Anything that is not a ``GameError`` is treated as a transient
    server failure by the dispatch layer.
    """

    code = "game_error"
    status = 400
    default_message = "Action failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "retryable": False,
        }


class InvalidSession(GameError):
    code = "invalid_session"
    status = 401
    default_message = "Invalid session"


class NotAuthorized(GameError):
    code = "not_authorized"
    status = 403
    default_message = "Not authorized"


class RoomNotFound(GameError):
    code = "room_not_found"
    status = 404
    default_message = "Room not found"


class GameInProgress(GameError):
    code = "game_in_progress"
    status = 409
    default_message = "Game already in progress"


class RoomFull(GameError):
    code = "room_full"
    status = 409
    default_message = "Room is full"


class InvalidWordSelection(GameError):
    code = "invalid_word_selection"
    default_message = "Invalid word selection"


class ValidationError(GameError):
    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Invalid {field}")

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["field"] = self.field
        return payload


class InvalidScore(GameError):
    code = "invalid_score"
    default_message = "Invalid score"


class UnknownAction(GameError):
    code = "unknown_action"
    default_message = "Unknown action"


def internal_error_payload() -> dict:
    return {
        "success": False,
        "error": "internal_error",
        "message": "Internal server error",
        "retryable": True,
    }
