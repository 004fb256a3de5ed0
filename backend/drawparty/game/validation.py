from __future__ import annotations

import re
from typing import Any

from ..errors import InvalidScore, InvalidSession, ValidationError
from .models import GAME_MODES, LANGUAGES, RoomSettings


NAME_RE = re.compile(r"^[A-Za-z0-9 _-]{1,20}$")
CODE_RE = re.compile(r"^[A-Z0-9]{6}$")

MAX_SCORE = 10000

# (attribute, min, max)
_INT_SETTINGS: dict[str, tuple[str, int, int]] = {
    "maxPlayers": ("max_players", 2, 16),
    "drawTime": ("draw_time", 30, 180),
    "totalRounds": ("total_rounds", 1, 10),
    "hintLevel": ("hint_level", 0, 5),
    "wordCount": ("word_count", 2, 5),
}
_BOOL_SETTINGS: dict[str, str] = {
    "isPublic": "is_public",
    "showHints": "show_hints",
}
_ENUM_SETTINGS: dict[str, tuple[str, tuple[str, ...]]] = {
    "gameMode": ("game_mode", GAME_MODES),
    "language": ("language", LANGUAGES),
}


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _text(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(field, f"{field} must be a string")
    return value


def player_name(value: Any) -> str:
    name = _text(value, "playerName").strip()
    if not NAME_RE.fullmatch(name):
        raise ValidationError(
            "playerName",
            "Name must be 1-20 letters, digits, spaces, dashes or underscores",
        )
    return name


def room_code(value: Any) -> str:
    code = _text(value, "code").strip().upper()
    if not CODE_RE.fullmatch(code):
        raise ValidationError("code", "Room code must be 6 letters or digits")
    return code


def avatar(value: Any) -> str:
    a = _text(value, "avatar").strip()
    if not 1 <= len(a) <= 10:
        raise ValidationError("avatar", "Avatar must be 1-10 characters")
    return a


def message_content(value: Any) -> str:
    content = _text(value, "content")
    if not content.strip() or len(content) > 500:
        raise ValidationError("content", "Message must be 1-500 characters")
    return content


def identifier(value: Any, field: str) -> str:
    ident = _text(value, field).strip()
    if not ident or len(ident) > 64:
        raise ValidationError(field)
    return ident


def session_token(value: Any) -> str | None:
    """A missing token is passed through; a malformed one is rejected outright."""
    if value is None:
        return None
    if not isinstance(value, str) or not 10 <= len(value) <= 100:
        raise InvalidSession()
    return value


def score(value: Any) -> int:
    if not is_int(value):
        raise InvalidScore("Score must be a whole number")
    if value < 0 or value > MAX_SCORE:
        raise InvalidScore(f"Score must be between 0 and {MAX_SCORE}")
    return value


def settings_patch(raw: Any) -> dict[str, Any]:
    """Validate a partial settings mapping.

    Returns attribute names of :class:`RoomSettings` mapped to their new
    values. Unknown keys are rejected rather than ignored.
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("settings", "settings must be an object")

    patch: dict[str, Any] = {}
    for key, value in raw.items():
        if key in _INT_SETTINGS:
            attr, lo, hi = _INT_SETTINGS[key]
            if not is_int(value) or not lo <= value <= hi:
                raise ValidationError(key, f"{key} must be an integer between {lo} and {hi}")
            patch[attr] = value
        elif key in _BOOL_SETTINGS:
            if not isinstance(value, bool):
                raise ValidationError(key, f"{key} must be true or false")
            patch[_BOOL_SETTINGS[key]] = value
        elif key in _ENUM_SETTINGS:
            attr, allowed = _ENUM_SETTINGS[key]
            if value not in allowed:
                raise ValidationError(key, f"{key} must be one of {', '.join(allowed)}")
            patch[attr] = value
        else:
            raise ValidationError(key, f"Unknown setting {key}")
    return patch


def build_settings(raw: Any) -> RoomSettings:
    settings = RoomSettings()
    for attr, value in settings_patch(raw).items():
        setattr(settings, attr, value)
    return settings


def game_state_patch(raw: Any, draw_time: int) -> dict[str, Any]:
    """Only the clock is host-writable; everything else is derived server-side."""
    if not isinstance(raw, dict):
        raise ValidationError("gameState", "gameState must be an object")

    patch: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "currentWord":
            continue
        if key == "timeRemaining":
            if not is_int(value) or not 0 <= value <= draw_time:
                raise ValidationError(key, f"timeRemaining must be between 0 and {draw_time}")
            patch["time_remaining"] = value
        else:
            raise ValidationError(key, f"{key} is not host-writable")
    return patch
