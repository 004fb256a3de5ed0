"""Single action-dispatch surface shared by the HTTP and Socket.IO transports.

A request is ``{"action": str, ...params, "sessionToken"?: str}``; the
response is ``{"success": bool, "error"?: str, ...result}`` plus an HTTP
status for transports that use one.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import GameError, InvalidWordSelection, UnknownAction, ValidationError, internal_error_payload
from .game import validation
from .game.models import room_row, settings_row
from .game.service import GameService


logger = logging.getLogger(__name__)

Handler = Callable[[GameService, dict], dict]


def _caller(params: dict) -> tuple[str, str, str | None]:
    room_id = validation.identifier(params.get("roomId"), "roomId")
    player_id = validation.identifier(params.get("playerId"), "playerId")
    return room_id, player_id, validation.session_token(params.get("sessionToken"))


def _optional_id(params: dict, key: str) -> str | None:
    value = params.get(key)
    if value is None or value == "":
        return None
    return validation.identifier(value, key)


def _optional_bool(params: dict, key: str) -> bool | None:
    value = params.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(key, f"{key} must be true or false")
    return value


def create_room(service: GameService, params: dict) -> dict:
    name = validation.player_name(params.get("hostName"))
    avatar = validation.avatar(params.get("hostAvatar"))
    settings = validation.build_settings(params.get("settings"))
    result = service.create_room(name, avatar, settings, _optional_id(params, "hostId"))
    return {
        "roomId": result.room.id,
        "roomCode": result.room.code,
        "playerId": result.player.id,
        "sessionToken": result.token,
        "settings": settings_row(result.room.settings),
    }


def join_room(service: GameService, params: dict) -> dict:
    code = validation.room_code(params.get("code"))
    name = validation.player_name(params.get("playerName"))
    avatar = validation.avatar(params.get("playerAvatar"))
    result = service.join_room(code, name, avatar, _optional_id(params, "playerId"))
    return {
        "roomId": result.room.id,
        "roomCode": result.room.code,
        "playerId": result.player.id,
        "sessionToken": result.token,
        "reconnected": result.reconnected,
        "room": room_row(result.room),
    }


def leave_room(service: GameService, params: dict) -> dict:
    room_id, player_id, token = _caller(params)
    result = service.leave_room(room_id, player_id, token)
    return {
        "left": result.left,
        "wasDrawer": result.was_drawer,
        "roomDeleted": result.room_deleted,
        "newHostId": result.new_host_id,
    }


def get_room(service: GameService, params: dict) -> dict:
    if params.get("code") is not None:
        room = service.room_by_code(validation.room_code(params.get("code")))
    else:
        room = service.room_by_id(validation.identifier(params.get("roomId"), "roomId"))
    return service.snapshot(room)


def get_public_rooms(service: GameService, params: dict) -> dict:
    return {"rooms": service.list_public_rooms()}


def get_ice_servers(service: GameService, params: dict) -> dict:
    return {"iceServers": [{"urls": url} for url in service.ice_servers]}


def toggle_ready(service: GameService, params: dict) -> dict:
    return service.toggle_ready(*_caller(params), is_ready=_optional_bool(params, "isReady"))


def toggle_mute(service: GameService, params: dict) -> dict:
    return service.toggle_mute(*_caller(params), is_muted=_optional_bool(params, "isMuted"))


def update_settings(service: GameService, params: dict) -> dict:
    return service.update_settings(*_caller(params), params.get("settings"))


def update_game_state(service: GameService, params: dict) -> dict:
    return service.update_game_state(*_caller(params), params.get("gameState"))


def start_game(service: GameService, params: dict) -> dict:
    return service.start_game(*_caller(params))


def add_bot(service: GameService, params: dict) -> dict:
    return service.add_bot(*_caller(params), params.get("botName"), params.get("botAvatar"))


def update_score(service: GameService, params: dict) -> dict:
    return service.update_score(*_caller(params), params.get("targetPlayerId"), params.get("score"))


def next_turn(service: GameService, params: dict) -> dict:
    return service.next_turn(*_caller(params))


def end_game(service: GameService, params: dict) -> dict:
    return service.end_game(*_caller(params))


def reset_game(service: GameService, params: dict) -> dict:
    return service.reset_game(*_caller(params))


def reveal_word(service: GameService, params: dict) -> dict:
    return service.reveal_word(*_caller(params))


def tick(service: GameService, params: dict) -> dict:
    return service.tick(*_caller(params))


def end_round(service: GameService, params: dict) -> dict:
    return service.end_round(*_caller(params))


def get_word_options(service: GameService, params: dict) -> dict:
    return service.get_word_options(*_caller(params))


def select_word(service: GameService, params: dict) -> dict:
    word = params.get("word")
    if not isinstance(word, str):
        raise InvalidWordSelection()
    return service.select_word(*_caller(params), word)


def send_message(service: GameService, params: dict) -> dict:
    return service.send_message(*_caller(params), params.get("content"))


def check_guess(service: GameService, params: dict) -> dict:
    return service.send_message(*_caller(params), params.get("guess"))


ACTIONS: dict[str, Handler] = {
    "create-room": create_room,
    "join-room": join_room,
    "leave-room": leave_room,
    "get-room": get_room,
    "get-public-rooms": get_public_rooms,
    "get-ice-servers": get_ice_servers,
    "toggle-ready": toggle_ready,
    "toggle-mute": toggle_mute,
    "update-settings": update_settings,
    "update-game-state": update_game_state,
    "start-game": start_game,
    "add-bot": add_bot,
    "update-score": update_score,
    "next-turn": next_turn,
    "advance-turn": next_turn,
    "end-game": end_game,
    "reset-game": reset_game,
    "reveal-word": reveal_word,
    "tick": tick,
    "end-round": end_round,
    "get-word-options": get_word_options,
    "select-word": select_word,
    "send-message": send_message,
    "check-guess": check_guess,
}


def dispatch(service: GameService, payload: Any) -> tuple[dict, int]:
    if not isinstance(payload, dict):
        return ValidationError("body", "Request body must be a JSON object").to_payload(), 400

    params = dict(payload)
    action = params.pop("action", None)
    handler = ACTIONS.get(action) if isinstance(action, str) else None
    logger.debug("Action %s for room %s", action, params.get("roomId") or params.get("code"))

    try:
        if handler is None:
            raise UnknownAction(f"Unknown action: {action}")
        result = handler(service, params)
    except InvalidWordSelection as exc:
        logger.warning("security: %s rejected for player %s", action, params.get("playerId"))
        return exc.to_payload(), exc.status
    except GameError as exc:
        logger.info("Action %s failed: %s", action, exc.code)
        return exc.to_payload(), exc.status
    except Exception:
        logger.exception("Action %s crashed", action)
        return internal_error_payload(), 500

    body = {"success": True}
    body.update(result)
    return body, 200
