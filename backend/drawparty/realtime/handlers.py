from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..dispatch import dispatch
from ..errors import GameError
from ..game import validation
from ..game.service import GameService
from .feed import topic


logger = logging.getLogger(__name__)


def _credentials(payload: dict) -> tuple[str, str, str | None]:
    room_id = validation.identifier(payload.get("roomId"), "roomId")
    player_id = validation.identifier(payload.get("playerId"), "playerId")
    return room_id, player_id, validation.session_token(payload.get("sessionToken"))


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    # sid -> {(room_id, player_id)}
    subscriptions: dict[str, set[tuple[str, str]]] = {}
    lock = RLock()

    def _forget(sid: str, room_id: str | None = None) -> list[tuple[str, str]]:
        with lock:
            current = subscriptions.get(sid, set())
            dropped = [s for s in current if room_id is None or s[0] == room_id]
            current.difference_update(dropped)
            if not current:
                subscriptions.pop(sid, None)
        return dropped

    def _still_watched(room_id: str, player_id: str) -> bool:
        with lock:
            return any((room_id, player_id) in subs for subs in subscriptions.values())

    def _release(sid: str, room_id: str | None = None) -> None:
        for rid, pid in _forget(sid, room_id):
            leave_room(topic(rid))
            if not _still_watched(rid, pid):
                service.directory.set_connected(rid, pid, False)

    @socketio.on("room:subscribe")
    def room_subscribe(data):
        payload = data if isinstance(data, dict) else {}
        try:
            room = service.authorize(*_credentials(payload))
        except GameError as exc:
            logger.info("Subscribe rejected for sid %s: %s", request.sid, exc.code)
            return exc.to_payload()

        player_id = payload["playerId"].strip()
        join_room(topic(room.id))
        with lock:
            subscriptions.setdefault(request.sid, set()).add((room.id, player_id))
        service.directory.set_connected(room.id, player_id, True)

        emit("room:sync", service.snapshot(room))
        logger.debug("sid %s subscribed to room %s as %s", request.sid, room.code, player_id)
        return {"success": True}

    @socketio.on("room:unsubscribe")
    def room_unsubscribe(data):
        payload = data if isinstance(data, dict) else {}
        room_id = payload.get("roomId")
        if not isinstance(room_id, str) or not room_id:
            return {"success": False, "error": "validation_error"}
        _release(request.sid, room_id)
        return {"success": True}

    @socketio.on("action")
    def action(data):
        body, _status = dispatch(service, data)
        return body

    def _relay(event: str, data: Any) -> dict:
        payload = data if isinstance(data, dict) else {}
        try:
            room_id, player_id, token = _credentials(payload)
        except GameError as exc:
            return exc.to_payload()
        if not service.relay_allowed(room_id, player_id, token):
            return {"success": False, "error": "not_authorized"}

        relayed = {k: v for k, v in payload.items() if k != "sessionToken"}
        emit(event, relayed, to=topic(room_id), include_self=False)
        return {"success": True}

    @socketio.on("draw:stroke")
    def draw_stroke(data):
        return _relay("draw:stroke", data)

    @socketio.on("draw:clear")
    def draw_clear(data):
        return _relay("draw:clear", data)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        _release(request.sid)
