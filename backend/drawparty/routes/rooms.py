from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..errors import GameError
from ..game import validation

bp = Blueprint("rooms", __name__)


@bp.get("/rooms")
def list_rooms():
    service = current_app.extensions["drawparty"]
    return jsonify({"success": True, "rooms": service.list_public_rooms()})


@bp.get("/rooms/<code>")
def get_room(code: str):
    service = current_app.extensions["drawparty"]
    try:
        room = service.room_by_code(validation.room_code(code))
    except GameError as exc:
        return jsonify(exc.to_payload()), exc.status
    body = {"success": True}
    body.update(service.snapshot(room))
    return jsonify(body)
