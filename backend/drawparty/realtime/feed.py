from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from flask_socketio import SocketIO

from ..game.models import ChatMessage, Player, Room, message_row, player_row, room_row


logger = logging.getLogger(__name__)

Change = dict
Subscriber = Callable[[Change], None]


def topic(room_id: str) -> str:
    return f"room:{room_id}"


class RoomFeed:
    """Per-room change stream.

    Every mutation is published as a row delta
    ``{"table", "event", "roomId", "row"}``. Rows are built by the
    serialisers in ``game.models`` only.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._subscribers: dict[str, list[Subscriber]] = {}

    def subscribe(self, room_id: str, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(room_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                subs = self._subscribers.get(room_id, [])
                if callback in subs:
                    subs.remove(callback)
                if not subs:
                    self._subscribers.pop(room_id, None)

        return unsubscribe

    def drop_room(self, room_id: str) -> None:
        with self._lock:
            self._subscribers.pop(room_id, None)

    def publish(self, room_id: str, table: str, event: str, row: dict) -> None:
        change = {"table": table, "event": event, "roomId": room_id, "row": row}
        with self._lock:
            subs = list(self._subscribers.get(room_id, []))
        for callback in subs:
            try:
                callback(change)
            except Exception:
                logger.exception("Feed subscriber failed for room %s", room_id)
        self._deliver(room_id, change)

    def _deliver(self, room_id: str, change: Change) -> None:
        return None

    def room_updated(self, room: Room) -> None:
        self.publish(room.id, "rooms", "UPDATE", room_row(room))

    def room_deleted(self, room: Room) -> None:
        self.publish(room.id, "rooms", "DELETE", {"id": room.id, "code": room.code})
        self.drop_room(room.id)

    def player_changed(self, room_id: str, event: str, player: Player, **extra) -> None:
        row = player_row(player)
        row.update(extra)
        self.publish(room_id, "room_players", event, row)

    def player_removed(self, room_id: str, player_id: str) -> None:
        self.publish(room_id, "room_players", "DELETE", {"id": player_id})

    def message_added(self, room_id: str, message: ChatMessage) -> None:
        self.publish(room_id, "room_messages", "INSERT", message_row(message))


class SocketIOFeed(RoomFeed):
    def __init__(self, socketio: SocketIO) -> None:
        super().__init__()
        self.socketio = socketio

    def _deliver(self, room_id: str, change: Change) -> None:
        self.socketio.emit("db:change", change, to=topic(room_id))
