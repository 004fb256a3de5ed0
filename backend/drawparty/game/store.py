from __future__ import annotations

from contextlib import contextmanager
from threading import RLock
from typing import Iterator

from ..errors import RoomNotFound
from .models import Room


class GameStore:
    """Server-held room records.

    Each room has its own lock so that an authorization check and the
    mutation it guards happen inside one critical section. The directory
    lock only protects the id/code indexes.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._codes: dict[str, str] = {}
        self._room_locks: dict[str, RLock] = {}

    @contextmanager
    def directory(self) -> Iterator[None]:
        with self._lock:
            yield

    @contextmanager
    def room_lock(self, room_id: str) -> Iterator[None]:
        with self._lock:
            lock = self._room_locks.get(room_id)
        if lock is None:
            raise RoomNotFound()
        with lock:
            yield

    def code_in_use(self, code: str) -> bool:
        with self._lock:
            return code.upper() in self._codes

    def add(self, room: Room) -> None:
        with self._lock:
            self._rooms[room.id] = room
            self._codes[room.code.upper()] = room.id
            self._room_locks.setdefault(room.id, RLock())

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def get_by_code(self, code: str) -> Room | None:
        with self._lock:
            room_id = self._codes.get(code.upper())
            return self._rooms.get(room_id) if room_id else None

    def remove(self, room_id: str) -> Room | None:
        with self._lock:
            room = self._rooms.pop(room_id, None)
            if room is not None and self._codes.get(room.code.upper()) == room_id:
                del self._codes[room.code.upper()]
            self._room_locks.pop(room_id, None)
            return room

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
