from __future__ import annotations

import random

from drawparty.game.models import RoomSettings
from drawparty.game.service import GameService
from drawparty.realtime.feed import RoomFeed


class RecordingFeed(RoomFeed):
    def __init__(self) -> None:
        super().__init__()
        self.changes: list[dict] = []

    def _deliver(self, room_id: str, change: dict) -> None:
        self.changes.append(change)

    def rows(self, table: str) -> list[dict]:
        return [c["row"] for c in self.changes if c["table"] == table]


def make_service(seed: int = 7, **config) -> tuple[GameService, RecordingFeed]:
    feed = RecordingFeed()
    service = GameService(config, feed=feed, rng=random.Random(seed))
    return service, feed


def two_player_room(service: GameService, settings: RoomSettings | None = None):
    """Alice hosts, Bob joins. Returns (room, host JoinResult, guest JoinResult)."""
    host = service.create_room("Alice", "🦊", settings)
    guest = service.join_room(host.room.code, "Bob", "🐱")
    return host.room, host, guest


def by_id(*seats):
    return {s.player.id: s for s in seats}
