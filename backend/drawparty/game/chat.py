from __future__ import annotations

import uuid

from ..realtime.feed import RoomFeed
from .models import ChatMessage, Room


SYSTEM_ID = "system"
SYSTEM_NAME = "System"


def post(
    room: Room,
    feed: RoomFeed,
    player_id: str,
    player_name: str,
    content: str,
    *,
    correct: bool = False,
    system: bool = False,
    limit: int = 500,
) -> ChatMessage:
    msg = ChatMessage(
        id=uuid.uuid4().hex,
        player_id=player_id,
        player_name=player_name,
        content=content,
        is_correct_guess=correct,
        is_system_message=system,
    )
    room.messages.append(msg)
    if limit and len(room.messages) > limit:
        room.messages = room.messages[-limit:]
    room.touch()
    feed.message_added(room.id, msg)
    return msg


def post_system(room: Room, feed: RoomFeed, content: str, limit: int = 500) -> ChatMessage:
    return post(room, feed, SYSTEM_ID, SYSTEM_NAME, content, system=True, limit=limit)
