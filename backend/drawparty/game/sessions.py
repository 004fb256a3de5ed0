from __future__ import annotations

import hmac
import logging
import secrets
from threading import RLock

from ..errors import InvalidSession, NotAuthorized
from .models import Room, Session, now_ms


logger = logging.getLogger(__name__)


class SessionAuthority:
    """Issues and checks per-(room, player) session tokens."""

    def __init__(self, ttl_sec: int = 86400) -> None:
        self.ttl_ms = ttl_sec * 1000
        self._lock = RLock()
        self._sessions: dict[tuple[str, str], Session] = {}

    def issue(self, room_id: str, player_id: str) -> str:
        token = secrets.token_hex(32)
        with self._lock:
            self._sessions[(room_id, player_id)] = Session(
                room_id=room_id,
                player_id=player_id,
                token=token,
                expires_at_ms=now_ms() + self.ttl_ms,
            )
        return token

    def validate(self, room_id: str, player_id: str, token: str | None) -> bool:
        if not room_id or not player_id or not isinstance(token, str) or not token:
            return False
        with self._lock:
            session = self._sessions.get((room_id, player_id))
        if session is None:
            return False
        if session.expires_at_ms <= now_ms():
            return False
        return hmac.compare_digest(session.token, token)

    def has_live_session(self, room_id: str, player_id: str) -> bool:
        with self._lock:
            session = self._sessions.get((room_id, player_id))
        return session is not None and session.expires_at_ms > now_ms()

    def require(self, room_id: str, player_id: str, token: str | None) -> None:
        if not self.validate(room_id, player_id, token):
            logger.info("Rejected session for player %s in room %s", player_id, room_id)
            raise InvalidSession()

    def rebind(self, room_id: str, old_player_id: str, new_player_id: str) -> str:
        """Drop the old identity's session and issue one for the new identity."""
        self.revoke(room_id, old_player_id)
        return self.issue(room_id, new_player_id)

    def revoke(self, room_id: str, player_id: str) -> None:
        with self._lock:
            self._sessions.pop((room_id, player_id), None)

    def revoke_room(self, room_id: str) -> None:
        with self._lock:
            for key in [k for k in self._sessions if k[0] == room_id]:
                del self._sessions[key]

    def purge_expired(self) -> int:
        now = now_ms()
        with self._lock:
            stale = [k for k, s in self._sessions.items() if s.expires_at_ms <= now]
            for key in stale:
                del self._sessions[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def require_member(room: Room, player_id: str) -> None:
    if player_id not in room.players:
        raise NotAuthorized("Not a member of this room")


def require_host(room: Room, player_id: str) -> None:
    if room.host_id != player_id:
        raise NotAuthorized("Only the host can do that")


def require_drawer(room: Room, player_id: str) -> None:
    if room.game_state.current_drawer_id != player_id:
        raise NotAuthorized("Only the drawer can do that")
