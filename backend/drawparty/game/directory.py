from __future__ import annotations

import logging
import secrets
import string
import uuid
from dataclasses import dataclass

from ..errors import GameInProgress, InvalidSession, RoomFull, RoomNotFound
from ..realtime.feed import RoomFeed
from . import chat
from .models import GameState, Player, Room, RoomSettings, now_ms
from .sessions import SessionAuthority
from .store import GameStore
from .vault import SecretWordVault


logger = logging.getLogger(__name__)

CODE_CHARS = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def new_player_id() -> str:
    return uuid.uuid4().hex[:9]


def generate_code() -> str:
    return "".join(secrets.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


@dataclass
class JoinResult:
    room: Room
    player: Player
    token: str
    reconnected: bool = False


@dataclass
class LeaveResult:
    left: bool
    was_drawer: bool = False
    room_deleted: bool = False
    new_host_id: str | None = None


class RoomDirectory:
    """Room lifecycle: create, join, leave, discovery and reaping."""

    def __init__(
        self,
        store: GameStore,
        sessions: SessionAuthority,
        vault: SecretWordVault,
        feed: RoomFeed,
        chat_limit: int = 500,
        host_failover: bool = False,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.vault = vault
        self.feed = feed
        self.chat_limit = chat_limit
        self.host_failover = host_failover

    def _unique_code(self) -> str:
        code = generate_code()
        while self.store.code_in_use(code):
            code = generate_code()
        return code

    def create_room(
        self,
        host_name: str,
        host_avatar: str,
        settings: RoomSettings | None = None,
        host_id: str | None = None,
    ) -> JoinResult:
        settings = settings or RoomSettings()
        host_id = host_id or new_player_id()

        with self.store.directory():
            room = Room(
                id=str(uuid.uuid4()),
                code=self._unique_code(),
                host_id=host_id,
                settings=settings,
                game_state=GameState.lobby(settings),
            )
            self.vault.create(room.id)
            self.store.add(room)

        with self.store.room_lock(room.id):
            host = Player(id=host_id, name=host_name, avatar=host_avatar, is_host=True, is_ready=True)
            room.players[host.id] = host
            token = self.sessions.issue(room.id, host.id)
            chat.post_system(room, self.feed, f"{host_name} created the room", self.chat_limit)

        logger.info("Room %s created by %s", room.code, host_id)
        return JoinResult(room=room, player=host, token=token)

    def join_room(self, code: str, name: str, avatar: str, player_id: str | None = None) -> JoinResult:
        room = self.store.get_by_code(code)
        if room is None:
            raise RoomNotFound()

        with self.store.room_lock(room.id):
            if self.store.get(room.id) is not room:
                raise RoomNotFound()

            # Seats are claimed only in the lobby.
            if room.game_state.phase != "lobby":
                raise GameInProgress()

            existing = room.players.get(player_id) if player_id else None
            if existing is not None and not existing.is_bot:
                return self._reconnect(room, existing, avatar)

            by_name = next(
                (p for p in room.players.values() if p.name == name and not p.is_bot),
                None,
            )
            if by_name is not None:
                token = None
                if player_id and player_id != by_name.id:
                    token = self._rebind(room, by_name, player_id)
                return self._reconnect(room, by_name, avatar, token)

            if len(room.players) >= room.settings.max_players:
                raise RoomFull()

            player = Player(id=player_id or new_player_id(), name=name, avatar=avatar)
            room.players[player.id] = player
            token = self.sessions.issue(room.id, player.id)
            room.touch()
            self.feed.player_changed(room.id, "INSERT", player)
            chat.post_system(room, self.feed, f"{name} joined the game!", self.chat_limit)

        logger.info("Player %s joined room %s", player.id, room.code)
        return JoinResult(room=room, player=player, token=token)

    def _reconnect(self, room: Room, player: Player, avatar: str, token: str | None = None) -> JoinResult:
        player.is_connected = True
        if avatar:
            player.avatar = avatar
        token = token or self.sessions.issue(room.id, player.id)
        room.touch()
        self.feed.player_changed(room.id, "UPDATE", player)
        logger.info("Player %s reconnected to room %s", player.id, room.code)
        return JoinResult(room=room, player=player, token=token, reconnected=True)

    def _rebind(self, room: Room, player: Player, new_id: str) -> str:
        """Move a seat to a new identity, keeping score and turn references."""
        old_id = player.id
        token = self.sessions.rebind(room.id, old_id, new_id)

        player.id = new_id
        room.players = {(new_id if pid == old_id else pid): p for pid, p in room.players.items()}

        if room.host_id == old_id:
            room.host_id = new_id
        state = room.game_state
        if state.current_drawer_id == old_id:
            state.current_drawer_id = new_id
        state.correct_guessers = [new_id if pid == old_id else pid for pid in state.correct_guessers]
        state.revealed_for_players = [new_id if pid == old_id else pid for pid in state.revealed_for_players]
        room.drawing_order = [new_id if pid == old_id else pid for pid in room.drawing_order]

        self.feed.player_changed(room.id, "UPDATE", player, previousId=old_id)
        self.feed.room_updated(room)
        return token

    def leave_room(self, room_id: str, player_id: str, token: str | None = None) -> LeaveResult:
        room = self.store.get(room_id)
        if room is None:
            raise RoomNotFound()

        with self.store.room_lock(room.id):
            if self.store.get(room.id) is not room:
                raise RoomNotFound()

            # A live session must be matched; expired or missing ones may still leave.
            if self.sessions.has_live_session(room.id, player_id) and not self.sessions.validate(
                room.id, player_id, token
            ):
                raise InvalidSession()

            player = room.players.pop(player_id, None)
            self.sessions.revoke(room.id, player_id)
            if player is None:
                return LeaveResult(left=False)

            was_drawer = room.game_state.current_drawer_id == player_id
            room.touch()
            self.feed.player_removed(room.id, player_id)
            chat.post_system(room, self.feed, f"{player.name} left the game", self.chat_limit)

            if not any(not p.is_bot for p in room.players.values()):
                self._delete_locked(room)
                logger.info("Room %s deleted (empty)", room.code)
                return LeaveResult(left=True, was_drawer=was_drawer, room_deleted=True)

            new_host_id = None
            if room.host_id == player_id and self.host_failover:
                new_host_id = self._promote_host(room)

        return LeaveResult(left=True, was_drawer=was_drawer, new_host_id=new_host_id)

    def _promote_host(self, room: Room) -> str | None:
        humans = sorted(
            (p for p in room.players.values() if not p.is_bot),
            key=lambda p: p.joined_at_ms,
        )
        if not humans:
            return None
        new_host = humans[0]
        room.host_id = new_host.id
        new_host.is_host = True
        new_host.is_ready = True
        self.feed.player_changed(room.id, "UPDATE", new_host)
        self.feed.room_updated(room)
        chat.post_system(room, self.feed, f"{new_host.name} is now the host", self.chat_limit)
        logger.info("Room %s host moved to %s", room.code, new_host.id)
        return new_host.id

    def _delete_locked(self, room: Room) -> None:
        self.store.remove(room.id)
        self.vault.discard(room.id)
        self.sessions.revoke_room(room.id)
        self.feed.room_deleted(room)

    def delete_room(self, room_id: str) -> bool:
        room = self.store.get(room_id)
        if room is None:
            return False
        try:
            with self.store.room_lock(room.id):
                if self.store.get(room.id) is not room:
                    return False
                self._delete_locked(room)
        except RoomNotFound:
            return False
        return True

    def set_connected(self, room_id: str, player_id: str, connected: bool) -> None:
        room = self.store.get(room_id)
        if room is None:
            return
        try:
            with self.store.room_lock(room.id):
                player = room.players.get(player_id)
                if player is None or player.is_connected == connected:
                    return
                player.is_connected = connected
                self.feed.player_changed(room.id, "UPDATE", player)
        except RoomNotFound:
            logger.debug("Room %s went away before presence update", room_id)

    def list_public_rooms(self) -> list[dict]:
        rooms = []
        for room in self.store.list_rooms():
            if not room.settings.is_public or room.game_state.phase != "lobby":
                continue
            rooms.append(
                {
                    "id": room.id,
                    "code": room.code,
                    "playerCount": len(room.players),
                    "maxPlayers": room.settings.max_players,
                    "language": room.settings.language,
                }
            )
        return rooms

    def reap_stale_rooms(self, max_age_ms: int) -> int:
        cutoff = now_ms() - max_age_ms
        reaped = 0
        for room in self.store.list_rooms():
            if room.updated_at_ms < cutoff and self.delete_room(room.id):
                reaped += 1
                logger.info("Reaped stale room %s", room.code)
        self.sessions.purge_expired()
        return reaped
