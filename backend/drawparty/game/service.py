from __future__ import annotations

import logging
import random
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from ..config import Config
from ..errors import GameError, GameInProgress, RoomFull, RoomNotFound, ValidationError
from ..realtime.feed import RoomFeed
from . import chat, hints, scoring, validation
from .directory import JoinResult, LeaveResult, RoomDirectory
from .models import (
    GameState,
    Player,
    Room,
    RoomSettings,
    message_row,
    player_row,
    room_row,
    settings_row,
    state_row,
)
from .sessions import SessionAuthority, require_drawer, require_host, require_member
from .store import GameStore
from .vault import SecretWordVault
from .words import pick_word_options


logger = logging.getLogger(__name__)

BOT_NAMES = ["Bot Alex", "Bot Sam", "Bot Jordan", "Bot Taylor", "Bot Riley"]
AVATARS = [
    "🦊", "🐱", "🐶", "🐼", "🐨", "🦁", "🐯", "🐻", "🐸", "🐵",
    "🦄", "🐲", "🦋", "🐙", "🦀", "🐬", "🦜", "🐧", "🦉", "🐢",
]

TURN_PHASES = ("wordSelection", "drawing", "revealing", "roundEnd")

HOST = "host"
DRAWER = "drawer"


def shuffled(items: list[str], rng: random.Random) -> list[str]:
    """Fisher-Yates over a copy."""
    order = list(items)
    for i in range(len(order) - 1, 0, -1):
        j = rng.randint(0, i)
        order[i], order[j] = order[j], order[i]
    return order


class GameService:
    """Authoritative room state machine.

    Every public method takes the caller's ``(room_id, player_id, token)``,
    validates the session and the caller's role under the room lock, and
    performs the mutation inside that same critical section. Changes are
    published to ``feed`` as row deltas.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        feed: RoomFeed | None = None,
        rng: random.Random | None = None,
    ) -> None:
        config = config or {}

        def setting(key: str) -> Any:
            return config.get(key, getattr(Config, key))

        self.reveal_delay_sec = setting("REVEAL_DELAY_SEC")
        self.choose_timeout_ticks = setting("CHOOSE_TIMEOUT_TICKS")
        self.chat_limit = setting("CHAT_HISTORY_LIMIT")
        self.room_ttl_ms = setting("ROOM_TTL_SEC") * 1000
        self.ice_servers = list(setting("ICE_SERVERS"))

        self.rng = rng or random.SystemRandom()
        self.store = GameStore()
        self.sessions = SessionAuthority(ttl_sec=setting("SESSION_TTL_SEC"))
        self.vault = SecretWordVault()
        self.feed = feed or RoomFeed()
        self.directory = RoomDirectory(
            self.store,
            self.sessions,
            self.vault,
            self.feed,
            chat_limit=self.chat_limit,
            host_failover=setting("HOST_FAILOVER"),
        )

    # -- helpers -----------------------------------------------------------

    def _room(self, room_id: str) -> Room:
        room = self.store.get(room_id) if isinstance(room_id, str) else None
        if room is None:
            raise RoomNotFound()
        return room

    @contextmanager
    def _authorized(self, room_id: str, player_id: str, token: str | None, role: str | None = None) -> Iterator[Room]:
        room = self._room(room_id)
        with self.store.room_lock(room.id):
            if self.store.get(room.id) is not room:
                raise RoomNotFound()
            self.sessions.require(room.id, player_id, token)
            require_member(room, player_id)
            if role == HOST:
                require_host(room, player_id)
            elif role == DRAWER:
                require_drawer(room, player_id)
            yield room

    def _system(self, room: Room, content: str) -> None:
        chat.post_system(room, self.feed, content, self.chat_limit)

    def _changed(self, room: Room) -> None:
        room.touch()
        self.feed.room_updated(room)

    def _player_changed(self, room: Room, player: Player) -> None:
        room.touch()
        self.feed.player_changed(room.id, "UPDATE", player)

    def _name(self, room: Room, player_id: str | None, fallback: str = "Unknown") -> str:
        player = room.players.get(player_id) if player_id else None
        return player.name if player else fallback

    # -- directory ---------------------------------------------------------

    def create_room(
        self,
        host_name: str,
        host_avatar: str,
        settings: RoomSettings | None = None,
        host_id: str | None = None,
    ) -> JoinResult:
        return self.directory.create_room(host_name, host_avatar, settings, host_id)

    def join_room(self, code: str, name: str, avatar: str, player_id: str | None = None) -> JoinResult:
        return self.directory.join_room(code, name, avatar, player_id)

    def leave_room(self, room_id: str, player_id: str, token: str | None = None) -> LeaveResult:
        return self.directory.leave_room(room_id, player_id, token)

    def list_public_rooms(self) -> list[dict]:
        return self.directory.list_public_rooms()

    def reap_stale_rooms(self) -> int:
        return self.directory.reap_stale_rooms(self.room_ttl_ms)

    def snapshot(self, room: Room, message_limit: int = 50) -> dict:
        """Public view of a room. Identical for every viewer."""
        with self.store.room_lock(room.id):
            return {
                "room": room_row(room),
                "players": [player_row(p) for p in room.players.values()],
                "messages": [message_row(m) for m in room.messages[-message_limit:]],
            }

    def authorize(self, room_id: str, player_id: str, token: str | None) -> Room:
        """Check session and membership without mutating anything."""
        with self._authorized(room_id, player_id, token) as room:
            return room

    def room_by_id(self, room_id: str) -> Room:
        return self._room(room_id)

    def room_by_code(self, code: str) -> Room:
        room = self.store.get_by_code(code)
        if room is None:
            raise RoomNotFound()
        return room

    # -- lobby -------------------------------------------------------------

    def toggle_ready(self, room_id: str, player_id: str, token: str | None, is_ready: bool | None = None) -> dict:
        with self._authorized(room_id, player_id, token) as room:
            player = room.players[player_id]
            player.is_ready = (not player.is_ready) if is_ready is None else bool(is_ready)
            self._player_changed(room, player)
            return {"isReady": player.is_ready}

    def toggle_mute(self, room_id: str, player_id: str, token: str | None, is_muted: bool | None = None) -> dict:
        with self._authorized(room_id, player_id, token) as room:
            player = room.players[player_id]
            player.is_muted = (not player.is_muted) if is_muted is None else bool(is_muted)
            self._player_changed(room, player)
            return {"isMuted": player.is_muted}

    def update_settings(self, room_id: str, player_id: str, token: str | None, raw_settings: Any) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            if room.game_state.phase != "lobby":
                raise GameInProgress("Settings can only change in the lobby")
            patch = validation.settings_patch(raw_settings)
            if patch.get("max_players", room.settings.max_players) < len(room.players):
                raise ValidationError("maxPlayers", "maxPlayers is below the current player count")

            for attr, value in patch.items():
                setattr(room.settings, attr, value)
            state = room.game_state
            state.draw_time = room.settings.draw_time
            state.time_remaining = room.settings.draw_time
            state.total_rounds = room.settings.total_rounds
            self._changed(room)
            return {"settings": settings_row(room.settings)}

    def add_bot(
        self,
        room_id: str,
        player_id: str,
        token: str | None,
        bot_name: str | None = None,
        bot_avatar: str | None = None,
    ) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            if room.game_state.phase != "lobby":
                raise GameInProgress()
            if len(room.players) >= room.settings.max_players:
                raise RoomFull()

            taken = {p.name for p in room.players.values()}
            if bot_name is None:
                name = next((n for n in BOT_NAMES if n not in taken), None)
                if name is None:
                    raise ValidationError("botName", "No bot names left")
            else:
                name = validation.player_name(bot_name)
                if name in taken:
                    raise ValidationError("botName", "That name is already taken")
            avatar = validation.avatar(bot_avatar) if bot_avatar is not None else self.rng.choice(AVATARS)

            bot = Player(
                id=f"bot_{uuid.uuid4().hex[:9]}",
                name=name,
                avatar=avatar,
                is_ready=True,
                is_bot=True,
            )
            room.players[bot.id] = bot
            room.touch()
            self.feed.player_changed(room.id, "INSERT", bot)
            self._system(room, f"{name} joined the game!")
            return {"player": player_row(bot)}

    # -- turn flow ---------------------------------------------------------

    def start_game(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            if room.game_state.phase != "lobby":
                raise GameInProgress()
            if len(room.players) < 2:
                raise ValidationError("players", "At least 2 players are needed to start")

            room.drawing_order = shuffled(list(room.players), self.rng)
            room.turn_index = 0
            state = room.game_state
            state.current_round = 1
            state.total_rounds = room.settings.total_rounds
            state.draw_time = room.settings.draw_time
            state.current_drawer_id = room.drawing_order[0]

            drawer_name = self._name(room, state.current_drawer_id)
            self._system(room, f"Round 1 started! {drawer_name} is drawing first.")
            self._begin_turn(room)
            logger.info("Game started in room %s", room.code)
            return {"currentDrawerId": state.current_drawer_id, "drawingOrder": list(room.drawing_order)}

    def _begin_turn(self, room: Room) -> None:
        state = room.game_state
        options = pick_word_options(room.settings.word_count, room.settings.language, self.rng)
        self.vault.set_options(room.id, options)

        state.phase = "wordSelection"
        state.word_hint = ""
        state.time_remaining = state.draw_time
        state.correct_guessers = []
        state.revealed_for_players = []
        room.selection_ticks = 0
        room.hint_positions = []
        room.hint_thresholds_crossed = 0

        drawer = room.players.get(state.current_drawer_id or "")
        if drawer is not None and drawer.is_bot:
            self._start_drawing(room, options[0])
        else:
            self._changed(room)

    def _start_drawing(self, room: Room, word: str) -> str:
        state = room.game_state
        self.vault.choose(room, state.current_drawer_id or "", word)

        state.phase = "drawing"
        state.word_hint = hints.blank_hint(word)
        state.time_remaining = state.draw_time
        state.correct_guessers = []
        state.revealed_for_players = []
        room.hint_positions = []
        room.hint_thresholds_crossed = 0

        self._changed(room)
        self._system(room, f"{self._name(room, state.current_drawer_id, 'Drawer')} is now drawing!")
        return word

    def get_word_options(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, DRAWER) as room:
            if room.game_state.phase != "wordSelection":
                return {"wordOptions": []}
            return {"wordOptions": self.vault.get_options(room, player_id)}

    def select_word(self, room_id: str, player_id: str, token: str | None, word: Any) -> dict:
        with self._authorized(room_id, player_id, token, DRAWER) as room:
            if room.game_state.phase != "wordSelection":
                raise ValidationError("phase", "No word is being selected right now")
            chosen = self._start_drawing(room, word)
            return {"word": chosen, "wordHint": room.game_state.word_hint}

    # -- chat and guesses --------------------------------------------------

    def send_message(self, room_id: str, player_id: str, token: str | None, content: Any) -> dict:
        text = validation.message_content(content)
        with self._authorized(room_id, player_id, token) as room:
            player = room.players[player_id]
            state = room.game_state

            if state.phase == "drawing":
                if self._may_guess(room, player_id):
                    result = self._try_guess(room, player, text)
                    if result is not None:
                        return result
                elif self.vault.contains_word(room.id, text):
                    # Only players who already know the word can leak it.
                    raise ValidationError("content", "That message would give away the word")

            chat.post(room, self.feed, player.id, player.name, text, limit=self.chat_limit)
            return {"isCorrect": False}

    def _may_guess(self, room: Room, player_id: str) -> bool:
        state = room.game_state
        return player_id != state.current_drawer_id and player_id not in state.correct_guessers

    def _try_guess(self, room: Room, player: Player, text: str) -> dict | None:
        if not self.vault.check_guess(room.id, text):
            return None

        state = room.game_state
        guessers = len(room.non_drawer_ids())
        correct_so_far = len(state.correct_guessers)
        points = scoring.guesser_points(state.time_remaining, state.draw_time, guessers, correct_so_far)
        drawer_points = scoring.drawer_points(state.time_remaining, state.draw_time)

        state.correct_guessers.append(player.id)
        if player.id not in state.revealed_for_players:
            state.revealed_for_players.append(player.id)

        player.score = scoring.add_capped(player.score, points)
        self._player_changed(room, player)
        drawer = room.players.get(state.current_drawer_id or "")
        if drawer is not None:
            drawer.score = scoring.add_capped(drawer.score, drawer_points)
            self._player_changed(room, drawer)

        word = self.vault.peek(room.id)
        chat.post(room, self.feed, player.id, player.name, "🎉 Guessed correctly!", correct=True, limit=self.chat_limit)
        self._system(room, f"{player.name} guessed the word! (+{points} points)")

        round_over = self._round_finished(room)
        if round_over:
            self._end_round_locked(room)
        else:
            self._changed(room)

        return {
            "isCorrect": True,
            "word": word,
            "points": points,
            "drawerPoints": drawer_points if drawer is not None else 0,
            "roundOver": round_over,
        }

    # -- clock -------------------------------------------------------------

    def tick(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            state = room.game_state
            if state.phase == "drawing":
                return self._set_clock(room, max(0, state.time_remaining - 1))
            if state.phase == "wordSelection":
                return self._selection_tick(room)
            return {"phase": state.phase, "roundOver": False}

    def update_game_state(self, room_id: str, player_id: str, token: str | None, raw_state: Any) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            state = room.game_state
            patch = validation.game_state_patch(raw_state, state.draw_time)
            if "time_remaining" in patch and state.phase == "drawing":
                if patch["time_remaining"] > state.time_remaining:
                    raise ValidationError("timeRemaining", "timeRemaining cannot go back up")
                return self._set_clock(room, patch["time_remaining"])
            return {"phase": state.phase, "roundOver": False}

    def _selection_tick(self, room: Room) -> dict:
        state = room.game_state
        if state.current_drawer_id not in room.players:
            return {"phase": state.phase, "roundOver": False, "drawerMissing": True}

        room.selection_ticks += 1
        if room.selection_ticks < self.choose_timeout_ticks:
            return {"phase": state.phase, "roundOver": False}

        options = self.vault.get_options(room, state.current_drawer_id)
        if not options:
            return {"phase": state.phase, "roundOver": False}
        self._start_drawing(room, options[0])
        logger.info("Word auto-selected in room %s", room.code)
        return {"phase": state.phase, "roundOver": False, "autoSelected": True}

    def _set_clock(self, room: Room, time_remaining: int) -> dict:
        state = room.game_state
        state.time_remaining = time_remaining
        if room.settings.show_hints:
            self._apply_hints(room)

        round_over = self._round_finished(room)
        if round_over:
            self._end_round_locked(room)
        else:
            self._changed(room)
        return {
            "phase": state.phase,
            "timeRemaining": state.time_remaining,
            "wordHint": state.word_hint,
            "roundOver": round_over,
            "revealDelaySec": self.reveal_delay_sec if round_over else None,
        }

    def _apply_hints(self, room: Room) -> None:
        state = room.game_state
        word = self.vault.peek(room.id)
        if not word:
            return
        crossed = hints.thresholds_crossed(state.time_remaining, state.draw_time)
        if crossed <= room.hint_thresholds_crossed:
            return
        letters = len(hints.letter_positions(word))
        target = hints.hint_target(letters, room.settings.hint_level, crossed)
        room.hint_positions = hints.extend_hint(word, room.hint_positions, target, self.rng)
        room.hint_thresholds_crossed = crossed
        state.word_hint = hints.render_hint(word, room.hint_positions)

    def _round_finished(self, room: Room) -> bool:
        state = room.game_state
        if state.phase != "drawing":
            return False
        return state.time_remaining <= 0 or len(state.correct_guessers) >= len(room.players) - 1

    def _end_round_locked(self, room: Room) -> None:
        state = room.game_state
        state.phase = "revealing"
        state.revealed_for_players = list(room.players)
        word = self.vault.peek(room.id)
        self._changed(room)
        if word:
            self._system(room, f"The word was: {word}")

    def end_round(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            if room.game_state.phase not in ("wordSelection", "drawing"):
                raise ValidationError("phase", "No round is running")
            self._end_round_locked(room)
            return {"phase": room.game_state.phase, "roundOver": True, "revealDelaySec": self.reveal_delay_sec}

    def reveal_word(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            return {"word": self.vault.reveal(room, player_id)}

    def next_turn(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            state = room.game_state
            if state.phase not in TURN_PHASES:
                raise ValidationError("phase", "No game is running")

            self.vault.clear(room.id)
            order = room.drawing_order
            index = room.turn_index + 1
            while index < len(order) and order[index] not in room.players:
                index += 1

            if index >= len(order):
                new_round = state.current_round + 1
                if new_round > state.total_rounds:
                    self._finish_game(room)
                    return {"phase": state.phase, "gameOver": True}
                room.drawing_order = shuffled(list(room.players), self.rng)
                room.turn_index = 0
                state.current_round = new_round
                state.current_drawer_id = room.drawing_order[0]
                drawer_name = self._name(room, state.current_drawer_id)
                self._system(room, f"Round {new_round} started! {drawer_name} is drawing.")
            else:
                room.turn_index = index
                state.current_drawer_id = order[index]
                self._system(room, f"{self._name(room, state.current_drawer_id)}'s turn to draw!")

            self._begin_turn(room)
            return {
                "phase": state.phase,
                "gameOver": False,
                "currentRound": state.current_round,
                "currentDrawerId": state.current_drawer_id,
            }

    def _finish_game(self, room: Room) -> None:
        state = room.game_state
        self.vault.clear(room.id)
        state.phase = "gameEnd"
        state.word_hint = ""
        state.revealed_for_players = []
        state.current_drawer_id = None
        self._changed(room)

        if room.players:
            winner = max(room.players.values(), key=lambda p: p.score)
            self._system(room, f"Game over! {winner.name} wins with {winner.score} points!")
        logger.info("Game finished in room %s", room.code)

    def end_game(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            if room.game_state.phase == "lobby":
                raise ValidationError("phase", "No game is running")
            self._finish_game(room)
            return {"phase": room.game_state.phase}

    def reset_game(self, room_id: str, player_id: str, token: str | None) -> dict:
        with self._authorized(room_id, player_id, token, HOST) as room:
            for player in room.players.values():
                if player.score:
                    player.score = 0
                    self.feed.player_changed(room.id, "UPDATE", player)

            room.game_state = GameState.lobby(room.settings)
            room.drawing_order = []
            room.turn_index = 0
            room.selection_ticks = 0
            room.hint_positions = []
            room.hint_thresholds_crossed = 0
            self.vault.clear(room.id)
            self._changed(room)
            return {"gameState": state_row(room.game_state)}

    def update_score(
        self,
        room_id: str,
        player_id: str,
        token: str | None,
        target_player_id: Any,
        score: Any,
    ) -> dict:
        new_score = validation.score(score)
        with self._authorized(room_id, player_id, token, HOST) as room:
            target = room.players.get(target_player_id) if isinstance(target_player_id, str) else None
            if target is None:
                raise ValidationError("targetPlayerId", "No such player in this room")
            target.score = new_score
            self._player_changed(room, target)
            return {"score": target.score}

    def relay_allowed(self, room_id: str, player_id: str, token: str | None) -> bool:
        """Whether this caller may broadcast drawing strokes right now."""
        try:
            with self._authorized(room_id, player_id, token, DRAWER) as room:
                return room.game_state.phase == "drawing"
        except GameError:
            return False
