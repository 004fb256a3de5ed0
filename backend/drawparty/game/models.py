from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal


Phase = Literal["lobby", "wordSelection", "drawing", "revealing", "roundEnd", "gameEnd"]
PHASES: tuple[str, ...] = ("lobby", "wordSelection", "drawing", "revealing", "roundEnd", "gameEnd")

GameMode = Literal["normal", "hidden", "combination"]
GAME_MODES: tuple[str, ...] = ("normal", "hidden", "combination")

Language = Literal["english", "spanish", "french", "german"]
LANGUAGES: tuple[str, ...] = ("english", "spanish", "french", "german")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RoomSettings:
    max_players: int = 8
    draw_time: int = 80
    total_rounds: int = 3
    is_public: bool = True
    hint_level: int = 2
    game_mode: GameMode = "normal"
    language: Language = "english"
    word_count: int = 3
    show_hints: bool = True


@dataclass
class GameState:
    # The literal word is not a field here; see vault.py.
    phase: Phase = "lobby"
    current_round: int = 0
    total_rounds: int = 3
    current_drawer_id: str | None = None
    word_hint: str = ""
    time_remaining: int = 80
    draw_time: int = 80
    correct_guessers: list[str] = field(default_factory=list)
    revealed_for_players: list[str] = field(default_factory=list)

    @classmethod
    def lobby(cls, settings: RoomSettings) -> "GameState":
        return cls(
            total_rounds=settings.total_rounds,
            time_remaining=settings.draw_time,
            draw_time=settings.draw_time,
        )


@dataclass
class Player:
    id: str
    name: str
    avatar: str = ""
    score: int = 0
    is_host: bool = False
    is_ready: bool = False
    is_muted: bool = False
    is_connected: bool = True
    is_bot: bool = False
    joined_at_ms: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class ChatMessage:
    id: str
    player_id: str
    player_name: str
    content: str
    is_correct_guess: bool = False
    is_system_message: bool = False
    created_at_ms: int = field(default_factory=now_ms)


@dataclass
class VaultEntry:
    word_options: list[str] = field(default_factory=list)
    current_word: str | None = None


@dataclass
class Session:
    room_id: str
    player_id: str
    token: str
    expires_at_ms: int


@dataclass
class Room:
    id: str
    code: str
    host_id: str
    settings: RoomSettings = field(default_factory=RoomSettings)
    game_state: GameState = field(default_factory=GameState)
    players: dict[str, Player] = field(default_factory=dict)
    messages: list[ChatMessage] = field(default_factory=list)
    # Server-side turn bookkeeping, never replicated.
    drawing_order: list[str] = field(default_factory=list)
    turn_index: int = 0
    selection_ticks: int = 0
    hint_positions: list[int] = field(default_factory=list)
    hint_thresholds_crossed: int = 0
    created_at_ms: int = field(default_factory=now_ms)
    updated_at_ms: int = field(default_factory=now_ms)

    def touch(self) -> None:
        self.updated_at_ms = now_ms()

    def non_drawer_ids(self) -> list[str]:
        return [pid for pid in self.players if pid != self.game_state.current_drawer_id]


def settings_row(settings: RoomSettings) -> dict:
    return {
        "maxPlayers": settings.max_players,
        "drawTime": settings.draw_time,
        "totalRounds": settings.total_rounds,
        "isPublic": settings.is_public,
        "hintLevel": settings.hint_level,
        "gameMode": settings.game_mode,
        "language": settings.language,
        "wordCount": settings.word_count,
        "showHints": settings.show_hints,
    }


def state_row(state: GameState) -> dict:
    return {
        "phase": state.phase,
        "currentRound": state.current_round,
        "totalRounds": state.total_rounds,
        "currentDrawerId": state.current_drawer_id,
        "wordHint": state.word_hint,
        "timeRemaining": state.time_remaining,
        "drawTime": state.draw_time,
        "correctGuessers": list(state.correct_guessers),
        "revealedForPlayers": list(state.revealed_for_players),
    }


def room_row(room: Room) -> dict:
    return {
        "id": room.id,
        "code": room.code,
        "hostId": room.host_id,
        "settings": settings_row(room.settings),
        "gameState": state_row(room.game_state),
        "createdAt": room.created_at_ms,
        "updatedAt": room.updated_at_ms,
    }


def player_row(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "avatar": player.avatar,
        "score": player.score,
        "isHost": player.is_host,
        "isReady": player.is_ready,
        "isMuted": player.is_muted,
        "isConnected": player.is_connected,
        "isBot": player.is_bot,
    }


def message_row(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "playerId": message.player_id,
        "playerName": message.player_name,
        "content": message.content,
        "isCorrectGuess": message.is_correct_guess,
        "isSystemMessage": message.is_system_message,
        "timestamp": message.created_at_ms,
    }
