"""Secret word storage.

The current word and the drawer's candidates live here and nowhere else.
Nothing in this module is reachable from the serialisers in models.py, so
replicated room state cannot carry the word.
"""
from __future__ import annotations

import logging
import re
from threading import RLock

from ..errors import InvalidWordSelection, NotAuthorized
from .models import Room, VaultEntry
from .sessions import require_drawer, require_host


logger = logging.getLogger(__name__)

REVEALABLE_PHASES = ("revealing", "roundEnd", "gameEnd")


class SecretWordVault:
    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: dict[str, VaultEntry] = {}

    def create(self, room_id: str) -> None:
        with self._lock:
            self._entries[room_id] = VaultEntry()

    def discard(self, room_id: str) -> None:
        with self._lock:
            self._entries.pop(room_id, None)

    def _entry(self, room_id: str) -> VaultEntry:
        with self._lock:
            return self._entries.setdefault(room_id, VaultEntry())

    def set_options(self, room_id: str, words: list[str]) -> None:
        with self._lock:
            entry = self._entry(room_id)
            entry.word_options = list(words)
            entry.current_word = None

    def clear(self, room_id: str) -> None:
        with self._lock:
            entry = self._entries.get(room_id)
            if entry is not None:
                entry.word_options = []
                entry.current_word = None

    def get_options(self, room: Room, caller_id: str) -> list[str]:
        require_drawer(room, caller_id)
        with self._lock:
            return list(self._entry(room.id).word_options)

    def choose(self, room: Room, caller_id: str, word: str) -> str:
        require_drawer(room, caller_id)
        with self._lock:
            entry = self._entry(room.id)
            if not isinstance(word, str) or word not in entry.word_options:
                logger.warning(
                    "security: player %s in room %s selected a word outside the offered options",
                    caller_id,
                    room.id,
                )
                raise InvalidWordSelection()
            entry.current_word = word
            entry.word_options = []
            return word

    def check_guess(self, room_id: str, guess: str) -> bool:
        with self._lock:
            entry = self._entries.get(room_id)
            word = entry.current_word if entry else None
        if not word or not isinstance(guess, str):
            return False
        return guess.strip().lower() == word.strip().lower()

    def contains_word(self, room_id: str, text: str) -> bool:
        with self._lock:
            entry = self._entries.get(room_id)
            word = entry.current_word if entry else None
        if not word:
            return False
        return re.search(rf"\b{re.escape(word.strip())}\b", text, re.IGNORECASE) is not None

    def peek(self, room_id: str) -> str | None:
        """Internal read for the state machine's own reveal and drawer paths."""
        with self._lock:
            entry = self._entries.get(room_id)
            return entry.current_word if entry else None

    def reveal(self, room: Room, caller_id: str) -> str | None:
        require_host(room, caller_id)
        if room.game_state.phase not in REVEALABLE_PHASES:
            raise NotAuthorized("The word can only be revealed after the round")
        return self.peek(room.id)
