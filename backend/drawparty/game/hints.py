"""Word hint rendering and the timed reveal schedule.

A hint has exactly one character per character of the word: ``_`` for a
hidden letter, the letter itself once revealed, and spaces kept as spaces.
"""
from __future__ import annotations

import random


# Fractions of draw time remaining at which another hint step is unlocked.
HINT_THRESHOLDS: tuple[float, ...] = (0.6, 0.4, 0.2)
MAX_HINT_LEVEL = 5

_rng = random.SystemRandom()


def letter_positions(word: str) -> list[int]:
    return [i for i, ch in enumerate(word) if ch != " "]


def render_hint(word: str, revealed: list[int] | set[int]) -> str:
    shown = set(revealed)
    return "".join(
        ch if ch == " " or i in shown else "_"
        for i, ch in enumerate(word)
    )


def blank_hint(word: str) -> str:
    return render_hint(word, ())


def hint_for_level(word: str, level: int, rng: random.Random | None = None) -> str:
    positions = letter_positions(word)
    count = min(len(positions) * level // MAX_HINT_LEVEL, len(positions))
    return render_hint(word, (rng or _rng).sample(positions, count))


def thresholds_crossed(time_remaining: int, draw_time: int) -> int:
    if draw_time <= 0:
        return 0
    fraction = time_remaining / draw_time
    return sum(1 for t in HINT_THRESHOLDS if fraction <= t)


def hint_target(letters: int, level: int, crossed: int) -> int:
    """Letters to show after ``crossed`` thresholds. At least one stays hidden."""
    if level <= 0 or crossed <= 0:
        return 0
    scaled = letters * level * crossed // (MAX_HINT_LEVEL * len(HINT_THRESHOLDS))
    return min(max(letters - 1, 0), max(crossed, scaled))


def extend_hint(
    word: str,
    revealed: list[int],
    target: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Return ``revealed`` grown to ``target`` positions. Never shrinks."""
    shown = set(revealed)
    hidden = [i for i in letter_positions(word) if i not in shown]
    (rng or _rng).shuffle(hidden)
    missing = max(0, target - len(revealed))
    return list(revealed) + hidden[:missing]
