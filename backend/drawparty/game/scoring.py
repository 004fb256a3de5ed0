from __future__ import annotations

import math

from .validation import MAX_SCORE


GUESS_BASE_POINTS = 50
GUESS_TIME_POINTS = 100
ORDER_BONUS_POINTS = 10
DRAWER_BASE_POINTS = 10
DRAWER_TIME_POINTS = 15


def time_fraction(time_remaining: int, draw_time: int) -> float:
    if draw_time <= 0:
        return 0.0
    return max(0.0, min(1.0, time_remaining / draw_time))


def guesser_points(time_remaining: int, draw_time: int, guessers: int, correct_so_far: int) -> int:
    """Points for a correct guess.

    ``guessers`` counts the non-drawer players; ``correct_so_far`` is how
    many of them solved the word before this guess.
    """
    frac = time_fraction(time_remaining, draw_time)
    order_bonus = max(0, guessers - correct_so_far - 1) * ORDER_BONUS_POINTS
    return GUESS_BASE_POINTS + math.floor(frac * GUESS_TIME_POINTS) + order_bonus


def drawer_points(time_remaining: int, draw_time: int) -> int:
    frac = time_fraction(time_remaining, draw_time)
    return DRAWER_BASE_POINTS + math.floor(frac * DRAWER_TIME_POINTS)


def add_capped(score: int, delta: int) -> int:
    return max(0, min(MAX_SCORE, score + delta))
