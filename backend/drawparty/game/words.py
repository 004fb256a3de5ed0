from __future__ import annotations

import random
from itertools import cycle, islice


DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")

WORD_LISTS: dict[str, dict[str, list[str]]] = {
    "english": {
        "easy": [
            "sun", "moon", "star", "tree", "house", "car", "dog", "cat", "fish", "bird",
            "apple", "banana", "cake", "pizza", "ball", "hat", "shoe", "book", "phone", "cup",
            "door", "window", "chair", "table", "bed", "cloud", "rain", "snow", "fire", "water",
            "heart", "smile", "eye", "hand", "foot", "flower", "grass", "rock", "key", "clock",
        ],
        "medium": [
            "rainbow", "butterfly", "elephant", "giraffe", "penguin", "dolphin", "octopus",
            "hamburger", "ice cream", "popcorn", "chocolate", "spaghetti", "sandwich",
            "guitar", "piano", "drums", "camera", "telescope", "microscope", "compass",
            "rocket", "airplane", "helicopter", "submarine", "motorcycle", "skateboard",
            "mountain", "volcano", "waterfall", "island", "desert", "jungle", "castle",
            "wizard", "dragon", "unicorn", "mermaid", "pirate", "ninja", "robot",
        ],
        "hard": [
            "constellation", "archaeology", "photosynthesis", "hieroglyphics", "kaleidoscope",
            "camouflage", "silhouette", "architecture", "symphony", "choreography",
            "ventriloquist", "labyrinth", "hologram", "origami", "parkour",
            "bioluminescence", "metamorphosis", "pandemonium", "serendipity", "wanderlust",
            "time travel", "black hole", "parallel universe", "artificial intelligence",
            "climate change", "evolution", "democracy", "philosophy", "mythology", "renaissance",
        ],
    },
}

_rng = random.SystemRandom()


def word_lists(language: str) -> dict[str, list[str]]:
    # Only english ships a vocabulary; other languages fall back to it.
    return WORD_LISTS.get(language) or WORD_LISTS["english"]


def pick_words(words: list[str], count: int, rng: random.Random | None = None) -> list[str]:
    pool = list(dict.fromkeys(words))
    count = max(0, min(count, len(pool)))
    return (rng or _rng).sample(pool, count)


def pick_word_options(count: int, language: str = "english", rng: random.Random | None = None) -> list[str]:
    """Pick ``count`` distinct candidates at a fixed easy/medium/hard mix."""
    rng = rng or _rng
    lists = word_lists(language)
    wanted = {d: 0 for d in DIFFICULTIES}
    for difficulty in islice(cycle(DIFFICULTIES), count):
        wanted[difficulty] += 1

    options: list[str] = []
    for difficulty in DIFFICULTIES:
        options.extend(pick_words(lists[difficulty], wanted[difficulty], rng))
    rng.shuffle(options)
    return options
