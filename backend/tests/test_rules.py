import random
import unittest

from drawparty.errors import InvalidScore, InvalidSession, ValidationError
from drawparty.game import hints, scoring, validation, words


class HintTests(unittest.TestCase):
    def test_render_keeps_spaces_and_length(self) -> None:
        self.assertEqual(hints.render_hint("ice cream", [0]), "i__ _____")
        self.assertEqual(hints.blank_hint("sun"), "___")
        self.assertEqual(len(hints.blank_hint("black hole")), len("black hole"))

    def test_full_level_reproduces_word(self) -> None:
        self.assertEqual(hints.hint_for_level("rainbow", 5, random.Random(1)), "rainbow")
        self.assertEqual(hints.hint_for_level("time travel", 5, random.Random(1)), "time travel")
        self.assertEqual(hints.hint_for_level("rainbow", 0, random.Random(1)), "_______")

    def test_thresholds(self) -> None:
        self.assertEqual(hints.thresholds_crossed(80, 80), 0)
        self.assertEqual(hints.thresholds_crossed(49, 80), 0)
        self.assertEqual(hints.thresholds_crossed(48, 80), 1)
        self.assertEqual(hints.thresholds_crossed(32, 80), 2)
        self.assertEqual(hints.thresholds_crossed(16, 80), 3)
        self.assertEqual(hints.thresholds_crossed(0, 80), 3)

    def test_target_always_hides_a_letter(self) -> None:
        self.assertEqual(hints.hint_target(3, 2, 3), 2)
        self.assertEqual(hints.hint_target(1, 5, 3), 0)
        self.assertEqual(hints.hint_target(10, 0, 3), 0)
        self.assertEqual(hints.hint_target(10, 2, 0), 0)
        for letters in range(1, 25):
            for level in range(6):
                self.assertLess(hints.hint_target(letters, level, 3), max(letters, 1))

    def test_extend_never_shrinks(self) -> None:
        rng = random.Random(2)
        grown = hints.extend_hint("rainbow", [0], 3, rng)
        self.assertEqual(grown[0], 0)
        self.assertEqual(len(grown), 3)
        self.assertEqual(len(set(grown)), 3)
        self.assertEqual(hints.extend_hint("rainbow", grown, 1, rng), grown)

    def test_extend_skips_spaces(self) -> None:
        grown = hints.extend_hint("ice cream", [], 8, random.Random(3))
        self.assertNotIn(3, grown)
        self.assertEqual(hints.render_hint("ice cream", grown), "ice cream")


class ScoringTests(unittest.TestCase):
    def test_guesser_points(self) -> None:
        # 1 guesser, 70 of 80 seconds left: 50 + 87 + no order bonus
        self.assertEqual(scoring.guesser_points(70, 80, 1, 0), 137)
        self.assertEqual(scoring.guesser_points(80, 80, 3, 0), 170)
        self.assertEqual(scoring.guesser_points(80, 80, 3, 1), 160)
        self.assertEqual(scoring.guesser_points(80, 80, 3, 2), 150)
        self.assertEqual(scoring.guesser_points(0, 80, 3, 2), 50)

    def test_drawer_points(self) -> None:
        self.assertEqual(scoring.drawer_points(70, 80), 23)
        self.assertEqual(scoring.drawer_points(80, 80), 25)
        self.assertEqual(scoring.drawer_points(0, 80), 10)

    def test_scores_are_capped(self) -> None:
        self.assertEqual(scoring.add_capped(9990, 137), 10000)
        self.assertEqual(scoring.add_capped(0, -5), 0)


class WordTests(unittest.TestCase):
    def test_options_mix_difficulties(self) -> None:
        options = words.pick_word_options(3, rng=random.Random(3))
        self.assertEqual(len(options), 3)
        lists = words.word_lists("english")
        for difficulty in words.DIFFICULTIES:
            self.assertEqual(sum(1 for w in options if w in lists[difficulty]), 1)

    def test_options_are_distinct(self) -> None:
        for seed in range(20):
            options = words.pick_word_options(5, rng=random.Random(seed))
            self.assertEqual(len(set(options)), 5)

    def test_unknown_language_falls_back(self) -> None:
        self.assertIs(words.word_lists("german"), words.WORD_LISTS["english"])
        self.assertEqual(len(words.pick_word_options(2, "french", random.Random(1))), 2)


class ValidationTests(unittest.TestCase):
    def test_player_name(self) -> None:
        self.assertEqual(validation.player_name("  Alice "), "Alice")
        for bad in ("", "   ", "<script>", "x" * 21, 42, None):
            with self.assertRaises(ValidationError) as ctx:
                validation.player_name(bad)
            self.assertEqual(ctx.exception.field, "playerName")

    def test_room_code(self) -> None:
        self.assertEqual(validation.room_code(" abc123 "), "ABC123")
        with self.assertRaises(ValidationError):
            validation.room_code("ABC12")

    def test_message_content(self) -> None:
        self.assertEqual(validation.message_content("hi"), "hi")
        for bad in ("", "   ", "x" * 501):
            with self.assertRaises(ValidationError):
                validation.message_content(bad)

    def test_settings_patch(self) -> None:
        self.assertEqual(
            validation.settings_patch({"drawTime": 30, "isPublic": False}),
            {"draw_time": 30, "is_public": False},
        )
        for bad in ({"drawTime": 20}, {"drawTime": True}, {"language": "klingon"}, {"colour": "red"}):
            with self.assertRaises(ValidationError):
                validation.settings_patch(bad)
        self.assertEqual(validation.build_settings({"maxPlayers": 4}).max_players, 4)
        self.assertEqual(validation.build_settings(None).draw_time, 80)

    def test_score(self) -> None:
        self.assertEqual(validation.score(10000), 10000)
        for bad in (10001, -1, True, 1.5, "10"):
            with self.assertRaises(InvalidScore):
                validation.score(bad)

    def test_session_token_length(self) -> None:
        self.assertIsNone(validation.session_token(None))
        self.assertEqual(validation.session_token("a" * 10), "a" * 10)
        self.assertEqual(validation.session_token("a" * 100), "a" * 100)
        for bad in ("a" * 9, "a" * 101, "", 42):
            with self.assertRaises(InvalidSession):
                validation.session_token(bad)

    def test_game_state_patch_only_allows_clock(self) -> None:
        self.assertEqual(
            validation.game_state_patch({"currentWord": "cat", "timeRemaining": 5}, 80),
            {"time_remaining": 5},
        )
        with self.assertRaises(ValidationError):
            validation.game_state_patch({"phase": "drawing"}, 80)
        with self.assertRaises(ValidationError):
            validation.game_state_patch({"timeRemaining": 81}, 80)


if __name__ == "__main__":
    unittest.main()
