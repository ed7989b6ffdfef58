import unittest

from chess_dl.archive_parser import game_record_from_entry
from chess_dl.chess_player_color import ChessPlayerColor, ColorFilter
from chess_dl.chess_time_control import TimeClass
from chess_dl.classifier import (
    GameFilters,
    UnmatchedPlayerError,
    classify,
    resolve_player_color,
)
from chess_dl.errors import ConfigurationError
from tests.fixture_helpers import build_game


class ClassifierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.record = game_record_from_entry(build_game("11", "Alice", "Bob", time_control="60"))

    def test_color_is_matched_case_insensitively(self) -> None:
        self.assertEqual(resolve_player_color(self.record, "ALICE"), ChessPlayerColor.WHITE)
        self.assertEqual(resolve_player_color(self.record, "bob"), ChessPlayerColor.BLACK)
        with self.assertRaises(UnmatchedPlayerError):
            resolve_player_color(self.record, "carol")

    def test_classify_labels_player_and_opponent(self) -> None:
        game = classify(self.record, "Bob", player_rank=2)

        self.assertEqual(game.player, "bob")
        self.assertEqual(game.color, ChessPlayerColor.BLACK)
        self.assertEqual(game.opponent, "Alice")
        self.assertEqual(game.time_class, TimeClass.BULLET)
        self.assertEqual(game.player_rank, 2)
        self.assertTrue(game.passed)

    def test_filters_decide_passed(self) -> None:
        white_blitz = GameFilters.from_values("white", ["blitz"])
        white_bullet = GameFilters.from_values("white", ["bullet", "rapid"])

        self.assertFalse(classify(self.record, "alice", white_blitz).passed)
        self.assertTrue(classify(self.record, "alice", white_bullet).passed)
        self.assertFalse(classify(self.record, "bob", white_bullet).passed)

    def test_unmatched_player_is_dropped_with_warning(self) -> None:
        with self.assertLogs("chess_dl.classifier", level="WARNING"):
            self.assertIsNone(classify(self.record, "carol"))

    def test_invalid_filter_values(self) -> None:
        with self.assertRaises(ConfigurationError):
            GameFilters.from_values("green")
        with self.assertRaises(ConfigurationError):
            GameFilters.from_values(None, ["hyperbullet"])

    def test_default_filters_accept_everything(self) -> None:
        filters = GameFilters.from_values()

        self.assertEqual(filters.color, ColorFilter.EITHER)
        self.assertTrue(filters.allows(ChessPlayerColor.BLACK, TimeClass.OTHER))


if __name__ == "__main__":
    unittest.main()
