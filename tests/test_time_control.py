import unittest

from chess_dl.chess_time_control import (
    ChessTimeControl,
    TimeClass,
    classify_clock,
    time_class_for,
)


class TimeControlTests(unittest.TestCase):
    def test_bucket_boundaries(self) -> None:
        self.assertEqual(classify_clock(179), TimeClass.BULLET)
        self.assertEqual(classify_clock(180), TimeClass.BLITZ)
        self.assertEqual(classify_clock(599), TimeClass.BLITZ)
        self.assertEqual(classify_clock(600), TimeClass.RAPID)
        self.assertEqual(classify_clock(1799), TimeClass.RAPID)
        self.assertEqual(classify_clock(1800), TimeClass.DAILY)

    def test_increment_counts_forty_moves(self) -> None:
        self.assertEqual(time_class_for("60+1"), TimeClass.BULLET)
        self.assertEqual(time_class_for("120+2"), TimeClass.BLITZ)
        self.assertEqual(time_class_for("60"), TimeClass.BULLET)
        self.assertEqual(time_class_for("300+5"), TimeClass.BLITZ)
        self.assertEqual(time_class_for("600+5"), TimeClass.RAPID)

    def test_correspondence_and_unknown_values(self) -> None:
        self.assertEqual(time_class_for("1/86400"), TimeClass.DAILY)
        self.assertEqual(time_class_for("-"), TimeClass.OTHER)
        self.assertEqual(time_class_for(None), TimeClass.OTHER)
        self.assertEqual(time_class_for("abc"), TimeClass.OTHER)

    def test_parse_round_trips_string_form(self) -> None:
        parsed = ChessTimeControl.from_pgn_string("180+2")

        self.assertEqual(parsed, ChessTimeControl(initial=180, increment=2))
        self.assertEqual(str(parsed), "180+2")
        self.assertEqual(parsed.estimated_total_seconds(), 260)
        self.assertEqual(ChessTimeControl.from_pgn_string("1/86400").as_str(), "1/86400")

    def test_parsed_control_time_class_uses_move_estimate(self) -> None:
        self.assertEqual(ChessTimeControl(initial=120, increment=1).time_class(), TimeClass.BULLET)
        self.assertEqual(ChessTimeControl(initial=120, increment=2).time_class(), TimeClass.BLITZ)
        self.assertEqual(
            ChessTimeControl(initial=120, increment=2).time_class(), time_class_for("120+2")
        )

    def test_time_class_from_str(self) -> None:
        self.assertEqual(TimeClass.from_str(" Blitz "), TimeClass.BLITZ)
        self.assertEqual(TimeClass.from_str("correspondence"), TimeClass.DAILY)
        with self.assertRaises(ValueError):
            TimeClass.from_str("hyperbullet")


if __name__ == "__main__":
    unittest.main()
