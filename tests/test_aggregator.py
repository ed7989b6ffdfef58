import random
import unittest
from concurrent.futures import ThreadPoolExecutor

from chess_dl.aggregator import GameAggregator, GroupingMode, GroupKey
from chess_dl.archive_parser import game_record_from_entry
from chess_dl.chess_player_color import ChessPlayerColor
from chess_dl.chess_time_control import TimeClass
from chess_dl.classifier import GameFilters, classify
from tests.fixture_helpers import at, build_game


def classified(game_id, white, black, handle, *, day=1, time_control="180", rank=0, filters=None):
    record = game_record_from_entry(
        build_game(game_id, white, black, end_time=at(day), time_control=time_control)
    )
    return classify(record, handle, filters, player_rank=rank)


class GameAggregatorTests(unittest.TestCase):
    def test_groups_are_sorted_by_end_time(self) -> None:
        aggregator = GameAggregator()
        for game_id, day in [("3", 9), ("1", 2), ("2", 5)]:
            aggregator.add(classified(game_id, "alice", "bob", "alice", day=day))

        groups = aggregator.groups()

        key = GroupKey("alice", ChessPlayerColor.WHITE, TimeClass.BLITZ)
        self.assertEqual(list(groups), [key])
        self.assertEqual([game.game_id for game in groups[key].games], ["1", "2", "3"])

    def test_ties_break_on_game_id(self) -> None:
        aggregator = GameAggregator()
        aggregator.add(classified("b", "alice", "bob", "alice", day=4))
        aggregator.add(classified("a", "alice", "bob", "alice", day=4))

        (group,) = aggregator.groups().values()
        self.assertEqual([game.game_id for game in group.games], ["a", "b"])

    def test_failed_filter_games_are_ignored(self) -> None:
        aggregator = GameAggregator()
        bullet_only = GameFilters.from_values(None, ["bullet"])

        self.assertFalse(aggregator.add(classified("1", "alice", "bob", "alice", filters=bullet_only)))
        self.assertEqual(aggregator.groups(), {})

    def test_shared_game_kept_once_for_earliest_player(self) -> None:
        aggregator = GameAggregator()
        aggregator.add(classified("7", "alice", "bob", "bob", rank=1))
        aggregator.add(classified("7", "alice", "bob", "alice", rank=0))

        groups = aggregator.groups()

        self.assertEqual(sum(len(group) for group in groups.values()), 1)
        (key,) = groups
        self.assertEqual(key.player, "alice")
        self.assertEqual(key.color, ChessPlayerColor.WHITE)

    def test_merged_grouping(self) -> None:
        aggregator = GameAggregator(GroupingMode(by_player=False, by_color=False, by_time_class=False))
        aggregator.add(classified("1", "alice", "bob", "alice", day=3))
        aggregator.add(classified("2", "carol", "bob", "bob", day=1, time_control="60"))

        groups = aggregator.groups()

        self.assertEqual(list(groups), [GroupKey()])
        self.assertEqual(GroupKey().label, "games")
        self.assertEqual([game.game_id for game in groups[GroupKey()].games], ["2", "1"])

    def test_color_grouping_only(self) -> None:
        aggregator = GameAggregator(GroupingMode(by_player=False, by_time_class=False))
        aggregator.add(classified("1", "alice", "bob", "alice"))
        aggregator.add(classified("2", "bob", "alice", "alice"))
        aggregator.add(classified("3", "bob", "carol", "bob"))

        labels = [key.label for key in aggregator.groups()]

        self.assertEqual(labels, ["black", "white"])

    def test_result_is_independent_of_arrival_order(self) -> None:
        games = [
            classified(str(i), "alice", "bob", handle, day=i % 28 + 1, rank=rank)
            for i in range(60)
            for handle, rank in (("alice", 0), ("bob", 1))
        ]
        shuffled = list(games)
        random.Random(3).shuffle(shuffled)

        first = GameAggregator()
        for game in games:
            first.add(game)
        second = GameAggregator()
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(second.add, shuffled))

        self.assertEqual(len(second), 120)
        self.assertEqual(first.groups(), second.groups())
        self.assertEqual(sum(len(group) for group in second.groups().values()), 60)


if __name__ == "__main__":
    unittest.main()
