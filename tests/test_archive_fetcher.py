import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from chess_dl.archive_fetcher import ArchiveFetcher
from chess_dl.chess_clients import MockChessClient
from chess_dl.errors import RateLimitError, RunCancelledError, ServiceError
from chess_dl.fetch_state import BackoffPolicy, FetchState
from chess_dl.models import ArchiveRef
from tests.fixture_helpers import build_game

REF = ArchiveRef(handle="alice", year=2024, month=1)


class ArchiveFetcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sleeps: list[float] = []
        self.policy = BackoffPolicy(max_attempts=5, jitter_ratio=0.0)

    def fetcher(self, client: MockChessClient, limit: int = 4, **kwargs) -> ArchiveFetcher:
        return ArchiveFetcher(
            client,
            threading.BoundedSemaphore(limit),
            self.policy,
            sleep=kwargs.pop("sleep", self.sleeps.append),
            **kwargs,
        )

    def test_rate_limited_twice_then_succeeds(self) -> None:
        client = MockChessClient(
            {"alice": {(2024, 1): [build_game("1", "alice", "bob")]}},
            archive_failures={
                ("alice", 2024, 1): [
                    RateLimitError("429", retry_after=2.0),
                    RateLimitError("429", retry_after=2.0),
                ]
            },
        )

        outcome = self.fetcher(client).fetch(REF)

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.attempts, 3)
        self.assertEqual(self.sleeps, [2.0, 4.0])
        self.assertGreaterEqual(outcome.total_backoff, 4.0)
        self.assertIsNotNone(outcome.raw)

    def test_missing_archive_fails_without_retry(self) -> None:
        client = MockChessClient({"alice": {}})

        outcome = self.fetcher(client).fetch(REF)

        self.assertEqual(outcome.state, FetchState.FAILED)
        self.assertEqual(outcome.attempts, 1)
        self.assertIsNone(outcome.raw)
        self.assertEqual(self.sleeps, [])

    def test_transient_failures_stop_at_attempt_cap(self) -> None:
        self.policy = BackoffPolicy(max_attempts=3, jitter_ratio=0.0)
        client = MockChessClient(
            {"alice": {(2024, 1): []}},
            archive_failures={("alice", 2024, 1): [ServiceError("503")] * 10},
        )

        outcome = self.fetcher(client).fetch(REF)

        self.assertFalse(outcome.succeeded)
        self.assertEqual(outcome.attempts, 3)
        self.assertEqual(len(client.fetch_calls), 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])
        self.assertIsInstance(outcome.error, ServiceError)

    def test_limiter_bounds_in_flight_fetches(self) -> None:
        months = {(2000 + i // 12, i % 12 + 1): [] for i in range(20)}
        client = MockChessClient({"alice": months}, fetch_delay_s=0.02)
        fetcher = self.fetcher(client, limit=4)
        refs = [ArchiveRef(handle="alice", year=year, month=month) for year, month in months]

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(fetcher.fetch, refs))

        self.assertTrue(all(outcome.succeeded for outcome in outcomes))
        self.assertLessEqual(client.max_in_flight, 4)
        self.assertEqual(len(client.fetch_calls), 20)

    def test_backoff_sleeps_outside_the_limiter(self) -> None:
        limiter = threading.BoundedSemaphore(1)
        acquired_during_sleep: list[bool] = []

        def sleep(_delay: float) -> None:
            got = limiter.acquire(blocking=False)
            acquired_during_sleep.append(got)
            if got:
                limiter.release()

        client = MockChessClient(
            {"alice": {(2024, 1): []}},
            archive_failures={("alice", 2024, 1): [ServiceError("503")]},
        )
        fetcher = ArchiveFetcher(client, limiter, self.policy, sleep=sleep)

        self.assertTrue(fetcher.fetch(REF).succeeded)
        self.assertEqual(acquired_during_sleep, [True])

    def test_cancelled_run_stops_fetching(self) -> None:
        cancel = threading.Event()
        cancel.set()
        client = MockChessClient({"alice": {(2024, 1): []}})

        with self.assertRaises(RunCancelledError):
            self.fetcher(client, cancel_event=cancel).fetch(REF)

        self.assertEqual(client.fetch_calls, [])

    def test_cancel_during_backoff(self) -> None:
        cancel = threading.Event()
        client = MockChessClient(
            {"alice": {(2024, 1): []}},
            archive_failures={("alice", 2024, 1): [ServiceError("503")]},
        )

        with self.assertRaises(RunCancelledError):
            self.fetcher(client, sleep=lambda _delay: cancel.set(), cancel_event=cancel).fetch(REF)

        self.assertEqual(len(client.fetch_calls), 1)


if __name__ == "__main__":
    unittest.main()
