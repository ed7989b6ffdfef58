import os
import unittest
from pathlib import Path
from unittest.mock import patch

from chess_dl import config
from chess_dl.errors import ConfigurationError


class ConfigEnvTests(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with patch("chess_dl.config.load_dotenv") as load_dotenv:
                settings = config.get_settings()

        load_dotenv.assert_called_once()
        self.assertEqual(settings.base_url, "https://api.chess.com/pub")
        self.assertEqual(settings.max_concurrent_fetches, 10)
        self.assertEqual(settings.effective_worker_threads, 20)
        self.assertEqual(settings.max_attempts, 5)
        self.assertIsNone(settings.time_limit_s)
        self.assertEqual(settings.archive_format, "json")

    def test_environment_overrides(self) -> None:
        env = {
            "CHESS_DL_CONCURRENT": "3",
            "CHESS_DL_WORKERS": "5",
            "CHESS_DL_TIME_LIMIT_MINUTES": "1.5",
            "CHESS_DL_OUTPUT_DIR": "/tmp/games",
            "CHESS_DL_ARCHIVE_FORMAT": "PGN",
        }
        with patch.dict(os.environ, env, clear=True):
            with patch("chess_dl.config.load_dotenv"):
                settings = config.get_settings()

        self.assertEqual(settings.max_concurrent_fetches, 3)
        self.assertEqual(settings.effective_worker_threads, 5)
        self.assertEqual(settings.time_limit_s, 90.0)
        self.assertEqual(settings.output_dir, Path("/tmp/games"))
        self.assertEqual(settings.archive_format, "pgn")

    def test_keyword_overrides_win(self) -> None:
        with patch.dict(os.environ, {"CHESS_DL_CONCURRENT": "3"}, clear=True):
            with patch("chess_dl.config.load_dotenv"):
                settings = config.get_settings(max_concurrent_fetches=7, output_dir="out")

        self.assertEqual(settings.max_concurrent_fetches, 7)
        self.assertEqual(settings.output_dir, Path("out"))

    def test_backoff_policy_from_settings(self) -> None:
        policy = config.Settings(
            max_attempts=4, backoff_floor_ms=500, backoff_ceiling_ms=8000, backoff_jitter=0.0
        ).backoff_policy()

        self.assertEqual(policy.max_attempts, 4)
        self.assertEqual(policy.floor_seconds, 0.5)
        self.assertEqual(policy.ceiling_seconds, 8.0)

    def test_invalid_values_raise(self) -> None:
        with patch.dict(os.environ, {"CHESS_DL_CONCURRENT": "lots"}, clear=True):
            with patch("chess_dl.config.load_dotenv"):
                with self.assertRaises(ConfigurationError):
                    config.get_settings()

        with patch.dict(os.environ, {}, clear=True):
            with patch("chess_dl.config.load_dotenv"):
                with self.assertRaises(ConfigurationError):
                    config.get_settings(max_concurrent_fetches=0)
                with self.assertRaises(ConfigurationError):
                    config.get_settings(archive_format="xml")
                with self.assertRaises(ConfigurationError):
                    config.get_settings(no_such_setting=1)


if __name__ == "__main__":
    unittest.main()
