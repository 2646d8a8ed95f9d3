import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from ticker_gateway.config.settings import Settings


class TestTickerSettings(unittest.TestCase):
    def test_defaults_match_upstream_contract(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.TICKERS_SOURCE_URL, "https://api.blockchain.com/v3/exchange/tickers")
        self.assertEqual(settings.TICKERS_EXPECTED_COUNT, 102)
        self.assertEqual(settings.TICKERS_UPDATE_PERIOD_SEC, 30.0)
        self.assertEqual(settings.TICKERS_DB_PATH, "tickers.db")
        self.assertEqual(settings.HTTP_PORT, 8090)
        self.assertFalse(settings.TICKERS_STRICT_REPLACE)

    def test_env_overrides_are_parsed(self):
        env = {
            "TICKERS_SOURCE_URL": "https://example.test/tickers",
            "TICKERS_EXPECTED_COUNT": " 5 ",
            "TICKERS_UPDATE_PERIOD_SEC": "2.5",
            "TICKERS_DB_PATH": "/tmp/t.db",
            "TICKERS_STRICT_REPLACE": "true",
            "HTTP_PORT": "9000",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.TICKERS_SOURCE_URL, "https://example.test/tickers")
        self.assertEqual(settings.TICKERS_EXPECTED_COUNT, 5)
        self.assertEqual(settings.TICKERS_UPDATE_PERIOD_SEC, 2.5)
        self.assertEqual(settings.TICKERS_DB_PATH, "/tmp/t.db")
        self.assertTrue(settings.TICKERS_STRICT_REPLACE)
        self.assertEqual(settings.HTTP_PORT, 9000)

    def test_blank_env_values_fall_back_to_defaults(self):
        with patch.dict(os.environ, {"TICKERS_EXPECTED_COUNT": "  "}, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.TICKERS_EXPECTED_COUNT, 102)

    def test_invalid_expected_count_fails_validation(self):
        for value in ("0", "-3", "many"):
            with self.subTest(value=value):
                with patch.dict(os.environ, {"TICKERS_EXPECTED_COUNT": value}, clear=True):
                    with self.assertRaises(ValidationError):
                        Settings.from_env()

    def test_log_level_is_case_insensitive(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.LOG_LEVEL, "DEBUG")

    def test_unknown_log_level_fails_validation(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "chatty"}, clear=True):
            with self.assertRaises(ValidationError):
                Settings.from_env()

    def test_non_positive_period_fails_validation(self):
        with patch.dict(os.environ, {"TICKERS_UPDATE_PERIOD_SEC": "0"}, clear=True):
            with self.assertRaises(ValidationError):
                Settings.from_env()


if __name__ == "__main__":
    unittest.main()
