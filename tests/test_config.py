"""Tests for balance/config.py

Configuration is read from environment variables; every problem is
collected and reported together in one ValueError.
"""

import logging

import pytest

from balance.config import BalanceConfig, Environment, LogLevel, NotifierKind
from balance.services.notifiers import LogNotifier, TelegramNotifier, UnsupportedNotifier, build_notifier
from balance.utils import configure_logging


CONFIG_VARS = [
    "ENVIRONMENT", "DATA_DIR", "BACKUP_DIR", "EXPORT_DIR", "LOG_DIR", "LOG_LEVEL", "LOG_TO_FILE",
    "BALANCE_TIMEZONE", "UNDO_WINDOW_SECONDS", "SYNC_INTERVAL_SECONDS", "MISFIRE_GRACE_SECONDS", "NOTIFIER",
    "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    """Values used when nothing is set."""

    def test_defaults(self, clean_env):
        config = BalanceConfig()

        assert config.environment is Environment.DEVELOPMENT
        assert config.engine.timezone == "UTC"
        assert config.engine.undo_window_seconds == 5
        assert config.engine.sync_interval_seconds == 30
        assert config.notifications.notifier is NotifierKind.LOG
        assert config.log_level is LogLevel.INFO
        assert config.storage.path.name == "balance_data.json"
        assert config.is_development()

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("DATA_DIR", str(tmp_path))
        clean_env.setenv("BALANCE_TIMEZONE", "Europe/Moscow")
        clean_env.setenv("UNDO_WINDOW_SECONDS", "10")
        clean_env.setenv("ENVIRONMENT", "production")

        config = BalanceConfig()

        assert config.storage.path == tmp_path / "balance_data.json"
        assert config.engine.timezone == "Europe/Moscow"
        assert config.engine.undo_window_seconds == 10
        assert config.is_production()


class TestValidation:
    """Invalid settings are reported together."""

    def test_unknown_timezone(self, clean_env):
        clean_env.setenv("BALANCE_TIMEZONE", "Mars/Olympus")

        with pytest.raises(ValueError, match="Mars/Olympus"):
            BalanceConfig()

    def test_collects_all_errors(self, clean_env):
        clean_env.setenv("UNDO_WINDOW_SECONDS", "soon")
        clean_env.setenv("LOG_LEVEL", "LOUD")
        clean_env.setenv("NOTIFIER", "telegram")

        with pytest.raises(ValueError) as exc_info:
            BalanceConfig()

        message = str(exc_info.value)
        assert "UNDO_WINDOW_SECONDS" in message
        assert "LOG_LEVEL" in message
        assert "TELEGRAM_BOT_TOKEN" in message
        assert "TELEGRAM_CHAT_ID" in message

    def test_negative_undo_window(self, clean_env):
        clean_env.setenv("UNDO_WINDOW_SECONDS", "-1")

        with pytest.raises(ValueError, match="UNDO_WINDOW_SECONDS"):
            BalanceConfig()

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_sync_interval_must_be_positive(self, clean_env, value):
        clean_env.setenv("SYNC_INTERVAL_SECONDS", value)

        with pytest.raises(ValueError, match="SYNC_INTERVAL_SECONDS"):
            BalanceConfig()

    def test_to_dict_masks_token(self, clean_env):
        clean_env.setenv("NOTIFIER", "telegram")
        clean_env.setenv("TELEGRAM_BOT_TOKEN", "123456789:ABCDEFGHIJKLMNOP")
        clean_env.setenv("TELEGRAM_CHAT_ID", "42")

        data = BalanceConfig().to_dict()

        assert data["telegram_bot_token"] == "123456789:..."
        assert data["notifier"] == "telegram"


class TestNotifierSelection:
    """The platform adapter follows NOTIFIER."""

    @pytest.mark.parametrize("kind, expected", [
        ("log", LogNotifier),
        ("none", UnsupportedNotifier),
    ])
    def test_build_notifier(self, clean_env, kind, expected):
        clean_env.setenv("NOTIFIER", kind)

        assert isinstance(build_notifier(BalanceConfig()), expected)

    def test_build_telegram_notifier(self, clean_env):
        clean_env.setenv("NOTIFIER", "telegram")
        clean_env.setenv("TELEGRAM_BOT_TOKEN", "123456789:ABCDEFGHIJKLMNOP")
        clean_env.setenv("TELEGRAM_CHAT_ID", "42")

        notifier = build_notifier(BalanceConfig())

        assert isinstance(notifier, TelegramNotifier)
        assert notifier.is_supported()


class TestLogging:
    """Logging is configured from the same settings."""

    def test_file_handler_only_when_enabled(self, clean_env, tmp_path):
        clean_env.setenv("LOG_DIR", str(tmp_path / "logs"))

        assert "file" not in BalanceConfig().get_logging_config()["handlers"]

        clean_env.setenv("LOG_TO_FILE", "true")
        handlers = BalanceConfig().get_logging_config()["handlers"]

        assert handlers["file"]["class"] == "logging.handlers.RotatingFileHandler"
        assert handlers["file"]["filename"].endswith("balance_development.log")

    def test_configure_logging(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "DEBUG")

        logger = configure_logging(BalanceConfig())

        assert logger.name == "balance"
        assert logging.getLogger().level == logging.DEBUG
