#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Balance - Configuration
Централизованная конфигурация движка с валидацией

Все параметры читаются из переменных окружения; директории создаются
по требованию, а не при импорте.
"""

import os
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

import pytz


class Environment(Enum):
    """Среды выполнения"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Уровни логирования"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class NotifierKind(Enum):
    """Платформенные адаптеры уведомлений"""
    LOG = "log"
    TELEGRAM = "telegram"
    NONE = "none"


@dataclass
class StorageConfig:
    """Конфигурация хранилища снапшота"""
    path: Path
    backup_dir: Path
    export_dir: Path


@dataclass
class NotificationConfig:
    """Конфигурация напоминаний"""
    notifier: NotifierKind = NotifierKind.LOG
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    misfire_grace_seconds: int = 60


@dataclass
class EngineConfig:
    """Параметры доменного движка"""
    timezone: str = "UTC"
    undo_window_seconds: int = 5
    sync_interval_seconds: int = 30


class BalanceConfig:
    """Главный класс конфигурации"""

    def __init__(self):
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Загрузка конфигурации из переменных окружения"""
        self._errors = []

        self.environment = self._parse_enum(Environment, 'ENVIRONMENT', 'development')

        # Директории
        self.data_dir = Path(os.getenv('DATA_DIR', 'data'))
        self.export_dir = Path(os.getenv('EXPORT_DIR', 'exports'))
        self.backup_dir = Path(os.getenv('BACKUP_DIR', 'backups'))
        self.log_dir = Path(os.getenv('LOG_DIR', 'logs'))

        self.storage = StorageConfig(
            path=self.data_dir / "balance_data.json",
            backup_dir=self.backup_dir,
            export_dir=self.export_dir
        )

        self.engine = EngineConfig(
            timezone=os.getenv('BALANCE_TIMEZONE', 'UTC'),
            undo_window_seconds=self._parse_int('UNDO_WINDOW_SECONDS', 5),
            sync_interval_seconds=self._parse_int('SYNC_INTERVAL_SECONDS', 30)
        )

        self.notifications = NotificationConfig(
            notifier=self._parse_enum(NotifierKind, 'NOTIFIER', 'log'),
            telegram_bot_token=os.getenv('TELEGRAM_BOT_TOKEN'),
            telegram_chat_id=os.getenv('TELEGRAM_CHAT_ID'),
            misfire_grace_seconds=self._parse_int('MISFIRE_GRACE_SECONDS', 60)
        )

        # Логирование
        self.log_level = self._parse_enum(LogLevel, 'LOG_LEVEL', 'INFO')
        self.log_to_file = os.getenv('LOG_TO_FILE', 'false').lower() == 'true'
        self.log_format = os.getenv(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _parse_enum(self, enum_class: type, key: str, default: str):
        raw = os.getenv(key, default)
        try:
            return enum_class(raw)
        except ValueError:
            valid_values = [e.value for e in enum_class]
            self._errors.append(f"{key} должен быть одним из: {valid_values}")
            return enum_class(default)

    def _parse_int(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            self._errors.append(f"{key} должен быть целым числом, получено: {raw!r}")
            return default

    def _validate_config(self):
        """Валидация конфигурации"""
        errors = list(self._errors)

        if self.engine.timezone not in pytz.all_timezones_set:
            errors.append(f"Неизвестная таймзона: {self.engine.timezone}")

        if self.engine.undo_window_seconds < 0:
            errors.append("UNDO_WINDOW_SECONDS не может быть отрицательным")

        if self.engine.sync_interval_seconds <= 0:
            errors.append("SYNC_INTERVAL_SECONDS должен быть положительным")

        if self.notifications.notifier == NotifierKind.TELEGRAM:
            if not self.notifications.telegram_bot_token:
                errors.append("Для NOTIFIER=telegram нужен TELEGRAM_BOT_TOKEN")
            if not self.notifications.telegram_chat_id:
                errors.append("Для NOTIFIER=telegram нужен TELEGRAM_CHAT_ID")

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Создание необходимых директорий"""
        directories = [
            self.data_dir,
            self.export_dir,
            self.backup_dir,
        ]
        if self.log_to_file:
            directories.append(self.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Получение конфигурации логирования"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        logging_config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'apscheduler': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'httpx': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'telegram': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            logging_config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_dir / f"balance_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return logging_config

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация конфигурации в словарь"""
        token = self.notifications.telegram_bot_token
        return {
            'environment': self.environment.value,
            'storage_path': str(self.storage.path),
            'timezone': self.engine.timezone,
            'undo_window_seconds': self.engine.undo_window_seconds,
            'sync_interval_seconds': self.engine.sync_interval_seconds,
            'notifier': self.notifications.notifier.value,
            'telegram_bot_token': (token[:10] + "...") if token else None,  # Скрываем токен
            'log_level': self.log_level.value
        }


# Глобальный экземпляр конфигурации
config = BalanceConfig()

__all__ = [
    'config',
    'BalanceConfig',
    'Environment',
    'LogLevel',
    'NotifierKind',
    'StorageConfig',
    'NotificationConfig',
    'EngineConfig'
]
