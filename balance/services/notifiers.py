# services/notifiers.py
"""
Платформенные адаптеры уведомлений.

Планировщик знает только интерфейс Notifier; конкретный адаптер
выбирается один раз при старте (build_notifier).
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from telegram import Bot
from telegram.error import Forbidden, TelegramError

from balance.config import BalanceConfig, NotifierKind

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Возможность показать напоминание на платформе"""

    name = "base"

    @abstractmethod
    def is_supported(self) -> bool:
        ...

    @abstractmethod
    def has_permission(self) -> bool:
        ...

    @abstractmethod
    async def request_permission(self) -> bool:
        ...

    @abstractmethod
    async def raise_reminder(self, title: str, body: str, tag: str) -> bool:
        """Показать напоминание; tag - id задачи, для дедупликации"""

    @abstractmethod
    async def cancel(self, tag: str) -> bool:
        ...

    async def close(self):
        pass


class LogNotifier(Notifier):
    """Напоминания пишутся в лог (консольный режим)"""

    name = "log"

    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self.active: Dict[str, Tuple[str, str]] = {}

    def is_supported(self) -> bool:
        return True

    def has_permission(self) -> bool:
        return self.permission_granted

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def raise_reminder(self, title: str, body: str, tag: str) -> bool:
        replaced = tag in self.active
        self.active[tag] = (title, body)
        logger.info(f"🔔 {title} - {body}" + (" (обновлено)" if replaced else ""))
        return True

    async def cancel(self, tag: str) -> bool:
        return self.active.pop(tag, None) is not None


class UnsupportedNotifier(Notifier):
    """Платформа без уведомлений: напоминания просто не приходят"""

    name = "none"

    def is_supported(self) -> bool:
        return False

    def has_permission(self) -> bool:
        return False

    async def request_permission(self) -> bool:
        return False

    async def raise_reminder(self, title: str, body: str, tag: str) -> bool:
        return False

    async def cancel(self, tag: str) -> bool:
        return False


class TelegramNotifier(Notifier):
    """Напоминания сообщениями Telegram в заданный чат"""

    name = "telegram"

    def __init__(self, token: Optional[str], chat_id: Optional[str], bot: Optional[Bot] = None):
        self.chat_id = chat_id
        self.bot = bot if bot is not None else (Bot(token) if token else None)
        self._permission_granted = bool(self.bot and chat_id)
        self._initialized = False
        self._sent: Dict[str, int] = {}  # tag -> message_id

    def is_supported(self) -> bool:
        return self.bot is not None and bool(self.chat_id)

    def has_permission(self) -> bool:
        return self.is_supported() and self._permission_granted

    async def _ensure_initialized(self):
        if not self._initialized:
            await self.bot.initialize()
            self._initialized = True

    async def request_permission(self) -> bool:
        """Проверка, что бот может писать в чат"""
        if not self.is_supported():
            return False
        try:
            await self._ensure_initialized()
            await self.bot.get_chat(chat_id=self.chat_id)
            self._permission_granted = True
        except TelegramError as e:
            logger.warning(f"⚠️ Чат {self.chat_id} недоступен для бота: {e}")
            self._permission_granted = False
        return self._permission_granted

    async def raise_reminder(self, title: str, body: str, tag: str) -> bool:
        if not self.has_permission():
            return False

        await self.cancel(tag)
        try:
            await self._ensure_initialized()
            message = await self.bot.send_message(chat_id=self.chat_id, text=f"{title}\n\n{body}")
        except Forbidden as e:
            logger.error(f"❌ Бот заблокирован в чате {self.chat_id}: {e}")
            self._permission_granted = False
            return False
        except TelegramError as e:
            logger.error(f"❌ Ошибка отправки напоминания {tag}: {e}")
            return False

        self._sent[tag] = message.message_id
        logger.info(f"📤 Отправлено напоминание {tag}: {title}")
        return True

    async def cancel(self, tag: str) -> bool:
        """Удаляет ранее отправленное напоминание с тем же тегом"""
        message_id = self._sent.pop(tag, None)
        if message_id is None:
            return False
        try:
            await self._ensure_initialized()
            await self.bot.delete_message(chat_id=self.chat_id, message_id=message_id)
        except TelegramError as e:
            logger.debug(f"Не удалось удалить напоминание {tag}: {e}")
            return False
        return True

    async def close(self):
        if self._initialized:
            await self.bot.shutdown()
            self._initialized = False


def build_notifier(config: BalanceConfig) -> Notifier:
    """Выбор платформенного адаптера по конфигурации"""
    kind = config.notifications.notifier
    if kind == NotifierKind.TELEGRAM:
        return TelegramNotifier(
            token=config.notifications.telegram_bot_token,
            chat_id=config.notifications.telegram_chat_id
        )
    if kind == NotifierKind.NONE:
        return UnsupportedNotifier()
    return LogNotifier()
