"""
Планировщик напоминаний

На каждую pending задачу со временем начала - не больше одного
одноразового задания APScheduler (DateTrigger), id задания = id задачи.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from balance.models import DayItem, Pillar
from balance.services.notifiers import Notifier
from balance.utils.datetime_utils import Clock, localize, to_date

logger = logging.getLogger(__name__)

# Эмодзи столпов для заголовка напоминания
PILLAR_EMOJIS = {
    'health': '💪',
    'relationships': '💕',
    'work': '💼',
}
DEFAULT_EMOJI = '📋'

ItemLookup = Callable[[str], Optional[DayItem]]
PillarLookup = Callable[[str], Optional[Pillar]]


class NotificationScheduler:
    """Таблица таймеров напоминаний: item_id -> задание планировщика"""

    def __init__(self, notifier: Notifier, clock: Clock, item_lookup: ItemLookup,
                 pillar_lookup: Optional[PillarLookup] = None,
                 scheduler: Optional[BaseScheduler] = None,
                 misfire_grace_seconds: int = 60):
        self.notifier = notifier
        self.clock = clock
        self.item_lookup = item_lookup
        self.pillar_lookup = pillar_lookup or (lambda pillar_id: None)
        self.scheduler = scheduler if scheduler is not None else AsyncIOScheduler(timezone=clock.tz)
        self.misfire_grace_seconds = misfire_grace_seconds
        self.enabled = False
        self._timers: Dict[str, Job] = {}
        # Показанные напоминания, которые можно убрать через notifier.cancel
        self._delivered: Set[str] = set()
        self._background: Set[asyncio.Task] = set()

        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

    # ===== ВОЗМОЖНОСТИ ПЛАТФОРМЫ =====

    def permitted(self) -> bool:
        return self.notifier.is_supported() and self.notifier.has_permission()

    def capability(self) -> Dict[str, bool]:
        """Для однократного сообщения пользователю о недоступности напоминаний"""
        return {
            "supported": self.notifier.is_supported(),
            "permission": self.notifier.has_permission(),
        }

    async def request_permission(self) -> bool:
        granted = await self.notifier.request_permission()
        logger.info(f"🔐 Разрешение на уведомления ({self.notifier.name}): {'да' if granted else 'нет'}")
        return granted

    # ===== ТАЙМЕРЫ =====

    def schedule_one(self, item: DayItem) -> bool:
        """Поставить напоминание на начало задачи; прошлое время не планируется"""
        self.cancel_one(item.id)

        if not item.start or not item.date or not item.is_pending:
            return False
        if not self.enabled or not self.permitted():
            return False

        target = localize(to_date(item.date), item.start, self.clock.tz)
        delay = target - self.clock.now()
        if delay.total_seconds() <= 0:
            logger.debug(f"Время задачи {item.title} уже прошло, напоминание не ставим")
            return False

        job = self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=target, timezone=self.clock.tz),
            args=[item.id],
            id=item.id,
            name=f"reminder:{item.title}",
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_seconds
        )
        self._timers[item.id] = job
        logger.debug(f"⏰ Напоминание {item.title} через {int(delay.total_seconds() // 60)} мин")
        return True

    def cancel_one(self, item_id: str) -> bool:
        if self._timers.pop(item_id, None) is None:
            return False
        try:
            self.scheduler.remove_job(item_id)
        except JobLookupError:
            # Задание уже отработало и удалено планировщиком
            pass
        return True

    def cancel_all(self) -> int:
        ids = list(self._timers)
        for item_id in ids:
            self.cancel_one(item_id)
        return len(ids)

    def resync(self, items: Iterable[DayItem], notifications_enabled: bool) -> int:
        """Полная пересинхронизация таблицы таймеров; идемпотентна"""
        self.enabled = notifications_enabled
        self.cancel_all()

        if not notifications_enabled:
            return 0
        if not self.permitted():
            logger.debug("Нет разрешения на уведомления, напоминания не ставим")
            return 0

        scheduled = sum(1 for item in items if item.is_pending and self.schedule_one(item))
        logger.info(f"📅 Запланировано напоминаний: {scheduled}")
        return scheduled

    def has_timer(self, item_id: str) -> bool:
        return item_id in self._timers

    def pending_timer_ids(self) -> List[str]:
        return list(self._timers)

    @property
    def timer_count(self) -> int:
        return len(self._timers)

    # ===== СРАБАТЫВАНИЕ =====

    async def _fire(self, item_id: str):
        """Срабатывание таймера; состояние перепроверяется, оно могло измениться"""
        self._timers.pop(item_id, None)

        # Поиск может перечитать хранилище и обновить self.enabled
        item = self.item_lookup(item_id)
        if not self.enabled or not self.permitted():
            logger.debug(f"Напоминание {item_id} отменено: уведомления недоступны")
            return

        if item is None or not item.is_pending:
            logger.debug(f"Напоминание {item_id} отменено: задача удалена или выполнена")
            return

        title, body = self.build_message(item)
        try:
            delivered = await self.notifier.raise_reminder(title, body, tag=item.id)
        except Exception as e:
            logger.error(f"❌ Ошибка показа напоминания {item_id}: {e}")
            return

        if delivered:
            self._delivered.add(item.id)

    def _on_job_missed(self, event: JobExecutionEvent):
        """Планировщик опоздал больше misfire_grace_time и выбросил задание"""
        if self._timers.pop(event.job_id, None) is not None:
            logger.warning(f"⌛ Напоминание {event.job_id} пропущено, плановое время {event.scheduled_run_time}")

    # ===== ПОКАЗАННЫЕ НАПОМИНАНИЯ =====

    def delivered_ids(self) -> List[str]:
        return sorted(self._delivered)

    async def dismiss(self, item_id: str) -> bool:
        """Убрать уже показанное напоминание (задача выполнена или удалена)"""
        if item_id not in self._delivered:
            return False
        self._delivered.discard(item_id)
        try:
            return await self.notifier.cancel(item_id)
        except Exception as e:
            logger.error(f"❌ Ошибка удаления напоминания {item_id}: {e}")
            return False

    def dismiss_later(self, item_id: str) -> bool:
        """dismiss() из синхронного кода; нужен работающий event loop"""
        if item_id not in self._delivered:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"Нет event loop, напоминание {item_id} останется показанным")
            return False

        task = loop.create_task(self.dismiss(item_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    def build_message(self, item: DayItem):
        pillar = self.pillar_lookup(item.pillar_id)
        pillar_name = pillar.name if pillar else "Task"
        emoji = (
            PILLAR_EMOJIS.get(item.pillar_id)
            or PILLAR_EMOJIS.get(pillar_name.lower())
            or DEFAULT_EMOJI
        )
        return f"{emoji} {item.title}", f"Time to work on your {pillar_name} goal"

    # ===== ЖИЗНЕННЫЙ ЦИКЛ =====

    def start(self):
        """Запуск планировщика; нужен работающий event loop"""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("📅 Планировщик напоминаний запущен")

    def shutdown(self):
        self.cancel_all()
        self._delivered.clear()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("📅 Планировщик напоминаний остановлен")
