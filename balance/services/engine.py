# services/engine.py

import logging
from datetime import datetime
from typing import Dict, List, Optional, Any, Union

from apscheduler.schedulers.base import BaseScheduler

from balance.config import BalanceConfig, config as default_config
from balance.database import StorageBackend
from balance.models import DayItem, DayPlan, Rating, TimePeriod
from balance.services.analytics import AnalyticsAggregator, AnalyticsSummary, period_range
from balance.services.data_export import export_snapshot, import_snapshot
from balance.services.data_service import DataService
from balance.services.day_plan_service import DayPlanGenerator
from balance.services.lifecycle_service import CompletionReceipt, TaskLifecycleManager
from balance.services.notifications import NotificationScheduler
from balance.services.notifiers import Notifier, build_notifier
from balance.utils.datetime_utils import Clock, DateLike

logger = logging.getLogger(__name__)

NOTIFICATION_SETTINGS = {"notifications_enabled", "notificationsEnabled"}


class BalanceEngine:
    """
    Доменный движок Balance

    Обеспечивает:
    - Сборку сервисов в правильном порядке
    - Порядок "изменить -> сохранить -> пересинхронизировать напоминания"
      для каждой операции, меняющей набор pending задач
    - Корректное закрытие планировщика и адаптера уведомлений
    """

    def __init__(self, storage: Optional[StorageBackend] = None, notifier: Optional[Notifier] = None,
                 clock: Optional[Clock] = None, scheduler: Optional[BaseScheduler] = None,
                 config: Optional[BalanceConfig] = None):
        self.config = config or default_config
        self.clock = clock or Clock(self.config.engine.timezone)

        self.store = DataService(storage, self.clock)
        self.generator = DayPlanGenerator(self.store)
        self.lifecycle = TaskLifecycleManager(
            self.store, self.clock, undo_window_seconds=self.config.engine.undo_window_seconds
        )
        self.notifier = notifier or build_notifier(self.config)
        self.scheduler = NotificationScheduler(
            self.notifier,
            self.clock,
            item_lookup=self._current_item,
            pillar_lookup=self.store.get_pillar,
            scheduler=scheduler,
            misfire_grace_seconds=self.config.notifications.misfire_grace_seconds
        )
        self.initialized = False

    # ===== ЗАПУСК И ОСТАНОВКА =====

    def initialize(self) -> bool:
        """Загрузка данных, план на сегодня и постановка напоминаний"""
        logger.info("🔧 Инициализация движка Balance...")
        loaded = self.store.load()
        self.generator.generate(self.clock.today())
        self.resync()
        self.initialized = True

        if not self.scheduler.permitted():
            logger.warning(
                f"⚠️ Напоминания недоступны ({self.notifier.name}): {self.scheduler.capability()}"
            )

        logger.info(f"✅ Движок инициализирован ({'данные загружены' if loaded else 'шаблоны по умолчанию'})")
        return loaded

    def start(self):
        """Запуск планировщика напоминаний (внутри event loop)"""
        self.scheduler.start()

    async def close(self):
        self.scheduler.shutdown()
        await self.notifier.close()
        logger.info("👋 Движок Balance остановлен")

    # ===== ПЛАНЫ ДНЕЙ =====

    def today(self) -> DayPlan:
        return self.generate(self.clock.today())

    def generate(self, day: DateLike) -> DayPlan:
        self.refresh()
        existed = self.store.has_day_plan(day)
        plan = self.generator.generate(day)
        if not existed:
            self.resync()
        return plan

    def generate_range(self, start: DateLike, end: DateLike) -> List[DayPlan]:
        self.refresh()
        plans = self.generator.generate_range(start, end)
        self.resync()
        return plans

    def get_day_plan(self, day: DateLike) -> Optional[DayPlan]:
        self.refresh()
        return self.store.get_day_plan(day)

    # ===== ЖИЗНЕННЫЙ ЦИКЛ ЗАДАЧ =====

    def complete(self, day: DateLike, item_id: str, rating: Union[Rating, str],
                 minutes: Optional[int] = None) -> Optional[CompletionReceipt]:
        self.refresh()
        receipt = self.lifecycle.complete(day, item_id, rating, minutes)
        if receipt is not None:
            self.scheduler.cancel_one(item_id)
            self.scheduler.dismiss_later(item_id)
        return receipt

    def undo(self, day: DateLike, item_id: str, deadline: Optional[datetime] = None) -> bool:
        self.refresh()
        undone = self.lifecycle.undo(day, item_id, deadline)
        if undone:
            item = self.store.find_item(day, item_id)
            if item is not None:
                self.scheduler.schedule_one(item)
        return undone

    def add_item(self, day: DateLike, title: str, pillar_id: str, category_id: str,
                 **fields) -> Optional[DayItem]:
        """Разовая задача; план на дату сначала генерируется из шаблонов"""
        self.generate(day)
        item = self.lifecycle.add_item(day, title, pillar_id, category_id, **fields)
        if item is not None:
            self.scheduler.schedule_one(item)
        return item

    def update_item(self, day: DateLike, item_id: str, **changes) -> Optional[DayItem]:
        self.refresh()
        updated = self.lifecycle.update_item(day, item_id, **changes)
        if updated is not None:
            self.scheduler.schedule_one(updated)
        return updated

    def delete_item(self, day: DateLike, item_id: str) -> bool:
        self.refresh()
        removed = self.lifecycle.delete_item(day, item_id)
        if removed is None:
            return False
        self.scheduler.cancel_one(item_id)
        self.scheduler.dismiss_later(item_id)
        return True

    # ===== НАПОМИНАНИЯ =====

    def refresh(self) -> bool:
        """Подхватить изменения другого процесса над тем же хранилищем.

        После перечитывания таймеры пересинхронизируются, а показанные
        напоминания задач, которые больше не pending, убираются.
        """
        if not self.store.refresh():
            return False

        self.resync()
        for item_id in self.scheduler.delivered_ids():
            item = self.store.find_item_anywhere(item_id)
            if item is None or not item.is_pending:
                self.scheduler.dismiss_later(item_id)
        return True

    def _current_item(self, item_id: str) -> Optional[DayItem]:
        """Поиск задачи для сработавшего таймера по актуальным данным"""
        self.refresh()
        return self.store.find_item_anywhere(item_id)

    def resync(self) -> int:
        """Пересинхронизация всех напоминаний с текущими pending задачами"""
        return self.scheduler.resync(
            self.store.pending_items(from_date=self.clock.today()),
            self.store.settings.notifications_enabled
        )

    def capability(self) -> Dict[str, bool]:
        return self.scheduler.capability()

    def notification_prompt_needed(self) -> bool:
        """Нужно ли один раз сообщить пользователю, что напоминания недоступны"""
        return not self.scheduler.permitted() and not self.store.settings.has_seen_notification_prompt

    async def set_notifications_enabled(self, enabled: bool) -> bool:
        """Включение напоминаний с запросом разрешения платформы"""
        self.refresh()
        if enabled and not self.scheduler.permitted():
            granted = await self.scheduler.request_permission()
            if not granted:
                self.store.update_settings(notifications_enabled=False, has_seen_notification_prompt=True)
                self.resync()
                return False

        self.update_settings(notifications_enabled=enabled)
        return True

    # ===== НАСТРОЙКИ И ДАННЫЕ =====

    def update_settings(self, **changes) -> bool:
        self.refresh()
        updated = self.store.update_settings(**changes)
        if updated and NOTIFICATION_SETTINGS & set(changes):
            self.resync()
        return updated

    def complete_onboarding(self, user_name: str, pillars: List[Dict[str, Any]]) -> bool:
        self.refresh()
        return self.store.complete_onboarding(user_name, pillars)

    def reset(self):
        self.store.reset()
        self.lifecycle.clear_receipts()
        self.resync()

    def export_data(self) -> str:
        self.refresh()
        return export_snapshot(self.store)

    def import_data(self, text: str) -> bool:
        self.refresh()
        imported = import_snapshot(self.store, text)
        if imported:
            self.lifecycle.clear_receipts()
            self.resync()
        return imported

    # ===== АНАЛИТИКА =====

    def analytics(self) -> AnalyticsAggregator:
        self.refresh()
        return AnalyticsAggregator(self.store.day_plans, self.store.logs, self.store.pillars)

    def summary(self, period: Union[TimePeriod, str] = TimePeriod.WEEKLY) -> AnalyticsSummary:
        today = self.clock.today()
        start, end = period_range(TimePeriod(period), today)
        return self.analytics().summary(start, end, today=today)

    # ===== СОСТОЯНИЕ =====

    def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.initialized else "not_initialized",
            "store": self.store.get_service_metrics(),
            "notifications": {
                "notifier": self.notifier.name,
                "enabled": self.store.settings.notifications_enabled,
                "timers": self.scheduler.timer_count,
                **self.capability(),
            },
        }
