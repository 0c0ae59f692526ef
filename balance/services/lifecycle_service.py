# services/lifecycle_service.py
"""
Жизненный цикл задачи дня.

    pending --complete(rating)--> done | skipped
    done | skipped --undo (до дедлайна)--> pending

Каждое выполнение создает ровно одну запись журнала; отмена удаляет ее.
Операции над несуществующими задачами ничего не делают и ничего не бросают.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

from balance.models import DayItem, LogEntry, Rating, TaskStatus, ValidationError
from balance.services.data_service import DataService
from balance.utils.datetime_utils import Clock, DateLike, format_date, minutes_between, to_date

logger = logging.getLogger(__name__)

# Поля, которые можно менять напрямую; статус и оценка меняются только через complete/undo
EDITABLE_FIELDS = {"title", "start", "end", "minutes", "is_special"}


@dataclass(frozen=True)
class CompletionReceipt:
    """Результат выполнения задачи, нужен для отмены"""
    item_id: str
    date: str
    log_entry_id: str
    status: TaskStatus
    rating: Rating
    minutes: int
    undo_deadline: datetime


class TaskLifecycleManager:
    """Переходы статусов задач и журнал выполнений"""

    def __init__(self, store: DataService, clock: Optional[Clock] = None, undo_window_seconds: int = 5):
        self.store = store
        self.clock = clock or store.clock
        self.undo_window = timedelta(seconds=undo_window_seconds)
        self._receipts: Dict[str, CompletionReceipt] = {}

    def complete(self, day: DateLike, item_id: str, rating: Union[Rating, str],
                 minutes: Optional[int] = None) -> Optional[CompletionReceipt]:
        """Отметить задачу выполненной (или пропущенной при rating=skip)"""
        self._prune_expired_receipts()
        parsed = Rating.parse(rating)
        if parsed is None:
            logger.error(f"❌ Неизвестная оценка: {rating!r}")
            return None

        plan = self.store.get_day_plan(day)
        item = plan.find(item_id) if plan else None
        if item is None:
            logger.warning(f"⚠️ Задача {item_id} не найдена в плане на {day}")
            return None

        if not item.is_pending:
            logger.warning(f"⚠️ Задача {item_id} уже в статусе {item.status.value}")
            return None

        resolved_minutes = self.resolve_minutes(item, minutes)
        try:
            updated = item.copy(status=parsed.resulting_status, rating=parsed, minutes=resolved_minutes)
            entry = LogEntry(
                date=item.date,
                pillar_id=item.pillar_id,
                category_id=item.category_id,
                subcategory_id=item.subcategory_id,
                rating=parsed,
                minutes=resolved_minutes,
                timestamp=self.store.next_timestamp()
            )
        except ValidationError as e:
            logger.error(f"❌ Неверные данные выполнения {item_id}: {e}")
            return None

        plan.replace_item(updated)
        self.store.append_log(entry)
        self.store.save()

        receipt = CompletionReceipt(
            item_id=item.id,
            date=item.date,
            log_entry_id=entry.id,
            status=updated.status,
            rating=parsed,
            minutes=resolved_minutes,
            undo_deadline=self.clock.now() + self.undo_window
        )
        self._receipts[item.id] = receipt

        logger.info(f"✅ {item.title}: {parsed.value}, {resolved_minutes} мин")
        return receipt

    def undo(self, day: DateLike, item_id: str, deadline: Optional[datetime] = None) -> bool:
        """Вернуть задачу в pending и удалить запись журнала"""
        plan = self.store.get_day_plan(day)
        item = plan.find(item_id) if plan else None
        if item is None:
            logger.warning(f"⚠️ Задача {item_id} не найдена в плане на {day}")
            return False

        if item.is_pending:
            logger.debug(f"Задача {item_id} уже pending, отменять нечего")
            return False

        receipt = self._receipts.get(item_id)
        self._prune_expired_receipts()
        effective_deadline = deadline or (receipt.undo_deadline if receipt else None)
        if effective_deadline is None:
            logger.warning(f"⚠️ Для задачи {item_id} нет дедлайна отмены")
            return False

        if self.clock.now() > effective_deadline:
            logger.info(f"⌛ Окно отмены для задачи {item_id} истекло")
            return False

        plan.replace_item(item.copy(status=TaskStatus.PENDING, rating=None, minutes=None))

        removed = None
        if receipt is not None:
            removed = self.store.remove_log(receipt.log_entry_id)
        if removed is None:
            removed = self._remove_latest_matching_log(item)
        if removed is None:
            logger.warning(f"⚠️ Запись журнала для задачи {item_id} не найдена")

        self._receipts.pop(item_id, None)
        self.store.save()
        logger.info(f"↩️ Выполнение задачи {item.title} отменено")
        return True

    def receipt_for(self, item_id: str) -> Optional[CompletionReceipt]:
        return self._receipts.get(item_id)

    def clear_receipts(self):
        """После сброса или импорта старые квитанции не относятся к данным"""
        self._receipts.clear()

    def _prune_expired_receipts(self):
        now = self.clock.now()
        expired = [item_id for item_id, receipt in self._receipts.items() if receipt.undo_deadline < now]
        for item_id in expired:
            del self._receipts[item_id]

    @property
    def receipt_count(self) -> int:
        return len(self._receipts)

    def add_item(self, day: DateLike, title: str, pillar_id: str, category_id: str,
                 subcategory_id: Optional[str] = None, start: Optional[str] = None,
                 end: Optional[str] = None, is_special: bool = False) -> Optional[DayItem]:
        """Добавить разовую задачу в существующий план"""
        plan = self.store.get_day_plan(day)
        if plan is None:
            logger.warning(f"⚠️ Плана на {day} нет")
            return None

        if self.store.get_pillar(pillar_id) is None or self.store.get_category(category_id) is None:
            logger.error(f"❌ Столп {pillar_id} или категория {category_id} не существует")
            return None

        try:
            item = DayItem(
                date=format_date(to_date(day)),
                pillar_id=pillar_id,
                category_id=category_id,
                subcategory_id=subcategory_id,
                title=title,
                start=start,
                end=end,
                is_special=is_special
            )
        except ValidationError as e:
            logger.error(f"❌ Неверные данные задачи: {e}")
            return None

        plan.items.append(item)
        self.store.save()
        return item

    def update_item(self, day: DateLike, item_id: str, **changes) -> Optional[DayItem]:
        """Изменить редактируемые поля задачи"""
        forbidden = set(changes) - EDITABLE_FIELDS
        if forbidden:
            logger.error(f"❌ Поля {sorted(forbidden)} нельзя менять напрямую")
            return None

        plan = self.store.get_day_plan(day)
        item = plan.find(item_id) if plan else None
        if item is None:
            logger.warning(f"⚠️ Задача {item_id} не найдена в плане на {day}")
            return None

        try:
            updated = item.copy(**changes)
        except (ValidationError, TypeError) as e:
            logger.error(f"❌ Неверное обновление задачи {item_id}: {e}")
            return None

        plan.replace_item(updated)
        self.store.save()
        return updated

    def delete_item(self, day: DateLike, item_id: str) -> Optional[DayItem]:
        plan = self.store.get_day_plan(day)
        removed = plan.remove_item(item_id) if plan else None
        if removed is None:
            logger.warning(f"⚠️ Задача {item_id} не найдена в плане на {day}")
            return None

        self._receipts.pop(item_id, None)
        self.store.save()
        return removed

    @staticmethod
    def resolve_minutes(item: DayItem, minutes: Optional[int]) -> int:
        """Переданные минуты, иначе длина окна задачи, иначе 0"""
        if minutes is not None:
            return minutes
        return minutes_between(item.start, item.end) or 0

    def _remove_latest_matching_log(self, item: DayItem) -> Optional[LogEntry]:
        candidates = [
            entry for entry in self.store.logs
            if entry.date == item.date
            and entry.category_id == item.category_id
            and entry.subcategory_id == item.subcategory_id
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda entry: entry.timestamp)
        return self.store.remove_log(latest.id)
