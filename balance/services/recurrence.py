# services/recurrence.py
"""
Правила повторяемости шаблонов.

Чистые функции без состояния: входит ли категория в план на дату
и какое у задачи окно времени.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from balance.models import Category, Recurrence, Subcategory


@dataclass(frozen=True)
class TimeWindow:
    start: Optional[str] = None
    end: Optional[str] = None

    @property
    def is_timed(self) -> bool:
        return self.start is not None


def day_of_week(day: date) -> int:
    """День недели в формате 0 = воскресенье .. 6 = суббота"""
    return (day.weekday() + 1) % 7


def applies(category: Category, day: date) -> bool:
    """Входит ли категория в план на дату"""
    recurrence = category.recurrence
    if recurrence is Recurrence.DAILY:
        return True
    if recurrence in (Recurrence.WEEKLY, Recurrence.SPECIAL):
        return category.weekly_day is not None and day_of_week(day) == category.weekly_day
    # Неизвестная повторяемость никогда не срабатывает
    return False


def window(category: Category, subcategory: Optional[Subcategory] = None) -> TimeWindow:
    """Окно времени: поля подкатегории перекрывают поля категории"""
    start = category.default_start
    end = category.default_end
    if subcategory is not None:
        start = subcategory.default_start or start
        end = subcategory.default_end or end
    return TimeWindow(start=start, end=end)
