# models/enums.py

from enum import Enum
from typing import Optional


class Recurrence(Enum):
    """Повторяемость шаблона"""
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIAL = "special"


class TaskStatus(Enum):
    """Статусы задачи дня"""
    PENDING = "pending"
    DONE = "done"
    SKIPPED = "skipped"


class Rating(Enum):
    """Оценка выполнения задачи"""
    WIN = "win"
    GOOD = "good"
    BAD = "bad"
    SKIP = "skip"

    @property
    def weight(self) -> float:
        return RATING_WEIGHTS[self]

    @property
    def resulting_status(self) -> TaskStatus:
        return TaskStatus.SKIPPED if self is Rating.SKIP else TaskStatus.DONE

    @classmethod
    def parse(cls, value) -> Optional["Rating"]:
        """Принимает Rating, строку или legacy-число 5/4/2/0"""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return LEGACY_NUMERIC_RATINGS.get(int(value))
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


RATING_WEIGHTS = {
    Rating.WIN: 1.0,
    Rating.GOOD: 0.7,
    Rating.BAD: 0.3,
    Rating.SKIP: 0.0,
}

# Старые снапшоты хранили оценку числом
LEGACY_NUMERIC_RATINGS = {
    5: Rating.WIN,
    4: Rating.GOOD,
    2: Rating.BAD,
    0: Rating.SKIP,
}


class ChartType(Enum):
    """Тип диаграммы на экране баланса"""
    DONUT = "donut"
    RADAR = "radar"
    BAR = "bar"
    LINE = "line"


class TimePeriod(Enum):
    """Периоды аналитики"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all-time"


class Granularity(Enum):
    """Шаг разбиения периода для лучшего/худшего отрезка"""
    DAY = "day"
    WEEK = "week"
