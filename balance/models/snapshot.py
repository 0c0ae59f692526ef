# models/snapshot.py
"""
Pydantic-схема полного снапшота (экспорт/импорт).

Импорт сначала целиком проходит эту схему и только потом превращается
в доменные dataclass-модели. Любая ошибка означает отказ без изменений.
"""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from balance.models.enums import ChartType, Rating, Recurrence, TaskStatus
from balance.utils.validators import is_valid_date, is_valid_time

HHMM = Optional[str]


def _check_time(value: HHMM) -> HHMM:
    if value in (None, ""):
        return None
    if not is_valid_time(value):
        raise ValueError(f"время должно быть в формате HH:MM: {value!r}")
    return value


def _check_date(value: str) -> str:
    if not is_valid_date(value):
        raise ValueError(f"дата должна быть в формате YYYY-MM-DD: {value!r}")
    return value


def _check_rating(value):
    if value is None:
        return None
    rating = Rating.parse(value)
    if rating is None:
        raise ValueError(f"неизвестная оценка: {value!r}")
    return rating.value


class SnapshotModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PillarSchema(SnapshotModel):
    id: str
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#9e9e9e", pattern=r"^#[0-9a-fA-F]{6}$")
    order: int = 0


class CategorySchema(SnapshotModel):
    id: str
    pillarId: str
    name: str = Field(min_length=1, max_length=100)
    recurrence: Recurrence = Recurrence.DAILY
    weeklyDay: Optional[int] = Field(default=None, ge=0, le=6)
    defaultStart: HHMM = None
    defaultEnd: HHMM = None
    isSpecial: bool = False

    @field_validator("defaultStart", "defaultEnd")
    @classmethod
    def check_times(cls, value):
        return _check_time(value)

    @model_validator(mode="after")
    def weekly_day_required(self):
        if self.recurrence in (Recurrence.WEEKLY, Recurrence.SPECIAL) and self.weeklyDay is None:
            raise ValueError(f"weeklyDay обязателен для категории {self.id}")
        return self


class SubcategorySchema(SnapshotModel):
    id: str
    categoryId: str
    name: str = Field(min_length=1, max_length=100)
    defaultStart: HHMM = None
    defaultEnd: HHMM = None

    @field_validator("defaultStart", "defaultEnd")
    @classmethod
    def check_times(cls, value):
        return _check_time(value)


class DayItemSchema(SnapshotModel):
    id: str
    date: str
    pillarId: str
    categoryId: str
    subcategoryId: Optional[str] = None
    title: str = Field(min_length=1)
    start: HHMM = None
    end: HHMM = None
    minutes: Optional[int] = Field(default=None, ge=0)
    status: TaskStatus = TaskStatus.PENDING
    rating: Optional[Union[str, int]] = None
    isSpecial: bool = False

    @field_validator("date")
    @classmethod
    def check_date(cls, value):
        return _check_date(value)

    @field_validator("start", "end")
    @classmethod
    def check_times(cls, value):
        return _check_time(value)

    @field_validator("rating")
    @classmethod
    def check_rating(cls, value):
        return _check_rating(value)


class DayPlanSchema(SnapshotModel):
    date: str
    items: List[DayItemSchema] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def check_date(cls, value):
        return _check_date(value)


class LogEntrySchema(SnapshotModel):
    id: str
    date: str
    pillarId: str
    categoryId: str
    subcategoryId: Optional[str] = None
    rating: Union[str, int]
    minutes: int = Field(default=0, ge=0)
    timestamp: int

    @field_validator("date")
    @classmethod
    def check_date(cls, value):
        return _check_date(value)

    @field_validator("rating")
    @classmethod
    def check_rating(cls, value):
        return _check_rating(value)


class SettingsSchema(SnapshotModel):
    userName: str = Field(default="User", min_length=1, max_length=50)
    notificationsEnabled: bool = False
    specialRollOver: bool = True
    chartType: ChartType = ChartType.DONUT
    hapticFeedback: bool = True
    isFirstTime: bool = True
    hasSeenNotificationPrompt: bool = False


class SnapshotSchema(SnapshotModel):
    """Полный снапшот; отсутствующая коллекция остаётся как есть при импорте"""
    pillars: Optional[List[PillarSchema]] = None
    categories: Optional[List[CategorySchema]] = None
    subcategories: Optional[List[SubcategorySchema]] = None
    dayPlans: Optional[Dict[str, DayPlanSchema]] = None
    logs: Optional[List[LogEntrySchema]] = None
    settings: Optional[SettingsSchema] = None

    @model_validator(mode="after")
    def plan_keys_match_dates(self):
        for key, plan in (self.dayPlans or {}).items():
            if key != plan.date:
                raise ValueError(f"ключ плана {key} не совпадает с его датой {plan.date}")
        return self

    def present_sections(self) -> List[str]:
        return [name for name in type(self).model_fields if getattr(self, name) is not None]
