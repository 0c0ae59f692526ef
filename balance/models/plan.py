# models/plan.py

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any

from balance.models.base import (
    ValidationError,
    new_id,
    validate_date,
    validate_enum_value,
    validate_text,
    validate_time,
)
from balance.models.enums import Rating, TaskStatus


@dataclass
class DayItem:
    """Одна задача в плане дня"""
    date: str  # ISO формат даты (YYYY-MM-DD)
    pillar_id: str
    category_id: str
    title: str
    subcategory_id: Optional[str] = None
    start: Optional[str] = None  # HH:MM, локальное время
    end: Optional[str] = None
    minutes: Optional[int] = None
    status: TaskStatus = TaskStatus.PENDING
    rating: Optional[Rating] = None
    is_special: bool = False
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.date = validate_date(self.date)
        self.title = validate_text(self.title, field_name="title")
        self.start = validate_time(self.start, "start")
        self.end = validate_time(self.end, "end")
        self.status = validate_enum_value(self.status, TaskStatus, "status")
        if self.rating is not None:
            rating = Rating.parse(self.rating)
            if rating is None:
                raise ValidationError(f"unknown rating: {self.rating!r}")
            self.rating = rating
        if self.minutes is not None:
            if not isinstance(self.minutes, int) or isinstance(self.minutes, bool) or self.minutes < 0:
                raise ValidationError("minutes must be a non-negative integer")

    @property
    def is_pending(self) -> bool:
        return self.status is TaskStatus.PENDING

    @property
    def is_timed(self) -> bool:
        return self.start is not None

    def copy(self, **changes) -> "DayItem":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "pillarId": self.pillar_id,
            "categoryId": self.category_id,
            "title": self.title,
            "status": self.status.value,
        }
        optional = {
            "subcategoryId": self.subcategory_id,
            "start": self.start,
            "end": self.end,
            "minutes": self.minutes,
            "rating": self.rating.value if self.rating else None,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.is_special:
            data["isSpecial"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayItem":
        return cls(
            id=data["id"],
            date=data["date"],
            pillar_id=data["pillarId"],
            category_id=data["categoryId"],
            subcategory_id=data.get("subcategoryId"),
            title=data["title"],
            start=data.get("start"),
            end=data.get("end"),
            minutes=data.get("minutes"),
            status=data.get("status", "pending"),
            rating=data.get("rating"),
            is_special=bool(data.get("isSpecial", False))
        )


@dataclass
class DayPlan:
    """Материализованный список задач на одну дату"""
    date: str
    items: List[DayItem] = field(default_factory=list)

    def __post_init__(self):
        self.date = validate_date(self.date)

    def find(self, item_id: str) -> Optional[DayItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def replace_item(self, item: DayItem) -> bool:
        for index, existing in enumerate(self.items):
            if existing.id == item.id:
                self.items[index] = item
                return True
        return False

    def remove_item(self, item_id: str) -> Optional[DayItem]:
        for index, existing in enumerate(self.items):
            if existing.id == item_id:
                return self.items.pop(index)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "items": [item.to_dict() for item in self.items]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayPlan":
        return cls(
            date=data["date"],
            items=[DayItem.from_dict(item) for item in data.get("items", [])]
        )


@dataclass(frozen=True)
class LogEntry:
    """Неизменяемая запись о выполнении (или пропуске) задачи"""
    date: str
    pillar_id: str
    category_id: str
    rating: Rating
    minutes: int
    timestamp: int  # Unix время в миллисекундах
    subcategory_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        validate_date(self.date)
        rating = Rating.parse(self.rating)
        if rating is None:
            raise ValidationError(f"unknown rating: {self.rating!r}")
        object.__setattr__(self, "rating", rating)
        if not isinstance(self.minutes, int) or isinstance(self.minutes, bool) or self.minutes < 0:
            raise ValidationError("minutes must be a non-negative integer")

    @property
    def weight(self) -> float:
        return self.rating.weight

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "pillarId": self.pillar_id,
            "categoryId": self.category_id,
            "rating": self.rating.value,
            "minutes": self.minutes,
            "timestamp": self.timestamp,
        }
        if self.subcategory_id is not None:
            data["subcategoryId"] = self.subcategory_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            id=data["id"],
            date=data["date"],
            pillar_id=data["pillarId"],
            category_id=data["categoryId"],
            subcategory_id=data.get("subcategoryId"),
            rating=data["rating"],
            minutes=int(data.get("minutes") or 0),
            timestamp=int(data["timestamp"])
        )
