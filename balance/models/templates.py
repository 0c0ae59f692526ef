# models/templates.py
"""
Шаблоны: столпы, категории и подкатегории.

Из них генератор собирает план дня. Сами шаблоны поведения не имеют.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from balance.models.base import (
    ValidationError,
    new_id,
    validate_enum_value,
    validate_text,
    validate_time,
)
from balance.models.enums import Recurrence
from balance.utils.validators import is_valid_color, is_valid_weekday


@dataclass
class Pillar:
    """Столп - верхнеуровневая сфера жизни"""
    name: str
    color: str = "#9e9e9e"
    order: int = 0
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.name = validate_text(self.name, max_length=50, field_name="name")
        if not is_valid_color(self.color):
            raise ValidationError(f"color must be #rrggbb, got {self.color!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color, "order": self.order}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pillar":
        return cls(
            id=data["id"],
            name=data["name"],
            color=data.get("color", "#9e9e9e"),
            order=data.get("order", 0)
        )


@dataclass
class Category:
    """Повторяющийся шаблон активности внутри столпа"""
    pillar_id: str
    name: str
    recurrence: Recurrence = Recurrence.DAILY
    weekly_day: Optional[int] = None  # 0 = воскресенье .. 6 = суббота
    default_start: Optional[str] = None
    default_end: Optional[str] = None
    is_special: bool = False
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.name = validate_text(self.name, max_length=100, field_name="name")
        self.recurrence = validate_enum_value(self.recurrence, Recurrence, "recurrence")
        self.default_start = validate_time(self.default_start, "defaultStart")
        self.default_end = validate_time(self.default_end, "defaultEnd")

        if self.recurrence in (Recurrence.WEEKLY, Recurrence.SPECIAL):
            if not is_valid_weekday(self.weekly_day):
                raise ValidationError(
                    f"weeklyDay (0-6) is required for {self.recurrence.value} categories"
                )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "pillarId": self.pillar_id,
            "name": self.name,
            "recurrence": self.recurrence.value,
        }
        if self.weekly_day is not None:
            data["weeklyDay"] = self.weekly_day
        if self.default_start:
            data["defaultStart"] = self.default_start
        if self.default_end:
            data["defaultEnd"] = self.default_end
        if self.is_special:
            data["isSpecial"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=data["id"],
            pillar_id=data["pillarId"],
            name=data["name"],
            recurrence=data.get("recurrence", "daily"),
            weekly_day=data.get("weeklyDay"),
            default_start=data.get("defaultStart"),
            default_end=data.get("defaultEnd"),
            is_special=bool(data.get("isSpecial", False))
        )


@dataclass
class Subcategory:
    """Более мелкий шаблон внутри категории"""
    category_id: str
    name: str
    default_start: Optional[str] = None
    default_end: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.name = validate_text(self.name, max_length=100, field_name="name")
        self.default_start = validate_time(self.default_start, "defaultStart")
        self.default_end = validate_time(self.default_end, "defaultEnd")

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "categoryId": self.category_id, "name": self.name}
        if self.default_start:
            data["defaultStart"] = self.default_start
        if self.default_end:
            data["defaultEnd"] = self.default_end
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subcategory":
        return cls(
            id=data["id"],
            category_id=data["categoryId"],
            name=data["name"],
            default_start=data.get("defaultStart"),
            default_end=data.get("defaultEnd")
        )
