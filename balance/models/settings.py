# models/settings.py

from dataclasses import dataclass, fields, replace
from typing import Dict, Any

from balance.models.base import ValidationError, validate_enum_value, validate_text
from balance.models.enums import ChartType

# camelCase ключ снапшота -> имя поля
SETTINGS_KEYS = {
    "userName": "user_name",
    "notificationsEnabled": "notifications_enabled",
    "specialRollOver": "special_roll_over",
    "chartType": "chart_type",
    "hapticFeedback": "haptic_feedback",
    "isFirstTime": "is_first_time",
    "hasSeenNotificationPrompt": "has_seen_notification_prompt",
}


@dataclass
class Settings:
    """Настройки пользователя"""
    user_name: str = "User"
    notifications_enabled: bool = False
    special_roll_over: bool = True
    chart_type: ChartType = ChartType.DONUT
    haptic_feedback: bool = True
    is_first_time: bool = True
    has_seen_notification_prompt: bool = False

    def __post_init__(self):
        self.user_name = validate_text(self.user_name, max_length=50, field_name="userName")
        self.chart_type = validate_enum_value(self.chart_type, ChartType, "chartType")
        for name in ("notifications_enabled", "special_roll_over", "haptic_feedback", "is_first_time",
                     "has_seen_notification_prompt"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"{name} must be a boolean")

    def updated(self, **changes) -> "Settings":
        """Новая копия с изменениями; принимает и snake_case, и camelCase ключи"""
        known = {f.name for f in fields(self)}
        normalized = {}
        for key, value in changes.items():
            name = SETTINGS_KEYS.get(key, key)
            if name not in known:
                raise ValidationError(f"unknown setting: {key}")
            normalized[name] = value
        return replace(self, **normalized)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for key, name in SETTINGS_KEYS.items():
            value = getattr(self, name)
            data[key] = value.value if isinstance(value, ChartType) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        kwargs = {name: data[key] for key, name in SETTINGS_KEYS.items() if key in data}
        return cls(**kwargs)
