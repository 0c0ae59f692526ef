# models/base.py

import uuid
from typing import Optional

from balance.utils.validators import is_valid_date, is_valid_time


class ValidationError(Exception):
    """Ошибка валидации данных"""
    pass


def new_id() -> str:
    return str(uuid.uuid4())


def validate_text(text: str, min_length: int = 1, max_length: int = 200, field_name: str = "text") -> str:
    """Валидация текстовых полей"""
    if not isinstance(text, str):
        raise ValidationError(f"{field_name} must be a string")

    text = text.strip()
    if len(text) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")

    if len(text) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")

    return text


def validate_time(value: Optional[str], field_name: str = "time") -> Optional[str]:
    """HH:MM или None"""
    if value is None or value == "":
        return None
    if not is_valid_time(value):
        raise ValidationError(f"{field_name} must be HH:MM, got {value!r}")
    return value


def validate_date(value: str, field_name: str = "date") -> str:
    if not is_valid_date(value):
        raise ValidationError(f"{field_name} must be YYYY-MM-DD, got {value!r}")
    return value


def validate_enum_value(value, enum_class: type, field_name: str = "value"):
    """Приводит значение к enum_class"""
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        valid_values = [e.value for e in enum_class]
        raise ValidationError(f"{field_name} must be one of: {valid_values}")
