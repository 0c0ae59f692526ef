import re
from datetime import date

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(TIME_RE.match(value))


def is_valid_date(date_str: str) -> bool:
    if not isinstance(date_str, str) or not DATE_RE.match(date_str):
        return False
    try:
        date.fromisoformat(date_str)
    except ValueError:
        return False
    return True


def is_valid_color(value: str) -> bool:
    return isinstance(value, str) and bool(COLOR_RE.match(value))


def is_valid_weekday(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6

