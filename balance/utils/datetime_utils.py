# utils/datetime_utils.py

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz

MINUTES_PER_DAY = 24 * 60

DateLike = Union[date, str]


def get_timezone(name: str = "UTC"):
    return pytz.timezone(name)


class Clock:
    """Источник текущего времени в заданной таймзоне"""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = get_timezone(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def timestamp_ms(self) -> int:
        return int(self.now().timestamp() * 1000)


def to_date(value: DateLike) -> date:
    """Приводит ISO строку или date к date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def format_date(day: date) -> str:
    return day.isoformat()


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def hhmm_to_minutes(value: str) -> int:
    t = parse_hhmm(value)
    return t.hour * 60 + t.minute


def minutes_between(start: Optional[str], end: Optional[str]) -> Optional[int]:
    """Длительность окна в минутах; окно через полночь заворачивается"""
    if not start or not end:
        return None
    return (hhmm_to_minutes(end) - hhmm_to_minutes(start)) % MINUTES_PER_DAY


def localize(day: date, hhmm: str, tz) -> datetime:
    """Дата + время HH:MM как aware datetime в таймзоне tz"""
    return tz.localize(datetime.combine(day, parse_hhmm(hhmm)))


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def date_range(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def start_of_week(day: date) -> date:
    """Понедельник недели, в которой лежит day"""
    return day - timedelta(days=day.weekday())
