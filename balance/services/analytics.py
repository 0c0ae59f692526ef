# services/analytics.py
"""
Аналитика по истории: планы дней + журнал выполнений.

Только чтение. Пустой диапазон или пустая история дают нулевые
результаты, исключения наружу не выходят.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from balance.models import DayPlan, Granularity, LogEntry, Pillar, Rating, TimePeriod
from balance.utils.datetime_utils import DateLike, add_days, date_range, format_date, start_of_week, to_date

EPOCH = date(1970, 1, 1)


@dataclass
class PillarShare:
    pillar_id: str
    count: int
    percentage: float


@dataclass
class PillarStats:
    pillar_id: str
    name: str
    color: str
    completed: int
    total: int
    percentage: float
    minutes: int
    quality_minutes: float
    average_rating: float


@dataclass
class PeriodRate:
    start: str
    end: str
    scheduled: int
    completed: int
    rate: float


@dataclass
class TrendPoint:
    date: str
    rate: float
    completed: int


@dataclass
class AnalyticsSummary:
    start: str
    end: str
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: float = 0.0
    quality_score: float = 0.0
    total_minutes: int = 0
    streak: int = 0
    rating_breakdown: Dict[str, int] = field(default_factory=dict)
    pillar_distribution: List[PillarShare] = field(default_factory=list)
    pillar_stats: List[PillarStats] = field(default_factory=list)
    best_period: Optional[PeriodRate] = None
    worst_period: Optional[PeriodRate] = None
    trend: List[TrendPoint] = field(default_factory=list)


def period_range(period: TimePeriod, today: date) -> Tuple[date, date]:
    """Диапазон дат для вкладок Today / Week / Month / All Time"""
    period = TimePeriod(period)
    if period is TimePeriod.DAILY:
        return today, today
    if period is TimePeriod.WEEKLY:
        return start_of_week(today), today
    if period is TimePeriod.MONTHLY:
        return today.replace(day=1), today
    return EPOCH, today


class AnalyticsAggregator:
    """Запросы к истории за произвольный интервал [start, end]"""

    def __init__(self, day_plans: Mapping[str, DayPlan], logs: Sequence[LogEntry],
                 pillars: Sequence[Pillar] = ()):
        self.day_plans = day_plans
        self.logs = logs
        self.pillars = pillars

    # ===== БАЗОВЫЕ ВЫБОРКИ =====

    @staticmethod
    def _keys(start: DateLike, end: DateLike) -> Tuple[str, str]:
        return format_date(to_date(start)), format_date(to_date(end))

    def logs_in_range(self, start: DateLike, end: DateLike) -> List[LogEntry]:
        lo, hi = self._keys(start, end)
        return [entry for entry in self.logs if lo <= entry.date <= hi]

    def scheduled_count(self, start: DateLike, end: DateLike) -> int:
        lo, hi = self._keys(start, end)
        return sum(len(plan.items) for key, plan in self.day_plans.items() if lo <= key <= hi)

    # ===== МЕТРИКИ =====

    def completion_rate(self, start: DateLike, end: DateLike) -> float:
        scheduled = self.scheduled_count(start, end)
        if scheduled == 0:
            return 0.0
        return len(self.logs_in_range(start, end)) / scheduled

    def quality_score(self, start: DateLike, end: DateLike) -> float:
        entries = self.logs_in_range(start, end)
        if not entries:
            return 0.0
        return sum(entry.weight for entry in entries) / len(entries)

    def time_invested(self, start: DateLike, end: DateLike) -> int:
        return sum(entry.minutes for entry in self.logs_in_range(start, end))

    def rating_breakdown(self, start: DateLike, end: DateLike) -> Dict[str, int]:
        counts = Counter(entry.rating for entry in self.logs_in_range(start, end))
        return {rating.value: counts.get(rating, 0) for rating in Rating}

    def pillar_distribution(self, start: DateLike, end: DateLike) -> List[PillarShare]:
        """Доля записей журнала по столпам, только столпы с записями"""
        entries = self.logs_in_range(start, end)
        if not entries:
            return []
        counts = Counter(entry.pillar_id for entry in entries)
        total = len(entries)
        return [
            PillarShare(pillar_id=pillar_id, count=count, percentage=count / total * 100)
            for pillar_id, count in counts.most_common()
        ]

    def pillar_stats(self, start: DateLike, end: DateLike) -> List[PillarStats]:
        lo, hi = self._keys(start, end)
        entries = self.logs_in_range(start, end)

        scheduled = Counter()
        for key, plan in self.day_plans.items():
            if lo <= key <= hi:
                scheduled.update(item.pillar_id for item in plan.items)

        by_pillar: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            by_pillar[entry.pillar_id].append(entry)

        stats = []
        for pillar in self.pillars:
            pillar_logs = by_pillar.get(pillar.id, [])
            total = scheduled.get(pillar.id, 0)
            completed = len(pillar_logs)
            stats.append(PillarStats(
                pillar_id=pillar.id,
                name=pillar.name,
                color=pillar.color,
                completed=completed,
                total=total,
                percentage=completed / total * 100 if total else 0.0,
                minutes=sum(e.minutes for e in pillar_logs),
                quality_minutes=sum(e.minutes * e.weight for e in pillar_logs),
                average_rating=sum(e.weight for e in pillar_logs) / completed if completed else 0.0
            ))
        return stats

    def streak(self, today: DateLike) -> int:
        """Серия подряд идущих дней с записями, считая назад от сегодня.

        Если сегодня записей еще нет, отсчет идет от последнего дня с записью.
        """
        today_key = format_date(to_date(today))
        days = {entry.date for entry in self.logs if entry.date <= today_key}
        if not days:
            return 0

        current = to_date(today_key) if today_key in days else to_date(max(days))
        streak = 0
        while format_date(current) in days:
            streak += 1
            current -= timedelta(days=1)
        return streak

    def period_rates(self, start: DateLike, end: DateLike,
                     granularity: Granularity = Granularity.DAY) -> List[PeriodRate]:
        """Процент выполнения по подпериодам, только где было что выполнять"""
        start, end = to_date(start), to_date(end)
        if start > end:
            return []

        lo_key, hi_key = self._keys(start, end)
        scheduled_by_day = {
            key: len(plan.items) for key, plan in self.day_plans.items()
            if lo_key <= key <= hi_key and plan.items
        }
        if not scheduled_by_day:
            return []
        completed_by_day = Counter(entry.date for entry in self.logs if lo_key <= entry.date <= hi_key)

        # Не обходим пустые годы для all-time диапазона
        granularity = Granularity(granularity)
        first = to_date(min(scheduled_by_day))
        if granularity is Granularity.WEEK:
            first = start_of_week(first)
        first = max(start, first)
        last = min(end, to_date(max(scheduled_by_day)) + timedelta(days=6))

        rates = []
        for lo, hi in self._split(first, last, granularity):
            keys = [format_date(day) for day in date_range(lo, hi)]
            scheduled = sum(scheduled_by_day.get(key, 0) for key in keys)
            if scheduled == 0:
                continue
            completed = sum(completed_by_day.get(key, 0) for key in keys)
            rates.append(PeriodRate(
                start=format_date(lo),
                end=format_date(hi),
                scheduled=scheduled,
                completed=completed,
                rate=completed / scheduled
            ))
        return rates

    def best_period(self, start: DateLike, end: DateLike,
                    granularity: Granularity = Granularity.DAY) -> Optional[PeriodRate]:
        rates = self.period_rates(start, end, granularity)
        return max(rates, key=lambda r: r.rate) if rates else None

    def worst_period(self, start: DateLike, end: DateLike,
                     granularity: Granularity = Granularity.DAY) -> Optional[PeriodRate]:
        rates = self.period_rates(start, end, granularity)
        return min(rates, key=lambda r: r.rate) if rates else None

    def trend(self, end: DateLike, days: int = 7) -> List[TrendPoint]:
        """Дневная серия за последние days дней, заканчивая end"""
        end = to_date(end)
        points = []
        for day in date_range(add_days(end, -(days - 1)), end):
            key = format_date(day)
            plan = self.day_plans.get(key)
            total = len(plan.items) if plan else 0
            completed = sum(1 for entry in self.logs if entry.date == key)
            points.append(TrendPoint(
                date=key,
                rate=round(completed / total * 100) if total else 0,
                completed=completed
            ))
        return points

    def summary(self, start: DateLike, end: DateLike, today: Optional[DateLike] = None,
                granularity: Granularity = Granularity.DAY) -> AnalyticsSummary:
        lo, hi = self._keys(start, end)
        if lo > hi:
            return AnalyticsSummary(start=lo, end=hi)

        return AnalyticsSummary(
            start=lo,
            end=hi,
            total_tasks=self.scheduled_count(lo, hi),
            completed_tasks=len(self.logs_in_range(lo, hi)),
            completion_rate=self.completion_rate(lo, hi),
            quality_score=self.quality_score(lo, hi),
            total_minutes=self.time_invested(lo, hi),
            streak=self.streak(today if today is not None else hi),
            rating_breakdown=self.rating_breakdown(lo, hi),
            pillar_distribution=self.pillar_distribution(lo, hi),
            pillar_stats=self.pillar_stats(lo, hi),
            best_period=self.best_period(lo, hi, granularity),
            worst_period=self.worst_period(lo, hi, granularity),
            trend=self.trend(hi)
        )

    @staticmethod
    def _split(start: date, end: date, granularity: Granularity):
        if granularity is Granularity.DAY:
            for day in date_range(start, end):
                yield day, day
            return

        lo = start
        while lo <= end:
            hi = min(start_of_week(lo) + timedelta(days=6), end)
            yield lo, hi
            lo = hi + timedelta(days=1)
