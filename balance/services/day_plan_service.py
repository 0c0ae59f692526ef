# services/day_plan_service.py

import logging
from datetime import date, timedelta
from typing import List, Optional, Set, Tuple

from balance.models import Category, DayItem, DayPlan, Subcategory
from balance.services.data_service import DataService
from balance.services.recurrence import applies, window
from balance.utils.datetime_utils import DateLike, date_range, format_date, to_date

logger = logging.getLogger(__name__)


class DayPlanGenerator:
    """Материализация шаблонов в план конкретного дня"""

    def __init__(self, store: DataService):
        self.store = store

    def generate(self, day: DateLike) -> DayPlan:
        """План на дату; существующий план возвращается без изменений"""
        day = to_date(day)
        existing = self.store.get_day_plan(day)
        if existing is not None:
            return existing

        items = self._items_from_templates(day)
        if self.store.settings.special_roll_over:
            items.extend(self._rolled_over_specials(day, items))

        plan = DayPlan(date=format_date(day), items=items)
        self.store.put_day_plan(plan)
        logger.info(f"📅 Сгенерирован план на {plan.date}: {len(items)} задач")
        return plan

    def generate_range(self, start: DateLike, end: DateLike) -> List[DayPlan]:
        return [self.generate(day) for day in date_range(to_date(start), to_date(end))]

    def _items_from_templates(self, day: date) -> List[DayItem]:
        items = []
        for category in self.store.categories:
            if self.store.get_pillar(category.pillar_id) is None:
                logger.debug(f"Категория {category.id} ссылается на удаленный столп, пропускаем")
                continue
            if not applies(category, day):
                continue

            subcategories = self.store.subcategories_by_category(category.id)
            if subcategories:
                items.extend(self._make_item(day, category, sub) for sub in subcategories)
            else:
                items.append(self._make_item(day, category))
        return items

    @staticmethod
    def _make_item(day: date, category: Category, subcategory: Optional[Subcategory] = None) -> DayItem:
        time_window = window(category, subcategory)
        return DayItem(
            date=format_date(day),
            pillar_id=category.pillar_id,
            category_id=category.id,
            subcategory_id=subcategory.id if subcategory else None,
            title=subcategory.name if subcategory else category.name,
            start=time_window.start,
            end=time_window.end,
            is_special=category.is_special
        )

    def _rolled_over_specials(self, day: date, items: List[DayItem]) -> List[DayItem]:
        """Невыполненные особые задачи вчерашнего дня переносятся в новый план"""
        previous = self.store.get_day_plan(day - timedelta(days=1))
        if previous is None:
            return []

        taken: Set[Tuple[str, Optional[str]]] = {(i.category_id, i.subcategory_id) for i in items}
        carried = []
        for item in previous.items:
            key = (item.category_id, item.subcategory_id)
            if not (item.is_pending and item.is_special) or key in taken:
                continue
            carried.append(DayItem(
                date=format_date(day),
                pillar_id=item.pillar_id,
                category_id=item.category_id,
                subcategory_id=item.subcategory_id,
                title=item.title,
                start=item.start,
                end=item.end,
                is_special=True
            ))
            taken.add(key)

        if carried:
            logger.info(f"🔁 Перенесено особых задач на {format_date(day)}: {len(carried)}")
        return carried
