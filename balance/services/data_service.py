# services/data_service.py

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional, Any, Iterable

from pydantic import ValidationError as SchemaValidationError

from balance.database import StorageBackend, MemoryStorage
from balance.models import (
    Category,
    DayItem,
    DayPlan,
    LogEntry,
    Pillar,
    Settings,
    Subcategory,
    ValidationError,
    default_categories,
    default_pillars,
)
from balance.models.snapshot import SnapshotSchema
from balance.utils.datetime_utils import Clock, format_date, to_date

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class DataService:
    """
    Хранилище доменного состояния Balance

    Возможности:
    - Шаблоны: столпы, категории, подкатегории (CRUD с каскадным удалением)
    - Планы дней и журнал выполнений
    - Настройки с единой точкой изменения
    - Сериализация в снапшот и атомарное восстановление из него
    - Сохранение через внедренный StorageBackend после каждой мутации
    """

    def __init__(self, storage: Optional[StorageBackend] = None, clock: Optional[Clock] = None):
        self.storage = storage or MemoryStorage()
        self.clock = clock or Clock()

        self.pillars: List[Pillar] = []
        self.categories: List[Category] = []
        self.subcategories: List[Subcategory] = []
        self.day_plans: Dict[str, DayPlan] = {}
        self.logs: List[LogEntry] = []
        self.settings = Settings()

        self._last_timestamp = 0
        # Версия снапшота в хранилище, с которой совпадает состояние в памяти
        self._revision = None

        # Метрики
        self.total_saves = 0
        self.failed_saves = 0
        self.reloads = 0

        self._reset_state()

    # ===== ЗАГРУЗКА И СОХРАНЕНИЕ =====

    def load(self) -> bool:
        """Загрузка снапшота; при ошибке остаются шаблоны по умолчанию"""
        try:
            data = self.storage.load()
        except Exception as e:
            logger.error(f"❌ Ошибка загрузки данных: {e}")
            data = None
        self._revision = self.storage.revision()

        if not data:
            self._reset_state()
            return False

        if not self.apply_snapshot(data):
            logger.warning("⚠️ Снапшот не прошел валидацию, используем шаблоны по умолчанию")
            self._reset_state()
            return False

        logger.info(
            f"📂 Загружено: {len(self.pillars)} столпов, {len(self.categories)} категорий, "
            f"{len(self.day_plans)} планов, {len(self.logs)} записей журнала"
        )
        return True

    def save(self) -> bool:
        """Сохранение снапшота; ошибки только логируются"""
        self.total_saves += 1
        try:
            ok = self.storage.save(self.to_snapshot())
        except Exception as e:
            logger.error(f"❌ Ошибка сохранения данных: {e}")
            ok = False

        if ok:
            self._revision = self.storage.revision()
        else:
            self.failed_saves += 1
        return ok

    def refresh(self) -> bool:
        """Перечитать снапшот, если его записал другой процесс.

        Вызывается перед каждой операцией долгоживущего процесса, чтобы
        не действовать по устаревшим pending задачам и не затереть чужие
        изменения следующим сохранением. Нечитаемый снапшот не трогает
        текущее состояние.
        """
        revision = self.storage.revision()
        if revision is None or revision == self._revision:
            return False

        self._revision = revision
        try:
            data = self.storage.load()
        except Exception as e:
            logger.error(f"❌ Ошибка перечитывания данных: {e}")
            return False

        if not data or not self.apply_snapshot(data):
            logger.warning("⚠️ Измененный снапшот не прочитан, остаемся на текущем состоянии")
            return False

        self.reloads += 1
        logger.info(f"🔄 Данные изменены другим процессом, перечитано {len(self.logs)} записей журнала")
        return True

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "pillars": [p.to_dict() for p in self.pillars],
            "categories": [c.to_dict() for c in self.categories],
            "subcategories": [s.to_dict() for s in self.subcategories],
            "dayPlans": {key: plan.to_dict() for key, plan in sorted(self.day_plans.items())},
            "logs": [entry.to_dict() for entry in self.logs],
            "settings": self.settings.to_dict(),
        }

    def apply_snapshot(self, data: Dict[str, Any]) -> bool:
        """Заменяет присутствующие в снапшоте коллекции целиком.

        Сначала валидируется и строится всё, потом присваивается; при любой
        ошибке текущее состояние не меняется.
        """
        try:
            schema = SnapshotSchema.model_validate(data)
            sections = schema.present_sections()
            if not sections:
                raise ValidationError("снапшот не содержит ни одной коллекции")

            dumped = schema.model_dump(mode="json", exclude_none=True)
            built: Dict[str, Any] = {}
            if "pillars" in sections:
                built["pillars"] = [Pillar.from_dict(p) for p in dumped["pillars"]]
            if "categories" in sections:
                built["categories"] = [Category.from_dict(c) for c in dumped["categories"]]
            if "subcategories" in sections:
                built["subcategories"] = [Subcategory.from_dict(s) for s in dumped["subcategories"]]
            if "dayPlans" in sections:
                built["day_plans"] = {
                    key: DayPlan.from_dict(plan) for key, plan in dumped["dayPlans"].items()
                }
            if "logs" in sections:
                built["logs"] = [LogEntry.from_dict(entry) for entry in dumped["logs"]]
            if "settings" in sections:
                built["settings"] = Settings.from_dict(dumped["settings"])
        except (SchemaValidationError, ValidationError, KeyError, TypeError, ValueError) as e:
            logger.error(f"❌ Снапшот отклонен: {e}")
            return False

        for name, value in built.items():
            setattr(self, name, value)

        self._last_timestamp = max([entry.timestamp for entry in self.logs] + [self._last_timestamp])
        return True

    def reset(self):
        """Полный сброс к шаблонам по умолчанию"""
        self._reset_state()
        self.save()
        logger.info("🧹 Данные сброшены к значениям по умолчанию")

    def _reset_state(self):
        self.pillars = default_pillars()
        self.categories = default_categories()
        self.subcategories = []
        self.day_plans = {}
        self.logs = []
        self.settings = Settings()
        self._last_timestamp = 0

    # ===== СТОЛПЫ =====

    def get_pillar(self, pillar_id: str) -> Optional[Pillar]:
        return next((p for p in self.pillars if p.id == pillar_id), None)

    def add_pillar(self, name: str, color: str = "#9e9e9e", order: Optional[int] = None) -> Optional[Pillar]:
        try:
            pillar = Pillar(name=name, color=color, order=len(self.pillars) if order is None else order)
        except ValidationError as e:
            logger.error(f"❌ Неверные данные столпа: {e}")
            return None

        self.pillars.append(pillar)
        self.save()
        return pillar

    def update_pillar(self, pillar_id: str, **changes) -> bool:
        return self._update_in(self.pillars, pillar_id, changes, "столп")

    def delete_pillar(self, pillar_id: str) -> bool:
        """Удаление столпа вместе с его категориями и подкатегориями"""
        if self.get_pillar(pillar_id) is None:
            logger.warning(f"⚠️ Столп {pillar_id} не найден")
            return False

        removed_categories = {c.id for c in self.categories if c.pillar_id == pillar_id}
        self.pillars = [p for p in self.pillars if p.id != pillar_id]
        self.categories = [c for c in self.categories if c.pillar_id != pillar_id]
        self.subcategories = [s for s in self.subcategories if s.category_id not in removed_categories]
        self.save()
        return True

    # ===== КАТЕГОРИИ =====

    def get_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def categories_by_pillar(self, pillar_id: str) -> List[Category]:
        return [c for c in self.categories if c.pillar_id == pillar_id]

    def add_category(self, pillar_id: str, name: str, **fields) -> Optional[Category]:
        if self.get_pillar(pillar_id) is None:
            logger.error(f"❌ Нельзя добавить категорию: столп {pillar_id} не существует")
            return None
        try:
            category = Category(pillar_id=pillar_id, name=name, **fields)
        except (ValidationError, TypeError) as e:
            logger.error(f"❌ Неверные данные категории: {e}")
            return None

        self.categories.append(category)
        self.save()
        return category

    def update_category(self, category_id: str, **changes) -> bool:
        if "pillar_id" in changes and self.get_pillar(changes["pillar_id"]) is None:
            logger.error(f"❌ Столп {changes['pillar_id']} не существует")
            return False
        return self._update_in(self.categories, category_id, changes, "категория")

    def delete_category(self, category_id: str) -> bool:
        if self.get_category(category_id) is None:
            logger.warning(f"⚠️ Категория {category_id} не найдена")
            return False

        self.categories = [c for c in self.categories if c.id != category_id]
        self.subcategories = [s for s in self.subcategories if s.category_id != category_id]
        self.save()
        return True

    # ===== ПОДКАТЕГОРИИ =====

    def get_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        return next((s for s in self.subcategories if s.id == subcategory_id), None)

    def subcategories_by_category(self, category_id: str) -> List[Subcategory]:
        return [s for s in self.subcategories if s.category_id == category_id]

    def add_subcategory(self, category_id: str, name: str, **fields) -> Optional[Subcategory]:
        if self.get_category(category_id) is None:
            logger.error(f"❌ Нельзя добавить подкатегорию: категория {category_id} не существует")
            return None
        try:
            subcategory = Subcategory(category_id=category_id, name=name, **fields)
        except (ValidationError, TypeError) as e:
            logger.error(f"❌ Неверные данные подкатегории: {e}")
            return None

        self.subcategories.append(subcategory)
        self.save()
        return subcategory

    def update_subcategory(self, subcategory_id: str, **changes) -> bool:
        return self._update_in(self.subcategories, subcategory_id, changes, "подкатегория")

    def delete_subcategory(self, subcategory_id: str) -> bool:
        if self.get_subcategory(subcategory_id) is None:
            logger.warning(f"⚠️ Подкатегория {subcategory_id} не найдена")
            return False

        self.subcategories = [s for s in self.subcategories if s.id != subcategory_id]
        self.save()
        return True

    def _update_in(self, collection: list, entity_id: str, changes: Dict[str, Any], label: str) -> bool:
        """Обновить сущность по id; невалидные изменения не применяются"""
        if "id" in changes:
            logger.error(f"❌ Нельзя менять id ({label} {entity_id})")
            return False

        for index, entity in enumerate(collection):
            if entity.id != entity_id:
                continue
            try:
                collection[index] = replace(entity, **changes)
            except (ValidationError, TypeError) as e:
                logger.error(f"❌ Неверное обновление ({label} {entity_id}): {e}")
                return False
            self.save()
            return True

        logger.warning(f"⚠️ Не найдено: {label} {entity_id}")
        return False

    # ===== ПЛАНЫ ДНЕЙ =====

    def get_day_plan(self, day) -> Optional[DayPlan]:
        return self.day_plans.get(format_date(to_date(day)))

    def has_day_plan(self, day) -> bool:
        return format_date(to_date(day)) in self.day_plans

    def put_day_plan(self, plan: DayPlan):
        self.day_plans[plan.date] = plan
        self.save()

    def find_item(self, day, item_id: str) -> Optional[DayItem]:
        plan = self.get_day_plan(day)
        return plan.find(item_id) if plan else None

    def find_item_anywhere(self, item_id: str) -> Optional[DayItem]:
        for plan in self.day_plans.values():
            item = plan.find(item_id)
            if item is not None:
                return item
        return None

    def all_items(self) -> Iterable[DayItem]:
        for plan in self.day_plans.values():
            yield from plan.items

    def pending_items(self, from_date: Optional[date] = None) -> List[DayItem]:
        """Все pending задачи, опционально начиная с даты"""
        cutoff = format_date(from_date) if from_date else None
        return [
            item for item in self.all_items()
            if item.is_pending and (cutoff is None or item.date >= cutoff)
        ]

    # ===== ЖУРНАЛ =====

    def next_timestamp(self) -> int:
        """Строго возрастающая метка времени в миллисекундах"""
        self._last_timestamp = max(self.clock.timestamp_ms(), self._last_timestamp + 1)
        return self._last_timestamp

    def append_log(self, entry: LogEntry):
        self.logs.append(entry)

    def remove_log(self, entry_id: str) -> Optional[LogEntry]:
        for index, entry in enumerate(self.logs):
            if entry.id == entry_id:
                return self.logs.pop(index)
        return None

    # ===== НАСТРОЙКИ =====

    def update_settings(self, **changes) -> bool:
        """Единая точка изменения настроек"""
        try:
            self.settings = self.settings.updated(**changes)
        except (ValidationError, TypeError) as e:
            logger.error(f"❌ Неверное обновление настроек: {e}")
            return False

        self.save()
        return True

    def complete_onboarding(self, user_name: str, pillars: List[Dict[str, Any]]) -> bool:
        """Первый запуск: имя пользователя и собственные столпы вместо шаблонов"""
        try:
            new_pillars = [
                Pillar(name=p["name"], color=p.get("color", "#9e9e9e"), order=p.get("order", index))
                for index, p in enumerate(pillars)
            ]
            settings = self.settings.updated(user_name=user_name, is_first_time=False)
        except (ValidationError, KeyError, TypeError) as e:
            logger.error(f"❌ Ошибка онбординга: {e}")
            return False

        self.pillars = new_pillars
        self.categories = []
        self.subcategories = []
        self.settings = settings
        self.save()
        logger.info(f"👋 Онбординг завершен для {user_name}: {len(new_pillars)} столпов")
        return True

    def get_service_metrics(self) -> Dict[str, Any]:
        return {
            "pillars": len(self.pillars),
            "categories": len(self.categories),
            "subcategories": len(self.subcategories),
            "day_plans": len(self.day_plans),
            "logs": len(self.logs),
            "total_saves": self.total_saves,
            "failed_saves": self.failed_saves,
            "reloads": self.reloads,
        }
