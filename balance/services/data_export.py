# services/data_export.py

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from balance.services.data_service import DataService

logger = logging.getLogger(__name__)

CSV_FIELDS = ["id", "date", "pillarId", "categoryId", "subcategoryId", "rating", "minutes", "timestamp"]


def export_snapshot(store: DataService) -> str:
    """Полный снапшот в JSON строку"""
    return json.dumps(store.to_snapshot(), ensure_ascii=False, indent=2)


def import_snapshot(store: DataService, text: str) -> bool:
    """Импорт снапшота; при любой ошибке состояние не меняется"""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"❌ Импорт отклонен, неверный JSON: {e}")
        return False

    if not isinstance(data, dict):
        logger.error("❌ Импорт отклонен: ожидался JSON объект")
        return False

    if not store.apply_snapshot(data):
        return False

    store.save()
    logger.info(f"📥 Импортировано: {len(store.day_plans)} планов, {len(store.logs)} записей журнала")
    return True


def export_to_json(store: DataService, export_dir: Path) -> Path:
    export_dir.mkdir(parents=True, exist_ok=True)
    filename = export_dir / f"balance_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    with open(filename, "w", encoding="utf-8") as f:
        f.write(export_snapshot(store))
    return filename


def export_logs_to_csv(store: DataService, path: Path) -> Optional[Path]:
    """Журнал выполнений в CSV; пустой журнал не экспортируется"""
    if not store.logs:
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        dict_writer = csv.DictWriter(f, CSV_FIELDS)
        dict_writer.writeheader()
        dict_writer.writerows(entry.to_dict() for entry in store.logs)
    return path
