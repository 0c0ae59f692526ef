# database/manager.py

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Hashable

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Возможность загрузки/сохранения полного снапшота"""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Снапшот или None, если данных нет"""

    @abstractmethod
    def save(self, snapshot: Dict[str, Any]) -> bool:
        """True при успешной записи"""

    def revision(self) -> Optional[Hashable]:
        """Метка версии данных; меняется при каждой записи, в том числе чужой.

        None - хранилище не умеет отслеживать внешние изменения.
        """
        return None


class MemoryStorage(StorageBackend):
    """Хранилище в памяти (тесты, временные сессии)"""

    def __init__(self, snapshot: Optional[Dict[str, Any]] = None):
        self._snapshot = copy.deepcopy(snapshot) if snapshot is not None else None
        self.save_count = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: Dict[str, Any]) -> bool:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1
        return True

    def revision(self) -> Optional[Hashable]:
        return self.save_count


class JsonFileStorage(StorageBackend):
    """Снапшот в JSON файле с атомарной записью"""

    def __init__(self, path: Path, backup_dir: Optional[Path] = None):
        self.path = Path(path)
        self.backup_dir = Path(backup_dir) if backup_dir else self.path.parent / "backups"

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            logger.info(f"📂 Файл данных {self.path} не найден, начинаем с шаблонов по умолчанию")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"❌ Ошибка парсинга JSON {self.path}: {e}")
            self._move_corrupted()
            return None
        except OSError as e:
            logger.error(f"❌ Ошибка чтения {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("⚠️ Неверный формат файла данных")
            self._move_corrupted()
            return None

        logger.info(f"📂 Снапшот загружен из {self.path}")
        return data

    def save(self, snapshot: Dict[str, Any]) -> bool:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"❌ Ошибка сохранения снапшота в {self.path}: {e}")
            return False

    def revision(self) -> Optional[Hashable]:
        """Inode, mtime и размер файла: os.replace при каждой записи дает новый inode"""
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def _move_corrupted(self):
        """Перенос поврежденного файла в бэкапы"""
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_name = f"corrupted_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
            backup_path = self.backup_dir / backup_name
            self.path.replace(backup_path)
            logger.warning(f"🔄 Поврежденный файл перемещен в {backup_path}")
        except OSError as e:
            logger.error(f"❌ Не удалось перенести поврежденный файл: {e}")
