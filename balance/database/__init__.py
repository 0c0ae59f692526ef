# database/__init__.py

from .manager import StorageBackend, MemoryStorage, JsonFileStorage

__all__ = ['StorageBackend', 'MemoryStorage', 'JsonFileStorage']
