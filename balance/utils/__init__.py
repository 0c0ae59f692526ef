# utils/__init__.py

from .datetime_utils import Clock
from .logger import configure_logging

__all__ = ['Clock', 'configure_logging']
