# services/__init__.py

"""
Модуль сервисов Balance

Хранилище, генерация планов, жизненный цикл задач, напоминания и аналитика.
BalanceEngine собирает их вместе и отвечает за порядок
"изменить -> сохранить -> пересинхронизировать напоминания".
"""

from .data_service import DataService
from .day_plan_service import DayPlanGenerator
from .lifecycle_service import CompletionReceipt, TaskLifecycleManager
from .notifiers import Notifier, LogNotifier, TelegramNotifier, UnsupportedNotifier, build_notifier
from .notifications import NotificationScheduler
from .analytics import AnalyticsAggregator, AnalyticsSummary, period_range
from .data_export import export_snapshot, import_snapshot, export_to_json, export_logs_to_csv
from .engine import BalanceEngine

__all__ = [
    'BalanceEngine',
    'DataService',
    'DayPlanGenerator',
    'TaskLifecycleManager',
    'CompletionReceipt',
    'NotificationScheduler',
    'Notifier',
    'LogNotifier',
    'TelegramNotifier',
    'UnsupportedNotifier',
    'build_notifier',
    'AnalyticsAggregator',
    'AnalyticsSummary',
    'period_range',
    'export_snapshot',
    'import_snapshot',
    'export_to_json',
    'export_logs_to_csv',
]
