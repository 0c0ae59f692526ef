#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Balance - точка входа

Консольный интерфейс к движку: демон напоминаний, просмотр плана дня,
выполнение задач, статистика, экспорт и импорт данных.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from balance.config import config
from balance.database import JsonFileStorage
from balance.models import Rating, TimePeriod
from balance.services import BalanceEngine, export_logs_to_csv, export_to_json
from balance.utils import configure_logging

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    "pending": "⬜",
    "done": "✅",
    "skipped": "⏭️",
}


def build_engine() -> BalanceEngine:
    config.ensure_directories()
    storage = JsonFileStorage(config.storage.path, backup_dir=config.storage.backup_dir)
    engine = BalanceEngine(storage=storage, config=config)
    engine.initialize()
    return engine


# ===== ДЕМОН НАПОМИНАНИЙ =====

async def run_daemon(engine: BalanceEngine):
    """Работает до SIGINT/SIGTERM; в полночь генерирует план нового дня.

    Остальные команды пишут в тот же файл из своих процессов, поэтому
    демон периодически перечитывает его (и перед каждой своей операцией).
    """
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: остается KeyboardInterrupt
            pass

    async def roll_day():
        plan = engine.today()
        logger.info(f"🌅 Новый день {plan.date}: {len(plan.items)} задач")

    engine.scheduler.scheduler.add_job(
        roll_day,
        CronTrigger(hour=0, minute=0, second=5, timezone=engine.clock.tz),
        id="daily-plan",
        replace_existing=True
    )

    async def sync_storage():
        engine.refresh()

    engine.scheduler.scheduler.add_job(
        sync_storage,
        IntervalTrigger(seconds=engine.config.engine.sync_interval_seconds),
        id="storage-sync",
        replace_existing=True
    )

    engine.start()
    if engine.notification_prompt_needed():
        logger.warning("⚠️ Напоминания недоступны на этой платформе, задачи придется проверять вручную")
        engine.update_settings(has_seen_notification_prompt=True)
    engine.resync()

    logger.info("🚀 Демон напоминаний Balance запущен")
    try:
        await stop_event.wait()
    finally:
        await engine.close()


# ===== КОМАНДЫ =====

def cmd_run(engine: BalanceEngine, args) -> int:
    if args.enable_notifications:
        asyncio.run(_enable_and_run(engine))
    else:
        asyncio.run(run_daemon(engine))
    return 0


async def _enable_and_run(engine: BalanceEngine):
    if not await engine.set_notifications_enabled(True):
        logger.warning("⚠️ Не удалось включить напоминания: нет разрешения")
    await run_daemon(engine)


def cmd_plan(engine: BalanceEngine, args) -> int:
    plan = engine.generate(args.date) if args.date else engine.today()
    if args.json:
        print(json.dumps(plan.to_dict(), ensure_ascii=False, indent=2))
        return 0

    print(f"📅 {plan.date}")
    if not plan.items:
        print("   Задач нет")
    for item in sorted(plan.items, key=lambda i: (i.start or "99:99", i.title)):
        window = f"{item.start}-{item.end}" if item.start and item.end else (item.start or "--:--")
        special = " ⭐" if item.is_special else ""
        print(f"   {STATUS_ICONS[item.status.value]} {window:<11} {item.title}{special}  [{item.id}]")
    return 0


def cmd_complete(engine: BalanceEngine, args) -> int:
    day = args.date or engine.clock.today()
    receipt = engine.complete(day, args.item_id, args.rating, args.minutes)
    if receipt is None:
        print("❌ Задачу не удалось отметить")
        return 1
    print(f"✅ {receipt.status.value}: {receipt.rating.value}, {receipt.minutes} мин")
    return 0


def cmd_add(engine: BalanceEngine, args) -> int:
    day = args.date or engine.clock.today()
    item = engine.add_item(
        day, args.title, args.pillar, args.category,
        start=args.start, end=args.end, is_special=args.special
    )
    if item is None:
        print("❌ Задачу не удалось добавить")
        return 1
    print(f"➕ {item.title} [{item.id}]")
    return 0


def cmd_stats(engine: BalanceEngine, args) -> int:
    summary = engine.summary(TimePeriod(args.period))
    if args.json:
        print(json.dumps(asdict(summary), ensure_ascii=False, indent=2))
        return 0

    print(f"📊 {summary.start} .. {summary.end}")
    print(f"   Выполнено: {summary.completed_tasks}/{summary.total_tasks} ({summary.completion_rate:.0%})")
    print(f"   Качество: {summary.quality_score:.0%}")
    print(f"   Время: {summary.total_minutes} мин")
    print(f"   Серия: {summary.streak} дн.")
    for stats in summary.pillar_stats:
        print(f"   • {stats.name}: {stats.completed}/{stats.total}, {stats.minutes} мин")
    return 0


def cmd_export(engine: BalanceEngine, args) -> int:
    if args.csv:
        path = export_logs_to_csv(engine.store, Path(args.csv))
        if path is None:
            print("Журнал пуст, экспортировать нечего")
            return 1
    else:
        path = export_to_json(engine.store, config.storage.export_dir)
    print(f"💾 Экспортировано: {path}")
    return 0


def cmd_import(engine: BalanceEngine, args) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    if not engine.import_data(text):
        print("❌ Импорт отклонен, данные не изменены")
        return 1
    print("📥 Импорт завершен")
    return 0


def cmd_health(engine: BalanceEngine, args) -> int:
    print(json.dumps(engine.health_check(), ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="balance", description="Balance - планировщик жизненного баланса")
    parser.add_argument('--dev', action='store_true', help='Режим разработки (DEBUG логи)')
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Демон напоминаний")
    run.add_argument('--enable-notifications', action='store_true', help='Включить напоминания')
    run.set_defaults(handler=cmd_run)

    plan = commands.add_parser("plan", help="План дня")
    plan.add_argument('--date', help='Дата YYYY-MM-DD (по умолчанию сегодня)')
    plan.add_argument('--json', action='store_true', help='Вывод в формате JSON')
    plan.set_defaults(handler=cmd_plan)

    complete = commands.add_parser("complete", help="Отметить задачу")
    complete.add_argument('item_id')
    complete.add_argument('rating', choices=[r.value for r in Rating])
    complete.add_argument('--minutes', type=int)
    complete.add_argument('--date')
    complete.set_defaults(handler=cmd_complete)

    add = commands.add_parser("add", help="Разовая задача")
    add.add_argument('title')
    add.add_argument('--pillar', required=True)
    add.add_argument('--category', required=True)
    add.add_argument('--start')
    add.add_argument('--end')
    add.add_argument('--special', action='store_true')
    add.add_argument('--date')
    add.set_defaults(handler=cmd_add)

    stats = commands.add_parser("stats", help="Статистика")
    stats.add_argument('--period', choices=[p.value for p in TimePeriod], default=TimePeriod.WEEKLY.value)
    stats.add_argument('--json', action='store_true')
    stats.set_defaults(handler=cmd_stats)

    export = commands.add_parser("export", help="Экспорт данных")
    export.add_argument('--csv', help='Экспорт журнала в CSV файл')
    export.set_defaults(handler=cmd_export)

    import_ = commands.add_parser("import", help="Импорт снапшота")
    import_.add_argument('file')
    import_.set_defaults(handler=cmd_import)

    health = commands.add_parser("health", help="Состояние движка")
    health.set_defaults(handler=cmd_health)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция"""
    args = build_parser().parse_args(argv)

    configure_logging(config)
    if args.dev:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.info("🔧 Режим разработки активирован")

    try:
        engine = build_engine()
        return args.handler(engine, args)
    except KeyboardInterrupt:
        logger.info("👋 Остановлено пользователем")
        return 0
    except Exception as e:
        logger.error(f"💥 Критическая ошибка: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
