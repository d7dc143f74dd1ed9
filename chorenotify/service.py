"""
Family Chores Notify — Service wiring.

Builds the stores, dispatcher and engine from settings, and drives the two
entry points from a periodic trigger:

- reminders every REMINDER_INTERVAL_MINUTES
- digests every minute (digest times are matched to the minute)

`python main.py --once reminders|digests|stats` runs a single pass instead,
for use from an external cron.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import asdict

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from chorenotify.adapters.resend_dispatcher import ResendEmailDispatcher
from chorenotify.adapters.system_clock import SystemClock
from chorenotify.config import Settings, settings
from chorenotify.core.digest_aggregator import DigestAggregator
from chorenotify.core.policy import SchedulerPolicy
from chorenotify.core.reminder_scheduler import ReminderScheduler
from chorenotify.core.runner import NotificationRunner
from chorenotify.core.stats_reporter import StatsReporter
from chorenotify.data.db import ChoreDB, FamilyDB, PreferencesDB, UserDB

logger = logging.getLogger(__name__)


def build_runner(config: Settings = settings) -> NotificationRunner:
    """Wire SQLite stores, the Resend dispatcher and the system clock into a runner."""
    chores = ChoreDB(config.DATABASE_PATH)
    preferences = PreferencesDB(config.DATABASE_PATH)
    users = UserDB(config.DATABASE_PATH)
    families = FamilyDB(config.DATABASE_PATH)
    dispatcher = ResendEmailDispatcher(
        api_key=config.RESEND_API_KEY,
        sender=config.EMAIL_FROM,
        app_name=config.APP_NAME,
    )
    clock = SystemClock(config.TIMEZONE)
    policy = SchedulerPolicy.from_settings(config)

    return NotificationRunner(
        reminders=ReminderScheduler(
            chores, preferences, users, families, dispatcher, clock, policy,
        ),
        digests=DigestAggregator(chores, preferences, users, families, dispatcher, clock),
        stats=StatsReporter(chores, preferences, clock, policy),
    )


def setup_jobs(
    scheduler: AsyncIOScheduler,
    runner: NotificationRunner,
    config: Settings = settings,
) -> None:
    """Register the periodic reminder and digest jobs."""
    scheduler.add_job(
        runner.run_reminders,
        "interval",
        minutes=config.REMINDER_INTERVAL_MINUTES,
        id="process_due_reminders",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        runner.run_digests,
        "cron",
        minute="*",
        id="process_daily_digests",
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Reminders scheduled every %d min, digests every minute (%s)",
        config.REMINDER_INTERVAL_MINUTES,
        config.TIMEZONE,
    )


async def run_once(runner: NotificationRunner, task: str, family_id: int | None) -> None:
    if task == "reminders":
        summary = await runner.run_reminders(family_id)
        logger.info("%s", summary)
    elif task == "digests":
        summary = await runner.run_digests(family_id)
        logger.info("%s", summary)
    else:
        stats = runner.stats(family_id)
        logger.info("Reminder stats: %s", asdict(stats) if stats else "unavailable")


async def serve(
    runner: NotificationRunner,
    config: Settings = settings,
    stop: asyncio.Event | None = None,
) -> None:
    """Run the periodic jobs until `stop` is set (forever by default)."""
    scheduler = AsyncIOScheduler(timezone=config.TIMEZONE)
    setup_jobs(scheduler, runner, config)
    scheduler.start()
    try:
        await (stop if stop is not None else asyncio.Event()).wait()
    finally:
        scheduler.shutdown(wait=False)


def main(argv: list[str] | None = None, config: Settings = settings) -> None:
    """Entry point: run the scheduler loop, or a single pass with --once."""
    parser = argparse.ArgumentParser(description="Family chores reminder and digest service")
    parser.add_argument("--once", choices=("reminders", "digests", "stats"))
    parser.add_argument("--family-id", type=int, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(config.LOG_LEVEL)
    runner = build_runner(config)

    if args.once:
        asyncio.run(run_once(runner, args.once, args.family_id))
        return

    logger.info("Starting Family Chores notification service...")
    try:
        asyncio.run(serve(runner, config))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Notification service stopped")


if __name__ == "__main__":
    main()
