"""Job scheduler using APScheduler."""

import asyncio
import logging
import signal

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from accumulator.config import Settings
from accumulator.exceptions import PipelineBusy, ShutdownRequested
from accumulator.pipeline import PipelineRunner, run_accumulator
from accumulator.transactions import ShutdownSignal

logger = logging.getLogger(__name__)


def build_trigger(cron_pattern: str, timezone: str = "UTC") -> CronTrigger:
    """CronTrigger from a 5-field crontab, or 6 fields with leading seconds."""
    fields = cron_pattern.split()
    if len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=timezone,
        )
    return CronTrigger.from_crontab(cron_pattern, timezone=timezone)


def accumulate_job(settings: Settings, runner: PipelineRunner, shutdown: ShutdownSignal) -> None:
    """Scheduled run. Failures are logged; the schedule keeps going."""
    if shutdown.is_set():
        logger.info("Shutdown in progress, skipping scheduled run")
        return
    try:
        deposited = asyncio.run(runner.run(lambda: run_accumulator(settings, shutdown)))
        logger.info(f"Deposited {deposited}")
    except (PipelineBusy, ShutdownRequested) as e:
        logger.warning(str(e))
    except Exception as e:
        logger.error(f"Encountered error in main accumulating sequence: {e}", exc_info=True)


def start_scheduler(settings: Settings, shutdown: ShutdownSignal | None = None) -> None:
    """Start the APScheduler with the accumulation job."""
    shutdown = shutdown or ShutdownSignal()
    scheduler = BlockingScheduler(timezone=settings.scheduler.timezone)
    runner = PipelineRunner()

    scheduler.add_job(
        accumulate_job,
        build_trigger(settings.scheduler.cron_pattern, settings.scheduler.timezone),
        args=[settings, runner, shutdown],
        id="accumulate",
        name="Accumulator: claim -> swap -> deposit",
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Registered job: Accumulate ({settings.scheduler.cron_pattern})")

    def _handle_sigterm(signum, frame) -> None:
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        logger.info("✓ Scheduler starting...")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal, shutting down...")
        shutdown.request()
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
