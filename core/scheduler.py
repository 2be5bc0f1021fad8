# core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from datetime import datetime, timezone

from core.logging_config import logger
from jobs import maintenance_job


_scheduler = None


def run_nightly_maintenance():
    """Runs the maintenance job and logs the outcome; failures never stop the scheduler."""
    start_time = datetime.now(timezone.utc)
    try:
        logger.info("[SCHEDULER] Starting nightly maintenance...")
        result = maintenance_job.run()
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"[SCHEDULER] Nightly maintenance done in {duration:.1f}s: {result}")

    except Exception:
        logger.exception("[SCHEDULER] Nightly maintenance failed")


def start_scheduler() -> BackgroundScheduler:
    """
    Initialize the APScheduler background process.
    Runs the maintenance job daily at 03:00 UTC.
    """
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_nightly_maintenance,
        trigger=CronTrigger(hour=3, minute=0),
        id="nightly_maintenance_job",
        replace_existing=True,
    )

    scheduler.start()
    _scheduler = scheduler
    logger.info("Scheduler started. Nightly maintenance set for 03:00 UTC.")
    return scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
