"""
Scheduler Service
Runs the daily and weekly alert detection batches using APScheduler
"""
import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.errors import UserNotFoundError
from app.models.alert import DetectionOverrides
from app.utils.detection import detect_alerts_for_user

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "alerts_daily"
WEEKLY_JOB_ID = "alerts_weekly"
WEEKLY_PERIOD_DAYS = 7
POLL_SECONDS = 0.05

# Scheduler instance (exported for use in the scheduler router)
scheduler: Optional[BackgroundScheduler] = None


@dataclass
class BatchReport:
    cadence: str
    users: int = 0
    processed: int = 0
    created_count: int = 0
    failed: List[str] = field(default_factory=list)
    timed_out: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def _detect_for_batch(ctx, user_id: str, overrides, started: Dict[str, float]):
    started[user_id] = time.monotonic()
    return detect_alerts_for_user(ctx, user_id, overrides)


def _collect(report: BatchReport, user_id: str, future: Future) -> None:
    cadence = report.cadence
    try:
        result = future.result()
    except UserNotFoundError:
        logger.warning(f"[{cadence}] User {user_id} disappeared before detection")
        report.failed.append(user_id)
        return
    except Exception as e:
        logger.error(f"[{cadence}] Detection failed for user {user_id}: {str(e)}", exc_info=True)
        report.failed.append(user_id)
        return
    report.processed += 1
    report.created_count += result.created_count


def run_alert_batch(ctx, cadence: str = "daily", period_days: Optional[int] = None) -> BatchReport:
    """
    Run detection for every user with alerts enabled.

    Users are spread over a bounded thread pool. Each user is its own error
    boundary: a failure or timeout is logged and the batch moves on. A user's
    timeout runs from the moment a worker picks it up. Work that overruns is
    abandoned, not interrupted.
    """
    report = BatchReport(cadence=cadence)
    user_ids = ctx.store.list_alert_enabled_user_ids()
    report.users = len(user_ids)
    if not user_ids:
        logger.info(f"[{cadence}] No users with alerts enabled")
        return report

    overrides = DetectionOverrides(period_days=period_days) if period_days else None
    timeout = ctx.settings.ALERTS_USER_TIMEOUT_SECONDS
    # Serial worst case; bounds users queued behind abandoned workers
    batch_deadline = time.monotonic() + timeout * len(user_ids)
    started: Dict[str, float] = {}

    pool = ThreadPoolExecutor(max_workers=ctx.settings.ALERTS_WORKER_COUNT, thread_name_prefix=f"alerts-{cadence}")
    try:
        pending = {
            pool.submit(_detect_for_batch, ctx, user_id, overrides, started): user_id
            for user_id in user_ids
        }
        while pending:
            done, _ = wait(pending, timeout=POLL_SECONDS, return_when=FIRST_COMPLETED)
            for future in done:
                _collect(report, pending.pop(future), future)

            now = time.monotonic()
            for future, user_id in list(pending.items()):
                start = started.get(user_id)
                if (start is not None and now - start >= timeout) or now >= batch_deadline:
                    future.cancel()
                    del pending[future]
                    logger.error(f"[{cadence}] Detection for user {user_id} timed out after {timeout}s")
                    report.timed_out.append(user_id)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    order = {user_id: idx for idx, user_id in enumerate(user_ids)}
    report.failed.sort(key=order.get)
    report.timed_out.sort(key=order.get)
    logger.info(
        f"[{cadence}] Alert batch done: {report.processed}/{report.users} users, "
        f"{report.created_count} alerts, {len(report.failed)} failed, {len(report.timed_out)} timed out"
    )
    return report


def daily_alerts_job(ctx) -> BatchReport:
    """Job function: detection with each user's own period settings"""
    logger.info("Executing daily alert detection job...")
    return run_alert_batch(ctx, cadence="daily")


def weekly_alerts_job(ctx) -> BatchReport:
    """Job function: detection over the last 7 days regardless of user settings"""
    logger.info("Executing weekly alert detection job...")
    return run_alert_batch(ctx, cadence="weekly", period_days=WEEKLY_PERIOD_DAYS)


def start_scheduler(ctx) -> BackgroundScheduler:
    """Start the background scheduler with the daily and weekly jobs"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return scheduler

    cfg = ctx.settings
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        daily_alerts_job,
        args=[ctx],
        trigger=CronTrigger(hour=cfg.ALERTS_DAILY_HOUR, minute=cfg.ALERTS_DAILY_MINUTE, timezone="UTC"),
        id=DAILY_JOB_ID,
        name="Daily alert detection",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        weekly_alerts_job,
        args=[ctx],
        trigger=CronTrigger(
            day_of_week=cfg.ALERTS_WEEKLY_DAY,
            hour=cfg.ALERTS_WEEKLY_HOUR,
            minute=cfg.ALERTS_WEEKLY_MINUTE,
            timezone="UTC",
        ),
        id=WEEKLY_JOB_ID,
        name="Weekly alert detection",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: daily at {cfg.ALERTS_DAILY_HOUR:02d}:{cfg.ALERTS_DAILY_MINUTE:02d} UTC, "
        f"weekly on {cfg.ALERTS_WEEKLY_DAY} at {cfg.ALERTS_WEEKLY_HOUR:02d}:{cfg.ALERTS_WEEKLY_MINUTE:02d} UTC"
    )
    return scheduler


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
