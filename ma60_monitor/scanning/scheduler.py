"""
Daily scheduler for the MA60 crossing monitor.

APScheduler-based job scheduling with a fixed wall-clock trigger.

Features:
- Cron trigger at a configured HH:MM in a configured timezone
- Coalesced misfires and a single running instance (passes never overlap)
- Job statistics from APScheduler events
"""

import logging
from datetime import datetime, time
from typing import Any, Callable, Dict, Optional

import pytz
from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobEvent,
)
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ma60_monitor import config

logger = logging.getLogger(__name__)


class DailyScheduler:
    """
    APScheduler wrapper running one callback per day.

    Usage:
        scheduler = DailyScheduler(timezone='Asia/Shanghai')
        scheduler.add_daily_job(daemon.run_check, run_time=time(8, 0))
        scheduler.start()
        # ... later ...
        scheduler.shutdown()
    """

    def __init__(
        self,
        timezone: str = config.DEFAULT_TIMEZONE,
        misfire_grace_time: int = config.MISFIRE_GRACE_SECONDS,
    ):
        """
        Initialize daily scheduler.

        Args:
            timezone: Timezone the run time is expressed in
            misfire_grace_time: Seconds a late job may still run
        """
        self.timezone = pytz.timezone(timezone)

        self._scheduler = BackgroundScheduler(
            timezone=self.timezone,
            job_defaults={
                'coalesce': True,  # Combine missed runs
                'max_instances': 1,  # Never overlap passes
                'misfire_grace_time': misfire_grace_time,
            }
        )

        # Job tracking
        self._jobs: Dict[str, str] = {}  # name -> job_id
        self._job_stats: Dict[str, Dict[str, Any]] = {}
        self._is_running = False

        self._scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

    def _on_job_executed(self, event: JobEvent) -> None:
        """Handle successful job execution."""
        job_id = event.job_id
        if job_id in self._job_stats:
            self._job_stats[job_id]['last_run'] = datetime.now(self.timezone)
            self._job_stats[job_id]['run_count'] += 1
            self._job_stats[job_id]['last_status'] = 'success'
        logger.info(f"Job executed: {job_id}")

    def _on_job_error(self, event: JobEvent) -> None:
        """Handle job execution error."""
        job_id = event.job_id
        if job_id in self._job_stats:
            self._job_stats[job_id]['last_run'] = datetime.now(self.timezone)
            self._job_stats[job_id]['error_count'] += 1
            self._job_stats[job_id]['last_status'] = 'error'
            self._job_stats[job_id]['last_error'] = str(event.exception)
        logger.error(f"Job error: {job_id} - {event.exception}")

    def _on_job_missed(self, event: JobEvent) -> None:
        """Handle missed job."""
        job_id = event.job_id
        if job_id in self._job_stats:
            self._job_stats[job_id]['missed_count'] += 1
            self._job_stats[job_id]['last_status'] = 'missed'
        logger.warning(f"Job missed: {job_id}")

    def add_daily_job(
        self,
        callback: Callable,
        run_time: time,
        job_id: str = 'ma60_daily_check',
    ) -> str:
        """
        Add a job firing every day at run_time.

        Args:
            callback: Function to call on trigger
            run_time: Wall-clock time in the scheduler timezone
            job_id: Unique job identifier

        Returns:
            Job ID
        """
        job = self._scheduler.add_job(
            callback,
            trigger=CronTrigger(
                hour=run_time.hour,
                minute=run_time.minute,
                timezone=self.timezone,
            ),
            id=job_id,
            name='MA60 Daily Check',
            replace_existing=True,
        )

        self._jobs['daily'] = job.id
        self._job_stats[job.id] = {
            'name': 'MA60 Daily Check',
            'run_count': 0,
            'error_count': 0,
            'missed_count': 0,
            'last_run': None,
            'last_status': 'pending',
            'last_error': None,
        }

        logger.info(
            f"Added daily job: {job.id} at {run_time.strftime('%H:%M')} {self.timezone}"
        )
        return job.id

    def start(self) -> None:
        """Start the scheduler."""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self._scheduler.start()
        self._is_running = True
        logger.info("Scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: Wait for a running pass to complete
        """
        if not self._is_running:
            logger.warning("Scheduler not running")
            return

        self._scheduler.shutdown(wait=wait)
        self._is_running = False
        logger.info("Scheduler shutdown complete")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._is_running

    def get_next_run_time(self, job_name: str = 'daily') -> Optional[datetime]:
        job_id = self._jobs.get(job_name)
        if job_id is None:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    def get_job_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Get statistics for all jobs.

        Returns:
            Dictionary of job_id -> stats
        """
        for name, job_id in self._jobs.items():
            if job_id in self._job_stats:
                self._job_stats[job_id]['next_run'] = self.get_next_run_time(name)

        return self._job_stats.copy()

    def get_status(self) -> Dict[str, Any]:
        """Get overall scheduler status."""
        next_run = self.get_next_run_time()
        return {
            'running': self._is_running,
            'timezone': str(self.timezone),
            'jobs_count': len(self._jobs),
            'jobs': list(self._jobs.keys()),
            'next_run': str(next_run) if next_run else None,
        }
