"""
Scheduler module for the Scholarship Aggregator pipeline.

Runs the full-registry aggregation on a fixed interval (every 6 hours by
default). Results are logged and discarded; failures are logged and never
raised, since a scheduled run has no caller to notify.

Overlap policy is skip-if-running: APScheduler keeps at most one instance
of the job, coalesces missed firings into one, and run_once() shares a
lock with the scheduled job so a manual run and a scheduled run never
execute together.
"""

import threading
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from scholarship_aggregator.aggregate import Aggregator
from scholarship_aggregator.models import BatchResult
from scholarship_aggregator.utils import get_logger


# Module logger
logger = get_logger("scheduler")

DEFAULT_INTERVAL_HOURS = 6
JOB_ID = "scholarship-aggregation"


class AggregationScheduler:
    """
    Recurring trigger for full aggregation runs.

    Args:
        aggregator: Aggregator to run.
        interval_hours: Hours between runs.
        category: Source category to run each time.
        scheduler: APScheduler instance to use. A BackgroundScheduler is
            created if None, or a BlockingScheduler when blocking is True.
        blocking: Whether start() should block the calling thread.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        interval_hours: float = DEFAULT_INTERVAL_HOURS,
        category: str = "all",
        scheduler: Optional[BaseScheduler] = None,
        blocking: bool = False
    ):
        if interval_hours <= 0:
            raise ValueError("interval_hours must be positive")

        self.aggregator = aggregator
        self.interval_hours = interval_hours
        self.category = category
        self.scheduler = scheduler or (BlockingScheduler() if blocking else BackgroundScheduler())
        self._run_lock = threading.Lock()
        self.last_run_at: Optional[datetime] = None
        self.last_count: Optional[int] = None

    def run_once(self) -> Optional[BatchResult]:
        """
        Run one aggregation unless another run is in progress.

        Returns:
            The batch, or None if the run was skipped or failed.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Aggregation already running, skipping this trigger")
            return None

        try:
            logger.info("Running scheduled scholarship aggregation...")
            batch = self.aggregator.run(self.category)
            self.last_run_at = datetime.now()
            self.last_count = batch.count
            logger.info(
                f"Scheduled aggregation completed: {batch.count} scholarship(s), "
                f"{len(batch.failed_sources)} failed source(s)"
            )
            return batch
        except Exception as e:
            logger.exception(f"Scheduled aggregation failed: {e}")
            return None
        finally:
            self._run_lock.release()

    def add_job(self) -> None:
        """Register the recurring job on the underlying scheduler."""
        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id=JOB_ID,
            name="Scholarship aggregation",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=600,
        )
        logger.info(f"Scheduled aggregation every {self.interval_hours} hour(s)")

    def start(self) -> None:
        """Register the job and start the scheduler."""
        self.add_job()
        self.scheduler.start()

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")
