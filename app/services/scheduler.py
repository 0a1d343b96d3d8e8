"""Background scheduler for periodic tasks."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.application.use_cases.sweep_import_jobs import SweepImportJobsUseCase
from app.core.time_utils import UTC
from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

if TYPE_CHECKING:
    from app.application.dto.import_dto import SweepResult
    from app.config import AppConfig
    from app.db.session import DatabaseSessionManager

logger = logging.getLogger(__name__)

IMPORT_SWEEP_JOB_ID = "import_job_sweep"


class SchedulerService:
    """Manages background scheduled tasks like the stale import job sweep."""

    def __init__(self, cfg: AppConfig, db: DatabaseSessionManager) -> None:
        """Initialize scheduler service.

        Args:
            cfg: Application configuration
            db: DatabaseSessionManager instance
        """
        self.cfg = cfg
        self.db = db
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    async def start(self) -> None:
        """Start the scheduler with configured jobs."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler(timezone=UTC)
        imports = self.cfg.imports

        if imports.sweep_enabled:
            self._scheduler.add_job(
                self.run_import_sweep,
                trigger=IntervalTrigger(minutes=imports.sweep_interval_minutes),
                id=IMPORT_SWEEP_JOB_ID,
                name="Stale Import Job Sweep",
                replace_existing=True,
                max_instances=1,  # Prevent overlapping runs
            )
            logger.info(
                "scheduler_import_sweep_job_added",
                extra={
                    "job_id": IMPORT_SWEEP_JOB_ID,
                    "interval_minutes": imports.sweep_interval_minutes,
                    "max_age_hours": imports.job_max_age_hours,
                },
            )
        else:
            logger.info("scheduler_import_sweep_job_skipped", extra={"enabled": False})

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def run_import_sweep(self) -> SweepResult | None:
        """Delete import jobs older than the configured age.

        Failures are logged; the next interval tries again.
        """
        correlation_id = f"scheduled_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}"
        logger.info("scheduled_import_sweep_starting", extra={"cid": correlation_id})

        try:
            use_case = SweepImportJobsUseCase(SqliteImportJobRepositoryAdapter(self.db))
            result = await use_case.execute(self.cfg.imports.job_max_age_hours)
        except Exception as e:
            logger.exception(
                "scheduled_import_sweep_failed",
                extra={"cid": correlation_id, "error": str(e)},
            )
            return None

        logger.info(
            "scheduled_import_sweep_complete",
            extra={"cid": correlation_id, "deleted_jobs": result.deleted_jobs},
        )
        return result

    def get_next_run_time(self, job_id: str) -> datetime | None:
        """Get next scheduled run time for a job.

        Returns:
            Next run time or None if job doesn't exist or scheduler not started
        """
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._started and self._scheduler is not None
