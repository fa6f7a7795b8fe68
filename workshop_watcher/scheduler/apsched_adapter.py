"""APScheduler wrapper driving the check and refresh jobs."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType, SchedulesConfig
from ..logging_conf import component_logger

CHECK_JOB_ID = "watcher::check"
REFRESH_JOB_ID = "watcher::refresh"


class APSchedulerAdapter:
    """Manage the two independent periodic jobs.

    The jobs are not ordered relative to each other; when both fire together
    they contend only through the scrape RunLock.
    """

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = component_logger("scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self, wait: bool = False) -> None:
        if self.started:
            self.scheduler.shutdown(wait=wait)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_jobs(
        self,
        schedules: SchedulesConfig,
        check: Callable[[], object],
        refresh: Callable[[], object],
    ) -> None:
        check_kwargs: dict = {}
        if schedules.run_at_startup:
            check_kwargs["next_run_time"] = datetime.now()
        self._add_job(CHECK_JOB_ID, check, schedules.check, **check_kwargs)
        self._add_job(REFRESH_JOB_ID, refresh, schedules.refresh)

    def _add_job(self, job_id: str, callback: Callable[[], object], schedule: ScheduleConfig, **kwargs) -> None:
        trigger = self._build_trigger(schedule)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **kwargs,
        )
        self.logger.info("job_scheduled", job_id=job_id, schedule=schedule.model_dump(mode="json"))

    @staticmethod
    def _build_trigger(schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "CHECK_JOB_ID", "REFRESH_JOB_ID"]
