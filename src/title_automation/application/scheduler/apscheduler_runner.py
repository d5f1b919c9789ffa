# pyright: reportMissingTypeStubs=false, reportUnknownMemberType=false

from __future__ import annotations

from typing import Callable, final, override

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from title_automation.domain.protocols.scheduler_port import SchedulerPort


@final
class APSchedulerRunner(SchedulerPort):
    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self._scheduler = scheduler or BackgroundScheduler()

    def _add(self, job_id: str, trigger: object, func: Callable[[], object]) -> None:
        # One queue cycle at a time; missed runs collapse into one.
        _ = self._scheduler.add_job(
            func,
            trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    @override
    def schedule_interval(
        self, job_id: str, seconds: int, func: Callable[[], object]
    ) -> None:
        self._add(job_id, IntervalTrigger(seconds=max(1, int(seconds))), func)

    @override
    def schedule_cron(
        self, job_id: str, cron_expression: str, func: Callable[[], object]
    ) -> None:
        if len(cron_expression.split()) != 5:
            raise ValueError("Cron expression must have 5 fields")
        self._add(job_id, CronTrigger.from_crontab(cron_expression), func)

    @override
    def start(self) -> None:
        self._scheduler.start()

    @override
    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
