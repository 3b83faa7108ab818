"""Periodic rollback checks driven by APScheduler."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from rollout.gate.monitor import RollbackOutcome

logger = logging.getLogger(__name__)

MetricsProvider = Callable[[str], Mapping[str, float] | Awaitable[Mapping[str, float]]]
RollbackEvaluator = Callable[[str, Mapping[str, float]], RollbackOutcome]


class MonitoringScheduler:
    """Runs a rollback evaluation for each environment on an interval.

    evaluate_rollback is RollbackMonitor.evaluate_rollback or
    RolloutEngine.evaluate_rollback; the engine form follows reloads.

    The metrics provider is the telemetry collaborator: given an environment
    name it returns (or awaits) the latest metric values. When it fails the
    check is skipped, which leaves the rollout where it is.
    """

    def __init__(
        self,
        evaluate_rollback: RollbackEvaluator,
        metrics_provider: MetricsProvider,
        interval_seconds: float = 300.0,
    ) -> None:
        self.evaluate_rollback = evaluate_rollback
        self.metrics_provider = metrics_provider
        self.interval_seconds = interval_seconds
        self._scheduler = AsyncIOScheduler()

    @staticmethod
    def _job_id(environment: str) -> str:
        return f"rollout_monitor_{environment}"

    async def _run_check(self, environment: str) -> RollbackOutcome | None:
        try:
            metrics = self.metrics_provider(environment)
            if inspect.isawaitable(metrics):
                metrics = await metrics
        except Exception:
            logger.exception("Metrics provider failed for %s, skipping rollback check", environment)
            return None
        return self.evaluate_rollback(environment, metrics or {})

    def schedule_environment(self, environment: str, interval_seconds: float | None = None) -> None:
        interval = interval_seconds or self.interval_seconds
        self._scheduler.add_job(
            self._run_check,
            "interval",
            seconds=interval,
            args=[environment],
            id=self._job_id(environment),
            replace_existing=True,
        )
        logger.info("Scheduled rollback checks for %s every %ss", environment, interval)

    def unschedule_environment(self, environment: str) -> None:
        job_id = self._job_id(environment)
        if self._scheduler.get_job(job_id):
            self._scheduler.remove_job(job_id)

    def is_scheduled(self, environment: str) -> bool:
        return self._scheduler.get_job(self._job_id(environment)) is not None

    def start(self) -> None:
        self._scheduler.start()

    def shutdown(self) -> None:
        self._scheduler.shutdown(wait=False)
