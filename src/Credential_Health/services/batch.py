"""Bounded-concurrency batch health checks with progress callbacks.

Services are checked in consecutive chunks of ``concurrency``. Chunks run one
after another and checks inside a chunk run concurrently. Results come back in
input order; callbacks fire in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Final, TypeAlias

from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.models.health import HealthResult
from Credential_Health.services.cache import Clock, utc_now
from Credential_Health.services.health import HealthCheckService
from Credential_Health.utils.service_names import normalize_service_name

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY: Final[int] = 6

ProgressCallback: TypeAlias = Callable[[int, int], None]
ResultCallback: TypeAlias = Callable[[str, HealthResult], None]


class BatchOrchestrator:
    """Run health checks for many services under a concurrency cap.

    Usage::

        orchestrator = BatchOrchestrator(health_service)
        results = await orchestrator.check_all(
            ["openai", "stripe-secret-key", "twilio"],
            concurrency=2,
            on_progress=lambda done, total: print(f"{done}/{total}"),
        )
    """

    def __init__(self, health_service: HealthCheckService, *, clock: Clock = utc_now) -> None:
        self._health_service = health_service
        self._clock = clock

    async def check_all(
        self,
        services: Sequence[str],
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        skip_cache: bool = False,
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[HealthResult]:
        """Check every service and return results aligned with *services*.

        One service failing never aborts the batch: it yields an ``error``
        result at its index. Callback exceptions are logged and swallowed.

        Raises:
            ValueError: If *concurrency* is less than 1.
        """
        if concurrency < 1:
            msg = f"concurrency must be >= 1, got {concurrency}"
            raise ValueError(msg)

        total = len(services)
        if total == 0:
            _safe_progress(on_progress, 0, 0)
            return []

        results: list[HealthResult | None] = [None] * total
        completed = 0

        async def run_one(index: int, service: str) -> None:
            nonlocal completed
            result = await self._check_guarded(service, skip_cache=skip_cache)
            results[index] = result
            completed += 1
            _safe_progress(on_progress, completed, total)
            _safe_result(on_result, service, result)

        for start in range(0, total, concurrency):
            chunk = services[start : start + concurrency]
            await asyncio.gather(
                *(run_one(start + offset, service) for offset, service in enumerate(chunk))
            )
            logger.debug(
                "Batch chunk done: %d/%d services checked",
                min(start + concurrency, total),
                total,
            )

        checked: list[HealthResult] = []
        for index, slot in enumerate(results):
            if slot is None:
                msg = f"Batch finished without a result for {services[index]!r} at index {index}"
                raise RuntimeError(msg)
            checked.append(slot)

        error_count = sum(1 for r in checked if r.is_error)
        logger.info(
            "Batch health check complete: %d services, %d errors, concurrency=%d",
            total,
            error_count,
            concurrency,
        )
        return checked

    async def _check_guarded(self, service: str, *, skip_cache: bool) -> HealthResult:
        """Run one check, converting any unexpected exception into an error result."""
        try:
            return await self._health_service.check(service, skip_cache=skip_cache)
        except Exception as exc:
            logger.exception("Unexpected failure checking %s", service)
            return HealthResult(
                service=normalize_service_name(service),
                name=service,
                status=IntegrationStatus.ERROR,
                message=str(exc) or type(exc).__name__,
                checked_at=self._clock(),
            )


def _safe_progress(callback: ProgressCallback | None, completed: int, total: int) -> None:
    if callback is None:
        return
    try:
        callback(completed, total)
    except Exception:  # noqa: BLE001
        logger.warning("on_progress callback raised", exc_info=True)


def _safe_result(callback: ResultCallback | None, service: str, result: HealthResult) -> None:
    if callback is None:
        return
    try:
        callback(service, result)
    except Exception:  # noqa: BLE001
        logger.warning("on_result callback raised for %s", service, exc_info=True)
