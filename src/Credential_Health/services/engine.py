"""Public surface of the credential health engine.

Wires the cache, retry executor, health check service, batch orchestrator,
existence probe and scorer together so UI code talks to one object.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence

from Credential_Health.analysis import security_scoring
from Credential_Health.config import EngineSettings
from Credential_Health.data.repository import CredentialStore
from Credential_Health.models.credentials import CredentialRecord
from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.models.health import CredentialExistence, HealthResult
from Credential_Health.models.security import (
    AttentionEntry,
    ScoringWeights,
    SecurityHealthSummary,
)
from Credential_Health.services.batch import (
    DEFAULT_CONCURRENCY,
    BatchOrchestrator,
    ProgressCallback,
    ResultCallback,
)
from Credential_Health.services.cache import Clock, HealthCache, utc_now
from Credential_Health.services.existence import ExistenceProbe
from Credential_Health.services.health import HealthCheckService
from Credential_Health.services.retry import RetryExecutor
from Credential_Health.services.verification import HttpVerificationClient, VerificationClient

logger = logging.getLogger(__name__)


class CredentialHealthEngine:
    """Facade over the health check pipeline and the security scorer.

    Usage::

        async with Database(settings.db_path) as db:
            engine = CredentialHealthEngine.from_settings(
                settings, SqliteCredentialStore(db)
            )
            try:
                results = await engine.check_all(["openai", "twilio"])
            finally:
                await engine.aclose()
    """

    def __init__(
        self,
        verifier: VerificationClient,
        store: CredentialStore,
        *,
        cache: HealthCache | None = None,
        executor: RetryExecutor | None = None,
        weights: ScoringWeights | None = None,
        default_concurrency: int = DEFAULT_CONCURRENCY,
        clock: Clock = utc_now,
    ) -> None:
        self._verifier = verifier
        self._store = store
        self._weights = weights or security_scoring.DEFAULT_WEIGHTS
        self._default_concurrency = default_concurrency
        self._clock = clock
        self._health = HealthCheckService(verifier, cache=cache, executor=executor, clock=clock)
        self._batch = BatchOrchestrator(self._health, clock=clock)
        self._probe = ExistenceProbe(store)

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        store: CredentialStore,
        *,
        weights: ScoringWeights | None = None,
    ) -> CredentialHealthEngine:
        """Build an engine with an HTTP verifier configured from *settings*."""
        verifier = HttpVerificationClient(settings.verify_url, api_token=settings.api_token)
        cache = HealthCache(
            ttl=datetime.timedelta(seconds=settings.cache_ttl_seconds),
            max_entries=settings.cache_max_entries,
        )
        executor = RetryExecutor(
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            base_delay=settings.base_delay_seconds,
        )
        return cls(
            verifier,
            store,
            cache=cache,
            executor=executor,
            weights=weights,
            default_concurrency=settings.batch_concurrency,
        )

    async def aclose(self) -> None:
        """Release the verifier's HTTP resources, if it holds any."""
        if isinstance(self._verifier, HttpVerificationClient):
            await self._verifier.aclose()

    # ------------------------------------------------------------------
    # Live checks
    # ------------------------------------------------------------------

    async def check_one(self, service: str, *, skip_cache: bool = False) -> HealthResult:
        return await self._health.check(service, skip_cache=skip_cache)

    async def test_without_saving(self, service: str, secret: str) -> HealthResult:
        return await self._health.test_without_saving(service, secret)

    async def check_all(
        self,
        services: Sequence[str],
        *,
        concurrency: int | None = None,
        skip_cache: bool = False,
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[HealthResult]:
        return await self._batch.check_all(
            services,
            concurrency=self._default_concurrency if concurrency is None else concurrency,
            skip_cache=skip_cache,
            on_progress=on_progress,
            on_result=on_result,
        )

    async def invalidate_cache(self, service: str | None = None) -> None:
        """Force the next check of *service* (or every service) to go live."""
        await self._health.invalidate_cache(service)

    # ------------------------------------------------------------------
    # Store-backed reads
    # ------------------------------------------------------------------

    async def probe_existence(self, services: Sequence[str]) -> dict[str, CredentialExistence]:
        return await self._probe.probe_existence(services)

    async def status_from_store(self, service: str) -> IntegrationStatus:
        return await self._health.status_from_store(service, self._store)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def summarize_health(
        self,
        records: Sequence[CredentialRecord],
        live_results: security_scoring.LiveResults | None = None,
    ) -> SecurityHealthSummary:
        return security_scoring.summarize(
            records,
            live_results,
            now=self._clock(),
            weights=self._weights,
        )

    def attention_list(
        self,
        records: Sequence[CredentialRecord],
        live_results: security_scoring.LiveResults | None = None,
    ) -> list[AttentionEntry]:
        return security_scoring.attention_list(
            records,
            live_results,
            now=self._clock(),
            weights=self._weights,
        )
