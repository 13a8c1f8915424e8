"""Per-service credential health checks.

Consults the result cache, falls through to the retry executor around the
verification collaborator, normalizes whatever comes back into a terminal
:class:`HealthResult` and writes it through to the cache. Every failure mode
ends up as ``status=error``: callers inspect the status and never need to
catch exceptions from a check.
"""

from __future__ import annotations

import datetime
import logging
from typing import Final

from Credential_Health.data.repository import CredentialStore
from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.models.health import HealthResult, VerificationResponse
from Credential_Health.services.cache import Clock, HealthCache, utc_now
from Credential_Health.services.errors import GENERIC_ERROR_MESSAGE, extract_error_message
from Credential_Health.services.retry import RetryExecutor
from Credential_Health.services.verification import VerificationClient
from Credential_Health.utils.service_names import normalize_service_name

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Collaborator status strings that mean the credential verified successfully
_SUCCESS_STATUSES: Final[frozenset[str]] = frozenset({"ok", "success", "healthy", "operational"})

# Statuses a collaborator may report that are kept as-is. ``checking`` is a
# UI-only transient state and is never returned from here.
_PASSTHROUGH_STATUSES: Final[frozenset[IntegrationStatus]] = frozenset(
    {IntegrationStatus.CONFIGURED, IntegrationStatus.NOT_CONFIGURED}
)


class HealthCheckService:
    """Check one service's credential, with caching and retries.

    Usage::

        service = HealthCheckService(verifier=HttpVerificationClient(url))
        result = await service.check("OpenAI Key")
        if result.status == IntegrationStatus.ERROR:
            logger.warning("OpenAI key failing: %s", result.message)
    """

    def __init__(
        self,
        verifier: VerificationClient,
        *,
        cache: HealthCache | None = None,
        executor: RetryExecutor | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._verifier = verifier
        self._clock = clock
        self._cache = cache if cache is not None else HealthCache(clock=clock)
        self._executor = executor if executor is not None else RetryExecutor()

        logger.info("HealthCheckService initialized.")

    @property
    def cache(self) -> HealthCache:
        return self._cache

    async def check(self, service: str, *, skip_cache: bool = False) -> HealthResult:
        """Return the health of *service*'s stored credential.

        A cache hit within the TTL returns immediately. Otherwise the
        verification collaborator is called under the retry policy and the
        result, error or not, is cached unless the service was invalidated
        while the check was in flight.
        """
        canonical = normalize_service_name(service)
        generation = await self._cache.generation(canonical)

        if not skip_cache:
            cached = await self._cache.get(canonical)
            if cached is not None:
                logger.debug("Health for %s served from cache (%s)", canonical, cached.status)
                return cached

        result = await self._verify(service, canonical, candidate_secret=None)
        # An invalidate_cache that ran during verification wins over this result
        await self._cache.put_if_generation(canonical, generation, result)

        logger.info(
            "Health check complete: service=%s status=%s latency=%s",
            canonical,
            result.status,
            result.latency,
        )
        return result

    async def test_without_saving(self, service: str, candidate_secret: str) -> HealthResult:
        """Verify *candidate_secret* for *service* without touching the cache.

        Used before replacing a working credential: the cached status of the
        currently stored credential is neither read nor overwritten.
        """
        canonical = normalize_service_name(service)
        result = await self._verify(service, canonical, candidate_secret=candidate_secret)
        logger.info("Candidate key test for %s: %s", canonical, result.status)
        return result

    async def invalidate_cache(self, service: str | None = None) -> None:
        """Forget the cached result for one service, or for all if None."""
        if service is None:
            await self._cache.invalidate_all()
            logger.info("Health cache cleared.")
        else:
            await self._cache.invalidate(normalize_service_name(service))

    async def status_from_store(self, service: str, store: CredentialStore) -> IntegrationStatus:
        """Read the status persisted by the store after its last check.

        No record means ``not-configured``; a record that was never checked
        is ``configured``. Store failures degrade to ``error``.
        """
        canonical = normalize_service_name(service)
        try:
            record = await store.fetch_record(canonical)
        except Exception:
            logger.exception("Failed to read persisted status for %s", canonical)
            return IntegrationStatus.ERROR

        if record is None:
            return IntegrationStatus.NOT_CONFIGURED
        if record.last_checked is None:
            return IntegrationStatus.CONFIGURED
        return record.last_checked_status or IntegrationStatus.CONFIGURED

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _verify(
        self,
        service: str,
        canonical: str,
        *,
        candidate_secret: str | None,
    ) -> HealthResult:
        label = f"verify({canonical})" if candidate_secret is None else f"test({canonical})"
        try:
            response = await self._executor.execute(
                lambda: self._verifier.verify(canonical, candidate_secret),
                label=label,
            )
        except Exception as exc:  # noqa: BLE001
            return self._error_result(service, canonical, extract_error_message(exc))

        return self._normalize(service, canonical, response)

    def _normalize(
        self,
        service: str,
        canonical: str,
        response: VerificationResponse,
    ) -> HealthResult:
        """Turn a collaborator response into a terminal HealthResult."""
        raw_status = (response.status or "").strip().lower()

        if raw_status in _SUCCESS_STATUSES and response.error is None:
            latency = (
                datetime.timedelta(milliseconds=response.latency_ms)
                if response.latency_ms is not None and response.latency_ms >= 0
                else None
            )
            return HealthResult(
                service=canonical,
                name=service,
                status=IntegrationStatus.OPERATIONAL,
                latency=latency,
                message=response.message,
                checked_at=self._clock(),
            )

        try:
            status = IntegrationStatus(raw_status)
        except ValueError:
            status = IntegrationStatus.ERROR

        if status in _PASSTHROUGH_STATUSES and response.error is None:
            return HealthResult(
                service=canonical,
                name=service,
                status=status,
                message=response.message,
                checked_at=self._clock(),
            )

        # Explicit rejection, unknown status, or a "checking" we must not cache
        payload = {"error": response.error, "message": response.message}
        message = extract_error_message(payload)
        if message == GENERIC_ERROR_MESSAGE and raw_status not in {"", "error"}:
            message = f"Unexpected status '{response.status}' from verification endpoint"
        return self._error_result(service, canonical, message)

    def _error_result(self, service: str, canonical: str, message: str) -> HealthResult:
        logger.warning("Health check for %s failed: %s", canonical, message)
        return HealthResult(
            service=canonical,
            name=service,
            status=IntegrationStatus.ERROR,
            message=message,
            checked_at=self._clock(),
        )
