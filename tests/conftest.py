"""Shared test fixtures for the Credential Health test suite.

Provides a controllable clock, a scripted fake verification collaborator,
an in-memory credential store and realistic credential records so tests
don't need to inline large construction blocks.
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from typing import TypeAlias
from unittest.mock import AsyncMock

import pytest

from Credential_Health.models import (
    CredentialRecord,
    IntegrationStatus,
    VerificationResponse,
)
from Credential_Health.services.cache import HealthCache
from Credential_Health.services.health import HealthCheckService
from Credential_Health.services.retry import RetryExecutor
from Credential_Health.utils.service_names import normalize_service_name

NOW = datetime.datetime(2025, 6, 1, 12, 0, 0, tzinfo=datetime.UTC)

Outcome: TypeAlias = VerificationResponse | BaseException


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime.datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += datetime.timedelta(**kwargs)


class FakeVerifier:
    """Scripted verification collaborator that records every call.

    ``outcomes`` maps a canonical service to a response, an exception, or a
    list consumed one per call (the last element repeats). ``candidates``
    maps a candidate secret to its outcome for test-without-saving calls.
    """

    def __init__(
        self,
        outcomes: dict[str, Outcome | list[Outcome]] | None = None,
        *,
        candidates: dict[str, Outcome] | None = None,
        default: Outcome | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.candidates = candidates or {}
        self.default = default or VerificationResponse(status="operational", latency_ms=120)
        self.calls: list[tuple[str, str | None]] = []

    def calls_for(self, service: str) -> int:
        return sum(1 for called, _ in self.calls if called == service)

    async def verify(
        self, service: str, candidate_secret: str | None = None
    ) -> VerificationResponse:
        self.calls.append((service, candidate_secret))
        if candidate_secret is not None and candidate_secret in self.candidates:
            outcome = self.candidates[candidate_secret]
        else:
            scripted = self.outcomes.get(service, self.default)
            if isinstance(scripted, list):
                outcome = scripted.pop(0) if len(scripted) > 1 else scripted[0]
            else:
                outcome = scripted
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class InMemoryStore:
    """Credential store backed by a dict, keyed by canonical service id."""

    def __init__(self, records: Sequence[CredentialRecord] = ()) -> None:
        self.records = {r.service: r for r in records}
        self.bulk_reads: list[list[str]] = []
        self.fail_with: Exception | None = None

    async def fetch_records(self, services: Sequence[str]) -> list[CredentialRecord]:
        self.bulk_reads.append(list(services))
        if self.fail_with is not None:
            raise self.fail_with
        return [self.records[s] for s in services if s in self.records]

    async def fetch_record(self, service: str) -> CredentialRecord | None:
        if self.fail_with is not None:
            raise self.fail_with
        return self.records.get(normalize_service_name(service))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture()
def executor(fake_sleep: AsyncMock) -> RetryExecutor:
    """Fast executor: short deadline, 2 retries, sleeps recorded not taken."""
    return RetryExecutor(timeout=0.2, max_retries=2, base_delay=0.5, sleep=fake_sleep)


@pytest.fixture()
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture()
def cache(clock: FakeClock) -> HealthCache:
    return HealthCache(ttl=datetime.timedelta(minutes=5), max_entries=50, clock=clock)


@pytest.fixture()
def health_service(
    verifier: FakeVerifier,
    cache: HealthCache,
    executor: RetryExecutor,
    clock: FakeClock,
) -> HealthCheckService:
    return HealthCheckService(verifier, cache=cache, executor=executor, clock=clock)


@pytest.fixture()
def sample_records() -> list[CredentialRecord]:
    """One credential per age bucket plus one with unknown dates."""
    return [
        CredentialRecord(
            service="openai",
            created_at=NOW - datetime.timedelta(days=300),
            updated_at=NOW - datetime.timedelta(days=10),
            last_checked_status=IntegrationStatus.OPERATIONAL,
        ),
        CredentialRecord(
            service="twilio",
            created_at=NOW - datetime.timedelta(days=90),
        ),
        CredentialRecord(
            service="stripe-secret-key",
            created_at=NOW - datetime.timedelta(days=400),
            updated_at=None,
        ),
        CredentialRecord(service="legacy-maps"),
    ]


@pytest.fixture()
def now() -> datetime.datetime:
    return NOW


@pytest.fixture()
def store(sample_records: list[CredentialRecord]) -> InMemoryStore:
    return InMemoryStore(sample_records)
