"""Roll field-level results up to one status per integration.

An integration (e.g. Stripe) can own several credential slots (secret key,
publishable key). The dashboard grid shows one status per integration,
picked as the best of its slots.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.models.health import CredentialExistence, HealthResult
from Credential_Health.utils.service_names import normalize_service_name


class Integration(BaseModel):
    """Static description of an integration and its credential slots."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    fields: tuple[str, ...]


def best_status(results: Iterable[HealthResult]) -> HealthResult | None:
    """Pick the most favorable result.

    ``operational`` wins outright; ``configured`` beats ``error``; otherwise
    the first result seen is kept.
    """
    best: HealthResult | None = None
    for result in results:
        if best is None:
            best = result
        if result.status == IntegrationStatus.OPERATIONAL:
            return result
        if (
            result.status == IntegrationStatus.CONFIGURED
            and best.status == IntegrationStatus.ERROR
        ):
            best = result
    return best


def rollup_integrations(
    integrations: Sequence[Integration],
    results: Mapping[str, HealthResult],
    existence: Mapping[str, CredentialExistence] | None = None,
) -> dict[str, IntegrationStatus]:
    """Map each integration id to its display status.

    Uses the best live result among the integration's fields. Without any
    live result, falls back to ``configured`` when any field has a stored
    credential and ``not-configured`` otherwise.
    """
    live = {normalize_service_name(k): v for k, v in results.items()}
    stored = {
        normalize_service_name(k): v.exists for k, v in (existence or {}).items()
    }

    statuses: dict[str, IntegrationStatus] = {}
    for integration in integrations:
        fields = [normalize_service_name(f) for f in integration.fields]
        best = best_status(live[f] for f in fields if f in live)
        if best is not None:
            statuses[integration.id] = best.status
        elif any(stored.get(f, False) for f in fields):
            statuses[integration.id] = IntegrationStatus.CONFIGURED
        else:
            statuses[integration.id] = IntegrationStatus.NOT_CONFIGURED
    return statuses
