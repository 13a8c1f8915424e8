"""Cheap credential existence probe.

Answers "is a credential stored for these services" from metadata alone so
the UI can paint configured / not-configured before the slower live checks
resolve. Never calls the verification collaborator; may be stale relative to
an in-flight health check.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from Credential_Health.data.repository import CredentialStore
from Credential_Health.models.credentials import CredentialRecord
from Credential_Health.models.health import CredentialExistence
from Credential_Health.utils.service_names import normalize_service_name

logger = logging.getLogger(__name__)


class ExistenceProbe:
    """Bulk existence check against the credential store."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    async def probe_existence(self, services: Sequence[str]) -> dict[str, CredentialExistence]:
        """Map each requested service (as given) to its existence info.

        Services without a record are reported with ``exists=False``. If the
        store read fails the mapping is empty, meaning "not yet checked".
        """
        if not services:
            return {}

        canonical_ids = [normalize_service_name(s) for s in services]
        try:
            records = await self._store.fetch_records(sorted(set(canonical_ids)))
        except Exception:
            logger.exception("Error checking credential existence for %d services", len(services))
            return {}

        by_service: dict[str, CredentialRecord] = {r.service: r for r in records}

        results: dict[str, CredentialExistence] = {}
        for requested, canonical in zip(services, canonical_ids, strict=True):
            record = by_service.get(canonical)
            results[requested] = CredentialExistence(
                service=canonical,
                exists=record is not None,
                created_at=record.created_at if record else None,
                updated_at=record.updated_at if record else None,
            )

        logger.debug(
            "Existence probe: %d requested, %d configured",
            len(results),
            sum(1 for r in results.values() if r.exists),
        )
        return results
