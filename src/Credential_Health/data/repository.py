"""Credential Store: metadata reads and health status write-back.

The engine only needs :class:`CredentialStore`. :class:`SqliteCredentialStore`
implements it on top of a Database instance. All queries use parameterized
SQL; timestamps are stored as ISO-8601 text.
"""

import datetime
import logging
from collections.abc import Sequence
from typing import Protocol

from Credential_Health.data.database import Database
from Credential_Health.models.credentials import CredentialRecord, assume_utc
from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.utils.service_names import normalize_service_name

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = "SELECT service, created_at, updated_at, status, last_checked"


class CredentialStore(Protocol):
    """Read access to credential metadata, keyed by canonical service id."""

    async def fetch_records(self, services: Sequence[str]) -> list[CredentialRecord]:
        """Return records for the given canonical ids; missing ids are omitted."""
        ...

    async def fetch_record(self, service: str) -> CredentialRecord | None:
        """Return one record, or None if the service has no credential."""
        ...


class SqliteCredentialStore:
    """SQLite-backed credential metadata store.

    Usage::

        async with Database("data/credentials.db") as db:
            store = SqliteCredentialStore(db)
            records = await store.fetch_records(["openai", "stripe-secret-key"])
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_records(self, services: Sequence[str]) -> list[CredentialRecord]:
        """Bulk read metadata for *services* in a single query."""
        canonical = sorted({normalize_service_name(s) for s in services})
        if not canonical:
            return []

        placeholders = ", ".join("?" for _ in canonical)
        conn = self._db.connection
        cursor = await conn.execute(
            f"{_SELECT_COLUMNS} FROM credential_metadata "  # noqa: S608
            f"WHERE service IN ({placeholders})",
            canonical,
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def fetch_all_records(self) -> list[CredentialRecord]:
        """Return every stored record ordered by service id."""
        conn = self._db.connection
        cursor = await conn.execute(f"{_SELECT_COLUMNS} FROM credential_metadata ORDER BY service")
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def fetch_record(self, service: str) -> CredentialRecord | None:
        """Return the record for one service, or None."""
        conn = self._db.connection
        cursor = await conn.execute(
            f"{_SELECT_COLUMNS} FROM credential_metadata WHERE service = ?",
            (normalize_service_name(service),),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_record(
        self,
        service: str,
        *,
        created_at: datetime.datetime | None = None,
        updated_at: datetime.datetime | None = None,
    ) -> None:
        """Record that a credential was stored or rotated.

        A new row takes *created_at* (default now). An existing row keeps its
        creation time and gets *updated_at* (default now); the persisted
        health status is reset because it described the previous secret.
        """
        now = datetime.datetime.now(datetime.UTC)
        canonical = normalize_service_name(service)
        conn = self._db.connection
        await conn.execute(
            "INSERT INTO credential_metadata (service, created_at, updated_at) "
            "VALUES (?, ?, ?) "
            "ON CONFLICT(service) DO UPDATE SET "
            "updated_at = ?, status = NULL, last_checked = NULL",
            (
                canonical,
                (created_at or now).isoformat(),
                updated_at.isoformat() if updated_at else None,
                (updated_at or now).isoformat(),
            ),
        )
        await conn.commit()
        logger.debug("Credential metadata upserted: %s", canonical)

    async def record_check(
        self,
        service: str,
        status: IntegrationStatus,
        checked_at: datetime.datetime,
    ) -> bool:
        """Persist the outcome of a health check. Returns False if no row exists."""
        canonical = normalize_service_name(service)
        conn = self._db.connection
        cursor = await conn.execute(
            "UPDATE credential_metadata SET status = ?, last_checked = ? WHERE service = ?",
            (str(status), checked_at.isoformat(), canonical),
        )
        await conn.commit()
        updated = cursor.rowcount > 0
        if not updated:
            logger.debug("record_check: no credential stored for %s", canonical)
        return updated

    async def delete_record(self, service: str) -> bool:
        """Remove a credential's metadata. Returns True if a row was deleted."""
        conn = self._db.connection
        cursor = await conn.execute(
            "DELETE FROM credential_metadata WHERE service = ?",
            (normalize_service_name(service),),
        )
        await conn.commit()
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Row conversion helpers
# ---------------------------------------------------------------------------


def _parse_timestamp(value: str | None) -> datetime.datetime | None:
    if not value:
        return None
    return assume_utc(datetime.datetime.fromisoformat(value))


def _parse_status(value: str | None) -> IntegrationStatus | None:
    if not value:
        return None
    try:
        return IntegrationStatus(value)
    except ValueError:
        logger.warning("Ignoring unknown persisted status '%s'", value)
        return None


def _row_to_record(row: Sequence[str | None]) -> CredentialRecord:
    return CredentialRecord(
        service=str(row[0]),
        created_at=_parse_timestamp(row[1]),
        updated_at=_parse_timestamp(row[2]),
        last_checked_status=_parse_status(row[3]),
        last_checked=_parse_timestamp(row[4]),
    )
