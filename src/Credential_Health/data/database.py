"""SQLite connection lifecycle for the credential metadata store.

One aiosqlite connection per :class:`Database`. On connect the parent
directory is created, WAL journaling and a busy timeout are enabled (the CLI
writes check outcomes while a dashboard process may be reading), and any
pending numbered SQL files from ``migrations/`` are applied.
"""

import datetime
import logging
from pathlib import Path
from types import TracebackType
from typing import Final

import aiosqlite

logger = logging.getLogger(__name__)

MIGRATIONS_DIR: Final[Path] = Path(__file__).parent / "migrations"
DEFAULT_DB_PATH: Final[str] = "data/credentials.db"
BUSY_TIMEOUT_MS: Final[int] = 5_000

_IN_MEMORY: Final[str] = ":memory:"


def _migration_version(migration_file: Path) -> int:
    """``003_add_index.sql`` -> 3."""
    return int(migration_file.name.split("_", 1)[0])


class Database:
    """Async SQLite handle holding credential metadata (never secrets).

    Usage::

        async with Database("data/credentials.db") as db:
            store = SqliteCredentialStore(db)
            ...
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def connection(self) -> aiosqlite.Connection:
        """Return the active connection or raise if not connected."""
        if self._connection is None:
            msg = "Database is not connected. Call connect() or use 'async with'."
            raise RuntimeError(msg)
        return self._connection

    async def connect(self) -> None:
        if self._db_path != _IN_MEMORY:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        connection = await aiosqlite.connect(self._db_path)
        await connection.execute("PRAGMA journal_mode=WAL")
        await connection.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        self._connection = connection
        applied = await self._run_migrations()
        logger.info(
            "Credential database ready: %s (schema v%d, %d migration(s) applied now)",
            self._db_path,
            await self.schema_version(),
            applied,
        )

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("Credential database closed: %s", self._db_path)

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def schema_version(self) -> int:
        """Highest applied migration number, 0 for a fresh database."""
        cursor = await self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        return int(row[0]) if row is not None and row[0] is not None else 0

    async def _run_migrations(self) -> int:
        """Apply pending ``NNN_description.sql`` files in order.

        Applied versions are recorded in ``schema_version``; re-running is a
        no-op. A version is only recorded after its script finished, so a
        failed migration is retried on the next connect.

        Returns:
            Number of migrations applied by this call.
        """
        conn = self.connection
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        await conn.commit()

        cursor = await conn.execute("SELECT version FROM schema_version")
        applied_versions = {row[0] for row in await cursor.fetchall()}

        pending = [
            path
            for path in sorted(MIGRATIONS_DIR.glob("*.sql"), key=_migration_version)
            if _migration_version(path) not in applied_versions
        ]
        for migration_file in pending:
            version = _migration_version(migration_file)
            logger.info("Applying migration %03d: %s", version, migration_file.name)
            await conn.executescript(migration_file.read_text(encoding="utf-8"))
            await conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, datetime.datetime.now(datetime.UTC).isoformat()),
            )
            await conn.commit()
        return len(pending)
