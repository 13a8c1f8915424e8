"""Tests for the Database class: connection lifecycle and migrations."""

from pathlib import Path

import pytest
import pytest_asyncio

from Credential_Health.data.database import Database


@pytest_asyncio.fixture()
async def memory_db() -> Database:
    """Create a Database with an in-memory SQLite backend."""
    return Database(db_path=":memory:")


class TestDatabaseConnect:
    """Tests for Database.connect() and connection properties."""

    @pytest.mark.asyncio()
    async def test_connect_creates_connection(self, memory_db: Database) -> None:
        """connect() should create a live connection."""
        await memory_db.connect()
        assert memory_db._connection is not None
        await memory_db.close()

    @pytest.mark.asyncio()
    async def test_connection_property_raises_when_not_connected(
        self, memory_db: Database
    ) -> None:
        """Accessing .connection before connect() should raise RuntimeError."""
        with pytest.raises(RuntimeError, match="not connected"):
            _ = memory_db.connection

    @pytest.mark.asyncio()
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """A file-backed database creates its parent directory."""
        db_file = tmp_path / "nested" / "credentials.db"
        async with Database(str(db_file)):
            pass
        assert db_file.exists()


class TestDatabaseClose:
    """Tests for Database.close() and the async context manager."""

    @pytest.mark.asyncio()
    async def test_close_resets_connection(self, memory_db: Database) -> None:
        await memory_db.connect()
        await memory_db.close()
        assert memory_db._connection is None

    @pytest.mark.asyncio()
    async def test_close_twice_is_safe(self, memory_db: Database) -> None:
        await memory_db.connect()
        await memory_db.close()
        await memory_db.close()

    @pytest.mark.asyncio()
    async def test_context_manager(self) -> None:
        """async with connects on entry and closes on exit."""
        async with Database(":memory:") as db:
            assert db._connection is not None
        assert db._connection is None


class TestMigrations:
    """Tests for the migration runner."""

    @pytest.mark.asyncio()
    async def test_migrations_create_tables(self) -> None:
        """The credential metadata and schema_version tables exist after connect."""
        async with Database(":memory:") as db:
            cursor = await db.connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            )
            tables = {row[0] for row in await cursor.fetchall()}
        assert {"credential_metadata", "schema_version"} <= tables

    @pytest.mark.asyncio()
    async def test_migrations_are_idempotent(self) -> None:
        """Running migrations twice applies each version once."""
        async with Database(":memory:") as db:
            await db._run_migrations()
            cursor = await db.connection.execute("SELECT COUNT(*) FROM schema_version")
            row = await cursor.fetchone()
        assert row is not None
        assert row[0] == 1

    @pytest.mark.asyncio()
    async def test_schema_version(self) -> None:
        """schema_version() reports the highest applied migration."""
        async with Database(":memory:") as db:
            assert await db.schema_version() == 1

    @pytest.mark.asyncio()
    async def test_rerun_applies_nothing(self) -> None:
        """A second migration pass reports zero new migrations."""
        async with Database(":memory:") as db:
            assert await db._run_migrations() == 0

    @pytest.mark.asyncio()
    async def test_reopen_file_keeps_version(self, tmp_path: Path) -> None:
        """Reconnecting to an existing file does not re-apply migrations."""
        db_file = str(tmp_path / "credentials.db")
        async with Database(db_file):
            pass
        async with Database(db_file) as db:
            cursor = await db.connection.execute("SELECT COUNT(*) FROM schema_version")
            row = await cursor.fetchone()
        assert row is not None
        assert row[0] == 1
