"""Persistence layer for credential metadata.

Re-exports the main public API: Database for connection management,
CredentialStore / SqliteCredentialStore for metadata reads and write-back.
"""

from Credential_Health.data.database import Database
from Credential_Health.data.repository import CredentialStore, SqliteCredentialStore

__all__ = ["CredentialStore", "Database", "SqliteCredentialStore"]
