"""Credential metadata model. The secret material itself never appears here."""

import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from Credential_Health.models.enums import IntegrationStatus


def assume_utc(value: datetime.datetime) -> datetime.datetime:
    """Attach UTC to a naive datetime; aware values pass through unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


class CredentialRecord(BaseModel):
    """Stored metadata for one credential slot.

    ``updated_at`` is None when the credential was never rotated since
    creation. ``last_checked_status`` is the status persisted by the store
    after the most recent health check, if any. Naive timestamps are taken
    to be UTC.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None
    last_checked_status: IntegrationStatus | None = None
    last_checked: datetime.datetime | None = None

    @field_validator("created_at", "updated_at", "last_checked")
    @classmethod
    def _naive_as_utc(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        return None if value is None else assume_utc(value)
