"""Health check models: live verification results and existence probes."""

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from Credential_Health.models.enums import IntegrationStatus


class HealthResult(BaseModel):
    """Outcome of verifying one service's credential.

    Superseded by a newer result for the same service, never mutated.
    ``latency`` is only present on successful live checks; ``message`` is
    mostly set on errors.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    status: IntegrationStatus
    checked_at: datetime.datetime
    latency: datetime.timedelta | None = None
    message: str | None = None
    name: str = ""

    @property
    def display_name(self) -> str:
        """The alias the result was requested under, or the canonical id."""
        return self.name or self.service

    @property
    def is_error(self) -> bool:
        return self.status == IntegrationStatus.ERROR


class VerificationResponse(BaseModel):
    """Response body returned by the verification collaborator.

    ``error`` holds the raw (possibly nested) error payload when the
    collaborator rejected the credential; its shape is not guaranteed.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    status: str = "error"
    latency_ms: float | None = Field(default=None, alias="latency")
    message: str | None = None
    error: Any = None


class CredentialExistence(BaseModel):
    """Whether a credential record exists for a service (no verification)."""

    model_config = ConfigDict(frozen=True)

    service: str
    exists: bool
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None
