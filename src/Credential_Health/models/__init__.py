"""Pydantic v2 models and enums for the credential health engine.

Re-exports all public models so consumers can import directly:
    from Credential_Health.models import HealthResult, IntegrationStatus
"""

from Credential_Health.models.credentials import CredentialRecord
from Credential_Health.models.enums import AgeStatus, IntegrationStatus
from Credential_Health.models.health import (
    CredentialExistence,
    HealthResult,
    VerificationResponse,
)
from Credential_Health.models.security import (
    AttentionEntry,
    ScoringWeights,
    SecurityHealthSummary,
)

__all__ = [
    # Enums
    "AgeStatus",
    "IntegrationStatus",
    # Health
    "CredentialExistence",
    "HealthResult",
    "VerificationResponse",
    # Credentials
    "CredentialRecord",
    # Security dashboard
    "AttentionEntry",
    "ScoringWeights",
    "SecurityHealthSummary",
]
