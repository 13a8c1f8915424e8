"""Health check orchestration services.

Re-exports all public service classes so consumers can import directly:
    from Credential_Health.services import CredentialHealthEngine, HealthCache
"""

from Credential_Health.services.batch import BatchOrchestrator
from Credential_Health.services.cache import CacheEntry, HealthCache
from Credential_Health.services.engine import CredentialHealthEngine
from Credential_Health.services.existence import ExistenceProbe
from Credential_Health.services.health import HealthCheckService
from Credential_Health.services.retry import RetryExecutor, is_transient_error
from Credential_Health.services.verification import (
    HttpVerificationClient,
    VerificationClient,
)

__all__ = [
    # Infrastructure
    "CacheEntry",
    "HealthCache",
    "RetryExecutor",
    "is_transient_error",
    # Collaborators
    "HttpVerificationClient",
    "VerificationClient",
    # Orchestration
    "BatchOrchestrator",
    "CredentialHealthEngine",
    "ExistenceProbe",
    "HealthCheckService",
]
