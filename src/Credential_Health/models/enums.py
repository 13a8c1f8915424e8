"""StrEnum types for the credential health domain.

All enums use Python 3.13+ StrEnum. Values match the strings the
verification endpoint and credential store use on the wire.
Use enum members in business logic, never raw strings.
"""

from enum import StrEnum


class IntegrationStatus(StrEnum):
    """Health status of one credential slot."""

    OPERATIONAL = "operational"
    CONFIGURED = "configured"
    ERROR = "error"
    NOT_CONFIGURED = "not-configured"
    CHECKING = "checking"


class AgeStatus(StrEnum):
    """Rotation age bucket of a credential."""

    FRESH = "fresh"
    AGING = "aging"
    STALE = "stale"
