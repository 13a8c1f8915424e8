"""Custom exception hierarchy for credential health checks.

All domain-specific exceptions inherit from CredentialHealthError, which
carries the service identifier involved and, when the failure came from an
HTTP exchange, the status code.
"""


class CredentialHealthError(Exception):
    """Base exception for all credential health failures.

    Attributes:
        service: The canonical service identifier involved in the failure.
        http_status: The HTTP status code, if the failure was HTTP-related.
    """

    def __init__(
        self,
        message: str,
        *,
        service: str = "",
        http_status: int | None = None,
    ) -> None:
        self.service = service
        self.http_status = http_status
        super().__init__(message)


class TransientNetworkError(CredentialHealthError):
    """Raised for timeouts, resets, refused connections and fetch failures.

    These are worth retrying.
    """


class PermanentVerificationError(CredentialHealthError):
    """Raised when the verification endpoint rejects the credential or request."""


class MalformedResponseError(PermanentVerificationError):
    """Raised when the verification endpoint returns an unparseable body."""


class CacheStateError(CredentialHealthError):
    """Raised when the result cache detects an internal invariant violation.

    This indicates a programming defect, never a user-facing condition.
    """
