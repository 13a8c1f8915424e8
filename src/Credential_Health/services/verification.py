"""Verification collaborator: the remote "is this credential valid" check.

The engine depends only on the :class:`VerificationClient` protocol. The
bundled :class:`HttpVerificationClient` talks to an HTTP verification
endpoint (for example a serverless function) that performs the
protocol-specific check against each third-party API.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from Credential_Health.models.health import VerificationResponse
from Credential_Health.services.errors import extract_error_message
from Credential_Health.utils.exceptions import (
    MalformedResponseError,
    PermanentVerificationError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Status codes that indicate the endpoint is struggling rather than the
# credential being wrong
RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({408, 429, 500, 502, 503, 504})

HTTP_CONNECT_TIMEOUT: Final[float] = 5.0
HTTP_READ_TIMEOUT: Final[float] = 30.0


@runtime_checkable
class VerificationClient(Protocol):
    """Anything that can verify one service's credential."""

    async def verify(
        self,
        service: str,
        candidate_secret: str | None = None,
    ) -> VerificationResponse:
        """Verify the stored credential, or *candidate_secret* if given."""
        ...


class HttpVerificationClient:
    """Verify credentials by POSTing to a remote verification endpoint.

    Request body is ``{"service": ...}`` plus ``"testKey"`` when testing an
    unsaved candidate. The endpoint answers
    ``{"status": ..., "latency": <ms>, "message": ...}``.

    Usage::

        client = HttpVerificationClient(url, api_token=token)
        try:
            response = await client.verify("openai")
        finally:
            await client.aclose()
    """

    def __init__(
        self,
        url: str,
        *,
        api_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._api_token = api_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=HTTP_CONNECT_TIMEOUT,
                read=HTTP_READ_TIMEOUT,
                write=10.0,
                pool=5.0,
            ),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

        logger.info(
            "HttpVerificationClient initialized: url=%s, token=%s",
            url,
            "configured" if api_token else "not configured",
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def verify(
        self,
        service: str,
        candidate_secret: str | None = None,
    ) -> VerificationResponse:
        """POST a verification request for *service*.

        Raises:
            TransientNetworkError: Transport failure or a retryable status.
            PermanentVerificationError: The endpoint rejected the request.
            MalformedResponseError: A success response with an unusable body.
        """
        payload: dict[str, str] = {"service": service}
        if candidate_secret is not None:
            payload["testKey"] = candidate_secret

        headers: dict[str, str] = {}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        try:
            response = await self._client.post(self._url, json=payload, headers=headers)
        except httpx.TransportError as exc:
            msg = f"Verification request failed for {service}: {str(exc) or type(exc).__name__}"
            raise TransientNetworkError(msg, service=service) from exc

        if response.is_success:
            return self._parse_success(response, service)

        message = extract_error_message(_error_payload(response))
        if response.status_code in RETRYABLE_STATUS_CODES:
            msg = f"Verification endpoint returned HTTP {response.status_code}: {message}"
            raise TransientNetworkError(msg, service=service, http_status=response.status_code)

        logger.debug(
            "Verification rejected for %s: HTTP %d %s",
            service,
            response.status_code,
            message,
        )
        raise PermanentVerificationError(
            message,
            service=service,
            http_status=response.status_code,
        )

    @staticmethod
    def _parse_success(response: httpx.Response, service: str) -> VerificationResponse:
        try:
            body: Any = response.json()
        except ValueError as exc:
            msg = f"Verification endpoint returned a non-JSON body for {service}"
            raise MalformedResponseError(
                msg,
                service=service,
                http_status=response.status_code,
            ) from exc

        if not isinstance(body, dict):
            msg = f"Verification endpoint returned {type(body).__name__}, expected an object"
            raise MalformedResponseError(msg, service=service, http_status=response.status_code)

        try:
            return VerificationResponse.model_validate(body)
        except ValidationError as exc:
            msg = f"Verification response for {service} failed validation"
            raise MalformedResponseError(
                msg,
                service=service,
                http_status=response.status_code,
            ) from exc


def _error_payload(response: httpx.Response) -> object:
    """Shape an error response so the extractor chain can read it."""
    status_code = response.status_code
    return {
        "message": f"Verification endpoint returned a non-2xx status code ({status_code})",
        "context": {"body": response.text},
    }
