"""Best-effort extraction of a human-readable message from error payloads.

The verification endpoint reports failures in several shapes: a flat
``{"error": "..."}`` body, a structured error object, a transport error whose
JSON body is nested under ``context.body`` as a string, or just a bare
string. Each extractor below handles one shape, is total (never raises) and
returns None when it does not apply. The first non-empty answer wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Final, TypeAlias

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE: Final[str] = "Unknown error"
NON_2XX_MARKER: Final[str] = "non-2xx status code"
NON_2XX_MESSAGE: Final[str] = (
    "Health check failed - the verification endpoint returned an error. "
    "Check the endpoint logs for details."
)

# Raw bodies longer than this are assumed to be HTML error pages, not messages
MAX_RAW_BODY_LENGTH: Final[int] = 500

ErrorExtractor: TypeAlias = Callable[[object], str | None]


def _non_empty(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _describe(value: object) -> str | None:
    """Turn an ``error`` field value into text."""
    if isinstance(value, str):
        return _non_empty(value)
    if isinstance(value, Mapping):
        nested = _non_empty(value.get("message"))
        if nested is not None:
            return nested
        try:
            return json.dumps(value, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return None
    return None


def _fields_of(payload: object) -> Mapping[str, Any] | None:
    """View *payload* as a mapping: dicts as-is, exceptions via attributes."""
    if isinstance(payload, Mapping):
        return payload
    if isinstance(payload, BaseException):
        return {
            "error": getattr(payload, "error", None),
            "context": getattr(payload, "context", None),
        }
    return None


def from_error_field(payload: object) -> str | None:
    """Structured field: a top-level ``error`` entry."""
    fields = _fields_of(payload)
    if fields is None:
        return None
    return _describe(fields.get("error"))


def from_nested_body(payload: object) -> str | None:
    """Nested body: ``context.body`` holding JSON (as text or already decoded)."""
    fields = _fields_of(payload)
    if fields is None:
        return None
    context = fields.get("context")
    if not isinstance(context, Mapping):
        return None
    body = context.get("body")

    parsed: object = body
    if isinstance(body, str):
        try:
            parsed = json.loads(body)
        except ValueError:
            # Not JSON; a short body is usually the message itself
            if 0 < len(body) < MAX_RAW_BODY_LENGTH:
                return _non_empty(body)
            return None

    if not isinstance(parsed, Mapping):
        return None
    return _describe(parsed.get("error")) or _non_empty(parsed.get("message"))


def from_raw_message(payload: object) -> str | None:
    """Raw fallback: a ``message`` field, a bare string, or the exception text."""
    if isinstance(payload, str):
        return _non_empty(payload)
    if isinstance(payload, Mapping):
        return _non_empty(payload.get("message"))
    if isinstance(payload, BaseException):
        return _non_empty(str(payload))
    return None


EXTRACTORS: Final[tuple[ErrorExtractor, ...]] = (
    from_error_field,
    from_nested_body,
    from_raw_message,
)


def extract_error_message(payload: object) -> str:
    """Return the most specific message found in *payload*.

    Never raises. Falls back to :data:`GENERIC_ERROR_MESSAGE` when no
    extractor applies, and swaps the endpoint's opaque "non-2xx status code"
    text for an actionable hint.
    """
    message = GENERIC_ERROR_MESSAGE
    for extractor in EXTRACTORS:
        try:
            found = extractor(payload)
        except Exception:  # noqa: BLE001
            logger.debug("Extractor %s failed", extractor.__name__, exc_info=True)
            continue
        if found:
            message = found
            break

    if NON_2XX_MARKER in message:
        return NON_2XX_MESSAGE
    return message
