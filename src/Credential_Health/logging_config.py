"""Logging setup for the CLI and for applications embedding the engine.

Besides the root format and level, every handler gets a
:class:`SecretRedactingFilter`: candidate keys and bearer tokens pass through
this package (``test_without_saving``, the HTTP verifier) and must never be
written to a log.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
REDACTED: Final[str] = "[REDACTED]"

_AREA_LOGGERS: Final[dict[str, str]] = {
    "SERVICES": "Credential_Health.services",
    "ANALYSIS": "Credential_Health.analysis",
    "DATA": "Credential_Health.data",
    "CLI": "Credential_Health.cli",
}

# Bearer tokens, JSON/kv "testKey" values, and common provider key prefixes
_SECRET_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._~+/=-]+"),
    re.compile(r"""(?i)(["']?test_?key["']?\s*[:=]\s*["']?)[^"',\s}]+"""),
    re.compile(r"\b(?:sk|pk|rk)_(?:live|test)_[A-Za-z0-9]{8,}"),
    re.compile(r"\bsk-[A-Za-z0-9_-]{16,}"),
)


def redact_secrets(text: str) -> str:
    """Replace anything that looks like credential material with a marker.

    >>> redact_secrets("Authorization: Bearer abc.def")
    'Authorization: Bearer [REDACTED]'
    """
    for pattern in _SECRET_PATTERNS:
        if pattern.groups:
            text = pattern.sub(lambda m: f"{m.group(1)}{REDACTED}", text)
        else:
            text = pattern.sub(REDACTED, text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Rewrite the rendered message of each record with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact_secrets(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _resolve_level(name: str | None, default: int) -> int:
    if not name:
        return default
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else default


def configure_logging(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Configure the root logger.

    Priority: verbose > quiet > level param > LOG_LEVEL env > INFO default.
    Uses force=True so repeated CLI invocations in one process reconfigure
    cleanly. ``LOG_LEVEL_{SERVICES,ANALYSIS,DATA,CLI}`` adjust single areas.
    """
    if verbose:
        effective = logging.DEBUG
    elif quiet:
        effective = logging.WARNING
    else:
        effective = _resolve_level(level or os.environ.get("LOG_LEVEL"), logging.INFO)

    logging.basicConfig(level=effective, format=LOG_FORMAT, force=True)
    for handler in logging.getLogger().handlers:
        handler.addFilter(SecretRedactingFilter())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    for area, logger_name in _AREA_LOGGERS.items():
        area_level = _resolve_level(os.environ.get(f"LOG_LEVEL_{area}"), logging.NOTSET)
        if area_level != logging.NOTSET:
            logging.getLogger(logger_name).setLevel(area_level)
