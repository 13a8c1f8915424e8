"""Service identifier normalization.

Integrations are referred to by several aliases upstream (form field keys,
display names, legacy names). Everything inside the engine works on one
canonical identifier produced by :func:`normalize_service_name`.
"""

import re
from typing import Final

_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[\s_]+")

# Alias -> canonical identifier. Keys are already in separator-normalized form.
SERVICE_ALIASES: Final[dict[str, str]] = {
    "openai-key": "openai",
    "openai-api-key": "openai",
    "anthropic-key": "anthropic",
    "anthropic-api-key": "anthropic",
    "perplexity-key": "perplexity",
    "stripe-secret": "stripe-secret-key",
    "stripe-public": "stripe-public-key",
    "stripe-publishable-key": "stripe-public-key",
    "google-maps-api": "google-maps",
    "google-maps-key": "google-maps",
    "googlemaps": "google-maps",
    "bland-ai": "bland",
    "blandai": "bland",
    "twilio-sid": "twilio",
}


def normalize_service_name(name: str) -> str:
    """Return the canonical identifier for a caller-supplied service alias.

    Strips surrounding whitespace, lower-cases, collapses runs of whitespace
    and underscores into a single ``-`` and finally resolves known aliases.
    Total and deterministic: unknown names pass through in normalized form.

    >>> normalize_service_name("  OpenAI_Key ")
    'openai'
    >>> normalize_service_name("Custom Service")
    'custom-service'
    """
    collapsed = _SEPARATORS.sub("-", name.strip().lower()).strip("-")
    return SERVICE_ALIASES.get(collapsed, collapsed)
