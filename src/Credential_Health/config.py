"""Engine configuration with JSON file and environment variable overrides.

Resolution order, lowest to highest priority: built-in defaults, the JSON
settings file (if present and readable), then ``CREDENTIAL_HEALTH_*``
environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_PREFIX: Final[str] = "CREDENTIAL_HEALTH_"
DEFAULT_SETTINGS_PATH: Final[Path] = Path("data/credential_health.json")

DEFAULT_VERIFY_URL: Final[str] = "http://localhost:54321/functions/v1/integration-health"


class EngineSettings(BaseModel):
    """Tunables for the health check engine."""

    model_config = ConfigDict(frozen=True)

    verify_url: str = DEFAULT_VERIFY_URL
    api_token: str | None = None
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_max_entries: int = Field(default=50, ge=1)
    batch_concurrency: int = Field(default=6, ge=1)
    db_path: str = "data/credentials.db"


def _read_settings_file(path: Path) -> dict[str, Any]:
    """Load overrides from a JSON file, returning {} if absent or unreadable."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Failed to read settings file %s, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file %s is not a JSON object, ignoring", path)
        return {}
    return data


def _read_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for field_name in EngineSettings.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value
    return overrides


def load_settings(path: Path | None = None) -> EngineSettings:
    """Build EngineSettings from defaults, the JSON file and env vars.

    Raises:
        pydantic.ValidationError: If a resolved value is out of range.
    """
    settings_path = path if path is not None else DEFAULT_SETTINGS_PATH
    merged: dict[str, Any] = _read_settings_file(settings_path)
    merged.update(_read_env_overrides())
    settings = EngineSettings.model_validate(merged)
    logger.debug(
        "Settings loaded: url=%s timeout=%.1fs retries=%d ttl=%.0fs",
        settings.verify_url,
        settings.timeout_seconds,
        settings.max_retries,
        settings.cache_ttl_seconds,
    )
    return settings
