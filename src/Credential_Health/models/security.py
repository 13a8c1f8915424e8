"""Security dashboard models: aggregate score, attention entries, weights."""

import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from Credential_Health.models.enums import AgeStatus


class ScoringWeights(BaseModel):
    """Tunable policy for the security health score and age buckets.

    The defaults reproduce the dashboard's long-standing behavior:
    ``100 - age_penalty*50 - error_penalty*20 - 15 + (fresh - errors)*30``.
    """

    model_config = ConfigDict(frozen=True)

    age_weight: float = 50.0
    error_weight: float = 20.0
    operational_weight: float = 30.0
    operational_offset: float = 15.0
    fresh_days: int = Field(default=60, gt=0)
    stale_days: int = Field(default=180, gt=0)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "ScoringWeights":
        if self.stale_days <= self.fresh_days:
            msg = f"stale_days ({self.stale_days}) must exceed fresh_days ({self.fresh_days})"
            raise ValueError(msg)
        return self


class SecurityHealthSummary(BaseModel):
    """Aggregate health of all stored credentials. Recomputed on demand."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    total_keys: int = Field(ge=0)
    fresh_keys: int = Field(ge=0)
    aging_keys: int = Field(ge=0)
    stale_keys: int = Field(ge=0)
    error_keys: int = Field(ge=0)
    computed_at: datetime.datetime


class AttentionEntry(BaseModel):
    """A credential that is stale or currently erroring.

    ``age_days`` is None when neither ``updated_at`` nor ``created_at`` is
    known; such entries sort as maximally stale.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    age_status: AgeStatus
    age_days: int | None
    is_error: bool
    effective_date: datetime.datetime | None = None
    message: str | None = None

    @property
    def age_unknown(self) -> bool:
        return self.age_days is None
