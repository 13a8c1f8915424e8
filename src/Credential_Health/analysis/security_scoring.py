"""Credential age classification and the aggregate security health score.

Pure functions over credential metadata and (optionally) live health
results. Nothing here performs I/O; ``now`` is injectable so results are
deterministic in tests.

Score, for ``total > 0`` credentials::

    100
    - ((aging * 0.5 + stale) / total) * age_weight          (default 50)
    - (errors / total) * error_weight                      (default 20)
    - operational_offset                                   (default 15)
    + ((fresh - errors) / total) * operational_weight      (default 30)

clamped to [0, 100] and rounded half-up to an integer. No credentials at all
scores a perfect 100.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from typing import TypeAlias

from Credential_Health.models.credentials import CredentialRecord, assume_utc
from Credential_Health.models.enums import AgeStatus, IntegrationStatus
from Credential_Health.models.health import HealthResult
from Credential_Health.models.security import (
    AttentionEntry,
    ScoringWeights,
    SecurityHealthSummary,
)
from Credential_Health.utils.service_names import normalize_service_name

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: ScoringWeights = ScoringWeights()

# Aging keys count half as much as stale keys toward the age penalty
AGING_PENALTY_FACTOR: float = 0.5

MAX_SCORE: int = 100
MIN_SCORE: int = 0

_SECONDS_PER_DAY: float = 86_400.0

LiveResults: TypeAlias = Mapping[str, HealthResult] | Iterable[HealthResult]


def effective_date(record: CredentialRecord) -> datetime.datetime | None:
    """``updated_at`` if present, else ``created_at``, else None (unknown)."""
    return record.updated_at or record.created_at


def age_in_days(
    effective: datetime.datetime | None,
    now: datetime.datetime,
) -> int | None:
    """Whole days between *effective* and *now*; None when unknown.

    Dates in the future count as age 0.
    """
    if effective is None:
        return None
    elapsed = (now - effective).total_seconds() / _SECONDS_PER_DAY
    return max(0, math.floor(elapsed))


def classify_age(
    effective: datetime.datetime | None,
    now: datetime.datetime,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> AgeStatus:
    """Bucket a credential by age.

    ``fresh`` below ``fresh_days``, ``aging`` below ``stale_days``,
    otherwise ``stale``. An unknown effective date is maximally stale.
    """
    days = age_in_days(effective, now)
    if days is None or days >= weights.stale_days:
        return AgeStatus.STALE
    if days >= weights.fresh_days:
        return AgeStatus.AGING
    return AgeStatus.FRESH


def _index_live_results(live_results: LiveResults | None) -> dict[str, HealthResult]:
    if live_results is None:
        return {}
    if isinstance(live_results, Mapping):
        return {normalize_service_name(k): v for k, v in live_results.items()}
    return {r.service: r for r in live_results}


def _is_erroring(record: CredentialRecord, live: Mapping[str, HealthResult]) -> bool:
    """Live result wins; otherwise fall back to the persisted status."""
    result = live.get(normalize_service_name(record.service))
    if result is not None:
        return result.status == IntegrationStatus.ERROR
    return record.last_checked_status == IntegrationStatus.ERROR


def compute_score(
    *,
    total: int,
    fresh: int,
    aging: int,
    stale: int,
    errors: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Apply the scoring formula to bucket counts."""
    if total == 0:
        return MAX_SCORE

    age_penalty = ((aging * AGING_PENALTY_FACTOR + stale) / total) * weights.age_weight
    error_penalty = (errors / total) * weights.error_weight
    operational_bonus = ((fresh - errors) / total) * weights.operational_weight

    raw_score = MAX_SCORE - age_penalty - error_penalty - weights.operational_offset
    raw_score += operational_bonus

    clamped = max(float(MIN_SCORE), min(float(MAX_SCORE), raw_score))
    return math.floor(clamped + 0.5)


def summarize(
    records: Sequence[CredentialRecord],
    live_results: LiveResults | None = None,
    *,
    now: datetime.datetime | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> SecurityHealthSummary:
    """Tally age buckets and errors across *records* and score them.

    Args:
        records: Credential metadata from the store.
        live_results: Health results from this session, keyed by service or
            as a plain iterable. Where present they override the persisted
            ``last_checked_status``.
        now: Reference time (defaults to the current UTC time).
        weights: Scoring policy.

    Returns:
        SecurityHealthSummary with counts and a 0-100 score.
    """
    reference = assume_utc(now) if now is not None else datetime.datetime.now(datetime.UTC)
    live = _index_live_results(live_results)

    counts: dict[AgeStatus, int] = dict.fromkeys(AgeStatus, 0)
    error_count = 0
    for record in records:
        counts[classify_age(effective_date(record), reference, weights)] += 1
        if _is_erroring(record, live):
            error_count += 1

    total = len(records)
    score = compute_score(
        total=total,
        fresh=counts[AgeStatus.FRESH],
        aging=counts[AgeStatus.AGING],
        stale=counts[AgeStatus.STALE],
        errors=error_count,
        weights=weights,
    )

    logger.debug(
        "Security summary: score=%d total=%d fresh=%d aging=%d stale=%d errors=%d",
        score,
        total,
        counts[AgeStatus.FRESH],
        counts[AgeStatus.AGING],
        counts[AgeStatus.STALE],
        error_count,
    )

    return SecurityHealthSummary(
        score=score,
        total_keys=total,
        fresh_keys=counts[AgeStatus.FRESH],
        aging_keys=counts[AgeStatus.AGING],
        stale_keys=counts[AgeStatus.STALE],
        error_keys=error_count,
        computed_at=reference,
    )


def attention_list(
    records: Sequence[CredentialRecord],
    live_results: LiveResults | None = None,
    *,
    now: datetime.datetime | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[AttentionEntry]:
    """Credentials that are stale or erroring, most urgent first.

    Erroring entries come first regardless of age, then the rest by
    descending age. Unknown age sorts as older than any known age.
    """
    reference = assume_utc(now) if now is not None else datetime.datetime.now(datetime.UTC)
    live = _index_live_results(live_results)

    entries: list[AttentionEntry] = []
    for record in records:
        effective = effective_date(record)
        age_status = classify_age(effective, reference, weights)
        is_error = _is_erroring(record, live)
        if age_status != AgeStatus.STALE and not is_error:
            continue

        live_result = live.get(normalize_service_name(record.service))
        entries.append(
            AttentionEntry(
                service=record.service,
                age_status=age_status,
                age_days=age_in_days(effective, reference),
                is_error=is_error,
                effective_date=effective,
                message=live_result.message if live_result is not None and is_error else None,
            )
        )

    def sort_key(entry: AttentionEntry) -> tuple[bool, float, str]:
        age = math.inf if entry.age_days is None else float(entry.age_days)
        return (not entry.is_error, -age, entry.service)

    entries.sort(key=sort_key)
    return entries
