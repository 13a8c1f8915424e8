"""Tests for credential age classification and the security health score.

Covers:
- effective_date fallbacks and age_in_days (future dates, unknown dates)
- Fresh / aging / stale thresholds at their boundaries
- compute_score formula, clamping and half-up rounding
- summarize over realistic record sets, with and without live results
- attention_list membership and ordering
"""

from __future__ import annotations

import datetime

import pytest

from Credential_Health.analysis.security_scoring import (
    age_in_days,
    attention_list,
    classify_age,
    compute_score,
    effective_date,
    summarize,
)
from Credential_Health.models import (
    AgeStatus,
    CredentialRecord,
    HealthResult,
    IntegrationStatus,
    ScoringWeights,
)

NOW = datetime.datetime(2025, 6, 1, 12, 0, 0, tzinfo=datetime.UTC)


def _days_ago(days: float) -> datetime.datetime:
    return NOW - datetime.timedelta(days=days)


def _record(service: str, updated_days: float | None = None, **kwargs: object) -> CredentialRecord:
    updated = _days_ago(updated_days) if updated_days is not None else None
    return CredentialRecord(service=service, updated_at=updated, **kwargs)


def _live(service: str, status: IntegrationStatus, message: str | None = None) -> HealthResult:
    return HealthResult(service=service, status=status, checked_at=NOW, message=message)


# ---------------------------------------------------------------------------
# Age helpers
# ---------------------------------------------------------------------------


class TestAge:
    """Tests for effective_date, age_in_days and classify_age."""

    def test_effective_date_prefers_updated(self) -> None:
        record = CredentialRecord(
            service="openai", created_at=_days_ago(300), updated_at=_days_ago(10)
        )
        assert effective_date(record) == _days_ago(10)

    def test_effective_date_falls_back_to_created(self) -> None:
        record = CredentialRecord(service="openai", created_at=_days_ago(400))
        assert effective_date(record) == _days_ago(400)

    def test_effective_date_unknown(self) -> None:
        assert effective_date(CredentialRecord(service="openai")) is None

    def test_age_floors_partial_days(self) -> None:
        """Partial days are truncated."""
        assert age_in_days(_days_ago(10.9), NOW) == 10

    def test_future_date_is_zero(self) -> None:
        """Clock skew never yields a negative age."""
        assert age_in_days(NOW + datetime.timedelta(days=3), NOW) == 0

    def test_unknown_age(self) -> None:
        assert age_in_days(None, NOW) is None

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (0, AgeStatus.FRESH),
            (59, AgeStatus.FRESH),
            (60, AgeStatus.AGING),
            (179, AgeStatus.AGING),
            (180, AgeStatus.STALE),
            (400, AgeStatus.STALE),
        ],
    )
    def test_thresholds(self, days: int, expected: AgeStatus) -> None:
        """fresh < 60 days <= aging < 180 days <= stale."""
        assert classify_age(_days_ago(days), NOW) == expected

    def test_unknown_is_stale(self) -> None:
        assert classify_age(None, NOW) == AgeStatus.STALE

    def test_custom_thresholds(self) -> None:
        """Thresholds come from the weights."""
        weights = ScoringWeights(fresh_days=30, stale_days=90)
        assert classify_age(_days_ago(45), NOW, weights) == AgeStatus.AGING
        assert classify_age(_days_ago(90), NOW, weights) == AgeStatus.STALE


# ---------------------------------------------------------------------------
# compute_score
# ---------------------------------------------------------------------------


class TestComputeScore:
    """Tests for the score formula."""

    def test_no_credentials_is_perfect(self) -> None:
        assert compute_score(total=0, fresh=0, aging=0, stale=0, errors=0) == 100

    def test_all_fresh_clamped_to_100(self) -> None:
        """100 - 15 + 30 exceeds the ceiling."""
        assert compute_score(total=5, fresh=5, aging=0, stale=0, errors=0) == 100

    def test_all_stale_and_erroring_clamped_to_0(self) -> None:
        assert compute_score(total=3, fresh=0, aging=0, stale=3, errors=3) == 0

    def test_mixed(self) -> None:
        """100 - 31.25 - 0 - 15 + 7.5 = 61.25 -> 61."""
        assert compute_score(total=4, fresh=1, aging=1, stale=2, errors=0) == 61

    def test_all_aging(self) -> None:
        """100 - 25 - 15 + 0 = 60."""
        assert compute_score(total=2, fresh=0, aging=2, stale=0, errors=0) == 60

    def test_rounds_half_up(self) -> None:
        """x.5 rounds up, unlike banker's rounding."""
        # 100 - 17.5 = 82.5
        weights = ScoringWeights(
            age_weight=0,
            error_weight=0,
            operational_weight=0,
            operational_offset=17.5,
        )
        assert compute_score(total=1, fresh=1, aging=0, stale=0, errors=0, weights=weights) == 83

    def test_errors_outnumbering_fresh(self) -> None:
        """The operational term goes negative when errors exceed fresh keys."""
        # 100 - 0 - (2/2)*20 - 15 + ((0 - 2)/2)*30 = 35
        assert compute_score(total=2, fresh=0, aging=0, stale=0, errors=2) == 35

    def test_custom_weights(self) -> None:
        weights = ScoringWeights(age_weight=100, operational_offset=0, operational_weight=0)
        assert compute_score(total=2, fresh=1, aging=0, stale=1, errors=0, weights=weights) == 50


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------


class TestSummarize:
    """Tests for summarize()."""

    def test_empty(self) -> None:
        summary = summarize([], now=NOW)
        assert summary.score == 100
        assert summary.total_keys == 0
        assert summary.computed_at == NOW

    def test_all_fresh_operational(self) -> None:
        records = [
            _record(name, 5, last_checked_status=IntegrationStatus.OPERATIONAL)
            for name in ("openai", "twilio", "bland")
        ]
        summary = summarize(records, now=NOW)
        assert summary.score == 100
        assert summary.fresh_keys == 3
        assert summary.error_keys == 0

    def test_all_stale_erroring(self) -> None:
        records = [
            _record(name, 365, last_checked_status=IntegrationStatus.ERROR)
            for name in ("openai", "twilio")
        ]
        summary = summarize(records, now=NOW)
        assert summary.score == 0
        assert summary.stale_keys == 2
        assert summary.error_keys == 2

    def test_bucket_counts(self, sample_records: list[CredentialRecord]) -> None:
        summary = summarize(sample_records, now=NOW)
        assert (summary.fresh_keys, summary.aging_keys, summary.stale_keys) == (1, 1, 2)
        assert summary.total_keys == 4
        assert summary.score == 61

    def test_live_error_overrides_persisted(self) -> None:
        """A live error counts even if the persisted status was operational."""
        records = [_record("openai", 5, last_checked_status=IntegrationStatus.OPERATIONAL)]
        summary = summarize(
            records, {"OpenAI Key": _live("openai", IntegrationStatus.ERROR)}, now=NOW
        )
        assert summary.error_keys == 1

    def test_live_success_overrides_persisted_error(self) -> None:
        """A live success clears a persisted error."""
        records = [_record("openai", 5, last_checked_status=IntegrationStatus.ERROR)]
        summary = summarize(records, [_live("openai", IntegrationStatus.OPERATIONAL)], now=NOW)
        assert summary.error_keys == 0

    def test_deterministic(self, sample_records: list[CredentialRecord]) -> None:
        """Identical inputs give identical summaries."""
        assert summarize(sample_records, now=NOW) == summarize(sample_records, now=NOW)

    def test_naive_timestamps_read_as_utc(self) -> None:
        """Naive record dates are scored against the default aware clock."""
        records = [CredentialRecord(service="openai", created_at=datetime.datetime(2020, 1, 1))]
        summary = summarize(records)
        assert summary.stale_keys == 1

    def test_naive_reference_time(self) -> None:
        """A naive ``now`` is treated as UTC against aware record dates."""
        records = [_record("openai", updated_days=10)]
        summary = summarize(records, now=NOW.replace(tzinfo=None))
        assert summary.fresh_keys == 1


# ---------------------------------------------------------------------------
# attention_list
# ---------------------------------------------------------------------------


class TestAttentionList:
    """Tests for attention_list()."""

    def test_fresh_key_excluded(self) -> None:
        """A key rotated 10 days ago with no errors needs no attention."""
        assert attention_list([_record("openai", 10)], now=NOW) == []

    def test_old_created_key_included(self) -> None:
        """No updated_at and created 400 days ago: stale, listed with its age."""
        record = CredentialRecord(service="twilio", created_at=_days_ago(400))
        entries = attention_list([record], now=NOW)
        assert len(entries) == 1
        assert entries[0].age_status == AgeStatus.STALE
        assert entries[0].age_days == 400

    def test_aging_key_excluded(self) -> None:
        assert attention_list([_record("openai", 100)], now=NOW) == []

    def test_errors_first_then_by_age(self) -> None:
        """Erroring entries lead regardless of age; others sort oldest first."""
        records = [
            _record("stale-200", 200),
            _record("stale-500", 500),
            _record("fresh-error", 3, last_checked_status=IntegrationStatus.ERROR),
            _record("unknown-age"),
            _record("old-error", 300, last_checked_status=IntegrationStatus.ERROR),
        ]
        entries = attention_list(records, now=NOW)
        assert [e.service for e in entries] == [
            "old-error",
            "fresh-error",
            "unknown-age",
            "stale-500",
            "stale-200",
        ]

    def test_unknown_age_sentinel(self) -> None:
        """Unknown age is reported as None, not a fake day count."""
        entries = attention_list([_record("legacy")], now=NOW)
        assert entries[0].age_days is None
        assert entries[0].age_unknown is True
        assert entries[0].effective_date is None

    def test_live_error_message_carried(self) -> None:
        """The live error message is attached to the entry."""
        entries = attention_list(
            [_record("openai", 10)],
            [_live("openai", IntegrationStatus.ERROR, "Invalid API key")],
            now=NOW,
        )
        assert entries[0].is_error is True
        assert entries[0].message == "Invalid API key"
