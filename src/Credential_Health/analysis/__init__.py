"""Security dashboard analysis: age classification, scoring, roll-ups.

Re-exports the public API:
    from Credential_Health.analysis import summarize, attention_list
"""

from Credential_Health.analysis.rollup import Integration, best_status, rollup_integrations
from Credential_Health.analysis.security_scoring import (
    age_in_days,
    attention_list,
    classify_age,
    compute_score,
    effective_date,
    summarize,
)

__all__ = [
    "Integration",
    "age_in_days",
    "attention_list",
    "best_status",
    "classify_age",
    "compute_score",
    "effective_date",
    "rollup_integrations",
    "summarize",
]
