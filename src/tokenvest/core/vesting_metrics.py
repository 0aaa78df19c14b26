"""
Vesting instrumentation for tokenvest.

Provides Prometheus metrics that track how many units each vester released
or burned and how claims ended, with helper functions that are safe to call
from the claim path.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

released_units_counter = Counter(
    "tokenvest_released_units_total", "Total units released to beneficiaries", ["vester", "policy"]
)

burned_units_counter = Counter(
    "tokenvest_burned_units_total", "Total units permanently excluded by burns", ["vester"]
)

claim_outcome_counter = Counter(
    "tokenvest_claims_total",
    "Claim attempts by policy and outcome",
    ["policy", "outcome"],
)

window_rollover_counter = Counter(
    "tokenvest_window_rollovers_total",
    "Annual windows skipped forward on rollover",
    ["vester"],
)

withdrawn_all_time_gauge = Gauge(
    "tokenvest_withdrawn_all_time", "Cumulative units withdrawn by a vester", ["vester", "policy"]
)

_enabled = True


def set_metrics_enabled(enabled: bool) -> None:
    """Turn metric recording on or off (driven by the ``metrics`` config section)."""
    global _enabled
    _enabled = bool(enabled)


def record_release(vester: str, policy: str, amount: int, withdrawn_all_time: int) -> None:
    """Count a successful release and refresh the cumulative gauge."""
    if not _enabled:
        return

    claim_outcome_counter.labels(policy=policy, outcome="released").inc()
    if amount > 0:
        released_units_counter.labels(vester=vester, policy=policy).inc(amount)
    withdrawn_all_time_gauge.labels(vester=vester, policy=policy).set(withdrawn_all_time)


def record_claim_failure(policy: str, exc: Exception) -> None:
    """Count a failed claim, labelled with the exception type."""
    if not _enabled:
        return

    claim_outcome_counter.labels(policy=policy, outcome=type(exc).__name__).inc()


def record_burn(vester: str, amount: int) -> None:
    if not _enabled or amount <= 0:
        return

    burned_units_counter.labels(vester=vester).inc(amount)


def record_rollover(vester: str, windows: int) -> None:
    if not _enabled or windows <= 0:
        return

    window_rollover_counter.labels(vester=vester).inc(windows)
