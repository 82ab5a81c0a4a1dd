"""Prometheus counters for entitlement decisions and credit metering."""

from __future__ import annotations

from typing import Optional

from prometheus_client import Counter

from core.logging import get_logger

logger = get_logger(__name__)

_CHECK_COUNTER: Optional[Counter] = None
_TRIAL_BLOCK_COUNTER: Optional[Counter] = None
_CREDITS_CONSUMED_COUNTER: Optional[Counter] = None
_CREDIT_RESET_COUNTER: Optional[Counter] = None

try:
    _CHECK_COUNTER = Counter(
        "entitlement_checks_total",
        "Entitlement check verdicts.",
        ("check", "result"),
    )
    _TRIAL_BLOCK_COUNTER = Counter(
        "trial_gate_blocks_total",
        "Requests rejected because the agency trial has expired.",
    )
    _CREDITS_CONSUMED_COUNTER = Counter(
        "research_credits_consumed_total",
        "Keyword research credits recorded as used.",
    )
    _CREDIT_RESET_COUNTER = Counter(
        "credit_resets_total",
        "Monthly research credit counters zeroed.",
    )
except ValueError:
    # Collectors survive module reloads in the default registry.
    logger.debug("Prometheus metrics already registered; reusing existing collectors.")


def record_check(check: str, allowed: bool) -> None:
    if _CHECK_COUNTER is None:
        return
    _CHECK_COUNTER.labels(check=check, result="allowed" if allowed else "denied").inc()


def record_trial_block() -> None:
    if _TRIAL_BLOCK_COUNTER is None:
        return
    _TRIAL_BLOCK_COUNTER.inc()


def record_credits_consumed(count: int) -> None:
    if _CREDITS_CONSUMED_COUNTER is None or count <= 0:
        return
    _CREDITS_CONSUMED_COUNTER.inc(count)


def record_credit_reset() -> None:
    if _CREDIT_RESET_COUNTER is None:
        return
    _CREDIT_RESET_COUNTER.inc()


__all__ = ["record_check", "record_credit_reset", "record_credits_consumed", "record_trial_block"]
