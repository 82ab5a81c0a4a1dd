"""Monthly research credit period handling."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.logging import get_logger
from models.agency import Agency
from services.entitlement_errors import EntitlementStorageError
from services.entitlement_metrics import record_credit_reset

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CreditPeriod:
    used: int
    resets_at: Optional[datetime]
    was_reset: bool = False


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def end_of_month(reference: datetime) -> datetime:
    """Last millisecond (23:59:59.999) of the calendar month containing ``reference``."""
    reference = as_utc(reference)
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999_000)


def _to_millisecond(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def period_elapsed(resets_at: Optional[datetime], now: datetime) -> bool:
    """True once ``now`` is past the stored reset time.

    Reset times are stored at millisecond precision, so ``now`` is truncated
    the same way before comparing.
    """
    stored = as_utc(resets_at)
    return stored is None or _to_millisecond(as_utc(now)) > stored


def apply_period_reset(agency: Agency, now: datetime) -> CreditPeriod:
    """Zero the counter on ``agency`` in memory when its period has elapsed.

    The caller owns the commit. Two requests crossing the same boundary both
    write ``(0, end_of_month)``; increments that land between those writes are
    lost. No row lock is taken for this.
    """
    if not period_elapsed(agency.keyword_research_credits_reset_at, now):
        return CreditPeriod(
            used=int(agency.keyword_research_credits_used or 0),
            resets_at=as_utc(agency.keyword_research_credits_reset_at),
        )
    resets_at = end_of_month(now)
    agency.keyword_research_credits_used = 0
    agency.keyword_research_credits_reset_at = resets_at
    return CreditPeriod(used=0, resets_at=resets_at, was_reset=True)


def ensure_credits_reset(db: Session, agency: Agency, *, now: Optional[datetime] = None) -> CreditPeriod:
    """Reset and persist the credit counter if the stored period is over.

    Within one period this performs no write at all.
    """
    period = apply_period_reset(agency, now or utcnow())
    if not period.was_reset:
        return period
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist credit reset for agency=%s", agency.id)
        raise EntitlementStorageError("Could not reset research credits.", agency_id=agency.id) from exc
    record_credit_reset()
    logger.info("Research credits reset for agency=%s; next reset at %s.", agency.id, period.resets_at.isoformat())
    return period


__all__ = [
    "CreditPeriod",
    "apply_period_reset",
    "as_utc",
    "end_of_month",
    "ensure_credits_reset",
    "period_elapsed",
    "utcnow",
]
