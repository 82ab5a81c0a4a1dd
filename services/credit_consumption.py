"""Record keyword research credit usage after a metered operation succeeds."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.agency import Agency
from services.credit_reset_clock import CreditPeriod, apply_period_reset, as_utc, utcnow
from services.entitlement_errors import EntitlementStorageError
from services.entitlement_metrics import record_credit_reset, record_credits_consumed

logger = logging.getLogger(__name__)


def consume_research_credits(
    db: Session,
    agency_id: str,
    count: int,
    *,
    now: Optional[datetime] = None,
) -> Optional[CreditPeriod]:
    """Add ``count`` to the agency's credit counter and persist it.

    The period reset runs inline first so usage never lands on an expired
    period. Availability is the caller's job (``has_research_credits``); this
    writer does not reject over-consumption. Returns ``None`` when the agency
    no longer exists or ``count`` is zero; a negative ``count`` raises
    ``ValueError``.
    """
    if count < 0:
        raise ValueError(f"count must be zero or positive, got {count}")
    if count == 0:
        return None
    current_time = as_utc(now) if now is not None else utcnow()
    try:
        agency = db.get(Agency, agency_id)
        if agency is None:
            logger.warning("Skipping credit consumption for missing agency=%s", agency_id)
            return None
        period = apply_period_reset(agency, current_time)
        used = period.used + count
        agency.keyword_research_credits_used = used
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to record %d research credits for agency=%s", count, agency_id)
        raise EntitlementStorageError("Could not record research credit usage.", agency_id=agency_id) from exc

    if period.was_reset:
        record_credit_reset()
    record_credits_consumed(count)
    logger.info("Agency %s consumed %d research credits (%d used this period).", agency_id, count, used)
    return CreditPeriod(used=used, resets_at=period.resets_at, was_reset=period.was_reset)


__all__ = ["consume_research_credits"]
