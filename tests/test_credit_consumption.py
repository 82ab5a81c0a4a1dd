from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from models.agency import Agency
from services.credit_consumption import consume_research_credits
from services.entitlement_errors import EntitlementStorageError

NOW = datetime(2026, 7, 20, 8, 0, tzinfo=timezone.utc)
END_OF_JULY = datetime(2026, 7, 31, 23, 59, 59, 999_000, tzinfo=timezone.utc)


def _stored(db_session, agency_id: str) -> Agency:
    db_session.expire_all()
    return db_session.get(Agency, agency_id)


def test_consumption_adds_to_current_period(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=20, credits_reset_at=END_OF_JULY)
    tenants.commit()

    period = consume_research_credits(db_session, agency.id, 10, now=NOW)

    assert period.used == 30
    assert period.was_reset is False
    assert _stored(db_session, agency.id).keyword_research_credits_used == 30


def test_consumption_resets_stale_period_first(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=90, credits_reset_at=datetime(2026, 6, 30, 23, 59, 59, tzinfo=timezone.utc))
    tenants.commit()

    period = consume_research_credits(db_session, agency.id, 4, now=NOW)

    assert period.used == 4
    assert period.was_reset is True
    assert period.resets_at == END_OF_JULY
    stored = _stored(db_session, agency.id)
    assert stored.keyword_research_credits_used == 4


def test_consumption_does_not_validate_against_the_limit(db_session, tenants) -> None:
    agency = tenants.agency(tier="solo", credits_used=25, credits_reset_at=END_OF_JULY)
    tenants.commit()

    period = consume_research_credits(db_session, agency.id, 50, now=NOW)
    assert period.used == 75


def test_missing_agency_and_zero_count_are_no_ops(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=1, credits_reset_at=END_OF_JULY)
    tenants.commit()

    assert consume_research_credits(db_session, "missing", 3, now=NOW) is None
    assert consume_research_credits(db_session, agency.id, 0, now=NOW) is None
    assert _stored(db_session, agency.id).keyword_research_credits_used == 1


def test_negative_count_is_rejected(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=4, credits_reset_at=END_OF_JULY)
    tenants.commit()

    with pytest.raises(ValueError):
        consume_research_credits(db_session, agency.id, -2, now=NOW)
    assert _stored(db_session, agency.id).keyword_research_credits_used == 4


def test_storage_failure_is_wrapped(db_session, tenants, monkeypatch: pytest.MonkeyPatch) -> None:
    agency = tenants.agency(credits_used=1, credits_reset_at=END_OF_JULY)
    tenants.commit()

    def broken_commit() -> None:
        raise OperationalError("UPDATE agencies", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", broken_commit)
    with pytest.raises(EntitlementStorageError) as exc:
        consume_research_credits(db_session, agency.id, 2, now=NOW)
    assert exc.value.agency_id == agency.id
