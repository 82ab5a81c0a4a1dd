from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from models.agency import Agency
from services.credit_reset_clock import (
    apply_period_reset,
    as_utc,
    end_of_month,
    ensure_credits_reset,
    period_elapsed,
)
from services.entitlement_errors import EntitlementStorageError

NOW = datetime(2026, 3, 15, 12, 30, tzinfo=timezone.utc)
END_OF_MARCH = datetime(2026, 3, 31, 23, 59, 59, 999_000, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("reference", "expected"),
    [
        (datetime(2026, 3, 1, tzinfo=timezone.utc), END_OF_MARCH),
        (datetime(2028, 2, 10, tzinfo=timezone.utc), datetime(2028, 2, 29, 23, 59, 59, 999_000, tzinfo=timezone.utc)),
        (datetime(2026, 12, 31, 23, 59, 59, 999_999, tzinfo=timezone.utc), datetime(2026, 12, 31, 23, 59, 59, 999_000, tzinfo=timezone.utc)),
        (datetime(2026, 4, 30, 8, 0), datetime(2026, 4, 30, 23, 59, 59, 999_000, tzinfo=timezone.utc)),
    ],
)
def test_end_of_month(reference: datetime, expected: datetime) -> None:
    assert end_of_month(reference) == expected


def test_period_elapsed_rules() -> None:
    assert period_elapsed(None, NOW) is True
    assert period_elapsed(datetime(2026, 2, 28, 23, 59, 59, 999_000, tzinfo=timezone.utc), NOW) is True
    assert period_elapsed(END_OF_MARCH, NOW) is False
    # naive values from SQLite are read as UTC
    assert period_elapsed(datetime(2026, 3, 15, 12, 30), NOW) is False


def test_apply_period_reset_leaves_current_period_untouched() -> None:
    agency = Agency(id="a1", name="A", keyword_research_credits_used=7, keyword_research_credits_reset_at=END_OF_MARCH)
    period = apply_period_reset(agency, NOW)
    assert period.was_reset is False
    assert period.used == 7
    assert agency.keyword_research_credits_used == 7


def test_elapsed_period_resets_and_persists(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=42, credits_reset_at=datetime(2026, 2, 28, 23, 59, 59, tzinfo=timezone.utc))
    tenants.commit()

    period = ensure_credits_reset(db_session, agency, now=NOW)

    assert period.was_reset is True
    assert period.used == 0
    assert period.resets_at == END_OF_MARCH

    db_session.expire_all()
    stored = db_session.get(Agency, agency.id)
    assert stored.keyword_research_credits_used == 0
    assert as_utc(stored.keyword_research_credits_reset_at) == END_OF_MARCH


def test_missing_reset_timestamp_counts_as_elapsed(db_session, tenants) -> None:
    agency = tenants.agency(credits_used=3, credits_reset_at=None)
    tenants.commit()

    period = ensure_credits_reset(db_session, agency, now=NOW)
    assert period.was_reset is True
    assert period.used == 0
    assert period.resets_at == END_OF_MARCH


def test_second_invocation_in_same_period_does_not_write(db_session, tenants, monkeypatch: pytest.MonkeyPatch) -> None:
    agency = tenants.agency(credits_used=42, credits_reset_at=datetime(2026, 1, 31, tzinfo=timezone.utc))
    tenants.commit()
    ensure_credits_reset(db_session, agency, now=NOW)

    commits: list[int] = []
    monkeypatch.setattr(db_session, "commit", lambda: commits.append(1))

    period = ensure_credits_reset(db_session, agency, now=NOW)
    assert period.was_reset is False
    assert period.used == 0
    assert period.resets_at == END_OF_MARCH
    assert commits == []


def test_storage_failure_is_wrapped(db_session, tenants, monkeypatch: pytest.MonkeyPatch) -> None:
    agency = tenants.agency(credits_used=5, credits_reset_at=None)
    tenants.commit()

    def broken_commit() -> None:
        raise OperationalError("UPDATE agencies", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", broken_commit)
    with pytest.raises(EntitlementStorageError) as exc:
        ensure_credits_reset(db_session, agency, now=NOW)
    assert exc.value.to_detail()["code"] == "entitlement.unavailable"


def test_final_millisecond_of_month_resets_once() -> None:
    last_instant = datetime(2026, 3, 31, 23, 59, 59, 999_500, tzinfo=timezone.utc)
    agency = Agency(id="a1", name="A", keyword_research_credits_used=9, keyword_research_credits_reset_at=None)

    first = apply_period_reset(agency, last_instant)
    assert first.was_reset is True
    assert first.resets_at == END_OF_MARCH

    agency.keyword_research_credits_used = 5
    second = apply_period_reset(agency, last_instant)
    assert second.was_reset is False
    assert second.used == 5
    assert agency.keyword_research_credits_used == 5

    next_month = apply_period_reset(agency, datetime(2026, 4, 1, tzinfo=timezone.utc))
    assert next_month.was_reset is True
    assert next_month.used == 0


def test_period_elapsed_ignores_sub_millisecond_precision() -> None:
    assert period_elapsed(END_OF_MARCH, datetime(2026, 3, 31, 23, 59, 59, 999_999, tzinfo=timezone.utc)) is False
    assert period_elapsed(END_OF_MARCH, datetime(2026, 4, 1, 0, 0, 0, 500, tzinfo=timezone.utc)) is True
