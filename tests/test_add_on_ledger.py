from __future__ import annotations

import pytest

from core.tier_constants import AddOnType
from services.add_on_ledger import (
    AddOnModifiers,
    DashboardSlotOption,
    KeywordsTrackedOption,
    fold_add_ons,
    read_add_on_modifiers,
    resolve_variant,
)
from services.entitlement_errors import AddOnConfigurationError


def test_resolve_variant_maps_pairs_onto_closed_enumerations() -> None:
    kind, variant = resolve_variant("extra_dashboards", "10_slots")
    assert kind is AddOnType.EXTRA_DASHBOARDS
    assert variant is DashboardSlotOption.SLOTS_10
    assert variant.units == 10

    kind, variant = resolve_variant(" EXTRA_KEYWORDS_TRACKED ", "250")
    assert kind is AddOnType.EXTRA_KEYWORDS_TRACKED
    assert variant is KeywordsTrackedOption.TRACKED_250


@pytest.mark.parametrize(
    ("add_on_type", "add_on_option"),
    [
        ("extra_dashboards", "7_slots"),
        ("extra_keyword_lookups", "250"),
        ("extra_keywords_tracked", "300"),
        ("extra_widgets", "100"),
    ],
)
def test_unknown_pairs_raise_instead_of_zero_modifier(add_on_type: str, add_on_option: str) -> None:
    with pytest.raises(AddOnConfigurationError) as exc:
        resolve_variant(add_on_type, add_on_option, agency_id="agency-9")
    assert exc.value.to_detail()["code"] == "entitlement.unknown_add_on"
    assert exc.value.agency_id == "agency-9"


def test_two_five_slot_add_ons_equal_ten_slots() -> None:
    twice = fold_add_ons([("extra_dashboards", "5_slots"), ("extra_dashboards", "5_slots")])
    once = fold_add_ons([("extra_dashboards", "10_slots")])
    assert twice == once == AddOnModifiers(extra_dashboards=10)


def test_folding_is_order_independent() -> None:
    pairs = [
        ("extra_keyword_lookups", "100"),
        ("extra_dashboards", "25_slots"),
        ("extra_keywords_tracked", "500"),
        ("extra_keyword_lookups", "300"),
    ]
    forward = fold_add_ons(pairs)
    backward = fold_add_ons(list(reversed(pairs)))
    assert forward == backward
    assert forward == AddOnModifiers(extra_dashboards=25, extra_research_credits=400, extra_keywords=500)


def test_modifier_addition_is_associative() -> None:
    a = AddOnModifiers(extra_dashboards=5)
    b = AddOnModifiers(extra_research_credits=100)
    c = AddOnModifiers(extra_keywords=250)
    assert (a + b) + c == a + (b + c)


def test_read_add_on_modifiers_sums_agency_rows(db_session, tenants) -> None:
    agency = tenants.agency()
    other = tenants.agency()
    tenants.add_on(agency, "extra_dashboards", "5_slots")
    tenants.add_on(agency, "extra_dashboards", "5_slots")
    tenants.add_on(agency, "extra_keyword_lookups", "100")
    tenants.add_on(other, "extra_keywords_tracked", "500")
    tenants.commit()

    modifiers = read_add_on_modifiers(db_session, agency.id)
    assert modifiers == AddOnModifiers(extra_dashboards=10, extra_research_credits=100)


def test_read_add_on_modifiers_without_rows_is_zero(db_session, tenants) -> None:
    agency = tenants.agency()
    tenants.commit()
    assert read_add_on_modifiers(db_session, agency.id) == AddOnModifiers()


def test_read_add_on_modifiers_fails_on_unknown_option(db_session, tenants) -> None:
    agency = tenants.agency()
    tenants.add_on(agency, "extra_dashboards", "5_slots")
    tenants.add_on(agency, "extra_dashboards", "bogus")
    tenants.commit()

    with pytest.raises(AddOnConfigurationError):
        read_add_on_modifiers(db_session, agency.id)
