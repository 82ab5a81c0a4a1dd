"""Purchased add-ons and the capacity modifiers they contribute."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Type

from sqlalchemy.orm import Session

from core.tier_constants import AddOnType
from models.agency import AgencyAddOn
from services.entitlement_errors import AddOnConfigurationError

logger = logging.getLogger(__name__)


class _AddOnVariant(Enum):
    """Base for per-type option enumerations. Each member carries its unit count."""

    def __init__(self, option: str, units: int) -> None:
        self.option = option
        self.units = units

    @classmethod
    def from_option(cls, option: str) -> Optional["_AddOnVariant"]:
        normalized = str(option).strip().lower()
        for member in cls:
            if member.option == normalized:
                return member
        return None


class DashboardSlotOption(_AddOnVariant):
    SLOTS_5 = ("5_slots", 5)
    SLOTS_10 = ("10_slots", 10)
    SLOTS_25 = ("25_slots", 25)


class KeywordLookupOption(_AddOnVariant):
    LOOKUPS_100 = ("100", 100)
    LOOKUPS_300 = ("300", 300)
    LOOKUPS_500 = ("500", 500)


class KeywordsTrackedOption(_AddOnVariant):
    TRACKED_100 = ("100", 100)
    TRACKED_250 = ("250", 250)
    TRACKED_500 = ("500", 500)


ADD_ON_VARIANTS: Dict[AddOnType, Type[_AddOnVariant]] = {
    AddOnType.EXTRA_DASHBOARDS: DashboardSlotOption,
    AddOnType.EXTRA_KEYWORD_LOOKUPS: KeywordLookupOption,
    AddOnType.EXTRA_KEYWORDS_TRACKED: KeywordsTrackedOption,
}


@dataclass(frozen=True, slots=True)
class AddOnModifiers:
    """Summed capacity modifiers. Addition is associative and commutative."""

    extra_dashboards: int = 0
    extra_research_credits: int = 0
    extra_keywords: int = 0

    def __add__(self, other: "AddOnModifiers") -> "AddOnModifiers":
        return AddOnModifiers(
            extra_dashboards=self.extra_dashboards + other.extra_dashboards,
            extra_research_credits=self.extra_research_credits + other.extra_research_credits,
            extra_keywords=self.extra_keywords + other.extra_keywords,
        )


def resolve_variant(
    add_on_type: str,
    add_on_option: str,
    *,
    agency_id: Optional[str] = None,
) -> Tuple[AddOnType, _AddOnVariant]:
    """Map a stored (type, option) pair onto its closed variant or raise."""
    try:
        kind = AddOnType(str(add_on_type).strip().lower())
    except ValueError:
        raise AddOnConfigurationError(add_on_type, add_on_option, agency_id=agency_id) from None
    variant = ADD_ON_VARIANTS[kind].from_option(add_on_option)
    if variant is None:
        raise AddOnConfigurationError(add_on_type, add_on_option, agency_id=agency_id)
    return kind, variant


def modifier_for(kind: AddOnType, variant: _AddOnVariant) -> AddOnModifiers:
    if kind is AddOnType.EXTRA_DASHBOARDS:
        return AddOnModifiers(extra_dashboards=variant.units)
    if kind is AddOnType.EXTRA_KEYWORD_LOOKUPS:
        return AddOnModifiers(extra_research_credits=variant.units)
    return AddOnModifiers(extra_keywords=variant.units)


def fold_add_ons(
    pairs: Iterable[Tuple[str, str]],
    *,
    agency_id: Optional[str] = None,
) -> AddOnModifiers:
    """Sum the modifiers of ``(type, option)`` pairs."""
    total = AddOnModifiers()
    for add_on_type, add_on_option in pairs:
        kind, variant = resolve_variant(add_on_type, add_on_option, agency_id=agency_id)
        total = total + modifier_for(kind, variant)
    return total


def read_add_on_modifiers(db: Session, agency_id: str) -> AddOnModifiers:
    """Load every add-on row for ``agency_id`` and fold them into modifiers."""
    rows = (
        db.query(AgencyAddOn.add_on_type, AgencyAddOn.add_on_option)
        .filter(AgencyAddOn.agency_id == agency_id)
        .all()
    )
    try:
        return fold_add_ons(((row[0], row[1]) for row in rows), agency_id=agency_id)
    except AddOnConfigurationError as exc:
        logger.error("Agency %s holds an unrecognised add-on: %s", agency_id, exc)
        raise


__all__ = [
    "ADD_ON_VARIANTS",
    "AddOnModifiers",
    "DashboardSlotOption",
    "KeywordLookupOption",
    "KeywordsTrackedOption",
    "fold_add_ons",
    "modifier_for",
    "read_add_on_modifiers",
    "resolve_variant",
]
