"""Static tier catalog: capacity limits, refresh cadences, and feature flags per tier."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Mapping, Optional

from core.env import entitlement_settings
from core.tier_constants import AiCadence, RankCadence, TenantClass, TierId
from services.entitlement_errors import TierConfigurationError


@dataclass(frozen=True, slots=True)
class TierDefinition:
    """Capacity bundle for one tier. ``None`` limits mean unlimited."""

    id: Optional[TierId]
    name: str
    tenant_class: TenantClass
    max_dashboards: Optional[int]
    keywords_per_dashboard: Optional[int]
    keywords_total: Optional[int]
    research_credits_per_month: int
    rank_cadence: RankCadence
    ai_cadence: AiCadence
    max_team_users: Optional[int]
    has_white_label: bool
    has_client_portal: bool
    price_monthly_usd: Optional[int]

    @property
    def is_business(self) -> bool:
        return self.tenant_class is TenantClass.BUSINESS


def _agency_tier(
    tier_id: TierId,
    name: str,
    *,
    max_dashboards: Optional[int],
    keywords_per_dashboard: int,
    credits: int,
    rank: RankCadence,
    ai: AiCadence,
    seats: Optional[int],
    price: Optional[int],
) -> TierDefinition:
    return TierDefinition(
        id=tier_id,
        name=name,
        tenant_class=TenantClass.AGENCY,
        max_dashboards=max_dashboards,
        keywords_per_dashboard=keywords_per_dashboard,
        keywords_total=None,
        research_credits_per_month=credits,
        rank_cadence=rank,
        ai_cadence=ai,
        max_team_users=seats,
        has_white_label=True,
        has_client_portal=True,
        price_monthly_usd=price,
    )


def _business_tier(
    tier_id: TierId,
    name: str,
    *,
    keywords_total: int,
    credits: int,
    rank: RankCadence,
    ai: AiCadence,
    seats: int,
    price: int,
) -> TierDefinition:
    return TierDefinition(
        id=tier_id,
        name=name,
        tenant_class=TenantClass.BUSINESS,
        max_dashboards=1,
        keywords_per_dashboard=None,
        keywords_total=keywords_total,
        research_credits_per_month=credits,
        rank_cadence=rank,
        ai_cadence=ai,
        max_team_users=seats,
        has_white_label=False,
        has_client_portal=False,
        price_monthly_usd=price,
    )


TIERS: Mapping[TierId, TierDefinition] = {
    TierId.FREE: _agency_tier(
        TierId.FREE, "Free", max_dashboards=0, keywords_per_dashboard=0, credits=0,
        rank=RankCadence.DAILY, ai=AiCadence.WEEKLY, seats=0, price=0,
    ),
    TierId.SOLO: _agency_tier(
        TierId.SOLO, "Solo", max_dashboards=3, keywords_per_dashboard=25, credits=25,
        rank=RankCadence.DAILY, ai=AiCadence.WEEKLY, seats=1, price=147,
    ),
    TierId.STARTER: _agency_tier(
        TierId.STARTER, "Starter", max_dashboards=10, keywords_per_dashboard=50, credits=150,
        rank=RankCadence.DAILY, ai=AiCadence.DAILY, seats=2, price=297,
    ),
    TierId.GROWTH: _agency_tier(
        TierId.GROWTH, "Growth", max_dashboards=25, keywords_per_dashboard=100, credits=400,
        rank=RankCadence.DAILY, ai=AiCadence.DAILY, seats=5, price=597,
    ),
    TierId.PRO: _agency_tier(
        TierId.PRO, "Pro", max_dashboards=50, keywords_per_dashboard=200, credits=1000,
        rank=RankCadence.FOUR_TIMES_DAILY, ai=AiCadence.REALTIME, seats=15, price=997,
    ),
    TierId.ENTERPRISE: _agency_tier(
        TierId.ENTERPRISE, "Enterprise", max_dashboards=None, keywords_per_dashboard=500, credits=3000,
        rank=RankCadence.REALTIME, ai=AiCadence.REALTIME, seats=None, price=None,
    ),
    TierId.BUSINESS_LITE: _business_tier(
        TierId.BUSINESS_LITE, "Business Lite", keywords_total=15, credits=25,
        rank=RankCadence.WEEKLY, ai=AiCadence.MONTHLY, seats=1, price=79,
    ),
    TierId.BUSINESS_PRO: _business_tier(
        TierId.BUSINESS_PRO, "Business Pro", keywords_total=250, credits=300,
        rank=RankCadence.DAILY, ai=AiCadence.DAILY, seats=5, price=197,
    ),
}

_LEGACY_ALIASES: Dict[str, TierId] = {
    "biz_lite": TierId.BUSINESS_LITE,
    "biz_pro": TierId.BUSINESS_PRO,
    "trial": TierId.FREE,
}

_SEPARATORS = re.compile(r"[\s\-]+")

_RANK_INTERVALS: Dict[RankCadence, timedelta] = {
    RankCadence.REALTIME: timedelta(0),
    RankCadence.FOUR_TIMES_DAILY: timedelta(hours=6),
    RankCadence.DAILY: timedelta(days=1),
    RankCadence.WEEKLY: timedelta(weeks=1),
}

_AI_INTERVALS: Dict[AiCadence, timedelta] = {
    AiCadence.REALTIME: timedelta(0),
    AiCadence.DAILY: timedelta(days=1),
    AiCadence.WEEKLY: timedelta(weeks=1),
    AiCadence.MONTHLY: timedelta(days=30),
}


def normalize_tier_id(value: Optional[str | TierId]) -> Optional[TierId]:
    """Fold case, whitespace, and legacy aliases into a canonical tier id."""
    if value is None:
        return None
    if isinstance(value, TierId):
        return value
    if not isinstance(value, str):
        return None
    normalized = _SEPARATORS.sub("_", value.strip().lower())
    if not normalized:
        return None
    try:
        return TierId(normalized)
    except ValueError:
        return _LEGACY_ALIASES.get(normalized)


def get_tier_definition(value: Optional[str | TierId]) -> Optional[TierDefinition]:
    """Return the tier definition or ``None`` when the identifier is unknown."""
    tier_id = normalize_tier_id(value)
    if tier_id is None:
        return None
    return TIERS[tier_id]


def require_tier_definition(value: Optional[str | TierId], *, agency_id: Optional[str] = None) -> TierDefinition:
    definition = get_tier_definition(value)
    if definition is None:
        raise TierConfigurationError(None if value is None else str(value), agency_id=agency_id)
    return definition


def admin_unlimited_definition() -> TierDefinition:
    """Implicit definition for platform admins; the credit ceiling is a safety valve only."""
    return TierDefinition(
        id=None,
        name="Platform Admin",
        tenant_class=TenantClass.AGENCY,
        max_dashboards=None,
        keywords_per_dashboard=None,
        keywords_total=None,
        research_credits_per_month=entitlement_settings().admin_credit_ceiling,
        rank_cadence=RankCadence.REALTIME,
        ai_cadence=AiCadence.REALTIME,
        max_team_users=None,
        has_white_label=True,
        has_client_portal=True,
        price_monthly_usd=None,
    )


def rank_refresh_interval(tier: TierDefinition) -> timedelta:
    """Minimum spacing between rank refreshes. Zero means no throttle."""
    return _RANK_INTERVALS.get(tier.rank_cadence, timedelta(days=1))


def ai_refresh_interval(tier: TierDefinition) -> timedelta:
    """Minimum spacing between AI visibility refreshes. Zero means no throttle."""
    return _AI_INTERVALS.get(tier.ai_cadence, timedelta(days=1))


__all__ = [
    "TIERS",
    "TierDefinition",
    "admin_unlimited_definition",
    "ai_refresh_interval",
    "get_tier_definition",
    "normalize_tier_id",
    "rank_refresh_interval",
    "require_tier_definition",
]
