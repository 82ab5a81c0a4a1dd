"""Shared helpers for serialising entitlement snapshots."""

from __future__ import annotations

from typing import cast

from schemas.api.entitlements import (
    AddOnModifiersSchema,
    CreditStateSchema,
    EffectiveLimitsSchema,
    SnapshotKind,
    SubscriptionStatusResponse,
    TierLimitsSchema,
    UsageSchema,
)
from services.add_on_ledger import AddOnModifiers
from services.entitlement_context import AdminUnrestricted, AgencyEntitlementSnapshot, EntitlementSnapshot
from services.tier_catalog import TierDefinition
from services.usage_aggregator import UsageCounts


def serialize_tier(tier: TierDefinition) -> TierLimitsSchema:
    return TierLimitsSchema(
        tierId=tier.id.value if tier.id is not None else None,
        name=tier.name,
        tenantClass=tier.tenant_class.value,
        maxDashboards=tier.max_dashboards,
        keywordsPerDashboard=tier.keywords_per_dashboard,
        keywordsTotal=tier.keywords_total,
        researchCreditsPerMonth=tier.research_credits_per_month,
        rankCadence=tier.rank_cadence.value,
        aiCadence=tier.ai_cadence.value,
        maxTeamUsers=tier.max_team_users,
        hasWhiteLabel=tier.has_white_label,
        hasClientPortal=tier.has_client_portal,
        priceMonthlyUsd=tier.price_monthly_usd,
    )


def _serialize_usage(usage: UsageCounts) -> UsageSchema:
    return UsageSchema(
        dashboards=usage.dashboard_count,
        keywords=usage.keywords.total,
        targetKeywords=usage.target_keywords.total,
        teamMembers=usage.team_member_count,
        keywordsByClient=dict(usage.keywords.by_client),
        targetKeywordsByClient=dict(usage.target_keywords.by_client),
    )


def _serialize_add_ons(add_ons: AddOnModifiers) -> AddOnModifiersSchema:
    return AddOnModifiersSchema(
        extraDashboards=add_ons.extra_dashboards,
        extraResearchCredits=add_ons.extra_research_credits,
        extraKeywords=add_ons.extra_keywords,
    )


def _serialize_agency(snapshot: AgencyEntitlementSnapshot) -> SubscriptionStatusResponse:
    resets_at = snapshot.credits_reset_at.isoformat() if snapshot.credits_reset_at else None
    trial_ends_at = snapshot.trial_ends_at.isoformat() if snapshot.trial_ends_at else None
    return SubscriptionStatusResponse(
        kind="agency",
        agencyId=snapshot.agency_id,
        billingClass=snapshot.billing_class.value,
        trialEndsAt=trial_ends_at,
        trialExpired=snapshot.trial_expired,
        tier=serialize_tier(snapshot.tier),
        addOns=_serialize_add_ons(snapshot.add_ons),
        usage=_serialize_usage(snapshot.usage),
        limits=EffectiveLimitsSchema(
            maxDashboards=snapshot.effective_max_dashboards,
            keywordCap=snapshot.effective_keyword_cap,
            targetKeywordCap=snapshot.effective_target_keyword_cap,
            researchCredits=snapshot.credits_limit,
        ),
        credits=CreditStateSchema(
            used=snapshot.credits_used,
            limit=snapshot.credits_limit,
            remaining=max(snapshot.credits_limit - snapshot.credits_used, 0),
            resetsAt=resets_at,
        ),
    )


def serialize_subscription_status(snapshot: EntitlementSnapshot) -> SubscriptionStatusResponse:
    """Convert any snapshot variant into the subscription status response."""

    if isinstance(snapshot, AgencyEntitlementSnapshot):
        return _serialize_agency(snapshot)
    if isinstance(snapshot, AdminUnrestricted):
        return SubscriptionStatusResponse(
            kind="admin",
            tier=serialize_tier(snapshot.tier),
            usage=_serialize_usage(snapshot.usage),
            limits=EffectiveLimitsSchema(researchCredits=snapshot.credits_limit),
        )
    return SubscriptionStatusResponse(kind=cast(SnapshotKind, snapshot.kind))


__all__ = ["serialize_subscription_status", "serialize_tier"]
