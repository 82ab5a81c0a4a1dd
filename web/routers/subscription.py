"""Subscription routes exposing tier limits, usage, and remaining credits."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from schemas.api.entitlements import SubscriptionStatusResponse, TierLimitsSchema
from services.entitlement_context import EntitlementSnapshot
from services.entitlement_serializers import serialize_subscription_status, serialize_tier
from services.tier_catalog import TIERS
from web.deps import get_entitlement_context

router = APIRouter(prefix="/seo/agency", tags=["Subscription"])


@router.get(
    "/subscription",
    response_model=SubscriptionStatusResponse,
    summary="Return the agency's tier, current usage, and effective limits.",
)
def read_subscription(snapshot: EntitlementSnapshot = Depends(get_entitlement_context)) -> SubscriptionStatusResponse:
    return serialize_subscription_status(snapshot)


@router.get("/tiers", response_model=list[TierLimitsSchema], summary="List the tier catalog.")
def read_tier_catalog() -> list[TierLimitsSchema]:
    return [serialize_tier(tier) for tier in TIERS.values()]
