"""Pydantic schemas for subscription usage, limits, and tier listings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

SnapshotKind = Literal["agency", "admin", "no_agency"]


class TierLimitsSchema(BaseModel):
    tierId: Optional[str] = Field(default=None, description="Canonical tier identifier. Null for platform admins.")
    name: str = Field(..., description="Display name of the tier.")
    tenantClass: str = Field(..., description="agency or business.")
    maxDashboards: Optional[int] = Field(default=None, description="Base dashboard limit. Null means unlimited.")
    keywordsPerDashboard: Optional[int] = Field(default=None, description="Agency tiers only.")
    keywordsTotal: Optional[int] = Field(default=None, description="Business tiers only.")
    researchCreditsPerMonth: int = Field(default=0, description="Monthly keyword research allotment.")
    rankCadence: str = Field(..., description="Minimum rank refresh cadence.")
    aiCadence: str = Field(..., description="Minimum AI visibility refresh cadence.")
    maxTeamUsers: Optional[int] = Field(default=None, description="Seat limit. Null means unlimited.")
    hasWhiteLabel: bool = False
    hasClientPortal: bool = False
    priceMonthlyUsd: Optional[int] = Field(default=None, description="List price. Null for custom pricing.")


class AddOnModifiersSchema(BaseModel):
    extraDashboards: int = 0
    extraResearchCredits: int = 0
    extraKeywords: int = 0


class UsageSchema(BaseModel):
    dashboards: int = 0
    keywords: int = 0
    targetKeywords: int = 0
    teamMembers: int = 0
    keywordsByClient: dict[str, int] = Field(default_factory=dict)
    targetKeywordsByClient: dict[str, int] = Field(default_factory=dict)


class EffectiveLimitsSchema(BaseModel):
    maxDashboards: Optional[int] = Field(default=None, description="Tier limit plus dashboard add-ons. Null means unlimited.")
    keywordCap: Optional[int] = Field(default=None, description="Account-wide keyword cap. Null means uncapped.")
    targetKeywordCap: Optional[int] = Field(default=None, description="Account-wide target keyword cap.")
    researchCredits: int = Field(default=0, description="Monthly credits including lookup add-ons.")


class CreditStateSchema(BaseModel):
    used: int = 0
    limit: int = 0
    remaining: int = 0
    resetsAt: Optional[str] = Field(default=None, description="ISO timestamp when the counter next resets.")


class SubscriptionStatusResponse(BaseModel):
    kind: SnapshotKind = Field(..., description="Which snapshot variant produced the response.")
    agencyId: Optional[str] = None
    billingClass: Optional[str] = None
    trialEndsAt: Optional[str] = None
    trialExpired: bool = False
    tier: Optional[TierLimitsSchema] = None
    addOns: AddOnModifiersSchema = Field(default_factory=AddOnModifiersSchema)
    usage: UsageSchema = Field(default_factory=UsageSchema)
    limits: EffectiveLimitsSchema = Field(default_factory=EffectiveLimitsSchema)
    credits: Optional[CreditStateSchema] = None


__all__ = [
    "AddOnModifiersSchema",
    "CreditStateSchema",
    "EffectiveLimitsSchema",
    "SnapshotKind",
    "SubscriptionStatusResponse",
    "TierLimitsSchema",
    "UsageSchema",
]
