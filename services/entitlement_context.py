"""Build the per-request entitlement snapshot for an acting user.

A snapshot is computed from storage on every call and never cached. Three
shapes exist:

* ``AgencyEntitlementSnapshot``: the user belongs to an agency; all checks
  evaluate against its tier, add-ons, and usage.
* ``AdminUnrestricted``: platform admin roles; every check allows.
* ``NoAgencyMembership``: a non-admin user without an agency row. Checks
  allow (the account has nothing to meter) but the case is logged so that
  mis-provisioned accounts stay visible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.env import entitlement_settings
from core.logging import get_logger
from core.tier_constants import PLATFORM_ADMIN_ROLES, BillingClass, TierId
from models.agency import Agency, UserAgency
from services.add_on_ledger import AddOnModifiers, read_add_on_modifiers
from services.credit_reset_clock import as_utc, ensure_credits_reset, utcnow
from services.entitlement_errors import (
    BillingConfigurationError,
    EntitlementError,
    EntitlementStorageError,
)
from services.tier_catalog import TIERS, TierDefinition, admin_unlimited_definition, require_tier_definition
from services.usage_aggregator import UsageCounts, aggregate_platform_usage, aggregate_usage

logger = get_logger(__name__)

_LEGACY_BILLING_CLASSES = {
    "paid": BillingClass.CHARGE,
    "free": BillingClass.NO_CHARGE,
    "trial": BillingClass.NO_CHARGE,
    "custom": BillingClass.MANUAL_INVOICE,
    "invoice": BillingClass.MANUAL_INVOICE,
}


@dataclass(frozen=True, slots=True)
class EffectiveCaps:
    max_dashboards: Optional[int]
    keyword_cap: Optional[int]
    target_keyword_cap: Optional[int]
    research_credits: int


@dataclass(frozen=True, slots=True)
class AgencyEntitlementSnapshot:
    agency_id: str
    tier: TierDefinition
    billing_class: BillingClass
    trial_ends_at: Optional[datetime]
    trial_expired: bool
    usage: UsageCounts
    credits_used: int
    credits_limit: int
    credits_reset_at: Optional[datetime]
    add_ons: AddOnModifiers
    effective_max_dashboards: Optional[int]
    effective_keyword_cap: Optional[int]
    effective_target_keyword_cap: Optional[int]
    computed_at: datetime

    kind = "agency"

    @property
    def dashboard_count(self) -> int:
        return self.usage.dashboard_count

    @property
    def total_keywords(self) -> int:
        return self.usage.keywords.total

    @property
    def total_target_keywords(self) -> int:
        return self.usage.target_keywords.total

    @property
    def team_member_count(self) -> int:
        return self.usage.team_member_count


@dataclass(frozen=True, slots=True)
class AdminUnrestricted:
    user_id: str
    role: str
    tier: TierDefinition = field(default_factory=admin_unlimited_definition)
    usage: UsageCounts = field(default_factory=UsageCounts)

    kind = "admin"
    trial_expired = False

    @property
    def credits_limit(self) -> int:
        return self.tier.research_credits_per_month


@dataclass(frozen=True, slots=True)
class NoAgencyMembership:
    user_id: str
    role: str

    kind = "no_agency"
    trial_expired = False


EntitlementSnapshot = Union[AgencyEntitlementSnapshot, AdminUnrestricted, NoAgencyMembership]


def normalize_billing_class(value: Optional[str], *, agency_id: Optional[str] = None) -> BillingClass:
    """Map stored billing class strings (including legacy spellings) onto ``BillingClass``."""
    if value is None:
        return BillingClass.CHARGE
    normalized = str(value).strip().lower().replace("-", "_")
    try:
        return BillingClass(normalized)
    except ValueError:
        pass
    legacy = _LEGACY_BILLING_CLASSES.get(normalized)
    if legacy is None:
        logger.error("Agency %s has unrecognised billing class '%s'.", agency_id, value)
        raise BillingConfigurationError(value, agency_id=agency_id)
    return legacy


def resolve_agency_tier(agency: Agency, billing_class: BillingClass) -> TierDefinition:
    """Tier definition for ``agency``.

    A missing tier means ``free`` for no-charge agencies. Paying agencies that
    predate tier tracking use ``ENTITLEMENT_DEFAULT_TIER``. A tier that is set
    but unknown raises ``TierConfigurationError``.
    """
    raw = agency.subscription_tier
    if raw is None or not str(raw).strip():
        if billing_class is BillingClass.NO_CHARGE:
            return TIERS[TierId.FREE]
        fallback = entitlement_settings().default_tier
        logger.warning(
            "Agency %s has no subscription tier recorded; using default tier '%s'.",
            agency.id,
            fallback,
        )
        return require_tier_definition(fallback, agency_id=agency.id)
    try:
        return require_tier_definition(raw, agency_id=agency.id)
    except EntitlementError:
        logger.error("Agency %s has unrecognised subscription tier '%s'.", agency.id, raw)
        raise


def is_trial_expired(billing_class: BillingClass, trial_ends_at: Optional[datetime], now: datetime) -> bool:
    if billing_class is not BillingClass.NO_CHARGE:
        return False
    ends_at = as_utc(trial_ends_at)
    return ends_at is None or ends_at <= as_utc(now)


def compute_effective_caps(tier: TierDefinition, add_ons: AddOnModifiers) -> EffectiveCaps:
    """Fold add-on modifiers into the tier's base limits.

    Dashboard slots only extend a finite base. Agency tiers with unlimited
    dashboards get no account-wide keyword cap; the per-dashboard limit still
    applies in the checks.
    """
    max_dashboards: Optional[int] = None
    if tier.max_dashboards is not None:
        max_dashboards = tier.max_dashboards + add_ons.extra_dashboards

    keyword_cap: Optional[int] = None
    if tier.is_business:
        keyword_cap = (tier.keywords_total or 0) + add_ons.extra_keywords
    elif max_dashboards is not None and tier.keywords_per_dashboard is not None:
        keyword_cap = max_dashboards * tier.keywords_per_dashboard + add_ons.extra_keywords

    return EffectiveCaps(
        max_dashboards=max_dashboards,
        keyword_cap=keyword_cap,
        target_keyword_cap=keyword_cap,
        research_credits=tier.research_credits_per_month + add_ons.extra_research_credits,
    )


def build_agency_snapshot(db: Session, agency: Agency, *, now: Optional[datetime] = None) -> AgencyEntitlementSnapshot:
    """Snapshot for a loaded agency row.

    Reads run first so a configuration error leaves storage untouched; the
    credit reset write, when due, happens last.
    """
    now = as_utc(now) if now is not None else utcnow()
    billing_class = normalize_billing_class(agency.billing_class, agency_id=agency.id)
    tier = resolve_agency_tier(agency, billing_class)
    add_ons = read_add_on_modifiers(db, agency.id)
    usage = aggregate_usage(db, agency.id)
    caps = compute_effective_caps(tier, add_ons)
    period = ensure_credits_reset(db, agency, now=now)

    return AgencyEntitlementSnapshot(
        agency_id=agency.id,
        tier=tier,
        billing_class=billing_class,
        trial_ends_at=as_utc(agency.trial_ends_at),
        trial_expired=is_trial_expired(billing_class, agency.trial_ends_at, now),
        usage=usage,
        credits_used=period.used,
        credits_limit=caps.research_credits,
        credits_reset_at=period.resets_at,
        add_ons=add_ons,
        effective_max_dashboards=caps.max_dashboards,
        effective_keyword_cap=caps.keyword_cap,
        effective_target_keyword_cap=caps.target_keyword_cap,
        computed_at=now,
    )


def find_agency_for_user(db: Session, user_id: str) -> Optional[Agency]:
    membership = (
        db.query(UserAgency)
        .filter(UserAgency.user_id == user_id)
        .order_by(UserAgency.id)
        .first()
    )
    if membership is None:
        return None
    return db.get(Agency, membership.agency_id)


def build_entitlement_context(
    db: Session,
    user_id: str,
    role: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> EntitlementSnapshot:
    """Resolve the acting user's agency and compute a fresh snapshot.

    Storage failures surface as ``EntitlementStorageError``; configuration
    errors (unknown tier, billing class, or add-on) propagate unchanged.
    """
    normalized_role = (role or "").strip().upper()
    try:
        if normalized_role in PLATFORM_ADMIN_ROLES:
            return AdminUnrestricted(user_id=user_id, role=normalized_role, usage=aggregate_platform_usage(db))

        agency = find_agency_for_user(db, user_id)
        if agency is None:
            logger.info("User %s (role=%s) has no agency membership; no limits applied.", user_id, normalized_role)
            return NoAgencyMembership(user_id=user_id, role=normalized_role)

        return build_agency_snapshot(db, agency, now=now)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to build entitlement context for user=%s", user_id)
        raise EntitlementStorageError("Entitlement state is temporarily unavailable.") from exc


def load_agency_snapshot(db: Session, agency_id: str, *, now: Optional[datetime] = None) -> Optional[AgencyEntitlementSnapshot]:
    """Snapshot by agency id for workers that have no acting user."""
    try:
        agency = db.get(Agency, agency_id)
        if agency is None:
            return None
        return build_agency_snapshot(db, agency, now=now)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to build entitlement snapshot for agency=%s", agency_id)
        raise EntitlementStorageError("Entitlement state is temporarily unavailable.", agency_id=agency_id) from exc


__all__ = [
    "AdminUnrestricted",
    "AgencyEntitlementSnapshot",
    "EffectiveCaps",
    "EntitlementSnapshot",
    "NoAgencyMembership",
    "build_agency_snapshot",
    "build_entitlement_context",
    "compute_effective_caps",
    "find_agency_for_user",
    "is_trial_expired",
    "load_agency_snapshot",
    "normalize_billing_class",
    "resolve_agency_tier",
]
