"""Allow/deny decisions over an entitlement snapshot.

Checks never raise for business reasons. A denial is a verdict carrying a
user-facing message with the numeric limit and current usage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Union

from core.logging import get_logger
from services.credit_reset_clock import as_utc, utcnow
from services.entitlement_context import AgencyEntitlementSnapshot, EntitlementSnapshot
from services.entitlement_metrics import record_check
from services.tier_catalog import ai_refresh_interval, rank_refresh_interval

logger = get_logger(__name__)

TRIAL_EXPIRED_CODE = "TRIAL_EXPIRED"
LIMIT_EXCEEDED_CODE = "LIMIT_EXCEEDED"
REFRESH_THROTTLED_CODE = "REFRESH_THROTTLED"

TRIAL_EXPIRED_MESSAGE = (
    "Your free trial has ended. Please choose a paid plan at Subscription to continue using the agency panel."
)


class RefreshKind(str, Enum):
    RANK = "rank"
    AI = "ai"


@dataclass(frozen=True, slots=True)
class EntitlementVerdict:
    allowed: bool
    message: Optional[str] = None
    code: Optional[str] = None
    limit: Optional[int] = None
    current: Optional[int] = None

    @classmethod
    def allow(cls) -> "EntitlementVerdict":
        return cls(allowed=True)

    @classmethod
    def trial_expired(cls) -> "EntitlementVerdict":
        return cls(allowed=False, message=TRIAL_EXPIRED_MESSAGE, code=TRIAL_EXPIRED_CODE)

    @classmethod
    def over_limit(cls, message: str, *, limit: int, current: int) -> "EntitlementVerdict":
        return cls(allowed=False, message=message, code=LIMIT_EXCEEDED_CODE, limit=limit, current=current)

    def to_detail(self) -> Dict[str, Union[str, int, None]]:
        return {
            "code": self.code,
            "message": self.message,
            "limit": self.limit,
            "current": self.current,
        }


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _finish(check: str, verdict: EntitlementVerdict, snapshot: EntitlementSnapshot) -> EntitlementVerdict:
    record_check(check, verdict.allowed)
    if not verdict.allowed:
        logger.debug(
            "Entitlement check %s denied (kind=%s, code=%s, limit=%s, current=%s).",
            check,
            snapshot.kind,
            verdict.code,
            verdict.limit,
            verdict.current,
        )
    return verdict


def _agency(snapshot: EntitlementSnapshot) -> Optional[AgencyEntitlementSnapshot]:
    """Only agency snapshots carry limits; the other variants allow everything."""
    if isinstance(snapshot, AgencyEntitlementSnapshot):
        return snapshot
    return None


def _require_count(value: int, name: str) -> int:
    if value < 0:
        raise ValueError(f"{name} must be zero or positive, got {value}")
    return value


def can_add_dashboard(snapshot: EntitlementSnapshot) -> EntitlementVerdict:
    agency = _agency(snapshot)
    if agency is None:
        return _finish("dashboard", EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish("dashboard", EntitlementVerdict.trial_expired(), snapshot)

    limit = agency.effective_max_dashboards
    current = agency.dashboard_count
    if limit is not None and current >= limit:
        message = (
            f"Your plan allows up to {_plural(limit, 'dashboard')}. You currently have {current}. "
            "Upgrade your plan or purchase extra dashboard slots to add more."
        )
        return _finish("dashboard", EntitlementVerdict.over_limit(message, limit=limit, current=current), snapshot)
    return _finish("dashboard", EntitlementVerdict.allow(), snapshot)


def _keyword_verdict(
    agency: AgencyEntitlementSnapshot,
    *,
    label: str,
    cap: Optional[int],
    total: int,
    existing_on_dashboard: int,
    add_count: int,
) -> EntitlementVerdict:
    if cap is not None and total + add_count > cap:
        message = (
            f"Your plan allows up to {_plural(cap, label)} in total. You currently have {total}; "
            f"adding {add_count} would exceed the limit. Upgrade your plan or purchase extra keywords."
        )
        return EntitlementVerdict.over_limit(message, limit=cap, current=total)

    if agency.tier.is_business:
        return EntitlementVerdict.allow()

    per_dashboard = agency.tier.keywords_per_dashboard
    if per_dashboard is not None and existing_on_dashboard + add_count > per_dashboard:
        message = (
            f"Your plan allows up to {_plural(per_dashboard, label)} per dashboard. "
            f"This dashboard has {existing_on_dashboard}; adding {add_count} would exceed the limit."
        )
        return EntitlementVerdict.over_limit(message, limit=per_dashboard, current=existing_on_dashboard)
    return EntitlementVerdict.allow()


def can_add_keywords(snapshot: EntitlementSnapshot, client_id: str, add_count: int = 1) -> EntitlementVerdict:
    """Account-wide cap first, then the per-dashboard limit for agency tiers."""
    _require_count(add_count, "add_count")
    agency = _agency(snapshot)
    if agency is None:
        return _finish("keywords", EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish("keywords", EntitlementVerdict.trial_expired(), snapshot)

    verdict = _keyword_verdict(
        agency,
        label="keyword",
        cap=agency.effective_keyword_cap,
        total=agency.usage.keywords.total,
        existing_on_dashboard=agency.usage.keywords.for_client(client_id),
        add_count=add_count,
    )
    return _finish("keywords", verdict, snapshot)


def can_add_target_keywords(snapshot: EntitlementSnapshot, client_id: str, add_count: int = 1) -> EntitlementVerdict:
    _require_count(add_count, "add_count")
    agency = _agency(snapshot)
    if agency is None:
        return _finish("target_keywords", EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish("target_keywords", EntitlementVerdict.trial_expired(), snapshot)

    verdict = _keyword_verdict(
        agency,
        label="target keyword",
        cap=agency.effective_target_keyword_cap,
        total=agency.usage.target_keywords.total,
        existing_on_dashboard=agency.usage.target_keywords.for_client(client_id),
        add_count=add_count,
    )
    return _finish("target_keywords", verdict, snapshot)


def can_add_team_member(snapshot: EntitlementSnapshot) -> EntitlementVerdict:
    agency = _agency(snapshot)
    if agency is None:
        return _finish("team_member", EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish("team_member", EntitlementVerdict.trial_expired(), snapshot)

    limit = agency.tier.max_team_users
    current = agency.team_member_count
    if limit is not None and current >= limit:
        message = (
            f"Your plan allows up to {_plural(limit, 'team member')}. You currently have {current}. "
            "Upgrade your plan to invite more people."
        )
        return _finish("team_member", EntitlementVerdict.over_limit(message, limit=limit, current=current), snapshot)
    return _finish("team_member", EntitlementVerdict.allow(), snapshot)


def has_research_credits(snapshot: EntitlementSnapshot, need: int = 1) -> EntitlementVerdict:
    _require_count(need, "need")
    agency = _agency(snapshot)
    if agency is None:
        return _finish("research_credits", EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish("research_credits", EntitlementVerdict.trial_expired(), snapshot)

    used = agency.credits_used
    limit = agency.credits_limit
    if used + need > limit:
        reset_hint = ""
        if agency.credits_reset_at is not None:
            reset_hint = f" Credits reset on {agency.credits_reset_at.date().isoformat()}."
        message = (
            f"Your plan allows up to {_plural(limit, 'keyword research credit')} per month. "
            f"You have used {used}; this request needs {need}.{reset_hint}"
        )
        return _finish("research_credits", EntitlementVerdict.over_limit(message, limit=limit, current=used), snapshot)
    return _finish("research_credits", EntitlementVerdict.allow(), snapshot)


def _refresh_interval(agency: AgencyEntitlementSnapshot, kind: RefreshKind) -> timedelta:
    if kind is RefreshKind.RANK:
        return rank_refresh_interval(agency.tier)
    return ai_refresh_interval(agency.tier)


def can_refresh(
    snapshot: EntitlementSnapshot,
    kind: Union[RefreshKind, str],
    last_refresh_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> EntitlementVerdict:
    """Throttle rank or AI visibility refreshes to the tier's cadence."""
    refresh_kind = RefreshKind(kind)
    check = f"{refresh_kind.value}_refresh"
    agency = _agency(snapshot)
    if agency is None:
        return _finish(check, EntitlementVerdict.allow(), snapshot)
    if agency.trial_expired:
        return _finish(check, EntitlementVerdict.trial_expired(), snapshot)

    interval = _refresh_interval(agency, refresh_kind)
    last = as_utc(last_refresh_at)
    if last is None or interval <= timedelta(0):
        return _finish(check, EntitlementVerdict.allow(), snapshot)

    current_time = as_utc(now) if now is not None else utcnow()
    next_allowed = last + interval
    if current_time < next_allowed:
        cadence = agency.tier.rank_cadence if refresh_kind is RefreshKind.RANK else agency.tier.ai_cadence
        label = "rankings" if refresh_kind is RefreshKind.RANK else "AI visibility"
        message = (
            f"Your plan refreshes {label} {cadence.value.replace('_', ' ')}. "
            f"The next refresh is available at {next_allowed.isoformat()}."
        )
        verdict = EntitlementVerdict(allowed=False, message=message, code=REFRESH_THROTTLED_CODE)
        return _finish(check, verdict, snapshot)
    return _finish(check, EntitlementVerdict.allow(), snapshot)


__all__ = [
    "EntitlementVerdict",
    "LIMIT_EXCEEDED_CODE",
    "REFRESH_THROTTLED_CODE",
    "RefreshKind",
    "TRIAL_EXPIRED_CODE",
    "TRIAL_EXPIRED_MESSAGE",
    "can_add_dashboard",
    "can_add_keywords",
    "can_add_target_keywords",
    "can_add_team_member",
    "can_refresh",
    "has_research_credits",
]
