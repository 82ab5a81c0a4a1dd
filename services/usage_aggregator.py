"""Exact, uncached usage counts for an agency."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Type

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.agency import UserAgency
from models.client import Client, ClientAgencyIncluded, Keyword, TargetKeyword


@dataclass(frozen=True, slots=True)
class KeywordTally:
    total: int = 0
    by_client: Mapping[str, int] = field(default_factory=dict)

    def for_client(self, client_id: str) -> int:
        return int(self.by_client.get(client_id, 0))


@dataclass(frozen=True, slots=True)
class UsageCounts:
    """Point-in-time consumption for one agency."""

    client_ids: Sequence[str] = ()
    dashboard_count: int = 0
    keywords: KeywordTally = field(default_factory=KeywordTally)
    target_keywords: KeywordTally = field(default_factory=KeywordTally)
    team_member_count: int = 0


def agency_user_ids(db: Session, agency_id: str) -> List[str]:
    rows = db.query(UserAgency.user_id).filter(UserAgency.agency_id == agency_id).all()
    return [row[0] for row in rows]


def accessible_clients(db: Session, user_ids: Sequence[str]) -> List[Client]:
    """Dashboards owned by any member of the agency."""
    if not user_ids:
        return []
    return (
        db.query(Client)
        .filter(Client.user_id.in_(list(user_ids)))
        .order_by(Client.created_at, Client.id)
        .all()
    )


def included_client_ids(db: Session, agency_id: str) -> set[str]:
    rows = db.query(ClientAgencyIncluded.client_id).filter(ClientAgencyIncluded.agency_id == agency_id).all()
    return {row[0] for row in rows}


def count_keywords(db: Session, model: Type[Keyword] | Type[TargetKeyword], client_ids: Sequence[str]) -> KeywordTally:
    """Count rows of ``model`` per client across ``client_ids``."""
    if not client_ids:
        return KeywordTally()
    rows = (
        db.query(model.client_id, func.count(model.id))
        .filter(model.client_id.in_(list(client_ids)))
        .group_by(model.client_id)
        .all()
    )
    by_client: Dict[str, int] = {}
    total = 0
    for client_id, count in rows:
        by_client[client_id] = int(count)
        total += int(count)
    return KeywordTally(total=total, by_client=by_client)


def count_team_members(db: Session, agency_id: str) -> int:
    value = db.query(func.count(UserAgency.id)).filter(UserAgency.agency_id == agency_id).scalar()
    return int(value or 0)


def aggregate_usage(db: Session, agency_id: str) -> UsageCounts:
    """Compute dashboard, keyword, target keyword, and seat usage for ``agency_id``.

    Dashboards are counted without the agency's own default dashboard and
    without complimentary ("included") dashboards. Keyword counts cover every
    accessible dashboard, excluded or not.
    """
    user_ids = agency_user_ids(db, agency_id)
    clients = accessible_clients(db, user_ids)
    client_ids = [client.id for client in clients]

    excluded = included_client_ids(db, agency_id) if clients else set()
    dashboard_count = sum(
        1
        for client in clients
        if client.id not in excluded
        and not (client.is_agency_own_dashboard and client.belongs_to_agency_id == agency_id)
    )

    return UsageCounts(
        client_ids=tuple(client_ids),
        dashboard_count=dashboard_count,
        keywords=count_keywords(db, Keyword, client_ids),
        target_keywords=count_keywords(db, TargetKeyword, client_ids),
        team_member_count=count_team_members(db, agency_id),
    )


def aggregate_platform_usage(db: Session) -> UsageCounts:
    """Platform-wide totals shown to admins. No exclusions apply."""
    dashboards = db.query(func.count(Client.id)).scalar() or 0
    keywords = db.query(func.count(Keyword.id)).scalar() or 0
    target_keywords = db.query(func.count(TargetKeyword.id)).scalar() or 0
    return UsageCounts(
        dashboard_count=int(dashboards),
        keywords=KeywordTally(total=int(keywords)),
        target_keywords=KeywordTally(total=int(target_keywords)),
    )


__all__ = [
    "KeywordTally",
    "UsageCounts",
    "accessible_clients",
    "aggregate_platform_usage",
    "aggregate_usage",
    "agency_user_ids",
    "count_keywords",
    "count_team_members",
    "included_client_ids",
]
