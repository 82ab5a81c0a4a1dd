"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Callable, Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

import database
from services.entitlement_checks import (
    EntitlementVerdict,
    can_add_dashboard,
    can_add_team_member,
    has_research_credits,
)
from services.entitlement_context import EntitlementSnapshot, build_entitlement_context
from services.entitlement_errors import EntitlementError
from web.entitlement_guard import enforce_verdict, raise_entitlement_unavailable
from web.middleware.auth_context import AuthenticatedUser


def get_session(request: Request) -> Generator[Session, None, None]:
    """Database session from the app's configured factory (``database.SessionLocal`` by default)."""
    factory = getattr(request.app.state, "session_factory", None) or database.SessionLocal
    db = factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request) -> AuthenticatedUser:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "auth.required", "message": "Sign in to continue."},
        )
    return user


def get_entitlement_context(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> EntitlementSnapshot:
    """Fresh snapshot for the acting user; infrastructure failures never fall through as allow."""
    clock = getattr(request.app.state, "clock", None)
    try:
        return build_entitlement_context(db, user.id, user.role, now=clock() if clock else None)
    except EntitlementError as exc:
        raise_entitlement_unavailable(exc)


def _require(check: Callable[[EntitlementSnapshot], EntitlementVerdict], name: str):
    def _dependency(snapshot: EntitlementSnapshot = Depends(get_entitlement_context)) -> EntitlementSnapshot:
        enforce_verdict(check(snapshot), check=name)
        return snapshot

    return _dependency


def require_dashboard_capacity():
    """Dependency factory that rejects the request when no dashboard slot is left."""
    return _require(can_add_dashboard, "dashboard")


def require_team_seat():
    return _require(can_add_team_member, "team_member")


def require_research_credits(need: int = 1):
    """Dependency factory that ensures ``need`` research credits remain this period."""
    return _require(lambda snapshot: has_research_credits(snapshot, need), "research_credits")


__all__ = [
    "get_current_user",
    "get_entitlement_context",
    "get_session",
    "require_dashboard_capacity",
    "require_research_credits",
    "require_team_seat",
]
