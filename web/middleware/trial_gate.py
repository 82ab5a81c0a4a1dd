"""Block agency panel requests once a no-charge trial has ended."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Tuple

from fastapi import Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import database
from core.env import entitlement_settings
from core.logging import get_logger
from services.entitlement_checks import TRIAL_EXPIRED_CODE, TRIAL_EXPIRED_MESSAGE
from services.entitlement_context import build_entitlement_context
from services.entitlement_errors import EntitlementError, EntitlementStorageError
from services.entitlement_metrics import record_trial_block

logger = get_logger(__name__)

# (method, path prefix) pairs an expired trial may still reach.
TRIAL_ALLOWLIST: Tuple[Tuple[str, str], ...] = (
    ("GET", "/api/agencies/me"),
    ("PUT", "/api/agencies/me"),
    ("GET", "/api/seo/agency/subscription"),
    ("GET", "/api/seo/agency/tiers"),
    ("POST", "/api/agencies/activate-trial-subscription"),
    ("POST", "/api/agencies/setup-intent-for-activation"),
)


def is_allowlisted(method: str, path: str) -> bool:
    method = (method or "").upper()
    path = (path or "").split("?", 1)[0].rstrip("/") or "/"
    for allowed_method, prefix in TRIAL_ALLOWLIST:
        if method != allowed_method:
            continue
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def _session_factory(request: Request) -> Callable[[], Session]:
    factory = getattr(request.app.state, "session_factory", None)
    return factory or database.SessionLocal


def _now(request: Request) -> Optional[datetime]:
    clock = getattr(request.app.state, "clock", None)
    return clock() if clock else None


def _trial_expired(factory: Callable[[], Session], user_id: str, role: str, now: Optional[datetime]) -> bool:
    db = factory()
    try:
        snapshot = build_entitlement_context(db, user_id, role, now=now)
        return snapshot.trial_expired
    finally:
        db.close()


async def trial_gate_middleware(request: Request, call_next):
    if not entitlement_settings().trial_gate_enabled:
        return await call_next(request)

    user = getattr(request.state, "user", None)
    if user is None or not user.is_agency:
        return await call_next(request)

    path = request.url.path if request.url else ""
    if is_allowlisted(request.method, path):
        return await call_next(request)

    try:
        expired = await run_in_threadpool(_trial_expired, _session_factory(request), user.id, user.role, _now(request))
    except EntitlementStorageError as exc:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": exc.to_detail()})
    except EntitlementError as exc:
        detail = {"code": "entitlement.misconfigured", "message": exc.message}
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})

    if not expired:
        return await call_next(request)

    record_trial_block()
    logger.info("Trial gate blocked %s %s for user=%s.", request.method, path, user.id)
    detail = {"code": TRIAL_EXPIRED_CODE, "message": TRIAL_EXPIRED_MESSAGE}
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": detail})


__all__ = ["TRIAL_ALLOWLIST", "is_allowlisted", "trial_gate_middleware"]
