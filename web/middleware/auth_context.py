"""Attach the acting user's identity from upstream gateway headers.

Authentication happens in front of this service; the gateway forwards the
verified user id and role. Requests without an id continue anonymously and
are rejected by ``web.deps.get_current_user`` where a user is required.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from core.logging import get_logger
from core.tier_constants import UserRole

logger = get_logger(__name__)

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"

_BYPASS_PREFIXES = (
    "/docs",
    "/openapi",
    "/health",
    "/metrics",
)

_KNOWN_ROLES = frozenset(role.value for role in UserRole)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    role: str

    @property
    def is_agency(self) -> bool:
        return self.role == UserRole.AGENCY.value


def _should_bypass(path: str) -> bool:
    path = path or ""
    return any(path.startswith(prefix) for prefix in _BYPASS_PREFIXES)


def _normalize_role(value: Optional[str]) -> Optional[str]:
    if not value:
        return UserRole.AGENCY.value
    role = value.strip().upper().replace("-", "_")
    return role if role in _KNOWN_ROLES else None


async def auth_context_middleware(request: Request, call_next):
    path = request.url.path if request.url else ""
    if request.method == "OPTIONS" or _should_bypass(path):
        return await call_next(request)

    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        return await call_next(request)

    raw_role = request.headers.get(USER_ROLE_HEADER)
    role = _normalize_role(raw_role)
    if role is None:
        logger.warning("Rejecting request for user=%s with unknown role '%s'.", user_id, raw_role)
        detail = {"code": "auth.role_invalid", "message": "Unknown user role."}
        return JSONResponse(status_code=401, content={"detail": detail})

    request.state.user = AuthenticatedUser(id=user_id, role=role)
    return await call_next(request)


__all__ = ["AuthenticatedUser", "USER_ID_HEADER", "USER_ROLE_HEADER", "auth_context_middleware"]
