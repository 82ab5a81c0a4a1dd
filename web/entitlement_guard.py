"""HTTP mapping for entitlement verdicts and entitlement infrastructure errors."""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

from fastapi import HTTPException, status

from services.entitlement_checks import EntitlementVerdict
from services.entitlement_errors import EntitlementError, EntitlementStorageError
from services.entitlement_guard import EntitlementLimitError

logger = logging.getLogger(__name__)


def enforce_verdict(verdict: EntitlementVerdict, *, check: Optional[str] = None) -> EntitlementVerdict:
    """Raise 403 with the verdict's message, limit, and usage when it denies."""

    if verdict.allowed:
        return verdict
    raise_limit_exception(EntitlementLimitError(verdict=verdict, check=check))


def raise_limit_exception(exc: EntitlementLimitError) -> NoReturn:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.to_detail())


def raise_entitlement_unavailable(exc: EntitlementError) -> NoReturn:
    """Storage failures map to 503 and configuration errors to 500; neither is a denial."""

    if isinstance(exc, EntitlementStorageError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.to_detail()) from exc

    logger.error("Entitlement configuration error (%s): %s", exc.code, exc.message)
    detail = {"code": "entitlement.misconfigured", "message": exc.message, "reason": exc.code}
    if exc.agency_id:
        detail["agencyId"] = exc.agency_id
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


__all__ = ["enforce_verdict", "raise_entitlement_unavailable", "raise_limit_exception"]
