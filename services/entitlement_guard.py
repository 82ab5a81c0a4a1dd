"""Exception-style enforcement for call sites that do not branch on verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

from services.entitlement_checks import EntitlementVerdict


@dataclass(slots=True)
class EntitlementLimitError(RuntimeError):
    """Raised by ``ensure_allowed`` when a verdict denies the operation."""

    verdict: EntitlementVerdict
    check: Optional[str] = None

    def __post_init__(self) -> None:
        RuntimeError.__init__(self, self.verdict.message or "Operation not allowed by the current plan.")

    @property
    def code(self) -> str:
        return self.verdict.code or "LIMIT_EXCEEDED"

    def to_detail(self) -> Dict[str, Union[str, int, None]]:
        detail: Dict[str, Union[str, int, None]] = {
            "code": self.code,
            "message": self.verdict.message,
        }
        if self.verdict.limit is not None:
            detail["limit"] = self.verdict.limit
        if self.verdict.current is not None:
            detail["current"] = self.verdict.current
        if self.check:
            detail["check"] = self.check
        return detail


def ensure_allowed(verdict: EntitlementVerdict, *, check: Optional[str] = None) -> EntitlementVerdict:
    """Return ``verdict`` unchanged when allowed, otherwise raise ``EntitlementLimitError``."""

    if verdict.allowed:
        return verdict
    raise EntitlementLimitError(verdict=verdict, check=check)


__all__ = ["EntitlementLimitError", "ensure_allowed"]
