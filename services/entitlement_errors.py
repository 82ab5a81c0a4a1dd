"""Exception types raised while resolving entitlements.

Business denials are never exceptions; they come back as verdicts from
``services.entitlement_checks``. The classes below cover the cases where the
engine cannot tell whether something is allowed.
"""

from __future__ import annotations

from typing import Dict, Optional


class EntitlementError(RuntimeError):
    """Base class for entitlement infrastructure failures."""

    code = "entitlement.error"

    def __init__(self, message: str, *, agency_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.agency_id = agency_id

    def to_detail(self) -> Dict[str, Optional[str]]:
        detail: Dict[str, Optional[str]] = {"code": self.code, "message": self.message}
        if self.agency_id:
            detail["agencyId"] = self.agency_id
        return detail


class TierConfigurationError(EntitlementError):
    """Raised when an agency carries a tier identifier the catalog does not know."""

    code = "entitlement.unknown_tier"

    def __init__(self, tier_value: Optional[str], *, agency_id: Optional[str] = None) -> None:
        super().__init__(f"Subscription tier '{tier_value}' is not recognised.", agency_id=agency_id)
        self.tier_value = tier_value


class AddOnConfigurationError(EntitlementError):
    """Raised when an add-on row does not map to a known (type, option) variant."""

    code = "entitlement.unknown_add_on"

    def __init__(self, add_on_type: str, add_on_option: str, *, agency_id: Optional[str] = None) -> None:
        super().__init__(
            f"Add-on option '{add_on_option}' is not valid for add-on type '{add_on_type}'.",
            agency_id=agency_id,
        )
        self.add_on_type = add_on_type
        self.add_on_option = add_on_option


class BillingConfigurationError(EntitlementError):
    """Raised when an agency carries a billing class the engine does not know."""

    code = "entitlement.unknown_billing_class"

    def __init__(self, billing_value: Optional[str], *, agency_id: Optional[str] = None) -> None:
        super().__init__(f"Billing class '{billing_value}' is not recognised.", agency_id=agency_id)
        self.billing_value = billing_value


class EntitlementStorageError(EntitlementError):
    """Raised when storage fails while computing or persisting entitlement state."""

    code = "entitlement.unavailable"


__all__ = [
    "AddOnConfigurationError",
    "BillingConfigurationError",
    "EntitlementError",
    "EntitlementStorageError",
    "TierConfigurationError",
]
