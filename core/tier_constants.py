"""Shared tier, role, and billing enumerations used across services and routers."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class TierId(str, Enum):
    FREE = "free"
    SOLO = "solo"
    STARTER = "starter"
    GROWTH = "growth"
    PRO = "pro"
    ENTERPRISE = "enterprise"
    BUSINESS_LITE = "business_lite"
    BUSINESS_PRO = "business_pro"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class TenantClass(str, Enum):
    AGENCY = "agency"
    BUSINESS = "business"


class BillingClass(str, Enum):
    CHARGE = "charge"
    NO_CHARGE = "no_charge"
    MANUAL_INVOICE = "manual_invoice"


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    AGENCY = "AGENCY"
    WORKER = "WORKER"
    CLIENT = "CLIENT"


class RankCadence(str, Enum):
    WEEKLY = "weekly"
    DAILY = "daily"
    FOUR_TIMES_DAILY = "4x_daily"
    REALTIME = "realtime"


class AiCadence(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    DAILY = "daily"
    REALTIME = "realtime"


class AddOnType(str, Enum):
    EXTRA_KEYWORD_LOOKUPS = "extra_keyword_lookups"
    EXTRA_DASHBOARDS = "extra_dashboards"
    EXTRA_KEYWORDS_TRACKED = "extra_keywords_tracked"


SUPPORTED_TIER_IDS: Sequence[TierId] = tuple(TierId)
PLATFORM_ADMIN_ROLES: frozenset[str] = frozenset({UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value})

__all__ = [
    "AddOnType",
    "AiCadence",
    "BillingClass",
    "PLATFORM_ADMIN_ROLES",
    "RankCadence",
    "SUPPORTED_TIER_IDS",
    "TenantClass",
    "TierId",
    "UserRole",
]
