"""Environment variable helpers and the entitlement settings read from them."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _parse(key: str, default: T, parser: Callable[[str], T]) -> T:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return parser(raw.strip())
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %s.", key, raw, default)
        return default


def env_int(key: str, default: int, *, minimum: Optional[int] = None) -> int:
    def _to_int(raw: str) -> int:
        value = int(raw)
        if minimum is not None and value < minimum:
            raise ValueError(f"{key} must be >= {minimum}")
        return value

    return _parse(key, default, _to_int)


def env_bool(key: str, default: bool) -> bool:
    def _to_bool(raw: str) -> bool:
        normalized = raw.lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise ValueError(f"{key} is not a boolean")

    return _parse(key, default, _to_bool)


@dataclass(frozen=True)
class EntitlementSettings:
    default_tier: str
    admin_credit_ceiling: int
    trial_gate_enabled: bool


def entitlement_settings() -> EntitlementSettings:
    """Read entitlement settings from the environment on every call."""
    return EntitlementSettings(
        default_tier=env_str("ENTITLEMENT_DEFAULT_TIER", "solo") or "solo",
        admin_credit_ceiling=env_int("ADMIN_CREDIT_CEILING", 10_000, minimum=0),
        trial_gate_enabled=env_bool("TRIAL_GATE_ENABLED", True),
    )


__all__ = ["EntitlementSettings", "entitlement_settings", "env_bool", "env_int", "env_str"]
