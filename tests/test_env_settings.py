from __future__ import annotations

from core.env import entitlement_settings, env_bool, env_int, env_str


def test_defaults_when_unset(monkeypatch) -> None:
    for key in ("ENTITLEMENT_DEFAULT_TIER", "ADMIN_CREDIT_CEILING", "TRIAL_GATE_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    settings = entitlement_settings()
    assert settings.default_tier == "solo"
    assert settings.admin_credit_ceiling == 10_000
    assert settings.trial_gate_enabled is True


def test_settings_follow_environment(monkeypatch) -> None:
    monkeypatch.setenv("ENTITLEMENT_DEFAULT_TIER", " growth ")
    monkeypatch.setenv("ADMIN_CREDIT_CEILING", "250")
    monkeypatch.setenv("TRIAL_GATE_ENABLED", "off")
    settings = entitlement_settings()
    assert settings.default_tier == "growth"
    assert settings.admin_credit_ceiling == 250
    assert settings.trial_gate_enabled is False


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("SAMPLE_INT", "-5")
    monkeypatch.setenv("SAMPLE_BOOL", "maybe")
    monkeypatch.setenv("SAMPLE_STR", "   ")
    assert env_int("SAMPLE_INT", 7, minimum=0) == 7
    assert env_bool("SAMPLE_BOOL", True) is True
    assert env_str("SAMPLE_STR", "fallback") == "fallback"
