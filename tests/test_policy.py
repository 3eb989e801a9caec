import os

import pytest

from dispatch.policy import DispatchPolicy, default_dispatch_policy, policy_from_env


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    for name in (
        "DISPATCH_TICK_INTERVAL_MS",
        "DISPATCH_HOSPITAL_ALERT_DELAY_MS",
        "DISPATCH_ROUTE_STEPS",
        "DISPATCH_INITIAL_ETA_MINUTES",
        "DISPATCH_ETA_DECREMENT_EVERY",
        "DISPATCH_JITTER_DEGREES",
        "DISPATCH_RECENT_LIMIT",
        "DISPATCH_REFERENCE_POINT",
        "DISPATCH_REPLACE_ACTIVE_BOOKING",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_the_reference_behaviour():
    policy = default_dispatch_policy()

    assert policy.tick_interval_ms == 600
    assert policy.hospital_alert_delay_ms == 3000
    assert policy.route_steps == 40
    assert policy.initial_eta_minutes == 18
    assert policy.eta_decrement_every == 4
    assert policy.recent_limit == 8
    assert policy.reference_point == (29.967, 77.551)


@pytest.mark.parametrize("overrides", [
    {"tick_interval_ms": 0},
    {"route_steps": 0},
    {"initial_eta_minutes": -1},
    {"eta_decrement_every": 0},
    {"jitter_degrees": -0.1},
    {"recent_limit": 0},
    {"hospital_alert_delay_ms": -5},
])
def test_validate_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        DispatchPolicy(**overrides).validate()


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DISPATCH_TICK_INTERVAL_MS", "100")
    monkeypatch.setenv("DISPATCH_ROUTE_STEPS", "10")
    monkeypatch.setenv("DISPATCH_REFERENCE_POINT", "12.97, 77.59")
    monkeypatch.setenv("DISPATCH_REPLACE_ACTIVE_BOOKING", "false")

    policy = policy_from_env()

    assert policy.tick_interval_ms == 100
    assert policy.route_steps == 10
    assert policy.reference_point == (12.97, 77.59)
    assert policy.replace_active_booking is False
    assert policy.initial_eta_minutes == 18


def test_env_values_come_from_a_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("DISPATCH_ROUTE_STEPS=12\n", encoding="utf-8")

    try:
        assert policy_from_env().route_steps == 12
    finally:
        os.environ.pop("DISPATCH_ROUTE_STEPS", None)


def test_bad_env_values_raise(monkeypatch):
    monkeypatch.setenv("DISPATCH_ROUTE_STEPS", "many")
    with pytest.raises(ValueError):
        policy_from_env()


def test_env_values_are_validated(monkeypatch):
    monkeypatch.setenv("DISPATCH_TICK_INTERVAL_MS", "-1")
    with pytest.raises(ValueError):
        policy_from_env()
