from __future__ import annotations

import pytest

from rps_escrow.infra.redis_client import create_redis
from rps_escrow.models import TimeoutPolicy
from rps_escrow.settings import EngineSettings, settings_from_env


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("REDIS_URL", "RPS_KEY_PREFIX", "RPS_REQUIRE_TIMEOUTS", "RPS_TIMEOUT_POLICY", "RPS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    assert settings_from_env() == EngineSettings()


def test_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6380/3")
    monkeypatch.setenv("RPS_KEY_PREFIX", "table-7")
    monkeypatch.setenv("RPS_REQUIRE_TIMEOUTS", "Yes")
    monkeypatch.setenv("RPS_TIMEOUT_POLICY", "FORFEIT")
    monkeypatch.setenv("RPS_LOG_LEVEL", "debug")

    s = settings_from_env()
    assert s.redis_url == "redis://cache.internal:6380/3"
    assert s.key_prefix == "table-7"
    assert s.require_timeouts is True
    assert s.timeout_policy == TimeoutPolicy.forfeit
    assert s.log_level == "DEBUG"


def test_unknown_policy_is_a_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RPS_TIMEOUT_POLICY", "split")
    with pytest.raises(RuntimeError) as e:
        settings_from_env()
    assert "refund" in str(e.value)


def test_redis_client_is_built_from_settings_url() -> None:
    client = create_redis(EngineSettings(redis_url="redis://cache.internal:6380/3"))
    kwargs = client.connection_pool.connection_kwargs

    assert kwargs["host"] == "cache.internal"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 3
    assert kwargs["decode_responses"] is True
