"""Tests for settings."""

from livefolio.config import Settings
from livefolio.providers.base import AssetType


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.poll_interval_seconds == 3.0
    assert settings.max_concurrency_per_class == 5
    assert settings.reconnect_base_delay == 1.0
    assert settings.reconnect_max_delay == 30.0
    assert settings.reconcile_tolerance_seconds == 1.0


def test_ttl_per_asset_class():
    settings = Settings(_env_file=None)

    assert settings.ttl_for(AssetType.CRYPTO) == 5.0
    assert settings.ttl_for(AssetType.CURRENCY) == 10.0
    assert settings.ttl_for(AssetType.COMMODITY) == 60.0
    assert settings.ttl_for(AssetType.STOCK) == 120.0


def test_env_override(monkeypatch):
    monkeypatch.setenv("BASE_CURRENCY", " usd ")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "10")

    settings = Settings(_env_file=None)

    assert settings.get_base_currency() == "USD"
    assert settings.poll_interval_seconds == 10.0


def test_run_serves_on_configured_host_and_port(monkeypatch):
    import uvicorn

    from livefolio import main

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(main, "settings", Settings(_env_file=None, host="127.0.0.1", port=9001))

    main.run()

    assert calls == [("livefolio.main:app", {"host": "127.0.0.1", "port": 9001})]
