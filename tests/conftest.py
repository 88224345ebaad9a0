"""Shared fixtures for the test suite."""

from __future__ import annotations

from dataclasses import replace

import pytest

from postwatch.ca_sniper.config import (
    APIKeys,
    Config,
    MonitorConfig,
    StorageConfig,
    TradingConfig,
    WebhookConfig,
)


@pytest.fixture
def make_config(tmp_path):
    """Build a Config with fast pacing and overridable sections."""

    def _make(auto_execute: bool = False, **monitor_overrides) -> Config:
        monitor = replace(
            MonitorConfig(),
            target_username="elonmusk",
            check_interval=0.01,
            post_pacing_seconds=0,
            watch_keywords=(),
        )
        if monitor_overrides:
            monitor = replace(monitor, **monitor_overrides)
        trading = replace(
            TradingConfig(),
            auto_execute=auto_execute,
            execution_pacing_seconds=0,
            max_buy_amount_sol=None,
            max_buy_amount_bnb=None,
        )
        return Config(
            api_keys=APIKeys(twitter_bearer_token="test-token"),
            monitor=monitor,
            trading=trading,
            webhook=WebhookConfig(url=""),
            storage=StorageConfig(alert_log_path=str(tmp_path / "alerts.jsonl")),
        )

    return _make
