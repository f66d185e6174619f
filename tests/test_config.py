import os

import pytest

from depth_platform.config import (
    EngineConfig,
    FeedConfig,
    load_env_file,
    parse_window_levels,
)


def test_feed_config_derives_channels_from_symbol(monkeypatch):
    monkeypatch.setenv("DEPTH_SYMBOL", "ethpfc")
    monkeypatch.setenv("DEPTH_WS_RECONNECT_BACKOFF", "5")
    monkeypatch.delenv("DEPTH_ORDERBOOK_CHANNEL", raising=False)
    monkeypatch.delenv("DEPTH_TRADE_CHANNEL", raising=False)

    config = FeedConfig.from_env()

    assert config.orderbook_channel == "update:ETHPFC_0"
    assert config.trade_channel == "tradeHistoryApi:ETHPFC"
    assert config.reconnect_backoff == 5.0


def test_feed_config_channel_override(monkeypatch):
    monkeypatch.setenv("DEPTH_ORDERBOOK_CHANNEL", "update:BTCPFC_5")
    assert FeedConfig.from_env().orderbook_channel == "update:BTCPFC_5"


def test_engine_config_from_env(monkeypatch):
    monkeypatch.setenv("DEPTH_WINDOW_LEVELS", "12")
    monkeypatch.setenv("DEPTH_HIGHLIGHT_SECONDS", "1.0")
    config = EngineConfig.from_env()
    assert config.window_levels == 12
    assert config.highlight_seconds == 1.0


def test_parse_window_levels():
    assert parse_window_levels(None) == 8
    assert parse_window_levels(" ") == 8
    assert parse_window_levels("none") is None
    assert parse_window_levels("0") is None
    with pytest.raises(ValueError):
        parse_window_levels("-1")
    with pytest.raises(ValueError):
        parse_window_levels("many")


def test_load_env_file_keeps_exported_values(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("# comment\nDEPTH_SYMBOL=XRPPFC\nDEPTH_TRADE_WS_URL=wss://x\n")
    monkeypatch.setenv("DEPTH_SYMBOL", "BTCPFC")
    monkeypatch.delenv("DEPTH_TRADE_WS_URL", raising=False)

    load_env_file(env_file)

    assert os.environ["DEPTH_SYMBOL"] == "BTCPFC"
    assert os.environ["DEPTH_TRADE_WS_URL"] == "wss://x"
    monkeypatch.delenv("DEPTH_TRADE_WS_URL")
