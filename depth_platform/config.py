"""
Environment-driven configuration helpers.

Provides dataclasses for the feed transports and the reconciliation engine.
The module also exposes a lightweight .env loader to avoid introducing
external dependencies.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def load_env_file(path: Path | str = Path(".env")) -> None:
    """
    Populate os.environ from a simple KEY=VALUE file if present.

    Lines beginning with # or blank lines are ignored. Existing environment
    variables are left unchanged to favor explicitly exported values.
    """
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


@dataclass
class FeedConfig:
    """Order-book and trade WebSocket endpoints for one instrument."""

    orderbook_ws_url: str = "wss://ws.btse.com/ws/oss/futures"
    trade_ws_url: str = "wss://ws.btse.com/ws/futures"
    symbol: str = "BTCPFC"
    orderbook_channel: Optional[str] = None
    trade_channel: Optional[str] = None
    heartbeat_interval: float = 15.0
    reconnect_backoff: float = 2.0

    def __post_init__(self) -> None:
        self.symbol = self.symbol.upper()
        if not self.orderbook_channel:
            self.orderbook_channel = f"update:{self.symbol}_0"
        if not self.trade_channel:
            self.trade_channel = f"tradeHistoryApi:{self.symbol}"

    @classmethod
    def from_env(cls) -> FeedConfig:
        """Create config from environment variables."""
        return cls(
            orderbook_ws_url=os.getenv(
                "DEPTH_ORDERBOOK_WS_URL", cls.orderbook_ws_url
            ),
            trade_ws_url=os.getenv("DEPTH_TRADE_WS_URL", cls.trade_ws_url),
            symbol=os.getenv("DEPTH_SYMBOL", cls.symbol),
            orderbook_channel=os.getenv("DEPTH_ORDERBOOK_CHANNEL"),
            trade_channel=os.getenv("DEPTH_TRADE_CHANNEL"),
            heartbeat_interval=float(
                os.getenv("DEPTH_WS_HEARTBEAT_INTERVAL", cls.heartbeat_interval)
            ),
            reconnect_backoff=float(
                os.getenv("DEPTH_WS_RECONNECT_BACKOFF", cls.reconnect_backoff)
            ),
        )


@dataclass
class EngineConfig:
    """
    Reconciliation engine tuning.

    window_levels bounds how many levels each ladder keeps; None keeps the
    full ladder and only the display view is windowed.
    """

    window_levels: Optional[int] = 8
    highlight_seconds: float = 0.5

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from environment variables."""
        return cls(
            window_levels=parse_window_levels(
                os.getenv("DEPTH_WINDOW_LEVELS")
            ),
            highlight_seconds=float(
                os.getenv("DEPTH_HIGHLIGHT_SECONDS", cls.highlight_seconds)
            ),
        )


def parse_window_levels(raw: Optional[str]) -> Optional[int]:
    """
    Interpret DEPTH_WINDOW_LEVELS.

    Unset keeps the default of 8, "0" or "none" disables trimming.
    """
    if raw is None or not raw.strip():
        return EngineConfig.window_levels
    value = raw.strip().lower()
    if value in {"0", "none", "unbounded"}:
        return None
    levels = int(value)
    if levels < 0:
        raise ValueError("DEPTH_WINDOW_LEVELS must not be negative")
    return levels


def ensure_env_loaded(path: Path | str = Path(".env")) -> None:
    """
    Convenience wrapper around load_env_file.

    Call this at CLI entrypoints before reading FeedConfig or EngineConfig
    so the environment has values available.
    """
    load_env_file(path)
