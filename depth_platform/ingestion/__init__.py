"""Ingestion layer modules for feed WebSocket connections and payloads."""
from .messages import OrderBookMessage, TradeEvent
from .ws_client import FeedWebSocketClient

__all__ = ["FeedWebSocketClient", "OrderBookMessage", "TradeEvent"]
