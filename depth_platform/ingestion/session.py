"""
Feed session wiring two transports to one reconciliation engine.

The order-book transport feeds snapshots and deltas, the trade transport
feeds last-price updates. A sequence gap on the order-book side cycles that
transport's subscription.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional
from ..book_engine.engine import PublisherFn, ReconciliationEngine
from ..book_engine.highlights import Scheduler
from ..config import EngineConfig, FeedConfig
from .ws_client import FeedWebSocketClient

LOGGER = logging.getLogger(__name__)

class FeedSession:
    """
    Owns the engine and both transports for a single instrument.

    Use as an async context manager, or call run() and close() explicitly.
    close() is idempotent and leaves the engine unable to mutate state.

    Attributes:
        feed_config: Endpoints and channels
        engine: Reconciliation engine receiving both streams
        orderbook_client: Transport for the order-book channel
        trade_client: Transport for the trade channel
    """
    def __init__(
        self,
        feed_config: FeedConfig,
        engine_config: Optional[EngineConfig] = None,
        publisher: Optional[PublisherFn] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.feed_config = feed_config
        self.engine = ReconciliationEngine.from_config(
            engine_config or EngineConfig(),
            publisher=publisher,
            resync=self._resync_orderbook,
            scheduler=scheduler,
        )
        self.orderbook_client = FeedWebSocketClient(
            feed_config.orderbook_ws_url,
            self.engine.handle_orderbook_envelope,
            heartbeat_interval=feed_config.heartbeat_interval,
            reconnect_backoff=feed_config.reconnect_backoff,
            name="orderbook",
        )
        self.orderbook_client.subscribe(feed_config.orderbook_channel)
        self.trade_client = FeedWebSocketClient(
            feed_config.trade_ws_url,
            self.engine.handle_trade_envelope,
            heartbeat_interval=feed_config.heartbeat_interval,
            reconnect_backoff=feed_config.reconnect_backoff,
            name="trade",
        )
        self.trade_client.subscribe(feed_config.trade_channel)
        self._closed = False

    async def run(self) -> None:
        """Drive both transports until close() is called."""
        await asyncio.gather(
            self.orderbook_client.connect_forever(),
            self.trade_client.connect_forever(),
        )

    async def close(self) -> None:
        """Stop both transports and tear down the engine."""
        if self._closed:
            return
        self._closed = True
        LOGGER.info("Closing feed session for %s", self.feed_config.symbol)
        await self.orderbook_client.stop()
        await self.trade_client.stop()
        self.engine.close()

    async def __aenter__(self) -> FeedSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _resync_orderbook(self) -> None:
        await self.orderbook_client.resubscribe(
            self.feed_config.orderbook_channel
        )
