"""
Order-book reconciliation engine.

Owns both ladders and the sequence state for a single instrument, validates
and routes feed envelopes, and publishes display-ready views to downstream
subscribers after every accepted change.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from ..config import EngineConfig
from ..ingestion.messages import (
    OrderBookMessage,
    parse_orderbook_envelope,
    parse_trade_envelope,
)
from .applicator import DEFAULT_WINDOW_LEVELS, UpdateApplicator
from .depth import DisplayRow, build_display_rows
from .highlights import DEFAULT_HIGHLIGHT_SECONDS, HighlightTimer, Scheduler
from .ladder import Ladder, PriceLevel, Side
from .price_tracker import PriceTracker
from .sequence_guard import DeltaVerdict, SequenceGuard, SyncState

LOGGER = logging.getLogger(__name__)
PublisherFn = Callable[[str, Dict[str, Any]], Awaitable[None]]
ResyncFn = Callable[[], Awaitable[None]]

class InMemoryPublisher:
    """
    In-memory message collector for testing and development.

    Buffers published views by channel for later inspection.
    """
    def __init__(self) -> None:
        self.messages: Dict[str, list[Dict[str, Any]]] = {}

    async def publish(self, channel: str, payload: Dict[str, Any]) -> None:
        """Append message to channel-specific buffer."""
        self.messages.setdefault(channel, []).append(payload)

class ReconciliationEngine:
    """
    Keeps the ask and bid ladders consistent with a sequenced feed.

    Snapshots replace both ladders. Deltas pass through the sequence guard
    first; a gap leaves the ladders untouched and asks the transport to
    resubscribe so that a fresh snapshot arrives. Trade envelopes only feed
    the price tracker.

    Attributes:
        asks: Ask ladder, lowest price first
        bids: Bid ladder, highest price first
        sequence: Snapshot/delta continuity guard
        highlights: Pending transient flag clears
        prices: Last/previous trade price
        publisher: Optional async callable accepting (channel, payload)
        symbol: Instrument reported by the most recent order-book message
    """
    def __init__(
        self,
        publisher: Optional[PublisherFn] = None,
        resync: Optional[ResyncFn] = None,
        window_levels: Optional[int] = DEFAULT_WINDOW_LEVELS,
        highlight_seconds: float = DEFAULT_HIGHLIGHT_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.publisher = publisher
        self.resync = resync
        self.window_levels = window_levels
        self.asks = Ladder(Side.ASK)
        self.bids = Ladder(Side.BID)
        self.sequence = SequenceGuard()
        self.highlights = HighlightTimer(
            highlight_seconds, resolver=self._resolve_level, scheduler=scheduler
        )
        self.applicator = UpdateApplicator(
            self.asks, self.bids, self.highlights, window_levels
        )
        self.prices = PriceTracker()
        self.symbol: Optional[str] = None
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        publisher: Optional[PublisherFn] = None,
        resync: Optional[ResyncFn] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> ReconciliationEngine:
        return cls(
            publisher=publisher,
            resync=resync,
            window_levels=config.window_levels,
            highlight_seconds=config.highlight_seconds,
            scheduler=scheduler,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> SyncState:
        return self.sequence.state

    async def handle_orderbook_envelope(self, envelope: Any) -> None:
        """Validate an order-book envelope and apply it; bad ones are dropped."""
        if self._closed:
            return
        message = parse_orderbook_envelope(envelope)
        if message is None:
            return
        await self.handle_orderbook_message(message)

    async def handle_orderbook_message(self, message: OrderBookMessage) -> None:
        """
        Apply a validated snapshot or delta.

        Args:
            message: Parsed order-book message
        """
        if self._closed:
            return
        if message.is_snapshot:
            self.applicator.apply_snapshot(message.asks, message.bids)
            self.sequence.on_snapshot(message.seq_num)
            self.symbol = message.symbol or self.symbol
            LOGGER.info(
                "Installed snapshot seqNum=%s (%d asks, %d bids)",
                message.seq_num, len(self.asks), len(self.bids),
            )
            await self._publish_book()
            return
        verdict = self.sequence.check_delta(
            message.prev_seq_num, message.seq_num
        )
        if verdict is DeltaVerdict.IGNORE:
            LOGGER.debug(
                "Ignoring delta seqNum=%s while %s",
                message.seq_num, self.sequence.state.value,
            )
        elif verdict is DeltaVerdict.GAP:
            await self._request_resync()
        else:
            self.applicator.apply_delta(message.asks, message.bids)
            self.sequence.accept(message.seq_num)
            await self._publish_book()

    async def handle_trade_envelope(self, envelope: Any) -> None:
        """Validate a trade envelope and update the last price."""
        if self._closed:
            return
        trades = parse_trade_envelope(envelope)
        if not trades:
            return
        self.prices.on_trade(trades)
        await self._publish("price", self.price_view())

    def get_top_display_rows(
        self, side: Union[Side, str], n: Optional[int] = None
    ) -> List[DisplayRow]:
        """
        Display rows for the n levels nearest the touch on one side.

        Args:
            side: Side.ASK/Side.BID or "asks"/"bids"
            n: Window size, defaults to the configured window
        """
        ladder = self._ladder(Side(side))
        if n is None:
            n = self.window_levels or DEFAULT_WINDOW_LEVELS
        return build_display_rows(ladder.top(n))

    def get_price_direction(self) -> str:
        return self.prices.direction.value

    def get_last_price(self) -> Optional[Decimal]:
        return self.prices.last_price

    def book_view(self, n: Optional[int] = None) -> Dict[str, Any]:
        """Serialisable view of both windows."""
        return {
            "symbol": self.symbol,
            "seq_num": self.sequence.last_accepted_seq_num,
            "state": self.sequence.state.value,
            "asks": [row.to_dict() for row in self.get_top_display_rows(Side.ASK, n)],
            "bids": [row.to_dict() for row in self.get_top_display_rows(Side.BID, n)],
        }

    def price_view(self) -> Dict[str, Any]:
        last, previous = self.prices.last_price, self.prices.previous_price
        return {
            "last_price": str(last) if last is not None else None,
            "previous_price": str(previous) if previous is not None else None,
            "direction": self.get_price_direction(),
        }

    def close(self) -> None:
        """Cancel pending highlight clears and stop accepting messages."""
        if self._closed:
            return
        self._closed = True
        self.highlights.close()

    async def _request_resync(self) -> None:
        try:
            if self.resync is not None:
                await self.resync()
            else:
                LOGGER.warning("Sequence gap with no resync transport attached")
        finally:
            self.sequence.resync_requested()

    async def _publish_book(self) -> None:
        await self._publish("book", self.book_view())

    async def _publish(self, channel: str, payload: Dict[str, Any]) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher(channel, payload)
        except Exception:
            LOGGER.exception("Publisher failed on %s view", channel)

    def _ladder(self, side: Side) -> Ladder:
        return self.asks if side is Side.ASK else self.bids

    def _resolve_level(self, side: Side, price: Decimal) -> Optional[PriceLevel]:
        if self._closed:
            return None
        return self._ladder(side).get(price)
