"""Last-trade price and its direction relative to the previous trade."""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence
from ..ingestion.messages import TradeEvent

class PriceDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    SAME = "same"

@dataclass
class TradePriceState:
    last_price: Optional[Decimal] = None
    previous_price: Optional[Decimal] = None

class PriceTracker:
    """
    Track the latest trade price from batches of trade events.

    Only the first event of a batch is consulted; the feed lists the most
    recent trade first.
    """
    def __init__(self) -> None:
        self.state = TradePriceState()

    def on_trade(self, trades: Sequence[TradeEvent]) -> bool:
        """
        Shift the last price into previous and record the batch head.

        Returns:
            False when the batch was empty and nothing changed
        """
        if not trades:
            return False
        self.state.previous_price = self.state.last_price
        self.state.last_price = trades[0].price
        return True

    @property
    def last_price(self) -> Optional[Decimal]:
        return self.state.last_price

    @property
    def previous_price(self) -> Optional[Decimal]:
        return self.state.previous_price

    @property
    def direction(self) -> PriceDirection:
        last, previous = self.state.last_price, self.state.previous_price
        if last is None or previous is None:
            return PriceDirection.SAME
        if last > previous:
            return PriceDirection.UP
        if last < previous:
            return PriceDirection.DOWN
        return PriceDirection.SAME
