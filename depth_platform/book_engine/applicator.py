"""
Translate snapshot and delta entries into ladder mutations.

Deltas carry absolute sizes per price: zero removes a level, a new price
inserts one, and a known price has its size replaced. Each mutation raises
the matching transient flag and hands it to the highlight timer.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple
from .highlights import HighlightFlag, HighlightTimer
from .ladder import Ladder, PriceLevel, Side

LOGGER = logging.getLogger(__name__)
DEFAULT_WINDOW_LEVELS = 8

Entry = Tuple[Decimal, Decimal]

class UpdateApplicator:
    """
    Sole writer of the ask and bid ladders.

    Attributes:
        asks: Ask-side ladder
        bids: Bid-side ladder
        highlights: Timer receiving every raised flag
        window_levels: Levels kept per side after each message, or None to
            keep the full ladder
    """
    def __init__(
        self,
        asks: Ladder,
        bids: Ladder,
        highlights: HighlightTimer,
        window_levels: Optional[int] = DEFAULT_WINDOW_LEVELS,
    ) -> None:
        self.asks = asks
        self.bids = bids
        self.highlights = highlights
        self.window_levels = window_levels

    def apply_snapshot(
        self, asks: Iterable[Entry], bids: Iterable[Entry]
    ) -> None:
        """Replace both ladders wholesale; installed levels carry no flags."""
        for ladder, entries in ((self.asks, asks), (self.bids, bids)):
            discarded = ladder.snapshot_replace(entries)
            for level in discarded:
                self.highlights.cancel(ladder.side, level.price)
            self._trim(ladder)

    def apply_delta(
        self, asks: Sequence[Entry], bids: Sequence[Entry]
    ) -> None:
        """Apply every ask entry, then every bid entry, in received order."""
        for ladder, entries in ((self.asks, asks), (self.bids, bids)):
            for price, size in entries:
                self.apply_entry(ladder, price, size)
            self._trim(ladder)

    def apply_entry(self, ladder: Ladder, price: Decimal, size: Decimal) -> None:
        """
        Apply one (price, size) update to a ladder.

        Args:
            ladder: Target side
            price: Level price
            size: New absolute size; zero or below removes the level
        """
        side = ladder.side
        if size <= 0:
            if ladder.remove(price) is not None:
                self.highlights.cancel(side, price)
            return
        level = ladder.get(price)
        if level is None:
            level = ladder.upsert(price, size)
            level.is_new = True
            self.highlights.schedule(side, level, HighlightFlag.IS_NEW)
            return
        previous = level.size
        ladder.upsert(price, size)
        self._set_flag(side, level, HighlightFlag.SIZE_INCREASED, size > previous)
        self._set_flag(side, level, HighlightFlag.SIZE_DECREASED, size < previous)

    def _set_flag(
        self, side: Side, level: PriceLevel, flag: HighlightFlag, value: bool
    ) -> None:
        setattr(level, flag.value, value)
        if value:
            self.highlights.schedule(side, level, flag)
        else:
            self.highlights.cancel(side, level.price, flag)

    def _trim(self, ladder: Ladder) -> None:
        if self.window_levels is None:
            return
        evicted = ladder.trim(self.window_levels)
        for level in evicted:
            self.highlights.cancel(ladder.side, level.price)
        if evicted:
            LOGGER.debug(
                "Evicted %d %s levels outside the window",
                len(evicted), ladder.side.value,
            )
