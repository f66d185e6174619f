"""
Price-level ladders for one side of the book.

Each ladder keeps its levels in a SortedDict keyed by price so that the
levels nearest the touch can be read without re-sorting: asks are walked
from the lowest price upward, bids from the highest price downward.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple
from sortedcontainers import SortedDict

class Side(str, Enum):
    """Book side. Values match the keys used in feed payloads."""
    ASK = "asks"
    BID = "bids"

@dataclass
class PriceLevel:
    """
    Resting aggregate depth at one price plus its transient highlight flags.

    Attributes:
        price: Unique key within a ladder
        size: Aggregate resting quantity, always > 0 while in a ladder
        is_new: Level was inserted by the most recent delta touching it
        size_increased: Last delta raised the size
        size_decreased: Last delta lowered the size
    """
    price: Decimal
    size: Decimal
    is_new: bool = False
    size_increased: bool = False
    size_decreased: bool = False

class Ladder:
    """
    Ordered collection of price levels for a single side.

    The ladder never holds a level with size <= 0 and never holds two
    levels at the same price.

    Attributes:
        side: Which side of the book this ladder represents
    """
    def __init__(self, side: Side) -> None:
        self.side = side
        self._levels: SortedDict[Decimal, PriceLevel] = SortedDict()

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, price: object) -> bool:
        return price in self._levels

    def __iter__(self) -> Iterator[PriceLevel]:
        """Iterate levels starting at the touch."""
        values = self._levels.values()
        if self.side is Side.BID:
            return reversed(values)
        return iter(values)

    def get(self, price: Decimal) -> Optional[PriceLevel]:
        """Return the level at price, or None."""
        return self._levels.get(price)

    def upsert(self, price: Decimal, size: Decimal) -> PriceLevel:
        """
        Insert a level or replace the size of an existing one.

        Args:
            price: Level price
            size: New aggregate size, must be positive

        Returns:
            The stored level record
        """
        level = self._levels.get(price)
        if level is None:
            level = PriceLevel(price=price, size=size)
            self._levels[price] = level
        else:
            level.size = size
        return level

    def remove(self, price: Decimal) -> Optional[PriceLevel]:
        """Delete the level at price, returning it if one existed."""
        return self._levels.pop(price, None)

    def snapshot_replace(
        self, entries: Iterable[Tuple[Decimal, Decimal]]
    ) -> List[PriceLevel]:
        """
        Discard every level and install the given entries with clear flags.

        Entries with a non-positive size are skipped. A repeated price keeps
        the last size seen.

        Args:
            entries: (price, size) pairs in any order

        Returns:
            The levels that were discarded
        """
        discarded = list(self._levels.values())
        self._levels.clear()
        for price, size in entries:
            if size <= 0:
                self._levels.pop(price, None)
                continue
            self._levels[price] = PriceLevel(price=price, size=size)
        return discarded

    def top(self, n: int) -> List[PriceLevel]:
        """
        Return up to n levels nearest the touch.

        Asks come back in strictly increasing price order, bids in strictly
        decreasing order. n is clamped to the available depth.
        """
        count = max(0, min(n, len(self._levels)))
        if self.side is Side.BID:
            start = len(self._levels) - 1
            return [
                self._levels.peekitem(start - idx)[1] for idx in range(count)
            ]
        return [self._levels.peekitem(idx)[1] for idx in range(count)]

    def trim(self, max_levels: int) -> List[PriceLevel]:
        """
        Drop every level outside the top max_levels window.

        Returns:
            The evicted levels, nearest-to-touch first
        """
        evicted: List[PriceLevel] = []
        while len(self._levels) > max(0, max_levels):
            index = 0 if self.side is Side.BID else -1
            evicted.append(self._levels.popitem(index)[1])
        evicted.reverse()
        return evicted

    def best(self) -> Optional[PriceLevel]:
        """Touch level, or None when the side is empty."""
        if not self._levels:
            return None
        index = -1 if self.side is Side.BID else 0
        return self._levels.peekitem(index)[1]

    def clear(self) -> None:
        self._levels.clear()
