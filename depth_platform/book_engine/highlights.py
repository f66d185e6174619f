"""
Deferred clearing of transient level highlights.

A flag raised on a price level (new, size up, size down) stays visible for a
fixed duration and is then cleared by a one-shot timer. Timers are keyed by
(side, price, flag); raising the same flag again cancels the earlier timer
and the newest event owns the clear.
"""
from __future__ import annotations
import asyncio
import itertools
import logging
from decimal import Decimal
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple
from .ladder import PriceLevel, Side

LOGGER = logging.getLogger(__name__)
DEFAULT_HIGHLIGHT_SECONDS = 0.5

Scheduler = Callable[[float, Callable[[], None]], Any]
LevelResolver = Callable[[Side, Decimal], Optional[PriceLevel]]
TimerKey = Tuple[Side, Decimal, "HighlightFlag"]

class HighlightFlag(str, Enum):
    """Transient flags carried by PriceLevel, valued by attribute name."""
    IS_NEW = "is_new"
    SIZE_INCREASED = "size_increased"
    SIZE_DECREASED = "size_decreased"

def loop_scheduler(delay: float, callback: Callable[[], None]) -> Any:
    """Schedule callback on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)

class HighlightTimer:
    """
    Owns every pending highlight clear for one engine.

    Each scheduled clear remembers the generation id it was issued with and
    the exact level record it targets. When it fires it only mutates state
    if it is still the newest timer for its key, the resolver still maps
    the price to that same record, and the timer has not been closed.

    Attributes:
        duration: Seconds a flag stays raised
    """
    def __init__(
        self,
        duration: float = DEFAULT_HIGHLIGHT_SECONDS,
        resolver: Optional[LevelResolver] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.duration = duration
        self._resolve = resolver
        self._schedule = scheduler or loop_scheduler
        self._generations = itertools.count(1)
        self._pending: Dict[TimerKey, Tuple[int, PriceLevel, Any]] = {}
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(
        self, side: Side, price: Decimal, flag: HighlightFlag
    ) -> bool:
        return (side, price, flag) in self._pending

    def schedule(
        self, side: Side, level: PriceLevel, flag: HighlightFlag
    ) -> None:
        """
        Arrange for flag on level to be cleared after duration seconds.

        Any earlier timer for the same (side, price, flag) is cancelled.
        Without a running event loop the flag stays raised until
        expire_all() is called.
        """
        if self._closed:
            return
        key = (side, level.price, flag)
        self._cancel_key(key)
        generation = next(self._generations)
        try:
            handle = self._schedule(
                self.duration, partial(self._expire, key, generation)
            )
        except RuntimeError:
            LOGGER.debug(
                "No event loop to clear %s at %s %s", flag.value,
                side.value, level.price,
            )
            handle = None
        self._pending[key] = (generation, level, handle)

    def cancel(
        self,
        side: Side,
        price: Decimal,
        flag: Optional[HighlightFlag] = None,
    ) -> None:
        """Drop pending clears for one flag, or every flag, at a price."""
        flags = [flag] if flag is not None else list(HighlightFlag)
        for item in flags:
            self._cancel_key((side, price, item))

    def expire_all(self) -> None:
        """Clear every pending flag now, as if all timers had fired."""
        for key in list(self._pending):
            generation = self._pending[key][0]
            self._cancel_handle(self._pending[key][2])
            self._expire(key, generation)

    def close(self) -> None:
        """Cancel all timers; later callbacks become no-ops."""
        self._closed = True
        for _, _, handle in self._pending.values():
            self._cancel_handle(handle)
        self._pending.clear()

    def _expire(self, key: TimerKey, generation: int) -> None:
        if self._closed:
            return
        pending = self._pending.get(key)
        if pending is None or pending[0] != generation:
            return
        del self._pending[key]
        side, price, flag = key
        level = pending[1]
        if self._resolve is not None and self._resolve(side, price) is not level:
            return
        setattr(level, flag.value, False)

    def _cancel_key(self, key: TimerKey) -> None:
        pending = self._pending.pop(key, None)
        if pending is not None:
            self._cancel_handle(pending[2])

    @staticmethod
    def _cancel_handle(handle: Any) -> None:
        if handle is not None:
            handle.cancel()
