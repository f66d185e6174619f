"""
Display projection of a ladder window.

Rows accumulate size from the touch outward so the last row of a window
always carries the window total and a 100% depth bar.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence
from .ladder import PriceLevel

@dataclass(frozen=True)
class DisplayRow:
    """One rendered level with cumulative depth and highlight state."""
    price: Decimal
    size: Decimal
    total: Decimal
    percentage: float
    is_new: bool = False
    size_increased: bool = False
    size_decreased: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialise with decimals as strings for JSON consumers."""
        return {
            "price": str(self.price),
            "size": str(self.size),
            "total": str(self.total),
            "percentage": self.percentage,
            "is_new": self.is_new,
            "size_increased": self.size_increased,
            "size_decreased": self.size_decreased,
        }

def window_total(levels: Sequence[PriceLevel]) -> Decimal:
    return sum((level.size for level in levels), Decimal(0))

def build_display_rows(levels: Sequence[PriceLevel]) -> List[DisplayRow]:
    """
    Project touch-first levels into display rows.

    Args:
        levels: Window levels ordered from the touch outward

    Returns:
        Rows with running totals and percentage of the window total; every
        percentage is 0.0 when the window holds no depth
    """
    total_depth = window_total(levels)
    rows: List[DisplayRow] = []
    running = Decimal(0)
    for level in levels:
        running += level.size
        percentage = 0.0
        if total_depth > 0:
            percentage = float(running * 100 / total_depth)
        rows.append(
            DisplayRow(
                price=level.price,
                size=level.size,
                total=running,
                percentage=percentage,
                is_new=level.is_new,
                size_increased=level.size_increased,
                size_decreased=level.size_decreased,
            )
        )
    return rows
