"""Order-book ladders, reconciliation and display projection."""
from .engine import ReconciliationEngine
from .ladder import Ladder, PriceLevel, Side

__all__ = ["Ladder", "PriceLevel", "ReconciliationEngine", "Side"]
