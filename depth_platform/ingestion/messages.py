"""
Boundary schema for order-book and trade feed envelopes.

Every inbound payload is validated here before it reaches the engine.
Envelopes that are missing their "data" field or fail validation are
dropped and reported as None.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

LOGGER = logging.getLogger(__name__)

class OrderBookMessage(BaseModel):
    """Snapshot or delta for a single instrument."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["snapshot", "delta"]
    symbol: Optional[str] = None
    timestamp: Optional[int] = None
    seq_num: int = Field(alias="seqNum")
    prev_seq_num: Optional[int] = Field(default=None, alias="prevSeqNum")
    asks: List[Tuple[Decimal, Decimal]] = Field(default_factory=list)
    bids: List[Tuple[Decimal, Decimal]] = Field(default_factory=list)

    @property
    def is_snapshot(self) -> bool:
        return self.type == "snapshot"

class TradeEvent(BaseModel):
    """Single executed trade; only price is required."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    price: Decimal
    side: Optional[str] = None
    size: Optional[Decimal] = None
    symbol: Optional[str] = None
    timestamp: Optional[int] = None
    trade_id: Optional[Union[int, str]] = Field(default=None, alias="tradeId")

_TRADE_LIST = TypeAdapter(List[TradeEvent])

def parse_orderbook_envelope(envelope: Any) -> Optional[OrderBookMessage]:
    """
    Validate the payload of an order-book envelope.

    Args:
        envelope: Decoded JSON frame, expected to hold the message under "data"

    Returns:
        Parsed message, or None if the envelope should be ignored
    """
    if not isinstance(envelope, dict) or envelope.get("data") is None:
        return None
    try:
        return OrderBookMessage.model_validate(envelope["data"])
    except ValidationError as exc:
        LOGGER.debug("Dropping malformed order-book payload: %s", exc)
        return None

def parse_trade_envelope(envelope: Any) -> Optional[List[TradeEvent]]:
    """
    Validate the payload of a trade envelope.

    Returns:
        Trades in feed order (most recent first), or None if ignored
    """
    if not isinstance(envelope, dict) or envelope.get("data") is None:
        return None
    try:
        return _TRADE_LIST.validate_python(envelope["data"])
    except ValidationError as exc:
        LOGGER.debug("Dropping malformed trade payload: %s", exc)
        return None

def build_control_message(op: str, channels: Iterable[str]) -> Dict[str, Any]:
    """Build a subscribe/unsubscribe request for the feed."""
    if op not in ("subscribe", "unsubscribe"):
        raise ValueError(f"Unsupported control op: {op}")
    return {"op": op, "args": list(channels)}

__all__ = [
    "OrderBookMessage", "TradeEvent", "parse_orderbook_envelope",
    "parse_trade_envelope", "build_control_message",
]
