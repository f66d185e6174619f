"""
Replay a recorded JSONL feed through the reconciliation engine.

Resync requests are counted instead of sent, which makes the tool useful
for reproducing sequence gaps seen in production captures.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple
from depth_platform.book_engine.engine import ReconciliationEngine
from depth_platform.config import EngineConfig, ensure_env_loaded
from depth_platform.tools.book_viewer import render_book
from depth_platform.tools.feed_recorder import ORDERBOOK, TRADE

LOGGER = logging.getLogger(__name__)

def load_feed(path: Path) -> Iterable[Tuple[str, Dict[str, Any]]]:
    """Parse JSONL yielding (channel, envelope) tuples."""
    with path.open("r", encoding="utf-8") as h:
        for line in h:
            if not line.strip():
                continue
            raw = json.loads(line)
            yield raw["channel"], raw["message"]

class ResyncCounter:
    """Stands in for the order-book transport during replay."""
    def __init__(self) -> None:
        self.requests = 0

    async def __call__(self) -> None:
        self.requests += 1

async def replay(
    records: Iterable[Tuple[str, Dict[str, Any]]],
    engine: ReconciliationEngine,
) -> int:
    """
    Feed recorded envelopes to the engine in file order.

    Returns:
        Number of envelopes dispatched
    """
    count = 0
    for channel, envelope in records:
        if channel == ORDERBOOK:
            await engine.handle_orderbook_envelope(envelope)
        elif channel == TRADE:
            await engine.handle_trade_envelope(envelope)
        else:
            LOGGER.debug("Skipping record for unknown channel %s", channel)
            continue
        count += 1
    return count

async def replay_file(path: Path, config: EngineConfig) -> str:
    resync = ResyncCounter()
    engine = ReconciliationEngine.from_config(config, resync=resync)
    try:
        count = await replay(load_feed(path), engine)
        engine.highlights.expire_all()
        summary = (
            f"Replayed {count} envelopes, "
            f"{engine.sequence.gap_count} gap(s), {resync.requests} resync(s)"
        )
        return render_book(engine) + "\n" + summary
    finally:
        engine.close()

def main() -> None:
    """CLI for offline replay of a captured feed."""
    ensure_env_loaded()
    p = argparse.ArgumentParser(
        description="Replay a JSONL feed capture and print the final book."
    )
    p.add_argument("--feed-file", type=Path, required=True,
                   help="JSONL with {'channel','message'} records")
    p.add_argument("--log-level", default="WARNING")
    args = p.parse_args()
    logging.basicConfig(level=args.log_level.upper())
    print(asyncio.run(replay_file(args.feed_file, EngineConfig.from_env())))

if __name__ == "__main__":
    main()
