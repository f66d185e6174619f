"""
CLI viewer: live ask window, last price, bid window.
"""
from __future__ import annotations
import argparse
import asyncio
import contextlib
import logging
from typing import List, Optional
from depth_platform.book_engine.depth import DisplayRow
from depth_platform.book_engine.engine import ReconciliationEngine
from depth_platform.book_engine.ladder import Side
from depth_platform.config import (
    EngineConfig,
    FeedConfig,
    ensure_env_loaded,
    parse_window_levels,
)
from depth_platform.ingestion.session import FeedSession

BAR_WIDTH = 20
CLEAR_SCREEN = "\033[2J\033[H"
DIRECTION_ARROWS = {"up": "▲", "down": "▼", "same": "-"}

def row_marker(row: DisplayRow) -> str:
    """Single-character highlight marker for a row."""
    if row.is_new:
        return "*"
    if row.size_increased:
        return "+"
    if row.size_decreased:
        return "-"
    return " "

def format_row(row: DisplayRow) -> str:
    bar = "#" * int(round(row.percentage / 100 * BAR_WIDTH))
    return (
        f"{row_marker(row)} {row.price:>14} {row.size:>12} "
        f"{row.total:>14}  {bar:<{BAR_WIDTH}}"
    )

def render_book(engine: ReconciliationEngine, levels: Optional[int] = None) -> str:
    """
    Render both windows around the last trade price.

    Asks are listed worst to best so the touch sits next to the price line.
    """
    asks = engine.get_top_display_rows(Side.ASK, levels)
    bids = engine.get_top_display_rows(Side.BID, levels)
    header = f"  {'PRICE':>14} {'SIZE':>12} {'TOTAL':>14}"
    lines: List[str] = [
        f"{engine.symbol or '-'}  seq={engine.sequence.last_accepted_seq_num}"
        f"  state={engine.state.value}",
        header,
    ]
    lines.extend(format_row(row) for row in reversed(asks))
    last = engine.get_last_price()
    arrow = DIRECTION_ARROWS[engine.get_price_direction()]
    lines.append(f"  {'-' * 10} {last if last is not None else '-'} {arrow}")
    lines.extend(format_row(row) for row in bids)
    return "\n".join(lines)

async def run_viewer(
    feed_config: FeedConfig,
    engine_config: EngineConfig,
    refresh_seconds: float,
) -> None:
    """Run a feed session and redraw the book until cancelled."""
    async with FeedSession(feed_config, engine_config) as session:
        feed_task = asyncio.create_task(session.run())
        try:
            while not feed_task.done():
                print(CLEAR_SCREEN + render_book(session.engine), flush=True)
                await asyncio.sleep(refresh_seconds)
        finally:
            await session.close()
            feed_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await feed_task

def main() -> None:
    """Parse CLI args and run the live viewer."""
    ensure_env_loaded()
    env_feed = FeedConfig.from_env()
    env_engine = EngineConfig.from_env()
    p = argparse.ArgumentParser(
        description="Live order-book depth viewer."
    )
    p.add_argument(
        "--symbol",
        help="Defaults to DEPTH_SYMBOL environment variable.",
    )
    p.add_argument(
        "--levels", type=int,
        help="Window size per side (default DEPTH_WINDOW_LEVELS or 8).",
    )
    p.add_argument(
        "--highlight-seconds", type=float,
        help="Highlight duration (default DEPTH_HIGHLIGHT_SECONDS or 0.5).",
    )
    p.add_argument("--refresh", type=float, default=0.25,
                   help="Seconds between redraws (default: 0.25).")
    p.add_argument("--log-level", default="WARNING")
    args = p.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    feed_config = env_feed
    if args.symbol:
        feed_config = FeedConfig(
            orderbook_ws_url=env_feed.orderbook_ws_url,
            trade_ws_url=env_feed.trade_ws_url,
            symbol=args.symbol,
            heartbeat_interval=env_feed.heartbeat_interval,
            reconnect_backoff=env_feed.reconnect_backoff,
        )
    engine_config = EngineConfig(
        window_levels=parse_window_levels(str(args.levels))
        if args.levels is not None else env_engine.window_levels,
        highlight_seconds=args.highlight_seconds or env_engine.highlight_seconds,
    )
    try:
        asyncio.run(run_viewer(feed_config, engine_config, args.refresh))
    except KeyboardInterrupt:
        print("\nShutdown requested.")

if __name__ == "__main__":
    main()
