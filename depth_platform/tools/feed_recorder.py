"""Record raw order-book and trade envelopes to JSONL with batching."""
from __future__ import annotations
import argparse, asyncio, json, logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Tuple
from depth_platform.config import FeedConfig, ensure_env_loaded
from depth_platform.ingestion.ws_client import FeedWebSocketClient

ORDERBOOK = "orderbook"
TRADE = "trade"

class FeedRecorder:
    """Buffer envelopes and append them as {'channel','message'} lines."""
    def __init__(
        self, path: Path, batch_size: int = 500,
        handle: Optional[TextIO] = None,
    ) -> None:
        self.path = path
        self.batch_size = batch_size
        self._handle = handle
        self._buffer: List[Tuple[str, Dict[str, Any]]] = []
        self.written = 0
    def record(self, channel: str, payload: Dict[str, Any]) -> None:
        """Append to buffer and flush when threshold reached."""
        self._buffer.append((channel, payload))
        if len(self._buffer) >= self.batch_size:
            self.flush()
    def flush(self) -> None:
        """Write buffered envelopes and clear."""
        if not self._buffer:
            return
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        for ch, pl in self._buffer:
            self._handle.write(json.dumps({"channel": ch, "message": pl}) + "\n")
        self._handle.flush()
        self.written += len(self._buffer)
        self._buffer.clear()
    def close(self) -> None:
        """Final flush and close file."""
        self.flush()
        if self._handle is not None:
            self._handle.close()
            self._handle = None
    def handler(self, channel: str):
        """Async message handler recording envelopes under channel."""
        async def _record(message: Dict[str, Any]) -> None:
            self.record(channel, message)
        return _record

async def record_feed(
    config: FeedConfig, recorder: FeedRecorder, seconds: float
) -> None:
    """Capture both channels for a fixed duration."""
    clients = [
        FeedWebSocketClient(
            config.orderbook_ws_url, recorder.handler(ORDERBOOK),
            heartbeat_interval=config.heartbeat_interval,
            reconnect_backoff=config.reconnect_backoff, name=ORDERBOOK,
        ),
        FeedWebSocketClient(
            config.trade_ws_url, recorder.handler(TRADE),
            heartbeat_interval=config.heartbeat_interval,
            reconnect_backoff=config.reconnect_backoff, name=TRADE,
        ),
    ]
    clients[0].subscribe(config.orderbook_channel)
    clients[1].subscribe(config.trade_channel)
    tasks = [asyncio.create_task(c.connect_forever()) for c in clients]
    try:
        await asyncio.sleep(seconds)
    finally:
        for c in clients:
            await c.stop()
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

def main() -> None:
    """CLI for capturing a feed sample to JSONL."""
    ensure_env_loaded()
    env_feed = FeedConfig.from_env()
    p = argparse.ArgumentParser(
        description="Record order-book and trade envelopes to JSONL."
    )
    p.add_argument("--out", type=Path, default=Path("logs/feed.jsonl"))
    p.add_argument("--seconds", type=float, default=60.0)
    p.add_argument("--batch-size", type=int, default=500)
    p.add_argument("--log-level", default="INFO")
    args = p.parse_args()
    logging.basicConfig(level=args.log_level.upper())
    rec = FeedRecorder(args.out, batch_size=args.batch_size)
    try:
        asyncio.run(record_feed(env_feed, rec, args.seconds))
    finally:
        rec.close()
    print(f"Recorded {rec.written} envelopes to {args.out}")

if __name__ == "__main__":
    main()
