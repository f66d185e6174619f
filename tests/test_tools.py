import asyncio
import io
import json

from depth_platform.book_engine.engine import ReconciliationEngine
from depth_platform.config import EngineConfig
from depth_platform.tools.book_viewer import render_book
from depth_platform.tools.feed_recorder import ORDERBOOK, TRADE, FeedRecorder
from depth_platform.tools.feed_replay import load_feed, replay, replay_file


class KeepOpenStringIO(io.StringIO):
    def close(self):
        self.closed_called = True


def snapshot(seq, asks, bids):
    return {
        "topic": "update:BTCPFC_0",
        "data": {
            "type": "snapshot", "symbol": "BTCPFC", "seqNum": seq,
            "asks": asks, "bids": bids,
        },
    }


def delta(seq, prev, asks=(), bids=()):
    return {
        "topic": "update:BTCPFC_0",
        "data": {
            "type": "delta", "symbol": "BTCPFC", "seqNum": seq,
            "prevSeqNum": prev, "asks": list(asks), "bids": list(bids),
        },
    }


def test_feed_recorder_batches_messages(tmp_path):
    handle = KeepOpenStringIO()
    recorder = FeedRecorder(tmp_path / "feed.jsonl", batch_size=2, handle=handle)
    recorder.record(ORDERBOOK, {"data": {"seqNum": 1}})
    assert handle.getvalue() == ""

    asyncio.run(recorder.handler(TRADE)({"data": [{"price": "1"}]}))

    lines = [json.loads(line) for line in handle.getvalue().splitlines()]
    assert [line["channel"] for line in lines] == [ORDERBOOK, TRADE]
    assert recorder.written == 2
    recorder.close()
    assert handle.closed_called


def test_recorded_feed_replays_through_engine(tmp_path):
    path = tmp_path / "logs" / "feed.jsonl"
    recorder = FeedRecorder(path, batch_size=100)
    recorder.record(ORDERBOOK, {"event": "subscribe"})
    recorder.record(ORDERBOOK, snapshot(10, [["101", "2"]], [["100", "5"]]))
    recorder.record(ORDERBOOK, delta(11, 10, bids=[["100", "8"]]))
    recorder.record(TRADE, {"topic": "tradeHistoryApi:BTCPFC", "data": [{"price": "100.5"}]})
    recorder.record("status", {"ok": True})
    recorder.close()

    engine = ReconciliationEngine(window_levels=8)
    count = asyncio.run(replay(load_feed(path), engine))
    engine.close()

    assert count == 4
    assert engine.sequence.last_accepted_seq_num == 11
    assert str(engine.get_last_price()) == "100.5"


def test_replay_file_reports_gaps(tmp_path):
    path = tmp_path / "feed.jsonl"
    records = [
        {"channel": ORDERBOOK, "message": snapshot(10, [["101", "2"]], [])},
        {"channel": ORDERBOOK, "message": delta(13, 12, asks=[["102", "1"]])},
    ]
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n\n")

    output = asyncio.run(replay_file(path, EngineConfig()))

    assert "1 gap(s), 1 resync(s)" in output
    assert "state=unsynced" in output


def test_render_book_places_touch_next_to_price():
    engine = ReconciliationEngine()

    async def scenario():
        await engine.handle_orderbook_envelope(
            snapshot(1, [["11", "1"], ["12", "1"]], [["10", "3"], ["9", "1"]])
        )
        await engine.handle_trade_envelope({"data": [{"price": "10"}]})
        await engine.handle_trade_envelope({"data": [{"price": "11"}]})

    asyncio.run(scenario())
    engine.close()
    lines = render_book(engine).splitlines()

    price_line = next(i for i, line in enumerate(lines) if "▲" in line)
    assert "11" in lines[price_line - 1]
    assert "12" in lines[price_line - 2]
    assert " 10 " in lines[price_line + 1]
    assert "#" * 20 in lines[price_line + 2]
