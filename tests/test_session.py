import asyncio

from depth_platform.book_engine.sequence_guard import SyncState
from depth_platform.config import EngineConfig, FeedConfig
from depth_platform.ingestion.session import FeedSession


class FakeClient:
    def __init__(self):
        self.resubscribed = []
        self.stopped = False

    async def resubscribe(self, channel=None):
        self.resubscribed.append(channel)

    async def stop(self):
        self.stopped = True


def test_session_wires_channels_and_engine(scheduler):
    session = FeedSession(
        FeedConfig(symbol="ethpfc"), EngineConfig(window_levels=5), scheduler=scheduler
    )

    assert session.orderbook_client.channels == ["update:ETHPFC_0"]
    assert session.trade_client.channels == ["tradeHistoryApi:ETHPFC"]
    assert session.engine.window_levels == 5
    assert session.orderbook_client.message_handler == session.engine.handle_orderbook_envelope


def test_gap_resubscribes_order_book_channel_only(scheduler):
    session = FeedSession(FeedConfig(), scheduler=scheduler)
    session.orderbook_client = book_client = FakeClient()
    session.trade_client = trade_client = FakeClient()

    async def scenario():
        engine = session.engine
        await engine.handle_orderbook_envelope(
            {"data": {"type": "snapshot", "seqNum": 1, "asks": [], "bids": []}}
        )
        await engine.handle_orderbook_envelope(
            {"data": {"type": "delta", "seqNum": 4, "prevSeqNum": 3}}
        )

    asyncio.run(scenario())

    assert book_client.resubscribed == ["update:BTCPFC_0"]
    assert trade_client.resubscribed == []
    assert session.engine.state is SyncState.UNSYNCED


def test_close_is_idempotent_and_tears_down_engine(scheduler):
    session = FeedSession(FeedConfig(), scheduler=scheduler)
    session.orderbook_client = book_client = FakeClient()
    session.trade_client = trade_client = FakeClient()

    async def scenario():
        async with session:
            pass
        await session.close()

    asyncio.run(scenario())

    assert book_client.stopped and trade_client.stopped
    assert session.engine.closed
