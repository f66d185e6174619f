import asyncio
import json

from websockets.exceptions import ConnectionClosed

from depth_platform.ingestion import ws_client
from depth_platform.ingestion.ws_client import FeedWebSocketClient


class FakeWebSocket:
    def __init__(self, frames=(), fail_send=False):
        self.frames = list(frames)
        self.sent = []
        self.closed = False
        self.fail_send = fail_send

    async def send(self, payload):
        if self.fail_send:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(payload))

    async def close(self):
        self.closed = True

    async def ping(self):
        return None

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame


class IdleWebSocket(FakeWebSocket):
    """Stays open without traffic until closed."""

    async def _iterate(self):
        while not self.closed:
            await asyncio.sleep(0.005)
        return
        yield


class SlowHandshake:
    def __init__(self, ws, delay):
        self.ws = ws
        self.delay = delay

    async def __aenter__(self):
        await asyncio.sleep(self.delay)
        return self.ws

    async def __aexit__(self, *exc_info):
        await self.ws.close()
        return False


def make_client(received):
    async def handler(message):
        received.append(message)

    return FeedWebSocketClient(
        ws_url="wss://example.com", message_handler=handler, heartbeat_interval=5.0
    )


def test_subscribe_deduplicates_channels():
    client = make_client([])
    client.subscribe("update:BTCPFC_0")
    client.subscribe("update:BTCPFC_0")
    assert client.channels == ["update:BTCPFC_0"]
    assert not client.connected


def test_connect_pushes_subscriptions():
    client = make_client([])
    client.subscribe("update:BTCPFC_0")
    ws = FakeWebSocket()

    asyncio.run(client._on_connect(ws))

    assert ws.sent == [{"op": "subscribe", "args": ["update:BTCPFC_0"]}]


def test_resubscribe_sends_unsubscribe_then_subscribe():
    client = make_client([])
    client.subscribe("update:BTCPFC_0")
    client._ws = ws = FakeWebSocket()

    asyncio.run(client.resubscribe("update:BTCPFC_0"))

    assert ws.sent == [
        {"op": "unsubscribe", "args": ["update:BTCPFC_0"]},
        {"op": "subscribe", "args": ["update:BTCPFC_0"]},
    ]


def test_resubscribe_without_connection_is_deferred():
    client = make_client([])
    client.subscribe("update:BTCPFC_0")
    asyncio.run(client.resubscribe())
    assert not client.connected


def test_resubscribe_survives_closed_connection():
    client = make_client([])
    client.subscribe("update:BTCPFC_0")
    client._ws = FakeWebSocket(fail_send=True)
    asyncio.run(client.resubscribe())


def test_listen_forwards_json_objects_in_order():
    received = []
    client = make_client(received)
    ws = FakeWebSocket(
        frames=[
            json.dumps({"data": {"seqNum": 1}}),
            "not json",
            json.dumps([1, 2, 3]),
            json.dumps({"data": {"seqNum": 2}}),
        ]
    )

    asyncio.run(client._listen(ws))

    assert received == [{"data": {"seqNum": 1}}, {"data": {"seqNum": 2}}]


def test_stop_closes_live_connection():
    client = make_client([])
    client._ws = ws = FakeWebSocket()
    asyncio.run(client.stop())
    assert ws.closed


def test_stop_during_handshake_closes_new_connection(monkeypatch):
    ws = IdleWebSocket()
    monkeypatch.setattr(
        ws_client, "connect", lambda url, **kwargs: SlowHandshake(ws, 0.05)
    )
    client = make_client([])
    client.subscribe("update:BTCPFC_0")

    async def scenario():
        task = asyncio.create_task(client.connect_forever())
        await asyncio.sleep(0.01)
        await client.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())

    assert ws.closed
    assert ws.sent == []
    assert not client.connected
