"""Tests for the live feed listener."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

import ingestion.listener as listener_module
from ingestion.listener import (
    ConnectionState,
    PumpFeedListener,
    build_subscription_request,
)
from logic.stats import PipelineStats

from factories import PROGRAM, buy_message


class FakeFeed:
    """Scripted websocket session."""

    def __init__(self, messages=(), on_exhausted=None):
        self.messages = list(messages)
        self.on_exhausted = on_exhausted
        self.sent = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.on_exhausted is not None:
            await self.on_exhausted()


class FakeConnector:
    """Stands in for websockets.connect, handing out sessions in order."""

    def __init__(self, sessions):
        self.sessions = list(sessions)
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, asyncio.get_running_loop().time()))
        session = self.sessions.pop(0)
        if isinstance(session, Exception):
            raise session
        return session


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def handler():
    return AsyncMock()


@pytest.fixture
def stats():
    return PipelineStats()


@pytest.fixture
def listener(handler, stats, config):
    return PumpFeedListener(handler=handler, stats=stats, config=config)


def install(monkeypatch, sessions):
    connector = FakeConnector(sessions)
    monkeypatch.setattr(listener_module, "connect", connector)
    return connector


# ============================================================================
# Unit Tests - subscription
# ============================================================================

class TestSubscriptionRequest:
    """Tests for the subscription body."""

    def test_request_shape(self):
        assert build_subscription_request(PROGRAM) == {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "transactionSubscribe",
            "params": [
                {"failed": False, "accountInclude": [PROGRAM]},
                {
                    "commitment": "confirmed",
                    "encoding": "jsonParsed",
                    "transactionDetails": "full",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        }

    def test_listener_uses_configured_program(self, listener):
        assert listener.subscription_request["params"][0]["accountInclude"] == [PROGRAM]


# ============================================================================
# Unit Tests - message handling
# ============================================================================

class TestHandleMessage:
    """Tests for per-message decoding and failure isolation."""

    @pytest.mark.asyncio
    async def test_notification_passed_to_handler(self, listener, handler, raw):
        await listener.handle_message(raw(buy_message(signature="abc", slot=9)))

        notification = handler.await_args.args[0]
        assert notification.signature == "abc"
        assert notification.slot == "9"

    @pytest.mark.asyncio
    async def test_bytes_accepted(self, listener, handler, raw):
        await listener.handle_message(raw(buy_message()).encode("utf-8"))
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ack_ignored(self, listener, handler, stats, raw):
        await listener.handle_message(raw({"jsonrpc": "2.0", "id": 1, "result": 5531}))

        handler.assert_not_awaited()
        assert stats.errors == {}

    @pytest.mark.asyncio
    async def test_invalid_json_dropped(self, listener, handler, stats):
        await listener.handle_message("{not json")

        handler.assert_not_awaited()
        assert stats.errors["feed_message"] == 1

    @pytest.mark.asyncio
    async def test_handler_failure_dropped(self, listener, handler, stats, raw):
        handler.side_effect = IndexError("list index out of range")

        await listener.handle_message(raw(buy_message()))
        await listener.handle_message(raw(buy_message()))

        assert stats.errors["feed_message"] == 2
        assert stats.counters["notifications"] == 2


# ============================================================================
# Unit Tests - connection lifecycle
# ============================================================================

class TestConnection:
    """Tests for subscribe, receive and reconnect."""

    @pytest.mark.asyncio
    async def test_subscribes_and_receives(self, monkeypatch, listener, handler, raw):
        session = FakeFeed(
            messages=[
                raw({"jsonrpc": "2.0", "id": 1, "result": 77}),
                "garbage",
                raw(buy_message(signature="s1")),
            ],
            on_exhausted=listener.stop,
        )
        connector = install(monkeypatch, [session])

        await asyncio.wait_for(listener.start(), timeout=2)

        assert connector.calls[0][0] == "wss://feed.test"
        assert session.sent == [build_subscription_request(PROGRAM)]
        assert handler.await_count == 1
        assert listener.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnects_after_close(self, monkeypatch, listener, config):
        first = FakeFeed()
        second = FakeFeed(on_exhausted=listener.stop)
        connector = install(monkeypatch, [first, second])

        await asyncio.wait_for(listener.start(), timeout=2)

        assert len(connector.calls) == 2
        gap = connector.calls[1][1] - connector.calls[0][1]
        assert gap >= config.reconnect_delay_seconds * 0.9
        # Same subscription, verbatim, on every connection
        assert first.sent == second.sent == [build_subscription_request(PROGRAM)]
        assert listener.connection_attempts == 2

    @pytest.mark.asyncio
    async def test_retries_connect_failures_indefinitely(self, monkeypatch, listener):
        final = FakeFeed(on_exhausted=listener.stop)
        connector = install(
            monkeypatch,
            [OSError("refused"), OSError("refused"), OSError("refused"), final],
        )

        await asyncio.wait_for(listener.start(), timeout=2)

        assert len(connector.calls) == 4
        assert final.sent == [build_subscription_request(PROGRAM)]

    @pytest.mark.asyncio
    async def test_stop_closes_socket(self, monkeypatch, listener):
        session = FakeFeed()
        release = asyncio.Event()

        async def hold():
            await release.wait()

        session.on_exhausted = hold
        install(monkeypatch, [session])

        task = asyncio.create_task(listener.start())
        for _ in range(5):
            await asyncio.sleep(0)
        assert listener.is_connected

        await listener.stop()
        assert session.closed
        release.set()
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_stop_during_reconnect_wait(self, monkeypatch, listener):
        later = FakeFeed()
        connector = install(monkeypatch, [OSError("refused"), later])

        task = asyncio.create_task(listener.start())
        while not connector.calls:
            await asyncio.sleep(0)
        await listener.stop()

        await asyncio.wait_for(task, timeout=1)

        assert len(connector.calls) == 1
        assert later.sent == []
        assert not listener.is_connected
        assert listener.state == ConnectionState.DISCONNECTED
