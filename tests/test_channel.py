"""Tests for the SSE watch channel and daemon control, using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adocview.exceptions import ChannelDisconnected, ServiceFailure
from adocview.watch import WatchChannel, WatcherControl


def _sse(*messages: str) -> bytes:
    return "".join(f"data: {m}\n\n" for m in messages).encode()


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestWatchChannel:
    @pytest.mark.asyncio
    async def test_messages_dispatched_in_order(self):
        received: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/events"
            return httpx.Response(
                200,
                content=_sse("Watcher status: Running", "/docs/a.adoc"),
                headers={"Content-Type": "text/event-stream"},
            )

        async with _client(handler) as client:
            channel = WatchChannel("http://watcher:8006/", received.append, client=client)
            with pytest.raises(ChannelDisconnected, match="closed"):
                await channel.connect_once()

        assert received == ["Watcher status: Running", "/docs/a.adoc"]
        assert not channel.connected

    @pytest.mark.asyncio
    async def test_multiline_data_joined(self):
        received: list[str] = []
        body = b"data: first\ndata: second\n\n: comment\nevent: x\n\n"

        async with _client(lambda r: httpx.Response(200, content=body)) as client:
            channel = WatchChannel("http://watcher", received.append, client=client)
            with pytest.raises(ChannelDisconnected):
                await channel.connect_once()

        assert received == ["first\nsecond"]

    @pytest.mark.asyncio
    async def test_http_error_is_disconnect(self):
        async with _client(lambda r: httpx.Response(503)) as client:
            channel = WatchChannel("http://watcher", client=client)
            with pytest.raises(ChannelDisconnected, match="503"):
                await channel.connect_once()

    @pytest.mark.asyncio
    async def test_transport_error_is_disconnect(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            channel = WatchChannel("http://watcher", client=client)
            with pytest.raises(ChannelDisconnected, match="refused"):
                await channel.connect_once()

    @pytest.mark.asyncio
    async def test_handler_errors_do_not_drop_stream(self):
        received: list[str] = []

        def on_message(message: str) -> None:
            if message == "bad":
                raise RuntimeError("handler bug")
            received.append(message)

        async with _client(lambda r: httpx.Response(200, content=_sse("bad", "good"))) as client:
            channel = WatchChannel("http://watcher", on_message, client=client)
            with pytest.raises(ChannelDisconnected):
                await channel.connect_once()

        assert received == ["good"]

    @pytest.mark.asyncio
    async def test_reconnects_after_fixed_delay(self, monkeypatch):
        attempts = 0
        received: list[str] = []
        disconnects: list[ChannelDisconnected] = []
        sleeps: list[float] = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        monkeypatch.setattr("adocview.watch.channel.asyncio.sleep", fake_sleep)

        def handler(request):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=_sse(f"message {attempts}"))

        async with _client(handler) as client:
            channel = WatchChannel(
                "http://watcher",
                received.append,
                reconnect_delay=5.0,
                client=client,
                on_disconnect=disconnects.append,
            )
            with pytest.raises(ChannelDisconnected):
                await channel.listen(max_reconnects=2)

        assert attempts == 3
        assert received == ["message 2", "message 3"]
        assert len(disconnects) == 3
        assert sleeps == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_stop_ends_listen(self, monkeypatch):
        channel: WatchChannel | None = None

        async def fake_sleep(delay):
            pass

        monkeypatch.setattr("adocview.watch.channel.asyncio.sleep", fake_sleep)

        def handler(request):
            channel.stop()
            return httpx.Response(200, content=_sse("Watcher stopped"))

        async with _client(handler) as client:
            channel = WatchChannel("http://watcher", client=client)
            await asyncio.wait_for(channel.listen(), 1.0)


class TestWatcherControl:
    @pytest.mark.asyncio
    async def test_start(self):
        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/start"
            return httpx.Response(200, json={"status": "started"})

        async with _client(handler) as client:
            reply = await WatcherControl("http://watcher", client=client).start()
        assert reply.status == "started"
        assert reply.config is None

    @pytest.mark.asyncio
    async def test_stop(self):
        async with _client(lambda r: httpx.Response(200, json={"status": "not running"})) as client:
            reply = await WatcherControl("http://watcher", client=client).stop()
        assert reply.status == "not running"

    @pytest.mark.asyncio
    async def test_status_with_config(self):
        body = {"status": "Running", "config": {"WatchDir": "/docs", "OutputType": "xml"}}

        def handler(request):
            assert request.method == "GET"
            return httpx.Response(200, content=json.dumps(body))

        async with _client(handler) as client:
            reply = await WatcherControl("http://watcher", client=client).status()
        assert reply.status == "Running"
        assert reply.config["WatchDir"] == "/docs"

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ServiceFailure, match="watcher start"):
                await WatcherControl("http://watcher", client=client).start()

    @pytest.mark.asyncio
    async def test_malformed_reply(self):
        async with _client(lambda r: httpx.Response(200, text="ok")) as client:
            with pytest.raises(ServiceFailure, match="unexpected response"):
                await WatcherControl("http://watcher", client=client).status()
