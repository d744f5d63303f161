"""Server-Sent Events client for the watch daemon, plus its control endpoints."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import BaseModel

from adocview.exceptions import ChannelDisconnected, ServiceFailure

logger = logging.getLogger(__name__)

DEFAULT_WATCHER_URL = "http://localhost:8006"


class WatchChannel:
    """Listens on ``{url}/events`` and hands each message to ``on_message``.

    A dropped or refused connection is never fatal: it is reported through
    ``on_disconnect`` and retried after a fixed ``reconnect_delay``.
    """

    def __init__(
        self,
        url: str = DEFAULT_WATCHER_URL,
        on_message: Callable[[str], Any] | None = None,
        reconnect_delay: float = 5.0,
        client: httpx.AsyncClient | None = None,
        on_disconnect: Callable[[ChannelDisconnected], Any] | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._on_message = on_message
        self._reconnect_delay = reconnect_delay
        self._client = client
        self._on_disconnect = on_disconnect
        self._connected = False
        self._stopping = False

    @property
    def connected(self) -> bool:
        return self._connected

    def stop(self) -> None:
        """Stop reconnecting. A stream in progress ends when its task is cancelled."""
        self._stopping = True

    def _dispatch(self, message: str) -> None:
        if self._on_message is None:
            return
        try:
            self._on_message(message)
        except Exception:
            logger.exception("Watch message handler failed for %r", message)

    async def _consume(self, resp: httpx.Response) -> None:
        data: list[str] = []
        async for line in resp.aiter_lines():
            if line.startswith("data:"):
                value = line[5:]
                data.append(value[1:] if value.startswith(" ") else value)
            elif not line and data:
                self._dispatch("\n".join(data))
                data = []
        if data:
            self._dispatch("\n".join(data))

    async def _stream(self, client: httpx.AsyncClient) -> None:
        url = f"{self._url}/events"
        async with client.stream("GET", url, headers={"Accept": "text/event-stream"}) as resp:
            if resp.is_error:
                raise ChannelDisconnected(f"{url} returned HTTP {resp.status_code}")
            self._connected = True
            logger.info("Connected to watcher at %s", self._url)
            await self._consume(resp)

    async def connect_once(self) -> None:
        """Read one connection to completion. Always ends in ChannelDisconnected."""
        try:
            if self._client is not None:
                await self._stream(self._client)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0)) as client:
                    await self._stream(client)
        except httpx.HTTPError as e:
            raise ChannelDisconnected(str(e) or type(e).__name__) from e
        finally:
            self._connected = False
        raise ChannelDisconnected("stream closed by server")

    async def listen(self, max_reconnects: int | None = None) -> None:
        """Consume the channel until stopped, reconnecting after every drop.

        ``max_reconnects`` bounds the retries; the last ChannelDisconnected
        is re-raised once it is exceeded.
        """
        self._stopping = False
        attempts = 0
        while not self._stopping:
            try:
                await self.connect_once()
            except ChannelDisconnected as e:
                if self._stopping:
                    break
                logger.warning(
                    "Watcher channel disconnected: %s (retrying in %gs)", e, self._reconnect_delay
                )
                if self._on_disconnect is not None:
                    self._on_disconnect(e)
                attempts += 1
                if max_reconnects is not None and attempts > max_reconnects:
                    raise
                await asyncio.sleep(self._reconnect_delay)


class DaemonReply(BaseModel):
    """JSON body returned by the daemon's control endpoints."""

    status: str
    config: dict[str, Any] | None = None


class WatcherControl:
    """Starts, stops and queries the watch daemon."""

    def __init__(
        self,
        url: str = DEFAULT_WATCHER_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _call(self, method: str, path: str) -> DaemonReply:
        operation = f"watcher {path.lstrip('/')}"
        url = f"{self._url}{path}"
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.request(method, url, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise ServiceFailure(operation, str(e) or type(e).__name__) from e
        if resp.is_error:
            raise ServiceFailure(operation, resp.text.strip() or resp.reason_phrase, resp.status_code)
        try:
            return DaemonReply.model_validate(resp.json())
        except ValueError as e:
            raise ServiceFailure(operation, f"unexpected response: {e}", resp.status_code) from e

    async def start(self) -> DaemonReply:
        return await self._call("POST", "/start")

    async def stop(self) -> DaemonReply:
        return await self._call("POST", "/stop")

    async def status(self) -> DaemonReply:
        return await self._call("GET", "/status")
