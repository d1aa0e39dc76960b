"""Transport collaborator: inbound listener, inbound stream and point-to-point send.

The bus needs three things from a transport, bundled in ``Transport``:

- ``server`` -- a ``Listener`` with ``listen(port)`` / ``close()``
- ``messages`` -- an ``InboundStream`` delivering raw inbound payloads
- ``send`` -- a coroutine function ``send(address, data)``

``tcp_transport()`` builds the stock TCP implementation.

Wire format: ``[msg_len:4][payload]`` (big-endian length prefix).  One
connection may carry any number of frames; ``send_frame`` opens a fresh
connection per message and closes it after writing.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl as ssl_lib
import struct
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from actorbus.address import ActorAddress
from actorbus.errors import ConfigurationError

logger = logging.getLogger("actorbus.transport")

type InboundListener = Callable[[bytes], None]
type SendFn = Callable[[ActorAddress, bytes], Awaitable[None]]

MAX_FRAME_SIZE: int = 16 * 1024 * 1024


@runtime_checkable
class Listener(Protocol):
    """Bind/listen half of a transport."""

    async def listen(self, port: int) -> None: ...

    async def close(self) -> None: ...

    @property
    def address(self) -> tuple[str, int] | None: ...


@runtime_checkable
class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


@runtime_checkable
class InboundStream(Protocol):
    """Stream of raw inbound payloads."""

    def subscribe(self, listener: InboundListener) -> Subscription | None: ...


@dataclass(frozen=True)
class Transport:
    """The three transport capabilities the bus is built on.

    Parameters
    ----------
    server : Listener
        Accepts inbound connections once ``listen`` is awaited.
    messages : InboundStream
        Publishes each inbound payload.
    send : SendFn
        Delivers one payload to an ``ActorAddress``.
    """

    server: Listener
    messages: InboundStream
    send: SendFn


def validate_transport(transport: object) -> Transport:
    """Check that *transport* exposes everything the bus calls.

    Raises
    ------
    ConfigurationError
        If any capability is missing or not callable.
    """
    if transport is None:
        msg = "You must give a valid transport, with server, messages and send"
        raise ConfigurationError(msg)
    server = getattr(transport, "server", None)
    messages = getattr(transport, "messages", None)
    missing: list[str] = []
    for name in ("listen", "close"):
        if not callable(getattr(server, name, None)):
            missing.append(f"server.{name}")
    if not callable(getattr(messages, "subscribe", None)):
        missing.append("messages.subscribe")
    if not callable(getattr(transport, "send", None)):
        missing.append("send")
    if missing:
        msg = f"Transport {type(transport).__name__} is missing: {', '.join(missing)}"
        raise ConfigurationError(msg)
    return transport  # type: ignore[return-value]


class _StreamSubscription:
    def __init__(self, stream: MessageStream, listener: InboundListener) -> None:
        self._stream = stream
        self._listener = listener

    def unsubscribe(self) -> None:
        self._stream._remove(self._listener)


class MessageStream:
    """In-process fan-out of raw payloads to subscribed listeners.

    Examples
    --------
    >>> stream = MessageStream()
    >>> received = []
    >>> sub = stream.subscribe(received.append)
    >>> stream.publish(b"hello")
    >>> sub.unsubscribe()
    >>> stream.publish(b"ignored")
    >>> received
    [b'hello']
    """

    def __init__(self) -> None:
        self._listeners: list[InboundListener] = []

    def subscribe(self, listener: InboundListener) -> Subscription:
        self._listeners.append(listener)
        return _StreamSubscription(self, listener)

    def _remove(self, listener: InboundListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def publish(self, item: bytes) -> None:
        for listener in list(self._listeners):
            listener(item)


def _make_frame(data: bytes) -> bytes:
    return struct.pack("!I", len(data)) + data


def _set_nodelay(writer: asyncio.StreamWriter) -> None:
    sock = writer.transport.get_extra_info("socket")
    if sock is not None and sock.family in (socket.AF_INET, socket.AF_INET6):
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)


class TcpServer:
    """asyncio TCP listener publishing every inbound frame on a ``MessageStream``.

    Parameters
    ----------
    host : str
        Bind address.
    stream : MessageStream or None
        Stream to publish on.  A new one is created when ``None``.
    ssl : ssl.SSLContext or None
        TLS context for inbound connections.

    Examples
    --------
    >>> server = TcpServer("127.0.0.1")
    >>> # await server.listen(0)   # OS-assigned port
    >>> # server.address           # ('127.0.0.1', 54321)
    >>> # await server.close()
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        *,
        stream: MessageStream | None = None,
        ssl: ssl_lib.SSLContext | None = None,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> None:
        self._host = host
        self._stream = stream or MessageStream()
        self._ssl = ssl
        self._max_frame_size = max_frame_size
        self._server: asyncio.Server | None = None
        self._connections: set[asyncio.Task[None]] = set()

    @property
    def messages(self) -> MessageStream:
        return self._stream

    @property
    def address(self) -> tuple[str, int] | None:
        """Return the bound ``(host, port)``, or ``None`` when not listening."""
        if self._server is None:
            return None
        sockets = self._server.sockets
        if not sockets:
            return None
        addr = sockets[0].getsockname()
        return (addr[0], addr[1])

    async def listen(self, port: int) -> None:
        if self._server is not None:
            msg = f"Already listening at {self.address}"
            raise RuntimeError(msg)
        self._server = await asyncio.start_server(
            self._handle_connection, self._host, port, ssl=self._ssl,
        )

    async def close(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        for task in list(self._connections):
            task.cancel()
        await server.wait_closed()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._connections.add(task)
        _set_nodelay(writer)
        peer = writer.get_extra_info("peername")
        try:
            while True:
                length_bytes = await reader.readexactly(4)
                msg_len = struct.unpack("!I", length_bytes)[0]
                if msg_len > self._max_frame_size:
                    logger.warning(
                        "Frame of %d bytes from %s exceeds limit %d, closing",
                        msg_len, peer, self._max_frame_size,
                    )
                    return
                data = await reader.readexactly(msg_len)
                self._stream.publish(data)
        except asyncio.IncompleteReadError as exc:
            if exc.partial:
                logger.debug("Connection from %s closed mid-frame", peer)
        except OSError:
            logger.debug("Connection from %s dropped", peer)
        except asyncio.CancelledError:
            logger.debug("Connection from %s cancelled", peer)
            raise
        finally:
            if task is not None:
                self._connections.discard(task)
            writer.close()


async def send_frame(
    address: ActorAddress,
    data: bytes,
    *,
    ssl: ssl_lib.SSLContext | None = None,
    connect_timeout: float = 2.0,
) -> None:
    """Open a connection to *address*, write one frame and close it.

    Parameters
    ----------
    address : ActorAddress
        Destination endpoint.
    data : bytes
        Payload, written as ``[len:4][data]``.
    ssl : ssl.SSLContext or None
        TLS context for the outbound connection.
    connect_timeout : float
        Seconds to wait for the connection to open.

    Raises
    ------
    OSError
        If the connection cannot be opened or written to.
    TimeoutError
        If connecting takes longer than *connect_timeout*.
    """
    _, writer = await asyncio.wait_for(
        asyncio.open_connection(address.host, address.port, ssl=ssl),
        timeout=connect_timeout,
    )
    try:
        _set_nodelay(writer)
        writer.write(_make_frame(data))
        await writer.drain()
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass
    logger.debug("Sent %d bytes to %s", len(data), address)


def tcp_transport(
    host: str = "0.0.0.0",
    *,
    server_ssl: ssl_lib.SSLContext | None = None,
    client_ssl: ssl_lib.SSLContext | None = None,
    connect_timeout: float = 2.0,
) -> Transport:
    """Build a ``Transport`` backed by ``TcpServer`` and ``send_frame``.

    Examples
    --------
    >>> transport = tcp_transport("127.0.0.1")
    >>> transport.server.address is None
    True
    """
    server = TcpServer(host, ssl=server_ssl)

    async def send(address: ActorAddress, data: bytes) -> None:
        await send_frame(address, data, ssl=client_ssl, connect_timeout=connect_timeout)

    return Transport(server=server, messages=server.messages, send=send)
