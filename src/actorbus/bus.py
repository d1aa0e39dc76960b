"""Bus controller: maps actor ids to addresses and routes inbound messages.

Every raw inbound payload is decoded, classified into a ``Command`` and
dispatched in its own ``asyncio`` task:

- ``REGISTER_ACTOR`` / ``UPDATE_ACTOR_ADDRESS`` -- upsert the cache entry
- ``DEREGISTER_ACTOR`` -- remove the cache entry
- ``TEST_CACHE_GET`` -- look the entry up and log it
- anything else -- forward ``action`` to ``receiver_id`` via ``send``

Dispatches are independent: message N never waits for message N-1, so
no ordering holds between them and concurrent register/deregister for the
same id race at the cache (last write wins).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, assert_never

from actorbus.address import ActorAddress
from actorbus.cache import AddressCache, resolve, validate_cache
from actorbus.codec import Codec, DecodeFn, EncodeFn, JsonCodec
from actorbus.errors import AddressError
from actorbus.messages import (
    CodecFailure,
    Command,
    DeregisterActor,
    InvalidCommand,
    Passthrough,
    RegisterActor,
    TestCacheGet,
    UpdateActorAddress,
    classify,
)
from actorbus.transport import Subscription, Transport, validate_transport

DEFAULT_PORT: int = 5000


class Bus:
    """Actor-location message bus.

    Parameters
    ----------
    cache : AddressCache
        Actor id -> ``host:port`` store.
    transport : Transport
        Listener, inbound stream and point-to-point send.
    codec : Codec or None
        Codec supplying both ``decode`` and ``encode``. Defaults to
        ``JsonCodec``.
    decode : DecodeFn or None
        Overrides ``codec.decode``.
    encode : EncodeFn or None
        Overrides ``codec.encode``.
    logger : logging.Logger or None
        Diagnostic logger. Defaults to ``actorbus.bus``.
    forward_codec_errors : bool
        When ``True``, codec-failure sentinels are forwarded like any other
        unrecognised message instead of being dropped.

    Raises
    ------
    ConfigurationError
        If *cache* or *transport* lacks a required capability.

    Examples
    --------
    >>> bus = Bus(cache=InMemoryAddressCache(), transport=tcp_transport())  # doctest: +SKIP
    >>> await bus.start(5000)  # doctest: +SKIP
    >>> await bus.send({"hello": "world"}, "greeter")  # doctest: +SKIP
    >>> await bus.stop()  # doctest: +SKIP
    """

    def __init__(
        self,
        cache: AddressCache,
        transport: Transport,
        *,
        codec: Codec | None = None,
        decode: DecodeFn | None = None,
        encode: EncodeFn | None = None,
        logger: logging.Logger | None = None,
        forward_codec_errors: bool = False,
    ) -> None:
        self._cache = validate_cache(cache)
        self._transport = validate_transport(transport)
        codec = codec or JsonCodec()
        self._decode: DecodeFn = decode or codec.decode
        self._encode: EncodeFn = encode or codec.encode
        self._logger = logger or logging.getLogger("actorbus.bus")
        self._forward_codec_errors = forward_codec_errors
        self._listening = False
        self._stopped = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._subscribed = False
        self._subscription: Subscription | None = None
        self._subscribe()

    @property
    def cache(self) -> AddressCache:
        return self._cache

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def pending(self) -> int:
        """Number of dispatches still in flight."""
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _subscribe(self) -> None:
        # Streams are not required to hand back an unsubscribe handle.
        handle = self._transport.messages.subscribe(self._on_inbound)
        if callable(getattr(handle, "unsubscribe", None)):
            self._subscription = handle
        self._subscribed = True

    async def start(self, port: int = DEFAULT_PORT) -> None:
        """Bind the transport listener to *port*.

        A stopped bus may be started again; it re-subscribes to the inbound
        stream if ``stop`` detached it.

        Raises
        ------
        RuntimeError
            If the bus is already listening.
        """
        if self._listening:
            msg = "Bus is already listening"
            raise RuntimeError(msg)
        await self._transport.server.listen(port)
        if not self._subscribed:
            self._subscribe()
        self._stopped = False
        self._listening = True
        address = self._transport.server.address
        host, bound_port = address if address is not None else ("localhost", port)
        self._logger.info("Bus listening at: %s:%s", host, bound_port)

    async def stop(self) -> None:
        """Close the listener and stop accepting inbound messages.

        Dispatches already in flight keep running; ``drain`` waits for them.
        Inbound items delivered after ``stop`` are ignored, also on streams
        that cannot unsubscribe.
        """
        self._stopped = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            self._subscribed = False
        if not self._listening:
            return
        await self._transport.server.close()
        self._listening = False
        self._logger.info("Bus no longer listening")

    async def drain(self) -> None:
        """Wait until every in-flight dispatch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _on_inbound(self, raw: bytes) -> None:
        if self._stopped:
            self._logger.debug("Ignoring inbound message, bus is stopped")
            return
        task = asyncio.get_running_loop().create_task(self._handle(raw))
        self._tasks.add(task)
        task.add_done_callback(self._on_dispatch_done)

    def _on_dispatch_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            task.get_loop().call_exception_handler({
                "message": "Unhandled exception while dispatching bus message",
                "exception": exc,
                "task": task,
            })

    async def _handle(self, raw: bytes) -> None:
        message = await self._decode(raw)
        await self.dispatch(classify(message))

    async def dispatch(self, command: Command) -> None:
        """Apply one classified inbound command."""
        match command:
            case RegisterActor(actor_id, actor_address) | UpdateActorAddress(
                actor_id, actor_address
            ):
                self._logger.debug("Upsert %s -> %s", actor_id, actor_address)
                await resolve(self._cache.upsert(actor_id, actor_address))
            case DeregisterActor(actor_id):
                self._logger.debug("Remove %s", actor_id)
                await resolve(self._cache.remove(actor_id))
            case TestCacheGet(actor_id):
                address = await resolve(self._cache.lookup(actor_id))
                self._logger.info("Cache entry %s: %s", actor_id, address)
            case Passthrough(action, receiver_id, _):
                await self.send(action, receiver_id)
            case CodecFailure(kind, text, raw):
                if self._forward_codec_errors:
                    await self.send(raw.get("action"), raw.get("receiver_id"))
                else:
                    self._logger.warning("Dropping %s: %s", kind, text)
            case InvalidCommand(msg_type, reason, _):
                self._logger.warning("Dropping invalid %s message: %s", msg_type or "untyped", reason)
            case _:
                assert_never(command)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send(self, message: Any, actor_id: str) -> None:
        """Encode *message* and deliver it to wherever *actor_id* currently lives.

        Delivery is best effort: an unknown actor, a malformed cached address
        or an encode failure is logged and the message is dropped.

        Parameters
        ----------
        message : Any
            Anything the codec can encode.
        actor_id : str
            Recipient actor id.
        """
        encoded = await self._encode(message)
        if not isinstance(encoded, bytes | bytearray):
            self._logger.error("Cannot send to %s, encoding failed: %s", actor_id, encoded)
            return

        raw_address = await resolve(self._cache.lookup(actor_id))
        if not raw_address:
            self._logger.warning("Cannot send to %s: no address found", actor_id)
            return

        try:
            address = ActorAddress.parse(raw_address)
        except AddressError as exc:
            self._logger.warning("Cannot send to %s: %s", actor_id, exc)
            return

        self._logger.debug("Forwarding %d bytes to %s at %s", len(encoded), actor_id, address)
        await self._transport.send(address, bytes(encoded))
