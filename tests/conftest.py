"""Shared fixtures and fake collaborators for actorbus tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from actorbus import ActorAddress, Bus, InMemoryAddressCache, MessageStream, Transport


class FakeServer:
    """Listener that records calls instead of binding a socket."""

    def __init__(self, host: str = "127.0.0.1") -> None:
        self.host = host
        self.listen_calls: list[int] = []
        self.close_calls = 0
        self._port: int | None = None

    async def listen(self, port: int) -> None:
        self.listen_calls.append(port)
        self._port = port

    async def close(self) -> None:
        self.close_calls += 1
        self._port = None

    @property
    def address(self) -> tuple[str, int] | None:
        if self._port is None:
            return None
        return (self.host, self._port)


@dataclass
class RecordingSend:
    """Point-to-point send that keeps every call."""

    calls: list[tuple[ActorAddress, bytes]] = field(default_factory=list)

    async def __call__(self, address: ActorAddress, data: bytes) -> None:
        self.calls.append((address, data))


class CallbackStream:
    """Inbound stream that keeps plain callbacks and returns no handle."""

    def __init__(self) -> None:
        self.listeners: list[Any] = []

    def subscribe(self, listener: Any) -> None:
        self.listeners.append(listener)

    def publish(self, item: bytes) -> None:
        for listener in list(self.listeners):
            listener(item)


@dataclass
class FakeTransport:
    server: FakeServer
    messages: MessageStream
    sent: RecordingSend

    def as_transport(self) -> Transport:
        return Transport(server=self.server, messages=self.messages, send=self.sent)


def encode(message: Any) -> bytes:
    return json.dumps(message).encode("utf-8")


def register(actor_id: str, address: str) -> bytes:
    return encode({
        "type": "REGISTER_ACTOR",
        "payload": {"actor_id": actor_id, "actor_address": address},
    })


def deregister(actor_id: str) -> bytes:
    return encode({"type": "DEREGISTER_ACTOR", "payload": {"actor_id": actor_id}})


# Fixtures


@pytest.fixture
def cache() -> InMemoryAddressCache:
    return InMemoryAddressCache()


@pytest.fixture
def fake() -> FakeTransport:
    return FakeTransport(server=FakeServer(), messages=MessageStream(), sent=RecordingSend())


@pytest.fixture
def bus(cache: InMemoryAddressCache, fake: FakeTransport) -> Bus:
    return Bus(cache=cache, transport=fake.as_transport())
