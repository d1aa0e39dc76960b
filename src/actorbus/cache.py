"""Address cache collaborator: actor id -> ``host:port`` string.

The bus only relies on the four operations of ``AddressCache``.  Each may be
a plain method or a coroutine function; the bus awaits whatever comes back
when it is awaitable.  Atomicity of each single operation is the cache's job.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable
from typing import Protocol, runtime_checkable

from actorbus.errors import ConfigurationError

logger = logging.getLogger("actorbus.cache")

CACHE_CAPABILITIES: tuple[str, ...] = ("lookup", "upsert", "contains", "remove")


@runtime_checkable
class AddressCache(Protocol):
    """Protocol for the actor address cache.

    Examples
    --------
    >>> isinstance(InMemoryAddressCache(), AddressCache)
    True
    """

    def lookup(self, actor_id: str) -> Awaitable[str | None] | str | None: ...

    def upsert(self, actor_id: str, address: str) -> Awaitable[None] | None: ...

    def contains(self, actor_id: str) -> Awaitable[bool] | bool: ...

    def remove(self, actor_id: str) -> Awaitable[None] | None: ...


async def resolve[T](value: Awaitable[T] | T) -> T:
    """Await *value* if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def validate_cache(cache: object) -> AddressCache:
    """Check that *cache* exposes every ``AddressCache`` operation.

    Raises
    ------
    ConfigurationError
        If *cache* is ``None`` or any operation is missing or not callable.
    """
    if cache is None:
        msg = f"You must give a valid cache, with methods of {', '.join(CACHE_CAPABILITIES)}"
        raise ConfigurationError(msg)
    missing = [name for name in CACHE_CAPABILITIES if not callable(getattr(cache, name, None))]
    if missing:
        msg = f"Cache {type(cache).__name__} is missing callable methods: {', '.join(missing)}"
        raise ConfigurationError(msg)
    return cache  # type: ignore[return-value]


class InMemoryAddressCache:
    """Dict-backed address cache for a single process.

    Examples
    --------
    >>> import asyncio
    >>> cache = InMemoryAddressCache()
    >>> asyncio.run(cache.upsert("a", "10.0.0.1:9000"))
    >>> asyncio.run(cache.lookup("a"))
    '10.0.0.1:9000'
    """

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries or {})

    async def lookup(self, actor_id: str) -> str | None:
        return self._entries.get(actor_id)

    async def upsert(self, actor_id: str, address: str) -> None:
        previous = self._entries.get(actor_id)
        self._entries[actor_id] = address
        if previous is not None and previous != address:
            logger.debug("Actor %s moved %s -> %s", actor_id, previous, address)

    async def contains(self, actor_id: str) -> bool:
        return actor_id in self._entries

    async def remove(self, actor_id: str) -> None:
        self._entries.pop(actor_id, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every cached entry."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
