"""Actor address representation with strict ``host:port`` parsing.

Provides ``ActorAddress``, a frozen dataclass naming the network endpoint
an actor can currently be reached at.  Addresses travel through the bus and
the cache as plain ``host:port`` strings and are only parsed at send time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from actorbus.errors import AddressError

_PORT_PATTERN = re.compile(r"^\d{1,5}$")


@dataclass(frozen=True)
class ActorAddress:
    """Immutable point-to-point endpoint of an actor.

    Parameters
    ----------
    host : str
        Hostname or IPv4 address.
    port : int
        TCP port.

    Examples
    --------
    >>> addr = ActorAddress.parse("10.0.0.1:9000")
    >>> addr.host, addr.port
    ('10.0.0.1', 9000)
    >>> str(addr)
    '10.0.0.1:9000'
    """

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @staticmethod
    def parse(raw: str) -> ActorAddress:
        """Parse a ``host:port`` string.

        The string must contain exactly one ``:``, a non-empty host and a
        decimal port in ``0..65535``.  Ports are numeric only: a placeholder
        such as the literal ``"host:port"`` is rejected, so ``Bus.send`` drops
        the message with a warning instead of reaching the transport.
        IPv6 literals are rejected as well.

        Parameters
        ----------
        raw : str
            Address as stored in the cache.

        Returns
        -------
        ActorAddress

        Raises
        ------
        AddressError
            If *raw* is not a two-part ``host:port`` string.

        Examples
        --------
        >>> ActorAddress.parse("localhost:5000")
        ActorAddress(host='localhost', port=5000)
        >>> ActorAddress.parse("host:port")
        Traceback (most recent call last):
        ...
        actorbus.errors.AddressError: Invalid actor address, bad port: 'host:port'
        >>> ActorAddress.parse("a:b:c")
        Traceback (most recent call last):
        ...
        actorbus.errors.AddressError: Invalid actor address, expected 'host:port', got: 'a:b:c'
        """
        if not isinstance(raw, str):
            msg = f"Invalid actor address, expected a string, got: {type(raw).__name__}"
            raise AddressError(msg)

        parts = raw.split(":")
        if len(parts) != 2:
            msg = f"Invalid actor address, expected 'host:port', got: {raw!r}"
            raise AddressError(msg)

        host, port_str = parts
        if not host.strip():
            msg = f"Invalid actor address, missing host: {raw!r}"
            raise AddressError(msg)
        if not _PORT_PATTERN.match(port_str) or int(port_str) > 65535:
            msg = f"Invalid actor address, bad port: {raw!r}"
            raise AddressError(msg)

        return ActorAddress(host=host, port=int(port_str))
