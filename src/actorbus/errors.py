"""Exception hierarchy for the actor bus."""

from __future__ import annotations


class BusError(Exception):
    """Base class for all errors raised by ``actorbus``."""


class ConfigurationError(BusError, TypeError):
    """Raised when a collaborator handed to the bus lacks a required capability.

    Examples
    --------
    >>> raise ConfigurationError("cache is missing: lookup")
    Traceback (most recent call last):
    ...
    actorbus.errors.ConfigurationError: cache is missing: lookup
    """


class AddressError(BusError, ValueError):
    """Raised when a cached actor address is not a well-formed ``host:port``."""
