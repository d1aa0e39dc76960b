"""TOML-based configuration for the actor bus.

Provides ``load_config`` / ``discover_config`` for loading ``actorbus.toml``
into frozen dataclasses.  A minimal file::

    [bus]
    host = "0.0.0.0"
    port = 5000
    codec = "json"            # or "msgpack"
    forward_codec_errors = false

    [logging]
    level = "INFO"

    [tls]
    certfile = "node.pem"
    cafile = "ca.pem"
"""

from __future__ import annotations

import ssl
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, get_args

from actorbus.bus import DEFAULT_PORT
from actorbus.codec import CodecKind

__all__ = [
    "CONFIG_FILENAME",
    "BusConfig",
    "TlsConfig",
    "discover_config",
    "load_config",
]

CONFIG_FILENAME = "actorbus.toml"


@dataclass(frozen=True)
class TlsConfig:
    """TLS contexts for the listener and for outbound sends.

    Parameters
    ----------
    server_context : ssl.SSLContext
        Context for inbound connections.
    client_context : ssl.SSLContext
        Context for outbound connections.
    """

    server_context: ssl.SSLContext
    client_context: ssl.SSLContext

    @classmethod
    def from_paths(
        cls,
        *,
        certfile: str,
        cafile: str,
        keyfile: str | None = None,
    ) -> TlsConfig:
        """Both sides present *certfile* and trust only *cafile* (mutual TLS).

        *keyfile* may be omitted when the key is bundled in *certfile*.
        """
        server_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH, cafile=cafile)
        server_context.verify_mode = ssl.CERT_REQUIRED
        client_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=cafile)
        for context in (server_context, client_context):
            context.load_cert_chain(certfile, keyfile)
        return cls(server_context=server_context, client_context=client_context)


@dataclass(frozen=True)
class BusConfig:
    """Settings for one bus process.

    Parameters
    ----------
    host : str
        Listener bind address.
    port : int
        Listener port.
    codec : CodecKind
        ``"json"`` or ``"msgpack"``.
    forward_codec_errors : bool
        Forward codec-failure sentinels instead of dropping them.
    log_level : str
        Root logging level name.
    tls : TlsConfig | None
        TLS contexts. ``None`` means plain TCP.

    Examples
    --------
    >>> BusConfig().port
    5000
    """

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    codec: CodecKind = "json"
    forward_codec_errors: bool = False
    log_level: str = "INFO"
    tls: TlsConfig | None = None


def discover_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``actorbus.toml``.

    Returns
    -------
    Path | None
        Path to the discovered file, or ``None`` if there is none.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None) -> BusConfig:
    """Load a ``BusConfig`` from a TOML file.

    If *path* is ``None``, auto-discovers ``actorbus.toml`` from the current
    working directory upwards.  Returns the defaults if no file is found.

    Raises
    ------
    FileNotFoundError
        If an explicit *path* does not exist.
    ValueError
        If the file names an unknown codec.
    """
    if path is None:
        discovered = discover_config()
        if discovered is None:
            return BusConfig()
        path = discovered

    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open("rb") as f:
        raw = tomllib.load(f)

    bus_raw: dict[str, Any] = raw.get("bus", {})
    codec = bus_raw.get("codec", "json")
    if codec not in get_args(CodecKind.__value__):
        msg = f"Unknown codec in {path}: {codec!r}"
        raise ValueError(msg)

    logging_raw: dict[str, Any] = raw.get("logging", {})

    tls_raw: dict[str, Any] = raw.get("tls", {})
    tls = (
        TlsConfig.from_paths(
            certfile=tls_raw["certfile"],
            cafile=tls_raw["cafile"],
            keyfile=tls_raw.get("keyfile"),
        )
        if tls_raw
        else None
    )

    return BusConfig(
        host=bus_raw.get("host", "0.0.0.0"),
        port=int(bus_raw.get("port", DEFAULT_PORT)),
        codec=codec,
        forward_codec_errors=bool(bus_raw.get("forward_codec_errors", False)),
        log_level=str(logging_raw.get("level", "INFO")).upper(),
        tls=tls,
    )
