"""Run a standalone bus process: ``python -m actorbus``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from dataclasses import replace
from pathlib import Path

from actorbus.bus import Bus
from actorbus.cache import InMemoryAddressCache
from actorbus.codec import build_codec
from actorbus.config import BusConfig, load_config
from actorbus.transport import tcp_transport

logger = logging.getLogger("actorbus")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="actorbus", description="Actor-location message bus")
    parser.add_argument("--config", type=Path, default=None, help="path to actorbus.toml")
    parser.add_argument("--host", default=None, help="listener bind address")
    parser.add_argument("--port", type=int, default=None, help="listener port")
    parser.add_argument("--codec", choices=["json", "msgpack"], default=None)
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> BusConfig:
    """Load the config file and apply command-line overrides on top."""
    config = load_config(args.config)
    overrides = {
        key: value
        for key, value in (
            ("host", args.host),
            ("port", args.port),
            ("codec", args.codec),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    return replace(config, **overrides)


def build_bus(config: BusConfig) -> Bus:
    tls = config.tls
    transport = tcp_transport(
        config.host,
        server_ssl=tls.server_context if tls else None,
        client_ssl=tls.client_context if tls else None,
    )
    return Bus(
        cache=InMemoryAddressCache(),
        transport=transport,
        codec=build_codec(config.codec),
        forward_codec_errors=config.forward_codec_errors,
    )


async def run(config: BusConfig) -> None:
    bus = build_bus(config)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await bus.start(config.port)
        await stop.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await bus.stop()
        await bus.drain()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = resolve_config(args)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Starting with %s", config)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
