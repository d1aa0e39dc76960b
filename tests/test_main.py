from __future__ import annotations

import asyncio
import os
import signal
from pathlib import Path

import pytest

from actorbus.__main__ import build_bus, parse_args, resolve_config, run
from actorbus.codec import MsgpackCodec
from actorbus.config import BusConfig


async def test_parse_args_defaults() -> None:
    args = parse_args([])
    assert args.config is None
    assert args.port is None
    assert args.codec is None


async def test_cli_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "actorbus.toml"
    path.write_text('[bus]\nhost = "10.0.0.1"\nport = 6000\n')
    config = resolve_config(parse_args(["--config", str(path), "--port", "7000", "--codec", "msgpack"]))
    assert config.host == "10.0.0.1"
    assert config.port == 7000
    assert config.codec == "msgpack"


async def test_parse_args_rejects_unknown_codec() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--codec", "xml"])


async def test_build_bus_uses_configured_codec() -> None:
    bus = build_bus(BusConfig(host="127.0.0.1", codec="msgpack"))
    assert isinstance(bus._encode.__self__, MsgpackCodec)  # type: ignore[attr-defined]
    assert not bus.listening


async def test_run_stops_on_sigterm() -> None:
    task = asyncio.create_task(run(BusConfig(host="127.0.0.1", port=0)))
    await asyncio.sleep(0.1)
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(task, timeout=2.0)
    assert task.done() and task.exception() is None
