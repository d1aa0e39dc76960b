"""Codecs turning raw inbound bytes into messages and back.

Provides the ``Codec`` protocol and two implementations, ``JsonCodec``
(the default, textual) and ``MsgpackCodec`` (binary).  Codecs never raise:
a failure yields a sentinel message of type ``MESSAGE_DECODE_ERROR`` or
``MESSAGE_ENCODE_ERROR`` instead, so every call produces exactly one value.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol, runtime_checkable

import msgpack

from actorbus.messages import Message, MessageType, codec_error

logger = logging.getLogger("actorbus.codec")

type CodecKind = Literal["json", "msgpack"]
type DecodeFn = Callable[[bytes], Awaitable[Message]]
type EncodeFn = Callable[[Any], Awaitable[bytes | Message]]

DECODE_ERROR_TEXT = "There was an error decoding the message"
ENCODE_ERROR_TEXT = "There was an error encoding the message"

_DECODE_ERRORS = (ValueError, TypeError, RecursionError)
_ENCODE_ERRORS = (ValueError, TypeError, OverflowError, RecursionError)


@runtime_checkable
class Codec(Protocol):
    """Protocol for a message codec.

    Any object with async ``decode`` and ``encode`` methods satisfies it.

    Examples
    --------
    >>> class UpperCodec:
    ...     async def decode(self, raw: bytes) -> Message:
    ...         return {"action": raw.decode().upper()}
    ...     async def encode(self, message: Any) -> bytes:
    ...         return str(message).encode()
    >>> isinstance(UpperCodec(), Codec)
    True
    """

    async def decode(self, raw: bytes) -> Message: ...

    async def encode(self, message: Any) -> bytes | Message: ...


def is_codec_error(result: object) -> bool:
    """Return ``True`` if *result* is a codec-failure sentinel."""
    return isinstance(result, dict) and result.get("type") in (
        MessageType.MESSAGE_DECODE_ERROR,
        MessageType.MESSAGE_ENCODE_ERROR,
    )


def _decode_failure(exc: BaseException) -> Message:
    logger.debug("Decode failed: %s", exc)
    return codec_error(MessageType.MESSAGE_DECODE_ERROR, DECODE_ERROR_TEXT, exc)


def _encode_failure(exc: BaseException) -> Message:
    logger.debug("Encode failed: %s", exc)
    return codec_error(MessageType.MESSAGE_ENCODE_ERROR, ENCODE_ERROR_TEXT, exc)


def _require_mapping(value: object) -> Message:
    if not isinstance(value, dict):
        msg = f"expected a mapping at the top level, got {type(value).__name__}"
        raise TypeError(msg)
    return value


class JsonCodec:
    """UTF-8 JSON codec.

    Examples
    --------
    >>> import asyncio
    >>> codec = JsonCodec()
    >>> asyncio.run(codec.encode({"type": "TEST_CACHE_GET"}))
    b'{"type": "TEST_CACHE_GET"}'
    >>> asyncio.run(codec.decode(b"not json"))["type"]
    'MESSAGE_DECODE_ERROR'
    """

    async def decode(self, raw: bytes | str) -> Message:
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes | bytearray) else raw
            return _require_mapping(json.loads(text))
        except _DECODE_ERRORS as exc:
            return _decode_failure(exc)

    async def encode(self, message: Any) -> bytes | Message:
        try:
            return json.dumps(message).encode("utf-8")
        except _ENCODE_ERRORS as exc:
            return _encode_failure(exc)


class MsgpackCodec:
    """MessagePack codec, compact binary alternative to ``JsonCodec``.

    Examples
    --------
    >>> import asyncio
    >>> codec = MsgpackCodec()
    >>> data = asyncio.run(codec.encode({"receiver_id": "a"}))
    >>> asyncio.run(codec.decode(data))
    {'receiver_id': 'a'}
    """

    async def decode(self, raw: bytes) -> Message:
        try:
            return _require_mapping(msgpack.unpackb(raw, raw=False))
        except _DECODE_ERRORS as exc:
            return _decode_failure(exc)

    async def encode(self, message: Any) -> bytes | Message:
        try:
            return msgpack.packb(message, use_bin_type=True)  # type: ignore[no-any-return]
        except _ENCODE_ERRORS as exc:
            return _encode_failure(exc)


def build_codec(kind: CodecKind = "json") -> Codec:
    """Build a codec from its configuration name.

    Parameters
    ----------
    kind : CodecKind
        ``"json"`` or ``"msgpack"``.

    Raises
    ------
    ValueError
        If *kind* is not a known codec.
    """
    match kind:
        case "json":
            return JsonCodec()
        case "msgpack":
            return MsgpackCodec()
        case _:
            msg = f"Unknown codec: {kind!r} (expected 'json' or 'msgpack')"
            raise ValueError(msg)
