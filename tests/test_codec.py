from __future__ import annotations

import msgpack
import pytest

from actorbus.codec import (
    DECODE_ERROR_TEXT,
    ENCODE_ERROR_TEXT,
    Codec,
    JsonCodec,
    MsgpackCodec,
    build_codec,
    is_codec_error,
)


MESSAGES = [
    {"action": {"text": "hello"}, "receiver_id": "greeter"},
    {"type": "REGISTER_ACTOR", "payload": {"actor_id": "a", "actor_address": "h:1"}},
    {"type": "CUSTOM", "action": [1, 2.5, None, True], "receiver_id": "é"},
]


@pytest.fixture(params=[JsonCodec, MsgpackCodec], ids=["json", "msgpack"])
def codec(request: pytest.FixtureRequest) -> Codec:
    return request.param()


async def test_codecs_satisfy_protocol(codec: Codec) -> None:
    assert isinstance(codec, Codec)


@pytest.mark.parametrize("message", MESSAGES)
async def test_decode_inverts_encode(codec: Codec, message: dict) -> None:
    encoded = await codec.encode(message)
    assert isinstance(encoded, bytes)
    assert await codec.decode(encoded) == message


async def test_json_encode_is_utf8_text() -> None:
    encoded = await JsonCodec().encode({"receiver_id": "a"})
    assert encoded == b'{"receiver_id": "a"}'


async def test_json_decode_accepts_str() -> None:
    assert await JsonCodec().decode('{"a": 1}') == {"a": 1}  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "raw",
    [b"not json", b"{", b"", b"\xff\xfe", b"[1, 2]", b"42", b'"text"'],
)
async def test_json_malformed_yields_one_decode_sentinel(raw: bytes) -> None:
    result = await JsonCodec().decode(raw)
    assert result["type"] == "MESSAGE_DECODE_ERROR"
    assert result["payload"]["message"] == DECODE_ERROR_TEXT
    assert isinstance(result["payload"]["original_error"], str)
    assert is_codec_error(result)


@pytest.mark.parametrize(
    "raw",
    [b"\xc1", b"\x92\x01", msgpack.packb([1, 2]), msgpack.packb(7), msgpack.packb({}) + b"\x01"],
)
async def test_msgpack_malformed_yields_one_decode_sentinel(raw: bytes) -> None:
    result = await MsgpackCodec().decode(raw)
    assert result["type"] == "MESSAGE_DECODE_ERROR"
    assert result["payload"]["message"] == DECODE_ERROR_TEXT


async def test_unencodable_yields_encode_sentinel(codec: Codec) -> None:
    result = await codec.encode({"action": object()})
    assert isinstance(result, dict)
    assert result["type"] == "MESSAGE_ENCODE_ERROR"
    assert result["payload"]["message"] == ENCODE_ERROR_TEXT
    assert is_codec_error(result)


async def test_json_circular_yields_encode_sentinel() -> None:
    circular: dict = {}
    circular["self"] = circular
    result = await JsonCodec().encode(circular)
    assert is_codec_error(result)


async def test_is_codec_error_rejects_plain_messages() -> None:
    assert not is_codec_error({"type": "REGISTER_ACTOR"})
    assert not is_codec_error(b"MESSAGE_DECODE_ERROR")


async def test_build_codec() -> None:
    assert isinstance(build_codec("json"), JsonCodec)
    assert isinstance(build_codec("msgpack"), MsgpackCodec)
    assert isinstance(build_codec(), JsonCodec)


async def test_build_codec_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown codec"):
        build_codec("xml")  # type: ignore[arg-type]
