"""Message model and dispatch classification.

Inbound messages are plain mappings (the decoded wire shape).  ``classify``
turns each one into exactly one member of the ``Command`` union so the bus
can ``match`` over a closed set of cases instead of string-switching.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

type Message = dict[str, Any]


class MessageType(enum.StrEnum):
    """Reserved values of a message's ``type`` field."""

    REGISTER_ACTOR = "REGISTER_ACTOR"
    UPDATE_ACTOR_ADDRESS = "UPDATE_ACTOR_ADDRESS"
    DEREGISTER_ACTOR = "DEREGISTER_ACTOR"
    TEST_CACHE_GET = "TEST_CACHE_GET"
    MESSAGE_DECODE_ERROR = "MESSAGE_DECODE_ERROR"
    MESSAGE_ENCODE_ERROR = "MESSAGE_ENCODE_ERROR"


CONTROL_TYPES: frozenset[str] = frozenset({
    MessageType.REGISTER_ACTOR,
    MessageType.UPDATE_ACTOR_ADDRESS,
    MessageType.DEREGISTER_ACTOR,
    MessageType.TEST_CACHE_GET,
})

CODEC_ERROR_TYPES: frozenset[str] = frozenset({
    MessageType.MESSAGE_DECODE_ERROR,
    MessageType.MESSAGE_ENCODE_ERROR,
})


def codec_error(kind: MessageType, text: str, exc: BaseException) -> Message:
    """Build a codec-failure sentinel message.

    Examples
    --------
    >>> codec_error(MessageType.MESSAGE_DECODE_ERROR, "bad", ValueError("x"))
    {'type': 'MESSAGE_DECODE_ERROR', 'payload': {'message': 'bad', 'original_error': 'ValueError: x'}}
    """
    return {
        "type": str(kind),
        "payload": {
            "message": text,
            "original_error": f"{type(exc).__name__}: {exc}",
        },
    }


# Commands


@dataclass(frozen=True)
class RegisterActor:
    actor_id: str
    actor_address: str


@dataclass(frozen=True)
class UpdateActorAddress:
    actor_id: str
    actor_address: str


@dataclass(frozen=True)
class DeregisterActor:
    actor_id: str


@dataclass(frozen=True)
class TestCacheGet:
    __test__ = False  # not a pytest class

    actor_id: str


@dataclass(frozen=True)
class Passthrough:
    """A message to forward: ``action`` is sent to ``receiver_id``."""

    action: Any
    receiver_id: Any
    raw: Message


@dataclass(frozen=True)
class CodecFailure:
    """A sentinel produced by a codec that failed on this message."""

    kind: str
    text: str
    raw: Message


@dataclass(frozen=True)
class InvalidCommand:
    """A reserved control type whose payload cannot be acted on."""

    type: str
    reason: str
    raw: Any


type Command = (
    RegisterActor
    | UpdateActorAddress
    | DeregisterActor
    | TestCacheGet
    | Passthrough
    | CodecFailure
    | InvalidCommand
)


def _payload_str(payload: Any, key: str) -> str | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get(key)
    return value if isinstance(value, str) else None


def classify(message: Any) -> Command:
    """Decide which command a decoded message represents.

    Parameters
    ----------
    message : Any
        A decoded message, normally a ``dict``.

    Returns
    -------
    Command

    Examples
    --------
    >>> classify({"type": "DEREGISTER_ACTOR", "payload": {"actor_id": "a"}})
    DeregisterActor(actor_id='a')
    >>> classify({"action": {"hi": 1}, "receiver_id": "b"}).receiver_id
    'b'
    """
    if not isinstance(message, dict):
        return InvalidCommand(
            type="", reason=f"message is not a mapping: {type(message).__name__}", raw=message,
        )

    raw_type = message.get("type")
    msg_type = raw_type if isinstance(raw_type, str) else ""
    payload = message.get("payload")

    if msg_type in CODEC_ERROR_TYPES:
        text = payload.get("message", "") if isinstance(payload, dict) else ""
        return CodecFailure(kind=msg_type, text=str(text), raw=message)

    if msg_type not in CONTROL_TYPES:
        return Passthrough(
            action=message.get("action"),
            receiver_id=message.get("receiver_id"),
            raw=message,
        )

    actor_id = _payload_str(payload, "actor_id")
    if actor_id is None:
        return InvalidCommand(type=msg_type, reason="payload.actor_id missing", raw=message)

    match msg_type:
        case MessageType.REGISTER_ACTOR | MessageType.UPDATE_ACTOR_ADDRESS:
            actor_address = _payload_str(payload, "actor_address")
            if actor_address is None:
                return InvalidCommand(
                    type=msg_type, reason="payload.actor_address missing", raw=message,
                )
            if msg_type == MessageType.REGISTER_ACTOR:
                return RegisterActor(actor_id=actor_id, actor_address=actor_address)
            return UpdateActorAddress(actor_id=actor_id, actor_address=actor_address)
        case MessageType.DEREGISTER_ACTOR:
            return DeregisterActor(actor_id=actor_id)
        case _:
            return TestCacheGet(actor_id=actor_id)
