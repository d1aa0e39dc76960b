from actorbus.address import ActorAddress
from actorbus.bus import DEFAULT_PORT, Bus
from actorbus.cache import AddressCache, InMemoryAddressCache, validate_cache
from actorbus.codec import (
    Codec,
    CodecKind,
    DecodeFn,
    EncodeFn,
    JsonCodec,
    MsgpackCodec,
    build_codec,
    is_codec_error,
)
from actorbus.config import BusConfig, TlsConfig, discover_config, load_config
from actorbus.errors import AddressError, BusError, ConfigurationError
from actorbus.messages import (
    CodecFailure,
    Command,
    DeregisterActor,
    InvalidCommand,
    Message,
    MessageType,
    Passthrough,
    RegisterActor,
    TestCacheGet,
    UpdateActorAddress,
    classify,
    codec_error,
)
from actorbus.transport import (
    InboundStream,
    Listener,
    MessageStream,
    TcpServer,
    Transport,
    send_frame,
    tcp_transport,
    validate_transport,
)

__all__ = [
    "ActorAddress",
    "AddressCache",
    "AddressError",
    "Bus",
    "BusConfig",
    "BusError",
    "Codec",
    "CodecFailure",
    "CodecKind",
    "Command",
    "ConfigurationError",
    "DEFAULT_PORT",
    "DecodeFn",
    "DeregisterActor",
    "EncodeFn",
    "InMemoryAddressCache",
    "InboundStream",
    "InvalidCommand",
    "JsonCodec",
    "Listener",
    "Message",
    "MessageStream",
    "MessageType",
    "MsgpackCodec",
    "Passthrough",
    "RegisterActor",
    "TcpServer",
    "TestCacheGet",
    "TlsConfig",
    "Transport",
    "UpdateActorAddress",
    "build_codec",
    "classify",
    "codec_error",
    "discover_config",
    "is_codec_error",
    "load_config",
    "send_frame",
    "tcp_transport",
    "validate_cache",
    "validate_transport",
]
