"""Relay wire protocol: message types, MessagePack codec, connection interface and routing."""

from office.messaging.encoder import DecodeError, decode, encode
from office.messaging.protocol import ConnectionProtocol
from office.messaging.room_codes import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    generate_room_code,
    generate_unique_room_code,
    is_valid_room_code,
    normalize_room_code,
)
from office.messaging.types import (
    ClientMessageType,
    PlayerInfo,
    ServerMessageType,
    SessionErrorCode,
    parse_client_message,
    parse_server_message,
)

__all__ = [
    "ROOM_CODE_ALPHABET",
    "ROOM_CODE_LENGTH",
    "ClientMessageType",
    "ConnectionProtocol",
    "DecodeError",
    "PlayerInfo",
    "ServerMessageType",
    "SessionErrorCode",
    "decode",
    "encode",
    "generate_room_code",
    "generate_unique_room_code",
    "is_valid_room_code",
    "normalize_room_code",
    "parse_client_message",
    "parse_server_message",
]
