from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from office.engine.enums import PlayerStatus
from office.layout.models import MAX_GRID_COLS, MAX_GRID_ROWS

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

ROOM_CODE_PATTERN = r"^[A-Za-z0-9]{6}$"


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    SET_STATUS = "set_status"
    REASSIGN_SEAT = "reassign_seat"
    POSITION = "position"
    PING = "ping"


class ServerMessageType(StrEnum):
    ROOM_JOINED = "room_joined"
    ROOM_SNAPSHOT = "room_snapshot"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    PLAYER_STATUS_CHANGED = "player_status_changed"
    PLAYER_SEAT_CHANGED = "player_seat_changed"
    PLAYER_POSITION = "player_position"
    PONG = "pong"
    ERROR = "session_error"


class SessionErrorCode(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ROOM_LIMIT_REACHED = "room_limit_reached"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    INVALID_MESSAGE = "invalid_message"
    RATE_LIMITED = "rate_limited"


_COL_FIELD = Field(ge=0, lt=MAX_GRID_COLS)
_ROW_FIELD = Field(ge=0, lt=MAX_GRID_ROWS)
_SEAT_ID_FIELD = Field(default=None, min_length=1, max_length=64)


class PlayerInfo(BaseModel):
    """Membership record for one participant, as carried in snapshots."""

    id: int = Field(ge=1)
    name: str = Field(default="", max_length=50)
    character_index: int = Field(default=0, ge=0)
    status: PlayerStatus = PlayerStatus.IDLE
    seat_id: str | None = _SEAT_ID_FIELD
    col: int | None = Field(default=None, ge=0, lt=MAX_GRID_COLS)
    row: int | None = Field(default=None, ge=0, lt=MAX_GRID_ROWS)


class _PlayerNameMixin(BaseModel):
    player_name: str = Field(min_length=1, max_length=50)
    character_index: int = Field(default=0, ge=0, le=1000)

    @field_validator("player_name")
    @classmethod
    def _validate_player_name(cls, v: str) -> str:
        if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in v):
            raise ValueError("player_name must not contain control characters")
        return v


class CreateRoomMessage(_PlayerNameMixin):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM


class JoinRoomMessage(_PlayerNameMixin):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = Field(pattern=ROOM_CODE_PATTERN)

    @field_validator("room_id")
    @classmethod
    def _normalize_room_id(cls, v: str) -> str:
        return v.upper()


class LeaveRoomMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class SetStatusMessage(BaseModel):
    type: Literal[ClientMessageType.SET_STATUS] = ClientMessageType.SET_STATUS
    status: PlayerStatus


class ReassignSeatMessage(BaseModel):
    type: Literal[ClientMessageType.REASSIGN_SEAT] = ClientMessageType.REASSIGN_SEAT
    seat_id: str | None = _SEAT_ID_FIELD


class PositionMessage(BaseModel):
    type: Literal[ClientMessageType.POSITION] = ClientMessageType.POSITION
    col: int = _COL_FIELD
    row: int = _ROW_FIELD


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = (
    CreateRoomMessage
    | JoinRoomMessage
    | LeaveRoomMessage
    | SetStatusMessage
    | ReassignSeatMessage
    | PositionMessage
    | PingMessage
)


class RoomJoinedMessage(BaseModel):
    """Reply to create/join: the assigned id plus the full current membership."""

    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED
    room_id: str
    player_id: int
    players: list[PlayerInfo]


class RoomSnapshotMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_SNAPSHOT] = ServerMessageType.ROOM_SNAPSHOT
    room_id: str
    players: list[PlayerInfo]


class PlayerJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_JOINED] = ServerMessageType.PLAYER_JOINED
    player: PlayerInfo


class PlayerLeftMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_LEFT] = ServerMessageType.PLAYER_LEFT
    player_id: int


class PlayerStatusChangedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_STATUS_CHANGED] = ServerMessageType.PLAYER_STATUS_CHANGED
    player_id: int
    status: PlayerStatus


class PlayerSeatChangedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_SEAT_CHANGED] = ServerMessageType.PLAYER_SEAT_CHANGED
    player_id: int
    seat_id: str | None = None


class PlayerPositionMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_POSITION] = ServerMessageType.PLAYER_POSITION
    player_id: int
    col: int = _COL_FIELD
    row: int = _ROW_FIELD


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str


ServerMessage = (
    RoomJoinedMessage
    | RoomSnapshotMessage
    | PlayerJoinedMessage
    | PlayerLeftMessage
    | PlayerStatusChangedMessage
    | PlayerSeatChangedMessage
    | PlayerPositionMessage
    | PongMessage
    | ErrorMessage
)

_client_adapter = TypeAdapter(Annotated[ClientMessage, Field(discriminator="type")])
_server_adapter = TypeAdapter(Annotated[ServerMessage, Field(discriminator="type")])


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage. Raises pydantic.ValidationError."""
    return _client_adapter.validate_python(data)


def parse_server_message(data: dict[str, Any]) -> ServerMessage:
    """Parse a raw dict into a typed ServerMessage. Raises pydantic.ValidationError."""
    return _server_adapter.validate_python(data)
