"""Character models and the office state engine that owns and advances them."""

from office.engine.character import Character
from office.engine.constants import (
    MAX_DELTA_TIME_SEC,
    NUM_CHARACTER_VARIANTS,
    TELEPORT_DISTANCE_THRESHOLD,
    TILE_SIZE,
    WALK_SPEED_PX_PER_SEC,
)
from office.engine.enums import CharacterState, PlayerStatus
from office.engine.office_state import OfficeState
from office.engine.wander import IdleWander

__all__ = [
    "MAX_DELTA_TIME_SEC",
    "NUM_CHARACTER_VARIANTS",
    "TELEPORT_DISTANCE_THRESHOLD",
    "TILE_SIZE",
    "WALK_SPEED_PX_PER_SEC",
    "Character",
    "CharacterState",
    "IdleWander",
    "OfficeState",
    "PlayerStatus",
]
