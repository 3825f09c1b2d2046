"""
String enum definitions for office presence and character animation.
"""

from enum import StrEnum


class PlayerStatus(StrEnum):
    """Behavioral status a participant broadcasts to the room."""

    CODING = "coding"
    READING = "reading"
    IDLE = "idle"
    AFK = "afk"

    @property
    def is_active(self) -> bool:
        return self in (PlayerStatus.CODING, PlayerStatus.READING)


class CharacterState(StrEnum):
    """Animation state of a character on the grid."""

    IDLE = "idle"
    WALKING = "walking"
    SITTING_IDLE = "sitting_idle"
    SITTING_ACTIVE = "sitting_active"

    @property
    def is_sitting(self) -> bool:
        return self in (CharacterState.SITTING_IDLE, CharacterState.SITTING_ACTIVE)
