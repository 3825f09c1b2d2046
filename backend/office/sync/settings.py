"""Client-side sync configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from office.engine.constants import TELEPORT_DISTANCE_THRESHOLD


class SyncSettings(BaseSettings):
    model_config = {"env_prefix": "OFFICE_SYNC_"}

    position_interval_ms: int = Field(default=200, ge=0)  # min gap between outbound position frames
    teleport_threshold: int = Field(default=TELEPORT_DISTANCE_THRESHOLD, ge=0)  # Manhattan tiles
    keepalive_interval_seconds: float = Field(default=10, gt=0)  # well inside the relay heartbeat timeout
    reconnect_delay_seconds: float = Field(default=3, gt=0)
