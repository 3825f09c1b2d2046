"""Engine tuning constants.

Movement speed is a presentation tunable; positions are exchanged in whole
tiles so peers do not need to agree on it.
"""

TILE_SIZE = 16  # pixels per tile edge
WALK_SPEED_PX_PER_SEC = 48.0
MAX_DELTA_TIME_SEC = 0.1  # clamp for long frames (tab in background, debugger pause)

NUM_CHARACTER_VARIANTS = 6

# Remote position updates further away than this (Manhattan, in tiles) jump instead of walking.
TELEPORT_DISTANCE_THRESHOLD = 10

WANDER_PAUSE_MIN_SEC = 2.0
WANDER_PAUSE_MAX_SEC = 20.0
