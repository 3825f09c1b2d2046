"""Per-connection token bucket for inbound relay frames."""

import time
from collections.abc import Callable

# Position updates are capped at 5/s by well-behaved clients; status, seat and
# ping traffic is sparse, so 20/s sustained leaves plenty of room.
DEFAULT_RATE = 20.0
DEFAULT_BURST = 40


class TokenBucket:
    """Refills at ``rate`` tokens per second up to ``burst``; each frame spends one."""

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        burst: int = DEFAULT_BURST,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError(f"Invalid token bucket parameters: rate={rate}, burst={burst}")
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._updated_at = clock()

    @property
    def tokens(self) -> float:
        return self._tokens

    def consume(self) -> bool:
        """Spend one token. Returns False when the caller should be throttled."""
        now = self._clock()
        self._tokens = min(float(self._burst), self._tokens + (now - self._updated_at) * self._rate)
        self._updated_at = now
        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True
