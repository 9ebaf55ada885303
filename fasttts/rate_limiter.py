"""Request pacing for provider calls.

Responsibilities:
- Space consecutive requests to the same provider by a minimum interval.
- Keep pacing policy independent from provider adapters.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from time import monotonic
from typing import Awaitable, Callable


@dataclass(slots=True)
class RequestPacer:
    """Per-key minimum-interval pacer used around provider requests.

    Slots are reserved before sleeping, so concurrent callers on the same key
    are spaced out instead of waking up together.
    """

    min_interval_seconds: float = 0.05
    clock: Callable[[], float] = monotonic
    sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep
    _next_allowed_at: dict[str, float] = field(default_factory=dict)

    async def acquire(self, key: str) -> None:
        """Wait until a request for `key` is allowed under the interval policy."""

        if self.min_interval_seconds <= 0.0:
            return
        now = self.clock()
        slot = max(now, self._next_allowed_at.get(key, 0.0))
        self._next_allowed_at[key] = slot + self.min_interval_seconds
        wait_seconds = slot - now
        if wait_seconds > 0.0:
            await self.sleeper(wait_seconds)
