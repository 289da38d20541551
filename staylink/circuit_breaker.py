"""A three-state circuit breaker guarding calls to a downstream service."""

from __future__ import annotations

import enum
import time
from typing import Callable


class BreakerState(enum.Enum):
    """The state a circuit breaker is in."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Counts failures and successes and decides whether calls may pass.

    While closed, calls pass; ``failure_threshold`` consecutive failures open
    the breaker. While open, calls are refused until ``open_duration_ms`` has
    elapsed, after which the breaker goes half-open and lets calls through.
    In half-open, ``success_threshold`` successes close it again and any
    failure opens it.
    """

    def __init__(
        self,
        failure_threshold: int,
        success_threshold: int,
        open_duration_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.open_duration_ms = open_duration_ms
        self._clock = clock
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._successes = 0
        self._opened_at = 0.0

    @property
    def state(self) -> BreakerState:
        """The current state."""
        return self._state

    def _close(self) -> None:
        self._state = BreakerState.CLOSED
        self._failures = 0

    def _open(self) -> None:
        self._state = BreakerState.OPEN
        self._opened_at = self._clock()

    def _half_open(self) -> None:
        self._state = BreakerState.HALF_OPEN
        self._successes = 0

    def is_closed(self) -> bool:
        """Whether the breaker is closed."""
        return self._state is BreakerState.CLOSED

    def should_allow_call(self) -> bool:
        """Whether a call may go through now; moves open to half-open when due."""
        if self._state is BreakerState.OPEN:
            elapsed_ms = (self._clock() - self._opened_at) * 1000.0
            if elapsed_ms >= self.open_duration_ms:
                self._half_open()
                return True
            return False
        return True

    def success(self) -> None:
        """Record a successful call."""
        if self._state is BreakerState.HALF_OPEN:
            self._successes += 1
            if self._successes >= self.success_threshold:
                self._close()

    def fail(self) -> None:
        """Record a failed call."""
        if self._state is BreakerState.CLOSED:
            self._failures += 1
            if self._failures >= self.failure_threshold:
                self._open()
        elif self._state is BreakerState.HALF_OPEN:
            self._open()