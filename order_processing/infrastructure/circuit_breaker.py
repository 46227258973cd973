"""
Count-based circuit breaker.

CLOSED:    calls pass through, outcomes are kept in a sliding window of the
           last ``window_size`` calls. Once ``minimum_calls`` outcomes are
           recorded and the failure rate reaches ``failure_rate_threshold``
           (percent), the breaker opens.
OPEN:      calls are rejected with CircuitBreakerOpenError, no network attempt.
HALF_OPEN: after ``open_timeout`` seconds, ``half_open_calls`` trial calls are
           let through. All of them succeeding closes the breaker, any
           failure opens it again.

One instance is shared by every caller of the guarded operation, so every
state change happens under a lock.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from order_processing.domain.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    name: str
    window_size: int = 10
    minimum_calls: int = 5
    failure_rate_threshold: float = 50.0
    open_timeout: float = 30.0
    half_open_calls: int = 3
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _outcomes: deque = field(init=False, repr=False)
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False, repr=False)
    _opened_at: float = field(default=0.0, init=False, repr=False)
    _half_open_permits: int = field(default=0, init=False, repr=False)
    _half_open_successes: int = field(default=0, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        self._outcomes = deque(maxlen=self.window_size)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._current_state()

    @property
    def failure_rate(self) -> float:
        with self._lock:
            return self._failure_rate()

    def allow_request(self) -> bool:
        return self._acquire() is not None

    def record_success(self, generation: Optional[int] = None) -> None:
        """``generation`` is the value granted with the call; outcomes of an earlier state are dropped"""
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            if self._state == CircuitState.HALF_OPEN:
                self._half_open_successes += 1
                if self._half_open_successes >= self.half_open_calls:
                    self._transition(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED:
                self._outcomes.append(True)

    def record_failure(self, generation: Optional[int] = None) -> None:
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                self._outcomes.append(False)
                if (
                    len(self._outcomes) >= self.minimum_calls
                    and self._failure_rate() >= self.failure_rate_threshold
                ):
                    self._transition(CircuitState.OPEN)

    async def call(self, func: Callable[..., Awaitable[T]], *args, ignore: tuple = ()) -> T:
        """
        Run ``func(*args)`` through the breaker.

        Exceptions in ``ignore`` propagate without counting as failures; any
        other exception is recorded as a failure and re-raised.
        """
        generation = self._acquire()
        if generation is None:
            raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is OPEN")
        try:
            result = await func(*args)
        except ignore:
            self.record_success(generation)
            raise
        except asyncio.CancelledError:
            self._release_permit(generation)
            raise
        except Exception:
            self.record_failure(generation)
            raise
        self.record_success(generation)
        return result

    def _acquire(self) -> Optional[int]:
        """Generation the call is granted in, None when it is rejected"""
        with self._lock:
            state = self._current_state()
            if state == CircuitState.CLOSED:
                return self._generation
            if state == CircuitState.HALF_OPEN and self._half_open_permits > 0:
                self._half_open_permits -= 1
                return self._generation
            return None

    def _release_permit(self, generation: int) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and generation == self._generation:
                self._half_open_permits += 1

    # Lock must be held by the caller of the methods below

    def _current_state(self) -> CircuitState:
        if (
            self._state == CircuitState.OPEN
            and self.clock() - self._opened_at >= self.open_timeout
        ):
            self._transition(CircuitState.HALF_OPEN)
        return self._state

    def _failure_rate(self) -> float:
        if not self._outcomes:
            return 0.0
        failures = sum(1 for ok in self._outcomes if not ok)
        return failures * 100.0 / len(self._outcomes)

    def _transition(self, state: CircuitState) -> None:
        previous = self._state
        self._state = state
        self._generation += 1
        if state == CircuitState.OPEN:
            self._opened_at = self.clock()
            logger.warning(
                "Circuit breaker '%s' OPENED (was %s, failure rate %.1f%%)",
                self.name, previous.value, self._failure_rate(),
            )
        elif state == CircuitState.HALF_OPEN:
            self._half_open_permits = self.half_open_calls
            self._half_open_successes = 0
            logger.info("Circuit breaker '%s' transitioned to HALF_OPEN", self.name)
        else:
            self._outcomes.clear()
            logger.info("Circuit breaker '%s' CLOSED", self.name)
