"""Bounded retry policy for provider calls.

Callers report the outcome of each attempt, then let the state sleep through an
injected callable before the next one.

    ATTEMPTING --rate limited / failed--> BACKOFF --wait()--> ATTEMPTING
    ATTEMPTING --budget spent--> EXHAUSTED
"""
import enum
import time
from dataclasses import dataclass
from typing import Callable

Sleeper = Callable[[float], None]

FAILURE_DELAY_SECONDS = 2.0


class RetryPhase(enum.Enum):
    ATTEMPTING = 'attempting'
    BACKOFF = 'backoff'
    EXHAUSTED = 'exhausted'


@dataclass(slots=True)
class RetryState:
    retries: int = 2
    attempt: int = 0
    phase: RetryPhase = RetryPhase.ATTEMPTING
    delay: float = 0.0

    @property
    def exhausted(self) -> bool:
        return self.phase is RetryPhase.EXHAUSTED

    @property
    def total_attempts(self) -> int:
        return self.retries + 1

    def _schedule(self, delay: float) -> None:
        if self.phase is not RetryPhase.ATTEMPTING:
            raise RuntimeError(f'Cannot record an attempt outcome while {self.phase.value}')
        if self.attempt >= self.retries:
            self.phase = RetryPhase.EXHAUSTED
            self.delay = 0.0
            return
        self.phase = RetryPhase.BACKOFF
        self.delay = delay

    def rate_limited(self) -> None:
        """Exponential backoff: 2s, 4s, 8s... for attempts 0, 1, 2..."""
        self._schedule(float(2 ** (self.attempt + 1)))

    def failed(self) -> None:
        self._schedule(FAILURE_DELAY_SECONDS)

    def wait(self, sleep: Sleeper = time.sleep) -> None:
        if self.phase is not RetryPhase.BACKOFF:
            raise RuntimeError(f'Nothing to wait for while {self.phase.value}')
        sleep(self.delay)
        self.attempt += 1
        self.delay = 0.0
        self.phase = RetryPhase.ATTEMPTING
