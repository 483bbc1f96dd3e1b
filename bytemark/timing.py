"""Stopwatch, self-calibration and the timed measurement loop used by every benchmark."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple, TypeVar

__all__ = [
    "DEFAULT_MIN_SECS",
    "DEFAULT_REQUEST_SECS",
    "BenchmarkError",
    "Stopwatch",
    "BenchmarkResult",
    "calibrate",
    "measure",
]

T = TypeVar("T")

#: A single calibrated iteration must run longer than this many seconds.
DEFAULT_MIN_SECS = 0.05

#: How long each benchmark keeps repeating its iterations by default.
DEFAULT_REQUEST_SECS = 5.0


class BenchmarkError(RuntimeError):
    """Raised when a benchmark cannot be set up or run."""


class Stopwatch:
    """A restartable stopwatch measuring elapsed seconds."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._started: Optional[float] = None

    def start(self) -> float:
        """Start timing and return the clock reading taken."""
        self._started = self._clock()
        return self._started

    def stop(self) -> float:
        """Stop timing and return the seconds elapsed since :meth:`start`."""
        if self._started is None:
            raise BenchmarkError("stopwatch was stopped before it was started")
        elapsed = self._clock() - self._started
        self._started = None
        return elapsed


@dataclass(frozen=True)
class BenchmarkResult:
    """Work done during a measurement and the time it took."""

    work: float
    elapsed: float

    @property
    def rate(self) -> float:
        """Units of work per second."""
        if self.elapsed <= 0:
            return float("inf")
        return self.work / self.elapsed


def calibrate(
    trial: Callable[[T], float],
    candidates: Iterable[T],
    min_secs: float,
) -> T:
    """Return the first candidate whose trial runs longer than ``min_secs``.

    ``trial`` is called with each candidate in turn and returns the seconds
    one iteration took.  Raises :class:`BenchmarkError` if the candidates run
    out before any trial is long enough.
    """
    for candidate in candidates:
        if trial(candidate) > min_secs:
            return candidate
    raise BenchmarkError(f"no setting made an iteration run longer than {min_secs} s")


def measure(
    iteration: Callable[[], Tuple[float, float]],
    request_secs: float,
) -> BenchmarkResult:
    """Repeat ``iteration`` until the accumulated time reaches ``request_secs``.

    ``iteration`` returns ``(elapsed_seconds, work_done)``.  It always runs at
    least once.
    """
    accumulated = 0.0
    work = 0.0
    while True:
        elapsed, done = iteration()
        accumulated += elapsed
        work += done
        if accumulated >= request_secs:
            return BenchmarkResult(work=work, elapsed=accumulated)