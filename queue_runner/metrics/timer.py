"""Latency timers that feed histogram handles."""

from __future__ import annotations

import functools
import time
from typing import Any, Callable, Protocol, TypeVar

from .errors import TimerStateError

Clock = Callable[[], float]
F = TypeVar("F", bound=Callable[..., Any])


class SupportsObserve(Protocol):
    def observe(self, value: float) -> None: ...


class ManualTimer:
    """Captures a monotonic start time; ``finish`` records the elapsed seconds.

    ``finish`` records one observation per call. Call it exactly once per
    measured region; use :class:`ScopedTimer` when the region has more than one
    exit path.
    """

    __slots__ = ("_clock", "_start")

    def __init__(self, clock: Clock = time.perf_counter) -> None:
        self._clock = clock
        self._start = clock()

    @property
    def start(self) -> float:
        return self._start

    def elapsed(self) -> float:
        return max(0.0, self._clock() - self._start)

    def finish(self, histogram: SupportsObserve) -> float:
        duration = self.elapsed()
        histogram.observe(duration)
        return duration


class ScopedTimer:
    """Context manager that records into one histogram when the block exits.

    The observation is made exactly once, whether the block completes, returns
    early or raises. Exceptions are never suppressed. An instance covers one
    region only: entering it again raises :class:`TimerStateError`.
    """

    __slots__ = ("_histogram", "_clock", "_timer", "_entered", "_duration")

    def __init__(self, histogram: SupportsObserve, *, clock: Clock = time.perf_counter) -> None:
        self._histogram = histogram
        self._clock = clock
        self._timer: ManualTimer | None = None
        self._entered = False
        self._duration: float | None = None

    @property
    def histogram(self) -> SupportsObserve:
        return self._histogram

    @property
    def duration(self) -> float | None:
        """Recorded value in seconds, or ``None`` while the block is running."""

        return self._duration

    def __enter__(self) -> "ScopedTimer":
        if self._entered:
            raise TimerStateError("scoped timer already used; create a new one per region")
        self._entered = True
        self._timer = ManualTimer(self._clock)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        timer, self._timer = self._timer, None
        if timer is not None:
            self._duration = timer.finish(self._histogram)
        return False

    def __copy__(self) -> "ScopedTimer":
        raise TypeError("ScopedTimer cannot be copied")

    def __deepcopy__(self, memo: dict) -> "ScopedTimer":
        raise TypeError("ScopedTimer cannot be copied")

    @classmethod
    def wrap(cls, histogram: SupportsObserve, *, clock: Clock = time.perf_counter) -> Callable[[F], F]:
        """Decorator timing every call of the wrapped function."""

        def decorator(func: F) -> F:
            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                with cls(histogram, clock=clock):
                    return func(*args, **kwargs)

            return wrapper  # type: ignore[return-value]

        return decorator


__all__ = ["Clock", "SupportsObserve", "ManualTimer", "ScopedTimer"]
