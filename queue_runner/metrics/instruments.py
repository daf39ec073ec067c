"""Registry-owned handles around ``prometheus_client`` instruments.

Callers only ever see these handles. They expose the record operations the
queue runner needs (``increment``, ``set``, ``observe``) plus read-back for
tests and diagnostics. The wrapped ``prometheus_client`` objects carry their
own locks, so every record call is safe from concurrent workers. Identity
(name, labels, boundaries) is fixed at creation and exposed read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.utils import INF, floatToGoString

from .errors import UnknownLabelValueError

logger = logging.getLogger(__name__)


class Disposition(str, Enum):
    """Outcome of loading a single queued build."""

    UNKNOWN_EXIT = "unknown-exit"
    PREMATURE_GC = "premature-gc"
    CACHED_FAILURE = "cached-failure"
    CACHED_SUCCESS = "cached-success"
    ADDED = "added"


def _sample(
    registry: CollectorRegistry, name: str, labels: Mapping[str, str] | None = None
) -> float:
    value = registry.get_sample_value(name, dict(labels or {}))
    return 0.0 if value is None else value


class CounterHandle:
    """Monotonic integer counter without labels."""

    __slots__ = ("_name", "_counter", "_registry")

    def __init__(self, name: str, counter: Counter, registry: CollectorRegistry) -> None:
        self._name = name
        self._counter = counter
        self._registry = registry

    @property
    def name(self) -> str:
        return self._name

    def increment(self, amount: int = 1) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValueError(f"{self._name}: counter increments must be integers")
        if amount < 0:
            raise ValueError(f"{self._name}: counters can only be incremented")
        self._counter.inc(amount)

    @property
    def value(self) -> int:
        return int(_sample(self._registry, f"{self._name}_total"))

    def __repr__(self) -> str:
        return f"CounterHandle({self._name!r})"


class GaugeHandle:
    """Single settable value without labels."""

    __slots__ = ("_name", "_gauge", "_registry")

    def __init__(self, name: str, gauge: Gauge, registry: CollectorRegistry) -> None:
        self._name = name
        self._gauge = gauge
        self._registry = registry

    @property
    def name(self) -> str:
        return self._name

    def set(self, value: float) -> None:
        self._gauge.set(value)

    @property
    def value(self) -> float:
        return _sample(self._registry, self._name)

    def __repr__(self) -> str:
        return f"GaugeHandle({self._name!r})"


@dataclass(frozen=True)
class HistogramSnapshot:
    """Point-in-time read of one histogram.

    ``buckets`` maps each upper bound (ascending, ending with ``+Inf``) to the
    cumulative number of observations less than or equal to it.
    """

    buckets: dict[float, int] = field(default_factory=dict)
    count: int = 0
    sum: float = 0.0

    def cumulative(self, bound: float) -> int:
        return self.buckets[float(bound)]


class HistogramHandle:
    """One histogram with fixed bucket boundaries.

    ``labels`` is empty for a standalone histogram and holds the family label
    for a family member.
    """

    __slots__ = ("_name", "_labels", "_boundaries", "_histogram", "_registry")

    def __init__(
        self,
        name: str,
        histogram: Histogram,
        boundaries: tuple[float, ...],
        registry: CollectorRegistry,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        self._name = name
        self._labels: Mapping[str, str] = MappingProxyType(dict(labels or {}))
        self._boundaries = tuple(float(b) for b in boundaries)
        self._histogram = histogram
        self._registry = registry

    @property
    def name(self) -> str:
        return self._name

    @property
    def labels(self) -> Mapping[str, str]:
        return self._labels

    @property
    def boundaries(self) -> tuple[float, ...]:
        return self._boundaries

    def observe(self, value: float) -> None:
        self._histogram.observe(value)

    def snapshot(self) -> HistogramSnapshot:
        # Bucket reads are not atomic with respect to concurrent observations.
        buckets: dict[float, int] = {}
        for bound in self._boundaries + (INF,):
            sample_labels = {**self._labels, "le": floatToGoString(bound)}
            buckets[bound] = int(_sample(self._registry, f"{self._name}_bucket", sample_labels))
        return HistogramSnapshot(
            buckets=buckets,
            count=int(_sample(self._registry, f"{self._name}_count", self._labels)),
            sum=_sample(self._registry, f"{self._name}_sum", self._labels),
        )

    def __repr__(self) -> str:
        if not self._labels:
            return f"HistogramHandle({self._name!r})"
        rendered = ",".join(f"{k}={v}" for k, v in self._labels.items())
        return f"HistogramHandle({self._name!r}, {{{rendered}}})"


class HistogramFamily:
    """Histograms sharing a name, split by one label with a closed value set."""

    __slots__ = ("_name", "_label", "_members")

    def __init__(self, name: str, label: str, members: Mapping[str, HistogramHandle]) -> None:
        self._name = name
        self._label = label
        self._members: Mapping[str, HistogramHandle] = MappingProxyType(dict(members))

    @property
    def name(self) -> str:
        return self._name

    @property
    def label(self) -> str:
        return self._label

    @property
    def label_values(self) -> tuple[str, ...]:
        return tuple(self._members)

    def labels(self, value: str | Enum) -> HistogramHandle:
        """Return the member for ``value``; unknown values are a caller error."""

        key = value.value if isinstance(value, Enum) else value
        try:
            return self._members[key]
        except (KeyError, TypeError):
            logger.warning("rejected %s=%r for %s", self._label, value, self._name)
            raise UnknownLabelValueError(self._name, self._label, value) from None

    def __getitem__(self, value: str | Enum) -> HistogramHandle:
        return self.labels(value)

    def __iter__(self) -> Iterator[HistogramHandle]:
        return iter(self._members.values())

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"HistogramFamily({self._name!r}, {self._label}={list(self._members)})"


__all__ = [
    "Disposition",
    "CounterHandle",
    "GaugeHandle",
    "HistogramSnapshot",
    "HistogramHandle",
    "HistogramFamily",
]
