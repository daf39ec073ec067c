"""The queue runner's fixed, pre-registered instrument set.

``QueueMetrics`` is built once at service startup and handed to every
component that records metrics. All instruments are created in the
constructor; afterwards the set is frozen and further registration fails.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Sequence, TypeVar

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from ..config import get_settings
from .errors import DuplicateMetricError, RegistryFrozenError
from .instruments import (
    CounterHandle,
    Disposition,
    GaugeHandle,
    HistogramFamily,
    HistogramHandle,
)
from .timer import Clock, ScopedTimer

logger = logging.getLogger(__name__)

# The whole-queue fetch spans a database round trip; single build loads are
# expected to be fast and numerous.
FETCH_BUCKETS: tuple[float, ...] = (0.5, 1, 2.5, 5, 10, 15)
LOAD_BUCKETS: tuple[float, ...] = (0.05, 0.1, 0.25, 0.5, 1, 2.5)

DISPOSITION_LABEL = "disposition"

_Labels = tuple[tuple[str, str], ...]
_Key = tuple[str, _Labels]
_Handle = CounterHandle | GaugeHandle | HistogramHandle | HistogramFamily
_H = TypeVar("_H", CounterHandle, GaugeHandle, HistogramHandle, HistogramFamily)


@contextmanager
def _registry_collisions(full_name: str) -> Iterator[None]:
    try:
        yield
    except ValueError as exc:
        if "Duplicated" not in str(exc):
            raise
        logger.warning("metric %s already present in collector registry", full_name)
        raise DuplicateMetricError(f"{full_name} is already registered") from exc


class QueueMetrics:
    """Counters, histograms and the gauge recorded by the queue runner.

    Args:
        registry: collector registry to register into. A private one is
            created when omitted.
        namespace: exported name prefix. Defaults to the configured
            ``QUEUE_RUNNER_METRICS_NAMESPACE``.
        clock: monotonic clock used by :meth:`time` and :meth:`load_timer`.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        namespace: str | None = None,
        clock: Clock = time.perf_counter,
    ) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._namespace = (
            namespace if namespace is not None else get_settings().metrics_namespace
        )
        self._clock = clock
        self._directory: dict[_Key, _Handle] = {}
        self._frozen = False

        self.queue_checks_started = self.counter(
            "queue_checks_started",
            "queue_checks_started",
            "Number of times the queued builds scan was started",
        )
        self.queue_build_fetch_time = self.histogram(
            "queue_build_fetch_time",
            "queue_fetch_seconds",
            "How long it takes to query the database for queued builds",
            FETCH_BUCKETS,
        )
        self.queue_build_load_family = self.histogram_family(
            "queue_build_load",
            "queue_build_loads_seconds",
            "How long it takes to load individual builds",
            DISPOSITION_LABEL,
            [d.value for d in Disposition],
            LOAD_BUCKETS,
        )
        family = self.queue_build_load_family
        self.queue_build_load_unknown_exit = family[Disposition.UNKNOWN_EXIT]
        self.queue_build_load_premature_gc = family[Disposition.PREMATURE_GC]
        self.queue_build_load_cached_failure = family[Disposition.CACHED_FAILURE]
        self.queue_build_load_cached_success = family[Disposition.CACHED_SUCCESS]
        self.queue_build_load_added = family[Disposition.ADDED]
        self.queue_steps_created = self.counter(
            "queue_steps_created",
            "queue_steps_created",
            "Number of steps created",
        )
        self.queue_checks_early_exits = self.counter(
            "queue_checks_early_exits",
            "queue_checks_early_exits",
            "Number of times the queued builds scan yielded to potential bumps",
        )
        self.queue_checks_finished = self.counter(
            "queue_checks_finished",
            "queue_checks_finished",
            "Number of times the queued builds scan was completed",
        )
        self.queue_max_id = self.gauge(
            "queue_max_id",
            "queue_max_build_id_info",
            "Maximum build record ID in the queue",
        )

        self._frozen = True
        logger.info(
            "queue metrics ready: %d instruments under namespace %r",
            len(self._directory),
            self._namespace,
        )

    def __setattr__(self, name: str, value: object) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"cannot set {name!r}: instrument set is frozen")
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(f"cannot delete {name!r}: instrument set is frozen")
        super().__delattr__(name)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def counter(self, attr: str, name: str, documentation: str) -> CounterHandle:
        key = self._claim(attr)
        full_name = self._full_name(name)
        with _registry_collisions(full_name):
            metric = Counter(
                name, documentation, namespace=self._namespace, registry=self._registry
            )
        handle = CounterHandle(full_name, metric, self._registry)
        return self._store(key, handle)

    def gauge(self, attr: str, name: str, documentation: str) -> GaugeHandle:
        key = self._claim(attr)
        full_name = self._full_name(name)
        with _registry_collisions(full_name):
            metric = Gauge(
                name, documentation, namespace=self._namespace, registry=self._registry
            )
        handle = GaugeHandle(full_name, metric, self._registry)
        return self._store(key, handle)

    def histogram(
        self, attr: str, name: str, documentation: str, buckets: Sequence[float]
    ) -> HistogramHandle:
        key = self._claim(attr)
        full_name = self._full_name(name)
        with _registry_collisions(full_name):
            metric = Histogram(
                name,
                documentation,
                namespace=self._namespace,
                buckets=tuple(buckets),
                registry=self._registry,
            )
        handle = HistogramHandle(full_name, metric, tuple(buckets), self._registry)
        return self._store(key, handle)

    def histogram_family(
        self,
        attr: str,
        name: str,
        documentation: str,
        label: str,
        values: Iterable[str],
        buckets: Sequence[float],
    ) -> HistogramFamily:
        """Register a labelled histogram and one member per declared value."""

        family_key = self._claim(attr)
        values = list(values)
        member_keys = [self._claim(attr, ((label, value),)) for value in values]
        if len(set(values)) != len(values):
            logger.warning("duplicate %s values declared for %s: %s", label, attr, values)
            raise DuplicateMetricError(f"{attr}: duplicate {label} values {values}")

        full_name = self._full_name(name)
        with _registry_collisions(full_name):
            metric = Histogram(
                name,
                documentation,
                labelnames=(label,),
                namespace=self._namespace,
                buckets=tuple(buckets),
                registry=self._registry,
            )

        members: dict[str, HistogramHandle] = {}
        for key, value in zip(member_keys, values):
            child = metric.labels(**{label: value})
            members[value] = self._store(
                key,
                HistogramHandle(
                    full_name, child, tuple(buckets), self._registry, labels={label: value}
                ),
            )
        return self._store(family_key, HistogramFamily(full_name, label, members))

    def _claim(self, attr: str, labels: _Labels = ()) -> _Key:
        if self._frozen:
            logger.warning("rejected registration of %s after startup", attr)
            raise RegistryFrozenError(f"cannot register {attr}: instrument set is frozen")
        key = (attr, labels)
        if key in self._directory:
            logger.warning("duplicate registration of %s %s", attr, dict(labels))
            raise DuplicateMetricError(f"{attr} {dict(labels)} is already registered")
        return key

    def _store(self, key: _Key, handle: _H) -> _H:
        self._directory[key] = handle
        logger.debug("registered %r", handle)
        return handle

    def _full_name(self, name: str) -> str:
        return f"{self._namespace}_{name}" if self._namespace else name

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def frozen(self) -> bool:
        return self._frozen

    def instruments(self) -> Mapping[str, _Handle]:
        """Unlabelled instruments and families keyed by attribute name."""

        return MappingProxyType(
            {attr: handle for (attr, labels), handle in self._directory.items() if not labels}
        )

    def time(self, histogram: HistogramHandle) -> ScopedTimer:
        """Return a fresh scope-bound timer recording into ``histogram``."""

        return ScopedTimer(histogram, clock=self._clock)

    def load_timer(self, disposition: Disposition | str) -> ScopedTimer:
        return self.time(self.queue_build_load_family.labels(disposition))


__all__ = [
    "FETCH_BUCKETS",
    "LOAD_BUCKETS",
    "DISPOSITION_LABEL",
    "QueueMetrics",
]
