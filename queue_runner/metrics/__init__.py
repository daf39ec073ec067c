"""Queue runner instrumentation: registry, handles and timers."""

from .errors import (
    DuplicateMetricError,
    MetricsError,
    RegistryFrozenError,
    TimerStateError,
    UnknownLabelValueError,
)
from .instruments import (
    CounterHandle,
    Disposition,
    GaugeHandle,
    HistogramFamily,
    HistogramHandle,
    HistogramSnapshot,
)
from .registry import DISPOSITION_LABEL, FETCH_BUCKETS, LOAD_BUCKETS, QueueMetrics
from .timer import ManualTimer, ScopedTimer

__all__ = [
    "QueueMetrics",
    "FETCH_BUCKETS",
    "LOAD_BUCKETS",
    "DISPOSITION_LABEL",
    "Disposition",
    "CounterHandle",
    "GaugeHandle",
    "HistogramHandle",
    "HistogramFamily",
    "HistogramSnapshot",
    "ManualTimer",
    "ScopedTimer",
    "MetricsError",
    "DuplicateMetricError",
    "RegistryFrozenError",
    "UnknownLabelValueError",
    "TimerStateError",
]
