"""Exceptions raised by the queue runner metrics layer."""

from __future__ import annotations


class MetricsError(Exception):
    """Base class for metrics configuration and usage errors."""


class DuplicateMetricError(MetricsError, ValueError):
    """An instrument name or name+label combination was registered twice."""


class RegistryFrozenError(MetricsError, RuntimeError):
    """Registration was attempted after the instrument set was frozen."""


class UnknownLabelValueError(MetricsError, KeyError):
    """A label value outside a family's declared set was requested."""

    def __init__(self, family: str, label: str, value: object) -> None:
        super().__init__(f"{family}: unknown {label} value {value!r}")
        self.family = family
        self.label = label
        self.value = value

    def __str__(self) -> str:
        return str(self.args[0])


class TimerStateError(MetricsError, RuntimeError):
    """A scope-bound timer was entered more than once."""


__all__ = [
    "MetricsError",
    "DuplicateMetricError",
    "RegistryFrozenError",
    "UnknownLabelValueError",
    "TimerStateError",
]
