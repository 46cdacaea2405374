"""Counter and histogram metrics with label values, and reporting helpers."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Protocol, Sequence

_deep_metrics_enabled = False
_registry: dict[str, Any] = {}
_registry_lock = threading.Lock()


def set_deep_metrics_enabled(enabled: bool) -> None:
    """Report per-object metrics even for objects that do not enable them."""
    global _deep_metrics_enabled
    _deep_metrics_enabled = enabled


class MetricsObject(Protocol):
    type: str
    name: str
    metrics_enabled: bool


class _Counter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        return self._value


class _Histogram:
    def __init__(self, buckets: Sequence[float]) -> None:
        self._lock = threading.Lock()
        self.buckets = tuple(buckets)
        self._counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0

    def observe(self, value: float) -> None:
        with self._lock:
            self.count += 1
            self.sum += value
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    self._counts[i] += 1
                    break

    @property
    def bucket_counts(self) -> tuple[int, ...]:
        """Cumulative counts per upper bound."""
        total, cumulative = 0, []
        for n in self._counts:
            total += n
            cumulative.append(total)
        return tuple(cumulative)


class _Vec:
    def __init__(self, name: str, help: str, label_names: Sequence[str]) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._lock = threading.Lock()
        self._children: dict[tuple[str, ...], Any] = {}

    def _child_for(self, values: tuple[str, ...], factory: Callable[[], Any]) -> Any:
        if len(values) != len(self.label_names):
            raise ValueError(
                f"inconsistent label cardinality: expected {len(self.label_names)} "
                f"label values but got {len(values)}"
            )
        with self._lock:
            child = self._children.get(values)
            if child is None:
                child = self._children[values] = factory()
            return child

    def _count_series(self) -> int:
        with self._lock:
            return len(self._children)


class CounterVec(_Vec):
    """A family of counters partitioned by label values."""

    def labels(self, *args: str) -> _Counter:
        """The counter for these label values, created on first use."""
        return self._child_for(args, _Counter)

    def series_count(self) -> int:
        """Number of label-value combinations seen so far."""
        return self._count_series()

    def total(self) -> float:
        with self._lock:
            return sum(child.value for child in self._children.values())


class HistogramVec(_Vec):
    """A family of histograms partitioned by label values."""

    def __init__(
        self, name: str, help: str, label_names: Sequence[str], buckets: Sequence[float]
    ) -> None:
        super().__init__(name, help, label_names)
        self.buckets = tuple(buckets)

    def labels(self, *args: str) -> _Histogram:
        """The histogram for these label values, created on first use."""
        return self._child_for(args, lambda: _Histogram(self.buckets))

    def series_count(self) -> int:
        """Number of label-value combinations seen so far."""
        return self._count_series()


def _linear_buckets(start: float, width: float, count: int) -> list[float]:
    return [start + i * width for i in range(count)]


def register(*args: _Vec) -> None:
    """Register metrics process-wide; a duplicate name raises ValueError."""
    with _registry_lock:
        for metric in args:
            if metric.name in _registry:
                raise ValueError(f"duplicate metrics collector registration attempted: {metric.name}")
            _registry[metric.name] = metric


def new_counter_metric(name: str, help: str, *args: str) -> CounterVec:
    return CounterVec(name, help, args)


def new_duration_metric(name: str, help: str, *args: str) -> HistogramVec:
    return HistogramVec(name, help, args, _linear_buckets(0.001, 0.05, 20))


def _auth_config_labels(extra: Sequence[str]) -> list[str]:
    return ["namespace", "authconfig", *extra]


def new_auth_config_counter_metric(name: str, help: str, *args: str) -> CounterVec:
    return new_counter_metric(name, help, *_auth_config_labels(args))


def new_auth_config_duration_metric(name: str, help: str, *args: str) -> HistogramVec:
    return new_duration_metric(name, help, *_auth_config_labels(args))


def report_metric(metric: CounterVec, *args: str) -> None:
    metric.labels(*args).inc()


def report_metric_with_status(metric: CounterVec, status: str, *args: str) -> None:
    report_metric(metric, *args, status)


def _labels_with_object(obj: MetricsObject | None, labels: Sequence[str]) -> list[str] | None:
    if obj is None or (not obj.metrics_enabled and not _deep_metrics_enabled):
        return None
    return [*labels, obj.type, obj.name]


def report_metric_with_object(metric: CounterVec, obj: MetricsObject | None, *args: str) -> None:
    labels = _labels_with_object(obj, args)
    if labels is not None:
        report_metric(metric, *labels)


def report_timed_metric(metric: HistogramVec, func: Callable[[], Any], *args: str) -> Any:
    """Call ``func`` and record how long it took, even if it raises."""
    start = time.perf_counter()
    try:
        return func()
    finally:
        metric.labels(*args).observe(time.perf_counter() - start)


def report_timed_metric_with_status(
    metric: HistogramVec, func: Callable[[], Any], status: str, *args: str
) -> Any:
    return report_timed_metric(metric, func, *args, status)


def report_timed_metric_with_object(
    metric: HistogramVec, func: Callable[[], Any], obj: MetricsObject | None, *args: str
) -> Any:
    labels = _labels_with_object(obj, args)
    if labels is None:
        return func()
    return report_timed_metric(metric, func, *labels)