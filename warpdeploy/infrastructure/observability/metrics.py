"""Simple in-process metrics collection for Warpdeploy.

Counters and histograms track how often each external command ran, how long
it took and how deployment runs ended. Metrics live in memory for the
lifetime of the process. ``warpdeploy deploy --metrics`` prints the summary
at the end of a run and ``--metrics-file`` writes the Prometheus text
rendering for a node exporter textfile collector.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Mapping

LabelKey = tuple[tuple[str, str | None], ...]


def _labels_to_key(labels: Mapping[str, str | None] | None) -> LabelKey:
    if labels is None:
        return ()
    return tuple(sorted(labels.items()))


def _label_str(key: LabelKey, quoted: bool = False) -> str:
    if quoted:
        return ",".join(f'{k}="{v}"' for k, v in key)
    return ",".join(f"{k}={v}" for k, v in key)


# ---------------------------------------------------------------------------
# Metric storage
# ---------------------------------------------------------------------------


@dataclass
class Counter:
    """A monotonically increasing counter."""

    name: str
    help_text: str = ""
    _values: dict[LabelKey, float] = field(
        default_factory=lambda: defaultdict(float)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc(
        self, value: float = 1.0, labels: Mapping[str, str | None] | None = None
    ) -> None:
        """Increment the counter by the given value."""
        if value < 0:
            raise ValueError("Counters can only be incremented")
        key = _labels_to_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Mapping[str, str | None] | None = None) -> float:
        key = _labels_to_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def items(self) -> list[tuple[LabelKey, float]]:
        with self._lock:
            return list(self._values.items())


DEFAULT_BUCKETS: tuple[float, ...] = (0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600)


@dataclass
class _Series:
    bucket_counts: list[int]
    count: int = 0
    total: float = 0.0
    maximum: float = 0.0


@dataclass
class Histogram:
    """A fixed-bucket histogram for command and run durations.

    Each observation bumps the first bucket whose bound it does not exceed
    and updates a running count, sum and maximum. Individual values are not
    kept, so memory stays flat however long the process lives.
    """

    name: str
    help_text: str = ""
    buckets: tuple[float, ...] = DEFAULT_BUCKETS
    _series: dict[LabelKey, _Series] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(
        self, value: float, labels: Mapping[str, str | None] | None = None
    ) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = self._series[key] = _Series([0] * len(self.buckets))
            for index, bound in enumerate(self.buckets):
                if value <= bound:
                    series.bucket_counts[index] += 1
                    break
            series.count += 1
            series.total += value
            series.maximum = max(series.maximum, value)

    def get_stats(
        self, labels: Mapping[str, str | None] | None = None
    ) -> dict[str, float]:
        """Get count, sum, average and maximum for one label set."""
        key = _labels_to_key(labels)
        with self._lock:
            series = self._series.get(key)
            if series is None or not series.count:
                return {"count": 0, "sum": 0.0, "avg": 0.0, "max": 0.0}
            return {
                "count": series.count,
                "sum": series.total,
                "avg": series.total / series.count,
                "max": series.maximum,
            }

    def cumulative_buckets(
        self, labels: Mapping[str, str | None] | None = None
    ) -> list[tuple[float, int]]:
        """Return ``(upper_bound, observations <= bound)`` for every bucket."""
        key = _labels_to_key(labels)
        with self._lock:
            series = self._series.get(key)
            counts = list(series.bucket_counts) if series else [0] * len(self.buckets)
        result = []
        running = 0
        for bound, count in zip(self.buckets, counts):
            running += count
            result.append((bound, running))
        return result

    def label_keys(self) -> list[LabelKey]:
        with self._lock:
            return list(self._series)


class MetricRegistry:
    """Registry for all metrics of the process."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name, help_text=help_text)
            return self._counters[name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name=name, help_text=help_text)
            return self._histograms[name]

    def all_counters(self) -> dict[str, Counter]:
        with self._lock:
            return dict(self._counters)

    def all_histograms(self) -> dict[str, Histogram]:
        with self._lock:
            return dict(self._histograms)

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


_registry = MetricRegistry()


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


def increment_counter(
    name: str,
    value: float = 1.0,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Increment a counter by name, creating it if needed."""
    _registry.counter(name, help_text).inc(value, labels)


def observe_histogram(
    name: str,
    value: float,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Record an observation in a histogram, creating it if needed."""
    _registry.histogram(name, help_text).observe(value, labels)


def get_counter_value(
    name: str, labels: Mapping[str, str | None] | None = None
) -> float:
    return _registry.counter(name).get(labels)


def reset_metrics() -> None:
    """Drop every registered metric. Intended for tests."""
    _registry.clear()


class Timer:
    """Context manager for timing operations and recording to a histogram."""

    def __init__(
        self,
        histogram_name: str | None = None,
        labels: Mapping[str, str | None] | None = None,
        help_text: str = "",
    ) -> None:
        self.histogram_name = histogram_name
        self.labels = labels
        self.help_text = help_text
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def elapsed_so_far(self) -> float:
        return time.perf_counter() - self._start

    def __exit__(self, *args: object) -> None:
        self.elapsed = self.elapsed_so_far()
        if self.histogram_name:
            observe_histogram(
                self.histogram_name, self.elapsed, self.labels, self.help_text
            )


# ---------------------------------------------------------------------------
# Predefined metrics for Warpdeploy
# ---------------------------------------------------------------------------

COMMAND_RUNS = "command_runs_total"
COMMAND_DURATION = "command_duration_seconds"
DEPLOYMENTS = "deployments_total"
DEPLOYMENT_DURATION = "deployment_duration_seconds"


def record_command_run(name: str, status: str, duration: float) -> None:
    """Record one external command execution.

    Args:
        name: Step name the command was registered under.
        status: 'success', 'failed' or 'timeout'.
        duration: Wall-clock seconds until the process exited.
    """
    increment_counter(
        COMMAND_RUNS,
        labels={"command": name, "status": status},
        help_text="Total external command executions",
    )
    observe_histogram(
        COMMAND_DURATION,
        duration,
        labels={"command": name},
        help_text="External command duration in seconds",
    )


def record_deployment(status: str, duration: float, stage: str) -> None:
    """Record a finished deployment run and the stage it ended in."""
    increment_counter(
        DEPLOYMENTS,
        labels={"status": status, "stage": stage},
        help_text="Total deployment runs",
    )
    observe_histogram(
        DEPLOYMENT_DURATION,
        duration,
        labels={"status": status},
        help_text="Deployment run duration in seconds",
    )


# ---------------------------------------------------------------------------
# Export utilities
# ---------------------------------------------------------------------------


def get_metrics_summary() -> dict[str, dict[str, dict[str, object]]]:
    """Return a summary of all metrics for logging or CLI display."""
    counters: dict[str, dict[str, object]] = {}
    histograms: dict[str, dict[str, object]] = {}

    for name, counter in _registry.all_counters().items():
        counters[name] = {
            (_label_str(key) or "default"): value for key, value in counter.items()
        }

    for name, histogram in _registry.all_histograms().items():
        histograms[name] = {
            (_label_str(key) or "default"): histogram.get_stats(dict(key) or None)
            for key in histogram.label_keys()
        }

    return {"counters": counters, "histograms": histograms}


def format_prometheus() -> str:
    """Format metrics in Prometheus text exposition format."""
    lines: list[str] = []

    for name, counter in _registry.all_counters().items():
        if counter.help_text:
            lines.append(f"# HELP {name} {counter.help_text}")
        lines.append(f"# TYPE {name} counter")
        for key, value in counter.items():
            if key:
                lines.append(f"{name}{{{_label_str(key, quoted=True)}}} {value}")
            else:
                lines.append(f"{name} {value}")

    for name, histogram in _registry.all_histograms().items():
        if histogram.help_text:
            lines.append(f"# HELP {name} {histogram.help_text}")
        lines.append(f"# TYPE {name} histogram")
        for key in histogram.label_keys():
            labels = dict(key) or None
            stats = histogram.get_stats(labels)
            for bound, cumulative in histogram.cumulative_buckets(labels):
                bucket_key = _label_str(key + (("le", f"{bound:g}"),), quoted=True)
                lines.append(f"{name}_bucket{{{bucket_key}}} {cumulative}")
            inf_key = _label_str(key + (("le", "+Inf"),), quoted=True)
            lines.append(f"{name}_bucket{{{inf_key}}} {stats['count']}")
            suffix = f"{{{_label_str(key, quoted=True)}}}" if key else ""
            lines.append(f"{name}_count{suffix} {stats['count']}")
            lines.append(f"{name}_sum{suffix} {stats['sum']}")

    return "\n".join(lines)
