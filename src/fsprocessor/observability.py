"""
Observability: in-process tracing and processing metrics.

1. TraceSpan / Tracer: lightweight span tree for one process() call
2. ProcessorMetrics: counters and bounded duration samples
3. MetricsExporter: protocol for forwarding metrics elsewhere, with a
   logging and an in-memory implementation

Usage:
    tracer = Tracer(enabled=True)
    tracer.start_span("process", activities=120)
    ...
    tracer.end_span()

    metrics = ProcessorMetrics()
    metrics.record_process(duration_ms=3.1, operations_count=4, failures_count=0)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


# =============================================================================
# In-Process Tracing
# =============================================================================


@dataclass
class TraceSpan:
    """A single span in a trace tree."""

    name: str
    start_time: float
    end_time: float | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list["TraceSpan"] = field(default_factory=list)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "duration_ms": self.duration_ms,
            "attributes": self.attributes,
            "children": [c.to_dict() for c in self.children],
        }


class Tracer:
    """
    Span tree for one process() call.

    When disabled, spans are still returned (so callers can set
    attributes) but nothing is recorded.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._root: TraceSpan | None = None
        self._stack: list[TraceSpan] = []

    def start_span(self, name: str, **attributes: Any) -> TraceSpan:
        span = TraceSpan(
            name=name,
            start_time=time.perf_counter(),
            attributes=attributes,
        )

        if self.enabled:
            if self._stack:
                self._stack[-1].children.append(span)
            else:
                self._root = span
            self._stack.append(span)

        return span

    def end_span(self) -> None:
        if self.enabled and self._stack:
            self._stack[-1].end()
            self._stack.pop()

    def get_trace(self) -> dict[str, Any] | None:
        if self._root:
            return self._root.to_dict()
        return None


# =============================================================================
# Exporters
# =============================================================================


class MetricsExporter(Protocol):
    """Receives metric points as they are recorded."""

    def record_counter(self, name: str, value: int, labels: dict[str, str]) -> None:
        ...

    def record_histogram(self, name: str, value: float, labels: dict[str, str]) -> None:
        ...


class LoggingMetricsExporter:
    """Writes every metric point to a logger at DEBUG level."""

    def __init__(self, logger_name: str = "fsprocessor.metrics") -> None:
        self._logger = logging.getLogger(logger_name)

    def record_counter(self, name: str, value: int, labels: dict[str, str]) -> None:
        self._logger.debug("counter %s += %d %s", name, value, labels)

    def record_histogram(self, name: str, value: float, labels: dict[str, str]) -> None:
        self._logger.debug("histogram %s = %.3f %s", name, value, labels)


@dataclass
class InMemoryMetricsExporter:
    """Keeps every metric point; useful in tests."""

    counters: list[tuple[str, int, dict[str, str]]] = field(default_factory=list)
    histograms: list[tuple[str, float, dict[str, str]]] = field(default_factory=list)

    def record_counter(self, name: str, value: int, labels: dict[str, str]) -> None:
        self.counters.append((name, value, labels))

    def record_histogram(self, name: str, value: float, labels: dict[str, str]) -> None:
        self.histograms.append((name, value, labels))


# =============================================================================
# Processor Metrics
# =============================================================================


@dataclass
class ProcessorMetrics:
    """
    Counters across process() calls.

    This is the only state that outlives a process() call, and only when
    the caller passes the same instance to several engines or calls.
    """

    # Counters
    runs_total: int = 0
    operations_total: int = 0
    failures_total: int = 0
    operations_by_kind: dict[str, int] = field(default_factory=dict)

    # Recent durations for percentiles
    process_durations_ms: list[float] = field(default_factory=list)

    _max_samples: int = 1000

    _exporter: MetricsExporter | None = field(default=None, repr=False)

    def record_process(
        self,
        duration_ms: float,
        operations_count: int,
        failures_count: int,
    ) -> None:
        """Record metrics for a completed process() call."""
        self.runs_total += 1
        self.operations_total += operations_count
        self.failures_total += failures_count

        self.process_durations_ms.append(duration_ms)
        if len(self.process_durations_ms) > self._max_samples:
            self.process_durations_ms = self.process_durations_ms[-self._max_samples:]

        if self._exporter is not None:
            self._exporter.record_counter("process_runs_total", 1, {})
            self._exporter.record_counter("operations_total", operations_count, {})
            self._exporter.record_counter("processor_failures_total", failures_count, {})
            self._exporter.record_histogram("process_duration_ms", duration_ms, {})

    def record_processor_run(
        self,
        kind: str,
        duration_ms: float,
        operations_count: int,
        status: str,
    ) -> None:
        """Record metrics for one processor within a call."""
        self.operations_by_kind[kind] = self.operations_by_kind.get(kind, 0) + operations_count

        if self._exporter is not None:
            labels = {"kind": kind, "status": status}
            self._exporter.record_histogram("processor_duration_ms", duration_ms, labels)
            self._exporter.record_counter("processor_operations_total", operations_count, labels)

    @property
    def avg_duration_ms(self) -> float:
        if not self.process_durations_ms:
            return 0.0
        return sum(self.process_durations_ms) / len(self.process_durations_ms)

    @property
    def p95_duration_ms(self) -> float:
        if not self.process_durations_ms:
            return 0.0
        ordered = sorted(self.process_durations_ms)
        idx = int(len(ordered) * 0.95)
        return ordered[min(idx, len(ordered) - 1)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "runs_total": self.runs_total,
            "operations_total": self.operations_total,
            "failures_total": self.failures_total,
            "operations_by_kind": dict(self.operations_by_kind),
            "avg_duration_ms": round(self.avg_duration_ms, 3),
            "p95_duration_ms": round(self.p95_duration_ms, 3),
        }
