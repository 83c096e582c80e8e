"""
Engine: runs every processor over one activity store.

For each call the engine builds the store, the causal graph, the role
classification and a fresh claim ledger, then runs the processors in
descending step order so that more specific kinds see activities first.
Nothing persists between calls except optional metrics.

Cross-kind exclusivity is not enforced. The ordering only makes it
likely that the more specific kind reports an activity first.

Usage:
    from fsprocessor import process

    report = process(load_activities("capture.json"))
    for entry in report.entries:
        print(entry.kind, entry.id, entry.operation.life_cycle.time_alive.ms)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from fsprocessor.capture.store import ActivityStore
from fsprocessor.classify.classifier import classify
from fsprocessor.classify.signatures import SignatureTable, get_signature_table
from fsprocessor.config import Config, get_config
from fsprocessor.exceptions import PreconditionError, ProcessorError
from fsprocessor.graph.causal import CausalGraph
from fsprocessor.observability import LoggingMetricsExporter, ProcessorMetrics, Tracer
from fsprocessor.processors.base import ProcessingContext, Processor, ProcessorResult
from fsprocessor.processors.ledger import ClaimLedger
from fsprocessor.processors.registry import ProcessorRegistry, get_registry
from fsprocessor.report import (
    ExecutionMetadata,
    OperationEntry,
    ProcessingReport,
    ProcessorRun,
    RunStatus,
)

logger = logging.getLogger(__name__)

ActivitySource = ActivityStore | Mapping[Any, Any] | Iterable[Any]


class Engine:
    """
    Orchestrates processors over a closed batch of activities.

    Example:
        engine = Engine(exclude_kinds={"fs.writeFile"})
        report = engine.process(store, include_activities=True)
    """

    def __init__(
        self,
        processors: list[Processor] | None = None,
        include_kinds: set[str] | None = None,
        exclude_kinds: set[str] | None = None,
        signatures: SignatureTable | None = None,
        fail_fast: bool | None = None,
        config: Config | None = None,
        registry: ProcessorRegistry | None = None,
        metrics: ProcessorMetrics | None = None,
        tracing_enabled: bool | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            processors: Processor instances to run (if None, uses the registry)
            include_kinds: Only run these kinds
            exclude_kinds: Skip these kinds
            signatures: Signature table (if None, the table named in config)
            fail_fast: Raise ProcessorError on the first processor failure
            config: Configuration (if None, uses get_config())
            registry: Registry to draw processors from (default: global)
            metrics: Metrics collector shared across calls (optional)
            tracing_enabled: Record a span tree in each report
        """
        self.config = config if config is not None else get_config()
        self.signatures = (
            signatures if signatures is not None
            else get_signature_table(self.config.signatures)
        )
        self.fail_fast = self.config.fail_fast if fail_fast is None else fail_fast
        self.tracing_enabled = (
            self.config.tracing_enabled if tracing_enabled is None else tracing_enabled
        )
        self.metrics = metrics
        if self.metrics is None and self.config.metrics_enabled:
            self.metrics = ProcessorMetrics(_exporter=LoggingMetricsExporter())

        if processors is not None:
            selected = [
                p for p in processors
                if (include_kinds is None or p.kind in include_kinds)
                and (exclude_kinds is None or p.kind not in exclude_kinds)
            ]
            self.processors = sorted(selected, key=lambda p: -p.steps)
        else:
            registry = registry if registry is not None else get_registry()
            classes = registry.ordered(include=include_kinds, exclude=exclude_kinds)
            self.processors = [cls(self.signatures) for cls in classes]

    def process(
        self,
        activities: ActivitySource,
        *,
        include_activities: bool | None = None,
        separate_functions: bool | None = None,
        merge_functions: bool | None = None,
    ) -> ProcessingReport:
        """
        Resolve and assemble every operation found in ``activities``.

        Args:
            activities: An ActivityStore, or records accepted by
                ActivityStore.coerce (ordered by creation time)
            include_activities: Attach raw activities to steps
            separate_functions: Collect user functions on the operation
            merge_functions: Merge user functions by location (only
                applies when separating)

        Returns:
            ProcessingReport with per-kind groups and operations, flat
            entries, processor runs and metadata

        Raises:
            PreconditionError: A query referenced an id missing from the store
            ProcessorError: A processor failed and fail_fast is set
        """
        start_time = time.perf_counter()
        tracer = Tracer(enabled=self.tracing_enabled)
        tracer.start_span("process")

        try:
            store = ActivityStore.coerce(activities)

            tracer.start_span("index", activities=len(store))
            graph = CausalGraph(store)
            tracer.end_span()

            tracer.start_span("classify", signatures=self.signatures.version)
            classification = classify(
                store, self.signatures, kinds=[p.kind for p in self.processors]
            )
            tracer.end_span()

            context = ProcessingContext(
                store=store,
                graph=graph,
                classification=classification,
                ledger=ClaimLedger(),
                include_activities=self._option(include_activities, self.config.include_activities),
                separate_functions=self._option(separate_functions, self.config.separate_functions),
                merge_functions=self._option(merge_functions, self.config.merge_functions),
            )

            results, runs = self._run_processors(context, tracer)
        finally:
            tracer.end_span()

        entries = [
            OperationEntry(kind=result.kind, steps=result.steps, id=anchor_id, operation=operation)
            for result in results.values()
            for anchor_id, operation in result.operations.items()
        ]

        duration_ms = (time.perf_counter() - start_time) * 1000
        failed = sum(1 for r in runs if r.status == RunStatus.FAIL)
        metadata = ExecutionMetadata(
            activity_count=len(store),
            signatures=self.signatures.version,
            processors_run=sum(1 for r in runs if r.status != RunStatus.SKIP),
            processors_failed=failed,
            processors_skipped=sum(1 for r in runs if r.status == RunStatus.SKIP),
            operations_count=len(entries),
            duration_ms=duration_ms,
        )

        if self.metrics is not None:
            self.metrics.record_process(
                duration_ms=duration_ms,
                operations_count=len(entries),
                failures_count=failed,
            )

        trace = tracer.get_trace()
        if trace:
            logger.debug("Processing trace: %s", trace)

        logger.info(
            "Processed %d activities into %d operation(s) in %.2fms",
            len(store), len(entries), duration_ms,
        )

        return ProcessingReport(
            results=results,
            entries=entries,
            runs=runs,
            metadata=metadata,
            trace=trace,
        )

    @staticmethod
    def _option(explicit: bool | None, configured: bool) -> bool:
        return configured if explicit is None else explicit

    def _run_processors(
        self,
        context: ProcessingContext,
        tracer: Tracer,
    ) -> tuple[dict[str, ProcessorResult], list[ProcessorRun]]:
        """
        Run processors in order and track status (PASS/SKIP/FAIL).

        A failing processor never affects the others' results.
        """
        results: dict[str, ProcessorResult] = {}
        runs: list[ProcessorRun] = []

        for processor in self.processors:
            if not self.config.is_kind_enabled(processor.kind):
                runs.append(ProcessorRun(
                    kind=processor.kind,
                    version=processor.version,
                    steps=processor.steps,
                    status=RunStatus.SKIP,
                    skip_reason="Disabled by configuration",
                ))
                logger.debug("Processor %s skipped: disabled", processor.kind)
                continue

            tracer.start_span("processor", kind=processor.kind)
            run_start = time.perf_counter()
            try:
                result = processor.process(context)
            except PreconditionError:
                raise
            except Exception as e:
                runtime_ms = (time.perf_counter() - run_start) * 1000

                if self.fail_fast:
                    raise ProcessorError(processor.kind, processor.version, e) from e

                runs.append(ProcessorRun(
                    kind=processor.kind,
                    version=processor.version,
                    steps=processor.steps,
                    status=RunStatus.FAIL,
                    runtime_ms=runtime_ms,
                    error_summary=str(e),
                ))
                logger.warning("Processor %s failed: %s", processor.kind, e)
                if self.metrics is not None:
                    self.metrics.record_processor_run(
                        processor.kind, runtime_ms, 0, RunStatus.FAIL.value
                    )
                continue
            finally:
                tracer.end_span()

            runtime_ms = (time.perf_counter() - run_start) * 1000
            results[processor.kind] = result
            runs.append(ProcessorRun(
                kind=processor.kind,
                version=processor.version,
                steps=processor.steps,
                status=RunStatus.PASS,
                runtime_ms=runtime_ms,
                groups_count=len(result.groups),
            ))
            if self.metrics is not None:
                self.metrics.record_processor_run(
                    processor.kind, runtime_ms, len(result.operations), RunStatus.PASS.value
                )

        return results, runs


def process(
    activities: ActivitySource,
    include_activities: bool | None = None,
    separate_functions: bool | None = None,
    merge_functions: bool | None = None,
) -> ProcessingReport:
    """
    Run all registered processors over ``activities``.

    Unset options fall back to configuration, whose defaults are
    include_activities=False, separate_functions=True and
    merge_functions=True.
    """
    return Engine().process(
        activities,
        include_activities=include_activities,
        separate_functions=separate_functions,
        merge_functions=merge_functions,
    )
