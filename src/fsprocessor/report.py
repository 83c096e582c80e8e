"""
Report models returned by the engine.

A ProcessingReport holds, per kind, the resolved groups and assembled
operations, plus the flat entry list combining every kind, one
ProcessorRun per processor and execution metadata.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from fsprocessor.operations.models import Operation
from fsprocessor.processors.base import ProcessorResult


class RunStatus(str, Enum):
    """
    Outcome of one processor within a process() call.

    Distinguishes "no operations of this kind" (PASS with zero groups)
    from "not run" and "crashed".
    """

    PASS = "pass"  # Processor ran to completion
    SKIP = "skip"  # Disabled by configuration
    FAIL = "fail"  # Processor raised


class ProcessorRun(BaseModel):
    """Record of a single processor execution."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Operation kind")
    version: str = Field(..., description="Processor version")
    steps: int = Field(..., description="Step count used for ordering")
    status: RunStatus = Field(..., description="Execution status")
    runtime_ms: float = Field(default=0.0, description="Execution time in milliseconds")
    groups_count: int = Field(default=0, description="Number of groups resolved")
    error_summary: str | None = Field(default=None, description="Error message if FAIL")
    skip_reason: str | None = Field(default=None, description="Reason if SKIP")


class ExecutionMetadata(BaseModel):
    """Metadata about one process() call."""

    model_config = ConfigDict(frozen=True)

    activity_count: int = Field(default=0, description="Activities in the store")
    signatures: str = Field(default="", description="Signature table version used")
    processors_run: int = Field(default=0)
    processors_failed: int = Field(default=0)
    processors_skipped: int = Field(default=0)
    operations_count: int = Field(default=0)
    duration_ms: float = Field(default=0.0, description="Wall time of the call")


class OperationEntry(BaseModel):
    """One operation in the flat, cross-kind output."""

    model_config = ConfigDict(frozen=True)

    kind: str
    steps: int
    id: int = Field(..., description="Anchor id of the group")
    operation: SerializeAsAny[Operation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "steps": self.steps,
            "id": self.id,
            "operation": self.operation.to_dict(),
        }


class ProcessingReport(BaseModel):
    """Everything one process() call produced."""

    model_config = ConfigDict(frozen=True)

    results: dict[str, ProcessorResult] = Field(
        default_factory=dict,
        description="Per-kind results, in execution order",
    )
    entries: list[OperationEntry] = Field(default_factory=list)
    runs: list[ProcessorRun] = Field(default_factory=list)
    metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)
    trace: dict[str, Any] | None = Field(default=None)

    def groups(self, kind: str) -> dict[int, frozenset[int]]:
        """Groups for ``kind``; empty when the kind did not run."""
        result = self.results.get(kind)
        return dict(result.groups) if result is not None else {}

    def operations(self, kind: str) -> dict[int, Operation]:
        """Operations for ``kind``; empty when the kind did not run."""
        result = self.results.get(kind)
        return dict(result.operations) if result is not None else {}

    def run(self, kind: str) -> ProcessorRun | None:
        for run in self.runs:
            if run.kind == kind:
                return run
        return None

    @property
    def failed_runs(self) -> list[ProcessorRun]:
        return [r for r in self.runs if r.status == RunStatus.FAIL]

    def summary(self) -> str:
        """One-line human summary."""
        per_kind = ", ".join(
            f"{kind}: {len(result.operations)}" for kind, result in self.results.items()
        )
        text = f"{len(self.entries)} operation(s) from {self.metadata.activity_count} activities"
        if per_kind:
            text += f" ({per_kind})"
        if self.failed_runs:
            text += f", {len(self.failed_runs)} processor(s) failed"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the capture tool's camelCase shape."""
        return {
            "kinds": {
                kind: {
                    "steps": result.steps,
                    "groups": {
                        str(anchor): sorted(ids) for anchor, ids in result.groups.items()
                    },
                    "operations": {
                        str(anchor): op.to_dict() for anchor, op in result.operations.items()
                    },
                }
                for kind, result in self.results.items()
            },
            "entries": [entry.to_dict() for entry in self.entries],
            "runs": [run.model_dump(mode="json", exclude_none=True) for run in self.runs],
            "metadata": self.metadata.model_dump(mode="json"),
        }
