"""
Base class for operation processors.

A processor owns one operation kind. It resolves classified activity ids
into groups (one per operation instance, keyed by the open's id) and
assembles each group into an Operation.

To create a new processor:
1. Subclass Processor
2. Set kind, version, steps and description
3. Implement resolve() and assemble()
4. Register with @register_processor
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_serializer

from fsprocessor.capture.models import Activity
from fsprocessor.capture.store import ActivityStore
from fsprocessor.classify.models import Classification, Role
from fsprocessor.classify.signatures import DEFAULT_SIGNATURES, SignatureTable
from fsprocessor.graph.causal import CausalGraph
from fsprocessor.operations.assembly import finalize
from fsprocessor.operations.models import Operation
from fsprocessor.processors.ledger import ClaimLedger

logger = logging.getLogger(__name__)

Groups = dict[int, frozenset[int]]


@dataclass(frozen=True)
class ProcessingContext:
    """Everything one process() call shares between processors."""

    store: ActivityStore
    graph: CausalGraph
    classification: Classification
    ledger: ClaimLedger
    include_activities: bool = False
    separate_functions: bool = True
    merge_functions: bool = True


class ProcessorResult(BaseModel):
    """Groups and operations found for one kind."""

    model_config = ConfigDict(frozen=True)

    kind: str
    steps: int
    groups: dict[int, frozenset[int]] = Field(default_factory=dict)
    operations: dict[int, SerializeAsAny[Operation]] = Field(default_factory=dict)

    @field_serializer("groups")
    def _sorted_groups(self, groups: dict[int, frozenset[int]]) -> dict[int, list[int]]:
        return {anchor: sorted(ids) for anchor, ids in groups.items()}


class Processor(ABC):
    """
    Abstract base class for operation kind processors.

    Class attributes:
        kind: Operation kind name (e.g. "fs.readFile")
        version: Processor version, bumped when output changes
        steps: Fewest activities one operation of this kind involves;
            processors with more steps run first
        description: One-line summary
    """

    kind: ClassVar[str] = ""
    version: ClassVar[str] = "1.0.0"
    steps: ClassVar[int] = 0
    description: ClassVar[str] = ""

    def __init__(self, signatures: SignatureTable = DEFAULT_SIGNATURES) -> None:
        self.signatures = signatures
        self.kind_signatures = signatures.for_kind(self.kind)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, version={self.version!r})"

    # ── Contract ─────────────────────────────────────────────────────────

    @abstractmethod
    def resolve(self, context: ProcessingContext) -> Groups:
        """
        Turn classified ids into groups keyed by anchor id.

        Must claim every grouped id in ``context.ledger`` so no two groups
        of this kind share an id.
        """
        ...

    @abstractmethod
    def assemble(self, anchor_id: int, group: frozenset[int], context: ProcessingContext) -> Operation:
        """Build the (untransformed) Operation for one group."""
        ...

    def process(self, context: ProcessingContext) -> ProcessorResult:
        """Resolve, assemble and transform all operations of this kind."""
        groups = self.resolve(context)
        operations: dict[int, Operation] = {}
        for anchor_id, group in groups.items():
            operation = self.assemble(anchor_id, group, context)
            operations[anchor_id] = finalize(
                operation,
                separate_functions=context.separate_functions,
                merge_functions=context.merge_functions,
            )
        logger.debug("%s resolved %d group(s)", self.kind, len(groups))
        return ProcessorResult(
            kind=self.kind,
            steps=self.steps,
            groups=groups,
            operations=operations,
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    def ids(self, context: ProcessingContext, role: Role) -> frozenset[int]:
        return context.classification.ids(self.kind, role)

    def ordered(self, context: ProcessingContext, ids: frozenset[int] | set[int]) -> list[int]:
        """``ids`` in store order; unknown ids are dropped."""
        positioned = [
            (context.store.position(i), i) for i in ids if context.store.position(i) is not None
        ]
        return [i for _, i in sorted(positioned)]

    def members(self, context: ProcessingContext, group: frozenset[int]) -> list[Activity]:
        return [context.store[i] for i in self.ordered(context, group)]

    def direct_chain_groups(self, context: ProcessingContext, min_length: int = 2) -> Groups:
        """
        Groups from each open's trigger chain up to its close.

        A chain is kept when its last id is a close and it has at least
        ``min_length`` members. Ids tagged as ticks are shared; all other
        members are claimed for this kind.
        """
        opens = self.ids(context, Role.OPEN)
        closes = self.ids(context, Role.CLOSE)
        ticks = self.ids(context, Role.TICK)

        def is_close(activity_id: int, activity: Activity) -> bool:
            return activity_id in closes

        groups: Groups = {}
        for open_id in self.ordered(context, opens):
            if context.ledger.is_claimed(self.kind, open_id):
                continue
            chain = context.graph.descendants_until(open_id, is_close)
            if len(chain) < min_length or chain[-1] not in closes:
                logger.debug("%s: open %d has no complete chain", self.kind, open_id)
                continue
            exclusive = [i for i in chain if i not in ticks]
            if not context.ledger.try_claim(self.kind, exclusive):
                logger.debug("%s: chain of open %d overlaps a resolved group", self.kind, open_id)
                continue
            context.ledger.share(i for i in chain if i in ticks)
            groups[open_id] = frozenset(chain)
        return groups


def describe(processor_cls: type[Processor]) -> dict[str, Any]:
    """Summary of a processor class for listings."""
    return {
        "kind": processor_cls.kind,
        "version": processor_cls.version,
        "steps": processor_cls.steps,
        "description": processor_cls.description,
    }
