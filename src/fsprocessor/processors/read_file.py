"""
fs.readFile processor.

``fs.readFile`` runs four async requests on one file descriptor:

    open   at Object.fs.readFile             (creates the fd)
    stat   at FSReqWrap.readFileAfterOpen    binding.fstat(fd, req)
    read   at FSReqWrap.readFileAfterStat    binding.read(fd, ...)
    close  at ReadFileContext.close          binding.close(fd, req)

The fd recorded on each request's context is a reliable side channel, so
groups are formed by fd first: exactly four activities on one fd, sorted
by init time, must match open, stat, read and close in that order.
Captures without fds fall back to the open's trigger chain and are held
to the same count and order checks.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from fsprocessor.capture.models import Activity
from fsprocessor.classify.models import Role
from fsprocessor.classify.signatures import READ_FILE
from fsprocessor.operations.assembly import created_at, life_cycle, make_step
from fsprocessor.operations.models import ReadFileOperation
from fsprocessor.processors.base import Groups, ProcessingContext, Processor
from fsprocessor.processors.registry import register_processor

logger = logging.getLogger(__name__)

SEQUENCE = (Role.OPEN, Role.STAT, Role.READ, Role.CLOSE)


def query_fd(activity: Activity | None) -> int | None:
    """The non-negative integer fd on the activity's context, if any."""
    if activity is None or not activity.resource:
        return None
    context = activity.resource.get("context")
    if not isinstance(context, dict):
        return None
    fd = context.get("fd")
    if isinstance(fd, bool) or not isinstance(fd, int) or fd < 0:
        return None
    return fd


@register_processor
class ReadFileProcessor(Processor):
    """Groups fs.readFile requests by file descriptor."""

    kind = READ_FILE
    version = "1.0.0"
    steps = 4
    description = "fs.readFile: open, stat, read, close on one fd"

    def resolve(self, context: ProcessingContext) -> Groups:
        groups: Groups = {}
        for candidate in self._candidates(context):
            ordered = self._sort_by_init(context, candidate)
            if not self._matches_sequence(context, ordered):
                continue
            if not context.ledger.try_claim(self.kind, ordered):
                logger.debug("%s: group %s overlaps a resolved group", self.kind, ordered)
                continue
            groups[ordered[0]] = frozenset(ordered)
        return dict(sorted(groups.items()))

    def _candidates(self, context: ProcessingContext) -> list[list[int]]:
        by_fd: dict[int, list[int]] = {}
        for activity_id, activity in context.store.items():
            fd = query_fd(activity)
            if fd is not None:
                by_fd.setdefault(fd, []).append(activity_id)

        candidates = [ids for ids in by_fd.values() if len(ids) == self.steps]

        closes = self.ids(context, Role.CLOSE)
        for open_id in self.ordered(context, self.ids(context, Role.OPEN)):
            if query_fd(context.store[open_id]) is not None:
                continue
            chain = context.graph.descendants_until(
                open_id, lambda aid, _activity: aid in closes
            )
            if any(query_fd(context.store[i]) is not None for i in chain):
                continue
            if len(chain) == self.steps:
                candidates.append(chain)

        return candidates

    @staticmethod
    def _sort_by_init(context: ProcessingContext, ids: Iterable[int]) -> list[int]:
        def key(activity_id: int) -> tuple[float, int]:
            stamp = context.store[activity_id].first("init")
            position = context.store.position(activity_id) or 0
            return (math.inf if stamp is None else stamp, position)

        return sorted(ids, key=key)

    def _matches_sequence(self, context: ProcessingContext, ordered: list[int]) -> bool:
        if len(ordered) != len(SEQUENCE):
            return False
        for activity_id, role in zip(ordered, SEQUENCE):
            if not context.classification.has(self.kind, role, activity_id):
                logger.debug(
                    "%s: activity %d is not a %s, dropping %s",
                    self.kind, activity_id, role.value, ordered,
                )
                return False
        return True

    def assemble(self, anchor_id: int, group: frozenset[int], context: ProcessingContext) -> ReadFileOperation:
        ordered = self._sort_by_init(context, group)
        open_activity, stat_activity, read_activity, close_activity = (
            context.store[i] for i in ordered
        )
        include = context.include_activities

        # Every step references the readFile callback; close has its arguments.
        return ReadFileOperation(
            life_cycle=life_cycle(open_activity, close_activity),
            created_at=created_at(open_activity, self.kind_signatures.created_at_frame),
            open=make_step(open_activity, include, path_prefix="open.resource"),
            stat=make_step(stat_activity, include, path_prefix="stat.resource"),
            read=make_step(read_activity, include, path_prefix="read.resource"),
            close=make_step(close_activity, include, path_prefix="close.resource"),
        )
