"""
fs.createWriteStream processor.

Write streams do not form a trigger chain. When a read stream is piped
into a write stream, the write stream's open hangs off the code that
created both streams, while its writes and close are triggered by the
reads that produced the data:

               -- ReadStream:Open:11 -- Read1:13 -- Read2:15 -- WriteStream:Close:19
             /                                   \\
    Parent:3                                       -- WriteStream:Write:14
             \\
               -- WriteStream:Open:10

Groups are therefore pieced together from sibling relations, working
backwards from each close:

1. unclaimed writes sharing an ancestor with the close
2. the oldest of those writes is taken to be the stream's first write
3. unclaimed opens sharing an ancestor with that write
4. the open initialized immediately before the first write wins
5. the closest WriteStream tick to the close supplies the stream info
   (ticks are shared with the read stream side and never claimed)

This is best-effort. Overlapping write streams under one ancestor can be
paired wrongly.
"""

from __future__ import annotations

import logging
from typing import Any

from fsprocessor.capture.models import Activity
from fsprocessor.classify.models import Role
from fsprocessor.classify.signatures import WRITE_STREAM
from fsprocessor.operations.assembly import (
    created_at,
    life_cycle,
    make_step,
    make_timed_step,
    safe_val,
    step_fields,
)
from fsprocessor.operations.models import Step, TimedStep, WriteStreamInfo, WriteStreamOperation
from fsprocessor.processors.base import Groups, ProcessingContext, Processor
from fsprocessor.processors.registry import register_processor

logger = logging.getLogger(__name__)


@register_processor
class WriteStreamProcessor(Processor):
    """Reconciles write stream opens, writes and closes through siblings."""

    kind = WRITE_STREAM
    version = "1.0.0"
    steps = 4
    description = "fs.createWriteStream: open, stream tick, writes, close"

    def resolve(self, context: ProcessingContext) -> Groups:
        graph = context.graph
        ledger = context.ledger
        opens = self.ids(context, Role.OPEN)
        writes = self.ids(context, Role.WRITE)
        closes = self.ids(context, Role.CLOSE)
        ticks = self.ids(context, Role.TICK)

        def is_free_write(activity_id: int, activity: Activity) -> bool:
            return activity_id in writes and not ledger.is_claimed(self.kind, activity_id)

        def is_free_open(activity_id: int, activity: Activity) -> bool:
            return activity_id in opens and not ledger.is_claimed(self.kind, activity_id)

        def is_tick(activity_id: int, activity: Activity) -> bool:
            return activity_id in ticks

        groups: Groups = {}
        for close_id in sorted(closes):
            if ledger.is_claimed(self.kind, close_id):
                continue

            write_ids = graph.all_siblings(close_id, is_free_write)
            if not write_ids:
                logger.debug("%s: close %d has no related writes", self.kind, close_id)
                continue

            first_write = graph.oldest_id(write_ids)
            if first_write is None:
                continue

            open_ids = graph.all_siblings(first_write, is_free_open)
            if not open_ids:
                logger.debug("%s: write %d has no related opens", self.kind, first_write)
                continue

            open_id = graph.immediately_before_id(open_ids, first_write)
            if open_id is None:
                logger.debug("%s: no open precedes write %d", self.kind, first_write)
                continue

            tick_id = graph.closest_sibling(close_id, is_tick)

            claimed = [open_id, *write_ids, close_id]
            if not ledger.try_claim(self.kind, claimed):
                continue

            group = set(claimed)
            if tick_id is not None:
                ledger.share([tick_id])
                group.add(tick_id)
            groups[open_id] = frozenset(group)

        return groups

    def assemble(self, anchor_id: int, group: frozenset[int], context: ProcessingContext) -> WriteStreamOperation:
        include = context.include_activities
        roles = context.classification

        open_activity = context.store[anchor_id]
        close_activity: Activity | None = None
        stream: WriteStreamInfo | None = None
        writes: list[TimedStep] = []

        for activity in self.members(context, group):
            aid = activity.id
            if aid == anchor_id:
                continue
            if roles.has(self.kind, Role.TICK, aid):
                if stream is None:
                    stream = self._stream_info(activity, include)
            elif roles.has(self.kind, Role.WRITE, aid):
                writes.append(make_timed_step(activity, include))
            elif roles.has(self.kind, Role.CLOSE, aid):
                close_activity = activity

        close: Step | None = None
        if close_activity is not None:
            close = make_step(close_activity, include)

        return WriteStreamOperation(
            life_cycle=life_cycle(open_activity, close_activity),
            created_at=created_at(open_activity, self.kind_signatures.created_at_frame),
            open=make_step(open_activity, include),
            stream=stream,
            writes=writes,
            close=close,
        )

    @staticmethod
    def _stream_info(activity: Activity, include: bool) -> WriteStreamInfo | None:
        """Stream configuration from the WriteStream at args[2]."""
        args: Any = (activity.resource or {}).get("args")
        if not isinstance(args, list) or len(args) < 3 or not isinstance(args[2], dict):
            return None
        stream = args[2]

        return WriteStreamInfo(
            **step_fields(activity, include, path_prefix="stream.resource"),
            path=safe_val(stream.get("path")),
            flags=safe_val(stream.get("flags")),
            fd=stream.get("fd"),
            mode=stream.get("mode"),
        )
