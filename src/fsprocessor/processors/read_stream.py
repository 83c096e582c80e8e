"""
fs.createReadStream processor.

A read stream opens its file, then reads chunk by chunk until the file
is exhausted and closes it. Each read is triggered by the previous one
(through a stream tick), so the open's trigger chain reaches the close:

    open:10 -> tick:12 -> read:13 -> read:14 -> close:16

The chain alone decides membership: its last id must be a close. No
positional checks are made, so any number of reads is accepted.

The ReadStream tick (a TickObject whose first argument is a readable
ReadStream) carries the stream's configuration and the user's event
handlers. It is recorded as shared, since a write stream fed by this
read stream reports the same tick.
"""

from __future__ import annotations

from typing import Any

from fsprocessor.capture.models import Activity
from fsprocessor.classify.models import Role
from fsprocessor.classify.signatures import READ_STREAM
from fsprocessor.operations.assembly import (
    created_at,
    life_cycle,
    make_step,
    make_timed_step,
    safe_val,
    step_fields,
)
from fsprocessor.operations.models import ReadStreamInfo, ReadStreamOperation, Step, TimedStep
from fsprocessor.processors.base import Groups, ProcessingContext, Processor
from fsprocessor.processors.registry import register_processor


@register_processor
class ReadStreamProcessor(Processor):
    """Follows each read stream open down its trigger chain to the close."""

    kind = READ_STREAM
    version = "1.0.0"
    steps = 4
    description = "fs.createReadStream: open, stream tick, reads, close"

    min_chain_length = 2

    def resolve(self, context: ProcessingContext) -> Groups:
        return self.direct_chain_groups(context, min_length=self.min_chain_length)

    def assemble(self, anchor_id: int, group: frozenset[int], context: ProcessingContext) -> ReadStreamOperation:
        include = context.include_activities
        roles = context.classification

        open_activity = context.store[anchor_id]
        close_activity: Activity | None = None
        stream: ReadStreamInfo | None = None
        reads: list[TimedStep] = []

        for activity in self.members(context, group):
            aid = activity.id
            if aid == anchor_id:
                continue
            if roles.has(self.kind, Role.TICK, aid):
                # Only one tick is needed to pull the stream info from
                if stream is None:
                    stream = self._stream_info(activity, include)
            elif roles.has(self.kind, Role.READ, aid):
                reads.append(make_timed_step(activity, include))
            elif roles.has(self.kind, Role.CLOSE, aid):
                close_activity = activity

        close: Step | None = None
        if close_activity is not None:
            close = make_step(close_activity, include)

        return ReadStreamOperation(
            life_cycle=life_cycle(open_activity, close_activity),
            created_at=created_at(open_activity, self.kind_signatures.created_at_frame),
            open=make_step(open_activity, include),
            stream=stream,
            reads=reads,
            close=close,
        )

    @staticmethod
    def _stream_info(activity: Activity, include: bool) -> ReadStreamInfo | None:
        """
        Stream configuration from the tick's args.

        args[0] is the ReadStream (path, flags, fd) and args[1] its
        ReadableState (objectMode, highWaterMark, pipesCount, encodings).
        """
        args: Any = (activity.resource or {}).get("args")
        if not isinstance(args, list) or len(args) < 2:
            return None
        stream = args[0] if isinstance(args[0], dict) else {}
        state = args[1] if isinstance(args[1], dict) else {}

        return ReadStreamInfo(
            **step_fields(activity, include, path_prefix="stream.resource"),
            path=safe_val(stream.get("path")),
            flags=safe_val(stream.get("flags")),
            fd=stream.get("fd"),
            object_mode=state.get("objectMode"),
            high_water_mark=state.get("highWaterMark"),
            pipes_count=state.get("pipesCount"),
            default_encoding=safe_val(state.get("defaultEncoding")),
            encoding=safe_val(state.get("encoding")),
        )
