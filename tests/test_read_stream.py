"""
Tests for the fs.createReadStream processor.

Scenario used throughout (1 is the user's code):

    1 ── open:10 ── tick:12 ── read:13 ── read:14 ── close:16
    ├─── tick:11      (stream tick created next to the open, not in the chain)
    └─── 15           (unrelated)
"""

from __future__ import annotations

from fsprocessor.capture import Activity
from fsprocessor.classify import READ_STREAM
from fsprocessor.config import Config
from fsprocessor.engine import Engine
from fsprocessor.processors import ReadStreamProcessor
from fsprocessor.report import ProcessingReport

from factories import (
    READ_STREAM_CLOSE_STACK,
    READ_STREAM_OPEN_STACK,
    READ_STREAM_READ_STACK,
    make_activity,
    make_store,
    read_stream_tick,
)


def run(*activities: Activity, **options) -> ProcessingReport:
    engine = Engine(processors=[ReadStreamProcessor()], config=Config())
    return engine.process(make_store(*activities), **options)


def make_read_stream(base: int = 10, trigger_id: int = 1, path: str = "/tmp/in.txt") -> list[Activity]:
    return [
        make_activity(base, trigger_id, stack=READ_STREAM_OPEN_STACK),
        read_stream_tick(base + 1, trigger_id, path=path),
        read_stream_tick(base + 2, base, path=path),
        make_activity(base + 3, base + 2, stack=READ_STREAM_READ_STACK, before=[13_100], after=[13_400]),
        make_activity(base + 4, base + 3, stack=READ_STREAM_READ_STACK),
        make_activity(base + 5, trigger_id, type="Timeout"),
        make_activity(base + 6, base + 4, stack=READ_STREAM_CLOSE_STACK),
    ]


# =============================================================================
# Grouping
# =============================================================================


class TestReadStreamGrouping:
    """Tests for resolving read stream chains."""

    def test_chain_to_close(self) -> None:
        report = run(*make_read_stream())

        assert report.groups(READ_STREAM) == {10: frozenset({10, 12, 13, 14, 16})}

    def test_no_close_yields_nothing(self) -> None:
        activities = make_read_stream()[:-1]

        assert run(*activities).groups(READ_STREAM) == {}

    def test_close_of_other_stream_not_taken(self) -> None:
        activities = make_read_stream()[:-1]
        activities.append(make_activity(16, 1, stack=READ_STREAM_CLOSE_STACK))

        assert run(*activities).groups(READ_STREAM) == {}

    def test_any_number_of_reads(self) -> None:
        report = run(
            make_activity(10, stack=READ_STREAM_OPEN_STACK),
            make_activity(11, 10, stack=READ_STREAM_CLOSE_STACK),
        )

        assert report.groups(READ_STREAM) == {10: frozenset({10, 11})}

    def test_two_streams(self) -> None:
        activities = [*make_read_stream(10), *make_read_stream(20, path="/tmp/other.txt")]

        groups = run(*activities).groups(READ_STREAM)

        assert groups == {
            10: frozenset({10, 12, 13, 14, 16}),
            20: frozenset({20, 22, 23, 24, 26}),
        }


# =============================================================================
# Assembly
# =============================================================================


class TestReadStreamAssembly:
    """Tests for the assembled ReadStreamOperation."""

    def test_steps(self) -> None:
        operation = run(*make_read_stream()).operations(READ_STREAM)[10]

        assert operation.open.id == 10
        assert operation.stream.id == 12
        assert [read.id for read in operation.reads] == [13, 14]
        assert operation.close.id == 16
        assert operation.step_ids() == [10, 12, 13, 14, 16]

    def test_stream_info(self) -> None:
        stream = run(*make_read_stream()).operations(READ_STREAM)[10].stream

        assert stream.path == "/tmp/in.txt"
        assert stream.flags == "r"
        assert stream.fd == 11
        assert stream.object_mode is False
        assert stream.high_water_mark == 65536
        assert stream.pipes_count == 0
        assert stream.default_encoding == "utf8"
        assert stream.encoding is None

    def test_read_time_spent(self) -> None:
        reads = run(*make_read_stream()).operations(READ_STREAM)[10].reads

        assert reads[0].time_spent.ns == 300
        assert reads[1].time_spent.is_placeholder

    def test_life_cycle_and_created_at(self) -> None:
        operation = run(*make_read_stream()).operations(READ_STREAM)[10]

        assert operation.life_cycle.created.ns == 10_000
        assert operation.life_cycle.destroyed.ns == 16_500
        assert operation.created_at == READ_STREAM_OPEN_STACK[4]

    def test_user_functions_come_from_the_tick(self) -> None:
        operation = run(*make_read_stream()).operations(READ_STREAM)[10]

        assert [fn.display_name for fn in operation.user_functions] == ["ondata", "onend"]
        assert operation.user_functions[0].property_paths == [
            "stream.resource.args[0]._events.data",
        ]

    def test_serialized_shape(self) -> None:
        data = run(*make_read_stream()).operations(READ_STREAM)[10].to_dict()

        assert data["stream"]["highWaterMark"] == 65536
        assert data["reads"][0]["timeSpent"] == {"ns": 300, "ms": "0.00ms"}
        assert data["createdAt"] == READ_STREAM_OPEN_STACK[4]
        assert "userFunctions" not in data["stream"]

    def test_tick_without_args(self) -> None:
        report = run(
            make_activity(10, stack=READ_STREAM_OPEN_STACK),
            make_activity(11, 10, stack=READ_STREAM_READ_STACK),
            make_activity(12, 11, stack=READ_STREAM_CLOSE_STACK),
        )
        operation = report.operations(READ_STREAM)[10]

        assert operation.stream is None
        assert operation.user_functions == []
