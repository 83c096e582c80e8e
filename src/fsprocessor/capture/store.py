"""
Activity store and capture loading.

The store is an immutable, ordered mapping from activity id to Activity.
Iteration order is the order activities were supplied in, which must be
non-decreasing by creation time for trigger-graph walks to be complete.

Captures are accepted in every shape the capture tool writes them:
- A JSON array of ``[id, activity]`` pairs (serialized Map entries)
- A JSON array of activity objects carrying their own ``id``
- A JSON object keyed by id

Error handling philosophy: fail fast with clear messages. A capture that
cannot be read or validated raises CaptureError; the engine never sees
half-parsed input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from fsprocessor.capture.models import Activity
from fsprocessor.exceptions import CaptureError

logger = logging.getLogger(__name__)

CaptureSource = str | Path | Mapping[Any, Any] | Iterable[Any]


class ActivityStore(Mapping[int, Activity]):
    """
    Immutable ordered mapping of activity id to Activity.

    Example:
        >>> store = ActivityStore([Activity(id=1, type="FSREQWRAP")])
        >>> store[1].type
        'FSREQWRAP'
    """

    def __init__(self, activities: Mapping[int, Activity] | Iterable[Activity] = ()) -> None:
        items: Iterable[tuple[int, Activity]]
        if isinstance(activities, Mapping):
            items = activities.items()
        else:
            items = ((a.id, a) for a in activities)

        self._activities: dict[int, Activity] = {}
        for key, activity in items:
            if key != activity.id:
                raise CaptureError(
                    f"Activity keyed {key} carries id {activity.id}",
                    source="validation",
                )
            if key in self._activities:
                raise CaptureError(
                    f"Duplicate activity id {key}",
                    source="validation",
                )
            self._activities[key] = activity

        self._positions = {aid: i for i, aid in enumerate(self._activities)}

    def __getitem__(self, activity_id: int) -> Activity:
        return self._activities[activity_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._activities)

    def __len__(self) -> int:
        return len(self._activities)

    def __repr__(self) -> str:
        return f"ActivityStore({len(self)} activities)"

    def position(self, activity_id: int) -> int | None:
        """Index of an id in store order, or None when unknown."""
        return self._positions.get(activity_id)

    def ids_after(self, activity_id: int) -> list[int]:
        """All ids that come after ``activity_id`` in store order."""
        pos = self._positions.get(activity_id)
        if pos is None:
            return []
        return list(self._activities)[pos + 1:]

    def is_chronological(self) -> bool:
        """
        True when init timestamps never decrease in store order.

        Activities without an init timestamp are ignored.
        """
        last: float | None = None
        for activity in self._activities.values():
            stamp = activity.first("init")
            if stamp is None:
                continue
            if last is not None and stamp < last:
                return False
            last = stamp
        return True

    @classmethod
    def coerce(cls, source: ActivityStore | Mapping[Any, Any] | Iterable[Any]) -> ActivityStore:
        """Return ``source`` unchanged if it is a store, otherwise build one."""
        if isinstance(source, ActivityStore):
            return source
        return cls(_validate_records(source))


def load_activities(source: CaptureSource) -> ActivityStore:
    """
    Load a capture into an ActivityStore.

    Accepts multiple input formats for convenience:
    - File path (str or Path): Reads and parses the file
    - JSON string: Parses the string
    - Mapping or list: Validates the already-parsed records

    Raises:
        CaptureError: If the input cannot be read, decoded or validated.

    Example:
        >>> store = load_activities("capture.json")
        >>> store = load_activities('[[10, {"id": 10, "type": "FSREQWRAP"}]]')
    """
    if isinstance(source, Path):
        data = _load_json_file(source)
    elif isinstance(source, str):
        stripped = source.strip()
        if stripped.startswith(("{", "[")):
            data = _parse_json_string(stripped)
        else:
            data = _load_json_file(Path(source))
    else:
        data = source

    store = ActivityStore(_validate_records(data))
    logger.debug("Loaded %d activities", len(store))
    return store


def _validate_records(data: Mapping[Any, Any] | Iterable[Any]) -> list[Activity]:
    """Turn any supported record shape into a list of Activity models."""
    if isinstance(data, Mapping):
        pairs = list(data.items())
    else:
        pairs = []
        for entry in data:
            if isinstance(entry, Activity):
                pairs.append((entry.id, entry))
            elif isinstance(entry, Mapping):
                pairs.append((entry.get("id"), entry))
            elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                pairs.append((entry[0], entry[1]))
            else:
                raise CaptureError(
                    f"Unsupported capture entry: {type(entry).__name__}",
                    detail="Expected an activity object or an [id, activity] pair",
                    source="structure",
                )

    activities: list[Activity] = []
    for key, record in pairs:
        if isinstance(record, Activity):
            activities.append(record)
            continue
        if not isinstance(record, Mapping):
            raise CaptureError(
                f"Activity {key!r} is not an object",
                source="structure",
            )
        payload = dict(record)
        if "id" not in payload:
            payload["id"] = key
        try:
            activities.append(Activity.model_validate(payload))
        except ValidationError as e:
            raise CaptureError(
                f"Invalid activity {key!r}",
                detail=str(e),
                source="validation",
            ) from e
    return activities


def _load_json_file(path: Path) -> Any:
    """Load and parse a JSON file."""
    if not path.exists():
        raise CaptureError(f"File not found: {path}", source="file_read")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CaptureError(
            f"Cannot read file: {path}",
            detail=str(e),
            source="file_read",
        ) from e

    if not content.strip():
        raise CaptureError(f"File is empty: {path}", source="file_read")

    return _parse_json_string(content)


def _parse_json_string(content: str) -> Any:
    """Parse a JSON string into a list or object."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise CaptureError(
            "Invalid JSON format",
            detail=f"Line {e.lineno}, column {e.colno}: {e.msg}",
            source="json_decode",
        ) from e

    if not isinstance(data, (dict, list)):
        raise CaptureError(
            f"Expected JSON object or array, got {type(data).__name__}",
            source="json_decode",
        )

    return data
