"""
User function descriptors.

The capture records every function reachable from an activity's
resource (callbacks, event listeners, stream internals) as an entry in
``resource.functions``:

    {"path": ["context", "callback"],
     "info": {"file": "/app/index.js", "line": 12, "column": 4,
              "name": "onread", "inferredName": ""},
     "arguments": [...]}

Only functions defined in user files are reported. Library and runtime
functions live in files named without an absolute path ("fs.js",
"_stream_readable.js").

Two transforms run over descriptors once an operation is assembled:
separation (collect them on the operation) and merging (one entry per
source location).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_NAME = "<unknown>"

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")


class UserFunction(BaseModel):
    """
    A function defined in user code, found inside an activity's payload.

    Before merging, ``property_path`` names the single place it was found.
    After merging, ``property_paths`` lists every place and
    ``property_path`` is unset.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    display_name: str = Field(..., alias="displayName")
    name: str | None = Field(default=None, description="Declared name")
    inferred_name: str | None = Field(default=None, alias="inferredName")
    file: str
    line: int | None = None
    column: int | None = None
    location: str = Field(..., description="'<name> (<file>:<line>:<column>)'")
    property_path: str | None = Field(default=None, alias="propertyPath")
    property_paths: list[str] | None = Field(default=None, alias="propertyPaths")
    args: Any = Field(default=None, description="Captured invocation arguments")

    def paths(self) -> list[str]:
        """Every property path this descriptor stands for."""
        if self.property_paths is not None:
            return list(self.property_paths)
        if self.property_path is not None:
            return [self.property_path]
        return []


# Info keys that map onto declared fields (by name or alias)
_RESERVED_KEYS = frozenset(
    key
    for name, field in UserFunction.model_fields.items()
    for key in (name, field.alias)
    if key
)


def is_user_function(fn: Any) -> bool:
    """True when the function's defining file is an absolute path."""
    if not isinstance(fn, dict):
        return False
    info = fn.get("info")
    if not isinstance(info, dict):
        return False
    file = info.get("file")
    if not isinstance(file, str):
        return False
    return file.startswith("/") or bool(_WINDOWS_ABSOLUTE.match(file))


def display_name(info: dict[str, Any]) -> str:
    """Declared name, then inferred name, then ``<unknown>``."""
    for key in ("name", "inferredName"):
        value = info.get(key)
        if value:
            return str(value)
    return UNKNOWN_NAME


def stringify_path(path: Sequence[Any] | None, prefix: str) -> str:
    """
    Render a property path below ``prefix``.

    Numeric segments become indexes: ``["args", 0, "cb"]`` under
    ``"open.resource"`` is ``open.resource.args[0].cb``.
    """
    result = prefix
    if not path:
        return result
    for segment in path:
        if _is_index(segment):
            result = f"{result}[{segment}]"
        else:
            result = f"{result}.{segment}"
    return result


def _is_index(segment: Any) -> bool:
    if isinstance(segment, bool):
        return False
    if isinstance(segment, int):
        return True
    return isinstance(segment, str) and segment.isdigit()


def unique_user_functions(
    functions: Iterable[Any] | None,
    path_prefix: str = "root",
) -> list[UserFunction]:
    """
    User functions among ``functions``, one per location.

    A location seen twice keeps its first position and the later entry's
    details.
    """
    found: dict[str, UserFunction] = {}
    if not functions:
        return []

    for fn in functions:
        if not is_user_function(fn):
            continue
        info = fn["info"]
        name = display_name(info)
        location = f"{name} ({info.get('file')}:{info.get('line')}:{info.get('column')})"
        extra = {k: v for k, v in info.items() if k not in _RESERVED_KEYS}
        found[location] = UserFunction(
            **extra,
            display_name=name,
            name=info.get("name"),
            inferred_name=info.get("inferredName"),
            file=info["file"],
            line=info.get("line"),
            column=info.get("column"),
            location=location,
            property_path=stringify_path(fn.get("path"), path_prefix),
            args=fn.get("arguments"),
        )
    return list(found.values())


def merge_user_functions(functions: Sequence[UserFunction]) -> list[UserFunction]:
    """
    Collapse descriptors sharing a location.

    Property paths are unioned into ``property_paths`` (first-seen order).
    Missing ``args``, ``name`` and ``inferred_name`` are backfilled from
    later duplicates. Merging an already-merged list changes nothing.
    """
    merged: dict[str, dict[str, Any]] = {}

    for fn in functions:
        entry = merged.get(fn.location)
        if entry is None:
            merged[fn.location] = {
                "fn": fn,
                "paths": fn.paths(),
                "args": fn.args,
                "name": fn.name,
                "inferred_name": fn.inferred_name,
            }
            continue

        for path in fn.paths():
            if path not in entry["paths"]:
                entry["paths"].append(path)
        if entry["args"] is None and fn.args is not None:
            entry["args"] = fn.args
        if not entry["name"] and fn.name:
            entry["name"] = fn.name
        if not entry["inferred_name"] and fn.inferred_name:
            entry["inferred_name"] = fn.inferred_name

    return [
        entry["fn"].model_copy(update={
            "property_path": None,
            "property_paths": entry["paths"],
            "args": entry["args"],
            "name": entry["name"],
            "inferred_name": entry["inferred_name"],
        })
        for entry in merged.values()
    ]
