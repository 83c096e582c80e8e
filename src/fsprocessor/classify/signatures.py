"""
Versioned call-site signature tables.

Roles are recognized from the call stack captured when an activity was
created ("frame 0 matches Object.fs.open and frame 1 matches
ReadStream.open"), or for tick roles from the structure of the resource
arguments. Those call sites are internals of one Node.js release, so the
patterns are data: a SignatureTable names its version and is injected
into classification. Retargeting to another runtime means shipping
another table, not editing processors.

Usage:
    table = get_signature_table("node-8")
    open_sig = table.for_kind(READ_STREAM).for_role(Role.OPEN)

    table = load_signature_table(Path("node-10.json"))
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fsprocessor.capture.models import Activity
from fsprocessor.classify.models import Role
from fsprocessor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

READ_FILE = "fs.readFile"
READ_STREAM = "fs.createReadStream"
WRITE_FILE = "fs.writeFile"
WRITE_STREAM = "fs.createWriteStream"


# =============================================================================
# Signature Models
# =============================================================================


class FramePattern(BaseModel):
    """A regex tested against one stack frame, or against every frame."""

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(..., description="Regular expression searched in the frame")
    frame: int | None = Field(
        default=None,
        ge=0,
        description="Frame index (0 = innermost); None matches any frame",
    )
    ignore_case: bool = Field(default=True)

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid pattern {value!r}: {e}") from e
        return value

    def _search(self, text: str) -> bool:
        flags = re.IGNORECASE if self.ignore_case else 0
        return re.search(self.pattern, text, flags) is not None

    def matches(self, stack: list[str] | None) -> bool:
        if not stack:
            return False
        if self.frame is None:
            return any(self._search(frame) for frame in stack)
        if self.frame >= len(stack):
            return False
        return self._search(stack[self.frame])


class StructuralPattern(BaseModel):
    """
    Matches ``resource.args[arg_index]`` by prototype name and a truthy flag.

    Used for tick roles, whose stacks are not specific to one stream.
    """

    model_config = ConfigDict(frozen=True)

    arg_index: int = Field(..., ge=0)
    proto: str = Field(..., description="Expected value of the arg's 'proto' field")
    flag: str = Field(..., description="Field that must be truthy, e.g. 'readable'")

    def matches(self, resource: dict[str, Any] | None) -> bool:
        if not resource:
            return False
        args = resource.get("args")
        if not isinstance(args, list) or len(args) <= self.arg_index:
            return False
        arg = args[self.arg_index]
        if not isinstance(arg, dict):
            return False
        return arg.get("proto") == self.proto and bool(arg.get(self.flag))


class RoleSignature(BaseModel):
    """Everything an activity must satisfy to play ``role``."""

    model_config = ConfigDict(frozen=True)

    role: Role
    type: str | None = Field(
        default=None,
        description="Required activity type; None accepts any type",
    )
    frames: tuple[FramePattern, ...] = Field(default=())
    structure: StructuralPattern | None = Field(default=None)

    def matches(self, activity: Activity) -> bool:
        if self.type is not None and activity.type != self.type:
            return False
        if not all(p.matches(activity.init_stack) for p in self.frames):
            return False
        if self.structure is not None and not self.structure.matches(activity.resource):
            return False
        return True


class KindSignatures(BaseModel):
    """Role signatures for one operation kind."""

    model_config = ConfigDict(frozen=True)

    roles: tuple[RoleSignature, ...] = Field(default=())
    created_at_frame: int = Field(
        default=0,
        ge=0,
        description="Open stack frame naming the user call site",
    )

    def for_role(self, role: Role) -> RoleSignature | None:
        for signature in self.roles:
            if signature.role == role:
                return signature
        return None


class SignatureTable(BaseModel):
    """A named, versioned set of signatures for every known kind."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Table name, e.g. 'node-8'")
    kinds: dict[str, KindSignatures] = Field(default_factory=dict)

    def for_kind(self, kind: str) -> KindSignatures:
        """
        Signatures for ``kind``.

        Raises:
            ConfigurationError: If the table has no entry for ``kind``.
        """
        signatures = self.kinds.get(kind)
        if signatures is None:
            raise ConfigurationError(
                f"Signature table '{self.version}' has no entry for {kind}",
                config_key="signatures",
            )
        return signatures


# =============================================================================
# Built-in Tables
# =============================================================================


def _frames(*pairs: tuple[int | None, str]) -> tuple[FramePattern, ...]:
    return tuple(FramePattern(frame=frame, pattern=pattern) for frame, pattern in pairs)


FSREQWRAP = "FSREQWRAP"
TICK_OBJECT = "TickObject"

# Call sites of Node.js 8 lib/fs.js
NODE_8 = SignatureTable(
    version="node-8",
    kinds={
        READ_FILE: KindSignatures(
            created_at_frame=1,
            roles=(
                RoleSignature(role=Role.OPEN, frames=_frames((None, r"at Object\.fs\.readFile"))),
                RoleSignature(role=Role.STAT, frames=_frames((None, r"at FSReqWrap\.readFileAfterOpen"))),
                RoleSignature(role=Role.READ, frames=_frames((None, r"at FSReqWrap\.readFileAfterStat"))),
                RoleSignature(role=Role.CLOSE, frames=_frames((None, r"at ReadFileContext\.close"))),
            ),
        ),
        READ_STREAM: KindSignatures(
            created_at_frame=4,
            roles=(
                RoleSignature(
                    role=Role.OPEN,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.open"), (1, r"ReadStream\.open")),
                ),
                RoleSignature(
                    role=Role.READ,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.read"), (1, r"ReadStream\._read")),
                ),
                RoleSignature(
                    role=Role.CLOSE,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.close"), (2, r"ReadStream\.close")),
                ),
                RoleSignature(
                    role=Role.TICK,
                    type=TICK_OBJECT,
                    structure=StructuralPattern(arg_index=0, proto="ReadStream", flag="readable"),
                ),
            ),
        ),
        WRITE_FILE: KindSignatures(
            created_at_frame=2,
            roles=(
                RoleSignature(
                    role=Role.OPEN,
                    type=FSREQWRAP,
                    frames=_frames((0, r"at Object\.fs\.open"), (1, r"at Object\.fs\.writeFile")),
                ),
                RoleSignature(
                    role=Role.WRITE,
                    type=FSREQWRAP,
                    frames=_frames((0, r"at Object\.fs\.write")),
                ),
                RoleSignature(
                    role=Role.CLOSE,
                    type=FSREQWRAP,
                    frames=_frames((0, r"at Object\.fs\.close")),
                ),
            ),
        ),
        WRITE_STREAM: KindSignatures(
            created_at_frame=4,
            roles=(
                RoleSignature(
                    role=Role.OPEN,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.open"), (1, r"WriteStream\.open")),
                ),
                RoleSignature(
                    role=Role.WRITE,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.write"), (1, r"WriteStream\._write")),
                ),
                RoleSignature(
                    role=Role.CLOSE,
                    type=FSREQWRAP,
                    frames=_frames((0, r"Object\.fs\.close"), (2, r"WriteStream\.ReadStream\.close")),
                ),
                RoleSignature(
                    role=Role.TICK,
                    type=TICK_OBJECT,
                    structure=StructuralPattern(arg_index=2, proto="WriteStream", flag="writable"),
                ),
            ),
        ),
    },
)

_BUILTIN_TABLES: dict[str, SignatureTable] = {NODE_8.version: NODE_8}

DEFAULT_SIGNATURES = NODE_8


def get_signature_table(name: str) -> SignatureTable:
    """
    Look up a built-in table by version name.

    Raises:
        ConfigurationError: If no built-in table has that name.
    """
    table = _BUILTIN_TABLES.get(name)
    if table is None:
        raise ConfigurationError(
            f"Unknown signature table '{name}'. "
            f"Available: {', '.join(sorted(_BUILTIN_TABLES))}",
            config_key="signatures",
        )
    return table


def load_signature_table(path: Path) -> SignatureTable:
    """
    Load a signature table from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid table.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read signature table {path}: {e}",
            config_key="signatures",
        ) from e

    try:
        table = SignatureTable.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid signature table {path}: {e.error_count()} error(s)",
            config_key="signatures",
        ) from e

    logger.debug("Loaded signature table %s with %d kinds", table.version, len(table.kinds))
    return table
