"""Operation report models, user function descriptors and durations."""

from fsprocessor.operations.functions import (
    UserFunction,
    merge_user_functions,
    unique_user_functions,
)
from fsprocessor.operations.models import (
    LifeCycle,
    Operation,
    ReadFileOperation,
    ReadStreamInfo,
    ReadStreamOperation,
    Step,
    TimedStep,
    WriteFileOperation,
    WriteStreamInfo,
    WriteStreamOperation,
)
from fsprocessor.operations.timing import Duration, pretty_ns

__all__ = [
    "Duration",
    "LifeCycle",
    "Operation",
    "ReadFileOperation",
    "ReadStreamInfo",
    "ReadStreamOperation",
    "Step",
    "TimedStep",
    "UserFunction",
    "WriteFileOperation",
    "WriteStreamInfo",
    "WriteStreamOperation",
    "merge_user_functions",
    "pretty_ns",
    "unique_user_functions",
]
