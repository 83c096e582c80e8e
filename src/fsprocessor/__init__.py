"""fsprocessor - Reconstructs file system operations from async-hooks activity captures."""

__version__ = "0.3.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from fsprocessor.exceptions import (
    CaptureError,
    ConfigurationError,
    FsProcessorError,
    PreconditionError,
    ProcessorError,
)

from fsprocessor.capture import Activity, ActivityStore, load_activities
from fsprocessor.classify import (
    READ_FILE,
    READ_STREAM,
    WRITE_FILE,
    WRITE_STREAM,
    Classification,
    Role,
    SignatureTable,
    classify,
)
from fsprocessor.config import Config, get_config, reset_config
from fsprocessor.engine import Engine, process
from fsprocessor.graph import CausalGraph
from fsprocessor.observability import ProcessorMetrics
from fsprocessor.operations import (
    Duration,
    Operation,
    ReadFileOperation,
    ReadStreamOperation,
    UserFunction,
    WriteFileOperation,
    WriteStreamOperation,
    pretty_ns,
)
from fsprocessor.processors import (
    ClaimLedger,
    Processor,
    ProcessorResult,
    get_registry,
    register_processor,
)
from fsprocessor.report import (
    OperationEntry,
    ProcessingReport,
    ProcessorRun,
    RunStatus,
)

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "CaptureError",
    "ConfigurationError",
    "FsProcessorError",
    "PreconditionError",
    "ProcessorError",
    # Capture
    "Activity",
    "ActivityStore",
    "load_activities",
    # Classification
    "Classification",
    "READ_FILE",
    "READ_STREAM",
    "Role",
    "SignatureTable",
    "WRITE_FILE",
    "WRITE_STREAM",
    "classify",
    # Graph
    "CausalGraph",
    # Operations
    "Duration",
    "Operation",
    "ReadFileOperation",
    "ReadStreamOperation",
    "UserFunction",
    "WriteFileOperation",
    "WriteStreamOperation",
    "pretty_ns",
    # Processing
    "ClaimLedger",
    "Engine",
    "OperationEntry",
    "ProcessingReport",
    "Processor",
    "ProcessorResult",
    "ProcessorRun",
    "RunStatus",
    "get_registry",
    "process",
    "register_processor",
    # Config / observability
    "Config",
    "ProcessorMetrics",
    "get_config",
    "reset_config",
]
