"""
Operation processors.

Importing this package registers the built-in processors with the
global registry.
"""

from fsprocessor.processors.base import (
    Groups,
    ProcessingContext,
    Processor,
    ProcessorResult,
)
from fsprocessor.processors.ledger import ClaimLedger
from fsprocessor.processors.registry import (
    ProcessorRegistry,
    get_registry,
    register_processor,
)

# Built-in processors (registration happens on import)
from fsprocessor.processors.read_file import ReadFileProcessor
from fsprocessor.processors.read_stream import ReadStreamProcessor
from fsprocessor.processors.write_file import WriteFileProcessor
from fsprocessor.processors.write_stream import WriteStreamProcessor

__all__ = [
    "ClaimLedger",
    "Groups",
    "ProcessingContext",
    "Processor",
    "ProcessorRegistry",
    "ProcessorResult",
    "ReadFileProcessor",
    "ReadStreamProcessor",
    "WriteFileProcessor",
    "WriteStreamProcessor",
    "get_registry",
    "register_processor",
]
