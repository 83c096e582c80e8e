"""
Processor registry for centralized processor management.

The registry pattern provides:
- Explicit control over which operation kinds are processed
- Plugin system for user-defined processors
- Execution order by step count (most specific kinds first)
- Testing isolation (register only specific processors)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from fsprocessor.processors.base import Processor

T = TypeVar("T", bound="Processor")


class ProcessorRegistry:
    """
    Centralized registry of processor classes, keyed by kind.

    Example:
        @register_processor
        class ReadFileProcessor(Processor):
            kind = "fs.readFile"
            ...

        registry = get_registry()
        processors = registry.ordered(exclude={"fs.writeFile"})
    """

    def __init__(self) -> None:
        self._processors: dict[str, type[Processor]] = {}

    def register(self, processor_cls: type[T]) -> type[T]:
        """
        Register a processor class.

        Raises:
            ValueError: If the kind is empty or already registered
        """
        kind = processor_cls.kind
        if not kind:
            raise ValueError(f"{processor_cls.__name__} does not declare a kind")

        if kind in self._processors:
            existing = self._processors[kind]
            raise ValueError(
                f"Kind '{kind}' already registered by {existing.__module__}.{existing.__name__}. "
                f"Cannot register {processor_cls.__module__}.{processor_cls.__name__}"
            )

        self._processors[kind] = processor_cls
        return processor_cls

    def unregister(self, kind: str) -> bool:
        """Remove a processor. Returns True if it was registered."""
        if kind in self._processors:
            del self._processors[kind]
            return True
        return False

    def get(self, kind: str) -> type[Processor] | None:
        return self._processors.get(kind)

    def all(self) -> list[type[Processor]]:
        """All processor classes, in registration order."""
        return list(self._processors.values())

    def all_kinds(self) -> list[str]:
        return list(self._processors.keys())

    def ordered(
        self,
        include: set[str] | None = None,
        exclude: set[str] | None = None,
    ) -> list[type[Processor]]:
        """
        Processor classes in execution order.

        Descending step count; equal step counts keep registration order.
        """
        processors = self.all()

        if include is not None:
            processors = [p for p in processors if p.kind in include]

        if exclude is not None:
            processors = [p for p in processors if p.kind not in exclude]

        return sorted(processors, key=lambda p: -p.steps)

    def clear(self) -> None:
        """Remove all registered processors. Primarily useful for testing."""
        self._processors.clear()

    def __len__(self) -> int:
        return len(self._processors)

    def __contains__(self, kind: str) -> bool:
        return kind in self._processors


# Global registry instance
_global_registry = ProcessorRegistry()


def get_registry() -> ProcessorRegistry:
    """Get the global processor registry."""
    return _global_registry


def register_processor(processor_cls: type[T]) -> type[T]:
    """Decorator to register a processor with the global registry."""
    return _global_registry.register(processor_cls)
