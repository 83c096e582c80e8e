"""
Tests for the processor registry and the claim ledger.

These tests use local ProcessorRegistry instances so the global registry
holding the built-in processors is never touched.
"""

from __future__ import annotations

import pytest

from fsprocessor.classify import READ_FILE, READ_STREAM, WRITE_FILE, WRITE_STREAM
from fsprocessor.processors import (
    ClaimLedger,
    ProcessorRegistry,
    ReadFileProcessor,
    ReadStreamProcessor,
    WriteFileProcessor,
    WriteStreamProcessor,
    get_registry,
)
from fsprocessor.processors.base import Processor, describe


class NoKindProcessor(Processor):
    kind = ""

    def resolve(self, context):
        return {}

    def assemble(self, anchor_id, group, context):
        raise NotImplementedError


# =============================================================================
# Registry
# =============================================================================


class TestProcessorRegistry:
    """Tests for registration and ordering."""

    def make_registry(self) -> ProcessorRegistry:
        registry = ProcessorRegistry()
        registry.register(WriteFileProcessor)
        registry.register(ReadFileProcessor)
        registry.register(WriteStreamProcessor)
        registry.register(ReadStreamProcessor)
        return registry

    def test_builtins_registered(self) -> None:
        registry = get_registry()

        for kind in (READ_FILE, READ_STREAM, WRITE_FILE, WRITE_STREAM):
            assert kind in registry
        assert registry.get(READ_FILE) is ReadFileProcessor

    def test_ordered_by_steps_then_registration(self) -> None:
        kinds = [cls.kind for cls in self.make_registry().ordered()]

        assert kinds == [READ_FILE, WRITE_STREAM, READ_STREAM, WRITE_FILE]

    def test_ordered_filters(self) -> None:
        registry = self.make_registry()

        assert [c.kind for c in registry.ordered(include={WRITE_FILE})] == [WRITE_FILE]
        assert WRITE_FILE not in [c.kind for c in registry.ordered(exclude={WRITE_FILE})]

    def test_duplicate_kind_rejected(self) -> None:
        registry = self.make_registry()

        with pytest.raises(ValueError, match="already registered"):
            registry.register(ReadFileProcessor)

    def test_empty_kind_rejected(self) -> None:
        with pytest.raises(ValueError, match="kind"):
            ProcessorRegistry().register(NoKindProcessor)

    def test_unregister_and_clear(self) -> None:
        registry = self.make_registry()

        assert registry.unregister(WRITE_FILE) is True
        assert registry.unregister(WRITE_FILE) is False
        assert len(registry) == 3

        registry.clear()
        assert len(registry) == 0

    def test_describe(self) -> None:
        info = describe(ReadFileProcessor)

        assert info["kind"] == READ_FILE
        assert info["steps"] == 4
        assert info["description"]


# =============================================================================
# Claim Ledger
# =============================================================================


class TestClaimLedger:
    """Tests for kind-scoped exclusive claims."""

    def test_claim_all_or_nothing(self) -> None:
        ledger = ClaimLedger()

        assert ledger.try_claim(READ_FILE, [10, 11])
        assert not ledger.try_claim(READ_FILE, [11, 12])
        assert not ledger.is_claimed(READ_FILE, 12)
        assert ledger.claimed(READ_FILE) == {10, 11}

    def test_kinds_are_independent(self) -> None:
        ledger = ClaimLedger()

        ledger.try_claim(READ_STREAM, [14, 19])

        assert ledger.try_claim(WRITE_STREAM, [14, 19])
        assert ledger.is_claimed(WRITE_STREAM, 19)

    def test_unclaimed_preserves_order(self) -> None:
        ledger = ClaimLedger()
        ledger.try_claim(READ_FILE, [11])

        assert ledger.unclaimed(READ_FILE, [12, 11, 10]) == [12, 10]
        assert ledger.unclaimed(WRITE_FILE, [12, 11]) == [12, 11]

    def test_shared_ids_never_refused(self) -> None:
        ledger = ClaimLedger()

        ledger.share([16])
        ledger.share([16])

        assert ledger.shared == {16}
        assert not ledger.is_claimed(WRITE_STREAM, 16)
