"""Causal graph index built from activity trigger ids."""

from fsprocessor.graph.causal import CausalGraph, Predicate

__all__ = [
    "CausalGraph",
    "Predicate",
]
