"""Adapters between the engine and its collaborators."""

from choicegraph.adapters.storage import GraphStorage, InMemoryGraphStorage

__all__ = [
    "GraphStorage",
    "InMemoryGraphStorage",
]
