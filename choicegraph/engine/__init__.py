"""Graph consistency and active-path engine."""

from choicegraph.engine.active_path import (
    collect_end_nodes,
    derive_active_path,
    derive_path,
)
from choicegraph.engine.consistency import enforce_consistency, sync_selections
from choicegraph.engine.normalizer import DecodeResult, decode_graph, normalize
from choicegraph.engine.selection import clear_selections, toggle_selection

__all__ = [
    "collect_end_nodes",
    "derive_active_path",
    "derive_path",
    "enforce_consistency",
    "sync_selections",
    "DecodeResult",
    "decode_graph",
    "normalize",
    "clear_selections",
    "toggle_selection",
]
