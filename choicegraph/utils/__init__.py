"""Utility functions for choicegraph."""

from choicegraph.utils.identifiers import (
    generate_id,
    generate_unique_id,
    generate_graph_id,
    generate_node_id,
    generate_edge_id,
    generate_button_id,
    utc_timestamp,
)
from choicegraph.utils.values import (
    finite_or_none,
    is_finite_number,
    is_non_blank_str,
    normalize_hex_color,
)

__all__ = [
    "generate_id",
    "generate_unique_id",
    "generate_graph_id",
    "generate_node_id",
    "generate_edge_id",
    "generate_button_id",
    "utc_timestamp",
    "finite_or_none",
    "is_finite_number",
    "is_non_blank_str",
    "normalize_hex_color",
]
