"""Coercion helpers for untrusted document values."""

import math
import re
from typing import Any

_HEX6 = re.compile(r"^#[0-9a-f]{6}$")
_HEX3 = re.compile(r"^#[0-9a-f]{3}$")


def is_non_blank_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_finite_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def finite_or_none(value: Any) -> float | None:
    return value if is_finite_number(value) else None


def normalize_hex_color(value: Any) -> str | None:
    """Return ``#rrggbb`` in lowercase, or None when the value is not a hex color.

    Three-digit shorthand (``#abc``) is expanded.
    """
    if not isinstance(value, str):
        return None
    raw = value.strip().lower()
    if not raw:
        return None
    if _HEX6.match(raw):
        return raw
    if _HEX3.match(raw):
        return "#" + "".join(ch * 2 for ch in raw[1:])
    return None
