"""Per-element compliance scoring.

Pure functions only: no I/O, no logging, deterministic for a given input.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from aeccheck.models import Compliance, RawProperty

# Size of the canonical required-parameter set; used when a category
# declares no required parameters so the denominator is never zero.
DEFAULT_REQUIRED_TOTAL = 10


def to_text(value: Any) -> str:
    """Render a raw property value as trimmed text ("" for missing values)."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return str(value).strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(part for part in (to_text(v) for v in value) if part)
    return str(value).strip()


def normalize_key(name: Any) -> str:
    return str(name or "").strip().lower()


def round_half_up(value: float) -> int:
    """Round non-negative values with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _filled_keys(properties: Iterable[RawProperty] | Mapping[str, Any]) -> set[str]:
    if isinstance(properties, Mapping):
        pairs = properties.items()
    else:
        pairs = ((prop.name, prop.value) for prop in properties)

    return {normalize_key(name) for name, value in pairs if to_text(value) != ""}


def score(
    raw_properties: Iterable[RawProperty] | Mapping[str, Any],
    required_keys: Iterable[str],
    fallback_total: int = DEFAULT_REQUIRED_TOTAL,
) -> Compliance:
    """Compute how many required keys carry a non-empty value.

    Args:
        raw_properties: Property entries, or a name -> value mapping
        required_keys: Parameter names that must be populated; matched
            case-insensitively after trimming
        fallback_total: Denominator used when ``required_keys`` is empty

    Returns:
        Compliance with ``pct`` an integer in [0, 100]
    """
    required = {normalize_key(key) for key in required_keys if normalize_key(key)}
    total = len(required) if required else max(1, fallback_total)

    filled = len(required & _filled_keys(raw_properties))
    pct = round_half_up(100 * filled / total)

    return Compliance(filled=filled, total=total, pct=max(0, min(100, pct)))
