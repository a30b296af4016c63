"""
Selection row validation shared by the BOQ API and the form-state client.

Counts must be positive integers. Anything else (blank, non-numeric, NaN,
fractional, zero or negative) is rejected rather than silently coerced.
"""

import math
from typing import Any


class SelectionError(ValueError):
    """Raised for an invalid selection row or cascading selection."""


def coerce_count(value: Any) -> int:
    if isinstance(value, bool):
        raise SelectionError(f"Invalid count {value!r}")

    if isinstance(value, int):
        count = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise SelectionError(f"Invalid count {value!r}")
        count = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            count = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise SelectionError(f"Invalid count {value!r}")
            if not math.isfinite(number) or not number.is_integer():
                raise SelectionError(f"Invalid count {value!r}")
            count = int(number)
    else:
        raise SelectionError(f"Invalid count {value!r}")

    if count <= 0:
        raise SelectionError(f"Count must be a positive integer, got {value!r}")
    return count
