"""
Coordinate normalisation for imported station rows.

Accepts numbers, decimal strings with an optional hemisphere suffix
("19.2267 N") and degree/minute/second strings ("19°06'05.9\"N"). Southern
and western hemispheres become negative. Unrecognised text is returned
stripped so the import can still store it.
"""

import logging
import re
from typing import Optional, Union

logger = logging.getLogger(__name__)

DECIMAL_RE = re.compile(r'^([0-9.+-]+)\s*°?\s*([NSEW])?$', re.IGNORECASE)
DMS_RE = re.compile(r'^(\d+)°\s*(\d+)\'?\s*([\d.]+)"?\s*([NSEW])?$', re.IGNORECASE)


def _signed(value: float, direction: Optional[str]) -> float:
    if direction and direction.upper() in ("S", "W"):
        return -value
    return value


def _format(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def normalize_coordinate(value: Union[str, int, float, None]) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return _format(value)

    text = value.strip().replace(",", "")
    if not text:
        return None

    match = DECIMAL_RE.match(text)
    if match:
        try:
            return _format(_signed(float(match.group(1)), match.group(2)))
        except ValueError:
            pass

    match = DMS_RE.match(text)
    if match:
        degrees = float(match.group(1))
        minutes = float(match.group(2))
        seconds = float(match.group(3))
        return _format(_signed(degrees + minutes / 60 + seconds / 3600, match.group(4)))

    logger.warning(f"Unrecognized coordinate: {value!r}")
    return text
