"""
Bulk Import Deduplication

Pure accept/reject decisions for bulk uploads. A candidate row is skipped
when its key already exists in the database or appeared earlier in the same
batch. Keys are compared case-insensitively.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set


@dataclass
class DedupResult:
    accepted: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)


def location_key(assembly_no, ps_no) -> str:
    return f"{assembly_no or 'none'}_{ps_no}".lower()


def dedupe_rows(
    existing_keys: Iterable[str],
    rows: Iterable[Dict[str, Any]],
    key_fn: Callable[[Dict[str, Any]], str],
    reason: str = "Duplicate",
    validate: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None,
) -> DedupResult:
    """
    Split candidate rows into accepted and skipped.

    Args:
        existing_keys: keys already stored
        rows: candidate rows, in upload order
        key_fn: builds the dedup key of a row
        reason: reason recorded for duplicate rows
        validate: optional check returning a skip reason, or None to keep going

    Returns:
        DedupResult: skipped rows carry a ``reason`` entry
    """
    known: Set[str] = {k.lower() for k in existing_keys}
    seen: Set[str] = set()
    result = DedupResult()

    for row in rows:
        if validate is not None:
            problem = validate(row)
            if problem:
                result.skipped.append({**row, "reason": problem})
                continue

        key = key_fn(row).lower()
        if key in known or key in seen:
            result.skipped.append({**row, "reason": reason})
            continue

        seen.add(key)
        result.accepted.append(row)

    return result
