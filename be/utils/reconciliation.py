"""
Installation Reconciliation

Compares requested BOQ quantities against recorded installations. Every
installation row counts toward the BOQ line it was booked on, regardless of
its later state (Faulty / Replaced rows still consumed a unit of the quota).
Two lines for the same product are reconciled independently.

The functions are pure: the same rows always give the same counts, and
adding rows can only raise a count, so ``fully_installed`` never flips back
to False once reached.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List


@dataclass
class ItemReconciliation:
    item_id: int
    name: str
    group: str
    qty: int
    installed_count: int
    fully_installed: bool
    can_add_installation: bool

    @property
    def remaining(self) -> int:
        return max(self.qty - self.installed_count, 0)


def count_installations(installations: Iterable) -> Dict[int, int]:
    """Group-count installation rows by ``boq_item_id``."""
    return dict(Counter(row.boq_item_id for row in installations))


def is_fully_installed(installed_count: int, qty: int) -> bool:
    return installed_count >= qty


def reconcile(items: Iterable, installations: Iterable, state: str) -> List[ItemReconciliation]:
    counts = count_installations(installations)
    result = []
    for item in items:
        installed = counts.get(item.id, 0)
        full = is_fully_installed(installed, item.qty)
        result.append(ItemReconciliation(
            item_id=item.id,
            name=item.name,
            group=item.group,
            qty=item.qty,
            installed_count=installed,
            fully_installed=full,
            can_add_installation=state == "Approved" and not full,
        ))
    return result


def all_installed(reconciled: Iterable[ItemReconciliation]) -> bool:
    rows = list(reconciled)
    return bool(rows) and all(r.fully_installed for r in rows)
