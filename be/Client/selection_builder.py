"""
BOQ form state: product selection rows and the cascading site selection.

SelectionBuilder keeps, per product category, an ordered list of rows
``{<refKey>: documentId or "", "count": ...}``. Counts are stored as entered
and only validated when the rows are serialized.

CascadingSelection keeps the division -> depot -> bus station -> bus stand
choice. Picking a level clears every level below it together with its
option list. Option fetches are tagged with a request token; a response
carrying anything but the newest token for its level is dropped, so a slow
response can never overwrite a newer choice.
"""

import copy
import logging
from itertools import count as counter
from typing import Any, Dict, List, Optional

from utils.product_categories import PRODUCT_CATEGORIES, ProductCategory, get_category
from utils.selection import SelectionError, coerce_count

logger = logging.getLogger(__name__)

LEVELS = ["division", "depot", "bus_station", "bus_stand"]


class SelectionBuilder:
    def __init__(self, blank_rows: bool = True):
        self._rows: Dict[str, List[Dict[str, Any]]] = {c.key: [] for c in PRODUCT_CATEGORIES}
        if blank_rows:
            for category in PRODUCT_CATEGORIES:
                self.add_row(category.key)

    @staticmethod
    def _category(key: str) -> ProductCategory:
        category = get_category(key)
        if category is None:
            raise SelectionError(f"Unknown product category '{key}'")
        return category

    def _category_rows(self, key: str) -> List[Dict[str, Any]]:
        return self._rows[self._category(key).key]

    def add_row(self, category: str) -> int:
        """Append a blank row; returns its index."""
        ref_key = self._category(category).ref_key
        rows = self._category_rows(category)
        rows.append({ref_key: "", "count": 1})
        return len(rows) - 1

    def update_row(self, category: str, index: int, field: str, value: Any) -> None:
        rows = self._category_rows(category)
        if not 0 <= index < len(rows):
            raise IndexError(f"No row {index} in '{category}'")
        rows[index][field] = value

    def remove_row(self, category: str, index: int) -> None:
        rows = self._category_rows(category)
        if not 0 <= index < len(rows):
            raise IndexError(f"No row {index} in '{category}'")
        del rows[index]

    def rows(self, category: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._category_rows(category))

    def reset(self) -> None:
        for category in PRODUCT_CATEGORIES:
            self._rows[category.key] = []
            self.add_row(category.key)

    def to_selections(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Serialize non-empty rows as ``{<selection_key>: [{<refKey>: {"connect": [id]}, "count": n}]}``.

        Raises:
            SelectionError: for a chosen row whose count is not a positive integer
        """
        selections = {}
        for category in PRODUCT_CATEGORIES:
            serialized = []
            for index, row in enumerate(self._rows[category.key]):
                document_id = row.get(category.ref_key)
                if not document_id:
                    continue
                try:
                    quantity = coerce_count(row.get("count"))
                except SelectionError as e:
                    raise SelectionError(f"{category.label} row {index + 1}: {e}")
                serialized.append({category.ref_key: {"connect": [document_id]}, "count": quantity})
            if serialized:
                selections[category.selection_key] = serialized
        return selections


class CascadingSelection:
    """Site hierarchy choice with descendant reset and stale-response discard."""

    def __init__(self):
        self.selected: Dict[str, Optional[str]] = {level: None for level in LEVELS}
        self.options: Dict[str, list] = {level: [] for level in LEVELS}
        self._latest_token: Dict[str, int] = {level: 0 for level in LEVELS}
        self._tokens = counter(1)

    @staticmethod
    def _position(level: str) -> int:
        if level not in LEVELS:
            raise SelectionError(f"Unknown level '{level}'")
        return LEVELS.index(level)

    def parent_of(self, level: str) -> Optional[str]:
        position = self._position(level)
        return LEVELS[position - 1] if position else None

    def select(self, level: str, document_id: Optional[str]) -> None:
        """Choose ``document_id`` at ``level`` and clear every level below it."""
        parent = self.parent_of(level)
        if document_id and parent and not self.selected[parent]:
            raise SelectionError(f"Select a {parent.replace('_', ' ')} before a {level.replace('_', ' ')}")

        self.selected[level] = document_id or None
        for child in LEVELS[self._position(level) + 1:]:
            self.selected[child] = None
            self.options[child] = []
            # any fetch still in flight for a cleared level is now stale
            self._latest_token[child] = next(self._tokens)

    def begin_fetch(self, level: str) -> int:
        """Register an option fetch for ``level``; returns its request token."""
        self._position(level)
        token = next(self._tokens)
        self._latest_token[level] = token
        return token

    def apply_options(self, level: str, token: int, options: list) -> bool:
        """Store fetched options unless a newer fetch or selection superseded them."""
        self._position(level)
        if token != self._latest_token[level]:
            logger.debug(f"Discarding stale '{level}' options (token {token})")
            return False
        self.options[level] = list(options)
        return True

    def as_relations(self) -> Dict[str, Optional[Dict[str, List[str]]]]:
        return {
            level: {"connect": [document_id]} if document_id else None
            for level, document_id in self.selected.items()
        }
