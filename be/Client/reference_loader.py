"""
Reference-Data Loader

Fetches the flat reference collections (site hierarchy and product catalog)
the BOQ form needs. Each load is a single GET with the maximum page size; no
continuation is requested. A failed fetch is logged and yields an empty
list, so a dependent dropdown just renders empty.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from utils.product_categories import PRODUCT_CATEGORIES
from utils.query_filters import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


@dataclass
class ReferenceItem:
    id: int
    documentId: str
    name: str
    price: Optional[float] = None


def build_params(filters: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Query params for one collection load.

    ``filters`` maps a dotted path to a value, e.g.
    ``{"division.documentId": "abc"}`` -> ``filters[division][documentId][$eq]=abc``.
    """
    params = {"pagination[pageSize]": str(MAX_PAGE_SIZE)}
    for path, value in (filters or {}).items():
        key = "filters" + "".join(f"[{part}]" for part in path.split("."))
        params[f"{key}[$eq]"] = value
    return params


def normalize(rows) -> List[ReferenceItem]:
    items = []
    for row in rows or []:
        items.append(ReferenceItem(
            id=row["id"],
            documentId=row["documentId"],
            name=row.get("name") or "",
            price=row.get("price"),
        ))
    return items


class ReferenceDataLoader:
    """Loads reference collections through an ``httpx.Client``."""

    def __init__(self, client: httpx.Client, token: Optional[str] = None):
        self.client = client
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    def load(self, collection: str, filters: Optional[Dict[str, str]] = None) -> List[ReferenceItem]:
        try:
            response = self.client.get(f"/{collection}", params=build_params(filters), headers=self.headers)
            response.raise_for_status()
            return normalize(response.json().get("data"))
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(f"Failed to load '{collection}': {e}")
            return []

    def load_catalog(self) -> Dict[str, List[ReferenceItem]]:
        """All product collections, keyed by category key (``cameras``, ``nvrs``, ...)."""
        return {category.key: self.load(category.collection) for category in PRODUCT_CATEGORIES}

    def load_children(self, level: str, parent_document_id: Optional[str]) -> List[ReferenceItem]:
        """Options for one level of the site hierarchy, filtered by its parent."""
        collection, parent_field = HIERARCHY_SOURCES[level]
        if parent_field is None:
            return self.load(collection)
        if not parent_document_id:
            return []
        return self.load(collection, {f"{parent_field}.documentId": parent_document_id})


# level -> (collection, parent relation)
HIERARCHY_SOURCES = {
    "division": ("divisions", None),
    "depot": ("depots", "division"),
    "bus_station": ("bus-stations", "depot"),
    "bus_stand": ("bus-stands", "bus_station"),
}
