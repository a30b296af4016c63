"""
BOQ Pricing

Dual-mode valuation of BOQ lines:

- while a BOQ is still negotiable (Pending / Pending Purchase) every line is
  valued at the *current* catalog price, so catalog edits show up at once;
- once the BOQ has left those states the line keeps the price frozen at
  commit time (``unit_price_at_commit``), falling back to the price recorded
  when the line was created.

All functions are pure and take any objects exposing ``name``, ``group``,
``qty``, ``price`` and optionally ``unit_price_at_commit`` (ORM rows or
simple namespaces). Totals are recomputed on every call, never cached.
"""

from typing import Dict, Iterable, Tuple

from utils.product_categories import BY_CATEGORY

PENDING_STATES = frozenset({"Pending", "Pending Purchase"})

PriceIndex = Dict[Tuple[str, str], float]


def is_pending(state: str) -> bool:
    return state in PENDING_STATES


def build_price_index(products: Iterable) -> PriceIndex:
    """Index catalog products by (group label, name) for live lookups.

    ``products`` are Product rows; the group label comes from the category
    table so it matches what BOQ items record in ``group``.
    """
    index: PriceIndex = {}
    for product in products:
        category = BY_CATEGORY.get(product.category)
        group = category.label if category else product.category
        index[(group, product.name)] = product.price or 0
    return index


def current_catalog_price(index: PriceIndex, name: str, group: str) -> float:
    """Live price of a product; 0 when it is no longer in the catalog."""
    return index.get((group, name), 0) or 0


def frozen_price(item) -> float:
    committed = getattr(item, "unit_price_at_commit", None)
    if committed is not None:
        return committed
    return item.price or 0


def unit_price(item, state: str, index: PriceIndex) -> float:
    if is_pending(state):
        return current_catalog_price(index, item.name, item.group)
    return frozen_price(item)


def line_total(item, state: str, index: PriceIndex) -> float:
    return (item.qty or 0) * unit_price(item, state, index)


def boq_total(items: Iterable, state: str, index: PriceIndex) -> float:
    return sum(line_total(item, state, index) for item in items)


def snapshot_prices(items: Iterable, index: PriceIndex) -> int:
    """Freeze the current catalog price onto every line not yet frozen.

    Returns the number of lines written. Lines that already carry a
    ``unit_price_at_commit`` are left untouched so the freeze happens once.
    """
    written = 0
    for item in items:
        if item.unit_price_at_commit is None:
            item.unit_price_at_commit = current_catalog_price(index, item.name, item.group)
            written += 1
    return written
