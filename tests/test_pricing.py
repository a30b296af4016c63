from types import SimpleNamespace

from utils.pricing import (
    boq_total,
    build_price_index,
    current_catalog_price,
    line_total,
    snapshot_prices,
    unit_price,
)


def _item(name, group, qty, price, committed=None):
    return SimpleNamespace(name=name, group=group, qty=qty, price=price, unit_price_at_commit=committed)


def _products(**prices):
    category_names = {"Dome 4MP": "camera", "Cat6": "cable"}
    return [SimpleNamespace(category=category_names[name], name=name, price=price)
            for name, price in prices.items()]


def test_approved_boq_uses_stored_prices():
    items = [_item("Dome 4MP", "Cameras", 3, 500), _item("Cat6", "Cables", 10, 20)]
    index = build_price_index(_products(**{"Dome 4MP": 999, "Cat6": 999}))

    assert boq_total(items, "Approved", index) == 1700


def test_pending_boq_follows_catalog():
    items = [_item("Dome 4MP", "Cameras", 3, 500)]
    index = build_price_index(_products(**{"Dome 4MP": 650}))

    assert unit_price(items[0], "Pending", index) == 650
    assert line_total(items[0], "Pending Purchase", index) == 1950


def test_missing_catalog_entry_prices_at_zero():
    index = build_price_index([])
    assert current_catalog_price(index, "Gone", "Cameras") == 0
    assert unit_price(_item("Gone", "Cameras", 2, 300), "Pending", index) == 0


def test_committed_price_survives_catalog_changes():
    item = _item("Dome 4MP", "Cameras", 2, 500)
    snapshot_prices([item], build_price_index(_products(**{"Dome 4MP": 550})))

    later = build_price_index(_products(**{"Dome 4MP": 10_000}))
    for state in ("Pending Approval", "Approved", "Installed", "Completed", "Rejected"):
        assert unit_price(item, state, later) == 550


def test_snapshot_writes_once():
    item = _item("Dome 4MP", "Cameras", 1, 500)
    assert snapshot_prices([item], build_price_index(_products(**{"Dome 4MP": 510}))) == 1
    assert snapshot_prices([item], build_price_index(_products(**{"Dome 4MP": 900}))) == 0
    assert item.unit_price_at_commit == 510


def test_frozen_price_falls_back_to_row_price():
    item = _item("Dome 4MP", "Cameras", 4, 480)
    assert unit_price(item, "Approved", build_price_index([])) == 480
