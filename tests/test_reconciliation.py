from types import SimpleNamespace

from utils.reconciliation import all_installed, count_installations, reconcile


def _item(item_id, name, qty):
    return SimpleNamespace(id=item_id, name=name, group="Cameras", qty=qty)


def _installs(item_id, name, n):
    return [SimpleNamespace(boq_item_id=item_id, product_name=name) for _ in range(n)]


def test_partial_installation():
    rows = reconcile([_item(1, "Dome 4MP", 5)], _installs(1, "Dome 4MP", 3), "Approved")

    assert rows[0].installed_count == 3
    assert rows[0].remaining == 2
    assert rows[0].fully_installed is False
    assert rows[0].can_add_installation is True


def test_fully_installed_blocks_more():
    rows = reconcile([_item(1, "Dome 4MP", 2)], _installs(1, "Dome 4MP", 2), "Approved")
    assert rows[0].fully_installed is True
    assert rows[0].can_add_installation is False


def test_only_approved_boqs_accept_installations():
    for state in ("Pending", "Pending Approval", "Installed", "Rejected"):
        rows = reconcile([_item(1, "Dome 4MP", 5)], [], state)
        assert rows[0].can_add_installation is False


def test_counts_are_idempotent():
    installs = _installs(1, "Dome 4MP", 2) + _installs(2, "Cat6", 1)
    assert count_installations(installs) == count_installations(installs) == {1: 2, 2: 1}


def test_fully_installed_is_monotone():
    items = [_item(1, "Dome 4MP", 2)]
    installs = []
    seen_full = False
    for _ in range(4):
        installs = installs + _installs(1, "Dome 4MP", 1)
        full = reconcile(items, installs, "Approved")[0].fully_installed
        assert not (seen_full and not full)
        seen_full = seen_full or full
    assert seen_full


def test_all_installed_needs_every_line():
    items = [_item(1, "Dome 4MP", 1), _item(2, "Cat6", 1)]
    assert not all_installed(reconcile(items, _installs(1, "Dome 4MP", 1), "Approved"))
    assert all_installed(reconcile(items, _installs(1, "Dome 4MP", 1) + _installs(2, "Cat6", 1), "Approved"))
    assert not all_installed(reconcile([], [], "Approved"))


def test_lines_for_the_same_product_are_reconciled_separately():
    items = [_item(1, "Dome 4MP", 1), _item(2, "Dome 4MP", 2)]
    rows = reconcile(items, _installs(2, "Dome 4MP", 2), "Approved")

    assert [(r.item_id, r.qty, r.installed_count) for r in rows] == [(1, 1, 0), (2, 2, 2)]
    assert rows[0].can_add_installation is True
    assert not all_installed(rows)
