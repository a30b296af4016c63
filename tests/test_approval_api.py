import pytest

from Models.Admin.AuditLog import AuditLog
from Models.BOQ.BillOfQuantities import BOQItem


@pytest.fixture()
def actors(auth):
    return {
        "coordinator": auth("coordinator"),
        "purchase": auth("purchase"),
        "admin": auth("admin"),
        "technician": auth("technician"),
    }


@pytest.fixture()
def boq(client, actors, boq_payload):
    response = client.post("/boqs", json=boq_payload, headers=actors["coordinator"])
    return response.json()["data"]


def _move(client, headers, boq, state):
    return client.post(f"/boqs/{boq['documentId']}/transition", json={"state": state}, headers=headers)


def test_full_approval_path_freezes_prices(client, actors, boq, catalog, db):
    assert _move(client, actors["coordinator"], boq, "Pending Purchase").status_code == 200

    client.put(f"/cameras/{catalog['camera']}", json={"data": {"price": 550}}, headers=actors["purchase"])

    response = _move(client, actors["purchase"], boq, "Pending Approval")
    assert response.status_code == 200
    body = response.json()
    assert body["prices_committed"] is True
    assert body["total_cost"] == 3 * 550 + 10 * 20

    client.put(f"/cameras/{catalog['camera']}", json={"data": {"price": 9999}}, headers=actors["purchase"])

    assert _move(client, actors["admin"], boq, "Approved").status_code == 200
    fetched = client.get(f"/boqs/{boq['documentId']}", headers=actors["admin"]).json()["data"]
    assert fetched["state"] == "Approved"
    assert fetched["computed_total"] == 3 * 550 + 10 * 20
    assert fetched["approved_by"]["username"] == "admin_user"
    assert fetched["committed_at"] is not None
    assert {i["unit_price_at_commit"] for i in fetched["items"]} == {550, 20}


def test_transition_not_in_table_is_409(client, actors, boq):
    response = _move(client, actors["admin"], boq, "Approved")
    assert response.status_code == 409


def test_wrong_role_is_403(client, actors, boq):
    response = _move(client, actors["technician"], boq, "Pending Purchase")
    assert response.status_code == 403


def test_rejected_is_absorbing(client, actors, boq):
    assert _move(client, actors["purchase"], boq, "Rejected").status_code == 200
    for state in ("Pending", "Pending Purchase", "Approved"):
        assert _move(client, actors["admin"], boq, state).status_code == 409


def test_installed_requires_every_line_installed(client, actors, boq):
    _move(client, actors["coordinator"], boq, "Pending Purchase")
    _move(client, actors["purchase"], boq, "Pending Approval")
    _move(client, actors["admin"], boq, "Approved")

    response = _move(client, actors["technician"], boq, "Installed")
    assert response.status_code == 409


def test_available_transitions(client, actors, boq):
    response = client.get(f"/boqs/{boq['documentId']}/transitions", headers=actors["purchase"])
    assert response.json()["available"] == ["Rejected"]

    rules = client.get("/boq-transitions", headers=actors["purchase"]).json()
    assert len(rules) == 8


def test_transition_is_audited(client, actors, boq, db):
    _move(client, actors["coordinator"], boq, "Pending Purchase")
    entry = db.query(AuditLog).filter(AuditLog.action == "TRANSITION").one()
    assert entry.details == "Pending -> Pending Purchase"
    assert entry.resource_id == boq["documentId"]


def test_completed_sets_confirmed_by(client, actors, boq, db):
    _move(client, actors["coordinator"], boq, "Pending Purchase")
    _move(client, actors["purchase"], boq, "Pending Approval")
    _move(client, actors["admin"], boq, "Approved")

    for item in db.query(BOQItem).all():
        for n in range(item.qty):
            response = client.post("/installed-products", json={"data": {
                "boq": boq["documentId"], "boq_item": item.id,
                "serial_number": f"{item.name}-{n}", "installation_date": "2025-01-15T10:00:00",
            }}, headers=actors["technician"])
            assert response.status_code == 201, response.text

    assert _move(client, actors["technician"], boq, "Installed").status_code == 200
    assert _move(client, actors["admin"], boq, "Completed").status_code == 200
    fetched = client.get(f"/boqs/{boq['documentId']}", headers=actors["admin"]).json()["data"]
    assert fetched["confirmed_by"]["username"] == "admin_user"
    assert _move(client, actors["admin"], boq, "Approved").status_code == 409


def test_installed_counts_each_line_of_a_repeated_product(client, actors, boq_payload, catalog, db):
    boq_payload["data"]["camera_selection"] = [
        {"camera": {"connect": [catalog["camera"]]}, "count": 1},
        {"camera": {"connect": [catalog["camera"]]}, "count": 2},
    ]
    created = client.post("/boqs", json=boq_payload, headers=actors["coordinator"]).json()["data"]
    _move(client, actors["coordinator"], created, "Pending Purchase")
    _move(client, actors["purchase"], created, "Pending Approval")
    _move(client, actors["admin"], created, "Approved")

    cameras = db.query(BOQItem).filter(BOQItem.name == "Dome 4MP").order_by(BOQItem.id).all()
    cable = db.query(BOQItem).filter(BOQItem.name == "Cat6").one()
    bookings = [(cameras[1], 2), (cable, cable.qty)]
    for item, units in bookings:
        for n in range(units):
            response = client.post("/installed-products", json={"data": {
                "boq": created["documentId"], "boq_item": item.id,
                "serial_number": f"{item.id}-{n}", "installation_date": "2025-01-15T10:00:00",
            }}, headers=actors["technician"])
            assert response.status_code == 201, response.text

    assert _move(client, actors["technician"], created, "Installed").status_code == 409

    client.post("/installed-products", json={"data": {
        "boq": created["documentId"], "boq_item": cameras[0].id,
        "serial_number": "last-camera", "installation_date": "2025-01-16T10:00:00",
    }}, headers=actors["technician"])
    assert _move(client, actors["technician"], created, "Installed").status_code == 200


def test_rejection_does_not_freeze_prices(client, actors, boq, db):
    response = _move(client, actors["purchase"], boq, "Rejected")
    assert response.status_code == 200
    assert response.json()["prices_committed"] is False

    fetched = client.get(f"/boqs/{boq['documentId']}", headers=actors["admin"]).json()["data"]
    assert fetched["committed_at"] is None
    assert all(i["unit_price_at_commit"] is None for i in fetched["items"])
