import pytest

from Models.BOQ.BillOfQuantities import BOQ, BOQItem


@pytest.fixture()
def approved_boq(client, auth, boq_payload, db):
    created = client.post("/boqs", json=boq_payload, headers=auth("coordinator")).json()["data"]
    boq = db.query(BOQ).filter(BOQ.document_id == created["documentId"]).one()
    boq.state = "Approved"
    db.commit()
    return created


def _install(client, headers, boq, serial, **extra):
    data = {"boq": {"connect": [boq["documentId"]]}, "serial_number": serial,
            "installation_date": "2025-02-01T09:30:00"}
    data.update(extra)
    return client.post("/installed-products", json={"data": data}, headers=headers)


def test_quota_is_enforced(client, auth, approved_boq, db):
    headers = auth("technician")
    for n in range(3):
        assert _install(client, headers, approved_boq, f"CAM-{n}", product_name="Dome 4MP").status_code == 201

    response = _install(client, headers, approved_boq, "CAM-3", product_name="Dome 4MP")
    assert response.status_code == 409

    item = db.query(BOQItem).filter(BOQItem.name == "Dome 4MP").one()
    assert item.installed_count == 3


def test_reconciliation_after_partial_install(client, auth, approved_boq):
    headers = auth("technician")
    _install(client, headers, approved_boq, "CAM-1", product_name="Dome 4MP")

    report = client.get(f"/boqs/{approved_boq['documentId']}/reconciliation", headers=headers).json()
    camera = next(r for r in report["items"] if r["name"] == "Dome 4MP")
    assert camera["installed_count"] == 1
    assert camera["remaining"] == 2
    assert camera["can_add_installation"] is True


def test_installation_needs_approved_boq(client, auth, boq_payload):
    created = client.post("/boqs", json=boq_payload, headers=auth("coordinator")).json()["data"]
    response = _install(client, auth("technician"), created, "CAM-1", product_name="Dome 4MP")
    assert response.status_code == 409


def test_product_not_in_boq(client, auth, approved_boq):
    response = _install(client, auth("technician"), approved_boq, "X-1", product_name="Bullet 8MP")
    assert response.status_code == 404


def test_only_technicians_install(client, auth, approved_boq):
    response = _install(client, auth("purchase"), approved_boq, "CAM-1", product_name="Dome 4MP")
    assert response.status_code == 403


def test_mark_faulty_and_replaced(client, auth, approved_boq):
    headers = auth("technician")
    installed = _install(client, headers, approved_boq, "CAM-1", product_name="Dome 4MP").json()["data"]

    missing_remarks = client.put(f"/installed-products/{installed['documentId']}",
                                 json={"data": {"state": "Faulty", "remarks": ""}}, headers=headers)
    assert missing_remarks.status_code == 422

    faulty = client.put(f"/installed-products/{installed['documentId']}",
                        json={"data": {"state": "Faulty", "remarks": "No video"}}, headers=headers)
    assert faulty.json()["data"]["state"] == "Faulty"
    assert faulty.json()["data"]["replaced_at"] is None

    replaced = client.put(f"/installed-products/{installed['documentId']}",
                          json={"data": {"state": "Replaced", "remarks": "Swapped unit"}}, headers=headers)
    assert replaced.json()["data"]["replaced_at"] is not None

    report = client.get(f"/boqs/{approved_boq['documentId']}/reconciliation", headers=headers).json()
    camera = next(r for r in report["items"] if r["name"] == "Dome 4MP")
    assert camera["installed_count"] == 1


def test_list_filters_by_site(client, auth, approved_boq, site):
    headers = auth("technician")
    _install(client, headers, approved_boq, "CAB-1", product_name="Cat6")

    by_site = client.get(f"/installed-products?filters[site][documentId][$eq]={site['bus_stand']}",
                         headers=headers).json()
    assert [r["serial_number"] for r in by_site["data"]] == ["CAB-1"]
    assert by_site["data"][0]["bus_stand"]["documentId"] == site["bus_stand"]

    by_boq = client.get(f"/installed-products?filters[boq][documentId][$eq]=other", headers=headers).json()
    assert by_boq["data"] == []


@pytest.fixture()
def split_camera_boq(client, auth, boq_payload, catalog, db):
    boq_payload["data"]["camera_selection"] = [
        {"camera": {"connect": [catalog["camera"]]}, "count": 1},
        {"camera": {"connect": [catalog["camera"]]}, "count": 2},
    ]
    created = client.post("/boqs", json=boq_payload, headers=auth("coordinator")).json()["data"]
    boq = db.query(BOQ).filter(BOQ.document_id == created["documentId"]).one()
    boq.state = "Approved"
    db.commit()
    return created


def test_install_by_name_fills_every_line_of_the_product(client, auth, split_camera_boq, db):
    headers = auth("technician")
    codes = [
        _install(client, headers, split_camera_boq, f"CAM-{n}", product_name="Dome 4MP").status_code
        for n in range(4)
    ]
    assert codes == [201, 201, 201, 409]

    lines = db.query(BOQItem).filter(BOQItem.name == "Dome 4MP").order_by(BOQItem.id).all()
    assert [(line.qty, line.installed_count) for line in lines] == [(1, 1), (2, 2)]


def test_reconciliation_is_per_line(client, auth, split_camera_boq, db):
    headers = auth("technician")
    second = db.query(BOQItem).filter(BOQItem.name == "Dome 4MP").order_by(BOQItem.id).all()[1]
    for n in range(2):
        assert _install(client, headers, split_camera_boq, f"CAM-{n}", boq_item=second.id).status_code == 201

    report = client.get(f"/boqs/{split_camera_boq['documentId']}/reconciliation", headers=headers).json()
    cameras = [(r["qty"], r["installed_count"]) for r in report["items"] if r["name"] == "Dome 4MP"]
    assert cameras == [(1, 0), (2, 2)]
    assert report["all_installed"] is False
