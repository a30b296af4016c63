from datetime import timedelta

import pytest

from APIs.Core import create_access_token
from Models.Admin.AuditLog import AuditLog
from Models.BOQ.Location import Assembly, District


@pytest.fixture()
def network(db, make_user):
    """A district with two assemblies, each side with its own coordinator."""
    lead = make_user("coordinator", "district_lead")
    receiver = make_user("coordinator", "kurla_coordinator")
    district = District(name="Mumbai Suburban", coordinator_id=lead.id)
    db.add(district)
    db.flush()
    kurla = Assembly(assembly_no="168", district_id=district.id, coordinator_id=receiver.id)
    kalina = Assembly(assembly_no="169", district_id=district.id)
    elsewhere = Assembly(assembly_no="210")
    db.add_all([kurla, kalina, elsewhere])
    db.commit()
    return {
        "district": district.document_id,
        "kurla": kurla.document_id,
        "kalina": kalina.document_id,
        "elsewhere": elsewhere.document_id,
    }


@pytest.fixture()
def as_user():
    """Headers for a user created by the network fixture."""
    def _headers(username):
        token = create_access_token({"sub": username, "role": "coordinator"}, timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}
    return _headers


def _dispatch(client, headers, network, to="kurla", **extra):
    data = {"from_district": {"connect": [network["district"]]}, "to_assembly": network[to],
            "material_name": "Dome 4MP", "quantity": 12}
    data.update(extra)
    return client.post("/dispatches", json={"data": data}, headers=headers)


def test_dispatch_and_receive(client, network, as_user, db):
    response = _dispatch(client, as_user("district_lead"), network, remarks="First lot")
    assert response.status_code == 201, response.text
    dispatch = response.json()["data"]
    assert dispatch["state"] == "Pending"
    assert dispatch["to_assembly"]["name"] == "168"
    assert dispatch["dispatched_by"]["username"] == "district_lead"

    receipt = client.put(f"/dispatches/{dispatch['documentId']}/receive", json={"remarks": "All received"},
                         headers=as_user("kurla_coordinator"))
    assert receipt.status_code == 200
    received = receipt.json()["data"]
    assert received["state"] == "Delivered"
    assert received["received_by"]["username"] == "kurla_coordinator"
    assert received["received_on"] is not None

    again = client.put(f"/dispatches/{dispatch['documentId']}/receive", headers=as_user("kurla_coordinator"))
    assert again.status_code == 409

    actions = {row.action for row in db.query(AuditLog).all()}
    assert {"DISPATCH", "RECEIVE"} <= actions


def test_dispatch_stays_inside_the_district(client, network, as_user):
    assert _dispatch(client, as_user("district_lead"), network, to="elsewhere").status_code == 400


def test_only_the_district_coordinator_dispatches(client, network, as_user, auth):
    assert _dispatch(client, as_user("kurla_coordinator"), network).status_code == 403
    assert _dispatch(client, auth("technician"), network).status_code == 403
    assert _dispatch(client, auth("admin"), network).status_code == 201


def test_only_the_receiving_coordinator_confirms(client, network, as_user):
    dispatch = _dispatch(client, as_user("district_lead"), network, to="kalina").json()["data"]
    response = client.put(f"/dispatches/{dispatch['documentId']}/receive", headers=as_user("kurla_coordinator"))
    assert response.status_code == 403


def test_quantity_must_be_positive(client, network, as_user):
    assert _dispatch(client, as_user("district_lead"), network, quantity=0).status_code == 422


def test_list_dispatches_by_district(client, network, as_user, auth, db):
    lead = as_user("district_lead")
    _dispatch(client, lead, network)
    _dispatch(client, lead, network, to="kalina", material_name="Cat6", quantity=300)

    other = District(name="Pune")
    db.add(other)
    db.commit()
    surveyor = auth("surveyor")

    listing = client.get("/dispatches", params={"filters[from_district][documentId][$eq]": network["district"]},
                         headers=surveyor).json()
    assert listing["meta"]["pagination"]["total"] == 2
    assert {d["material_name"] for d in listing["data"]} == {"Dome 4MP", "Cat6"}

    empty = client.get("/dispatches", params={"filters[from_district][documentId][$eq]": other.document_id},
                       headers=surveyor).json()
    assert empty["data"] == []
