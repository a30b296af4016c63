import pytest

from Models.Admin.User import User
from Models.BOQ.BillOfQuantities import BOQ
from Models.BOQ.Location import Assembly, District, Location, Survey

STRONG = "Str0ng!pass"


@pytest.fixture()
def district(db):
    row = District(name="Mumbai Suburban", code="MSD")
    db.add(row)
    db.flush()
    db.add_all([
        Assembly(assembly_no="168", name="Kurla", district_id=row.id),
        Assembly(assembly_no="169", name="Kalina", district_id=row.id),
    ])
    db.commit()
    return row.document_id


def _assembly_id(db, number):
    return db.query(Assembly).filter(Assembly.assembly_no == number).one().document_id


def _coordinator_body(username, **assignment):
    body = {"username": username, "email": f"{username}@cctv-rollout.in", "password": STRONG,
            "full_name": username.title(), "phone_number": "9800000000"}
    body.update(assignment)
    return body


def test_admin_creates_and_lists_districts(client, auth):
    admin = auth("admin")
    response = client.post("/districts", json={"data": {"name": "Thane", "code": "THN"}}, headers=admin)
    assert response.status_code == 201
    created = response.json()["data"]
    assert created["assemblies"] == []

    duplicate = client.post("/districts", json={"data": {"name": "thane"}}, headers=admin)
    assert duplicate.status_code == 409

    listing = client.get("/districts", params={"filters[name][$eq]": "Thane"}, headers=admin).json()
    assert [d["documentId"] for d in listing["data"]] == [created["documentId"]]
    assert client.get(f"/districts/{created['documentId']}", headers=admin).json()["data"]["code"] == "THN"


def test_only_admin_creates_districts(client, auth):
    response = client.post("/districts", json={"data": {"name": "Pune"}}, headers=auth("coordinator"))
    assert response.status_code == 403


def test_assembly_links_to_district(client, auth, district):
    response = client.post("/assemblies", json={"data": {
        "assembly_no": "170", "name": "Vandre East", "district": {"connect": [district]},
    }}, headers=auth("coordinator"))
    assert response.status_code == 201
    assert response.json()["data"]["district"]["documentId"] == district

    filtered = client.get("/assemblies", params={"filters[district][documentId][$eq]": district},
                          headers=auth("surveyor")).json()
    assert filtered["meta"]["pagination"]["total"] == 3


def test_coordinator_hierarchy(client, auth, district, db):
    admin = auth("admin")
    response = client.post("/coordinators", json=_coordinator_body("msd_lead", district=district), headers=admin)
    assert response.status_code == 201, response.text
    lead = response.json()
    assert [d["name"] for d in lead["districts"]] == ["Mumbai Suburban"]
    assert db.query(District).one().coordinator_id == lead["id"]

    again = client.post("/coordinators", json=_coordinator_body("msd_lead2", district=district), headers=admin)
    assert again.status_code == 409

    login = client.post("/login", data={"username": "msd_lead", "password": STRONG})
    lead_headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    kurla = _assembly_id(db, "168")
    response = client.post("/coordinators", json=_coordinator_body("kurla_ac", assembly=kurla), headers=lead_headers)
    assert response.status_code == 201, response.text
    assert [a["name"] for a in response.json()["assemblies"]] == ["168"]

    listing = client.get("/coordinators", headers=lead_headers).json()
    assert {c["username"] for c in listing["data"]} == {"msd_lead", "kurla_ac"}


def test_coordinator_cannot_appoint_outside_own_district(client, auth, district, db):
    other = District(name="Pune")
    db.add(other)
    db.flush()
    db.add(Assembly(assembly_no="210", district_id=other.id))
    db.commit()

    headers = auth("coordinator")
    response = client.post("/coordinators", json=_coordinator_body("pune_ac", assembly=_assembly_id(db, "210")),
                           headers=headers)
    assert response.status_code == 403

    response = client.post("/coordinators", json=_coordinator_body("lead", district=district), headers=headers)
    assert response.status_code == 403
    assert db.query(User).filter(User.username.in_(["pune_ac", "lead"])).count() == 0


def test_coordinator_assignment_must_match_district(client, auth, district, db):
    other = District(name="Nagpur")
    db.add(other)
    db.commit()
    response = client.post("/coordinators", json=_coordinator_body(
        "mixed", district=other.document_id, assembly=_assembly_id(db, "168"),
    ), headers=auth("admin"))
    assert response.status_code == 400


def test_dashboard_summary(client, auth, district, db, boq_payload):
    kurla = db.query(Assembly).filter(Assembly.assembly_no == "168").one()
    stray = Assembly(assembly_no="300")
    db.add(stray)
    db.flush()
    locations = [Location(ps_no=str(n), ps_name=f"School {n}", assembly_id=kurla.id) for n in range(3)]
    db.add_all(locations + [Location(ps_no="1", ps_name="Elsewhere", assembly_id=stray.id)])
    db.flush()
    db.add(Survey(location_id=locations[0].id))
    db.commit()

    coordinator = auth("coordinator")
    first = client.post("/boqs", json=boq_payload, headers=coordinator).json()["data"]
    client.post("/boqs", json=boq_payload, headers=coordinator)
    approved = db.query(BOQ).filter(BOQ.document_id == first["documentId"]).one()
    approved.state = "Approved"
    db.commit()

    technician = auth("technician")
    client.post("/installed-products", json={"data": {
        "boq": first["documentId"], "product_name": "Dome 4MP",
        "serial_number": "CAM-1", "installation_date": "2025-03-01T10:00:00",
    }}, headers=technician)

    summary = client.get("/dashboard/summary", params={"district": district}, headers=auth("admin")).json()
    assert summary["district"]["documentId"] == district
    assert (summary["assemblies"], summary["locations"], summary["surveys"]) == (2, 3, 1)
    assert summary["boqs"] == 2
    assert summary["boqs_by_state"] == {"Approved": 1, "Pending": 1}
    assert summary["installations"] == {
        "requested": 13, "installed": 1, "remaining": 12, "by_state": {"Installed": 1},
    }

    everywhere = client.get("/dashboard/summary", headers=technician).json()
    assert (everywhere["assemblies"], everywhere["locations"]) == (3, 4)


def test_dashboard_counts_only_own_boqs_for_coordinators(client, auth, boq_payload):
    client.post("/boqs", json=boq_payload, headers=auth("coordinator", "first_coordinator"))
    second = auth("coordinator", "second_coordinator")
    client.post("/boqs", json=boq_payload, headers=second)
    client.post("/boqs", json=boq_payload, headers=second)

    summary = client.get("/dashboard/summary", headers=second).json()
    assert summary["boqs"] == 2
