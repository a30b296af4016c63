import pytest

from Models.BOQ.Location import Assembly, Location

CSV_HEADER = "LAC No.,PS No.,PS Name,PS Location (village),Latitude,Longitude\n"


@pytest.fixture()
def assembly(db):
    row = Assembly(assembly_no="12", name="Kurla")
    db.add(row)
    db.flush()
    db.add(Location(ps_no="1", ps_name="Municipal School", assembly_id=row.id))
    db.commit()
    return row.document_id


def _upload(client, headers, body):
    return client.post("/locations/import", files={"file": ("ps.csv", CSV_HEADER + body, "text/csv")},
                       headers=headers)


def test_location_import_dedup(client, auth, assembly, db):
    body = (
        "12,1,Municipal School,Kurla West,19.07,72.88\n"
        "12,2,Community Hall,Kurla East,19.06 N,72.89 E\n"
        "12,2,Community Hall,Kurla East,19.06,72.89\n"
        "99,1,Temple Hall,Somewhere,,\n"
        "12,,No Number,,,\n"
    )
    response = _upload(client, auth("surveyor"), body)
    assert response.status_code == 200
    result = response.json()

    assert result["uploaded"] == 1
    assert sorted(r["reason"] for r in result["skipped"]) == ["Assembly not found", "Duplicate PS_No", "Duplicate PS_No"]

    added = db.query(Location).filter(Location.ps_no == "2").one()
    assert added.ps_location == "Kurla East"
    assert added.latitude == "19.06"


def test_location_import_is_idempotent(client, auth, assembly, db):
    headers = auth("surveyor")
    body = "12,5,Library,Kurla,,\n"
    assert _upload(client, headers, body).json()["uploaded"] == 1
    assert _upload(client, headers, body).json()["uploaded"] == 0
    assert db.query(Location).count() == 2


def test_location_list_by_assembly(client, auth, assembly):
    headers = auth("surveyor")
    listed = client.get(f"/locations?filters[assembly][documentId][$eq]={assembly}", headers=headers).json()
    assert [loc["ps_name"] for loc in listed["data"]] == ["Municipal School"]


def test_duplicate_location_is_409(client, auth, assembly):
    payload = {"data": {"ps_no": "1", "ps_name": "Again", "assembly": assembly}}
    response = client.post("/locations", json=payload, headers=auth("surveyor"))
    assert response.status_code == 409


def test_survey_create_and_list(client, auth, assembly, db):
    headers = auth("surveyor")
    location = db.query(Location).one()

    response = client.post("/surveys", json={"data": {
        "location": {"connect": [location.document_id]},
        "latitude": "19.07 N", "longitude": "72.88 E",
        "power_available": True, "network_available": False,
        "airtel_signal": 4, "jio_signal": 2, "site_condition": "Good",
    }}, headers=headers)
    assert response.status_code == 201
    survey = response.json()["data"]
    assert survey["surveyed_by"]["username"] == "surveyor_user"
    assert survey["latitude"] == "19.07"

    listed = client.get(f"/surveys?filters[location][documentId][$eq]={location.document_id}",
                        headers=headers).json()
    assert listed["meta"]["pagination"]["total"] == 1


def test_survey_signal_range(client, auth, assembly, db):
    location = db.query(Location).one()
    response = client.post("/surveys", json={"data": {"location": location.document_id, "airtel_signal": 7}},
                           headers=auth("surveyor"))
    assert response.status_code == 422
