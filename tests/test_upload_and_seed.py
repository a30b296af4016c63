from APIs.Core import verify_password
from Models.Admin.User import Role, User
from SeedAdmin import seed_admin


def test_upload_images(client, auth):
    headers = auth("technician")
    response = client.post("/upload", files=[
        ("files", ("front.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")),
        ("files", ("side.png", b"\x89PNG fake", "image/png")),
    ], headers=headers)
    assert response.status_code == 201
    stored = response.json()
    assert [f["name"] for f in stored] == ["front.jpg", "side.png"]
    assert stored[0]["url"].startswith("/uploads/")


def test_upload_rejects_unknown_types(client, auth):
    response = client.post("/upload", files=[("files", ("run.exe", b"MZ", "application/octet-stream"))],
                           headers=auth("technician"))
    assert response.status_code == 400


def test_seed_admin_is_idempotent(db):
    assert seed_admin(password="Adm1n!pass") is True
    assert seed_admin(password="Adm1n!pass") is False

    admin = db.query(User).filter(User.username == "admin").one()
    assert admin.role.name == "admin"
    assert verify_password("Adm1n!pass", admin.hashed_password)
    assert db.query(Role).count() == 5
