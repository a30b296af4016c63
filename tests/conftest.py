import os
import tempfile
from datetime import timedelta

_tmp = tempfile.mkdtemp(prefix="cctv_boq_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

import pytest
from fastapi.testclient import TestClient

import main
from APIs.Core import create_access_token, pwd_context
from Database.session import Base, Session, engine
from Models.Admin.User import Role, User
from Models.BOQ.Hierarchy import BusStand, BusStation, Depot, Division
from Models.BOQ.Product import Product
from utils.access_control import ROLES

PASSWORD = "Passw0rd!"


@pytest.fixture(scope="session")
def password_hash():
    return pwd_context.hash(PASSWORD)


@pytest.fixture(scope="session")
def client():
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = Session()
    session.add_all([Role(name=name) for name in ROLES])
    session.commit()
    session.close()
    yield


@pytest.fixture()
def db():
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db, password_hash):
    def _make(role: str, username: str = None) -> User:
        username = username or f"{role}_user"
        role_row = db.query(Role).filter(Role.name == role).one()
        user = User(username=username, email=f"{username}@cctv-rollout.in",
                    hashed_password=password_hash, role_id=role_row.id)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture()
def auth(make_user):
    """Return Authorization headers for a fresh user of ``role``."""
    def _auth(role: str, username: str = None) -> dict:
        user = make_user(role, username)
        token = create_access_token({"sub": user.username, "role": role}, timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}
    return _auth


@pytest.fixture()
def site(db):
    division = Division(name="Mumbai", code="MUM")
    db.add(division)
    db.flush()
    depot = Depot(name="Kurla", code="KURLA", division_id=division.id)
    db.add(depot)
    db.flush()
    station = BusStation(name="Kurla Station", division_id=division.id, depot_id=depot.id)
    db.add(station)
    db.flush()
    stand = BusStand(name="Kurla Stand 1", division_id=division.id, depot_id=depot.id,
                     bus_station_id=station.id)
    db.add(stand)
    db.commit()
    return {
        "division": division.document_id,
        "depot": depot.document_id,
        "bus_station": station.document_id,
        "bus_stand": stand.document_id,
    }


@pytest.fixture()
def catalog(db):
    camera = Product(category="camera", name="Dome 4MP", price=500)
    cable = Product(category="cable", name="Cat6", price=20)
    db.add_all([camera, cable])
    db.commit()
    return {"camera": camera.document_id, "cable": cable.document_id}


@pytest.fixture()
def boq_payload(site, catalog):
    return {
        "data": {
            "division": {"connect": [site["division"]]},
            "depot": {"connect": [site["depot"]]},
            "bus_station": {"connect": [site["bus_station"]]},
            "bus_stand": {"connect": [site["bus_stand"]]},
            "camera_selection": [{"camera": {"connect": [catalog["camera"]]}, "count": 3}],
            "cable_selection": [{"cable": {"connect": [catalog["cable"]]}, "count": 10}],
        }
    }
