import pytest
from fastapi.testclient import TestClient

from bustracker.app import create_app
from bustracker.config import Settings
from bustracker.seed import provision_admin


@pytest.fixture
def settings(tmp_path):
    return Settings(database_url=f"sqlite:///{tmp_path / 'test.db'}", jwt_secret="test-secret")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register through the public endpoint and return (user, auth headers)."""
    def _register(email, role="user", name="Test Person", password="secret123"):
        r = client.post("/api/auth/register",
                        json={"name": name, "email": email, "password": password, "role": role})
        assert r.status_code == 201, r.text
        body = r.json()
        return body["user"], _bearer(body["token"])
    return _register


@pytest.fixture
def admin(client, db):
    user = provision_admin(db, "Root Admin", "root@bus.com", "admin123")
    r = client.post("/api/auth/login", json={"email": "root@bus.com", "password": "admin123"})
    assert r.status_code == 200, r.text
    return user.id, _bearer(r.json()["token"])


@pytest.fixture
def admin_headers(admin):
    return admin[1]


@pytest.fixture
def driver(register):
    return register("rajesh@driver.com", role="driver", name="Rajesh Kumar")


@pytest.fixture
def driver_headers(driver):
    return driver[1]


@pytest.fixture
def other_driver_headers(register):
    return register("amit@driver.com", role="driver", name="Amit Sharma")[1]


@pytest.fixture
def rider_headers(register):
    return register("rider@mail.com", role="user", name="Rita Rider")[1]


@pytest.fixture
def bus_payload():
    def _payload(**overrides):
        payload = {
            "bus_number": "mh12ab1234",
            "bus_type": "AC",
            "source": "Mumbai",
            "destination": "Pune",
            "current_location": "Lonavala",
            "next_stop": "Talegaon",
            "capacity": 45,
            "driver_name": "Rajesh Kumar",
            "driver_phone": "9876543211",
            "distance": 100,
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def create_bus(client, bus_payload):
    def _create(headers, **overrides):
        r = client.post("/api/buses", json=bus_payload(**overrides), headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["bus"]
    return _create
