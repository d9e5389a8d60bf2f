import pytest
from fastapi.testclient import TestClient

from usersvc.main import create_app
from usersvc.service import UserService
from usersvc.settings import Settings
from usersvc.storage import SqliteUserStorage


@pytest.fixture
def client():
    return TestClient(create_app(service=UserService()))


def test_post_get_delete_roundtrip(client):
    r = client.post("/users", json={"username": "alice", "email": "a@x.com"})
    assert r.status_code == 200, r.text
    assert r.json() == {}
    assert r.headers["content-type"] == "application/json; charset=utf-8"

    r = client.get("/users/alice")
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["username"] == "alice"
    assert user["email"] == "a@x.com"
    assert set(user) == {"first_name", "last_name", "username", "password", "email", "role"}

    r = client.delete("/users/alice")
    assert r.status_code == 200
    assert r.json() == {}

    r = client.get("/users/alice")
    assert r.status_code == 404
    assert r.json() == {"error": "not found"}


def test_duplicate_post_is_400(client):
    client.post("/users", json={"username": "alice"})
    r = client.post("/users", json={"username": "alice", "first_name": "Other"})
    assert r.status_code == 400
    assert r.json() == {"error": "already exists"}


def test_put_upserts_and_rejects_mismatched_ids(client):
    r = client.put("/users/bob", json={"username": "bob", "role": "admin"})
    assert r.status_code == 200
    assert client.get("/users/bob").json()["user"]["role"] == "admin"

    r = client.put("/users/bob", json={"username": "robert"})
    assert r.status_code == 400
    assert r.json() == {"error": "inconsistent IDs"}
    assert client.get("/users/bob").json()["user"]["role"] == "admin"


def test_patch_merges_and_maps_errors(client):
    r = client.patch("/users/carol", json={"first_name": "C"})
    assert r.status_code == 404

    client.post("/users", json={"username": "carol", "first_name": "Carol", "email": "c@x.com"})
    r = client.patch("/users/carol", json={"last_name": "Smith", "role": "ops"})
    assert r.status_code == 200
    assert r.json() == {}

    user = client.get("/users/carol").json()["user"]
    assert (user["first_name"], user["last_name"], user["email"], user["role"]) == ("Carol", "Smith", "c@x.com", "ops")

    r = client.patch("/users/carol", json={"username": "dave"})
    assert r.status_code == 400
    assert r.json() == {"error": "inconsistent IDs"}


def test_delete_absent_is_404(client):
    r = client.delete("/users/ghost")
    assert r.status_code == 404
    assert r.json() == {"error": "not found"}


def test_malformed_body_is_500_with_error_body(client):
    r = client.post("/users", content=b"not json", headers={"content-type": "application/json"})
    assert r.status_code == 500
    assert "error" in r.json()


def test_unexpected_service_failure_is_500(client):
    class BrokenService(UserService):
        def get_user(self, username: str):
            raise RuntimeError("disk on fire")

    c = TestClient(create_app(service=BrokenService()))
    r = c.get("/users/alice")
    assert r.status_code == 500
    assert r.json() == {"error": "disk on fire"}


def test_unknown_method_is_rejected_by_router(client):
    r = client.post("/users/alice", json={})
    assert r.status_code == 405


def test_sqlite_backed_app(tmp_path):
    storage = SqliteUserStorage(str(tmp_path / "users.db"))
    try:
        c = TestClient(create_app(service=UserService(storage)))
        assert c.post("/users", json={"username": "erin", "email": "e@x.com"}).status_code == 200
        assert c.get("/users/erin").json()["user"]["email"] == "e@x.com"
        assert c.put("/users/erin", json={"username": "erin"}).status_code == 200
        assert c.get("/users/erin").json()["user"]["email"] == ""
    finally:
        storage.close()


def test_create_app_builds_service_from_settings(tmp_path):
    settings = Settings(USERS_STORE="sqlite", DATABASE_URL=str(tmp_path / "app.db"))
    c = TestClient(create_app(settings=settings))
    assert c.post("/users", json={"username": "frank"}).status_code == 200
    assert (tmp_path / "app.db").exists()


def test_healthz_reports_store_the_app_was_built_with(tmp_path, monkeypatch):
    monkeypatch.setenv("USERS_STORE", "memory")
    settings = Settings(USERS_STORE="sqlite", DATABASE_URL=str(tmp_path / "app.db"))
    c = TestClient(create_app(settings=settings))

    r = c.get("/healthz")
    assert r.status_code == 200
    assert r.json()["store"] == "sqlite"


def test_username_with_slash_is_reachable(client):
    assert client.post("/users", json={"username": "ops/alice", "role": "ops"}).status_code == 200

    r = client.get("/users/ops%2Falice")
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "ops/alice"

    r = client.patch("/users/ops%2Falice", json={"email": "a@x.com"})
    assert r.status_code == 200
    assert client.delete("/users/ops%2Falice").status_code == 200
    assert client.get("/users/ops%2Falice").status_code == 404


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    data = r.json()
    assert data["ok"] is True
    assert data["service"] == "usersvc"
