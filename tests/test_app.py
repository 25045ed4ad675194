from tests.support import API


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Welcome to TradeLink Backend server"}


def test_health_lists_collections(client, db):
    db["user"].insert_one({"email": "probe@example.com"})
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "ok"
    assert body["data"]["database"] == "ok"
    assert "user" in body["data"]["collections"]


def test_unknown_route(client):
    resp = client.get(f"{API}/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Not Found"}


def test_request_id_header(client):
    assert client.get("/", headers={"x-request-id": "abc123"}).headers["x-request-id"] == "abc123"
    assert len(client.get("/").headers["x-request-id"]) == 32
