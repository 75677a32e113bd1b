import pytest
from fastapi.testclient import TestClient
from pulse.api import create_app

U1 = {"X-User-Id": "u1"}

@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as c:
        yield c

def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True

def test_requires_user_header(client):
    assert client.get("/v1/categories").status_code == 422

def test_create_and_list_categories(client):
    r = client.post("/v1/categories", json={"name": "Signups", "color": "#00FF7F", "emoji": "\U0001F389"}, headers=U1)
    assert r.status_code == 201
    assert r.json()["category"]["name"] == "signups"
    assert r.json()["category"]["color"] == 0x00FF7F

    cats = client.get("/v1/categories", headers=U1).json()["categories"]
    assert len(cats) == 1
    assert cats[0]["color_hex"] == "#00ff7f"
    assert cats[0]["event_count"] == 0
    assert cats[0]["unique_field_count"] == 0
    assert cats[0]["last_ping"] is None

    assert client.get("/v1/categories", headers={"X-User-Id": "u2"}).json()["categories"] == []

@pytest.mark.parametrize("body", [
    {"name": "bad name", "color": "#ffffff"},
    {"name": "ok", "color": "ffffff"},
    {"name": "ok", "color": "#fffffg"},
    {"name": "ok", "color": "#ffffff", "emoji": "abc"},
    {"name": "", "color": "#ffffff"},
])
def test_create_category_validation(client, body):
    assert client.post("/v1/categories", json=body, headers=U1).status_code == 422

def test_duplicate_category_conflicts(client):
    body = {"name": "bug", "color": "#ff6b6b"}
    assert client.post("/v1/categories", json=body, headers=U1).status_code == 201
    r = client.post("/v1/categories", json=body, headers=U1)
    assert r.status_code == 409
    assert r.json()["code"] == "CONFLICT"

def test_quickstart(client):
    r = client.post("/v1/categories/quickstart", headers=U1)
    assert r.json() == {"success": True, "count": 3}
    names = {c["name"] for c in client.get("/v1/categories", headers=U1).json()["categories"]}
    assert names == {"bug", "sale", "question"}

def test_poll_and_events_flow(client):
    client.post("/v1/categories/quickstart", headers=U1)
    assert client.get("/v1/categories/bug/poll", headers=U1).json() == {"has_events": False}

    for fields in ({"msg": "a"}, {"msg": "b", "stack": "x"}, {"msg": "c"}):
        assert client.post("/v1/categories/bug/events", json={"fields": fields}, headers=U1).status_code == 201

    assert client.get("/v1/categories/bug/poll", headers=U1).json() == {"has_events": True}

    r = client.get("/v1/categories/bug/events", params={"page": 2, "limit": 2, "time_range": "today"}, headers=U1)
    assert r.status_code == 200
    body = r.json()
    assert body["total_count"] == 3
    assert body["unique_field_count"] == 2
    assert [e["fields"] for e in body["events"]] == [{"msg": "a"}]

    bug = next(c for c in client.get("/v1/categories", headers=U1).json()["categories"] if c["name"] == "bug")
    assert bug["event_count"] == 3
    assert bug["unique_field_count"] == 2
    assert bug["last_ping"] is not None

def test_unknown_category_is_404(client):
    r = client.get("/v1/categories/nope/poll", headers=U1)
    assert r.status_code == 404
    assert r.json()["error"] == "Category nope not found"
    assert client.post("/v1/categories/nope/events", json={"fields": {}}, headers=U1).status_code == 404
    assert client.delete("/v1/categories/nope", headers=U1).status_code == 404

@pytest.mark.parametrize("params", [
    {"page": 0},
    {"limit": 51},
    {"limit": 0},
    {"time_range": "year"},
])
def test_event_query_validation(client, params):
    client.post("/v1/categories/quickstart", headers=U1)
    assert client.get("/v1/categories/bug/events", params=params, headers=U1).status_code == 422

def test_delete_category(client):
    client.post("/v1/categories/quickstart", headers=U1)
    client.post("/v1/categories/bug/events", json={"fields": {"msg": "a"}}, headers=U1)
    assert client.delete("/v1/categories/bug", headers=U1).json() == {"success": True}
    assert client.get("/v1/categories/bug/poll", headers=U1).status_code == 404

def test_big_integer_fields_keep_listing_working(client):
    client.post("/v1/categories/quickstart", headers=U1)
    r = client.post("/v1/categories/bug/events", json={"fields": {"n": 123456789012345678901234567890}}, headers=U1)
    assert r.status_code == 201

    r = client.get("/v1/categories", headers=U1)
    assert r.status_code == 200
    bug = next(c for c in r.json()["categories"] if c["name"] == "bug")
    assert (bug["event_count"], bug["unique_field_count"]) == (1, 1)

    r = client.get("/v1/categories/bug/events", params={"time_range": "today"}, headers=U1)
    assert r.status_code == 200
    assert r.json()["events"][0]["fields"] == {"n": 123456789012345678901234567890}
