from __future__ import annotations

from fastapi.testclient import TestClient

from colorpoll.config import SESSION_COOKIE
from colorpoll.main import create_app
from colorpoll.models import StoreResult
from colorpoll.store import InMemoryVoteStore


class DownStore(InMemoryVoteStore):
    down = False

    async def list(self):
        if self.down:
            return StoreResult(success=False, data=[])
        return await super().list()

    async def create(self, record):
        if self.down:
            return StoreResult(success=False)
        return await super().create(record)


def _client(store=None) -> TestClient:
    local = store if store is not None else InMemoryVoteStore()
    return TestClient(create_app(store=local, local_store=local))


def _by_name(body):
    return {o["name"]: o for o in body["options"]}


def test_options_in_palette_order():
    client = _client()
    resp = client.get("/options")
    assert resp.status_code == 200
    names = [o["name"] for o in resp.json()]
    assert names == ["Red", "Blue", "Green", "Purple", "Orange", "Pink", "Yellow", "Teal"]
    assert resp.json()[0]["color_value"] == "#ef4444"


def test_fresh_results_issue_session_cookie():
    client = _client()
    resp = client.get("/results")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_votes"] == 0
    assert body["leader"] is None
    assert body["has_voted"] is False
    assert len(body["options"]) == 8
    assert all(o["count"] == 0 and o["percentage"] == 0 for o in body["options"])
    assert client.cookies.get(SESSION_COOKIE) == body["session_id"]


def test_vote_then_second_vote_conflicts():
    client = _client()
    sid = client.get("/results").json()["session_id"]

    resp = client.post("/vote", json={"option": "Red"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["session_id"] == sid
    assert body["has_voted"] is True
    assert body["total_votes"] == 1
    assert body["leader"] == {"name": "Red", "count": 1}
    assert _by_name(body)["Red"]["percentage"] == 100

    resp = client.post("/vote", json={"option": "Blue"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_voted"
    assert resp.json()["retryable"] is False
    assert client.get("/results").json()["total_votes"] == 1


def test_unknown_option_is_422():
    client = _client()
    resp = client.post("/vote", json={"option": "Magenta"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "unknown_option"

    resp = client.post("/vote", json={})
    assert resp.status_code == 422


def test_store_down_is_503_and_retry_allowed():
    store = DownStore()
    client = _client(store)
    client.get("/results")

    store.down = True
    resp = client.post("/vote", json={"option": "Green"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "store_unavailable"
    assert resp.json()["retryable"] is True
    assert client.get("/results").status_code == 503

    store.down = False
    resp = client.post("/vote", json={"option": "Green"})
    assert resp.status_code == 200
    assert _by_name(resp.json())["Green"]["count"] == 1


def test_restart_lets_the_participant_vote_again():
    client = _client()
    client.post("/vote", json={"option": "Red"})
    old_sid = client.cookies.get(SESSION_COOKIE)

    resp = client.post("/session/restart")
    assert resp.status_code == 200
    assert resp.json()["has_voted"] is False
    assert resp.json()["total_votes"] == 1
    assert client.cookies.get(SESSION_COOKIE) != old_sid

    resp = client.post("/vote", json={"option": "Blue"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_votes"] == 2
    # tie: Red is earlier in the palette
    assert body["leader"] == {"name": "Red", "count": 1}
    assert _by_name(body)["Red"]["percentage"] == 50


def test_sessions_are_isolated_between_clients():
    local = InMemoryVoteStore()
    app = create_app(store=local, local_store=local)
    a, b = TestClient(app), TestClient(app)

    assert a.post("/vote", json={"option": "Teal"}).status_code == 200
    resp = b.post("/vote", json={"option": "Teal"})
    assert resp.status_code == 200
    assert resp.json()["total_votes"] == 2
    assert a.post("/vote", json={"option": "Teal"}).status_code == 409


def test_internal_votes_endpoints_use_wire_format():
    client = _client()
    resp = client.post("/internal/votes", json={"color": "Purple", "timestamp": "2024-05-01T12:00:00Z"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    listed = client.get("/internal/votes").json()
    assert listed["success"] is True
    assert listed["data"][0]["color"] == "Purple"
    assert "timestamp" in listed["data"][0]


def test_status_reports_memory_store():
    client = _client()
    client.get("/results")
    body = client.get("/status").json()
    assert body["store"]["kind"] == "memory"
    assert body["store"]["reachable"] is True
    assert body["store"]["records"] == 0
    assert body["sessions"] == 1


def test_app_starts_with_lifespan():
    local = InMemoryVoteStore()
    with TestClient(create_app(store=local, local_store=local)) as client:
        assert client.get("/").json()["options"] == 8


def test_cookieless_requests_keep_session_map_bounded():
    local = InMemoryVoteStore()
    app = create_app(store=local, local_store=local, max_sessions=5)
    for _ in range(50):
        assert TestClient(app).get("/results").status_code == 200
    assert len(app.state.sessions) == 5


def test_error_response_still_issues_session_cookie():
    store = DownStore()
    store.down = True
    local = InMemoryVoteStore()
    app = create_app(store=store, local_store=local)
    client = TestClient(app)

    resp = client.post("/vote", json={"option": "Red"})
    assert resp.status_code == 503
    assert SESSION_COOKIE in resp.headers.get("set-cookie", "")
    sid = client.cookies.get(SESSION_COOKIE)
    assert sid

    resp = client.post("/vote", json={"option": "Magenta"})
    assert resp.status_code == 422
    assert "set-cookie" not in resp.headers

    store.down = False
    resp = client.post("/vote", json={"option": "Red"})
    assert resp.status_code == 200
    assert resp.json()["session_id"] == sid
    assert len(app.state.sessions) == 1


def test_unknown_option_on_first_request_issues_cookie():
    client = _client()
    resp = client.post("/vote", json={"option": "Magenta"})
    assert resp.status_code == 422
    assert client.cookies.get(SESSION_COOKIE)
