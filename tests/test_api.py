"""HTTP tests for the FastAPI app built by earth_defense.main.create_app."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from earth_defense.config.settings import Settings
from earth_defense.main import create_app
from earth_defense.models.entities import NeoRecord
from earth_defense.models.errors import NeoSourceError


class FakeNeoClient:
    def __init__(self, records=None, error: bool = False):
        self.records = records or []
        self.error = error

    async def get_near_earth_objects(self, days: int = 7):
        if self.error:
            raise NeoSourceError("NEO feed unavailable")
        return list(self.records)


BIG_ROCK = NeoRecord(
    id="2001",
    name="(2001 BR)",
    diameter=1500,
    velocity=25,
    missDistance=500_000,
    isHazardous=True,
    approachDate="2025-01-01",
    orbitingBody="Earth",
)


@pytest.fixture()
def neo_client():
    return FakeNeoClient([BIG_ROCK])


@pytest.fixture()
def app(repository, clock, always_hit, neo_client):
    return create_app(
        settings=Settings(),
        repository=repository,
        neo_client=neo_client,
        clock=clock,
        rng=always_hit,
    )


@pytest.fixture()
def client(app):
    return TestClient(app)


def start(client, level_id=1):
    response = client.post(f"/api/levels/{level_id}/start")
    assert response.status_code == 200
    return response.json()


def act(client, session_id, action_type, target=None):
    action = {"type": action_type}
    if target:
        action["targetId"] = target
    return client.post("/api/levels/session/action", json={"sessionId": session_id, "action": action})


# ---------------------------------------------------------------------------
# Level catalog
# ---------------------------------------------------------------------------

class TestLevelCatalogRoutes:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "Earth Defense Command Server Running"}

    def test_list_hides_waves(self, client):
        levels = client.get("/api/levels").json()
        assert len(levels) == 10
        assert levels[0]["name"] == "First Contact"
        assert all("waves" not in level and "objectives" not in level for level in levels)

    def test_list_served_without_trailing_slash(self, client):
        response = client.get("/api/levels", follow_redirects=False)
        assert response.status_code == 200

    def test_level_detail(self, client):
        level = client.get("/api/levels/1").json()
        assert level["id"] == 1
        assert len(level["waves"]) == 3

    def test_unknown_level(self, client):
        response = client.get("/api/levels/99")
        assert response.status_code == 404
        assert response.json() == {"error": "Level 99 not found"}

    def test_non_numeric_level(self, client):
        assert client.post("/api/levels/abc/start").status_code == 404


# ---------------------------------------------------------------------------
# Level sessions
# ---------------------------------------------------------------------------

class TestLevelSessionRoutes:
    def test_start(self, client):
        body = start(client)
        assert body["sessionId"].startswith("level-1-")
        state = body["levelState"]
        assert state["waveTimer"] == 10
        assert state["threats"] == []
        assert "waves" not in state

    def test_state_requires_session(self, client):
        response = client.get("/api/levels/session/state")
        assert response.status_code == 400
        assert response.json() == {"error": "Session ID required"}

    def test_unknown_session(self, client):
        response = client.get("/api/levels/session/state", params={"sessionId": "nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "Session not found"}

    def test_first_wave_arrives(self, client, clock):
        session_id = start(client)["sessionId"]
        clock.advance(10)
        state = client.get("/api/levels/session/state", params={"sessionId": session_id}).json()
        assert len(state["threats"]) == 1
        assert state["threats"][0]["severity"] == "low"

    def test_unknown_action_type(self, client):
        session_id = start(client)["sessionId"]
        response = act(client, session_id, "warp")
        assert response.status_code == 400
        assert response.json() == {"error": "Unknown action type: warp"}

    def test_targeted_action_needs_target(self, client):
        session_id = start(client)["sessionId"]
        response = act(client, session_id, "deflect_asteroid")
        assert response.status_code == 400

    def test_refused_action_is_not_an_http_error(self, client):
        session_id = start(client)["sessionId"]
        response = act(client, session_id, "deflect_asteroid", "ghost")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Threat not found"
        assert body["levelState"]["availableProbes"] == 3

    def test_malformed_body(self, client):
        response = client.post("/api/levels/session/action", json={"sessionId": "x", "action": "deflect"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_burnup_too_large(self, client, clock):
        session_id = start(client, 9)["sessionId"]
        clock.advance(10)
        response = client.post(
            "/api/levels/session/burnup",
            json={"sessionId": session_id, "asteroidId": "wave-1-asteroid-2"},
        )
        assert response.status_code == 400
        assert "too large" in response.json()["error"]

    def test_burnup(self, client, clock):
        session_id = start(client, 9)["sessionId"]
        clock.advance(10)
        response = client.post(
            "/api/levels/session/burnup",
            json={"sessionId": session_id, "asteroidId": "wave-1-asteroid-0"},
        )
        assert response.status_code == 200
        assert response.json()["levelState"]["levelPerformance"]["asteroidsBurnedUp"] == 1


# ---------------------------------------------------------------------------
# Completion and progression
# ---------------------------------------------------------------------------

class TestCompletionRoutes:
    def play_first_contact(self, client, clock):
        session_id = start(client)["sessionId"]
        for wave, wait in ((1, 10), (2, 30), (3, 30)):
            clock.advance(wait)
            body = act(client, session_id, "deflect_asteroid", f"wave-{wave}-asteroid-0").json()
            assert body["success"]
        return session_id

    def test_complete_and_progress(self, client, clock):
        session_id = self.play_first_contact(client, clock)
        results = client.post("/api/levels/session/complete", json={"sessionId": session_id}).json()
        assert results["victory"] is True
        assert results["stars"] == 3
        assert results["rewards"]["gems"] == 75

        response = client.post(
            "/api/levels/progression/update",
            json={"playerProgression": None, "levelResults": results},
        )
        assert response.status_code == 200
        progression = response.json()
        assert progression["gems"] == 75
        assert progression["unlockedLevels"] == [1, 2]
        assert progression["levelStars"] == {"1": 3}

        again = client.post(
            "/api/levels/progression/update",
            json={"playerProgression": progression, "levelResults": results},
        ).json()
        assert again["gems"] == 75
        assert again["totalStars"] == 3

    def test_session_removed_after_completion(self, client):
        session_id = start(client)["sessionId"]
        client.post("/api/levels/session/complete", json={"sessionId": session_id})
        response = client.get("/api/levels/session/state", params={"sessionId": session_id})
        assert response.status_code == 404

    def test_progression_requires_results(self, client):
        response = client.post("/api/levels/progression/update", json={"playerProgression": {}})
        assert response.status_code == 400
        assert response.json() == {"error": "Level results required"}

    def test_progression_rejects_garbage(self, client):
        response = client.post(
            "/api/levels/progression/update",
            json={"levelResults": {"stars": 3}},
        )
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Endless mode
# ---------------------------------------------------------------------------

class TestGameRoutes:
    def test_config(self, client):
        config = client.get("/api/game/config").json()
        assert config["satelliteCost"] == 150_000
        assert config["probeCost"] == 200_000

    def test_state(self, client):
        body = client.get("/api/game/state").json()
        assert body["success"] is True
        assert body["gameState"]["day"] == 1

    def test_events_from_feed(self, client):
        body = client.post("/api/game/events").json()
        assert body["gameState"]["threats"][0]["id"] == "neo-2001"
        assert body["gameState"]["threats"][0]["severity"] == "critical"
        assert body["events"][0]["threatId"] == "neo-2001"

    def test_action(self, client):
        body = client.post("/api/game/action", json={"action": {"type": "research"}}).json()
        assert body["result"]["success"] is True
        assert body["gameState"]["researchCompleted"] == 1

    def test_upgrade(self, client):
        body = client.post("/api/game/upgrade", json={"upgradeType": "publicSupport"}).json()
        assert body["result"]["success"] is True
        assert body["gameState"]["upgrades"]["publicSupport"] is True

    def test_invalid_upgrade(self, client):
        response = client.post("/api/game/upgrade", json={"upgradeType": "warpDrive"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid upgrade type"}

    def test_advance_day(self, client):
        body = client.post("/api/game/advance-day").json()
        assert body["gameState"]["day"] == 2

    def test_reset(self, client):
        client.post("/api/game/advance-day")
        body = client.post("/api/game/reset").json()
        assert body["gameState"]["day"] == 1


# ---------------------------------------------------------------------------
# NEO feed and health
# ---------------------------------------------------------------------------

class TestNeoRoutes:
    def test_asteroids(self, client):
        body = client.get("/api/neo/asteroids", params={"days": 3}).json()
        assert body["count"] == 1
        assert body["asteroids"][0]["riskLevel"] == "critical"
        assert body["asteroids"][0]["missDistance"] == 500_000

    def test_days_out_of_range(self, client):
        assert client.get("/api/neo/asteroids", params={"days": 30}).status_code == 400

    def test_feed_failure(self, repository, clock, always_hit):
        app = create_app(
            settings=Settings(),
            repository=repository,
            neo_client=FakeNeoClient(error=True),
            clock=clock,
            rng=always_hit,
        )
        response = TestClient(app).get("/api/neo/asteroids")
        assert response.status_code == 502
        assert response.json() == {"error": "NEO feed unavailable"}

    def test_health(self, client):
        start(client)
        assert client.get("/api/health").json() == {"status": "ok", "levels": 10, "activeSessions": 1}


class TestUnexpectedErrors:
    def test_internal_error_is_json(self, app, monkeypatch):
        def broken():
            raise RuntimeError("catalog exploded")

        monkeypatch.setattr(app.state.level_service, "list_levels", broken)
        response = TestClient(app, raise_server_exceptions=False).get("/api/levels")
        assert response.status_code == 500
        assert response.json() == {"error": "catalog exploded"}
