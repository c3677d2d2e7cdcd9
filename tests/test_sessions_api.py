import asyncio

import pytest
from fastapi.testclient import TestClient

import game_analyzer.main as main
from game_analyzer.errors import AugmentationUnavailable
from game_analyzer.main import app
from game_analyzer.providers.base import InsightClient


class SlowInsightClient(InsightClient):
    provider_name = "slow"

    def __init__(self):
        super().__init__(model="slow-1")

    async def ping(self) -> None:
        return None

    async def generate(self, prompt: str) -> str:
        await asyncio.sleep(2)
        return "too late"


class DownInsightClient(InsightClient):
    provider_name = "down"

    def __init__(self):
        super().__init__(model="down-1")
        self.generated = 0

    async def ping(self) -> None:
        raise AugmentationUnavailable("connection refused")

    async def generate(self, prompt: str) -> str:
        self.generated += 1
        return "unreachable"


def _play(client: TestClient, player_id: str = "pilot-1") -> str:
    r = client.post("/api/session/start", json={"playerId": player_id})
    assert r.status_code == 200, r.text
    sid = r.json()["sessionId"]
    for ts in (0, 200):
        r = client.post(
            f"/api/session/{sid}/action",
            json={"type": "missile_shot", "success": True, "timestamp": ts, "targetDistance": 600, "missileSpeed": 25},
        )
        assert r.status_code == 200, r.text
    return sid


def test_full_session_flow():
    with TestClient(app) as client:
        r = client.post("/api/session/start", json={"playerId": "pilot-1"})
        assert r.status_code == 200
        sid = r.json()["sessionId"]

        r1 = client.post(f"/api/session/{sid}/action", json={
            "type": "missile_shot", "success": True, "timestamp": 0, "targetDistance": 600, "missileSpeed": 25,
        })
        body1 = r1.json()
        assert body1["realtimeSnapshot"] == {
            "accuracy": 1,
            "targetDistance": 600,
            "missileSpeed": 25,
            "hitRate": 100.0,
            "averageResponseTime": 0,
        }
        assert body1["sessionMetrics"]["totalActions"] == 1

        r2 = client.post(f"/api/session/{sid}/action", json={
            "type": "missile_shot", "success": True, "timestamp": 200, "targetDistance": 600, "missileSpeed": 25,
        })
        assert r2.json()["realtimeSnapshot"]["averageResponseTime"] == 200

        end = client.post(f"/api/session/{sid}/end")
        assert end.status_code == 200, end.text
        payload = end.json()
        analysis = payload["analysis"]
        assert analysis["skillLevel"] == "advanced"
        assert analysis["shootingStyle"] == "balanced"
        assert analysis["score"] == 7000
        assert analysis["confidence"] == "high"
        assert analysis["aiInsights"]
        assert payload["playerProfile"]["totalSessions"] == 1
        assert payload["playerProfile"]["skillProgression"] == ["advanced"]
        assert payload["session"]["totalActions"] == 2

        stats = client.get("/api/player/pilot-1/stats")
        assert stats.status_code == 200
        assert stats.json()["playStyle"] == "balanced"

        # Ended sessions are gone for good
        assert client.post(f"/api/session/{sid}/end").status_code == 404
        late = client.post(f"/api/session/{sid}/action", json={"type": "missile_shot", "success": True})
        assert late.status_code == 404


def test_start_requires_player_id():
    with TestClient(app) as client:
        assert client.post("/api/session/start", json={}).status_code == 400
        assert client.post("/api/session/start", content=b"not json").status_code == 400


def test_unknown_session_returns_404():
    with TestClient(app) as client:
        r = client.post("/api/session/does-not-exist/action", json={"type": "missile_shot"})
        assert r.status_code == 404
        assert r.json()["sessionId"] == "does-not-exist"
        assert client.post("/api/session/does-not-exist/end").status_code == 404


def test_unknown_player_returns_404():
    with TestClient(app) as client:
        assert client.get("/api/player/ghost/stats").status_code == 404


def test_non_shot_and_malformed_actions_are_accepted():
    with TestClient(app) as client:
        sid = client.post("/api/session/start", json={"playerId": "p"}).json()["sessionId"]
        r = client.post(f"/api/session/{sid}/action", json={"type": "reload", "success": True, "timestamp": 10})
        assert r.status_code == 200
        assert r.json()["realtimeSnapshot"] is None
        r = client.post(f"/api/session/{sid}/action", content=b"{broken")
        assert r.status_code == 200
        assert r.json()["sessionMetrics"]["totalActions"] == 2


def test_augmentation_timeout_still_returns_analysis(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AI_GENERATE_TIMEOUT_SECONDS", "0.05")
    monkeypatch.setattr(main, "get_insight_client", lambda settings: SlowInsightClient())
    with TestClient(app) as client:
        sid = _play(client)
        r = client.post(f"/api/session/{sid}/end")
        assert r.status_code == 200
        analysis = r.json()["analysis"]
        assert analysis["confidence"] == "medium"
        assert "aiInsights" not in analysis
        assert analysis["skillLevel"] == "advanced"


def test_unavailable_service_skips_augmentation(monkeypatch: pytest.MonkeyPatch):
    down = DownInsightClient()
    monkeypatch.setattr(main, "get_insight_client", lambda settings: down)
    with TestClient(app) as client:
        sid = _play(client)
        r = client.post(f"/api/session/{sid}/end")
        assert r.status_code == 200
        assert r.json()["analysis"]["confidence"] == "medium"
        assert client.get("/health").json()["probeState"]["state"] == "unavailable"
    assert down.generated == 0


def test_pipeline_failure_returns_fallback(monkeypatch: pytest.MonkeyPatch):
    async def boom(self, session):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(main.AnalysisOrchestrator, "analyze", boom)
    with TestClient(app) as client:
        sid = _play(client)
        r = client.post(f"/api/session/{sid}/end")
        assert r.status_code == 500
        body = r.json()
        assert body["error"] == "analysis_failed"
        assert body["fallbackAnalysis"]["confidence"] == "low"
        assert body["fallbackAnalysis"]["skillLevel"] == "advanced"
        # The session is still finalized exactly once
        assert client.post(f"/api/session/{sid}/end").status_code == 404


def test_health_and_status():
    with TestClient(app) as client:
        sid = _play(client, player_id="p-health")
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["activeSessions"] == 1
        assert health["totalPlayers"] == 0
        assert set(health["probeState"]) == {"state", "provider", "model", "url", "lastError"}

        status = client.get("/api/analyzer/status").json()
        assert status["provider"] == "mock"
        assert status["queueLength"] == 2

        client.post(f"/api/session/{sid}/end")
        health = client.get("/health").json()
        assert health["activeSessions"] == 0
        assert health["totalPlayers"] == 1


def test_request_id_is_echoed():
    with TestClient(app) as client:
        r = client.get("/health", headers={"X-Request-Id": "rid-42"})
        assert r.headers["X-Request-Id"] == "rid-42"
        assert client.get("/health").headers.get("X-Request-Id")
