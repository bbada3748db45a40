"""
Integration Tests for OneShot API
Tests the complete flow from frame submission to shot capture and stats.
"""

import json

import pytest
from fastapi.testclient import TestClient


class FakeClock:
    """Monotonic clock the tests advance by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(clock):
    """Create test client around a fresh app"""
    from config.settings import Settings
    from main import create_app

    settings = Settings(SHOT_COOLDOWN_SEC=2.0, DEBUG=False)
    return TestClient(create_app(settings, clock=clock))


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions", json={"handedness": "right", "bow_type": "recurve"})
    assert response.status_code == 200
    return response.json()["session_id"]


class TestHealthEndpoints:
    """Test health check endpoints"""

    def test_root_endpoint(self, client):
        """Test root endpoint returns service info"""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "OneShot" in data["service"]

    def test_health_endpoint(self, client, session_id):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "active_sessions": 1}

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert "X-Process-Time-Ms" in response.headers


class TestThresholdEndpoint:

    def test_default_table(self, client):
        data = client.get("/api/thresholds").json()

        assert list(data) == [
            "shoulder_line", "bow_elbow", "draw_align", "head_tilt", "spine_lean", "anchor"
        ]
        bow_elbow = data["bow_elbow"]
        assert bow_elbow["kind"] == "target_tolerance"
        assert bow_elbow["label"] == "Bow Arm Extension"
        assert (bow_elbow["target"], bow_elbow["tolerance"]) == (175.0, 15.0)
        assert data["anchor"]["kind"] == "max_bound"
        assert data["anchor"]["max"] == 0.25

    def test_thresholds_file_override(self, tmp_path, clock, archer_frame):
        from config.settings import Settings
        from main import create_app

        path = tmp_path / "thresholds.json"
        path.write_text(json.dumps({"anchor": {"kind": "max_bound", "max": 0.1}}))

        client = TestClient(create_app(Settings(THRESHOLDS_FILE=str(path)), clock=clock))
        data = client.get("/api/thresholds").json()

        assert data["anchor"]["max"] == 0.1
        assert data["shoulder_line"]["max"] == 10.0

        response = client.post("/api/analyze", json={"landmarks": archer_frame()})
        assert response.json()["evaluation"]["anchor"]["pass"] is False


class TestAnalyzeEndpoint:
    """Stateless single-frame analysis"""

    def test_good_form(self, client, archer_frame):
        response = client.post("/api/analyze", json={"landmarks": archer_frame()})
        assert response.status_code == 200

        data = response.json()
        assert data["overall_score"] == 100
        assert data["pass_count"] == 6
        assert data["total_checks"] == 6
        assert data["phase"] == "rest"
        assert data["live_hint"] == "Form looks good"
        assert data["is_reliable"] is True
        assert data["metrics"]["anchor_ratio"] == 0.14
        assert data["metrics"]["indeterminate"] == []

    def test_bent_bow_arm(self, client, archer_frame):
        response = client.post("/api/analyze", json={
            "landmarks": archer_frame(bow_elbow_angle=120.0)
        })
        data = response.json()

        assert data["overall_score"] == 83
        assert data["evaluation"]["bow_elbow"]["pass"] is False
        assert data["evaluation"]["bow_elbow"]["value"] == 120.0
        assert data["live_hint"] == "Straighten bow elbow (120° ~ 175°)"

    def test_previous_metrics_enable_phase(self, client, archer_frame):
        first = client.post("/api/analyze", json={
            "landmarks": archer_frame(bow_elbow_angle=120.0)
        }).json()

        second = client.post("/api/analyze", json={
            "landmarks": archer_frame(bow_elbow_angle=165.0),
            "previous_metrics": first["metrics"],
        }).json()

        assert second["phase"] == "anchor"

    def test_left_handed_profile(self, client, archer_frame):
        response = client.post("/api/analyze", json={
            "landmarks": archer_frame(),
            "user_config": {"handedness": "left"},
        })
        data = response.json()

        assert data["metrics"]["bow_elbow_deg"] == 0.0
        assert data["evaluation"]["anchor"]["pass"] is False

    def test_zero_shoulder_width_serialized_as_null(self, client, archer_frame):
        frame = archer_frame(overrides={
            11: {"x": 0.5, "y": 0.4, "visibility": 0.9},
            12: {"x": 0.5, "y": 0.4, "visibility": 0.9},
        })
        data = client.post("/api/analyze", json={"landmarks": frame}).json()

        assert data["metrics"]["anchor_ratio"] is None
        assert data["metrics"]["indeterminate"] == ["anchor_ratio"]
        assert data["evaluation"]["anchor"]["value"] is None
        assert data["evaluation"]["anchor"]["pass"] is False

    def test_missing_landmark(self, client, archer_frame):
        response = client.post("/api/analyze", json={"landmarks": archer_frame()[:14]})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "MISSING_LANDMARK"
        assert data["details"] == {"landmark": "RIGHT_ELBOW", "index": 14}

    def test_too_many_landmarks(self, client, archer_frame):
        frame = archer_frame() + [{"x": 0.5, "y": 0.5}]
        response = client.post("/api/analyze", json={"landmarks": frame})

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_invalid_handedness(self, client, archer_frame):
        response = client.post("/api/analyze", json={
            "landmarks": archer_frame(),
            "user_config": {"handedness": "both"},
        })
        assert response.status_code == 422


class TestSessionFlow:
    """Frame streaming, shot capture and stats"""

    def test_start_session(self, client):
        response = client.post("/api/sessions", json={"handedness": "left", "distance_m": 18})
        data = response.json()

        assert data["user_config"]["handedness"] == "left"
        assert data["user_config"]["distance_m"] == 18
        assert data["shot_cooldown_sec"] == 2.0

    def test_no_detection_keeps_nothing(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/frames", json={"landmarks": None})
        assert response.json() == {"detected": False, "skipped": False, "analysis": None}

    def test_phase_tracks_previous_frame(self, client, session_id, archer_frame):
        url = f"/api/sessions/{session_id}/frames"

        first = client.post(url, json={"landmarks": archer_frame(bow_elbow_angle=120.0)}).json()
        assert first["analysis"]["phase"] == "rest"

        second = client.post(url, json={"landmarks": archer_frame(bow_elbow_angle=150.0)}).json()
        assert second["analysis"]["phase"] == "draw"

        third = client.post(url, json={"landmarks": archer_frame()}).json()
        assert third["analysis"]["phase"] == "anchor"

    def test_skipped_frame_keeps_last_analysis(self, client, session_id, archer_frame):
        url = f"/api/sessions/{session_id}/frames"
        client.post(url, json={"landmarks": archer_frame(bow_elbow_angle=120.0)})

        response = client.post(url, json={"landmarks": archer_frame()[:12]})
        data = response.json()

        assert response.status_code == 200
        assert data["detected"] is True
        assert data["skipped"] is True
        assert data["analysis"]["overall_score"] == 83

    def test_capture_without_pose(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/shots")

        assert response.status_code == 409
        assert response.json()["error"] == "NO_POSE_DETECTED"

    def test_capture_and_cooldown(self, client, clock, session_id, archer_frame):
        client.post(
            f"/api/sessions/{session_id}/frames",
            json={"landmarks": archer_frame(bow_elbow_angle=120.0)}
        )

        shot = client.post(f"/api/sessions/{session_id}/shots")
        assert shot.status_code == 200
        data = shot.json()
        assert data["overall_score"] == 83
        assert data["feedback"] == {
            "message": "Bow Arm Extension",
            "detail": "Extend your bow arm fully for better stability.",
            "type": "corrective",
        }
        assert data["errors"][0]["severity"] == "medium"
        assert data["user_config"]["bow_type"] == "recurve"

        clock.advance(1.0)
        blocked = client.post(f"/api/sessions/{session_id}/shots")
        assert blocked.status_code == 429
        assert blocked.headers["Retry-After"] == "1"
        assert blocked.json()["details"]["retry_after_seconds"] == 1.0

        clock.advance(1.0)
        assert client.post(f"/api/sessions/{session_id}/shots").status_code == 200

        shots = client.get(f"/api/sessions/{session_id}/shots").json()["shots"]
        assert len(shots) == 2

    def test_stats_and_end(self, client, clock, session_id, archer_frame):
        url = f"/api/sessions/{session_id}"

        client.post(f"{url}/frames", json={"landmarks": archer_frame()})
        client.post(f"{url}/shots")
        clock.advance(2.5)
        client.post(f"{url}/frames", json={"landmarks": archer_frame(bow_elbow_angle=120.0)})
        client.post(f"{url}/shots")

        stats = client.get(f"{url}/stats").json()
        assert stats == {
            "session_id": session_id,
            "total_shots": 2,
            "average_score": 92,
            "best_score": 100,
            "common_errors": [{"type": "Bow Arm Extension", "count": 1}],
        }

        final = client.delete(url).json()
        assert final["total_shots"] == 2

        response = client.get(f"{url}/stats")
        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"

    def test_empty_stats(self, client, session_id):
        stats = client.get(f"/api/sessions/{session_id}/stats").json()

        assert stats["total_shots"] == 0
        assert stats["average_score"] is None
        assert stats["best_score"] is None
        assert stats["common_errors"] == []

    def test_unknown_session(self, client):
        response = client.post("/api/sessions/nope/frames", json={"landmarks": None})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "SESSION_NOT_FOUND"
        assert data["path"] == "/api/sessions/nope/frames"

    def test_idle_session_expires(self, clock):
        from config.settings import Settings
        from main import create_app

        client = TestClient(create_app(Settings(IDLE_SESSION_TTL_SEC=60.0), clock=clock))
        session_id = client.post("/api/sessions", json={}).json()["session_id"]

        clock.advance(61.0)
        response = client.get(f"/api/sessions/{session_id}/stats")
        assert response.status_code == 404
        assert client.get("/health").json()["active_sessions"] == 0

    def test_session_limit(self, clock):
        from config.settings import Settings
        from main import create_app

        client = TestClient(create_app(Settings(MAX_SESSIONS=1), clock=clock))
        assert client.post("/api/sessions", json={}).status_code == 200

        response = client.post("/api/sessions", json={})
        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "SESSION_LIMIT_REACHED"
        assert data["details"] == {"max_sessions": 1}


class TestErrorHandling:
    """Test error response formatting"""

    def test_validation_error_format(self, client):
        response = client.post("/api/analyze", json={"landmarks": [{"x": "left"}]})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert "validation_errors" in data

    def test_unknown_route(self, client):
        response = client.get("/api/nothing")

        assert response.status_code == 404
        assert response.json()["error"] == "HTTP_ERROR"
