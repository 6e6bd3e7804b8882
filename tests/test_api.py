import pytest
from fastapi.testclient import TestClient

from route_animator.config import Settings
from route_animator.web import create_app
from route_animator.web.workers.capabilities import Capabilities
from route_animator.web.workers.export import ExportOrchestrator

STILL = Capabilities(rasterizer=True, encoder=False)


@pytest.fixture
def settings(tmp_path):
    settings = Settings(upload_folder=tmp_path / "uploads", export_folder=tmp_path / "exports")
    settings.upload_folder.mkdir()
    settings.export_folder.mkdir()
    return settings


@pytest.fixture
def orchestrator(settings):
    return ExportOrchestrator(
        STILL,
        export_folder=settings.export_folder,
        upload_folder=settings.upload_folder,
        workers=1,
    )


@pytest.fixture
def app(settings, orchestrator):
    return create_app(settings=settings, orchestrator=orchestrator)


@pytest.fixture
def body(png_data_url):
    return {
        "routes": [
            {
                "name": "Harbour",
                "waypoints": [{"x": 0, "y": 0}, {"x": 16, "y": 8}, {"x": 30, "y": 20}],
                "style": {"color": "#ff8800", "strokeWidth": 4},
                "animation": {"delayMs": 0, "durationMs": 800},
            }
        ],
        "settings": {"width": 64, "height": 48, "fps": 5},
        "totalDurationMs": 1000,
        "backgroundImage": png_data_url,
    }


class TestExportEndpoints:
    def test_export_round_trip(self, app, orchestrator, body):
        """Submit, wait for the worker, then download the artifact."""
        with TestClient(app) as client:
            response = client.post("/api/exports/video", json=body)
            assert response.status_code == 202
            job_id = response.json()["jobId"]
            assert response.json()["status"] == "queued"

            orchestrator.queue.join()

            status = client.get(f"/api/exports/video/{job_id}/status").json()
            assert status["status"] == "completed"
            assert status["progressPercent"] == 100
            assert status["tier"] == "still"

            result = client.get(f"/api/exports/video/{job_id}/result")
            assert result.status_code == 200
            assert result.headers["content-type"] == "image/png"
            assert result.content.startswith(b"\x89PNG")

            listing = client.get("/api/exports/list").json()
            assert [job["jobId"] for job in listing["jobs"]] == [job_id]

    def test_validation_error_is_400(self, app, body):
        body["routes"] = []
        client = TestClient(app)
        response = client.post("/api/exports/video", json=body)
        assert response.status_code == 400
        assert "No routes" in response.json()["detail"]

    def test_missing_background_is_400(self, app, body):
        del body["backgroundImage"]
        response = TestClient(app).post("/api/exports/video", json=body)
        assert response.status_code == 400

    def test_malformed_body_is_422(self, app, body):
        body["settings"]["fps"] = 0
        response = TestClient(app).post("/api/exports/video", json=body)
        assert response.status_code == 422

    def test_unknown_job_is_404(self, app):
        client = TestClient(app)
        assert client.get("/api/exports/video/nope/status").status_code == 404
        assert client.get("/api/exports/video/nope/result").status_code == 404
        assert client.delete("/api/exports/video/nope").status_code == 404

    def test_result_not_ready_is_404(self, app, body):
        # no lifespan, so no worker picks the job up
        client = TestClient(app)
        job_id = client.post("/api/exports/video", json=body).json()["jobId"]
        assert client.get(f"/api/exports/video/{job_id}/status").json()["status"] == "queued"
        response = client.get(f"/api/exports/video/{job_id}/result")
        assert response.status_code == 404

    def test_cancel_queued_job(self, app, orchestrator, body):
        client = TestClient(app)
        job_id = client.post("/api/exports/video", json=body).json()["jobId"]
        response = client.delete(f"/api/exports/video/{job_id}")
        assert response.json() == {"jobId": job_id, "cancelled": True}

        orchestrator.process(*orchestrator.queue.get_nowait())
        status = client.get(f"/api/exports/video/{job_id}/status").json()
        assert status["status"] == "error"
        assert status["errorMessage"] == "Export cancelled"


class TestUploads:
    def test_upload_then_export_by_name(self, app, orchestrator, body, png_bytes):
        with TestClient(app) as client:
            response = client.post(
                "/api/uploads/",
                files={"file": ("map.png", png_bytes, "image/png")},
            )
            assert response.status_code == 201
            filename = response.json()["filename"]
            assert filename == "background1.png"

            assert client.get(f"/api/uploads/{filename}").content == png_bytes
            assert client.get("/api/uploads/").json() == {"uploads": [filename]}

            body["backgroundImage"] = filename
            job_id = client.post("/api/exports/video", json=body).json()["jobId"]
            orchestrator.queue.join()
            assert client.get(f"/api/exports/video/{job_id}/status").json()["status"] == "completed"

    def test_missing_upload_is_404(self, app):
        assert TestClient(app).get("/api/uploads/missing.png").status_code == 404


class TestPreview:
    def test_preview_png(self, app, body):
        body["timeMs"] = 500
        response = TestClient(app).post("/api/preview", json=body)
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_bad_background_is_400(self, app, body):
        body["backgroundImage"] = "data:image/png;base64,@@@"
        response = TestClient(app).post("/api/preview", json=body)
        assert response.status_code == 400


class TestHealth:
    def test_reports_capabilities(self, app):
        payload = TestClient(app).get("/api/health").json()
        assert payload["status"] == "ok"
        assert payload["tier"] == "still"
        assert payload["capabilities"] == {"rasterizer": True, "encoder": False}
