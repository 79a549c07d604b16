"""Tests for the FastAPI web interface."""

import base64

import pytest
from fastapi.testclient import TestClient

from conftest import ScriptedClient, noise_image_bytes
from site_safety.hazard_analysis.config import Language
from site_safety.hazard_analysis.gemini_client import MockCompletionClient
from site_safety.web import WebConfig, create_app


@pytest.fixture
def config():
    return WebConfig(model="mock", language="en", google_api_key="super-secret-key")


@pytest.fixture
def api(config):
    return TestClient(create_app(config=config, client=MockCompletionClient(language=Language.EN)))


def scripted_api(config, reply):
    return TestClient(create_app(config=config, client=ScriptedClient(reply)))


@pytest.fixture
def upload(small_png):
    return {"file": ("site.png", small_png, "image/png")}


def test_health(api):
    response = api.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_config_hides_api_keys(api):
    response = api.get("/api/config")

    assert response.status_code == 200
    data = response.json()
    assert data["google_api_key_set"] is True
    assert data["active_model"] == "mock-gemini"
    assert "super-secret-key" not in response.text


class TestCompress:
    def test_small_image(self, api, upload, small_png):
        response = api.post("/api/compress", files=upload)

        assert response.status_code == 200
        data = response.json()
        assert data["steps"] == 0
        assert base64.b64decode(data["data_base64"]) == small_png
        assert data["width"] == 64

    def test_large_image(self, config):
        config.ceiling_bytes = 200_000
        api = TestClient(create_app(config=config, client=MockCompletionClient()))
        files = {"file": ("big.png", noise_image_bytes(600, 450), "image/png")}

        data = api.post("/api/compress", files=files).json()

        assert data["mime_type"] == "image/jpeg"
        assert data["steps"] >= 1
        assert data["width"] >= 400 and data["height"] >= 300
        assert data["original_size_label"].endswith("KB")

    def test_undecodable_image(self, api):
        files = {"file": ("bad.png", b"not an image", "image/png")}
        response = api.post("/api/compress", files=files)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "MediaDecodeError"
        assert detail["stage"] == "reduce"
        assert detail["retryable"] is False


class TestAnalysis:
    def test_photo_analysis(self, api, upload):
        response = api.post("/api/photo-analysis", files=upload, data={"description": "scaffold"})

        assert response.status_code == 200
        data = response.json()
        assert len(data["hazards"]) == 2
        assert data["engineeringSolutions"]

    def test_risk_assessment(self, api, upload):
        response = api.post("/api/risk-assessment", files=upload, data={"process_name": "welding"})

        assert response.status_code == 200
        (hazard,) = response.json()
        assert hazard["severity"] == 5
        assert hazard["risk_score"] == 15
        assert hazard["risk_level"] == "very_high"

    def test_risk_assessment_requires_process_name(self, api, upload):
        response = api.post("/api/risk-assessment", files=upload)
        assert response.status_code == 422

    def test_additional_hazards(self, api):
        response = api.post(
            "/api/additional-hazards",
            json={"process_name": "press", "existing_hazards": ["pinch point"]},
        )

        assert response.status_code == 200
        assert response.json()[0]["description"].startswith("Respiratory")

    def test_undecodable_upload(self, api):
        files = {"file": ("bad.jpg", b"", "image/jpeg")}
        response = api.post("/api/photo-analysis", files=files)

        assert response.status_code == 400
        assert response.json()["detail"]["stage"] == "reduce"

    def test_unparseable_reply(self, config, upload):
        api = scripted_api(config, "Sorry, I cannot analyze this image.")
        response = api.post("/api/photo-analysis", files=upload)

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["error"] == "ParseFailure"
        assert detail["stage"] == "parse"
        assert detail["retryable"] is True

    def test_unexpected_shape(self, config, upload):
        api = scripted_api(config, '{"a": 1, "b": 2}')
        response = api.post("/api/risk-assessment", files=upload, data={"process_name": "x"})

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "SchemaMismatch"

    def test_empty_reply(self, config, upload):
        api = scripted_api(config, "")
        response = api.post("/api/photo-analysis", files=upload)

        assert response.status_code == 502
        assert response.json()["detail"]["stage"] == "ai_call"

    def test_service_failure(self, config, upload):
        class FailingClient(ScriptedClient):
            def complete(self, request):
                raise RuntimeError("connection reset")

        api = TestClient(create_app(config=config, client=FailingClient(None)))
        response = api.post("/api/photo-analysis", files=upload)

        assert response.status_code == 500
        assert "internal error" in response.json()["detail"]


class TestQuestions:
    def test_text_question(self, api):
        response = api.post(
            "/api/qa",
            json={
                "question": "How high can a ladder be?",
                "history": [{"sender": "user", "text": "hi"}, {"sender": "ai", "text": "hello"}],
            },
        )

        assert response.status_code == 200
        assert "protective equipment" in response.json()["answer"]

    def test_history_is_forwarded(self, config):
        client = ScriptedClient("ok")
        api = TestClient(create_app(config=config, client=client))

        api.post(
            "/api/qa",
            json={"question": "q", "history": [{"sender": "ai", "text": "earlier"}]},
        )

        assert client.requests[0].history[-1] == ("model", "earlier")

    def test_question_with_image(self, config, small_png):
        client = ScriptedClient("Looks fine.")
        api = TestClient(create_app(config=config, client=client))

        response = api.post(
            "/api/qa",
            json={
                "question": "Is this safe?",
                "image_base64": base64.b64encode(small_png).decode(),
                "mime_type": "image/png",
            },
        )

        assert response.status_code == 200
        assert response.json()["answer"] == "Looks fine."
        assert client.requests[0].media_bytes == small_png

    def test_invalid_base64(self, api):
        response = api.post("/api/qa", json={"question": "?", "image_base64": "***"})
        assert response.status_code == 400


def test_missing_key_falls_back_to_mock(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    app = create_app(config=WebConfig(model="gemini-2.5-flash"))
    assert isinstance(app.state.client, MockCompletionClient)
