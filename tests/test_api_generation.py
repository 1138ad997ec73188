"""Tests for the generation gateway endpoints."""

import pytest

from tvorai.api.routes import generation
from tvorai.api.routes.generation import base64_decoded_size
from tvorai.providers.base import GatewayError
from tvorai.providers.mock import MockProvider

T2V = "/api/kling/v2-5/t2v/generate"
I2V = "/api/kling/v2-5/i2v/generate"
T2I = "/api/seedream/3/t2i/generate"
MERGE = "/api/novita/merge-face/generate"


class FailingProvider(MockProvider):
    """Provider whose video submissions are refused upstream."""

    def submit_text_to_video(self, payload):
        raise GatewayError("PROVIDER_ERROR", 500, {"message": "upstream down"})


class EmptyProvider(MockProvider):
    """Provider that answers image calls with empty bodies."""

    def text_to_image(self, payload):
        return {}

    def merge_face(self, payload):
        return {}


@pytest.fixture
def app_with(settings, store):
    """Build a client around a specific provider."""
    from fastapi.testclient import TestClient

    from tvorai.api.app import create_app

    def _build(provider):
        return TestClient(create_app(settings=settings, store=store, provider=provider))

    return _build


class TestVideoValidation:
    """Input checks happen before any provider call or billing."""

    @pytest.mark.parametrize(
        "body, code",
        [
            ({"prompt": ""}, "INVALID_PROMPT"),
            ({"prompt": "   "}, "INVALID_PROMPT"),
            ({"prompt": "cat", "duration": 7}, "INVALID_DURATION"),
            ({"prompt": "cat", "cfg_scale": 1.5}, "INVALID_CFG_SCALE"),
            ({"prompt": "cat", "mode": "std"}, "INVALID_MODE"),
        ],
    )
    def test_rejected(self, client, provider, body, code):
        response = client.post(T2V, json=body)

        assert response.status_code == 400
        assert response.json()["error"] == code
        assert provider.submitted == []

    def test_i2v_requires_image(self, client):
        response = client.post(I2V, json={"prompt": "cat"})
        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_IMAGE"

    def test_i2v_image_size_limit(self, client, monkeypatch):
        monkeypatch.setattr(generation, "MAX_IMAGE_BYTES", 30)
        response = client.post(I2V, json={"prompt": "cat", "image_base64": "A" * 80})
        assert response.status_code == 400
        assert response.json()["error"] == "IMAGE_TOO_LARGE"


class TestVideoGeneration:
    def test_t2v_without_billing(self, client, provider):
        response = client.post(
            T2V, json={"prompt": "a cat", "duration": "10", "aspect_ratio": "16:9", "cfg_scale": 0.5}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["status"] == "queued"
        assert body["credits_remaining"] is None
        sent = provider.submitted[0]
        assert sent["kind"] == "t2v"
        assert sent["payload"] == {
            "prompt": "a cat",
            "duration": "10",
            "mode": "pro",
            "cfg_scale": 0.5,
            "aspect_ratio": "16:9",
        }
        assert body["generation_id"] == sent["task_id"]

    def test_t2v_billed_by_duration_tier(self, client, store, subscribe):
        subscribe(store, wp_user_id=42, monthly_credit_limit=1000)

        response = client.post(T2V, json={"prompt": "a cat", "duration": 10, "wp_user_id": 42})

        assert response.status_code == 200
        assert response.json()["charged"] == 640
        assert response.json()["credits_remaining"] == 360

        usage = client.get("/usage/42").json()["recent_usage"][0]
        assert usage["feature_type"] == "kling_v25_t2v"
        assert usage["metadata"]["task_id"] == response.json()["generation_id"]

    def test_insufficient_credits_blocks_dispatch(self, client, store, subscribe, provider):
        subscribe(store, wp_user_id=42, monthly_credit_limit=100)

        response = client.post(T2V, json={"prompt": "a cat", "wp_user_id": 42})

        assert response.status_code == 402
        assert response.json()["credits_remaining"] == 100
        assert provider.submitted == []

    def test_unknown_user_blocks_dispatch(self, client, provider):
        response = client.post(T2V, json={"prompt": "a cat", "wp_user_id": 5})
        assert response.status_code == 404
        assert provider.submitted == []

    def test_provider_failure_is_not_charged(self, app_with, store, subscribe):
        subscribe(store, wp_user_id=42, monthly_credit_limit=1000)
        client = app_with(FailingProvider())

        response = client.post(T2V, json={"prompt": "a cat", "wp_user_id": 42})

        assert response.status_code == 500
        assert response.json() == {"error": "PROVIDER_ERROR", "detail": {"message": "upstream down"}}
        assert client.get("/usage/42").json()["credits_remaining"] == 1000

    def test_i2v_with_url(self, client, store, subscribe, provider):
        subscribe(store, wp_user_id=42)

        response = client.post(
            I2V,
            json={"prompt": "wave", "image_url": "https://img.test/a.png", "wp_user_id": 42},
        )

        assert response.status_code == 200
        assert response.json()["charged"] == 300
        assert provider.submitted[0]["payload"]["image"] == "https://img.test/a.png"


class TestVideoStatus:
    def test_poll_until_success(self, app_with):
        client = app_with(MockProvider(pending_polls=1))
        task_id = client.post(T2V, json={"prompt": "a cat"}).json()["generation_id"]

        first = client.get(f"/api/kling/v2-5/t2v/status/{task_id}").json()
        second = client.get(f"/api/kling/v2-5/i2v/status/{task_id}").json()

        assert first["status"] == "in_progress"
        assert second["status"] == "success"
        assert second["video_url"].endswith(f"{task_id}.mp4")
        assert second["meta"]["task_id"] == task_id

    def test_blank_task_id(self, client):
        response = client.get("/api/kling/v2-5/t2v/status/%20")
        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_TASK_ID"


class TestTextToImage:
    def test_url_format(self, client, provider):
        response = client.post(T2I, json={"prompt": "a cat"})

        assert response.status_code == 200
        body = response.json()
        assert body["format"] == "url"
        assert len(body["images"]) == 1

    def test_b64_format_billed(self, client, store, subscribe):
        subscribe(store, wp_user_id=42)

        response = client.post(
            T2I, json={"prompt": "a cat", "response_format": "b64_json", "wp_user_id": 42}
        )

        assert response.json()["format"] == "b64_json"
        assert response.json()["charged"] == 120

    def test_invalid_size(self, client):
        response = client.post(T2I, json={"prompt": "a cat", "size": "huge"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_SIZE"

    def test_empty_provider_answer(self, app_with, store, subscribe):
        subscribe(store, wp_user_id=42)
        client = app_with(EmptyProvider())

        response = client.post(T2I, json={"prompt": "a cat", "wp_user_id": 42})

        assert response.status_code == 502
        assert response.json()["error"] == "NO_IMAGE_URLS"
        assert client.get("/usage/42").json()["credits_remaining"] == 1000


class TestMergeFace:
    def test_merge(self, client):
        response = client.post(MERGE, json={"face_image_file": "Zm9v", "image_file": "YmFy"})

        assert response.status_code == 200
        body = response.json()
        assert body["image_type"] == "png"
        assert body["data_url"] == f"data:image/png;base64,{body['image_base64']}"

    def test_missing_images(self, client):
        response = client.post(MERGE, json={"face_image_file": "Zm9v"})
        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_IMAGES"

    def test_no_image_data(self, app_with):
        client = app_with(EmptyProvider())
        response = client.post(MERGE, json={"face_image_file": "a", "image_file": "b"})
        assert response.status_code == 502
        assert response.json()["error"] == "NO_IMAGE_DATA"


class TestBase64Size:
    def test_plain(self):
        assert base64_decoded_size("AAAA") == 3

    def test_data_url_prefix_ignored(self):
        assert base64_decoded_size("data:image/png;base64,AAAAAAAA") == 6


class TestBillingIdentityRange:
    def test_out_of_range_user_rejected_before_dispatch(self, client, provider):
        response = client.post(T2V, json={"prompt": "a cat", "wp_user_id": 10**30})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"
        assert provider.submitted == []
