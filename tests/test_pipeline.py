from __future__ import annotations

import base64
import io

import numpy as np
import pytest
import requests
from PIL import Image


class _FakeResp:
    def __init__(self, payload: dict, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self) -> dict:
        return self._payload


def _b64_png(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("utf-8")


def _generated_payload() -> dict:
    noise = np.random.default_rng(1).integers(0, 256, size=(32, 32, 3), dtype=np.uint8)
    return {
        "candidates": [
            {
                "finishReason": "STOP",
                "content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": _b64_png(Image.fromarray(noise))}}]},
            }
        ]
    }


def _text_payload(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _install_fake_post(monkeypatch, analysis_text: str, generation_payload: dict, calls: dict):
    from tryon import config
    from tryon import gemini as gemini_mod

    def _fake_post(url, params=None, json=None, timeout=None):
        if f"/models/{config.ANALYSIS_MODEL}:generateContent" in url:
            calls["analysis"] = calls.get("analysis", 0) + 1
            return _FakeResp(_text_payload(analysis_text))
        if f"/models/{config.GENERATION_MODEL}:generateContent" in url:
            calls["generation"] = calls.get("generation", 0) + 1
            calls["generation_parts"] = len(json["contents"][0]["parts"])
            return _FakeResp(generation_payload)
        raise AssertionError(f"Unexpected URL: {url}")

    monkeypatch.setattr(gemini_mod.requests, "post", _fake_post)


def test_try_on_selects_matching_orientation_and_generates(monkeypatch, face_image, back_image, to_data_url):
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    calls: dict = {}
    analysis = '```json\n{"user_image": {"index": 1, "build": "slim"}, "garment_image": {"index": 2, "orientation": "front", "description": "red tee"}, "confidence": "high"}\n```'
    _install_fake_post(monkeypatch, analysis, _generated_payload(), calls)

    request = TryOnRequest(
        user_image=to_data_url(face_image),
        product_images=[to_data_url(face_image), to_data_url(back_image)],
        size="L",
    )
    response = process_try_on(request)

    assert response.success is True
    assert response.fallback is False
    assert response.orientation == "front"
    assert response.user_classification.orientation == "front"
    assert response.product_classifications[1].orientation == "back"
    assert response.selected_product_indices == [0]
    assert response.generated_image.startswith("data:image/png;base64,")
    assert response.analysis is not None and response.analysis.user_build == "slim"
    assert response.fit_adjustment is not None and response.fit_adjustment.type == "very_loose"
    assert calls["analysis"] == 1
    assert calls["generation"] == 1
    # prompt + user + one selected product
    assert calls["generation_parts"] == 3


def test_orientation_hint_overrides_classifier(monkeypatch, face_image, back_image, to_data_url):
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    _install_fake_post(monkeypatch, "{}", _generated_payload(), {})

    request = TryOnRequest(
        user_image=to_data_url(face_image),
        product_images=[to_data_url(face_image), to_data_url(back_image)],
        user_orientation="back",
        use_analysis=False,
    )
    response = process_try_on(request)

    assert response.orientation == "back"
    assert response.selected_product_indices == [1]
    assert response.analysis is None
    assert response.fit_adjustment is None


def test_invalid_product_images_are_skipped(monkeypatch, face_image, to_data_url):
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    _install_fake_post(monkeypatch, "{}", _generated_payload(), {})

    request = TryOnRequest(
        user_image=to_data_url(face_image),
        product_images=[
            "https://example.com/shirt.png",
            "data:image/gif;base64,R0lGODlhAQABAAAAACw=",
            to_data_url(face_image),
        ],
        use_analysis=False,
    )
    response = process_try_on(request)

    assert list(response.product_classifications.keys()) == [2]
    assert response.selected_product_indices == [2]


def test_missing_api_key_falls_back_to_user_image(monkeypatch, face_image, to_data_url):
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_AI_API_KEY", raising=False)

    user = to_data_url(face_image)
    response = process_try_on(TryOnRequest(user_image=user, product_image=to_data_url(face_image)))

    assert response.success is True
    assert response.fallback is True
    assert response.generated_image == user
    assert response.error_type == "CONFIG_ERROR"
    assert response.analysis is not None and response.analysis.use_image_index == 0


def test_safety_block_is_not_retried(monkeypatch, face_image, to_data_url):
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    calls: dict = {}
    blocked = {"candidates": [{"finishReason": "SAFETY", "content": {"parts": []}}]}
    _install_fake_post(monkeypatch, "{}", blocked, calls)

    response = process_try_on(
        TryOnRequest(user_image=to_data_url(face_image), product_images=[to_data_url(face_image)], use_analysis=False)
    )

    assert response.fallback is True
    assert response.error_type == "SAFETY_ERROR"
    assert calls["generation"] == 1


def test_timeouts_are_retried_then_fall_back(monkeypatch, face_image, to_data_url):
    from tryon import config
    from tryon import gemini as gemini_mod
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    calls = {"n": 0}

    def _fake_post(url, params=None, json=None, timeout=None):
        calls["n"] += 1
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(gemini_mod.requests, "post", _fake_post)

    response = process_try_on(TryOnRequest(user_image=to_data_url(face_image), use_analysis=False))

    assert response.fallback is True
    assert response.error_type == "TIMEOUT_ERROR"
    assert calls["n"] == config.MAX_GEN_RETRIES + 1


@pytest.mark.parametrize("user_image", [None, "", "not-a-data-url", "data:text/plain;base64,aGk="])
def test_bad_user_image_is_rejected(user_image):
    from tryon.contracts import TryOnRequest
    from tryon.errors import TryOnError
    from tryon.pipeline import process_try_on

    with pytest.raises(TryOnError) as exc_info:
        process_try_on(TryOnRequest(user_image=user_image))
    assert exc_info.value.error_type == "VALIDATION_ERROR"


def test_product_images_are_capped(monkeypatch, face_image, to_data_url):
    from tryon import config
    from tryon.contracts import TryOnRequest
    from tryon.pipeline import process_try_on

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    calls: dict = {}
    _install_fake_post(monkeypatch, "{}", _generated_payload(), calls)

    request = TryOnRequest(
        user_image=to_data_url(face_image),
        product_images=[to_data_url(face_image)] * 5,
        use_analysis=False,
    )
    assert len(request.all_product_images()) == config.MAX_PRODUCT_IMAGES

    response = process_try_on(request)

    assert sorted(response.product_classifications) == list(range(config.MAX_PRODUCT_IMAGES))
    assert len(response.selected_product_indices) <= config.MAX_PRODUCT_IMAGES
    assert calls["generation_parts"] == 2 + len(response.selected_product_indices)
