from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .config import GENERATION_MODEL, MAX_GEN_RETRIES
from .errors import GenerationError
from .gemini import generate_content, inline_image_part

logger = logging.getLogger(__name__)

# Shorter payloads are status text, not image data.
_MIN_IMAGE_B64_LEN = 100


def _inline_data(part: Any) -> Optional[str]:
    if not isinstance(part, dict):
        return None
    inline = part.get("inlineData") or part.get("inline_data")
    if not isinstance(inline, dict):
        return None
    data = inline.get("data")
    if isinstance(data, str) and len(data) > _MIN_IMAGE_B64_LEN:
        return data
    return None


def pick_generated_image(data: Dict[str, Any]) -> Optional[str]:
    """
    First base64 image payload in any candidate, or None.
    """
    for cand in data.get("candidates") or []:
        content = (cand or {}).get("content") or {}
        for part in content.get("parts") or []:
            b64 = _inline_data(part)
            if b64 is not None:
                return b64
    for out in data.get("output") or []:
        b64 = _inline_data(out)
        if b64 is not None:
            return b64
    return None


def _check_blocked(data: Dict[str, Any]) -> None:
    feedback = data.get("promptFeedback") or {}
    block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
    if block_reason:
        raise GenerationError(f"Prompt blocked by Google AI: {block_reason}", error_type="SAFETY_ERROR")

    candidates = data.get("candidates") or []
    finish = (candidates[0] or {}).get("finishReason") if candidates else None
    if finish == "SAFETY":
        raise GenerationError("Content blocked by Google AI safety filters", error_type="SAFETY_ERROR")
    if finish == "RECITATION":
        raise GenerationError("Content blocked by Google AI recitation policy", error_type="SAFETY_ERROR")
    if finish and finish not in ("STOP", "MAX_TOKENS"):
        logger.warning("generator: unexpected finish reason %s", finish)


def _generate_once(prompt: str, image_b64s: List[str]) -> str:
    parts: List[Dict[str, Any]] = [{"text": prompt}]
    parts.extend(inline_image_part(b64) for b64 in image_b64s)

    t0 = time.perf_counter()
    try:
        data = generate_content(GENERATION_MODEL, parts=parts, timeout_s=60.0)
    except requests.Timeout as e:
        raise GenerationError(f"Google AI request timeout: {e}", error_type="TIMEOUT_ERROR", retryable=True) from e
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        error_type = "QUOTA_ERROR" if status == 429 else "GOOGLE_AI_ERROR"
        retryable = status is None or status == 429 or status >= 500
        raise GenerationError(f"Google AI HTTP error: {e}", error_type=error_type, retryable=retryable) from e
    except requests.RequestException as e:
        raise GenerationError(f"Google AI request failed: {e}", retryable=True) from e
    logger.info("generator: response in %.2fs", time.perf_counter() - t0)

    _check_blocked(data)
    b64 = pick_generated_image(data)
    if b64 is None:
        raise GenerationError(
            "No generated image in model response (the model may have returned text instead)",
            error_type="IMAGE_PROCESSING_ERROR",
        )
    return b64


def generate(prompt: str, image_b64s: List[str]) -> str:
    """
    Calls the image generation model; returns the generated image as base64.
    Transient failures are retried up to MAX_GEN_RETRIES times.
    """
    last_err: Optional[GenerationError] = None
    for attempt in range(MAX_GEN_RETRIES + 1):
        try:
            return _generate_once(prompt, image_b64s)
        except GenerationError as e:
            last_err = e
            if not e.retryable:
                raise
            logger.warning("generator: attempt %d failed (%s)", attempt + 1, e)
    assert last_err is not None
    raise GenerationError(
        f"Image generation failed after retries: {last_err}",
        error_type=last_err.error_type,
    )
