from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

import requests

from .errors import TryOnError


def _get_base_url() -> str:
    return os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com").rstrip("/")


def get_timeout_s(default: float) -> float:
    try:
        return float(os.getenv("GEMINI_TIMEOUT_S", str(default)))
    except ValueError:
        return default


def get_api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")


def inline_image_part(data_b64: str, mime: str = "image/jpeg") -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime, "data": data_b64}}


def extract_first_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Gemini sometimes wraps JSON in code fences; extract the first JSON object.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    snippet = text[start : end + 1]
    try:
        obj = json.loads(snippet)
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


def generate_content(model: str, parts: List[Dict[str, Any]], timeout_s: float = 12.0) -> Dict[str, Any]:
    """
    POST a single-turn generateContent request and return the decoded JSON body.
    """
    api_key = get_api_key()
    if not api_key:
        raise TryOnError("Missing GEMINI_API_KEY", error_type="CONFIG_ERROR")

    url = f"{_get_base_url()}/v1beta/models/{model}:generateContent"
    payload = {"contents": [{"role": "user", "parts": parts}]}
    resp = requests.post(url, params={"key": api_key}, json=payload, timeout=get_timeout_s(timeout_s))
    resp.raise_for_status()
    return resp.json()


def response_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    content = (candidates[0] or {}).get("content") or {}
    out_parts = content.get("parts") or []
    texts = [p.get("text", "") for p in out_parts if isinstance(p, dict) and "text" in p]
    return "\n".join([t for t in texts if t])
