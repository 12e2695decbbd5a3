from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from .config import ANALYSIS_MODEL, ANALYSIS_PROMPT
from .contracts import GarmentAnalysis
from .gemini import extract_first_json, generate_content, get_api_key, inline_image_part, response_text

logger = logging.getLogger(__name__)


def _garment_array_index(user_index: Any, garment_index: Any, product_count: int) -> int:
    """
    Map the model's garment image number back to a product-array index.

    The model numbers images either from 0 (user=0, products 1..n) or from 1
    (user=1, products 2..n+1); the user image's number tells which.
    """
    if not isinstance(garment_index, int) or isinstance(garment_index, bool):
        return 0
    zero_based = user_index == 0
    idx = garment_index - 1 if zero_based else garment_index - 2
    if idx < 0 or idx >= product_count:
        logger.warning("analysis: garment index %r out of range, using first product image", garment_index)
        return 0
    return idx


def _parse_analysis(obj: Dict[str, Any], product_count: int) -> GarmentAnalysis:
    user = obj.get("user_image") or {}
    garment = obj.get("garment_image") or {}
    if not isinstance(user, dict) or not isinstance(garment, dict):
        raise ValueError("analysis JSON missing user_image or garment_image")

    orientation = garment.get("orientation")
    confidence = obj.get("confidence")
    return GarmentAnalysis(
        use_image_index=_garment_array_index(user.get("index"), garment.get("index"), product_count),
        garment_orientation=orientation if orientation in ("front", "back") else "front",
        user_build=str(user.get("build") or "average"),
        description=str(garment.get("description") or ""),
        reasoning=str(obj.get("reasoning") or ""),
        confidence=confidence if confidence in ("high", "medium", "low") else "low",
    )


def analyze_products(user_jpeg_b64: str, product_jpeg_b64s: Sequence[str]) -> GarmentAnalysis:
    """
    Ask a vision model which product image to use and what build the user has.

    Best-effort: a missing API key, no product images, network errors or an
    unparseable reply all return the default analysis (first product image).
    """
    if not product_jpeg_b64s:
        return GarmentAnalysis(reasoning="No product images provided")
    if not get_api_key():
        logger.warning("analysis: no API key configured, using first product image")
        return GarmentAnalysis(reasoning="API key not configured, using first product image")

    parts = [{"text": ANALYSIS_PROMPT}, inline_image_part(user_jpeg_b64)]
    parts.extend(inline_image_part(b64) for b64 in product_jpeg_b64s)

    try:
        data = generate_content(ANALYSIS_MODEL, parts=parts)
        obj = extract_first_json(response_text(data))
        if obj is None:
            raise ValueError("no JSON object in analysis reply")
        analysis = _parse_analysis(obj, len(product_jpeg_b64s))
    except Exception as e:
        logger.warning("analysis: failed, using first product image (%s: %s)", type(e).__name__, e)
        return GarmentAnalysis(reasoning="Analysis failed, using first product image")

    logger.info(
        "analysis: garment index=%d orientation=%s build=%s confidence=%s",
        analysis.use_image_index,
        analysis.garment_orientation,
        analysis.user_build,
        analysis.confidence,
    )
    return analysis
