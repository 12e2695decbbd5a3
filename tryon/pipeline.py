from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .config import MAX_IMAGE_MB, MAX_TOTAL_MB, SUPPORTED_MIME_TYPES
from .contracts import NEUTRAL_RESULT, ClassificationResult, FitAdjustment, GarmentAnalysis, TryOnRequest, TryOnResponse
from .errors import TryOnError, classify_error_message
from .fit import calculate_fit_adjustment, normalize_size
from .garment_analyzer import analyze_products
from .generator import generate
from .io import decode_image, guess_mime_from_b64, normalize_to_jpeg, parse_data_url
from .orientation import classify_image
from .prompts import build_generation_prompt
from .selection import resolve_orientation, select_product_images

logger = logging.getLogger(__name__)

_MB = 1024.0 * 1024.0


@dataclass
class PreparedImage:
    index: int  # position in the request's product list
    jpeg: bytes
    b64: str
    classification: ClassificationResult


def classify_jpeg(raw: bytes) -> ClassificationResult:
    try:
        img = decode_image(raw)
    except Exception as e:
        logger.warning("pipeline: could not decode image for classification (%s)", e)
        return NEUTRAL_RESULT
    return classify_image(img)


def prepare_product_images(data_urls: Sequence[str], used_mb: float = 0.0) -> List[PreparedImage]:
    """
    Decode, size-check, normalize and classify product images.

    Invalid or oversized entries are skipped with a warning; an image that
    would push the request past MAX_TOTAL_MB is skipped too.
    """
    out: List[PreparedImage] = []
    total_mb = used_mb
    for i, raw in enumerate(data_urls):
        parsed = parse_data_url(raw)
        if parsed is None:
            logger.warning("product_images[%d] is not a base64 image data URL, skipping", i)
            continue
        mime, payload = parsed
        if mime.lower() not in SUPPORTED_MIME_TYPES:
            logger.warning("product_images[%d] unsupported format %s, skipping", i, mime)
            continue
        approx_mb = len(payload) / _MB
        if approx_mb > MAX_IMAGE_MB:
            logger.warning("product_images[%d] is %.2f MB (> %.0f MB), skipping", i, approx_mb, MAX_IMAGE_MB)
            continue
        try:
            jpeg = normalize_to_jpeg(base64.b64decode(payload))
        except ValueError as e:
            logger.warning("product_images[%d] bad base64 payload, skipping (%s)", i, e)
            continue
        if total_mb + len(jpeg) / _MB > MAX_TOTAL_MB:
            logger.warning("product_images[%d] would exceed %.0f MB total, skipping", i, MAX_TOTAL_MB)
            continue
        total_mb += len(jpeg) / _MB

        out.append(
            PreparedImage(
                index=i,
                jpeg=jpeg,
                b64=base64.b64encode(jpeg).decode("utf-8"),
                classification=classify_jpeg(jpeg),
            )
        )
    return out


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def process_try_on(request: TryOnRequest) -> TryOnResponse:
    """
    STRICT ORDER:
      1) Validate + normalize the user image
      2) Classify user orientation (fail-open)
      3) Prepare + classify product images
      4) Select product images matching the user's orientation
      5) Optional garment analysis -> fit adjustment
      6) Build prompt + generate
      7) On generation failure: fallback response echoing the user image
    """
    if not request.user_image:
        raise TryOnError("No user image received", error_type="VALIDATION_ERROR")
    parsed = parse_data_url(request.user_image)
    if parsed is None:
        raise TryOnError(
            "user_image must be a base64 data URL (data:image/...;base64,...)",
            error_type="VALIDATION_ERROR",
        )
    try:
        user_jpeg = normalize_to_jpeg(base64.b64decode(parsed[1]))
    except ValueError as e:
        raise TryOnError(f"user_image has an invalid base64 payload: {e}", error_type="VALIDATION_ERROR") from e
    user_b64 = base64.b64encode(user_jpeg).decode("utf-8")
    size = normalize_size(request.size)

    # 2) User orientation
    user_cls = classify_jpeg(user_jpeg)
    hint = request.user_orientation
    orientation = resolve_orientation(hint, user_cls)

    # 3) Product images
    products = prepare_product_images(request.all_product_images(), used_mb=len(user_jpeg) / _MB)

    # 4) Orientation match; an explicit hint overrides the classifier.
    match_on = hint if hint in ("front", "back") else user_cls.orientation
    picked = select_product_images(match_on, [p.classification for p in products])
    selected = [products[i] for i in picked]

    # 5) Optional analysis
    analysis: Optional[GarmentAnalysis] = None
    fit: Optional[FitAdjustment] = None
    if request.use_analysis and selected:
        analysis = analyze_products(user_b64, [p.b64 for p in selected])
        if 0 < analysis.use_image_index < len(selected):
            chosen = selected.pop(analysis.use_image_index)
            selected.insert(0, chosen)
        fit = calculate_fit_adjustment(analysis.user_build, size)

    response = TryOnResponse(
        success=True,
        size=size,
        orientation=orientation,
        user_classification=user_cls,
        product_classifications={p.index: p.classification for p in products},
        selected_product_indices=[p.index for p in selected],
        analysis=analysis,
        fit_adjustment=fit,
    )

    logger.info(
        "try-on: orientation=%s (user=%s score=%.1f) size=%s products=%d selected=%s",
        orientation,
        user_cls.orientation,
        user_cls.score,
        size,
        len(products),
        response.selected_product_indices,
    )

    # 6) Generate
    prompt = build_generation_prompt(len(selected), orientation, size, fit=fit, analysis=analysis)
    try:
        gen_b64 = generate(prompt, [user_b64] + [p.b64 for p in selected])
    except Exception as e:
        # 7) Fallback
        error_type = e.error_type if isinstance(e, TryOnError) else classify_error_message(str(e))
        logger.error("try-on: generation failed [%s] %s", error_type, e)
        return response.model_copy(
            update={
                "generated_image": request.user_image,
                "fallback": True,
                "error_type": error_type,
                "error_reason": str(e),
                "timestamp": _now_iso(),
            }
        )

    return response.model_copy(
        update={
            "generated_image": f"data:{guess_mime_from_b64(gen_b64)};base64,{gen_b64}",
            "timestamp": _now_iso(),
        }
    )
