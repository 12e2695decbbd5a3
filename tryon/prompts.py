from __future__ import annotations

from typing import Optional

from .config import ALLOWED_ORIENTATIONS, DEFAULT_ORIENTATION, GENERATION_PROMPT, SIZE_MAP
from .contracts import FitAdjustment, GarmentAnalysis
from .fit import normalize_size


def size_instruction(size: Optional[str]) -> str:
    return SIZE_MAP[normalize_size(size)]


def build_generation_prompt(
    product_count: int,
    orientation: str,
    size: Optional[str],
    fit: Optional[FitAdjustment] = None,
    analysis: Optional[GarmentAnalysis] = None,
) -> str:
    if orientation not in ALLOWED_ORIENTATIONS:
        orientation = DEFAULT_ORIENTATION

    fit_instruction = f"- {fit.visual_instruction}\n" if fit is not None else ""

    analysis_notes = ""
    if analysis is not None and analysis.description:
        analysis_notes = (
            "\nGarment notes (from a prior look at the product images):\n"
            f"- {analysis.description}\n"
        )

    return GENERATION_PROMPT.format(
        product_count=product_count,
        orientation=orientation,
        size_instruction=size_instruction(size),
        fit_instruction=fit_instruction,
        analysis_notes=analysis_notes,
    )
