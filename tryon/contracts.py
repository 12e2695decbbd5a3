from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import MAX_PRODUCT_IMAGES

Orientation = Literal["front", "back", "unknown"]


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_person: bool
    orientation: Orientation
    score: float = Field(ge=0.0)


NEUTRAL_RESULT = ClassificationResult(has_person=False, orientation="unknown", score=0.0)


class FitAdjustment(BaseModel):
    type: Literal["very_tight", "tight", "normal", "loose", "very_loose"]
    intensity: int
    natural_size: str
    selected_size: str
    description: str
    visual_instruction: str


class GarmentAnalysis(BaseModel):
    """Result of the optional vision pre-analysis."""

    use_image_index: int = 0
    garment_orientation: Literal["front", "back"] = "front"
    user_build: str = "average"
    description: str = ""
    reasoning: str = ""
    confidence: Literal["high", "medium", "low"] = "low"


class TryOnRequest(BaseModel):
    user_image: Optional[str] = None
    product_images: List[str] = Field(default_factory=list)
    product_image: Optional[str] = None
    size: str = "M"
    user_orientation: Optional[str] = None
    use_analysis: bool = True

    def all_product_images(self) -> List[str]:
        """Product images in request order, capped at MAX_PRODUCT_IMAGES."""
        if self.product_images:
            return list(self.product_images[:MAX_PRODUCT_IMAGES])
        if self.product_image:
            return [self.product_image]
        return []


class TryOnResponse(BaseModel):
    success: bool
    generated_image: Optional[str] = None
    size: str = "M"
    orientation: Literal["front", "back"] = "front"
    user_classification: ClassificationResult = NEUTRAL_RESULT
    product_classifications: Dict[int, ClassificationResult] = Field(default_factory=dict)
    selected_product_indices: List[int] = Field(default_factory=list)
    analysis: Optional[GarmentAnalysis] = None
    fit_adjustment: Optional[FitAdjustment] = None
    fallback: bool = False
    error_type: str = ""
    error_reason: str = ""
    timestamp: str = ""
