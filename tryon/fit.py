from __future__ import annotations

from typing import Optional

from .config import BUILD_TO_SIZE, DEFAULT_SIZE, SIZE_ORDER
from .contracts import FitAdjustment


def normalize_size(size: Optional[str]) -> str:
    s = (size or DEFAULT_SIZE).strip().upper()
    return s if s in SIZE_ORDER else DEFAULT_SIZE


def natural_size_for_build(build: Optional[str]) -> str:
    b = (build or "average").lower()
    for phrase, size in BUILD_TO_SIZE:
        if phrase in b:
            return size
    return DEFAULT_SIZE


def calculate_fit_adjustment(user_build: Optional[str], selected_size: Optional[str]) -> FitAdjustment:
    """
    Compare the size the user picked with the size their build would
    normally wear, and describe how the garment should sit on them.
    """
    build = user_build or "average"
    size = normalize_size(selected_size)
    natural = natural_size_for_build(build)
    diff = SIZE_ORDER.index(size) - SIZE_ORDER.index(natural)

    if diff <= -2:
        return FitAdjustment(
            type="very_tight",
            intensity=2,
            natural_size=natural,
            selected_size=size,
            description=f"Size {size} is much too small for a {build} build",
            visual_instruction=(
                f"CRITICAL FIT ADJUSTMENT: the user has a {build} build but chose size {size} "
                f"(their natural size would be {natural}). The garment MUST look VERY TIGHT and SMALL:\n"
                "- Fabric visibly stretched and pulling at the seams\n"
                "- Garment clinging to the body, showing its contours\n"
                "- Sleeves too short, torso riding up\n"
                "- It should look two sizes too small"
            ),
        )
    if diff == -1:
        return FitAdjustment(
            type="tight",
            intensity=1,
            natural_size=natural,
            selected_size=size,
            description=f"Size {size} is slightly small for a {build} build",
            visual_instruction=(
                f"FIT ADJUSTMENT: the user has a {build} build and chose size {size} (slightly small). "
                "The garment should look FITTED/SNUG:\n"
                "- Fabric slightly stretched, close to the body\n"
                "- Sleeves may be slightly short\n"
                "- It should look one size too small"
            ),
        )
    if diff == 0:
        return FitAdjustment(
            type="normal",
            intensity=0,
            natural_size=natural,
            selected_size=size,
            description=f"Size {size} suits a {build} build",
            visual_instruction=(
                f"STANDARD FIT: the user's build ({build}) matches size {size}. "
                "Drape the garment as designed, as shown on the product model."
            ),
        )
    if diff == 1:
        return FitAdjustment(
            type="loose",
            intensity=1,
            natural_size=natural,
            selected_size=size,
            description=f"Size {size} is slightly large for a {build} build",
            visual_instruction=(
                f"FIT ADJUSTMENT: the user has a {build} build and chose size {size} (slightly large). "
                "The garment should look RELAXED/LOOSE:\n"
                "- Some extra fabric and slight bagginess\n"
                "- Sleeves may be slightly long\n"
                "- It should look one size too big"
            ),
        )
    return FitAdjustment(
        type="very_loose",
        intensity=2,
        natural_size=natural,
        selected_size=size,
        description=f"Size {size} is much too large for a {build} build",
        visual_instruction=(
            f"CRITICAL FIT ADJUSTMENT: the user has a {build} build but chose size {size} "
            f"(their natural size would be {natural}). The garment MUST look VERY LOOSE and OVERSIZED:\n"
            "- Significant excess fabric, visible bunching\n"
            "- Sleeves past the wrists, shoulder seams dropped\n"
            "- It should look two or more sizes too big"
        ),
    )
