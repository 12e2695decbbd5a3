from __future__ import annotations

from typing import AbstractSet, List, Optional, Sequence

from .config import ALLOWED_ORIENTATIONS, DEFAULT_ORIENTATION
from .contracts import ClassificationResult


def select_product_images(
    user_orientation: str,
    products: Sequence[ClassificationResult],
    allowed: AbstractSet[str] = ALLOWED_ORIENTATIONS,
) -> List[int]:
    """
    Indices of the product images to send on to generation.

    Products facing the same way as the user come first, best score first.
    If the user's orientation is not usable, or nothing matches, every
    product index is returned in its original order.
    """
    every = list(range(len(products)))
    if user_orientation not in allowed:
        return every

    matching = [i for i, p in enumerate(products) if p.orientation == user_orientation]
    if not matching:
        return every
    # sorted() is stable: equal scores keep their input order.
    return sorted(matching, key=lambda i: products[i].score, reverse=True)


def resolve_orientation(
    hint: Optional[str],
    classified: ClassificationResult,
    allowed: AbstractSet[str] = ALLOWED_ORIENTATIONS,
    default: str = DEFAULT_ORIENTATION,
) -> str:
    """Explicit caller hint > classifier verdict > default."""
    if hint in allowed:
        return str(hint)
    if classified.orientation in allowed:
        return classified.orientation
    return default
