from __future__ import annotations

import base64
import io

import numpy as np
import pytest
from PIL import Image


def _png_data_url(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("utf-8")


def _canvas(w: int, h: int, rgb) -> np.ndarray:
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[...] = rgb
    return arr


@pytest.fixture
def face_image() -> Image.Image:
    """Skin-colored disk where a face would be: classifies as front."""
    arr = _canvas(400, 400, (30, 30, 30))
    ys, xs = np.ogrid[:400, :400]
    arr[(xs - 200) ** 2 + (ys - 110) ** 2 <= 60 * 60] = (210, 160, 130)
    return Image.fromarray(arr)


@pytest.fixture
def back_image() -> Image.Image:
    """Mid-gray torso band, no skin: classifies as back."""
    arr = _canvas(400, 400, (30, 30, 30))
    arr[120:240, :] = (150, 150, 150)
    return Image.fromarray(arr)


@pytest.fixture
def to_data_url():
    return _png_data_url
