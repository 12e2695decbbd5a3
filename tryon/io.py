from __future__ import annotations

import base64
import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from .config import JPEG_QUALITY
from .pixels import PixelBuffer

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)


def parse_data_url(data_url: Any) -> Optional[Tuple[str, str]]:
    """
    Split "data:image/<type>;base64,<payload>" into (mime, payload).
    Returns None for anything else.
    """
    if not isinstance(data_url, str) or not data_url.startswith("data:image/"):
        return None
    m = _DATA_URL_RE.match(data_url)
    if not m:
        return None
    return m.group(1), m.group(2)


def image_to_data_url(raw: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('utf-8')}"


def guess_mime_from_b64(data_b64: str, default: str = "image/jpeg") -> str:
    if data_b64.startswith("iVBOR"):
        return "image/png"
    if data_b64.startswith("UklGR"):
        return "image/webp"
    if data_b64.startswith("/9j/"):
        return "image/jpeg"
    return default


def load_image(path: str) -> Image.Image:
    img = Image.open(path)
    img.load()
    return img


def decode_image(raw: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(raw))
    img.load()
    return img


def _flatten_alpha_to_white(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        bg = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        comp = Image.alpha_composite(bg, rgba)
        return comp.convert("RGB")
    return img.convert("RGB")


def image_to_jpeg_bytes(img: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    _flatten_alpha_to_white(img).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def normalize_to_jpeg(raw: bytes, quality: int = JPEG_QUALITY) -> bytes:
    """
    Re-encode any non-JPEG image (PNG, WEBP, TIFF, ...) as JPEG.

    JPEG input passes through untouched. Bytes Pillow cannot read are
    returned as-is; the model endpoint gets the final say on them.
    """
    try:
        img = decode_image(raw)
    except Exception as e:
        logger.warning("normalize_to_jpeg: unreadable image, passing through (%s)", e)
        return raw
    if img.format == "JPEG":
        return raw
    return image_to_jpeg_bytes(img, quality=quality)


def pixel_buffer_from_image(img: Image.Image) -> PixelBuffer:
    arr = np.array(img.convert("RGBA"), dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError(f"Expected RGBA image array, got shape={arr.shape}")
    h, w = arr.shape[:2]
    return PixelBuffer(width=w, height=h, pixels=arr)


def pixel_buffer_from_bytes(raw: bytes) -> PixelBuffer:
    return pixel_buffer_from_image(decode_image(raw))


def write_json(path: str, data: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")


def safe_id_from_relpath(relpath: str) -> str:
    """
    Make a stable, filesystem-safe id from a relative path.
    Example: "foo/bar/img 1.png" -> "foo__bar__img_1"
    """
    p = Path(relpath)
    stem = p.with_suffix("").as_posix()
    stem = stem.replace("/", "__")
    stem = "".join(ch if ch.isalnum() or ch in ("_", "-", ".") else "_" for ch in stem)
    return stem
