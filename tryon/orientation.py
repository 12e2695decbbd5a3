"""
Front/back orientation heuristic for shopper and product photos.

Coarse color statistics only: no trained model, no edge detection. Three
regions are sampled on a fixed stride:

  - upper:  head/face band, centered horizontally
  - torso:  chest band, wider than the upper region
  - center: square around the image midpoint ("any skin present" signal)

Skin-like pixels use a permissive RGB gate with no skin-tone calibration;
misclassifications are a known accuracy limit of the heuristic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from .config import (
    BODY_BRIGHTNESS,
    CENTER_REGION_SIDE,
    DEFAULT_ORIENTATION,
    FACE_RADIUS_FRACTION,
    FALLBACK_BODY_MIN,
    FALLBACK_FACE_MIN,
    FALLBACK_UPPER_MAX,
    PERSON_REGION_SKIN_MIN,
    PERSON_SKIN_TONE_MIN,
    SAMPLE_STEP,
    SKIN_B,
    SKIN_G,
    SKIN_MIN_RB_SPREAD,
    SKIN_R,
    TORSO_REGION,
    UPPER_REGION,
)
from .contracts import NEUTRAL_RESULT, ClassificationResult
from .io import pixel_buffer_from_image
from .pixels import PixelBuffer, Region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrientationSignals:
    upper_skin: float
    torso_skin: float
    face_like: float
    body_structure: float
    skin_tone: float
    samples: int
    evidence: int

    @property
    def front_score(self) -> float:
        return 0.4 * self.upper_skin + 0.4 * self.face_like + 0.2 * self.torso_skin

    @property
    def back_score(self) -> float:
        return 0.3 * (1.0 - self.upper_skin) + 0.4 * self.body_structure + 0.3 * (1.0 - self.face_like)


def skin_mask(rgb: np.ndarray) -> np.ndarray:
    """Boolean mask of skin-like pixels for an (..., 3) int array."""
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return (
        (r > SKIN_R[0])
        & (r < SKIN_R[1])
        & (g > SKIN_G[0])
        & (g < SKIN_G[1])
        & (b > SKIN_B[0])
        & (b < SKIN_B[1])
        & (r > g)
        & (g > b)
        & (r - b > SKIN_MIN_RB_SPREAD)
    )


def brightness_mask(rgb: np.ndarray) -> np.ndarray:
    avg = rgb.sum(axis=-1) / 3.0
    return (avg >= BODY_BRIGHTNESS[0]) & (avg <= BODY_BRIGHTNESS[1])


def _ratio(count: int, total: int) -> float:
    return float(count) / float(total) if total else 0.0


def sampling_regions(width: int, height: int) -> tuple[Region, Region, Region]:
    """Returns (upper, torso, center) for an image of the given size."""
    upper = Region.from_fractions(width, height, *UPPER_REGION)
    torso = Region.from_fractions(width, height, *TORSO_REGION)
    side = int(min(width, height) * CENTER_REGION_SIDE)
    center = Region(x=(width - side) // 2, y=(height - side) // 2, width=side, height=side)
    return upper, torso, center


def measure(image: PixelBuffer, step: int = SAMPLE_STEP) -> OrientationSignals:
    upper, torso, center = sampling_regions(image.width, image.height)

    up_rgb, xs, ys = image.sample(upper, step)
    up_skin = skin_mask(up_rgb)

    # Face-like: skin concentrated in a disk at the upper region's center.
    cx, cy = upper.center
    radius = FACE_RADIUS_FRACTION * min(upper.width, upper.height) / 2.0
    dx = xs[np.newaxis, :] - cx
    dy = ys[:, np.newaxis] - cy
    in_face = (dx * dx + dy * dy) < radius * radius

    torso_rgb, _, _ = image.sample(torso, step)
    torso_skin = skin_mask(torso_rgb)
    torso_body = brightness_mask(torso_rgb)

    center_rgb, _, _ = image.sample(center, step)
    center_skin = skin_mask(center_rgb)

    up_count = int(up_skin.sum())
    torso_count = int(torso_skin.sum())
    body_count = int(torso_body.sum())
    center_count = int(center_skin.sum())

    return OrientationSignals(
        upper_skin=_ratio(up_count, up_skin.size),
        torso_skin=_ratio(torso_count, torso_skin.size),
        face_like=_ratio(int((up_skin & in_face).sum()), int(in_face.sum())),
        body_structure=_ratio(body_count, torso_body.size),
        skin_tone=_ratio(center_count, center_skin.size),
        samples=up_skin.size + torso_skin.size + center_skin.size,
        evidence=up_count + torso_count + body_count + center_count,
    )


def decide(signals: OrientationSignals) -> ClassificationResult:
    if signals.samples == 0:
        return NEUTRAL_RESULT
    if signals.evidence == 0:
        # Blank-canvas case only: with every ratio at zero the weights alone
        # would give back 0.6 vs front 0. A single pixel in the brightness
        # band leaves this branch and can flip the result to back.
        return ClassificationResult(has_person=False, orientation=DEFAULT_ORIENTATION, score=0.0)

    has_person = (
        signals.skin_tone > PERSON_SKIN_TONE_MIN
        or signals.upper_skin > PERSON_REGION_SKIN_MIN
        or signals.torso_skin > PERSON_REGION_SKIN_MIN
    )
    front, back = signals.front_score, signals.back_score

    if has_person:
        orientation = "back" if back > front else "front"
    elif signals.body_structure > FALLBACK_BODY_MIN and signals.upper_skin < FALLBACK_UPPER_MAX:
        orientation = "back"
    elif signals.upper_skin > FALLBACK_UPPER_MAX or signals.face_like > FALLBACK_FACE_MIN:
        orientation = "front"
    else:
        orientation = "back" if back > front else "front"

    score = (
        (100.0 if has_person else 0.0)
        + {"front": 50.0, "back": 25.0}.get(orientation, 0.0)
        + signals.skin_tone * 10.0
        + signals.upper_skin * 100.0
        + signals.face_like * 150.0
    )
    return ClassificationResult(has_person=has_person, orientation=orientation, score=score)


def classify(image: PixelBuffer) -> ClassificationResult:
    """
    Classify an image as a person facing the camera, facing away, or unknown.

    `score` only ranks candidate images against each other; it is not a
    probability.
    """
    return decide(measure(image))


def classify_safe(image: PixelBuffer) -> ClassificationResult:
    """
    Same as classify(), but any failure maps to the neutral "unknown" result.
    """
    try:
        return classify(image)
    except Exception as e:
        logger.warning("orientation: classification failed (%s: %s)", type(e).__name__, e)
        return NEUTRAL_RESULT


def classify_image(img: Image.Image) -> ClassificationResult:
    try:
        buf = pixel_buffer_from_image(img)
    except Exception as e:
        logger.warning("orientation: could not read pixels (%s: %s)", type(e).__name__, e)
        return NEUTRAL_RESULT
    return classify_safe(buf)
