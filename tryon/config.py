ANALYSIS_MODEL = "gemini-2.5-flash"
GENERATION_MODEL = "gemini-2.5-flash-image"

MAX_GEN_RETRIES = 1

# Orientation heuristic. Values are empirical; keep them exact, downstream
# ranking depends on their relative ordering.
SAMPLE_STEP = 4

UPPER_REGION = (0.30, 0.15, 0.40, 0.25)  # x, y, w, h as fractions of the image
TORSO_REGION = (0.25, 0.30, 0.50, 0.30)
CENTER_REGION_SIDE = 0.30  # fraction of min(width, height)
FACE_RADIUS_FRACTION = 0.6  # of the upper region's half-minor dimension

SKIN_R = (95, 240)
SKIN_G = (40, 210)
SKIN_B = (20, 200)
SKIN_MIN_RB_SPREAD = 15
BODY_BRIGHTNESS = (80, 220)

PERSON_SKIN_TONE_MIN = 0.1
PERSON_REGION_SKIN_MIN = 0.05
FALLBACK_BODY_MIN = 0.4
FALLBACK_UPPER_MAX = 0.1
FALLBACK_FACE_MIN = 0.05

ALLOWED_ORIENTATIONS = frozenset({"front", "back"})
DEFAULT_ORIENTATION = "front"

# Upload limits (per image / whole request).
MAX_IMAGE_MB = 4.0
MAX_TOTAL_MB = 15.0
MAX_PRODUCT_IMAGES = 3
SUPPORTED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
JPEG_QUALITY = 90

SIZE_ORDER = ("XS", "S", "M", "L", "XL", "XXL")
DEFAULT_SIZE = "M"

SIZE_MAP = {
    "XS": "very tight, form-fitting",
    "S": "fitted, slightly snug, close to body",
    "M": "standard fit, comfortable, natural",
    "L": "relaxed fit, slightly loose, comfortable",
    "XL": "oversized, loose-fitting, baggy",
    "XXL": "very oversized, very loose, very baggy",
}

# Order matters: "very slim" must match before "slim".
BUILD_TO_SIZE = (
    ("very slim", "XS"),
    ("very broad", "XXL"),
    ("slim", "S"),
    ("average", "M"),
    ("athletic", "M"),
    ("broad", "L"),
    ("plus-size", "XL"),
)

ANALYSIS_PROMPT = """You will receive several images. The FIRST image is the USER (person to dress).
The remaining images show a GARMENT (clothing product), possibly worn by a model.

Pick the product image that best shows the garment from the side matching the user's pose,
and estimate the user's build.

Answer strictly in JSON:
{
  "user_image": {"index": <number>, "build": "very slim" | "slim" | "average" | "athletic" | "broad" | "plus-size" | "very broad"},
  "garment_image": {"index": <number>, "orientation": "front" | "back", "description": "short"},
  "reasoning": "short",
  "confidence": "high" | "medium" | "low"
}
"""

GENERATION_PROMPT = """DRESS THE USER WITH THE EXACT GARMENT FROM THE PRODUCT IMAGES.

The FIRST image is the USER (person to dress). The remaining {product_count} image(s) are PRODUCT images:
the garment alone, on a mannequin, or worn by a model.

Orientation:
- The user is seen from the {orientation}. Show the {orientation} of the garment.

Fit:
- Apply {size_instruction} sizing.
{fit_instruction}
Rules:
- Use ONLY the garment shown in the product images; do not invent clothing.
- Do NOT change garment color, logo, or design details.
- Keep the user's face, skin, hair, accessories, pose and background intact.
- Realistic lighting, folds and shadows consistent with the user image.
- Do NOT generate NSFW, violent, or unsafe content.
{analysis_notes}
Output a single high-quality image at a resolution similar to the user image.
"""
