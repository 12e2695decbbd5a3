from __future__ import annotations

import argparse
import base64
import json
import logging
import time
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

from tryon.config import MAX_PRODUCT_IMAGES
from tryon.contracts import NEUTRAL_RESULT, TryOnRequest
from tryon.errors import TryOnError
from tryon.io import image_to_data_url, load_image, normalize_to_jpeg, parse_data_url, safe_id_from_relpath, write_json
from tryon.orientation import classify_image
from tryon.pipeline import process_try_on

logger = logging.getLogger(__name__)


def _iter_images(input_dir: Path):
    exts = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff"}
    for p in sorted(input_dir.rglob("*")):
        if p.is_file() and p.suffix.lower() in exts:
            yield p


def _file_to_data_url(path: Path) -> str:
    return image_to_data_url(normalize_to_jpeg(path.read_bytes()), "image/jpeg")


def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Front/back orientation classification + virtual try-on.")
    parser.add_argument("--input", required=True, type=str, help="Directory of product images to classify.")
    parser.add_argument("--output", required=True, type=str, help="Output directory (manifest.jsonl, try-on results).")
    parser.add_argument("--user", type=str, default=None, help="Shopper photo; runs a try-on against the input images.")
    parser.add_argument("--size", type=str, default="M", help="Garment size (XS, S, M, L, XL, XXL).")
    parser.add_argument("--orientation", type=str, default=None, choices=["front", "back"], help="Override user orientation.")
    parser.add_argument("--no-analysis", action="store_true", help="Skip the garment pre-analysis call.")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline steps.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_dir = Path(args.input)
    output_dir = Path(args.output)
    if not input_dir.exists():
        raise FileNotFoundError(f"Input dir not found: {input_dir}")
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = output_dir / "manifest.jsonl"

    images = list(_iter_images(input_dir))
    if not images:
        print(f"No images found under {input_dir}")
        return 0

    stats = {"total": 0, "person": 0, "front": 0, "back": 0, "unknown": 0}

    t0 = time.perf_counter()
    with open(manifest_path, "w", encoding="utf-8") as manifest_fp:
        for img_path in tqdm(images, desc="Classifying", unit="img"):
            rel = img_path.relative_to(input_dir).as_posix()
            try:
                result = classify_image(load_image(str(img_path)))
            except Exception as e:
                logger.warning("Could not read %s (%s: %s)", img_path, type(e).__name__, e)
                result = NEUTRAL_RESULT

            record = {
                "image_id": safe_id_from_relpath(rel),
                "source_image": str(img_path),
                "has_person": result.has_person,
                "orientation": result.orientation,
                "score": round(result.score, 4),
            }
            manifest_fp.write(json.dumps(record, ensure_ascii=False) + "\n")

            stats["total"] += 1
            stats[result.orientation] += 1
            if result.has_person:
                stats["person"] += 1

    if args.user:
        request = TryOnRequest(
            user_image=_file_to_data_url(Path(args.user)),
            product_images=[_file_to_data_url(p) for p in images[:MAX_PRODUCT_IMAGES]],
            size=args.size,
            user_orientation=args.orientation,
            use_analysis=not args.no_analysis,
        )
        try:
            response = process_try_on(request)
        except TryOnError as e:
            print(f"Try-on rejected [{e.error_type}]: {e}")
            return 2

        parsed = parse_data_url(response.generated_image or "")
        if parsed is not None:
            (output_dir / "tryon.jpg").write_bytes(normalize_to_jpeg(base64.b64decode(parsed[1])))
        payload = response.model_dump(exclude={"generated_image"})
        write_json(str(output_dir / "tryon.json"), payload)
        status = "fallback" if response.fallback else "generated"
        print(f"Try-on {status}: orientation={response.orientation} selected={response.selected_product_indices}")
        if response.fallback:
            print(f"- error: [{response.error_type}] {response.error_reason}")

    t1 = time.perf_counter()
    print(
        "Done.\n"
        f"- total: {stats['total']}\n"
        f"- with person: {stats['person']}\n"
        f"- orientation: front={stats['front']} back={stats['back']} unknown={stats['unknown']}\n"
        f"- elapsed_s: {t1 - t0:.2f}\n"
        f"- manifest: {manifest_path.resolve()}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
