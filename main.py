"""
Entry point and facade for the SWT digit detection pipeline.

This module exposes a stable API and a CLI.

Packages:
- bibnum.swt: Stroke width transform, connected components, chain building
- bibnum.image: Edge/gradient provider and chain rectification
- bibnum.ocr: Tesseract recognizer and digit acceptance
- bibnum.pipeline: Detector orchestration (`TextDetector`) and batch processing
- bibnum.render: Debug renderings
"""

from __future__ import annotations

import logging

from bibnum.config import (
    DetectionParams,
    configure_dependencies,
    load_detection_params,
)
from bibnum.pipeline import TextDetector, detect_text, find_chains, process_image
from bibnum.pipeline.batch import Score, process_path

__all__ = [
    # config
    "DetectionParams",
    "configure_dependencies",
    "load_detection_params",
    # detection
    "TextDetector",
    "detect_text",
    "find_chains",
    "process_image",
    # batch
    "Score",
    "process_path",
]


def _cli(argv=None) -> int:
    """CLI for single images, ground-truth CSV files and image directories.

    path: image (.jpg/.png), ground truth CSV (.csv) or directory
    --params: JSON file with detection parameters (default: config/detection.json)
    --dark-on-light / --light-on-dark: stroke polarity
    --max-stroke-length, --min-char-height, --max-angle, --width-ratio,
    --top-border, --bottom-border: override single parameters
    --lang: Tesseract language (default: eng)
    --debug-dir: write SWT/component/chain renderings there (single image only)
    --verbose / -v: debug logging
    """
    import argparse

    parser = argparse.ArgumentParser(description="Detect and read digit runs in images using the Stroke Width Transform.")
    parser.add_argument("path", type=str, help="Image file, ground truth CSV or directory of images")
    parser.add_argument("--params", type=str, default=None, help="JSON file with detection parameters")
    polarity = parser.add_mutually_exclusive_group()
    polarity.add_argument("--dark-on-light", dest="dark_on_light", action="store_true", default=None, help="Text is darker than the background")
    polarity.add_argument("--light-on-dark", dest="dark_on_light", action="store_false", help="Text is lighter than the background")
    parser.add_argument("--max-stroke-length", type=float, default=None, help="Maximum stroke width in pixels")
    parser.add_argument("--min-char-height", type=int, default=None, help="Minimum character height in pixels")
    parser.add_argument("--max-angle", type=float, default=None, help="Maximum text line angle in degrees")
    parser.add_argument("--width-ratio", type=float, default=None, help="Maximum image width to text line width ratio")
    parser.add_argument("--top-border", type=int, default=None, help="Rows at the top to ignore")
    parser.add_argument("--bottom-border", type=int, default=None, help="Rows at the bottom to ignore")
    parser.add_argument("--lang", type=str, default="eng", help="Tesseract language (default: eng)")
    parser.add_argument("--debug-dir", type=str, default=None, help="Directory for debug images (single image only)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_dependencies()

    overrides = {
        "dark_on_light": args.dark_on_light,
        "max_stroke_length": args.max_stroke_length,
        "min_character_height": args.min_char_height,
        "max_angle": args.max_angle,
        "max_img_width_to_text_ratio": args.width_ratio,
        "top_border": args.top_border,
        "bottom_border": args.bottom_border,
    }
    try:
        base = load_detection_params(args.params)
        merged = base.to_dict()
        merged.update({k: v for k, v in overrides.items() if v is not None})
        params = DetectionParams.from_dict(merged)
    except (OSError, ValueError) as e:
        print(f"Invalid parameters: {e}")
        return 2

    detector = TextDetector(lang=args.lang)
    try:
        if args.debug_dir:
            numbers = process_image(args.path, params, detector=detector, debug_dir=args.debug_dir)
            print(f"Read: [{' '.join(str(n) for n in numbers)}]")
            return 0
        result = process_path(args.path, detector=detector, params=params)
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if isinstance(result, list):
        print(f"Read: [{' '.join(str(n) for n in result)}]")
    return 0


if __name__ == "__main__":
    raise SystemExit(_cli())
