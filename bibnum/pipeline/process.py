"""High-level pipeline: edges → stroke widths → components → chains → OCR.

`find_chains` runs the purely geometric stages and returns every intermediate
result; `TextDetector.detect` adds chain acceptance, rectification and OCR.
A run keeps no state between images, so one detector may serve several images.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from bibnum.config import DetectionParams
from bibnum.image import (
    chain_angle,
    chain_bounding_box,
    compute_gradients,
    detect_edges,
    rectify_chain,
    to_grayscale,
)
from bibnum.ocr import Recognizer, TesseractRecognizer, accept_text, parse_numbers
from bibnum.render import render_chains_with_boxes, render_components_with_boxes, render_swt
from bibnum.swt import (
    Chain,
    Component,
    Ray,
    filter_components,
    find_connected_components,
    make_chains,
    stroke_width_transform,
    swt_median_filter,
)

logger = logging.getLogger(__name__)


@dataclass
class ChainDetection:
    """Intermediate results of one geometric detection run."""

    gray: np.ndarray
    swt: np.ndarray
    rays: List[Ray]
    components: List[Component]
    chains: List[Chain]


def print_progress_bar(done: int, total: int, width: int = 10) -> None:
    """Render a colored one-line progress bar of processed images.

    Doxygen:
    - @param done: Number of images processed so far.
    - @param total: Total number of images.
    - @param width: Number of bar segments (default 10).
    """
    total = max(1, total)
    done = max(0, min(done, total))
    segments = max(1, int(width))
    filled = segments if done >= total else int(done / total * segments)
    pending = max(0, segments - filled)
    GREEN = "\x1b[32m"
    RED = "\x1b[31m"
    RESET = "\x1b[0m"
    bar = f"{GREEN}{'█'*filled}{RESET}{RED}{'█'*pending}{RESET} [{done}/{total}]"
    print(f"\r{bar}", end="", flush=True)


def find_chains(img_bgr: np.ndarray, params: Optional[DetectionParams] = None) -> ChainDetection:
    """Run the geometric stages on one image.

    Doxygen:
    - @param img_bgr: Input image, BGR uint8 with 3 channels.
    - @param params: Detection parameters (defaults if None).
    - @return: `ChainDetection` with the stroke width map, rays, filtered
      components and accepted-length chains.
    - @throws ValueError: If the image is not 3-channel uint8.
    """
    params = params or DetectionParams()
    gray = to_grayscale(img_bgr)
    edges = detect_edges(gray)
    grad_x, grad_y = compute_gradients(gray)

    swt, rays = stroke_width_transform(
        edges,
        grad_x,
        grad_y,
        dark_on_light=params.dark_on_light,
        max_stroke_length=params.max_stroke_length,
    )
    swt_median_filter(swt, rays)

    raw = find_connected_components(swt)
    components = filter_components(
        swt,
        raw,
        top_border=params.top_border,
        bottom_border=params.bottom_border,
        image=img_bgr,
    )
    chains = make_chains(components)
    logger.debug(
        "%d rays, %d raw components, %d components, %d chains",
        len(rays), len(raw), len(components), len(chains),
    )
    return ChainDetection(gray=gray, swt=swt, rays=rays, components=components, chains=chains)


def accept_chain(
    chain: Chain,
    components: List[Component],
    image_width: int,
    params: DetectionParams,
) -> bool:
    """Check a chain's span, character height and orientation.

    Doxygen:
    - @param chain: Candidate chain.
    - @param components: Components indexed by the chain.
    - @param image_width: Width of the source image in pixels.
    - @param params: Detection parameters.
    - @return: True when the chain may be handed to OCR.
    """
    min_x, _, max_x, _ = chain_bounding_box(chain, components)
    min_span = image_width / params.max_img_width_to_text_ratio
    if max_x - min_x < min_span:
        logger.debug("Chain span %d < %.1f", max_x - min_x, min_span)
        return False

    min_height = min(components[i].width for i in chain.components)
    if min_height < params.min_character_height:
        logger.debug(
            "Reject chain %s minHeight=%.1f<%d",
            chain.components, min_height, params.min_character_height,
        )
        return False

    theta = chain_angle(chain.direction)
    if abs(theta) > params.max_angle:
        logger.debug("Chain angle %.1f exceeds max %.1f", theta, params.max_angle)
        return False
    logger.debug("Chain angle: %.1f degrees", theta)
    return True


def _write_debug_images(debug_dir: str, detection: ChainDetection) -> None:
    os.makedirs(debug_dir, exist_ok=True)
    cv2.imwrite(os.path.join(debug_dir, "SWT.png"), render_swt(detection.swt))
    cv2.imwrite(
        os.path.join(debug_dir, "components.png"),
        render_components_with_boxes(detection.swt, detection.components),
    )
    cv2.imwrite(
        os.path.join(debug_dir, "text-boxes.png"),
        render_chains_with_boxes(detection.swt, detection.components, detection.chains),
    )


class TextDetector:
    """Detects digit runs in images with a fixed OCR collaborator."""

    def __init__(self, recognizer: Optional[Recognizer] = None, lang: str = "eng") -> None:
        self.recognizer = recognizer if recognizer is not None else TesseractRecognizer(lang=lang)

    def detect(
        self,
        img_bgr: np.ndarray,
        params: Optional[DetectionParams] = None,
        debug_dir: Optional[str] = None,
    ) -> List[str]:
        """Return the digit strings read from accepted chains, in chain order.

        Doxygen:
        - @param img_bgr: Input image, BGR uint8 with 3 channels.
        - @param params: Detection parameters (defaults if None).
        - @param debug_dir: If set, intermediate renderings are written there.
        - @return: One string per chain whose OCR result was accepted.
        - @throws ValueError: If the image is not 3-channel uint8.
        """
        params = params or DetectionParams()
        detection = find_chains(img_bgr, params)
        if debug_dir:
            _write_debug_images(debug_dir, detection)

        image_width = detection.gray.shape[1]
        texts: List[str] = []
        for chain in detection.chains:
            if not accept_chain(chain, detection.components, image_width, params):
                continue
            patch = rectify_chain(
                detection.gray, chain, detection.components, dark_on_light=params.dark_on_light
            )
            if patch is None:
                logger.debug("Chain %s rotates out of the image", chain.components)
                continue
            text = accept_text(self.recognizer(patch), len(chain.components))
            if text is None:
                continue
            logger.debug("Chain text: %s", text)
            texts.append(text)
        return texts


def detect_text(
    img_bgr: np.ndarray,
    params: Optional[DetectionParams] = None,
    recognizer: Optional[Recognizer] = None,
    debug_dir: Optional[str] = None,
) -> List[str]:
    """Convenience wrapper around `TextDetector.detect`."""
    return TextDetector(recognizer=recognizer).detect(img_bgr, params, debug_dir=debug_dir)


def process_image(
    image_path: str,
    params: Optional[DetectionParams] = None,
    detector: Optional[TextDetector] = None,
    debug_dir: Optional[str] = None,
) -> List[int]:
    """Read an image file and return the numbers found in it.

    Doxygen:
    - @param image_path: Path to a .jpg/.png image.
    - @param params: Detection parameters (defaults if None).
    - @param detector: Detector to use; a tesseract-backed one if None.
    - @param debug_dir: Optional directory for debug renderings.
    - @return: Sorted unique integers read from the image.
    - @throws FileNotFoundError: If the file does not exist.
    - @throws RuntimeError: If OpenCV cannot decode the file.
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image file not found: {image_path}")
    img_bgr = cv2.imread(image_path, cv2.IMREAD_COLOR)
    if img_bgr is None:
        raise RuntimeError(f"Failed to load image: {image_path}")
    detector = detector or TextDetector()
    return parse_numbers(detector.detect(img_bgr, params, debug_dir=debug_dir))
