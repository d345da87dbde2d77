"""Image-level helpers around the stroke width core.

- Edge mask and gradient fields (Canny, Gaussian smoothing, Scharr) for the
  ray transform.
- Chain geometry (union bounding box, orientation) and rectification of a chain
  into an upscaled, eroded binary patch for OCR.

These utilities operate on numpy image arrays (BGR/grayscale uint8) using OpenCV.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from bibnum.swt.model import BoundingBox, Chain, Component

CANNY_LOW = 175
CANNY_HIGH = 320
PATCH_BORDER = 3
UPSCALE = 3.0
ERODE_FRACTION = 0.05


def to_grayscale(img_bgr: np.ndarray) -> np.ndarray:
    """Validate a 3-channel uint8 image and convert it to grayscale.

    Doxygen:
    - @param img_bgr: Input image in BGR order, shape (H, W, 3), dtype uint8.
    - @return: Grayscale uint8 image of shape (H, W).
    - @throws ValueError: If the array is not a 3-channel 8-bit image.
    """
    if not isinstance(img_bgr, np.ndarray) or img_bgr.dtype != np.uint8:
        raise ValueError("Expected an 8-bit image array")
    if img_bgr.ndim != 3 or img_bgr.shape[2] != 3:
        raise ValueError(f"Expected a 3-channel image, got shape {img_bgr.shape}")
    return cv2.cvtColor(img_bgr, cv2.COLOR_BGR2GRAY)


def detect_edges(gray: np.ndarray, low: float = CANNY_LOW, high: float = CANNY_HIGH) -> np.ndarray:
    """Canny edge mask (0/255) with a 3x3 aperture."""
    return cv2.Canny(gray, low, high, apertureSize=3)


def compute_gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Smoothed Scharr gradients of a grayscale image scaled to [0, 1].

    Doxygen:
    - @param gray: Grayscale uint8 image.
    - @return: (grad_x, grad_y) float32 fields of the image's shape.
    """
    smooth = cv2.GaussianBlur(gray.astype(np.float32) / 255.0, (5, 5), 0)
    grad_x = cv2.Scharr(smooth, cv2.CV_32F, 1, 0)
    grad_y = cv2.Scharr(smooth, cv2.CV_32F, 0, 1)
    return cv2.medianBlur(grad_x, 3), cv2.medianBlur(grad_y, 3)


def chain_bounding_box(chain: Chain, components: Sequence[Component]) -> BoundingBox:
    """Union of the axis-aligned boxes of a chain's components."""
    boxes = np.array([components[i].bbox for i in chain.components])
    return (
        int(boxes[:, 0].min()),
        int(boxes[:, 1].min()),
        int(boxes[:, 2].max()),
        int(boxes[:, 3].max()),
    )


def chain_angle(direction: Tuple[float, float]) -> float:
    """Chain angle in degrees, direction flipped to point right first (-90..90]."""
    dx, dy = direction
    if dx < 0:
        dx, dy = -dx, -dy
    return math.degrees(math.atan2(dy, dx))


def _clipped_box(points: np.ndarray, width: int, height: int) -> Tuple[int, int, int, int]:
    xs = np.clip(points[:, 0], 0, width - 1)
    ys = np.clip(points[:, 1], 0, height - 1)
    return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())


def rectify_chain(
    gray: np.ndarray,
    chain: Chain,
    components: Sequence[Component],
    dark_on_light: bool = True,
    border: int = PATCH_BORDER,
    upscale: float = UPSCALE,
) -> Optional[np.ndarray]:
    """Cut a chain out of the image as a horizontal, binarized OCR patch.

    Each component's box is Otsu-thresholded on its own so strokes come out
    white on black. The result is rotated about the chain box centre by the
    chain angle, cropped to the rotated component boxes plus `border`, upscaled
    and eroded with an ellipse of 5% of the upscaled height to split joined
    strokes.

    Doxygen:
    - @param gray: Grayscale uint8 image the chain was found in.
    - @param chain: Chain to rectify.
    - @param components: Components indexed by the chain's component ids.
    - @param dark_on_light: Stroke polarity, selects the threshold direction.
    - @param border: Pixels of black margin around the crop.
    - @param upscale: Resize factor applied to the bordered crop.
    - @return: Single-channel uint8 patch, or None when the rotated crop falls
      outside the image.
    """
    height, width = gray.shape[:2]
    mask = np.zeros_like(gray)
    flags = cv2.THRESH_OTSU | (cv2.THRESH_BINARY_INV if dark_on_light else cv2.THRESH_BINARY)
    corners = []
    for idx in chain.components:
        min_x, min_y, max_x, max_y = components[idx].bbox
        roi = gray[min_y:max_y + 1, min_x:max_x + 1]
        _, binary = cv2.threshold(roi, 0, 255, flags)
        mask[min_y:max_y + 1, min_x:max_x + 1] = binary
        corners.extend([(min_x, min_y), (max_x, max_y), (min_x, max_y), (max_x, min_y)])

    min_x, min_y, max_x, max_y = chain_bounding_box(chain, components)
    center = ((min_x + max_x) / 2.0, (min_y + max_y) / 2.0)
    rotation = cv2.getRotationMatrix2D(center, chain_angle(chain.direction), 1.0)
    rotated = cv2.warpAffine(mask, rotation, (width, height))

    moved = cv2.transform(np.array(corners, dtype=np.float32).reshape(-1, 1, 2), rotation)
    x0, y0, x1, y1 = _clipped_box(np.rint(moved.reshape(-1, 2)).astype(int), width, height)
    if x1 <= x0 or y1 <= y0:
        return None

    crop = rotated[y0:y1, x0:x1]
    patch = np.zeros((crop.shape[0] + 2 * border, crop.shape[1] + 2 * border), dtype=np.uint8)
    patch[border:border + crop.shape[0], border:border + crop.shape[1]] = crop
    patch = cv2.resize(patch, (0, 0), fx=upscale, fy=upscale)
    s = int(ERODE_FRACTION * patch.shape[0])
    elem = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2 * s + 1, 2 * s + 1), (s, s))
    return cv2.erode(patch, elem)
