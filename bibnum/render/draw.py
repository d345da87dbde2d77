"""Debug renderings of the stroke width map, components and chains.

Nothing here affects detection; the images only help to inspect a run.
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from bibnum.image.processing import chain_bounding_box
from bibnum.swt.model import Chain, Component

_BOX_COLORS = ((255, 0, 0), (0, 255, 0), (0, 0, 255))


def normalize_swt(swt: np.ndarray) -> np.ndarray:
    """Scale defined stroke widths to [0, 1]; pixels without a width become 1.

    Doxygen:
    - @param swt: Stroke width map (negative = unset).
    - @return: float32 image of the same shape.
    """
    out = np.ones(swt.shape, dtype=np.float32)
    defined = swt >= 0
    if not defined.any():
        return out
    values = swt[defined]
    lo, hi = float(values.min()), float(values.max())
    span = hi - lo if hi > lo else 1.0
    out[defined] = (values - lo) / span
    return out


def render_swt(swt: np.ndarray) -> np.ndarray:
    """Grayscale uint8 view of the normalized stroke width map."""
    return (normalize_swt(swt) * 255).astype(np.uint8)


def render_components(swt: np.ndarray, components: Sequence[Component]) -> np.ndarray:
    """Grayscale uint8 image showing only the widths of the given components."""
    masked = np.full(swt.shape, -1.0, dtype=np.float32)
    for comp in components:
        xs, ys = comp.points[:, 0], comp.points[:, 1]
        masked[ys, xs] = swt[ys, xs]
    return render_swt(masked)


def _draw_boxes(img: np.ndarray, boxes) -> np.ndarray:
    for count, (min_x, min_y, max_x, max_y) in enumerate(boxes):
        color = _BOX_COLORS[count % len(_BOX_COLORS)]
        cv2.rectangle(img, (min_x, min_y), (max_x, max_y), color)
        cv2.putText(img, str(count), (min_x, min_y), cv2.FONT_HERSHEY_SIMPLEX, 0.3, color)
    return img


def render_components_with_boxes(swt: np.ndarray, components: Sequence[Component]) -> np.ndarray:
    """BGR image of the components with a numbered box around each one."""
    img = cv2.cvtColor(render_components(swt, components), cv2.COLOR_GRAY2BGR)
    return _draw_boxes(img, [comp.bbox for comp in components])


def render_chains_with_boxes(
    swt: np.ndarray,
    components: Sequence[Component],
    chains: Sequence[Chain],
) -> np.ndarray:
    """BGR image of the chained components with a numbered box per chain."""
    used = sorted({idx for chain in chains for idx in chain.components})
    img = cv2.cvtColor(
        render_components(swt, [components[i] for i in used]), cv2.COLOR_GRAY2BGR
    )
    return _draw_boxes(img, [chain_bounding_box(chain, components) for chain in chains])
