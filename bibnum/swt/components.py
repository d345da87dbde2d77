"""Connected components over the stroke width map and their geometric filtering.

Pixels with a stroke width become graph vertices, numbered densely in raster order.
Neighbouring pixels are joined when their widths differ by at most a factor of
``MAX_WIDTH_RATIO``; scipy's sparse connected components then labels the regions.
The filter keeps regions whose size, position and rotated aspect ratio look like
a single character.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Optional, Tuple

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from .model import Component

logger = logging.getLogger(__name__)

MAX_WIDTH_RATIO = 3.0
"""Largest stroke width ratio between two joined neighbour pixels."""

MAX_COMPONENT_HEIGHT = 300
"""Components taller than this (axis aligned, pixels) are background."""

MAX_ASPECT_RATIO = 2.0
"""Rotated length/width must lie strictly inside (1/ratio, ratio)."""

ROTATION_STEPS = 18
"""The rotated box search tries k * 90 / ROTATION_STEPS degrees for k = 1 .. ROTATION_STEPS - 1."""

MAX_CONTAINED_CENTERS = 1
"""A component whose box holds more centres of other components than this is dropped."""

# Right, down-right, down, down-left: every 8-neighbour pair exactly once.
_NEIGHBOUR_OFFSETS = ((0, 1), (1, 1), (1, 0), (1, -1))


def ratio_within(ratio: float, max_ratio: float) -> bool:
    """Return True when `ratio` lies strictly inside (1 / max_ratio, max_ratio)."""
    return 1.0 / max_ratio < ratio < max_ratio


def find_connected_components(swt: np.ndarray) -> List[np.ndarray]:
    """Group pixels with a stroke width into width-consistent connected regions.

    Doxygen:
    - @param swt: Stroke width map; pixels with a value > 0 are vertices.
    - @return: One ``(N, 2)`` int array of ``(x, y)`` pixels per region, regions
      ordered by their first pixel in raster order, pixels in raster order.
    """
    defined = swt > 0
    height, width = swt.shape
    num_vertices = int(defined.sum())
    if num_vertices == 0:
        logger.debug("No pixels with a stroke width, no components")
        return []
    vertex = np.full(swt.shape, -1, dtype=np.int64)
    vertex[defined] = np.arange(num_vertices)

    heads: List[np.ndarray] = []
    tails: List[np.ndarray] = []
    for dr, dc in _NEIGHBOUR_OFFSETS:
        r0, r1 = 0, height - dr
        c0, c1 = max(0, -dc), width - max(0, dc)
        if r1 <= r0 or c1 <= c0:
            continue
        a = swt[r0:r1, c0:c1]
        b = swt[r0 + dr:r1 + dr, c0 + dc:c1 + dc]
        both = (a > 0) & (b > 0)
        linked = np.zeros_like(both)
        linked[both] = np.maximum(a[both] / b[both], b[both] / a[both]) <= MAX_WIDTH_RATIO
        heads.append(vertex[r0:r1, c0:c1][linked])
        tails.append(vertex[r0 + dr:r1 + dr, c0 + dc:c1 + dc][linked])

    head = np.concatenate(heads) if heads else np.empty(0, dtype=np.int64)
    tail = np.concatenate(tails) if tails else np.empty(0, dtype=np.int64)
    graph = coo_matrix(
        (np.ones(head.size, dtype=np.int8), (head, tail)),
        shape=(num_vertices, num_vertices),
    )
    num_comp, labels = connected_components(graph, directed=False)
    logger.debug(
        "Before filtering, %d components and %d vertices", num_comp, num_vertices
    )

    ys, xs = np.nonzero(defined)
    order = np.argsort(labels, kind="stable")
    points = np.stack([xs[order], ys[order]], axis=1)
    bounds = np.cumsum(np.bincount(labels, minlength=num_comp))[:-1]
    return np.split(points, bounds)


def rotated_dimensions(points: np.ndarray) -> Tuple[float, float]:
    """Search the minimal-area rotated bounding box of a pixel set.

    Starts from the axis-aligned box and tries every rotation step in (0, 90)
    degrees, keeping a rotation only when its area is strictly smaller.

    Doxygen:
    - @param points: ``(N, 2)`` array of ``(x, y)`` pixels.
    - @return: (length, width) of the best box along its rotated x and y axes.
    """
    xs = points[:, 0].astype(np.float64)
    ys = points[:, 1].astype(np.float64)
    length = float(xs.max() - xs.min() + 1)
    width = float(ys.max() - ys.min() + 1)
    area = length * width

    thetas = np.arange(1, ROTATION_STEPS) * (math.pi / (2 * ROTATION_STEPS))
    cos, sin = np.cos(thetas), np.sin(thetas)
    rx = np.outer(xs, cos) - np.outer(ys, sin)
    ry = np.outer(xs, sin) + np.outer(ys, cos)
    lengths = rx.max(axis=0) - rx.min(axis=0) + 1
    widths = ry.max(axis=0) - ry.min(axis=0) + 1
    for rot_length, rot_width in zip(lengths, widths):
        if rot_length * rot_width < area:
            area = rot_length * rot_width
            length, width = float(rot_length), float(rot_width)
    return length, width


def _mean_color(image: np.ndarray, points: np.ndarray) -> Tuple[float, ...]:
    pixels = image[points[:, 1], points[:, 0]].reshape(len(points), -1).astype(np.float64)
    return tuple(float(v) for v in pixels.mean(axis=0))


def filter_components(
    swt: np.ndarray,
    components: List[np.ndarray],
    top_border: int = 0,
    bottom_border: int = 0,
    image: Optional[np.ndarray] = None,
) -> List[Component]:
    """Keep components that look like single characters and index them.

    A component is rejected when its axis-aligned height exceeds
    ``MAX_COMPONENT_HEIGHT``, it reaches into the top/bottom border bands, or
    its rotated aspect ratio is outside ``MAX_ASPECT_RATIO``. Survivors whose
    bounding box contains the centres of two or more other survivors are then
    dropped in a single pass.

    Doxygen:
    - @param swt: Stroke width map the components were built from.
    - @param components: Raw regions from `find_connected_components`.
    - @param top_border: Rows from the top treated as non-text.
    - @param bottom_border: Rows from the bottom treated as non-text.
    - @param image: Optional colour image for per-component mean colour.
    - @return: Surviving components, `index` equal to list position.
    """
    height = swt.shape[0]
    candidates: List[Component] = []
    for points in components:
        values = swt[points[:, 1], points[:, 0]].astype(np.float64)
        mean = float(values.mean())
        variance = float(((values - mean) ** 2).mean())
        median = float(np.sort(values)[values.size // 2])
        min_x, min_y = (int(v) for v in points.min(axis=0))
        max_x, max_y = (int(v) for v in points.max(axis=0))

        if max_y - min_y + 1 > MAX_COMPONENT_HEIGHT:
            continue
        if min_y < top_border or max_y > height - bottom_border:
            continue

        length, width = rotated_dimensions(points)
        if not ratio_within(length / width, MAX_ASPECT_RATIO):
            continue

        candidates.append(Component(
            index=len(candidates),
            points=points,
            bbox=(min_x, min_y, max_x, max_y),
            center=((max_x + min_x) / 2.0, (max_y + min_y) / 2.0),
            length=length,
            width=width,
            mean=mean,
            variance=variance,
            median=median,
            color=_mean_color(image, points) if image is not None else None,
        ))

    if candidates:
        centers = np.array([c.center for c in candidates])
        boxes = np.array([c.bbox for c in candidates], dtype=np.float64)
        inside = (
            (boxes[:, None, 0] <= centers[None, :, 0])
            & (boxes[:, None, 2] >= centers[None, :, 0])
            & (boxes[:, None, 1] <= centers[None, :, 1])
            & (boxes[:, None, 3] >= centers[None, :, 1])
        )
        np.fill_diagonal(inside, False)
        contained = inside.sum(axis=1)
    else:
        contained = np.zeros(0, dtype=np.int64)

    valid: List[Component] = []
    for comp, count in zip(candidates, contained):
        if count > MAX_CONTAINED_CENTERS:
            continue
        valid.append(replace(comp, index=len(valid)))

    logger.debug("After filtering %d components", len(valid))
    for comp in valid:
        logger.debug(
            "Component (%d): dim=%.1f*%.1f median=%.2f bb=(%d,%d)->(%d,%d)",
            comp.index, comp.length, comp.width, comp.median, *comp.bbox,
        )
    return valid
