"""Stroke Width Transform: ray casting between facing edges and ray median filtering.

Every edge pixel casts a ray along its (polarity corrected) gradient. A ray that
reaches another edge pixel whose gradient points back at it spans one stroke; each
pixel it crossed then keeps the thinnest such span seen so far.

All rays are walked together as numpy arrays, one sub-pixel step per iteration,
so the cost is bounded by ``max_stroke_length / RAY_STEP`` vectorised steps rather
than one Python loop per ray.
"""

from __future__ import annotations

import logging
import math
from typing import List, Tuple

import numpy as np

from .model import UNSET, Ray

logger = logging.getLogger(__name__)

RAY_STEP = 0.05
"""Sub-pixel distance advanced per walking step."""


def _unit_gradients(gx: np.ndarray, gy: np.ndarray, dark_on_light: bool) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Normalize gradient samples and flip them for dark-on-light text.

    Doxygen:
    - @param gx: Gradient x samples (float32).
    - @param gy: Gradient y samples (float32).
    - @param dark_on_light: True when strokes are darker than the background.
    - @return: (ux, uy, valid) where `valid` is False for zero-magnitude samples
      (their unit vector is reported as 0, 0).
    """
    mag = np.sqrt(gx * gx + gy * gy)
    valid = mag > 0
    safe = np.where(valid, mag, np.float32(1.0))
    ux = np.where(valid, gx / safe, np.float32(0.0)).astype(np.float32)
    uy = np.where(valid, gy / safe, np.float32(0.0)).astype(np.float32)
    if dark_on_light:
        ux, uy = -ux, -uy
    return ux, uy, valid


def stroke_width_transform(
    edges: np.ndarray,
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    dark_on_light: bool = True,
    max_stroke_length: float = 15.0,
    step: float = RAY_STEP,
) -> Tuple[np.ndarray, List[Ray]]:
    """Cast gradient-aligned rays and build the stroke width map.

    Doxygen:
    - @param edges: Binary edge mask (non-zero = edge), shape (H, W).
    - @param grad_x: Horizontal gradient field, shape (H, W).
    - @param grad_y: Vertical gradient field, shape (H, W).
    - @param dark_on_light: Polarity of strokes relative to background.
    - @param max_stroke_length: Accepted rays longer than this are dropped.
    - @param step: Sub-pixel walking step.
    - @return: (swt, rays): float32 map holding the minimal accepted ray length
      per pixel (UNSET where no ray passed) and the accepted rays in the raster
      order of their start pixels.
    - @throws ValueError: If the three inputs differ in shape.
    """
    edge_mask = np.asarray(edges) > 0
    gx = np.asarray(grad_x, dtype=np.float32)
    gy = np.asarray(grad_y, dtype=np.float32)
    if edge_mask.ndim != 2 or gx.shape != edge_mask.shape or gy.shape != edge_mask.shape:
        raise ValueError(
            f"Edge mask and gradient fields must share one 2-D shape, got "
            f"{edge_mask.shape}, {gx.shape}, {gy.shape}"
        )
    height, width = edge_mask.shape
    swt = np.full((height, width), UNSET, dtype=np.float32)

    rows, cols = np.nonzero(edge_mask)
    ux, uy, valid = _unit_gradients(gx[rows, cols], gy[rows, cols], dark_on_light)
    if not valid.all():
        logger.debug("Skipping %d edge pixels with zero gradient", int((~valid).sum()))
    rows, cols, ux, uy = rows[valid], cols[valid], ux[valid], uy[valid]
    n = rows.size
    if n == 0:
        return swt, []

    step32 = np.float32(step)
    dx = ux * step32
    dy = uy * step32
    cur_x = cols.astype(np.float32) + np.float32(0.5)
    cur_y = rows.astype(np.float32) + np.float32(0.5)
    pix_x = cols.astype(np.int64)
    pix_y = rows.astype(np.int64)
    q_x = np.full(n, -1, dtype=np.int64)
    q_y = np.full(n, -1, dtype=np.int64)
    walking = np.ones(n, dtype=bool)
    active = np.arange(n)
    trail_ids: List[np.ndarray] = []
    trail_x: List[np.ndarray] = []
    trail_y: List[np.ndarray] = []

    # A ray still walking after this many steps can only stop on an edge more
    # than max_stroke_length away, where it would be rejected anyway.
    max_steps = int(math.ceil((max_stroke_length + 1.0) / step))
    for _ in range(max_steps):
        if active.size == 0:
            break
        cur_x[active] += dx[active]
        cur_y[active] += dy[active]
        new_x = np.floor(cur_x[active]).astype(np.int64)
        new_y = np.floor(cur_y[active]).astype(np.int64)
        moved = (new_x != pix_x[active]) | (new_y != pix_y[active])
        if not moved.any():
            continue
        ids, new_x, new_y = active[moved], new_x[moved], new_y[moved]
        pix_x[ids] = new_x
        pix_y[ids] = new_y

        inside = (new_x >= 0) & (new_x < width) & (new_y >= 0) & (new_y < height)
        walking[ids[~inside]] = False
        ids, new_x, new_y = ids[inside], new_x[inside], new_y[inside]
        trail_ids.append(ids)
        trail_x.append(new_x)
        trail_y.append(new_y)

        on_edge = edge_mask[new_y, new_x]
        hit = ids[on_edge]
        q_x[hit] = new_x[on_edge]
        q_y[hit] = new_y[on_edge]
        walking[hit] = False
        active = active[walking[active]]

    hit_ids = np.nonzero(q_x >= 0)[0]
    hx, hy = q_x[hit_ids], q_y[hit_ids]
    qux, quy, qvalid = _unit_gradients(gx[hy, hx], gy[hy, hx], dark_on_light)
    dot = ux[hit_ids] * -qux + uy[hit_ids] * -quy
    facing = qvalid & (np.arccos(np.clip(dot, -1.0, 1.0)) < np.pi / 2.0)
    lengths = np.sqrt(
        ((hx - cols[hit_ids]) ** 2 + (hy - rows[hit_ids]) ** 2).astype(np.float32)
    )
    accepted_mask = facing & (lengths <= max_stroke_length)
    accepted = hit_ids[accepted_mask]
    ray_length = np.zeros(n, dtype=np.float32)
    ray_length[accepted] = lengths[accepted_mask]
    logger.debug(
        "%d edge pixels, %d rays reached an edge, %d accepted",
        n, hit_ids.size, accepted.size,
    )
    if accepted.size == 0:
        return swt, []

    all_ids = np.concatenate(trail_ids)
    all_x = np.concatenate(trail_x)
    all_y = np.concatenate(trail_y)
    keep = np.zeros(n, dtype=bool)
    keep[accepted] = True
    sel = keep[all_ids]
    all_ids, all_x, all_y = all_ids[sel], all_x[sel], all_y[sel]
    order = np.argsort(all_ids, kind="stable")
    all_ids, all_x, all_y = all_ids[order], all_x[order], all_y[order]
    counts = np.bincount(all_ids, minlength=n)
    ends = np.cumsum(counts)

    rays: List[Ray] = []
    for idx in accepted:
        start = ends[idx] - counts[idx]
        path = np.empty((counts[idx] + 1, 2), dtype=np.int64)
        path[0] = (cols[idx], rows[idx])
        path[1:, 0] = all_x[start:ends[idx]]
        path[1:, 1] = all_y[start:ends[idx]]
        rays.append(Ray(
            p=(int(cols[idx]), int(rows[idx])),
            q=(int(q_x[idx]), int(q_y[idx])),
            points=path,
            length=float(ray_length[idx]),
        ))

    xs = np.concatenate([cols[accepted], all_x])
    ys = np.concatenate([rows[accepted], all_y])
    lens = np.concatenate([ray_length[accepted], ray_length[all_ids]])
    widths = np.full((height, width), np.inf, dtype=np.float32)
    np.minimum.at(widths, (ys, xs), lens)
    reached = np.isfinite(widths)
    swt[reached] = widths[reached]
    return swt, rays


def swt_median_filter(swt: np.ndarray, rays: List[Ray]) -> np.ndarray:
    """Clamp every pixel of each ray to that ray's median width.

    Rays are processed in the given order and each one reads the map as left by
    the previous ones. The map is modified in place and returned.

    Doxygen:
    - @param swt: Stroke width map from `stroke_width_transform`.
    - @param rays: Accepted rays, in discovery order.
    - @return: The same `swt` array.
    """
    for ray in rays:
        xs, ys = ray.xs, ray.ys
        values = swt[ys, xs]
        median = np.sort(values)[values.size // 2]
        swt[ys, xs] = np.minimum(values, median)
    return swt
