"""Chain building: pair similar neighbouring components, then merge collinear pairs.

Every pair of components with similar stroke width and size whose centres are
close relative to their size seeds a two-component chain. Chains sharing an end
component and pointing the same way are merged greedily, pass after pass, until
a pass merges nothing. The result depends on the pass order (seeds sorted by
length, later passes by component count); each pass is O(n^2) in the number of
chains, which stays small after component filtering.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Sequence, Tuple

from .components import ratio_within
from .model import Chain, Component

logger = logging.getLogger(__name__)

MAX_MEDIAN_RATIO = 3.0
MAX_DIM_RATIO = 2.0
MAX_DIST_RATIO = 1.6
MERGE_STRICTNESS = math.pi / 6.0
"""Largest angle between two chain directions that still merges them."""
MIN_CHAIN_LENGTH = 3


def _unit(dx: float, dy: float) -> Tuple[float, float]:
    # Coincident centres give no direction; (0, 0) fails every angle test.
    mag = math.hypot(dx, dy)
    if mag == 0:
        return 0.0, 0.0
    return dx / mag, dy / mag


def _angle(a: Tuple[float, float], b: Tuple[float, float], flip: bool) -> float:
    dot = a[0] * b[0] + a[1] * b[1]
    if flip:
        dot = -dot
    return math.acos(max(-1.0, min(1.0, dot)))


def _span(p: Component, q: Component) -> Tuple[Tuple[float, float], float]:
    dx = p.center[0] - q.center[0]
    dy = p.center[1] - q.center[1]
    return _unit(dx, dy), dx * dx + dy * dy


def find_pairs(components: Sequence[Component]) -> List[Chain]:
    """Seed a two-component chain for every eligible component pair.

    Doxygen:
    - @param components: Filtered components, `index` equal to position.
    - @return: Seed chains in (i, j) order with p=i, q=j.
    """
    pairs: List[Chain] = []
    for i, ci in enumerate(components):
        for j in range(i + 1, len(components)):
            cj = components[j]
            median_ratio = ci.median / cj.median
            width_ratio = ci.width / cj.width
            length_ratio = ci.length / cj.length
            direction, dist = _span(ci, cj)
            max_dim = max(min(ci.length, ci.width), min(cj.length, cj.width)) ** 2
            logger.debug(
                "Pair (%d:%d): dist=%.1f maxDim=%.1f medianRatio=%.3f lengthRatio=%.3f widthRatio=%.3f",
                i, j, dist, max_dim, median_ratio, length_ratio, width_ratio,
            )
            if not (
                ratio_within(median_ratio, MAX_MEDIAN_RATIO)
                and ratio_within(width_ratio, MAX_DIM_RATIO)
                and ratio_within(length_ratio, MAX_DIM_RATIO)
            ):
                continue
            if dist / max_dim >= MAX_DIST_RATIO:
                continue
            pairs.append(Chain(p=i, q=j, components=[i, j], direction=direction, dist=dist))
    logger.debug("%d eligible pairs", len(pairs))
    return pairs


def merge_pass(chains: Sequence[Chain], components: Sequence[Component]) -> Tuple[List[Chain], int]:
    """Run one merge pass over all ordered chain pairs.

    Chain ``j`` merges into chain ``i`` when they share an end (checked p-p,
    p-q, q-p, q-q, first match wins) and their directions, sign corrected for
    that match, are within ``MERGE_STRICTNESS``. A merged chain takes no further
    part in the pass; the extended chain ``i`` does, with its new ends.

    Doxygen:
    - @param chains: Chains in pass order.
    - @param components: Components indexed by chain ends.
    - @return: (survivors stably sorted by descending component count, merge count).
    """
    work = list(chains)
    merged = [False] * len(work)
    merges = 0
    for i in range(len(work)):
        for j in range(len(work)):
            if i == j or merged[i] or merged[j]:
                continue
            a, b = work[i], work[j]
            if not a.shares_end(b):
                continue
            if a.p == b.p:
                flip, p, q = True, b.q, a.q
            elif a.p == b.q:
                flip, p, q = False, b.p, a.q
            elif a.q == b.p:
                flip, p, q = False, a.p, b.q
            else:
                flip, p, q = True, a.p, b.p
            if _angle(a.direction, b.direction, flip) >= MERGE_STRICTNESS:
                continue
            direction, dist = _span(components[p], components[q])
            work[i] = Chain(
                p=p,
                q=q,
                components=a.components + b.components,
                direction=direction,
                dist=dist,
            )
            merged[j] = True
            merges += 1
    survivors = [chain for chain, gone in zip(work, merged) if not gone]
    survivors.sort(key=lambda chain: len(chain.components), reverse=True)
    return survivors, merges


def merge_chains(chains: Sequence[Chain], components: Sequence[Component]) -> List[Chain]:
    """Merge chains pass by pass until a pass performs no merge."""
    current = sorted(chains, key=lambda chain: chain.dist)
    passes = 0
    while True:
        current, merges = merge_pass(current, components)
        passes += 1
        if merges == 0:
            break
    logger.debug("Merging stopped after %d passes with %d chains", passes, len(current))
    return current


def make_chains(components: Sequence[Component]) -> List[Chain]:
    """Build text-line chains of at least ``MIN_CHAIN_LENGTH`` distinct components.

    Doxygen:
    - @param components: Filtered components from `filter_components`.
    - @return: Chains with sorted, de-duplicated component lists.
    """
    merged = merge_chains(find_pairs(components), components)
    chains = [
        replace(chain, components=chain.unique_components())
        for chain in merged
        if len(chain.unique_components()) >= MIN_CHAIN_LENGTH
    ]
    for n, chain in enumerate(chains):
        logger.debug("Chain %d: %s", n, ",".join(str(c) for c in chain.components))
    logger.debug("%d chains after merging", len(chains))
    return chains
