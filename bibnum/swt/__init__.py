"""Stroke Width Transform core: rays, components and chains.

This package turns an edge mask and gradient fields into candidate text lines:
- transform: ray casting and per-ray median filtering of the stroke width map
- components: width-consistent connected components and their filtering
- chains: pairing and merging of components into collinear chains
- model: dataclasses shared by the stages
"""

from .model import UNSET, Chain, Component, Ray
from .transform import stroke_width_transform, swt_median_filter
from .components import filter_components, find_connected_components, ratio_within
from .chains import find_pairs, make_chains, merge_chains

__all__ = [
    "UNSET",
    "Chain",
    "Component",
    "Ray",
    "stroke_width_transform",
    "swt_median_filter",
    "find_connected_components",
    "filter_components",
    "ratio_within",
    "find_pairs",
    "make_chains",
    "merge_chains",
]
