"""Image-level processing utilities (edges, gradients, chain rectification)."""

from .processing import (
    chain_angle,
    chain_bounding_box,
    compute_gradients,
    detect_edges,
    rectify_chain,
    to_grayscale,
)

__all__ = [
    "chain_angle",
    "chain_bounding_box",
    "compute_gradients",
    "detect_edges",
    "rectify_chain",
    "to_grayscale",
]
