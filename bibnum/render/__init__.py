"""Debug rendering helpers."""

from .draw import (
    normalize_swt,
    render_chains_with_boxes,
    render_components_with_boxes,
    render_swt,
)

__all__ = [
    "normalize_swt",
    "render_chains_with_boxes",
    "render_components_with_boxes",
    "render_swt",
]
