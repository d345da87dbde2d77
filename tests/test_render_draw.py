import numpy as np

from bibnum.render.draw import (
    normalize_swt,
    render_chains_with_boxes,
    render_components_with_boxes,
    render_swt,
)
from bibnum.swt.components import filter_components, find_connected_components
from bibnum.swt.model import UNSET, Chain


def _swt_with_blocks():
    swt = np.full((40, 60), UNSET, dtype=np.float32)
    swt[10:24, 5:15] = 2.0
    swt[10:24, 20:30] = 4.0
    swt[10:24, 35:45] = 3.0
    return swt


def test_normalize_swt_scales_defined_pixels():
    norm = normalize_swt(_swt_with_blocks())
    assert norm.dtype == np.float32
    assert norm[0, 0] == 1.0
    assert norm[15, 10] == 0.0
    assert norm[15, 25] == 1.0
    assert norm[15, 40] == 0.5


def test_normalize_swt_without_widths():
    norm = normalize_swt(np.full((5, 5), UNSET, dtype=np.float32))
    assert (norm == 1.0).all()


def test_render_swt_is_gray_uint8():
    img = render_swt(_swt_with_blocks())
    assert img.shape == (40, 60)
    assert img.dtype == np.uint8
    assert img[15, 25] == 255


def test_render_boxes_draw_on_color_image():
    swt = _swt_with_blocks()
    comps = filter_components(swt, find_connected_components(swt))
    assert len(comps) == 3

    out = render_components_with_boxes(swt, comps)
    assert out.shape == (40, 60, 3)
    assert out.dtype == np.uint8
    # First box is drawn in blue (BGR)
    assert tuple(out[23, 5]) == (255, 0, 0)

    chain = Chain(p=0, q=2, components=[0, 1, 2], direction=(-1.0, 0.0))
    out = render_chains_with_boxes(swt, comps, [chain])
    assert out.shape == (40, 60, 3)
    assert tuple(out[23, 44]) == (255, 0, 0)
