import numpy as np

from bibnum.swt.model import UNSET, Ray
from bibnum.swt.transform import stroke_width_transform, swt_median_filter


def _fields(shape, gradients):
    """Edge mask and gradient fields with edges only at the given pixels."""
    edges = np.zeros(shape, dtype=np.uint8)
    gx = np.zeros(shape, dtype=np.float32)
    gy = np.zeros(shape, dtype=np.float32)
    for (x, y), (dx, dy) in gradients.items():
        edges[y, x] = 255
        gx[y, x] = dx
        gy[y, x] = dy
    return edges, gx, gy


def test_facing_edges_produce_rays_and_widths():
    edges, gx, gy = _fields((5, 20), {(5, 2): (1.0, 0.0), (10, 2): (-1.0, 0.0)})
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=False, max_stroke_length=15)
    assert len(rays) == 2
    # Rays come in raster order of their start pixel
    assert rays[0].p == (5, 2) and rays[0].q == (10, 2)
    assert rays[1].p == (10, 2) and rays[1].q == (5, 2)
    assert rays[0].points[:, 0].tolist() == [5, 6, 7, 8, 9, 10]
    assert rays[0].points[:, 1].tolist() == [2] * 6
    assert rays[0].length == 5.0
    assert np.allclose(swt[2, 5:11], 5.0)
    untouched = np.ones(swt.shape, dtype=bool)
    untouched[2, 5:11] = False
    assert (swt[untouched] == UNSET).all()


def test_dark_on_light_flips_gradient_direction():
    edges, gx, gy = _fields((5, 20), {(5, 2): (-1.0, 0.0), (10, 2): (1.0, 0.0)})
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=True, max_stroke_length=15)
    assert len(rays) == 2
    assert np.allclose(swt[2, 5:11], 5.0)


def test_same_direction_edge_is_rejected():
    edges, gx, gy = _fields((5, 20), {(5, 2): (1.0, 0.0), (10, 2): (1.0, 0.0)})
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=False, max_stroke_length=15)
    assert rays == []
    assert (swt == UNSET).all()


def test_too_long_rays_are_rejected():
    edges, gx, gy = _fields((5, 20), {(5, 2): (1.0, 0.0), (10, 2): (-1.0, 0.0)})
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=False, max_stroke_length=4)
    assert rays == []
    assert (swt == UNSET).all()


def test_zero_gradient_casts_no_ray_and_is_never_accepted():
    # Start pixel without gradient: no ray; its partner's ray hits a zero gradient
    edges, gx, gy = _fields((5, 20), {(5, 2): (1.0, 0.0), (10, 2): (0.0, 0.0)})
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=False, max_stroke_length=15)
    assert rays == []
    assert not np.isnan(swt).any()


def test_pixels_keep_minimum_ray_length():
    edges, gx, gy = _fields(
        (6, 15),
        {
            (2, 2): (1.0, 0.0),
            (12, 2): (-1.0, 0.0),
            (7, 0): (0.0, 1.0),
            (7, 3): (0.0, -1.0),
        },
    )
    swt, rays = stroke_width_transform(edges, gx, gy, dark_on_light=False, max_stroke_length=15)
    assert sorted(r.length for r in rays) == [3.0, 3.0, 10.0, 10.0]
    # Crossing pixel keeps the thinner stroke
    assert swt[2, 7] == 3.0
    assert swt[2, 3] == 10.0
    for ray in rays:
        assert (swt[ray.ys, ray.xs] <= ray.length).all()


def test_empty_edge_mask_gives_unset_map():
    edges = np.zeros((10, 10), dtype=np.uint8)
    grad = np.zeros((10, 10), dtype=np.float32)
    swt, rays = stroke_width_transform(edges, grad, grad)
    assert rays == []
    assert swt.dtype == np.float32
    assert (swt == UNSET).all()


def test_shape_mismatch_raises():
    import pytest

    with pytest.raises(ValueError):
        stroke_width_transform(np.zeros((4, 4)), np.zeros((4, 5)), np.zeros((4, 4)))


def _ray(points, length):
    pts = np.array(points, dtype=np.int64)
    return Ray(p=tuple(pts[0]), q=tuple(pts[-1]), points=pts, length=length)


def test_median_filter_clamps_to_ray_median():
    swt = np.array([[2.0, 9.0, 3.0]], dtype=np.float32)
    ray = _ray([(0, 0), (1, 0), (2, 0)], 3.0)
    out = swt_median_filter(swt, [ray])
    assert out is swt
    assert out[0].tolist() == [2.0, 3.0, 3.0]


def test_median_filter_runs_in_ray_order():
    swt = np.array([[1.0, 8.0, 8.0, 2.0]], dtype=np.float32)
    first = _ray([(0, 0), (1, 0), (2, 0)], 8.0)
    second = _ray([(1, 0), (2, 0), (3, 0)], 8.0)
    # First ray: median of [1, 8, 8] is 8, nothing changes
    # Second ray: median of [8, 8, 2] is 8 as well
    swt_median_filter(swt, [first, second])
    assert swt[0].tolist() == [1.0, 8.0, 8.0, 2.0]

    swt = np.array([[1.0, 8.0, 2.0, 2.0]], dtype=np.float32)
    swt_median_filter(swt, [second, first])
    # second: [8, 2, 2] -> median 2 clamps pixel 1; first then sees [1, 2, 2]
    assert swt[0].tolist() == [1.0, 2.0, 2.0, 2.0]


def test_median_filter_never_raises_values():
    rng = np.random.default_rng(0)
    swt = rng.uniform(1.0, 10.0, size=(1, 12)).astype(np.float32)
    rays = [_ray([(i, 0) for i in range(s, s + 5)], 5.0) for s in range(0, 8, 2)]
    before = swt.copy()
    for ray in rays:
        median = np.sort(swt[ray.ys, ray.xs])[ray.points.shape[0] // 2]
        swt_median_filter(swt, [ray])
        assert (swt[ray.ys, ray.xs] <= median).all()
    assert (swt <= before).all()
