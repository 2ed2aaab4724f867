import numpy as np
import pytest

from sampler import (
    GridRegion, PointRegion, RectRegion, SampleSet,
    array_accessor, cheek_regions, density_target, grid_stride, sample, sample_point,
)


def gradient_image(width, height):
    """Each pixel encodes its own coordinates: (x % 256, y % 256, 7)."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 0] = (np.arange(width) % 256)[None, :]
    img[:, :, 1] = (np.arange(height) % 256)[:, None]
    img[:, :, 2] = 7
    return img


def test_point_sampling_uses_stride_two():
    img = gradient_image(100, 100)
    result = sample(array_accessor(img), 100, 100, PointRegion((50, 50), radius=4))
    assert isinstance(result, SampleSet)
    assert len(result) == 25
    assert sorted(set(result.pixels[:, 0].tolist())) == [46, 48, 50, 52, 54]
    assert sorted(set(result.pixels[:, 1].tolist())) == [46, 48, 50, 52, 54]


def test_point_default_radius_is_dense_neighbourhood():
    img = gradient_image(200, 200)
    result = sample(array_accessor(img), 200, 200, PointRegion((100, 100)))
    assert len(result) == 26 * 26


def test_out_of_bounds_coordinates_are_skipped_not_clamped():
    img = gradient_image(20, 20)
    result = sample(array_accessor(img), 20, 20, PointRegion((0, 0), radius=4))
    # Only offsets 0, 2, 4 fall inside on each axis
    assert len(result) == 9
    assert set(result.pixels[:, 0].tolist()) == {0, 2, 4}


def test_region_entirely_outside_image_is_empty():
    img = gradient_image(20, 20)
    result = sample(array_accessor(img), 20, 20, PointRegion((500, 500), radius=10))
    assert len(result) == 0
    assert result.pixels.shape == (0, 3)


def test_rect_samples_like_point_at_centroid():
    img = gradient_image(200, 200)
    accessor = array_accessor(img)
    rect = sample(accessor, 200, 200, RectRegion(60, 40, 140, 160))
    point = sample(accessor, 200, 200, PointRegion((100, 100)))
    np.testing.assert_array_equal(rect.pixels, point.pixels)


def test_grid_returns_keyed_cells():
    img = gradient_image(90, 60)
    cells = sample(array_accessor(img), 90, 60, GridRegion(rows=3, cols=3))
    assert [c.key for c in cells] == [(r, c) for r in range(3) for c in range(3)]
    # Cell (1, 2) spans x in [60, 90), y in [20, 40)
    cell = cells[5]
    assert cell.pixels[:, 0].min() >= 60
    assert cell.pixels[:, 1].min() >= 20
    assert cell.pixels[:, 1].max() < 40


def test_small_grid_samples_every_pixel():
    img = gradient_image(30, 30)
    cells = sample(array_accessor(img), 30, 30, GridRegion())
    assert sum(len(c) for c in cells) == 900


def test_density_target_decreases_with_area():
    assert density_target(600, 600) == 200
    assert density_target(1200, 1200) == 150
    assert density_target(4000, 3000) == 100
    assert grid_stride(4000, 3000) == 30
    assert grid_stride(100, 100) == 1


def test_max_samples_bounds_each_set():
    img = gradient_image(200, 200)
    result = sample(array_accessor(img), 200, 200, PointRegion((100, 100)), max_samples=50)
    assert len(result) == 50

    cells = sample(array_accessor(img), 200, 200, GridRegion(), max_samples=40)
    assert all(len(c) == 40 for c in cells)


def test_invalid_grid_rejected():
    img = gradient_image(10, 10)
    with pytest.raises(ValueError):
        sample(array_accessor(img), 10, 10, GridRegion(rows=0, cols=3))


@pytest.mark.parametrize("radius", [-1, 0])
def test_non_positive_radius_rejected(radius):
    img = gradient_image(10, 10)
    with pytest.raises(ValueError):
        sample_point(array_accessor(img), 10, 10, (5, 5), radius=radius)
    with pytest.raises(ValueError):
        sample(array_accessor(img), 10, 10, PointRegion((5, 5), radius=radius))


def test_half_pixel_center_rounds_up():
    img = gradient_image(20, 20)
    result = sample(array_accessor(img), 20, 20, PointRegion((2.5, 4.5), radius=1))
    assert sorted(set(result.pixels[:, 0].tolist())) == [2, 4]
    assert sorted(set(result.pixels[:, 1].tolist())) == [4, 6]


def test_cheek_regions_inset_from_face_box():
    regions = cheek_regions((100, 50, 200, 300))
    assert regions['left cheek'].center == pytest.approx((140, 200))
    assert regions['right cheek'].center == pytest.approx((260, 200))
