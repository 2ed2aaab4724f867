import numpy as np

from outlier_filter import brightness, filter_outliers, saturation, tukey_fence
from sampler import SampleSet


def skin_patch(n=40):
    """Mid skin tone shifted evenly by -2..2 on every channel."""
    offsets = np.resize(np.arange(-2, 3), n)[:, None]
    return (np.array([200, 150, 120]) + offsets).astype(np.uint8)


def test_small_sets_are_untouched():
    pixels = np.array([[0, 0, 0]] * 5 + [[255, 255, 255]] * 4, dtype=np.uint8)
    samples = SampleSet(pixels)
    assert filter_outliers(samples) is samples


def test_bright_outlier_removed():
    pixels = np.vstack([skin_patch(), [[255, 255, 255]]]).astype(np.uint8)
    result = filter_outliers(SampleSet(pixels))
    assert len(result) == 40
    assert not (result.pixels == 255).all(axis=1).any()


def test_saturation_outlier_removed_even_when_brightness_normal():
    # Same brightness as the patch (~157) but fully saturated
    vivid = [[255, 216, 0]]
    pixels = np.vstack([skin_patch(), vivid]).astype(np.uint8)
    result = filter_outliers(SampleSet(pixels))
    assert len(result) == 40
    assert not (result.pixels == np.array(vivid[0])).all(axis=1).any()


def test_uniform_set_is_kept_whole():
    pixels = np.tile([200, 150, 120], (50, 1)).astype(np.uint8)
    assert len(filter_outliers(SampleSet(pixels))) == 50


def test_grid_key_preserved():
    result = filter_outliers(SampleSet(skin_patch(), key=(2, 1)))
    assert result.key == (2, 1)


def test_metrics():
    pixels = np.array([[255, 0, 0], [0, 0, 0], [90, 60, 30]], dtype=np.uint8)
    np.testing.assert_allclose(brightness(pixels), [85, 0, 60])
    np.testing.assert_allclose(saturation(pixels), [1.0, 0.0, 60 / 90])


def test_tukey_fence():
    low, high = tukey_fence(np.array([1, 2, 3, 4, 5, 6, 7, 8, 9.0]))
    # Q1 = 3, Q3 = 7, IQR = 4
    assert low == -3
    assert high == 13
