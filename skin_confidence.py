#!/usr/bin/env python3
"""
Skin likelihood scoring.

Two tests are used together: a cheap RGB/HSV rule that rejects obvious
non-skin pixels, and a graded YCbCr score for the survivors.
"""

import numpy as np

from color_space import Pixel, YCbCrColor, rgb_to_hsv


# =============================================================================
# Constants
# =============================================================================

# Chroma ranges where skin clusters in YCbCr (inclusive)
SKIN_CB_RANGE = (77.0, 127.0)
SKIN_CR_RANGE = (133.0, 173.0)

# HSV pre-filter bounds
SKIN_HUE_MAX = 50.0  # hue in [0, 50] ...
SKIN_HUE_WRAP_MIN = 340.0  # ... or [340, 360)
SKIN_SATURATION_RANGE = (0.1, 0.6)
SKIN_VALUE_RANGE = (0.2, 0.95)
SKIN_MIN_RED = 60
SKIN_MIN_RED_GREEN_GAP = 5


def _triangular_membership(values: np.ndarray, value_range: tuple) -> np.ndarray:
    """1.0 at the centre of the range, falling linearly to 0 at either bound."""
    lo, hi = value_range
    half_width = (hi - lo) / 2
    nearest_bound = np.minimum(values - lo, hi - values)
    return np.clip(nearest_bound / half_width, 0.0, 1.0)


def skin_confidence_array(ycbcr: np.ndarray) -> np.ndarray:
    """Skin confidence in [0, 1] for each row of an (n, 3) YCbCr array."""
    ycbcr = np.asarray(ycbcr, dtype=np.float64).reshape(-1, 3)
    cb_score = _triangular_membership(ycbcr[:, 1], SKIN_CB_RANGE)
    cr_score = _triangular_membership(ycbcr[:, 2], SKIN_CR_RANGE)
    return np.clip(cb_score * cr_score, 0.0, 1.0)


def skin_confidence(color: YCbCrColor) -> float:
    """Skin confidence in [0, 1]; 0 when Cb or Cr falls outside the skin range."""
    return float(skin_confidence_array(np.array([color]))[0])


def likely_skin_mask(pixels: np.ndarray) -> np.ndarray:
    """
    Boolean mask of pixels passing the RGB/HSV skin rule.

    Requires hue in [0, 50] or [340, 360), saturation in [0.1, 0.6],
    value in [0.2, 0.95], and R > G > B with R > 60 and R - G > 5.
    """
    pixels = np.asarray(pixels).reshape(-1, 3)
    if len(pixels) == 0:
        return np.zeros(0, dtype=bool)

    hsv = rgb_to_hsv(pixels)
    hue, sat, val = hsv[:, 0], hsv[:, 1], hsv[:, 2]
    r, g, b = (pixels[:, i].astype(np.int32) for i in range(3))

    hue_ok = (hue <= SKIN_HUE_MAX) | (hue >= SKIN_HUE_WRAP_MIN)
    sat_ok = (sat >= SKIN_SATURATION_RANGE[0]) & (sat <= SKIN_SATURATION_RANGE[1])
    val_ok = (val >= SKIN_VALUE_RANGE[0]) & (val <= SKIN_VALUE_RANGE[1])
    order_ok = (r > g) & (g > b) & (r > SKIN_MIN_RED) & (r - g > SKIN_MIN_RED_GREEN_GAP)

    return hue_ok & sat_ok & val_ok & order_ok


def is_likely_skin_tone(pixel: Pixel) -> bool:
    return bool(likely_skin_mask(np.array([pixel]))[0])
