#!/usr/bin/env python3
"""Reject samples outside the Tukey fences of brightness and saturation."""

import numpy as np

from sampler import SampleSet


MIN_SAMPLES_FOR_FILTER = 10
IQR_FACTOR = 1.5


def brightness(pixels: np.ndarray) -> np.ndarray:
    """Mean of R, G, B per pixel."""
    return pixels.astype(np.float64).mean(axis=1)


def saturation(pixels: np.ndarray) -> np.ndarray:
    """(max - min) / max over normalized RGB; 0 for black."""
    rgb = pixels.astype(np.float64) / 255.0
    c_max = rgb.max(axis=1)
    c_min = rgb.min(axis=1)
    safe_max = np.where(c_max > 0, c_max, 1.0)
    return np.where(c_max > 0, (c_max - c_min) / safe_max, 0.0)


def tukey_fence(values: np.ndarray) -> tuple:
    """Return (low, high) = (Q1 - 1.5*IQR, Q3 + 1.5*IQR)."""
    q1, q3 = np.percentile(values, [25, 75])
    iqr = q3 - q1
    return q1 - IQR_FACTOR * iqr, q3 + IQR_FACTOR * iqr


def filter_outliers(samples: SampleSet) -> SampleSet:
    """
    Keep samples inside the fences of both metrics.

    Each metric is fenced independently and the masks are ANDed; sets with
    fewer than 10 samples are returned unchanged.
    """
    if len(samples) < MIN_SAMPLES_FOR_FILTER:
        return samples

    keep = np.ones(len(samples), dtype=bool)
    for values in (brightness(samples.pixels), saturation(samples.pixels)):
        low, high = tukey_fence(values)
        keep &= (values >= low) & (values <= high)

    return samples.subset(keep)
