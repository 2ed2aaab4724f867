#!/usr/bin/env python3
"""
Perceptual K-means++ clustering of sampled pixels in LAB space.

Distances weight the chromatic axes above lightness, since hue and chroma
separate skin tones better than shading does:

    d(lab1, lab2) = sqrt(dL^2 + w*da^2 + w*db^2),  w = 2.5

Clustering runs on LAB coordinates scaled by (1, sqrt(w), sqrt(w)), where
plain Euclidean distance equals the weighted distance above.
"""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from scipy.spatial.distance import cdist

from color_space import LabColor, Pixel, lab_to_pixel, rgb_to_lab
from sampler import SampleSet


# =============================================================================
# Constants
# =============================================================================

LAB_AB_WEIGHT = 2.5

# Dominant-cluster variance above which the mean stops being representative
# and the per-channel median is used instead. Empirical; keep tunable.
MEDIAN_FALLBACK_VARIANCE = 2000.0

_AXIS_SCALE = np.array([1.0, np.sqrt(LAB_AB_WEIGHT), np.sqrt(LAB_AB_WEIGHT)])


@dataclass(frozen=True)
class ClusterVariant:
    """Iteration cap and convergence threshold (weighted LAB distance)."""
    name: str
    max_iterations: int
    tolerance: float


COARSE = ClusterVariant('coarse', max_iterations=15, tolerance=2.0)
SKIN = ClusterVariant('skin', max_iterations=20, tolerance=1.0)


@dataclass
class Cluster:
    """A non-empty group of samples with its LAB centroid."""
    pixels: np.ndarray  # (n, 3) uint8
    lab: np.ndarray  # (n, 3) LAB of each pixel
    indices: np.ndarray  # Positions of the members in the input samples
    centroid: np.ndarray  # LAB mean
    variance: float  # Mean squared LAB distance to centroid

    @property
    def size(self) -> int:
        return len(self.pixels)

    @property
    def centroid_lab(self) -> LabColor:
        return LabColor(*(float(v) for v in self.centroid))


# =============================================================================
# Distance
# =============================================================================

def perceptual_distance(lab1, lab2) -> float:
    """Weighted LAB distance with a/b counted LAB_AB_WEIGHT times."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return float(np.sqrt(np.sum(diff**2 * _AXIS_SCALE**2)))


def lab_variance(lab: np.ndarray, centroid: np.ndarray) -> float:
    """Mean squared (unweighted) LAB distance to the centroid."""
    return float(np.mean(np.sum((lab - centroid) ** 2, axis=1)))


# =============================================================================
# K-means++
# =============================================================================

def kmeans_plus_plus(points: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Choose up to k initial centers.

    The first center is uniform random; each later one is drawn with
    probability proportional to its squared distance from the nearest chosen
    center. Stops early once every point coincides with a center.
    """
    centers = [points[rng.integers(len(points))]]

    for _ in range(1, k):
        d2 = cdist(points, np.array(centers), 'sqeuclidean').min(axis=1)
        total = d2.sum()
        if total <= 0:
            break
        centers.append(points[rng.choice(len(points), p=d2 / total)])

    return np.array(centers)


def _assign(points: np.ndarray, centers: np.ndarray) -> np.ndarray:
    return cdist(points, centers, 'sqeuclidean').argmin(axis=1)


def _build_cluster(pixels: np.ndarray, lab: np.ndarray, indices: np.ndarray) -> Cluster:
    centroid = lab.mean(axis=0)
    return Cluster(
        pixels=pixels,
        lab=lab,
        indices=indices,
        centroid=centroid,
        variance=lab_variance(lab, centroid),
    )


def cluster(samples: Union[SampleSet, np.ndarray], k: int,
            variant: ClusterVariant = SKIN, seed: Optional[int] = 0) -> list[Cluster]:
    """
    Cluster samples in weighted LAB space.

    Args:
        samples: SampleSet or (n, 3) uint8 RGB array
        k: Requested cluster count
        variant: Iteration cap and convergence threshold
        seed: Seed for center selection; identical inputs give identical output

    Returns:
        Non-empty clusters sorted by size descending (ties: lower variance first).
        Fewer than k samples yields one cluster holding everything. Reaching
        the iteration cap is not an error; the last assignment is returned.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    pixels = samples.pixels if isinstance(samples, SampleSet) else np.asarray(samples)
    pixels = pixels.reshape(-1, 3).astype(np.uint8)
    n = len(pixels)
    if n == 0:
        return []

    lab = rgb_to_lab(pixels)
    if n < k:
        return [_build_cluster(pixels, lab, np.arange(n))]

    rng = np.random.default_rng(seed)
    points = lab * _AXIS_SCALE
    centers = kmeans_plus_plus(points, k, rng)

    for _ in range(variant.max_iterations):
        labels = _assign(points, centers)
        new_centers = centers.copy()
        for j in range(len(centers)):
            members = points[labels == j]
            if len(members):
                new_centers[j] = members.mean(axis=0)

        shift = np.sqrt(((new_centers - centers) ** 2).sum(axis=1)).max()
        centers = new_centers
        if shift <= variant.tolerance:
            break

    labels = _assign(points, centers)

    clusters = []
    for j in range(len(centers)):
        idx = np.flatnonzero(labels == j)
        if len(idx) == 0:
            continue
        clusters.append(_build_cluster(pixels[idx], lab[idx], idx))

    clusters.sort(key=lambda c: (-c.size, c.variance))
    return clusters


def representative_color(dominant: Cluster,
                         variance_threshold: float = MEDIAN_FALLBACK_VARIANCE) -> Pixel:
    """
    Single color standing for a cluster.

    The centroid converted back to RGB, or the per-channel RGB median when
    the cluster is too spread out for its mean to be meaningful.
    """
    if dominant.variance > variance_threshold:
        r, g, b = np.rint(np.median(dominant.pixels, axis=0)).astype(int)
        return Pixel(int(r), int(g), int(b))
    return lab_to_pixel(*dominant.centroid)
