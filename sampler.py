#!/usr/bin/env python3
"""
Draw bounded pixel samples from an image region.

The image is reached only through a pixel accessor, a callable
``accessor(x, y) -> (r, g, b)``, so any decoder can feed the analysis.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union

import numpy as np

from color_space import round_half_up


# =============================================================================
# Constants
# =============================================================================

DEFAULT_POINT_RADIUS = 25  # 51x51 neighbourhood around a tapped point
POINT_STRIDE = 2
DEFAULT_MAX_SAMPLES = 2000

# Whole-image density: samples per axis shrink as the image grows
# (area limit in pixels, samples per axis), checked in order
DENSITY_TARGETS = [
    (500_000, 200),
    (2_000_000, 150),
]
LARGE_IMAGE_DENSITY = 100

# Cheek placement inside a face bounding box
CHEEK_INSET = 0.2
CHEEK_HEIGHT = 0.5

PixelAccessor = Callable[[int, int], tuple]


# =============================================================================
# Regions
# =============================================================================

@dataclass(frozen=True)
class PointRegion:
    """Square neighbourhood around a point, in image coordinates."""
    center: tuple  # (x, y)
    radius: int = DEFAULT_POINT_RADIUS


@dataclass(frozen=True)
class RectRegion:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def center(self) -> tuple:
        return ((self.left + self.right) / 2, (self.top + self.bottom) / 2)


@dataclass(frozen=True)
class GridRegion:
    """Whole image split into rows x cols cells."""
    rows: int = 3
    cols: int = 3


SampleRegion = Union[PointRegion, RectRegion, GridRegion]


@dataclass(frozen=True)
class SampleSet:
    """Sampled pixels, optionally tagged with the grid cell they came from."""
    pixels: np.ndarray  # (n, 3) uint8
    key: Optional[tuple] = None  # (row, col) for grid cells

    def __len__(self) -> int:
        return len(self.pixels)

    def subset(self, mask: np.ndarray) -> 'SampleSet':
        return SampleSet(pixels=self.pixels[mask], key=self.key)


# =============================================================================
# Accessors
# =============================================================================

def array_accessor(image: np.ndarray) -> PixelAccessor:
    """Adapt an (H, W, 3) RGB array to the pixel accessor contract."""
    def accessor(x: int, y: int) -> tuple:
        return image[y, x, :3]
    return accessor


def cheek_regions(face_box: tuple, radius: int = DEFAULT_POINT_RADIUS) -> dict:
    """
    Left and right cheek sample points for a face bounding box.

    Args:
        face_box: (left, top, width, height) in image coordinates
        radius: Neighbourhood radius for each cheek

    Returns:
        {'left cheek': PointRegion, 'right cheek': PointRegion}
    """
    left, top, width, height = face_box
    cheek_y = top + height * CHEEK_HEIGHT
    return {
        'left cheek': PointRegion((left + width * CHEEK_INSET, cheek_y), radius),
        'right cheek': PointRegion((left + width * (1 - CHEEK_INSET), cheek_y), radius),
    }


# =============================================================================
# Sampling
# =============================================================================

def density_target(width: int, height: int) -> int:
    """Samples per axis for whole-image analysis, decreasing with area."""
    area = width * height
    for area_limit, target in DENSITY_TARGETS:
        if area < area_limit:
            return target
    return LARGE_IMAGE_DENSITY


def grid_stride(width: int, height: int) -> int:
    return max(1, min(width, height) // density_target(width, height))


def _collect(accessor: PixelAccessor, width: int, height: int,
             xs: range, ys: range) -> np.ndarray:
    samples = []
    for y in ys:
        if y < 0 or y >= height:
            continue
        for x in xs:
            if x < 0 or x >= width:
                continue
            samples.append(tuple(accessor(x, y))[:3])
    return np.array(samples, dtype=np.uint8).reshape(-1, 3)


def _limit(pixels: np.ndarray, max_samples: int) -> np.ndarray:
    """Decimate evenly to at most max_samples rows."""
    if len(pixels) <= max_samples:
        return pixels
    keep = np.linspace(0, len(pixels) - 1, max_samples).round().astype(np.intp)
    return pixels[keep]


def sample_point(accessor: PixelAccessor, width: int, height: int,
                 center: tuple, radius: int = DEFAULT_POINT_RADIUS,
                 max_samples: int = DEFAULT_MAX_SAMPLES) -> SampleSet:
    """Sample a square neighbourhood with stride 2, skipping out-of-bounds pixels."""
    if radius < 1:
        raise ValueError(f"radius must be positive, got {radius}")
    cx, cy = round_half_up(center[0]), round_half_up(center[1])
    xs = range(cx - radius, cx + radius + 1, POINT_STRIDE)
    ys = range(cy - radius, cy + radius + 1, POINT_STRIDE)
    pixels = _collect(accessor, width, height, xs, ys)
    return SampleSet(pixels=_limit(pixels, max_samples))


def sample_grid(accessor: PixelAccessor, width: int, height: int,
                rows: int = 3, cols: int = 3,
                max_samples: int = DEFAULT_MAX_SAMPLES) -> list[SampleSet]:
    """Sample each cell of a rows x cols partition independently."""
    if rows < 1 or cols < 1:
        raise ValueError(f"grid must have at least one row and column, got {rows}x{cols}")

    stride = grid_stride(width, height)
    sets = []
    for row in range(rows):
        y0, y1 = row * height // rows, (row + 1) * height // rows
        for col in range(cols):
            x0, x1 = col * width // cols, (col + 1) * width // cols
            pixels = _collect(accessor, width, height,
                              range(x0, x1, stride), range(y0, y1, stride))
            sets.append(SampleSet(pixels=_limit(pixels, max_samples), key=(row, col)))
    return sets


def sample(accessor: PixelAccessor, width: int, height: int, region: SampleRegion,
           max_samples: int = DEFAULT_MAX_SAMPLES) -> Union[SampleSet, list[SampleSet]]:
    """
    Sample pixels for a region.

    Returns a single SampleSet for point and rectangle regions, and one
    SampleSet per cell (keyed by (row, col)) for grid regions.
    """
    if isinstance(region, PointRegion):
        return sample_point(accessor, width, height, region.center, region.radius, max_samples)
    if isinstance(region, RectRegion):
        return sample_point(accessor, width, height, region.center, DEFAULT_POINT_RADIUS, max_samples)
    if isinstance(region, GridRegion):
        return sample_grid(accessor, width, height, region.rows, region.cols, max_samples)
    raise TypeError(f"Unsupported region: {region!r}")
