#!/usr/bin/env python3
"""
Color value types and conversions between sRGB, CIE LAB, YCbCr and HSV.

Array functions take and return (n, 3) numpy arrays. The scalar helpers wrap
them for single colors.
"""

import math
from typing import NamedTuple

import numpy as np


# =============================================================================
# Constants
# =============================================================================

# D65 reference white
XN, YN, ZN = 0.95047, 1.0, 1.08883

# LAB nonlinearity
LAB_EPSILON = 0.008856
LAB_KAPPA = 903.3

# sRGB gamma thresholds
SRGB_FORWARD_THRESHOLD = 0.04045
SRGB_INVERSE_THRESHOLD = 0.0031308


# =============================================================================
# Value Types
# =============================================================================

class Pixel(NamedTuple):
    """An 8-bit RGB color."""
    r: int
    g: int
    b: int


class LabColor(NamedTuple):
    L: float
    a: float
    b: float


class YCbCrColor(NamedTuple):
    """BT.601 full-range luma/chroma."""
    y: float
    cb: float
    cr: float


class HSVColor(NamedTuple):
    h: float  # 0-360 degrees
    s: float  # 0-1
    v: float  # 0-1


# =============================================================================
# Array Conversions
# =============================================================================

def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) to LAB color space."""
    rgb_norm = np.asarray(rgb).reshape(-1, 3).astype(np.float64) / 255.0

    # Apply gamma correction
    mask = rgb_norm > SRGB_FORWARD_THRESHOLD
    rgb_linear = np.where(mask, ((rgb_norm + 0.055) / 1.055) ** 2.4, rgb_norm / 12.92)

    # RGB to XYZ matrix
    r, g, b = rgb_linear[:, 0], rgb_linear[:, 1], rgb_linear[:, 2]
    x = r * 0.4124564 + g * 0.3575761 + b * 0.1804375
    y = r * 0.2126729 + g * 0.7151522 + b * 0.0721750
    z = r * 0.0193339 + g * 0.1191920 + b * 0.9503041

    x, y, z = x / XN, y / YN, z / ZN

    fx = np.where(x > LAB_EPSILON, np.cbrt(x), (LAB_KAPPA * x + 16) / 116)
    fy = np.where(y > LAB_EPSILON, np.cbrt(y), (LAB_KAPPA * y + 16) / 116)
    fz = np.where(z > LAB_EPSILON, np.cbrt(z), (LAB_KAPPA * z + 16) / 116)

    L = 116 * fy - 16
    a = 500 * (fx - fy)
    b_val = 200 * (fy - fz)

    return np.column_stack([L, a, b_val])


def lab_to_rgb(lab: np.ndarray) -> np.ndarray:
    """Convert LAB array to RGB (0-255), rounded and clamped."""
    lab = np.asarray(lab, dtype=np.float64)
    if lab.ndim == 1:
        lab = lab.reshape(1, -1)

    L, a, b = lab[:, 0], lab[:, 1], lab[:, 2]

    fy = (L + 16) / 116
    fx = a / 500 + fy
    fz = fy - b / 200

    x = np.where(fx**3 > LAB_EPSILON, fx**3, (116 * fx - 16) / LAB_KAPPA)
    y = np.where(L > LAB_KAPPA * LAB_EPSILON, fy ** 3, L / LAB_KAPPA)
    z = np.where(fz**3 > LAB_EPSILON, fz**3, (116 * fz - 16) / LAB_KAPPA)

    x = x * XN
    y = y * YN
    z = z * ZN

    r = x * 3.2404542 - y * 1.5371385 - z * 0.4985314
    g = -x * 0.9692660 + y * 1.8760108 + z * 0.0415560
    b_out = x * 0.0556434 - y * 0.2040259 + z * 1.0572252

    rgb_linear = np.column_stack([r, g, b_out])
    mask = rgb_linear > SRGB_INVERSE_THRESHOLD
    rgb = np.where(mask, 1.055 * np.power(np.clip(rgb_linear, 0, None), 1/2.4) - 0.055, 12.92 * rgb_linear)

    return np.clip(np.rint(rgb * 255), 0, 255).astype(np.uint8)


def rgb_to_ycbcr(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) to full-range BT.601 YCbCr."""
    rgb = np.asarray(rgb).reshape(-1, 3).astype(np.float64)
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]

    y = 0.299 * r + 0.587 * g + 0.114 * b
    cb = 128 - 0.168736 * r - 0.331264 * g + 0.5 * b
    cr = 128 + 0.5 * r - 0.418688 * g - 0.081312 * b

    return np.column_stack([y, cb, cr])


def rgb_to_hsv(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB array (0-255) to HSV with hue in degrees, s and v in 0-1."""
    rgb_norm = np.asarray(rgb).reshape(-1, 3).astype(np.float64) / 255.0
    r, g, b = rgb_norm[:, 0], rgb_norm[:, 1], rgb_norm[:, 2]

    c_max = rgb_norm.max(axis=1)
    c_min = rgb_norm.min(axis=1)
    delta = c_max - c_min

    # Divisions are masked below wherever delta or c_max is zero
    with np.errstate(divide='ignore', invalid='ignore'):
        hue = np.select(
            [delta == 0, c_max == r, c_max == g],
            [0.0, ((g - b) / delta) % 6, (b - r) / delta + 2],
            default=(r - g) / delta + 4,
        ) * 60
        saturation = np.where(c_max > 0, delta / c_max, 0.0)

    return np.column_stack([hue % 360, saturation, c_max])


# =============================================================================
# Scalar Helpers
# =============================================================================

def pixel_to_lab(r: int, g: int, b: int) -> LabColor:
    L, a, b_val = rgb_to_lab(np.array([[r, g, b]]))[0]
    return LabColor(float(L), float(a), float(b_val))


def lab_to_pixel(L: float, a: float, b: float) -> Pixel:
    r, g, b_out = lab_to_rgb(np.array([L, a, b]))[0]
    return Pixel(int(r), int(g), int(b_out))


def pixel_to_ycbcr(r: int, g: int, b: int) -> YCbCrColor:
    y, cb, cr = rgb_to_ycbcr(np.array([[r, g, b]]))[0]
    return YCbCrColor(float(y), float(cb), float(cr))


def pixel_to_hsv(r: int, g: int, b: int) -> HSVColor:
    h, s, v = rgb_to_hsv(np.array([[r, g, b]]))[0]
    return HSVColor(float(h), float(s), float(v))


def pixel_to_hex(pixel: Pixel) -> str:
    return f"#{pixel.r:02X}{pixel.g:02X}{pixel.b:02X}"


def compute_chroma(lab: LabColor) -> float:
    """Compute chroma (saturation) from LAB coordinates."""
    return math.sqrt(lab.a**2 + lab.b**2)


def compute_hue(lab: LabColor) -> float:
    """Compute hue angle (0-360 degrees) from LAB coordinates."""
    return math.degrees(math.atan2(lab.b, lab.a)) % 360


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (Python's round() goes to even)."""
    return int(math.floor(value + 0.5))
