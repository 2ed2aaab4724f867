#!/usr/bin/env python3
"""
Classify a resolved skin color by depth, temperature and color cast.

Depth uses the Individual Typology Angle:

    ITA = arctan((L* - 50) / b*) * (180 / pi)

bucketed with the Chardon et al. (1991) thresholds.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np

from color_space import (
    HSVColor, LabColor, Pixel, YCbCrColor,
    compute_chroma, compute_hue, pixel_to_hex, pixel_to_hsv, pixel_to_lab, pixel_to_ycbcr,
    round_half_up,
)
from skin_confidence import skin_confidence


# =============================================================================
# Constants
# =============================================================================

# Substituted for b* = 0, where ITA is undefined. The angle then saturates at
# +/-90 degrees and the category depends on lightness alone.
ITA_EPSILON = 1e-6

# Warm must beat cool (or vice versa) by more than this to be labelled
WARM_COOL_MARGIN = 0.2

WARM = "warm"
COOL = "cool"
NEUTRAL = "neutral"

# Warm/cool score weights (each group sums to 1)
WARM_WEIGHTS = {'hue': 0.35, 'yellow': 0.40, 'cr': 0.25}
COOL_WEIGHTS = {'hue': 0.35, 'green': 0.25, 'blush': 0.15, 'cb': 0.25}

B_STAR_SCALE = 40.0  # b* at which the yellow contribution saturates
A_STAR_SCALE = 10.0  # -a* at which the green contribution saturates
CHROMA_OFFSET_SCALE = 40.0  # Cr/Cb distance from 128 at which contribution saturates
BLUSH_MAX_A = 15.0
BLUSH_MAX_B = 10.0

# Color cast decision table thresholds
GOLDEN_MIN_B = 15.0
ROSY_MIN_A = 5.0
ROSY_MAX_B = 10.0


@dataclass(frozen=True)
class ToneCategory:
    """One row of the ITA depth table."""
    min_ita: float  # Exclusive lower bound; -inf for the last row
    name: str
    base_tone: str
    glyph: str
    fitzpatrick: int


# Ordered highest to lowest
ITA_CATEGORIES = [
    ToneCategory(55, "Very Light", "fair", "🤍", 1),
    ToneCategory(41, "Light", "light", "🌕", 2),
    ToneCategory(28, "Intermediate", "medium", "🌤️", 3),
    ToneCategory(10, "Tan", "tan", "☀️", 4),
    ToneCategory(-30, "Brown", "deep", "🌰", 5),
    ToneCategory(-math.inf, "Dark", "rich", "🌑", 6),
]


@dataclass(frozen=True)
class ToneResult:
    """Terminal classification record. Never mutated after creation."""
    rgb: Pixel
    lab: LabColor
    ycbcr: YCbCrColor
    hsv: HSVColor
    ita: float
    category: ToneCategory
    warm_cool: str
    color_bias: str
    confidence: float
    metrics: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    label: str = ""
    sample_count: int = 0

    @property
    def tone_category(self) -> str:
        return self.category.name

    @property
    def hex(self) -> str:
        return pixel_to_hex(self.rgb)

    @property
    def rgb_text(self) -> str:
        return f"RGB({self.rgb.r}, {self.rgb.g}, {self.rgb.b})"

    @property
    def hsv_text(self) -> str:
        return (f"HSV({round_half_up(self.hsv.h)}°, {round_half_up(self.hsv.s * 100)}%, "
                f"{round_half_up(self.hsv.v * 100)}%)")


# =============================================================================
# ITA
# =============================================================================

def compute_ita(L: float, b: float) -> float:
    """
    Individual Typology Angle in degrees.

    Uses |b*| so the angle grows with lightness for any fixed b*. b* = 0 is
    replaced by ITA_EPSILON, giving +90 above L* = 50, -90 below it and 0 at
    exactly 50.
    """
    b_mag = abs(b)
    if b_mag == 0:
        b_mag = ITA_EPSILON
    return math.degrees(math.atan((L - 50) / b_mag))


def ita_category(ita: float) -> ToneCategory:
    for category in ITA_CATEGORIES:
        if ita > category.min_ita:
            return category
    return ITA_CATEGORIES[-1]


# =============================================================================
# Warm / Cool
# =============================================================================

def _unit(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))


def warm_hue_membership(hue: float) -> float:
    if 15 <= hue <= 60:
        return 1.0
    if hue >= 340 or hue < 15:
        return 0.6
    return 0.0


def cool_hue_membership(hue: float) -> float:
    if 180 <= hue < 270:
        return 1.0
    if 270 <= hue < 340:
        return 0.7
    return 0.0


def warm_cool_scores(hsv: HSVColor, lab: LabColor, ycbcr: YCbCrColor) -> tuple:
    """Return (warm_score, cool_score), each in [0, 1]."""
    warm = (
        WARM_WEIGHTS['hue'] * warm_hue_membership(hsv.h)
        + WARM_WEIGHTS['yellow'] * _unit(lab.b / B_STAR_SCALE)
        + WARM_WEIGHTS['cr'] * _unit((ycbcr.cr - 128) / CHROMA_OFFSET_SCALE)
    )

    # Pink undertone: some redness without the yellow that makes it warm
    if 0 < lab.a < BLUSH_MAX_A and lab.b < BLUSH_MAX_B:
        blush = _unit(1 - max(lab.b, 0) / BLUSH_MAX_B)
    else:
        blush = 0.0

    cool = (
        COOL_WEIGHTS['hue'] * cool_hue_membership(hsv.h)
        + COOL_WEIGHTS['green'] * _unit(-lab.a / A_STAR_SCALE)
        + COOL_WEIGHTS['blush'] * blush
        + COOL_WEIGHTS['cb'] * _unit((ycbcr.cb - 128) / CHROMA_OFFSET_SCALE)
    )

    return _unit(warm), _unit(cool)


def warm_cool_label(warm_score: float, cool_score: float) -> str:
    """Label with a 0.2 dead band so near-equal scores stay neutral."""
    if warm_score > cool_score + WARM_COOL_MARGIN:
        return WARM
    if cool_score > warm_score + WARM_COOL_MARGIN:
        return COOL
    return NEUTRAL


def color_bias(a: float, b: float) -> str:
    """Describe the color cast from LAB a* and b*."""
    if b > GOLDEN_MIN_B and a > 0:
        return "golden/warm cast"
    if a > ROSY_MIN_A and b < ROSY_MAX_B:
        return "rosy/pink cast"
    if a < 0:
        return "cool/green cast"
    if b < 0:
        return "cool/blue cast"
    return "neutral"


# =============================================================================
# Classification
# =============================================================================

def classify(pixel: Pixel, label: str = "", sample_count: int = 0,
             extra_metrics: Optional[Mapping[str, float]] = None) -> ToneResult:
    """Classify a resolved color. Pure; depends only on the color itself."""
    pixel = Pixel(*(int(c) for c in pixel))
    lab = pixel_to_lab(*pixel)
    ycbcr = pixel_to_ycbcr(*pixel)
    hsv = pixel_to_hsv(*pixel)

    ita = compute_ita(lab.L, lab.b)
    warm_score, cool_score = warm_cool_scores(hsv, lab, ycbcr)

    metrics = {
        'warm_score': warm_score,
        'cool_score': cool_score,
        'hue': hsv.h,
        'saturation': hsv.s,
        'value': hsv.v,
        'chroma': compute_chroma(lab),
        'lab_hue': compute_hue(lab),
    }
    if extra_metrics:
        metrics.update(extra_metrics)

    return ToneResult(
        rgb=pixel,
        lab=lab,
        ycbcr=ycbcr,
        hsv=hsv,
        ita=ita,
        category=ita_category(ita),
        warm_cool=warm_cool_label(warm_score, cool_score),
        color_bias=color_bias(lab.a, lab.b),
        confidence=skin_confidence(ycbcr),
        metrics=MappingProxyType(metrics),
        label=label,
        sample_count=sample_count,
    )
