#!/usr/bin/env python3
"""
Skin tone analysis pipeline.

Estimates a dominant skin color for an image region and classifies it.
Stages: Sample → Filter → Cluster → Classify → Render
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np
from PIL import Image

from clusterer import COARSE, MEDIAN_FALLBACK_VARIANCE, SKIN, ClusterVariant, cluster, representative_color
from color_space import rgb_to_ycbcr
from outlier_filter import filter_outliers
from sampler import (
    DEFAULT_MAX_SAMPLES, DEFAULT_POINT_RADIUS,
    GridRegion, PointRegion, RectRegion, SampleRegion, SampleSet,
    array_accessor, cheek_regions, sample,
)
from skin_confidence import likely_skin_mask, skin_confidence_array
from tone_classifier import ToneResult, classify


# =============================================================================
# Constants
# =============================================================================

DEFAULT_K = 3
MIN_SKIN_CONFIDENCE = 0.1  # Candidates scoring below this are not skin
MIN_CELL_SAMPLES = 10  # Grid cells need this many skin samples to qualify
BEST_POOL_CELLS = 3  # Top-ranked cells pooled for the aggregate result

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


@dataclass(frozen=True)
class AnalysisSettings:
    """Per-call tunables. Defaults come from the module constants."""
    k: int = DEFAULT_K
    max_samples: int = DEFAULT_MAX_SAMPLES
    min_skin_confidence: float = MIN_SKIN_CONFIDENCE
    min_cell_samples: int = MIN_CELL_SAMPLES
    best_pool_cells: int = BEST_POOL_CELLS
    median_fallback_variance: float = MEDIAN_FALLBACK_VARIANCE
    seed: Optional[int] = 0
    point_radius: int = DEFAULT_POINT_RADIUS


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class NoSample:
    """No usable pixels were found; the caller decides how to fall back."""
    reason: str
    region: Optional[SampleRegion] = None


@dataclass(frozen=True)
class GridAnalysis:
    """Whole-image analysis: qualifying cells ranked best first, plus an aggregate."""
    cells: tuple  # ToneResult per qualifying cell
    best: ToneResult


AnalysisOutcome = Union[ToneResult, GridAnalysis, NoSample]


# =============================================================================
# Stage 2: Filter
# =============================================================================

def select_skin_samples(samples: SampleSet, min_confidence: float = MIN_SKIN_CONFIDENCE) -> SampleSet:
    """
    Keep samples that look like skin.

    The RGB/HSV rule runs first so only its candidates are converted to YCbCr
    and scored.
    """
    candidates = samples.subset(likely_skin_mask(samples.pixels))
    if len(candidates) == 0:
        return candidates
    confidence = skin_confidence_array(rgb_to_ycbcr(candidates.pixels))
    return candidates.subset(confidence >= min_confidence)


# =============================================================================
# Stage 3-4: Cluster and Classify
# =============================================================================

def resolve_color(samples: SampleSet, settings: AnalysisSettings,
                  variant: ClusterVariant = SKIN, label: str = "",
                  skin_ratio: Optional[float] = None) -> ToneResult:
    """Cluster non-empty samples and classify the dominant cluster's color."""
    clusters = cluster(samples, settings.k, variant=variant, seed=settings.seed)
    dominant = clusters[0]
    color = representative_color(dominant, settings.median_fallback_variance)

    extra = {
        'cluster_count': float(len(clusters)),
        'dominant_share': dominant.size / len(samples),
        'cluster_variance': dominant.variance,
        'median_fallback': float(dominant.variance > settings.median_fallback_variance),
    }
    if skin_ratio is not None:
        extra['skin_ratio'] = skin_ratio
    return classify(color, label=label, sample_count=len(samples), extra_metrics=extra)


def analyze_samples(samples: SampleSet, settings: AnalysisSettings,
                    label: str = "") -> Union[ToneResult, NoSample]:
    """Filter and resolve a point or rectangle sample set."""
    if len(samples) == 0:
        return NoSample("No pixels inside the image for this region")

    filtered = filter_outliers(samples)
    skin = select_skin_samples(filtered, settings.min_skin_confidence)

    # The user picked this region explicitly, so fall back to all filtered
    # samples rather than failing when none pass the skin test.
    chosen = skin if len(skin) else filtered
    return resolve_color(chosen, settings, SKIN, label, skin_ratio=len(skin) / len(samples))


def analyze_grid(cell_sets: list[SampleSet], settings: AnalysisSettings) -> Union[GridAnalysis, NoSample]:
    """Rank qualifying grid cells and build the pooled best result."""
    scored = []
    for cell in cell_sets:
        skin = select_skin_samples(filter_outliers(cell), settings.min_skin_confidence)
        if len(skin) < settings.min_cell_samples:
            continue
        row, col = cell.key
        result = resolve_color(skin, settings, COARSE, label=f"cell r{row}c{col}",
                               skin_ratio=len(skin) / len(cell))
        scored.append((result, skin))

    if not scored:
        return NoSample("No grid cell contained enough skin-like pixels")

    scored.sort(key=lambda item: (-item[0].confidence, -item[0].sample_count))

    pooled = SampleSet(np.concatenate([skin.pixels for _, skin in scored[:settings.best_pool_cells]]))
    best = resolve_color(pooled, settings, SKIN, label="best")

    return GridAnalysis(cells=tuple(result for result, _ in scored), best=best)


# =============================================================================
# Entry Points
# =============================================================================

def analyze(pixel_accessor, width: int, height: int, region: SampleRegion,
            settings: Optional[AnalysisSettings] = None, label: str = "") -> AnalysisOutcome:
    """
    Analyze one region of an image.

    Args:
        pixel_accessor: Callable (x, y) -> (r, g, b)
        width, height: Image dimensions
        region: PointRegion, RectRegion or GridRegion
        settings: Tunables; defaults when omitted
        label: Name carried on the result (e.g. "left cheek")

    Returns:
        ToneResult for point and rectangle regions, GridAnalysis for grid
        regions, or NoSample when no usable pixels were found.
    """
    settings = settings or AnalysisSettings()
    if settings.k < 1:
        raise ValueError(f"k must be at least 1, got {settings.k}")

    samples = sample(pixel_accessor, width, height, region, settings.max_samples)

    if isinstance(region, GridRegion):
        outcome = analyze_grid(samples, settings)
    else:
        outcome = analyze_samples(samples, settings, label)

    if isinstance(outcome, NoSample):
        return replace(outcome, region=region)
    return outcome


def analyze_face(pixel_accessor, width: int, height: int, face_box: tuple,
                 settings: Optional[AnalysisSettings] = None) -> list:
    """Analyze both cheeks of a detected face box (left, top, width, height)."""
    settings = settings or AnalysisSettings()
    return [
        analyze(pixel_accessor, width, height, region, settings, label=name)
        for name, region in cheek_regions(face_box, settings.point_radius).items()
    ]


def load_image(image_path: str) -> np.ndarray:
    """
    Load an image as an (H, W, 3) uint8 RGB array.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    # Validate image dimensions (security: prevent decompression bombs)
    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    return np.array(img.convert('RGB'))


def analyze_image(image_path: str, region: SampleRegion,
                  settings: Optional[AnalysisSettings] = None, label: str = "") -> AnalysisOutcome:
    """Load an image file and analyze one region of it."""
    pixels = load_image(image_path)
    h, w = pixels.shape[:2]
    return analyze(array_accessor(pixels), w, h, region, settings, label)


def flatten_outcome(outcome) -> list:
    """ToneResults of an outcome (or list of outcomes), best first for grids."""
    if isinstance(outcome, list):
        return [r for item in outcome for r in flatten_outcome(item)]
    if isinstance(outcome, GridAnalysis):
        return [outcome.best, *outcome.cells]
    if isinstance(outcome, ToneResult):
        return [outcome]
    return []


# =============================================================================
# Stage 5: Render
# =============================================================================

def describe_failure(outcome: NoSample) -> str:
    return f"Could not analyze: {outcome.reason}"


def render(outcome) -> str:
    """Render an analysis outcome as prose."""
    results = flatten_outcome(outcome)
    if not results:
        failures = outcome if isinstance(outcome, list) else [outcome]
        return "\n".join(describe_failure(f) for f in failures if isinstance(f, NoSample))

    lines = []
    for result in results:
        title = result.label or "Region"
        lines.append(f"[{title}] {result.category.glyph} {result.tone_category} "
                     f"({result.category.base_tone}, Fitzpatrick {result.category.fitzpatrick})")
        lines.append(f"  Hex: {result.hex} | {result.rgb_text} | {result.hsv_text}")
        lines.append(f"  LAB: ({result.lab.L:.0f}, {result.lab.a:.0f}, {result.lab.b:.0f}) | "
                     f"ITA: {result.ita:.1f}°")
        lines.append(f"  Undertone: {result.warm_cool} "
                     f"(warm {result.metrics['warm_score']:.2f} / cool {result.metrics['cool_score']:.2f}) | "
                     f"Cast: {result.color_bias}")
        lines.append(f"  Skin confidence: {result.confidence:.0%} | Samples: {result.sample_count}")
        if result.metrics.get('median_fallback'):
            lines.append("  High variance region, median color used")
        lines.append("")

    if isinstance(outcome, list):
        for item in outcome:
            if isinstance(item, NoSample):
                lines.append(describe_failure(item))

    return "\n".join(lines).rstrip()


def text_color_for_background(L: float) -> str:
    """Return black or white text color based on background lightness."""
    return "#000" if L > 50 else "#fff"


def render_html(outcome, image_path: str) -> str:
    """Render an analysis outcome as an HTML report."""
    from html import escape

    safe_path = escape(image_path)
    results = flatten_outcome(outcome)

    css = """
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: system-ui, -apple-system, sans-serif;
            background: #f5f5f5;
            color: #333;
            line-height: 1.5;
            padding: 2rem;
            max-width: 900px;
            margin: 0 auto;
        }
        h1 { font-size: 1.5rem; margin-bottom: 0.5rem; }
        .meta { color: #666; font-size: 0.9rem; margin-bottom: 1rem; }
        .tone-card {
            background: #fff;
            border-radius: 8px;
            padding: 1rem;
            margin-bottom: 1rem;
            box-shadow: 0 1px 3px rgba(0,0,0,0.08);
            display: grid;
            grid-template-columns: 60px 1fr;
            gap: 1rem;
        }
        .tone-card .swatch {
            width: 60px;
            height: 60px;
            border-radius: 6px;
            display: flex;
            align-items: center;
            justify-content: center;
            font-size: 1.2rem;
        }
        .tone-card .info { font-size: 0.85rem; }
        .tone-card .title { font-weight: 600; }
        .tone-card .values { font-family: monospace; color: #555; font-size: 0.8rem; }
        .tone-card .chars { font-style: italic; color: #777; margin-top: 0.25rem; }
        .failure { color: #a33; }
    """

    lines = [
        '<!DOCTYPE html>',
        '<html lang="en">',
        '<head>',
        '<meta charset="utf-8">',
        f'<title>Skin tone: {safe_path}</title>',
        f'<style>{css}</style>',
        '</head>',
        '<body>',
        '<h1>Skin Tone Analysis</h1>',
        f'<p class="meta">{safe_path}</p>',
    ]

    for result in results:
        text_color = text_color_for_background(result.lab.L)
        lines.append('<div class="tone-card">')
        lines.append(f'  <div class="swatch" style="background:{result.hex}; color:{text_color}">'
                     f'{result.category.glyph}</div>')
        lines.append('  <div class="info">')
        lines.append(f'    <div class="title">{escape(result.label or "Region")}: '
                     f'{escape(result.tone_category)} ({escape(result.category.base_tone)})</div>')
        lines.append(f'    <div class="values">{result.hex} / {escape(result.rgb_text)} / '
                     f'{escape(result.hsv_text)} / ITA {result.ita:.1f}°</div>')
        lines.append(f'    <div class="chars">{escape(result.warm_cool)} undertone, '
                     f'{escape(result.color_bias)}, skin confidence {result.confidence:.0%}</div>')
        lines.append('  </div>')
        lines.append('</div>')

    if not results:
        failures = outcome if isinstance(outcome, list) else [outcome]
        for failure in failures:
            if isinstance(failure, NoSample):
                lines.append(f'<p class="failure">{escape(describe_failure(failure))}</p>')

    lines.append('</body>')
    lines.append('</html>')

    return '\n'.join(lines)


# =============================================================================
# CLI
# =============================================================================

def parse_numbers(text: str, count: int) -> tuple:
    """Parse 'a,b,...' into exactly `count` floats."""
    parts = text.split(',')
    if len(parts) != count:
        raise ValueError(f"Expected {count} comma-separated numbers, got '{text}'")
    try:
        return tuple(float(p) for p in parts)
    except ValueError:
        raise ValueError(f"Invalid number in '{text}'")


def build_region(args) -> SampleRegion:
    if args.point:
        x, y = parse_numbers(args.point, 2)
        return PointRegion((x, y), args.radius)
    if args.rect:
        return RectRegion(*parse_numbers(args.rect, 4))
    return GridRegion()


def main(argv=None):
    import argparse
    import sys
    from pathlib import Path

    parser = argparse.ArgumentParser(
        description='Analyze the skin tone of an image region.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument('--point', help='Sample around X,Y')
    target.add_argument('--rect', help='Sample the rectangle LEFT,TOP,RIGHT,BOTTOM')
    target.add_argument('--face', help='Sample both cheeks of face box LEFT,TOP,WIDTH,HEIGHT')
    target.add_argument('--grid', action='store_true', help='Analyze the whole image (default)')
    parser.add_argument('-k', type=int, default=DEFAULT_K, help='Clusters per region')
    parser.add_argument('--radius', type=int, default=DEFAULT_POINT_RADIUS,
                        help='Neighbourhood radius for --point and --face')
    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write HTML report. Optionally specify path, otherwise auto-names from input.'
    )

    args = parser.parse_args(argv)
    image_path = Path(args.input)
    settings = AnalysisSettings(k=args.k, point_radius=args.radius)

    try:
        pixels = load_image(str(image_path))
        h, w = pixels.shape[:2]
        accessor = array_accessor(pixels)
        if args.face:
            outcome = analyze_face(accessor, w, h, parse_numbers(args.face, 4), settings)
        else:
            outcome = analyze(accessor, w, h, build_region(args), settings)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        sys.exit(1)

    print(render(outcome))

    if args.output:
        if args.output is True:
            output_path = image_path.with_name(f"{image_path.stem}-skintone.html")
        else:
            output_path = Path(args.output)

        try:
            output_path.write_text(render_html(outcome, str(image_path)), encoding='utf-8')
            print(f"\nWrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            sys.exit(1)

    if not flatten_outcome(outcome):
        sys.exit(1)


if __name__ == '__main__':
    main()
