#!/usr/bin/env python3
"""Profile the skin tone pipeline to identify performance bottlenecks."""

import cProfile
import io
import pstats
import sys
import time
from pathlib import Path

import numpy as np

from analyze import AnalysisSettings, load_image, select_skin_samples
from clusterer import COARSE, cluster, representative_color
from outlier_filter import filter_outliers
from sampler import GridRegion, SampleSet, array_accessor, sample
from tone_classifier import classify


def profile_image(image_path: str, verbose: bool = True):
    """Time each pipeline stage for whole-image analysis of one image."""

    if verbose:
        print(f"\n{'='*60}")
        print(f"Profiling: {Path(image_path).name}")
        print(f"{'='*60}")

    settings = AnalysisSettings()
    timings = {}

    start = time.perf_counter()
    pixels = load_image(image_path)
    timings['load'] = time.perf_counter() - start
    h, w = pixels.shape[:2]

    start = time.perf_counter()
    cells = sample(array_accessor(pixels), w, h, GridRegion(), settings.max_samples)
    timings['sample'] = time.perf_counter() - start

    start = time.perf_counter()
    filtered = [filter_outliers(cell) for cell in cells]
    timings['outlier_filter'] = time.perf_counter() - start

    start = time.perf_counter()
    skin = [select_skin_samples(cell, settings.min_skin_confidence) for cell in filtered]
    skin = [cell for cell in skin if len(cell) >= settings.min_cell_samples]
    timings['skin_filter'] = time.perf_counter() - start

    start = time.perf_counter()
    dominant = [cluster(cell, settings.k, variant=COARSE, seed=settings.seed)[0] for cell in skin]
    timings['cluster'] = time.perf_counter() - start

    start = time.perf_counter()
    for c in dominant:
        classify(representative_color(c))
    timings['classify'] = time.perf_counter() - start

    total = sum(timings.values())
    timings['total'] = total

    if verbose:
        print(f"  Image: {w}x{h} ({w * h:,} pixels)")
        print(f"  Samples: {sum(len(c) for c in cells):,} | Skin: {sum(len(c) for c in skin):,} "
              f"| Qualifying cells: {len(skin)}")
        print(f"\nStage timings:")
        for stage, t in timings.items():
            pct = (t / total * 100) if stage != 'total' else 100
            print(f"  {stage:20s}: {t:6.3f}s ({pct:5.1f}%)")

    return timings, skin


def detailed_profile(image_path: str):
    """Run detailed cProfile on clustering (the main compute stage)."""

    print(f"\n{'='*60}")
    print(f"Detailed profile of cluster()")
    print(f"{'='*60}")

    settings = AnalysisSettings()
    pixels = load_image(image_path)
    h, w = pixels.shape[:2]
    cells = sample(array_accessor(pixels), w, h, GridRegion(), settings.max_samples)
    pooled = SampleSet(np.concatenate([cell.pixels for cell in cells]))

    profiler = cProfile.Profile()
    profiler.enable()
    clusters = cluster(pooled, settings.k, seed=settings.seed)
    profiler.disable()

    stream = io.StringIO()
    stats = pstats.Stats(profiler, stream=stream)
    stats.sort_stats('cumulative')
    stats.print_stats(30)  # Top 30 functions

    print(stream.getvalue())

    return clusters


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    images_dir = Path(args[0]) if args else Path(__file__).parent / "source_images"
    images = sorted(p for p in images_dir.glob("*") if p.suffix.lower() in {'.jpg', '.jpeg', '.png'})

    if not images:
        print(f"No images found in {images_dir}")
        sys.exit(1)

    print(f"Found {len(images)} test images")

    all_timings = []
    for img in images:
        timings, skin = profile_image(str(img))
        all_timings.append((img.name, timings, len(skin)))

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    print(f"{'Image':<35} {'Cells':>8} {'Total':>8}")
    print("-" * 60)
    for name, timings, cells in all_timings:
        print(f"{name:<35} {cells:>8,} {timings['total']:>7.3f}s")

    detailed_profile(str(images[0]))


if __name__ == "__main__":
    main()
