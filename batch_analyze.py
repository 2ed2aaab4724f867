#!/usr/bin/env python3
"""Batch analyze skin tone across images and generate HTML reports."""

import argparse
import sys
import time
from pathlib import Path

from analyze import AnalysisSettings, DEFAULT_K, GridAnalysis, analyze_image, render_html
from sampler import GridRegion


def find_images(directory: Path) -> list[Path]:
    """Find all image files in directory."""
    extensions = {'.jpg', '.jpeg', '.png', '.webp'}
    images = set()
    for ext in extensions:
        images.update(directory.glob(f'*{ext}'))
        images.update(directory.glob(f'*{ext.upper()}'))
    return sorted(images)


def summarize(outcome) -> str:
    if isinstance(outcome, GridAnalysis):
        best = outcome.best
        return f"{best.tone_category}, {best.warm_cool} ({len(outcome.cells)} cells)"
    return f"no skin found ({outcome.reason})"


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Batch analyze skin tone and generate HTML reports.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Directory containing images to analyze'
    )
    parser.add_argument(
        '--output', '-o',
        required=True,
        help='Directory for HTML output files'
    )
    parser.add_argument(
        '--rows',
        type=int,
        default=3,
        help='Grid rows for whole-image analysis'
    )
    parser.add_argument(
        '--cols',
        type=int,
        default=3,
        help='Grid columns for whole-image analysis'
    )
    parser.add_argument('-k', type=int, default=DEFAULT_K, help='Clusters per region')

    args = parser.parse_args(argv)

    input_dir = Path(args.input)
    output_dir = Path(args.output)

    # Validate input directory
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        sys.exit(2)

    # Create output directory if needed
    output_dir.mkdir(parents=True, exist_ok=True)

    # Find images
    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        sys.exit(2)

    total = len(images)
    succeeded = 0
    failed = []
    region = GridRegion(rows=args.rows, cols=args.cols)
    settings = AnalysisSettings(k=args.k)

    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        try:
            img_start = time.perf_counter()
            outcome = analyze_image(str(image_path), region, settings)
            html = render_html(outcome, str(image_path))
            img_elapsed = time.perf_counter() - img_start

            output_file = output_dir / f"{image_path.stem}-skintone.html"
            if output_file.exists():
                print(f"  Warning: Overwriting {output_file.name}", file=sys.stderr)
            output_file.write_text(html, encoding='utf-8')

            print(f"[{i}/{total}] {image_path.name} → {summarize(outcome)} ({img_elapsed:.2f}s)")
            succeeded += 1

        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{total}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            failed.append((image_path.name, error_msg))

    batch_elapsed = time.perf_counter() - batch_start

    # Summary
    print()
    print(f"Completed: {succeeded}/{total} succeeded in {batch_elapsed:.2f}s")
    if succeeded > 0:
        print(f"Average: {batch_elapsed / succeeded:.2f}s per image")
    if failed:
        print(f"Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")
        sys.exit(1)


if __name__ == '__main__':
    main()
