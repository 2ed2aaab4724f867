import numpy as np
import pytest
from PIL import Image

from analyze import (
    AnalysisSettings, GridAnalysis, NoSample,
    analyze, analyze_face, analyze_image, load_image, main, render, render_html, select_skin_samples,
)
from sampler import GridRegion, PointRegion, RectRegion, SampleSet, array_accessor
from tone_classifier import ToneResult

SKIN = (200, 150, 120)
BACKGROUND = (40, 90, 200)


def solid(width, height, color):
    return np.full((height, width, 3), color, dtype=np.uint8)


def face_image():
    """Blue background with a skin-colored block in the middle third."""
    img = solid(150, 150, BACKGROUND)
    img[50:100, 50:100] = SKIN
    return img


def assert_close_rgb(pixel, expected, tol=1):
    assert all(abs(int(p) - e) <= tol for p, e in zip(pixel, expected)), (pixel, expected)


def test_point_analysis_on_uniform_skin():
    img = solid(100, 100, SKIN)
    result = analyze(array_accessor(img), 100, 100, PointRegion((50, 50)))
    assert isinstance(result, ToneResult)
    assert_close_rgb(result.rgb, SKIN)
    assert result.tone_category == "Intermediate"
    assert result.warm_cool == "warm"
    assert result.confidence > 0.5
    assert result.sample_count == 26 * 26
    assert result.metrics['skin_ratio'] == 1.0


def test_point_outside_image_is_degenerate():
    img = solid(40, 40, SKIN)
    region = PointRegion((500, 500), radius=10)
    result = analyze(array_accessor(img), 40, 40, region)
    assert isinstance(result, NoSample)
    assert result.region == region


def test_point_without_skin_still_reports_color():
    img = solid(60, 60, BACKGROUND)
    result = analyze(array_accessor(img), 60, 60, PointRegion((30, 30)))
    assert isinstance(result, ToneResult)
    assert_close_rgb(result.rgb, BACKGROUND)
    assert result.metrics['skin_ratio'] == 0.0
    assert result.confidence == 0.0


def test_rect_analysis_uses_center():
    img = face_image()
    result = analyze(array_accessor(img), 150, 150, RectRegion(55, 55, 95, 95))
    assert isinstance(result, ToneResult)
    assert_close_rgb(result.rgb, SKIN)


def test_skin_pixels_win_over_background():
    img = face_image()
    # Neighbourhood straddles the block edge: mostly background
    result = analyze(array_accessor(img), 150, 150, PointRegion((45, 75), radius=15))
    assert_close_rgb(result.rgb, SKIN)


def test_grid_analysis_ranks_skin_cells():
    img = face_image()
    outcome = analyze(array_accessor(img), 150, 150, GridRegion())
    assert isinstance(outcome, GridAnalysis)
    assert [r.label for r in outcome.cells] == ["cell r1c1"]
    assert outcome.best.label == "best"
    assert_close_rgb(outcome.best.rgb, SKIN)


def test_grid_without_skin_is_degenerate():
    img = solid(90, 90, BACKGROUND)
    outcome = analyze(array_accessor(img), 90, 90, GridRegion())
    assert isinstance(outcome, NoSample)
    assert outcome.region == GridRegion()


def test_grid_ranked_by_confidence():
    img = solid(90, 90, BACKGROUND)
    img[0:30, 0:30] = (225, 190, 160)
    img[60:90, 60:90] = SKIN
    outcome = analyze(array_accessor(img), 90, 90, GridRegion())
    confidences = [r.confidence for r in outcome.cells]
    assert len(confidences) == 2
    assert confidences == sorted(confidences, reverse=True)


def test_face_box_analyzes_both_cheeks():
    img = solid(200, 200, SKIN)
    results = analyze_face(array_accessor(img), 200, 200, (50, 40, 100, 120))
    assert [r.label for r in results] == ["left cheek", "right cheek"]
    assert all(isinstance(r, ToneResult) for r in results)


def test_face_uses_configured_point_radius():
    img = solid(200, 200, SKIN)
    settings = AnalysisSettings(point_radius=4)
    results = analyze_face(array_accessor(img), 200, 200, (50, 40, 100, 120), settings)
    assert [r.sample_count for r in results] == [25, 25]


def test_invalid_k_rejected():
    img = solid(10, 10, SKIN)
    with pytest.raises(ValueError):
        analyze(array_accessor(img), 10, 10, PointRegion((5, 5)), AnalysisSettings(k=0))


def test_select_skin_samples_filters_background():
    pixels = np.array([SKIN] * 5 + [BACKGROUND] * 5, dtype=np.uint8)
    assert len(select_skin_samples(SampleSet(pixels))) == 5


def test_analyze_image_file(tmp_path):
    path = tmp_path / "face.png"
    Image.fromarray(face_image()).save(path)
    result = analyze_image(str(path), PointRegion((75, 75)), label="tap")
    assert result.label == "tap"
    assert_close_rgb(result.rgb, SKIN)


def test_load_image_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "missing.png"))
    bogus = tmp_path / "bogus.png"
    bogus.write_text("not an image")
    with pytest.raises(ValueError):
        load_image(str(bogus))


def test_render_prose_and_html():
    img = face_image()
    outcome = analyze(array_accessor(img), 150, 150, GridRegion())
    prose = render(outcome)
    assert "[best]" in prose
    assert "Intermediate" in prose
    html = render_html(outcome, "<face>.png")
    assert "&lt;face&gt;.png" in html
    assert "#C89678" in html


def test_render_failure():
    assert render(NoSample("nothing here")) == "Could not analyze: nothing here"
    assert "Could not analyze" in render_html(NoSample("nothing here"), "x.png")


def test_cli_point_writes_report(tmp_path, capsys):
    path = tmp_path / "face.png"
    Image.fromarray(face_image()).save(path)
    out = tmp_path / "report.html"
    main(["--input", str(path), "--point", "75,75", "--output", str(out)])
    printed = capsys.readouterr().out
    assert "Intermediate" in printed
    assert out.exists()


def test_cli_missing_file_exits(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--input", str(tmp_path / "nope.png")])
    assert exc.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_cli_no_skin_exits_nonzero(tmp_path, capsys):
    path = tmp_path / "blue.png"
    Image.fromarray(solid(60, 60, BACKGROUND)).save(path)
    with pytest.raises(SystemExit) as exc:
        main(["--input", str(path), "--grid"])
    assert exc.value.code == 1
    assert "Could not analyze" in capsys.readouterr().out


def test_cli_face_honours_radius(tmp_path, capsys):
    path = tmp_path / "face.png"
    Image.fromarray(solid(200, 200, SKIN)).save(path)
    main(["--input", str(path), "--face", "50,40,100,120", "--radius", "4"])
    printed = capsys.readouterr().out
    assert "left cheek" in printed
    assert printed.count("Samples: 25") == 2
