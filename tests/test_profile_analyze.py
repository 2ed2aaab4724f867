import numpy as np
import pytest
from PIL import Image

from profile_analyze import main, profile_image


@pytest.fixture
def image_dir(tmp_path):
    img = np.full((90, 90, 3), (40, 90, 200), dtype=np.uint8)
    img[30:60, 30:60] = (200, 150, 120)
    Image.fromarray(img).save(tmp_path / "face.png")
    return tmp_path


def test_profile_image_times_every_stage(image_dir):
    timings, skin = profile_image(str(image_dir / "face.png"), verbose=False)
    assert set(timings) == {'load', 'sample', 'outlier_filter', 'skin_filter',
                            'cluster', 'classify', 'total'}
    assert len(skin) == 1


def test_main_prints_summary(image_dir, capsys):
    main([str(image_dir)])
    printed = capsys.readouterr().out
    assert "Found 1 test images" in printed
    assert "SUMMARY" in printed
    assert "Detailed profile of cluster()" in printed


def test_main_without_images_exits(tmp_path):
    with pytest.raises(SystemExit):
        main([str(tmp_path)])
