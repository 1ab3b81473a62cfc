import io
import zipfile

import pytest
from click.testing import CliRunner
from PIL import Image

from webpify_cli.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def photos(tmp_path, make_image_bytes):
    src = tmp_path / "in"
    src.mkdir()
    (src / "wide.jpg").write_bytes(make_image_bytes(400, 200))
    (src / "small.png").write_bytes(make_image_bytes(60, 40, "PNG"))
    return src


def test_estimate(runner, photos):
    result = runner.invoke(cli, ["estimate", str(photos), "--size", "200"])
    assert result.exit_code == 0, result.output
    assert "wide.jpg: 400x200 -> 200x100" in result.output
    assert "small.png: 60x40 " in result.output
    assert "Total: ~" in result.output


def test_convert_writes_webp_and_zip(runner, photos, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(cli, [
        "convert", str(photos), "-o", str(out), "--size", "200",
        "--sharpness", "0.5", "--algorithm", "mks2013", "--zip",
    ])
    assert result.exit_code == 0, result.output
    assert "2 converted, 0 failed" in result.output

    with Image.open(out / "wide-200w.webp") as img:
        assert img.size == (200, 100)
    assert (out / "small.webp").exists()

    with zipfile.ZipFile(out / "converted-images.zip") as z:
        assert sorted(z.namelist()) == ["small.webp", "wide-200w.webp"]


def test_convert_original_size_lossless(runner, photos, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(cli, [
        "convert", str(photos / "wide.jpg"), "-o", str(out),
        "--size", "original", "--lossless", "--remove-watermark",
    ])
    assert result.exit_code == 0, result.output
    with Image.open(out / "wide.webp") as img:
        assert img.size == (400, 200)


def test_failure_sets_exit_code(runner, photos, tmp_path, corrupt_bytes):
    (photos / "broken.jpg").write_bytes(corrupt_bytes)
    out = tmp_path / "out"
    result = runner.invoke(cli, ["convert", str(photos), "-o", str(out)])
    assert result.exit_code == 1
    assert "broken.jpg" in result.output
    assert "2 converted, 1 failed" in result.output
    assert (out / "wide.webp").exists()


def test_bad_size_is_usage_error(runner, photos):
    result = runner.invoke(cli, ["estimate", str(photos), "--size", "enormous"])
    assert result.exit_code == 2


def test_no_images_is_usage_error(runner, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    result = runner.invoke(cli, ["convert", str(empty), "-o", str(tmp_path / "out")])
    assert result.exit_code == 2
