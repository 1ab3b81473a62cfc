import io

import pytest
from PIL import Image

from webpify_converter import (
    BatchSession,
    ConversionFailure,
    ConversionResult,
    DecodeFailure,
    convert_image,
    output_name,
)
from webpify_converter import pipeline
from webpify_shared.options import ConversionOptions


@pytest.mark.parametrize(
    "name, source_width, output_width, target, expected",
    [
        ("photo.jpg", 4000, 1920, 1920, "photo-1920w.webp"),
        ("photo.JPG", 4000, 1920, 1920, "photo-1920w.webp"),
        ("scan.jpeg", 800, 800, None, "scan.webp"),
        ("icon.PNG", 64, 64, 1920, "icon.webp"),
        ("archive.tar.png", 500, 250, 250, "archive.tar-250w.webp"),
        ("notes", 100, 100, None, "notes.webp"),
    ],
)
def test_output_name(name, source_width, output_width, target, expected):
    assert output_name(name, source_width, output_width, target) == expected


def test_downscale_conversion(make_image_bytes):
    data = make_image_bytes(400, 300, "JPEG")
    result = convert_image(data, "big.jpg", ConversionOptions(target_width=192))
    assert (result.output_width, result.output_height) == (192, 144)
    assert result.output_name == "big-192w.webp"
    assert result.original_name == "big.jpg"
    assert result.original_size == len(data)


def test_result_round_trips_dimensions(make_image_bytes):
    result = convert_image(
        make_image_bytes(300, 200, "PNG"), "g.png",
        ConversionOptions(target_width=120, sharpness=0.6, resize_algorithm="magicKernel"),
    )
    with Image.open(io.BytesIO(result.encoded_bytes)) as img:
        assert img.format == "WEBP"
        assert img.size == (result.output_width, result.output_height)


def test_original_size_skips_resampler(make_image_bytes, monkeypatch):
    calls = []

    def no_resample(*args, **kwargs):
        raise AssertionError("resampler must not run")

    real_unsharp = pipeline.unsharp

    def tracking_unsharp(buffer, amount):
        calls.append(amount)
        return real_unsharp(buffer, amount)

    monkeypatch.setattr(pipeline, "resample", no_resample)
    monkeypatch.setattr(pipeline, "unsharp", tracking_unsharp)

    data = make_image_bytes(800, 600, "JPEG")
    result = convert_image(data, "a.jpg", ConversionOptions(target_width=None))
    assert (result.output_width, result.output_height) == (800, 600)
    assert result.output_name == "a.webp"
    assert calls == []

    convert_image(data, "a.jpg", ConversionOptions(target_width=None, sharpness=0.5))
    assert calls == [0.5]


def test_target_wider_than_source_keeps_size(make_image_bytes):
    result = convert_image(make_image_bytes(100, 80), "s.jpg", ConversionOptions(target_width=1920))
    assert (result.output_width, result.output_height) == (100, 80)
    assert result.output_name == "s.webp"


def test_watermark_patch_runs_before_resample(make_image_bytes, monkeypatch):
    order = []
    real_patch, real_resample = pipeline.patch_watermark, pipeline.resample

    def patch(buffer):
        order.append("patch")
        return real_patch(buffer)

    def resample(*args, **kwargs):
        order.append("resample")
        return real_resample(*args, **kwargs)

    monkeypatch.setattr(pipeline, "patch_watermark", patch)
    monkeypatch.setattr(pipeline, "resample", resample)

    opts = ConversionOptions(target_width=100, remove_watermark=True)
    convert_image(make_image_bytes(200, 150), "w.jpg", opts)
    assert order == ["patch", "resample"]

    order.clear()
    convert_image(make_image_bytes(200, 150), "w.jpg", opts.with_changes(remove_watermark=False))
    assert order == ["resample"]


def test_corrupt_input_raises_decode_failure(corrupt_bytes):
    with pytest.raises(DecodeFailure):
        convert_image(corrupt_bytes, "bad.jpg")


def test_reduction():
    result = ConversionResult(b"x" * 25, "a.webp", 1, 1, "a.jpg", original_size=100)
    assert result.size == 25
    assert result.reduction == pytest.approx(75.0)
    grown = ConversionResult(b"x" * 150, "a.webp", 1, 1, "a.jpg", original_size=100)
    assert grown.reduction == pytest.approx(-50.0)
    assert ConversionResult(b"", "a.webp", 1, 1, "a.jpg").reduction is None


class TestBatchSession:

    def test_failure_is_isolated(self, make_image_bytes, corrupt_bytes):
        session = BatchSession(options=ConversionOptions(target_width=32))
        session.add("one.jpg", make_image_bytes(64, 48))
        session.add("two.jpg", corrupt_bytes)
        session.add("three.png", make_image_bytes(64, 48, "PNG"))

        outcomes = session.run()

        assert [type(o) for o in outcomes] == [ConversionResult, ConversionFailure, ConversionResult]
        assert [r.original_name for r in session.results] == ["one.jpg", "three.png"]
        (failure,) = session.failures
        assert failure.index == 1
        assert failure.original_name == "two.jpg"
        assert failure.stage == "decoding"
        assert failure.error

    def test_oversized_image_does_not_abort_batch(self, make_image_bytes, oversized_png):
        session = BatchSession(options=ConversionOptions(target_width=32))
        session.add("one.jpg", make_image_bytes(64, 48))
        huge = session.add("two.png", oversized_png)
        session.add("three.jpg", make_image_bytes(64, 48))

        assert huge.estimate is None
        session.run()

        assert [r.original_name for r in session.results] == ["one.jpg", "three.jpg"]
        (failure,) = session.failures
        assert (failure.index, failure.stage) == (1, "decoding")

    def test_observers_see_every_image_in_order(self, make_image_bytes, corrupt_bytes):
        events = []
        session = BatchSession(
            options=ConversionOptions(target_width=None),
            on_estimate=lambda i, img: events.append(("estimate", i)),
            on_result=lambda i, r: events.append(("result", i)),
            on_failure=lambda f: events.append(("failure", f.index)),
        )
        session.add("a.jpg", make_image_bytes(20, 20))
        session.add("b.jpg", corrupt_bytes)
        session.add("c.jpg", make_image_bytes(20, 20))
        session.run()

        assert events == [
            ("estimate", 0), ("estimate", 1), ("estimate", 2),
            ("result", 0), ("failure", 1), ("result", 2),
        ]

    def test_estimates_follow_settings_until_run(self, make_image_bytes):
        session = BatchSession(options=ConversionOptions(quality=0.8, target_width=None))
        image = session.add("a.jpg", make_image_bytes(400, 300))
        assert image.estimate.predicted_bytes == pytest.approx(400 * 300 * 0.4 * 0.84)

        session.update_options(ConversionOptions(lossless=True, target_width=200))
        assert (image.estimate.output_width, image.estimate.output_height) == (200, 150)
        assert image.estimate.predicted_bytes == 200 * 150 * 1.5
        assert session.total_estimate() == image.estimate.predicted_bytes

    def test_unreadable_image_has_no_estimate(self, corrupt_bytes):
        session = BatchSession()
        image = session.add("bad.jpg", corrupt_bytes)
        assert image.estimate is None
        assert session.total_estimate() == 0

    def test_settings_are_fixed_once_run(self, make_image_bytes):
        session = BatchSession(options=ConversionOptions(target_width=None))
        session.add("a.jpg", make_image_bytes(16, 16))
        session.run()
        assert session.state == "finished"
        with pytest.raises(RuntimeError):
            session.update_options(ConversionOptions(lossless=True))
        with pytest.raises(RuntimeError):
            session.add("b.jpg", make_image_bytes(16, 16))
        with pytest.raises(RuntimeError):
            session.run()

    def test_stop_between_images(self, make_image_bytes):
        session = BatchSession(options=ConversionOptions(target_width=None))
        session.on_result = lambda i, r: session.stop()
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            session.add(name, make_image_bytes(16, 16))

        outcomes = session.run()
        assert len(outcomes) == 1
        assert outcomes[0].original_name == "a.jpg"

    def test_remove_before_run(self, make_image_bytes):
        session = BatchSession()
        session.add("a.jpg", make_image_bytes(16, 16))
        session.add("b.jpg", make_image_bytes(16, 16))
        removed = session.remove(0)
        assert removed.name == "a.jpg"
        assert [i.name for i in session.images] == ["b.jpg"]

    def test_unexpected_errors_are_recorded(self, make_image_bytes, monkeypatch):
        def explode(*args, **kwargs):
            raise ZeroDivisionError("bad math")

        monkeypatch.setattr(pipeline, "encode_webp", explode)
        session = BatchSession(options=ConversionOptions(target_width=None))
        session.add("a.jpg", make_image_bytes(16, 16))
        session.run()

        (failure,) = session.failures
        assert failure.stage == "encoding"
        assert "ZeroDivisionError" in failure.error
