"""
Image conversion orchestration for WebP output.

Each image runs through:
1. Plan output dimensions
2. Patch the bottom-right corner (when watermark removal is on)
3. Resample with sharpening fused in, or copy and sharpen
4. Encode to WebP and name the output

A BatchSession runs images strictly one after another in submission
order. A failing image is recorded and the batch moves on.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Callable, Literal, Union

from webpify_shared.options import ConversionOptions

from .buffer import ImageBuffer
from .codec import decode_image, encode_webp, probe_dimensions
from .dimensions import OutputPlan, is_downscaled, plan_dimensions
from .errors import ConversionError
from .estimate import EstimateRecord, estimate_for, total_estimate
from .resample import resample
from .unsharp import unsharp
from .watermark import patch_watermark

logger = logging.getLogger(__name__)

Stage = Literal[
    "queued", "decoding", "planning", "patching",
    "resampling", "copying", "encoding", "done", "failed",
]

OUTPUT_EXT = ".webp"
_SOURCE_EXT = re.compile(r"\.(jpe?g|png)$", re.IGNORECASE)


@dataclass(frozen=True)
class ConversionResult:
    """A converted image, ready for download or archiving."""
    encoded_bytes: bytes
    output_name: str
    output_width: int
    output_height: int
    original_name: str
    original_size: int = 0

    @property
    def size(self) -> int:
        return len(self.encoded_bytes)

    @property
    def reduction(self) -> float | None:
        """Percent saved against the input; negative if the output grew."""
        if self.original_size <= 0:
            return None
        return (1 - self.size / self.original_size) * 100


@dataclass(frozen=True)
class ConversionFailure:
    """An image that did not convert, with the stage it stopped at."""
    index: int
    original_name: str
    stage: str
    error: str


Outcome = Union[ConversionResult, ConversionFailure]


def output_name(
    original_name: str,
    source_width: int,
    output_width: int,
    target_width: int | None,
) -> str:
    """photo.JPG -> photo.webp, or photo-1920w.webp when it was shrunk."""
    base = _SOURCE_EXT.sub("", original_name)
    suffix = f"-{output_width}w" if target_width and output_width < source_width else ""
    return f"{base}{suffix}{OUTPUT_EXT}"


class ConversionJob:
    """
    Converts a single image to WebP.

    `stage` tracks how far the job got, so a failure can be reported
    against the step that raised it.
    """

    def __init__(self, data: bytes, name: str, options: ConversionOptions | None = None):
        self.data = data
        self.name = name
        self.options: ConversionOptions = options or ConversionOptions()
        self.stage: Stage = "queued"
        self.plan: OutputPlan | None = None

    def run(self) -> ConversionResult:
        """Execute the conversion. Raises ConversionError subclasses."""
        opts = self.options

        self.stage = "decoding"
        buffer = decode_image(self.data, self.name, auto_orient=opts.auto_orient)
        source_width, source_height = buffer.size

        self.stage = "planning"
        self.plan = plan_dimensions(source_width, source_height, opts.target_width)

        if opts.remove_watermark:
            self.stage = "patching"
            patched = patch_watermark(buffer)
            logger.debug("%s: patched %d corner pixels", self.name, patched)

        output = self._transform(buffer)

        self.stage = "encoding"
        encoded = encode_webp(output, opts.quality, opts.lossless, self.name)

        result = ConversionResult(
            encoded_bytes=encoded,
            output_name=output_name(
                self.name, source_width, output.width, opts.target_width
            ),
            output_width=output.width,
            output_height=output.height,
            original_name=self.name,
            original_size=len(self.data),
        )
        self.stage = "done"
        return result

    def _transform(self, buffer: ImageBuffer) -> ImageBuffer:
        opts = self.options
        plan = self.plan

        if is_downscaled(buffer.width, buffer.height, plan):
            self.stage = "resampling"
            return resample(
                buffer,
                plan,
                algorithm=opts.resize_algorithm,
                optimize_alpha=opts.optimize_alpha,
                sharpness=opts.sharpness,
                name=self.name,
            )

        self.stage = "copying"
        output = buffer.copy()
        if opts.sharpness > 0:
            unsharp(output, opts.sharpness)
        return output


def convert_image(
    data: bytes, name: str, options: ConversionOptions | None = None
) -> ConversionResult:
    """Convert one image. Raises ConversionError on failure."""
    return ConversionJob(data, name, options).run()


@dataclass
class SourceImage:
    """An image queued in a batch."""
    name: str
    data: bytes
    width: int | None = None
    height: int | None = None
    estimate: EstimateRecord | None = None


EstimateHandler = Callable[[int, SourceImage], None]
ResultHandler = Callable[[int, ConversionResult], None]
FailureHandler = Callable[[ConversionFailure], None]


@dataclass
class BatchSession:
    """
    Queued images plus the settings snapshot for one run.

    Settings may change while images are being queued (estimates are
    recomputed); once run() starts they are fixed for the whole batch.
    """
    options: ConversionOptions = field(default_factory=ConversionOptions)
    on_estimate: EstimateHandler | None = None
    on_result: ResultHandler | None = None
    on_failure: FailureHandler | None = None
    stop_event: threading.Event = field(default_factory=threading.Event)

    images: list[SourceImage] = field(default_factory=list)
    outcomes: list[Outcome] = field(default_factory=list)
    state: Literal["open", "running", "finished"] = "open"

    def add(self, name: str, data: bytes) -> SourceImage:
        """Queue an image and estimate its output size."""
        self._require_open()
        image = SourceImage(name=name, data=data)
        try:
            image.width, image.height = probe_dimensions(
                data, name, auto_orient=self.options.auto_orient
            )
        except ConversionError as e:
            logger.warning("Cannot read dimensions of %s: %s", name, e.message)
        self.images.append(image)
        self._estimate(len(self.images) - 1, image)
        return image

    def remove(self, index: int) -> SourceImage:
        self._require_open()
        return self.images.pop(index)

    def update_options(self, options: ConversionOptions) -> None:
        """Swap the settings before the run and refresh every estimate."""
        self._require_open()
        self.options = options
        self.refresh_estimates()

    def refresh_estimates(self) -> None:
        for index, image in enumerate(self.images):
            self._estimate(index, image)

    def total_estimate(self) -> float:
        return total_estimate(image.estimate for image in self.images)

    def should_stop(self) -> bool:
        return self.stop_event.is_set()

    def stop(self) -> None:
        """Stop before the next image. The current image still finishes."""
        self.stop_event.set()

    @property
    def results(self) -> list[ConversionResult]:
        return [o for o in self.outcomes if isinstance(o, ConversionResult)]

    @property
    def failures(self) -> list[ConversionFailure]:
        return [o for o in self.outcomes if isinstance(o, ConversionFailure)]

    def run(self) -> list[Outcome]:
        """Convert every queued image in order. Never raises per image."""
        self._require_open()
        self.state = "running"
        options = self.options

        logger.info("Converting %d images", len(self.images))
        for index, image in enumerate(self.images):
            if self.should_stop():
                logger.info("Batch stopped after %d of %d images", index, len(self.images))
                break
            self._run_one(index, image, options)

        self.state = "finished"
        logger.info(
            "Batch complete: %d converted, %d failed",
            len(self.results), len(self.failures),
        )
        return list(self.outcomes)

    def _run_one(self, index: int, image: SourceImage, options: ConversionOptions) -> None:
        job = ConversionJob(image.data, image.name, options)
        try:
            result = job.run()
        except ConversionError as e:
            self._fail(index, image, job.stage, e.message)
            return
        except Exception as e:
            logger.exception("Unexpected error converting %s", image.name)
            self._fail(index, image, job.stage, f"{type(e).__name__}: {e}")
            return

        self.outcomes.append(result)
        logger.info(
            "Converted %s -> %s (%dx%d, %d bytes)",
            image.name, result.output_name,
            result.output_width, result.output_height, result.size,
        )
        if self.on_result is not None:
            self.on_result(index, result)

    def _fail(self, index: int, image: SourceImage, stage: str, message: str) -> None:
        failure = ConversionFailure(index, image.name, stage, message)
        self.outcomes.append(failure)
        logger.warning("Image %d (%s) failed at %s: %s", index, image.name, stage, message)
        if self.on_failure is not None:
            self.on_failure(failure)

    def _estimate(self, index: int, image: SourceImage) -> None:
        if image.width is None or image.height is None:
            image.estimate = None
        else:
            image.estimate = estimate_for(image.width, image.height, self.options)
        if self.on_estimate is not None:
            self.on_estimate(index, image)

    def _require_open(self) -> None:
        if self.state != "open":
            raise RuntimeError(f"Batch is {self.state}; settings and queue are fixed")
