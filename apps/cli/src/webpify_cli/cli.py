"""CLI for batch WebP conversion."""

from __future__ import annotations

import functools
import logging
import sys
import threading
from pathlib import Path
from typing import Any, Callable

import click

from webpify_converter import BatchSession, SourceImage
from webpify_shared.archive import ArchiveFailure, build_archive, unique_names
from webpify_shared.files import format_file_size, read_inputs
from webpify_shared.options import (
    ALGORITHM_ALIASES,
    DEFAULT_QUALITY,
    DEFAULT_TARGET_SIZE,
    RESIZE_ALGORITHMS,
    ConversionOptions,
    OptionsError,
    parse_options,
)

from .config import CliConfig

logger = logging.getLogger(__name__)


def settings_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Conversion settings shared by every command."""
    options = [
        click.option("-q", "--quality", default=DEFAULT_QUALITY, show_default=True,
                     type=click.IntRange(0, 100), help="Lossy quality 0-100"),
        click.option("--lossless", is_flag=True, help="Lossless WebP"),
        click.option("-s", "--size", "target_size", default=DEFAULT_TARGET_SIZE, show_default=True,
                     help='Target width, "original" or "custom"'),
        click.option("--custom-width", type=str, default=None,
                     help="Width for --size custom (>= 50, else 1200)"),
        click.option("--sharpness", default=0.0, show_default=True,
                     type=click.FloatRange(0.0, 1.0), help="Unsharp amount 0-1"),
        click.option("-a", "--algorithm", default="lanczos3", show_default=True,
                     type=click.Choice(list(RESIZE_ALGORITHMS) + list(ALGORITHM_ALIASES)),
                     help="Resize filter"),
        click.option("--optimize-alpha", is_flag=True, help="Premultiplied alpha resampling"),
        click.option("--remove-watermark", is_flag=True,
                     help="Patch bright pixels in the bottom-right corner"),
        click.option("--no-auto-orient", is_flag=True, help="Ignore EXIF orientation"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_options(
    quality: int,
    lossless: bool,
    target_size: str,
    custom_width: str | None,
    sharpness: float,
    algorithm: str,
    optimize_alpha: bool,
    remove_watermark: bool,
    no_auto_orient: bool,
) -> ConversionOptions:
    try:
        return parse_options({
            "quality": quality,
            "lossless": lossless,
            "targetSize": target_size,
            "customWidth": custom_width,
            "sharpness": sharpness,
            "resizeAlgorithm": algorithm,
            "optimizeAlpha": optimize_alpha,
            "removeWatermark": remove_watermark,
            "autoOrient": not no_auto_orient,
        })
    except OptionsError as e:
        raise click.BadParameter(str(e), param_hint="--size") from e


def with_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Collapse the settings flags into one ConversionOptions argument."""
    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        names = ("quality", "lossless", "target_size", "custom_width", "sharpness",
                 "algorithm", "optimize_alpha", "remove_watermark", "no_auto_orient")
        settings = {name: kwargs.pop(name) for name in names}
        kwargs["options"] = build_options(**settings)
        return f(*args, **kwargs)
    return wrapper


def collect(inputs: tuple[Path, ...]) -> list[tuple[str, bytes]]:
    images: list[tuple[str, bytes]] = []
    for path in inputs:
        images.extend(read_inputs(path))
    if not images:
        raise click.UsageError("No JPEG or PNG images found in the given inputs")
    return images


def _describe(image: SourceImage) -> str:
    if image.estimate is None:
        return f"{image.name}: unreadable"
    est = image.estimate
    dims = f"{image.width}x{image.height}"
    if (est.output_width, est.output_height) != (image.width, image.height):
        dims += f" -> {est.output_width}x{est.output_height}"
    return f"{image.name}: {dims}  ~{format_file_size(est.predicted_bytes)}"


def run_session(session: BatchSession) -> None:
    """Run on a worker thread so Ctrl-C stops between images."""
    worker = threading.Thread(target=session.run, name="webpify-batch", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted, finishing the current image")
        session.stop()
        worker.join()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """Batch convert JPEG and PNG images to WebP."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@cli.command()
@click.argument("inputs", nargs=-1, required=True,
                type=click.Path(exists=True, path_type=Path))
@settings_options
@with_options
def estimate(inputs: tuple[Path, ...], options: ConversionOptions) -> None:
    """Predict output sizes without converting."""
    session = BatchSession(options=options)
    for name, data in collect(inputs):
        session.add(name, data)

    for image in session.images:
        click.echo(_describe(image))
    click.echo(f"Total: ~{format_file_size(session.total_estimate())}")


@cli.command()
@click.argument("inputs", nargs=-1, required=True,
                type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Where to write .webp files")
@click.option("--zip", "make_zip", is_flag=True, help="Also write a ZIP of all results")
@click.option("--archive-name", default=None, help="ZIP file name")
@settings_options
@with_options
def convert(
    inputs: tuple[Path, ...],
    output_dir: Path | None,
    make_zip: bool,
    archive_name: str | None,
    options: ConversionOptions,
) -> None:
    """Convert images, directories or ZIP archives of images to WebP."""
    config = CliConfig.load()
    out_dir = config.ensure_directories(output_dir)

    session = BatchSession(
        options=options,
        on_failure=lambda f: click.echo(f"Error: {f.original_name}: {f.error}", err=True),
    )
    for name, data in collect(inputs):
        session.add(name, data)

    run_session(session)

    results = session.results
    names = unique_names([r.output_name for r in results])
    for name, result in zip(names, results):
        (out_dir / name).write_bytes(result.encoded_bytes)
        reduction = result.reduction
        change = "" if reduction is None else f" ({-reduction:+.1f}%)"
        click.echo(
            f"{result.original_name} -> {name} "
            f"{result.output_width}x{result.output_height} "
            f"{format_file_size(result.size)}{change}"
        )

    archive_failed = False
    if make_zip and results:
        zip_path = out_dir / (archive_name or config.archive_name)
        try:
            zip_path.write_bytes(
                build_archive(dict(zip(names, (r.encoded_bytes for r in results))),
                              level=config.archive_level)
            )
            click.echo(f"Archive: {zip_path}")
        except (ArchiveFailure, OSError) as e:
            archive_failed = True
            click.echo(f"Error: Failed to create ZIP file: {e}", err=True)

    click.echo(f"{len(results)} converted, {len(session.failures)} failed")
    if session.failures or archive_failed:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
