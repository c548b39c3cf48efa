import shlex
import sys
from dataclasses import replace
from pathlib import Path

import click

from videounique.base.config import load_engine_settings, load_overlay_config
from videounique.base.engine import FFmpegEngine
from videounique.base.exceptions import VideoUniqueError
from videounique.base.pipeline import VideoUniquePipeline
from videounique.base.progress import configure


@click.command(help="Speeds up videos and draws the subscribe and hair overlays on them.")
@click.argument(
    "inputs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--hair/--no-hair", default=None, help="Draw the rotated PNG overlay.")
@click.option("--subscribe/--no-subscribe", default=None, help="Draw the GIF overlay at the end of the video.")
@click.option("-s", "--speed", type=float, help="Speed factor, e.g. 1.01 for 1% faster.")
@click.option("-r", "--rotation", type=float, help="Rotation of the PNG overlay in degrees.")
@click.option("-w", "--window", type=float, help="Seconds before the end when the GIF shows up.")
@click.option("--gif", type=click.Path(dir_okay=False, path_type=Path), help="GIF overlay file.")
@click.option("--hair-image", type=click.Path(dir_okay=False, path_type=Path), help="PNG overlay file.")
@click.option("--suffix", default="_final", show_default=True, help="Added to the output file name.")
@click.option("--keep-source", is_flag=True, help="Don't remove the source file after processing.")
@click.option("--gpu", is_flag=True, help="Decode with CUDA and encode with h264_nvenc.")
@click.option(
    "--clear-metadata/--keep-metadata",
    default=None,
    help="Drop container metadata of the source (default: on).",
)
@click.option("--dry-run", is_flag=True, help="Print the ffmpeg commands instead of running them.")
@click.option("--progress/--no-progress", default=True, help="Show progress bars.")
@click.option("-v", "--verbose", is_flag=True, help="Log every step.")
def main(
    inputs: tuple[Path, ...],
    hair: bool | None,
    subscribe: bool | None,
    speed: float | None,
    rotation: float | None,
    window: float | None,
    gif: Path | None,
    hair_image: Path | None,
    suffix: str,
    keep_source: bool,
    gpu: bool,
    clear_metadata: bool | None,
    dry_run: bool,
    progress: bool,
    verbose: bool,
):
    configure(verbose=verbose, progress=progress)

    try:
        config = load_overlay_config().with_overrides(
            enable_hair_overlay=hair,
            enable_subscribe_overlay=subscribe,
            speed_factor=speed,
            rotation_degrees=rotation,
            overlay_window_seconds=window,
            gif_overlay=gif,
            hair_overlay=hair_image,
        )
        settings = load_engine_settings()
        if gpu:
            settings = replace(settings, hwaccel=True, video_codec="h264_nvenc")
        if clear_metadata is not None:
            settings = replace(settings, clear_metadata=clear_metadata)
        pipeline = VideoUniquePipeline(
            config,
            engine=FFmpegEngine(settings),
            output_suffix=suffix,
            delete_source=not keep_source,
        )
    except VideoUniqueError as e:
        raise click.UsageError(str(e)) from e

    failed = 0
    for source in inputs:
        if dry_run:
            try:
                command, _ = pipeline.prepare(source)
            except VideoUniqueError as e:
                click.echo(f"{source}: {e}", err=True)
                failed += 1
                continue
            click.echo(shlex.join(command))
            continue

        result = pipeline.process_many([source])[0]
        if result.ok:
            click.echo(f"{source} -> {result.output}")
        else:
            click.echo(f"{source}: {result.error}", err=True)
            failed += 1

    if failed:
        click.echo(f"{failed} of {len(inputs)} video(s) failed.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
