"""
Main entry point for the BDAA authoring tool.

This script parses the command line, configures logging and runs the requested
sub-command: probing tracks, building a Blu-ray audio folder, or burning a
finished folder to disc. Builds run on a background worker; Ctrl-C requests
cancellation and stops any running ffmpeg/tsMuxeR process.
"""

import concurrent.futures
import sys
from typing import List, Optional

from loguru import logger

from bdaa.cli import get_args
from bdaa.config.audio import LPCMFormat, OutputCodec
from bdaa.config.common import LOGGER_FORMAT
from bdaa.config.disc import DiscCapacity
from bdaa.config.user_config import TOOL_KEYS, UserConfig
from bdaa.domain.exceptions import BdaaException, BuildCancelledError
from bdaa.domain.media import import_tracks
from bdaa.domain.models import BackgroundType, BuildOptions, FrameStyle
from bdaa.domain.session import BuildSession, SessionSnapshot
from bdaa.pipeline.build_pipeline import BuildPipeline, BurnPipeline
from bdaa.services.disc_burner import DiscBurner
from bdaa.services.tool_resolver import ToolResolver
from bdaa.utils.format_utils import format_seconds, formatted_size

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

# Configure the logger for initial setup; the level is set again from the arguments.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


def _load_config(args) -> UserConfig:
    user_config = UserConfig.load(args.config)
    for key in TOOL_KEYS:
        override = getattr(args, key, None)
        if override:
            user_config.tool_paths[key] = override
    return user_config


def _import(args, user_config: UserConfig):
    ffprobe = ToolResolver(user_config).resolve("ffprobe")
    track_list = import_tracks(args.files, ffprobe)
    if args.sort:
        track_list.sort_natural()
    return track_list


def run_probe(args) -> int:
    user_config = _load_config(args)
    track_list = _import(args, user_config)
    for index, item in enumerate(track_list, start=1):
        duration = format_seconds(item.duration) if item.is_probed else "?"
        print(f"{index:02d}. {item.describe()} [{duration}]")
    print(f"{len(track_list)} track(s), total {format_seconds(track_list.total_duration)}")
    return EXIT_OK


def _build_options(args, user_config: UserConfig) -> BuildOptions:
    output_dir = args.output_dir or user_config.output_dir
    if output_dir is None:
        raise BdaaException("No output directory given (use --output-dir).")
    style = FrameStyle(
        background_type=BackgroundType(args.background),
        solid_color=args.background_color,
        gradient_start=args.gradient_start,
        gradient_end=args.gradient_end,
        background_image=args.background_image,
        cover_art=args.cover_art,
        show_border=args.border,
        border_color=args.border_color,
        title_color=args.title_color,
        enable_glow=args.glow,
        glow_color=args.glow_color,
        glow_intensity=args.glow_intensity,
        show_artist=args.show_artist,
        show_album=args.show_album,
        custom_artist=args.artist,
        custom_album=args.album,
    )
    return BuildOptions(
        output_dir=output_dir.expanduser().resolve(),
        output_codec=OutputCodec(args.codec),
        lpcm_format=None if args.lpcm_format == "auto" else LPCMFormat(args.lpcm_format),
        fps=args.fps,
        resolution=args.resolution,
        use_custom_video=not args.black_video,
        frame_style=style,
        target_disc=DiscCapacity(args.disc),
        keep_workspace=args.keep_workspace,
    )


def _status_printer():
    last_status = {"text": None}

    def on_change(snapshot: SessionSnapshot):
        if snapshot.working and snapshot.status and snapshot.status != last_status["text"]:
            last_status["text"] = snapshot.status
            logger.info(f"[{snapshot.progress:4.0%}] {snapshot.status}")

    return on_change


def _wait(future: concurrent.futures.Future, pipeline: BuildPipeline):
    while True:
        try:
            return future.result(timeout=0.5)
        except concurrent.futures.TimeoutError:
            continue
        except KeyboardInterrupt:
            logger.warning("Interrupted. Cancelling build...")
            pipeline.cancel()


def run_build(args) -> int:
    user_config = _load_config(args)
    options = _build_options(args, user_config)
    track_list = _import(args, user_config)

    session = BuildSession()
    session.subscribe(_status_printer())
    pipeline = BuildPipeline(session, user_config)
    future = pipeline.start(track_list.freeze(), options)
    try:
        result = _wait(future, pipeline)
    finally:
        pipeline.shutdown()

    disc = options.target_disc
    logger.success(f"Blu-ray folder created: {result.output_dir} ({formatted_size(result.size_bytes)})")
    if result.size_bytes > disc.bytes:
        logger.warning(f"The folder is larger than {disc.label}; it will not fit on that disc.")
    return EXIT_OK


def run_burn(args) -> int:
    session = BuildSession()
    BurnPipeline(session, DiscBurner(device=args.device)).run(args.folder.expanduser().resolve(), DiscCapacity(args.disc))
    return EXIT_OK


COMMANDS = {"probe": run_probe, "build": run_build, "burn": run_burn}


def main(argv: Optional[List[str]] = None) -> int:
    args = get_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    try:
        return COMMANDS[args.command](args)
    except BuildCancelledError as e:
        logger.warning(str(e))
        return EXIT_CANCELLED
    except BdaaException as e:
        logger.error(str(e))
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
