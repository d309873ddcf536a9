"""
Command-Line Interface (CLI) setup for the BDAA authoring tool.

Three sub-commands mirror the authoring workflow:

    probe FILE...               show what ffprobe reports for each track
    build FILE... -o DIR        author a Blu-ray audio folder
    burn FOLDER --disc bd25     check the size, create a UDF image and burn it

Directories given as FILE are expanded to the audio files they contain.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.audio import AUDIO_IMPORT_EXTENSIONS, LPCMFormat, OutputCodec
from .config.disc import DEFAULT_BURN_DEVICE, DiscCapacity
from .config.video import DEFAULT_FPS, DEFAULT_GLOW_INTENSITY, DEFAULT_RESOLUTION
from .domain.models import BackgroundType
from .utils.format_utils import contains_any_extensions

LPCM_FORMAT_CHOICES = ["auto"] + [fmt.value for fmt in LPCMFormat]


def _add_tool_options(parser: argparse.ArgumentParser):
    group = parser.add_argument_group("external tools")
    group.add_argument("--ffmpeg", type=str, default=None, help="Path to ffmpeg (overrides config.user.yaml).")
    group.add_argument("--ffprobe", type=str, default=None, help="Path to ffprobe (overrides config.user.yaml).")
    group.add_argument("--tsmuxer", type=str, default=None, help="Path to tsMuxeR or tsMuxeR.app.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Author Blu-ray audio (BDAA) folders from high-resolution audio tracks.")
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )
    parser.add_argument("--debug", action="store_true", help="Shortcut for --log-level DEBUG.")
    parser.add_argument("--config", type=Path, default=None, help="Path to a config.user.yaml file.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- probe ---
    probe = subparsers.add_parser("probe", help="Probe audio files and print their attributes.")
    probe.add_argument("files", nargs="+", type=Path, help="Audio files or directories.")
    probe.add_argument("--sort", action="store_true", help="Sort tracks by filename in natural order.")
    _add_tool_options(probe)

    # --- build ---
    build = subparsers.add_parser("build", help="Build a Blu-ray audio folder.")
    build.add_argument("files", nargs="+", type=Path, help="Audio files or directories, in playback order.")
    build.add_argument("-o", "--output-dir", type=Path, default=None,
                       help="Parent directory for BDMV_OUT_<timestamp> (defaults to the last one used).")
    build.add_argument("--codec", choices=[c.value for c in OutputCodec], default=OutputCodec.LPCM.value,
                       help="lpcm converts every track; truehd/dtshd pass a single stream through.")
    build.add_argument("--lpcm-format", choices=LPCM_FORMAT_CHOICES, default="auto",
                       help="LPCM target (bit depth/kHz). 'auto' picks 96 or 192 kHz only if all tracks share it.")
    build.add_argument("--fps", type=str, default=DEFAULT_FPS, help="Video frame rate.")
    build.add_argument("--resolution", type=str, default=DEFAULT_RESOLUTION, help="Video resolution, WIDTHxHEIGHT.")
    build.add_argument("--black-video", action="store_true", help="Use a plain black video instead of per-track frames.")
    build.add_argument("--disc", choices=[d.value for d in DiscCapacity], default=DiscCapacity.BD25.value,
                       help="Target disc used for the size estimate.")
    build.add_argument("--sort", action="store_true", help="Sort tracks by filename in natural order.")
    build.add_argument("--keep-workspace", action="store_true", help="Keep intermediate files after a successful build.")

    frame = build.add_argument_group("frame style")
    frame.add_argument("--cover-art", type=Path, default=None, help="Cover image shown on the left of each frame.")
    frame.add_argument("--background", choices=[b.value for b in BackgroundType], default=BackgroundType.SOLID.value)
    frame.add_argument("--background-color", type=str, default="black", help="Solid background color.")
    frame.add_argument("--gradient-start", type=str, default="black", help="Gradient top color.")
    frame.add_argument("--gradient-end", type=str, default="gray", help="Gradient bottom color.")
    frame.add_argument("--background-image", type=Path, default=None, help="Image for --background image.")
    frame.add_argument("--border", action="store_true", help="Draw a border around the cover art.")
    frame.add_argument("--border-color", type=str, default="white")
    frame.add_argument("--title-color", type=str, default="white")
    frame.add_argument("--show-artist", action="store_true", help="Show the artist line.")
    frame.add_argument("--show-album", action="store_true", help="Show the album line.")
    frame.add_argument("--artist", type=str, default="", help="Artist text overriding the tags.")
    frame.add_argument("--album", type=str, default="", help="Album text overriding the tags.")
    frame.add_argument("--glow", action="store_true", help="Draw a soft glow behind the title.")
    frame.add_argument("--glow-color", type=str, default="white")
    frame.add_argument("--glow-intensity", type=float, default=DEFAULT_GLOW_INTENSITY)
    _add_tool_options(build)

    # --- burn ---
    burn = subparsers.add_parser("burn", help="Burn a Blu-ray folder to disc.")
    burn.add_argument("folder", type=Path, help="Folder containing BDMV and CERTIFICATE.")
    burn.add_argument("--disc", choices=[d.value for d in DiscCapacity], default=DiscCapacity.BD25.value)
    burn.add_argument("--device", type=str, default=DEFAULT_BURN_DEVICE, help="Burner device (not used on macOS).")

    return parser


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Returns:
        argparse.Namespace: The parsed arguments. `files` (probe/build) is
        already expanded to a flat list of audio files.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        args.log_level = "DEBUG"

    if hasattr(args, "files"):
        args.files = expand_inputs(args.files)
        if not args.files:
            parser.error("No audio files found in the given paths.")

    if getattr(args, "glow_intensity", 0) < 0:
        parser.error("--glow-intensity must not be negative.")

    return args


def expand_inputs(paths: List[Path]) -> List[Path]:
    """Keeps files as given and replaces directories by the audio files directly inside them."""
    expanded: List[Path] = []
    for path in paths:
        path = path.expanduser()
        if path.is_dir():
            expanded.extend(
                sorted(p for p in path.iterdir() if p.is_file() and contains_any_extensions(p, AUDIO_IMPORT_EXTENSIONS))
            )
        else:
            expanded.append(path)
    return expanded
