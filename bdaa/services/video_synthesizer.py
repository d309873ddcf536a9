"""
This module generates the H.264 elementary stream that carries the audio on disc.

Two modes produce the same kind of stream (yuv420p, High profile, level 4.1,
fixed 48-frame GOP, scene-cut detection off) so that chapter marks always fall
on keyframes:

- Black-screen mode: one ffmpeg run renders a black `lavfi` source for the
  total duration. Timed drawtext overlays can be burned in (at most 500).
- Custom-frame mode: for each track a still frame is rendered with Pillow
  (cover art, title, artist, album), encoded into a segment held for the
  track's duration, and the segments are joined with stream copy in track
  order.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from loguru import logger

from ..config.video import (
    CUSTOM_FINAL_VIDEO,
    MAX_GLOW_WIDTH,
    MAX_OVERLAYS,
    OVERLAY_FONT_CANDIDATES,
    OVERLAY_FONT_COLOR,
    OVERLAY_FONT_SIZE,
    OVERLAY_MARGIN,
    VIDEO_CONCAT_LIST,
    VIDEO_ENCODER,
    VIDEO_LEVEL,
    VIDEO_PIX_FMT,
    VIDEO_PROFILE,
    X264_PARAMS,
)
from ..domain.exceptions import StageError
from ..domain.models import AudioItem, FrameStyle, Overlay, TrackMetadata, parse_resolution
from ..domain.session import CancellationToken
from ..utils.ffmpeg_utils import ToolRunner, write_concat_list
from .frame_renderer import FrameRenderer
from .metadata_reader import placeholder_metadata, read_metadata

StageProgress = Callable[[float, str], None]


@dataclass(frozen=True)
class OverlayStyle:
    """Appearance of the drawtext overlays in black-screen mode."""

    font_color: str = OVERLAY_FONT_COLOR
    font_size: int = OVERLAY_FONT_SIZE
    glow_enabled: bool = False
    glow_color: str = "black"
    glow_intensity: int = 0


def escape_drawtext(text: str) -> str:
    """
    Escapes `text` for use inside `text='...'` of a drawtext filter.

    The value is unescaped twice: once by the filtergraph parser, where the
    single quotes protect everything, and once by the option parser, which
    resolves backslash escapes. A quote cannot appear inside a quoted run, so
    it closes the run, emits an escaped backslash and quote, and reopens it.
    """
    text = text.replace("\\", "\\\\").replace(":", "\\:").replace("%", "%%")
    return text.replace("'", "'\\\\\\''")


def resolve_font_file(candidates: Sequence[str] = OVERLAY_FONT_CANDIDATES) -> str:
    """The first font file that exists, or the first candidate if none does."""
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return candidates[0]


def build_drawtext_filters(
    overlays: Sequence[Overlay],
    style: OverlayStyle = OverlayStyle(),
    font_file: Optional[str] = None,
) -> Optional[str]:
    """
    Builds a comma-joined chain of drawtext filters, one per overlay.

    Each overlay is bottom-right aligned and enabled only between its start and
    end time. Only the first 500 overlays are used. Glow is drawn as a border of
    width clamped to [0, 20] plus a shadow of half that width (rounded up).

    Returns:
        The filter chain, or None when there are no overlays.
    """
    if not overlays:
        return None

    font = font_file or resolve_font_file()
    border_width = max(0, min(MAX_GLOW_WIDTH, int(style.glow_intensity)))
    shadow = max(0, min(MAX_GLOW_WIDTH, math.ceil(border_width / 2)))

    filters = []
    for overlay in list(overlays)[:MAX_OVERLAYS]:
        parts = [
            f"drawtext=fontfile='{font}'",
            f"text='{escape_drawtext(overlay.text)}'",
            f"fontcolor={style.font_color}",
            f"fontsize={style.font_size}",
            f"x=w-tw-{OVERLAY_MARGIN}",
            f"y=h-th-{OVERLAY_MARGIN}",
        ]
        if style.glow_enabled:
            parts += [f"bordercolor={style.glow_color}", f"borderw={border_width}"]
            if shadow > 0:
                parts += [f"shadowcolor={style.glow_color}", f"shadowx={shadow}", f"shadowy={shadow}"]
        parts.append(f"enable=between(t\\,{overlay.start:.3f}\\,{overlay.end:.3f})")
        filters.append(":".join(parts))
    return ",".join(filters)


def _h264_output_args(out: Path) -> list[str]:
    return [
        "-c:v", VIDEO_ENCODER,
        "-pix_fmt", VIDEO_PIX_FMT,
        "-profile:v", VIDEO_PROFILE,
        "-level:v", VIDEO_LEVEL,
        "-x264-params", X264_PARAMS,
        "-an",
        "-f", "h264",
        str(out),
    ]


def black_video_cmd(ffmpeg_path: str, duration: float, fps: str, resolution: str, out: Path, drawtext: Optional[str] = None) -> list[str]:
    vf = f"format={VIDEO_PIX_FMT}"
    if drawtext:
        vf += "," + drawtext
    return [
        ffmpeg_path, "-y",
        "-f", "lavfi", "-i", f"color=black:s={resolution}:r={fps}",
        "-t", f"{duration:.3f}",
        "-vf", vf,
    ] + _h264_output_args(out)


def still_video_cmd(ffmpeg_path: str, image: Path, duration: float, fps: str, resolution: str, out: Path) -> list[str]:
    width, height = parse_resolution(resolution)
    vf = (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black,format={VIDEO_PIX_FMT}"
    )
    return [
        ffmpeg_path, "-y",
        "-loop", "1", "-i", str(image),
        "-t", f"{duration:.3f}",
        "-r", fps,
        "-vf", vf,
    ] + _h264_output_args(out)


def concat_video_cmd(ffmpeg_path: str, list_file: Path, out: Path) -> list[str]:
    return [ffmpeg_path, "-f", "concat", "-safe", "0", "-i", str(list_file), "-c", "copy", "-y", str(out)]


class VideoSynthesizer:
    """
    Produces the video elementary stream of a build.

    Attributes:
        runner (ToolRunner): Runs ffmpeg under the build's process supervisor.
        ffmpeg_path (str): Resolved ffmpeg executable.
        workspace (Path): Directory for frames, segments and the final stream.
        fps (str): Frame rate, e.g. "23.976".
        resolution (str): Frame size, e.g. "1920x1080".
        token (Optional[CancellationToken]): Polled before each track.
    """

    def __init__(
        self,
        runner: ToolRunner,
        ffmpeg_path: str,
        workspace: Path,
        fps: str,
        resolution: str,
        token: Optional[CancellationToken] = None,
    ):
        self.runner = runner
        self.ffmpeg_path = ffmpeg_path
        self.workspace = workspace
        self.fps = fps
        self.resolution = resolution
        self.token = token

    def _check_cancel(self):
        if self.token:
            self.token.raise_if_cancelled()

    def make_black(self, duration: float, overlays: Sequence[Overlay] = (), overlay_style: OverlayStyle = OverlayStyle()) -> Path:
        """Renders a black stream of `duration` seconds, optionally with timed overlays."""
        self._check_cancel()
        out = self.workspace / f"black_{int(duration)}s.h264"
        drawtext = build_drawtext_filters(overlays, overlay_style)
        if drawtext:
            logger.debug(f"Video filter string: format={VIDEO_PIX_FMT},{drawtext[:300]}")
        logger.info(f"Generating black video ({duration:.3f} s, {self.resolution} @ {self.fps} fps)")
        self.runner.run(black_video_cmd(self.ffmpeg_path, duration, self.fps, self.resolution, out, drawtext), "ffmpeg")
        logger.info(f"Black video ready: {out.name}")
        return out

    def make_custom(
        self,
        items: Sequence[AudioItem],
        durations: Sequence[float],
        style: FrameStyle,
        progress: Optional[StageProgress] = None,
    ) -> Path:
        """
        Renders one still segment per track and joins them in track order.

        Args:
            items: The tracks, used to read tags. A duration without a matching
                item gets a "Track N" placeholder.
            durations: Per-track durations in seconds.
            style: Frame appearance.
            progress: Called with (fraction of this stage, status text).

        Raises:
            BuildCancelledError: If cancellation is seen before a track starts.
            StageError: If a frame image cannot be produced.
        """
        progress = progress or (lambda fraction, status: None)
        total = len(durations)
        if total == 0:
            raise StageError("No segments to render video for.")

        renderer: Optional[FrameRenderer] = None
        segments: list[Path] = []
        for index, duration in enumerate(durations):
            self._check_cancel()
            number = index + 1
            progress(index / total, f"Generating video for track {number}/{total}...")

            metadata = self._metadata_for(items, index)
            logger.info(f"Creating frame for: {metadata.title}")
            logger.debug(f"   Artist: {style.artist_line(metadata) or '(hidden)'}")
            logger.debug(f"   Album: {style.album_line(metadata) or '(hidden)'}")
            logger.debug(f"   Cover art: {style.cover_art or '(none)'}")

            frame_file = self.workspace / f"frame_{index:03d}.png"
            try:
                if renderer is None:
                    renderer = FrameRenderer(style, parse_resolution(self.resolution))
                renderer.save(metadata, frame_file)
            except (OSError, ValueError) as e:
                raise StageError(f"Failed to create frame image for track {number}: {e}") from e

            progress((index + 0.3) / total, f"Rendering video for track {number}/{total}...")
            segment = self.workspace / f"segment_{index:03d}.h264"
            self.runner.run(still_video_cmd(self.ffmpeg_path, frame_file, duration, self.fps, self.resolution, segment), "ffmpeg")
            segments.append(segment)
            progress(number / total, f"Completed track {number}/{total}")

        self._check_cancel()
        progress(1.0, "Merging video segments...")
        concat_file = write_concat_list(self.workspace / VIDEO_CONCAT_LIST, segments)
        final_video = self.workspace / CUSTOM_FINAL_VIDEO
        self.runner.run(concat_video_cmd(self.ffmpeg_path, concat_file, final_video), "ffmpeg")
        logger.info(f"Custom video ready: {final_video.name}")
        return final_video

    @staticmethod
    def _metadata_for(items: Sequence[AudioItem], index: int) -> TrackMetadata:
        if index < len(items):
            return read_metadata(items[index].path, index + 1)
        return placeholder_metadata(index + 1)
