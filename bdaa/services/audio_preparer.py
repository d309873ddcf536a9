"""
This module defines the AudioPreparer service.

Audio preparation turns the ordered track list into exactly one audio
elementary stream for the multiplexer. The branch depends on the output codec:

- LPCM: every track is converted to a WAV at a common sample rate, bit depth
  and channel count, then the intermediates are concatenated by re-encoding
  (not byte splicing) so the joined file has a single uniform header.
- TrueHD / DTS-HD pass-through: exactly one track is accepted. A raw
  elementary stream is used as-is; a container holding the right codec has its
  first audio stream demuxed with stream copy.

Segment durations are always the probed durations of the source tracks, which
is what chapter marks are computed from.
"""

from pathlib import Path
from typing import Callable, NamedTuple, Optional, Sequence

from loguru import logger

from ..config.audio import (
    CODEC_TO_MUX_AUDIO_TYPE,
    DEFAULT_CHANNELS,
    DTSHD_ELEMENTARY_EXTENSIONS,
    LPCM_CONCAT_LIST,
    LPCM_INTERMEDIATE_SUFFIX,
    LPCM_JOINED_FILENAME,
    TRUEHD_ELEMENTARY_EXTENSIONS,
    LPCMFormat,
    MuxAudioType,
    OutputCodec,
    pcm_codec_name,
    pcm_sample_format,
)
from ..domain.exceptions import (
    ExpectedDTSHDError,
    ExpectedSingleElementaryError,
    ExpectedTrueHDError,
    NoItemsError,
)
from ..domain.models import AudioItem, PreparedAudioResult
from ..domain.session import CancellationToken
from ..utils.ffmpeg_utils import ToolRunner, write_concat_list

ProgressCallback = Callable[[int, int], None]


def resolve_lpcm_format(items: Sequence[AudioItem], requested: Optional[LPCMFormat] = None) -> LPCMFormat:
    """
    Picks the LPCM target format.

    An explicit choice always wins. Otherwise 192 kHz is used only when every
    probed track is 192 kHz, 96 kHz only when every probed track is 96 kHz, and
    48 kHz in all other cases (mixed, unknown, or anything else).
    """
    if requested is not None:
        return requested
    rates = [item.sample_rate for item in items if item.sample_rate]
    if rates and all(rate == 192000 for rate in rates):
        return LPCMFormat.FORMAT_24_192
    if rates and all(rate == 96000 for rate in rates):
        return LPCMFormat.FORMAT_24_96
    return LPCMFormat.FORMAT_24_48


def target_channel_count(items: Sequence[AudioItem]) -> int:
    """The highest channel count among the tracks, or stereo if none is known."""
    counts = [item.channels for item in items if item.channels]
    return max(counts) if counts else DEFAULT_CHANNELS


def _pcm_format_args(channels: int, sample_rate: int, bit_depth: int) -> list[str]:
    args = ["-ac", str(channels), "-ar", str(sample_rate)]
    # 24-bit: let pcm_s24le pick its internal sample format.
    if bit_depth <= 16:
        args += ["-sample_fmt", pcm_sample_format(bit_depth)]
    args += ["-c:a", pcm_codec_name(bit_depth)]
    return args


def lpcm_convert_cmd(ffmpeg_path: str, src: Path, dst: Path, channels: int, sample_rate: int, bit_depth: int) -> list[str]:
    return [ffmpeg_path, "-y", "-i", str(src), "-vn"] + _pcm_format_args(channels, sample_rate, bit_depth) + [str(dst)]


def lpcm_concat_cmd(ffmpeg_path: str, list_file: Path, dst: Path, channels: int, sample_rate: int, bit_depth: int) -> list[str]:
    return (
        [ffmpeg_path, "-y", "-f", "concat", "-safe", "0", "-i", str(list_file), "-vn"]
        + _pcm_format_args(channels, sample_rate, bit_depth)
        + [str(dst)]
    )


def demux_audio_cmd(ffmpeg_path: str, src: Path, dst: Path, output_format: str, stream_index: int = 0) -> list[str]:
    # .dtshd is not a registered muxer extension.
    return [ffmpeg_path, "-y", "-i", str(src), "-map", f"a:{stream_index}", "-c", "copy", "-f", output_format, str(dst)]


class PassthroughRule(NamedTuple):
    """How one pass-through codec is recognised and extracted."""

    elementary_extensions: tuple
    demux_extension: str
    demux_format: str
    codec_matches: Callable[[str], bool]
    mismatch_error: type


PASSTHROUGH_RULES = {
    OutputCodec.TRUEHD_PASSTHROUGH: PassthroughRule(
        TRUEHD_ELEMENTARY_EXTENSIONS, ".thd", "truehd", lambda name: name == "truehd", ExpectedTrueHDError,
    ),
    OutputCodec.DTSHD_PASSTHROUGH: PassthroughRule(
        DTSHD_ELEMENTARY_EXTENSIONS, ".dtshd", "dts", lambda name: "dts" in name, ExpectedDTSHDError,
    ),
}


class AudioPreparer:
    """
    Produces the single audio elementary stream of a build.

    Attributes:
        runner (ToolRunner): Runs ffmpeg under the build's process supervisor.
        ffmpeg_path (str): Resolved ffmpeg executable.
        workspace (Path): Directory for intermediate files.
        token (Optional[CancellationToken]): Polled before each per-track conversion.
    """

    def __init__(self, runner: ToolRunner, ffmpeg_path: str, workspace: Path, token: Optional[CancellationToken] = None):
        self.runner = runner
        self.ffmpeg_path = ffmpeg_path
        self.workspace = workspace
        self.token = token

    def prepare(
        self,
        items: Sequence[AudioItem],
        codec: OutputCodec,
        lpcm_format: Optional[LPCMFormat] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> PreparedAudioResult:
        """
        Runs the branch selected by `codec`.

        Args:
            items: The frozen track list, in playback order.
            codec: The output codec.
            lpcm_format: LPCM target format; `None` resolves it from the tracks.
            progress: Called with (done, total) after each track.

        Raises:
            NoItemsError: If `items` is empty, whatever the codec.
            ExpectedSingleElementaryError, ExpectedTrueHDError, ExpectedDTSHDError:
                If a pass-through request does not match the input.
        """
        if not items:
            raise NoItemsError()
        progress = progress or (lambda done, total: None)

        mux_type = CODEC_TO_MUX_AUDIO_TYPE[codec]
        logger.info(f"Preparing {len(items)} track(s) as {codec.label}")

        if codec is OutputCodec.LPCM:
            return self._prepare_lpcm(items, resolve_lpcm_format(items, lpcm_format), mux_type, progress)
        return self._prepare_passthrough(items, mux_type, PASSTHROUGH_RULES[codec], progress)

    def _prepare_lpcm(
        self, items: Sequence[AudioItem], fmt: LPCMFormat, mux_type: MuxAudioType, progress: ProgressCallback
    ) -> PreparedAudioResult:
        sample_rate, bit_depth = fmt.sample_rate, fmt.bit_depth
        channels = target_channel_count(items)
        logger.info(f"Using LPCM format: {fmt.value} ({fmt.label}), {channels} ch")

        intermediates: list[Path] = []
        durations: list[float] = []
        total = len(items)
        for index, item in enumerate(items, start=1):
            if self.token:
                self.token.raise_if_cancelled()
            out = self.workspace / f"{index:03d}_{item.path.stem}{LPCM_INTERMEDIATE_SUFFIX}"
            logger.info(f"Converting to LPCM ({index}/{total}): {item.display_name}")
            self.runner.run(lpcm_convert_cmd(self.ffmpeg_path, item.path, out, channels, sample_rate, bit_depth), "ffmpeg")
            intermediates.append(out)
            durations.append(item.duration or 0.0)
            progress(index, total)

        if self.token:
            self.token.raise_if_cancelled()
        concat_list = self.workspace / LPCM_CONCAT_LIST
        write_concat_list(concat_list, intermediates)
        joined = self.workspace / LPCM_JOINED_FILENAME
        logger.info(f"Joining {total} LPCM segment(s) into {joined.name}")
        self.runner.run(lpcm_concat_cmd(self.ffmpeg_path, concat_list, joined, channels, sample_rate, bit_depth), "ffmpeg")
        return PreparedAudioResult.from_durations(joined, mux_type, durations)

    def _prepare_passthrough(self, items, mux_type, rule, progress):
        if len(items) != 1:
            raise ExpectedSingleElementaryError()
        item = items[0]
        duration = item.duration or 0.0

        if item.extension in rule.elementary_extensions:
            logger.info(f"Passing through elementary stream: {item.path.name}")
            progress(1, 1)
            return PreparedAudioResult.from_durations(item.path, mux_type, [duration])

        if rule.codec_matches((item.codec_name or "").lower()):
            if self.token:
                self.token.raise_if_cancelled()
            out = self.workspace / f"{item.path.stem}{rule.demux_extension}"
            logger.info(f"Demuxing {item.codec_name} from {item.path.name} to {out.name}")
            self.runner.run(demux_audio_cmd(self.ffmpeg_path, item.path, out, rule.demux_format), "ffmpeg")
            progress(1, 1)
            return PreparedAudioResult.from_durations(out, mux_type, [duration])

        raise rule.mismatch_error()
