"""
Predicting the size of the finished Blu-ray folder.

The estimate is refined as the build produces data:

1. before the build, from the tracks alone: LPCM is sample rate x channels x
   bytes per sample x duration, pass-through is the source file size; a
   placeholder video bitrate is added and the container overhead applied;
2. after audio preparation: the prepared audio file size plus the placeholder
   video bitrate over the total duration;
3. after video synthesis: audio plus video file sizes, times the overhead;
4. after multiplexing: the real size of the output directory.

Burning is refused when the folder is larger than the disc (strictly greater).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..config.audio import LPCMFormat, OutputCodec
from ..config.disc import DEFAULT_MUX_OVERHEAD, DEFAULT_VIDEO_ESTIMATE_MBPS, DiscCapacity
from ..domain.exceptions import DiscCapacityExceededError
from ..domain.models import AudioItem
from ..utils.format_utils import directory_size_bytes, file_size_bytes
from .audio_preparer import resolve_lpcm_format, target_channel_count


class CapacityEstimator:
    """
    Attributes:
        video_mbps (float): Placeholder bitrate for the generated video.
        mux_overhead (float): Factor applied to elementary stream sizes.
    """

    def __init__(self, video_mbps: float = DEFAULT_VIDEO_ESTIMATE_MBPS, mux_overhead: float = DEFAULT_MUX_OVERHEAD):
        self.video_mbps = video_mbps
        self.mux_overhead = mux_overhead

    def video_estimate_bytes(self, duration: float) -> int:
        return int(self.video_mbps * 1_000_000 / 8 * max(0.0, duration))

    def rough(
        self,
        items: Sequence[AudioItem],
        codec: OutputCodec,
        lpcm_format: Optional[LPCMFormat] = None,
    ) -> int:
        duration = sum(item.duration or 0.0 for item in items)
        if codec is OutputCodec.LPCM:
            fmt = resolve_lpcm_format(items, lpcm_format)
            audio_bytes = fmt.sample_rate * target_channel_count(items) * (fmt.bit_depth / 8) * duration
        else:
            audio_bytes = sum(file_size_bytes(item.path) for item in items)
        return max(0, int((audio_bytes + self.video_estimate_bytes(duration)) * self.mux_overhead))

    def after_audio(self, audio_path: Path, total_duration: float) -> int:
        return file_size_bytes(audio_path) + self.video_estimate_bytes(total_duration)

    def after_video(self, audio_path: Path, video_path: Path) -> int:
        return int((file_size_bytes(audio_path) + file_size_bytes(video_path)) * self.mux_overhead)

    @staticmethod
    def final(output_dir: Path) -> int:
        return directory_size_bytes(output_dir)


@dataclass(frozen=True)
class CapacityCheck:
    size_bytes: int
    capacity_bytes: int

    @property
    def oversized(self) -> bool:
        return self.size_bytes > self.capacity_bytes

    @property
    def overage_bytes(self) -> int:
        return max(0, self.size_bytes - self.capacity_bytes)


def check_capacity(size_bytes: int, disc: DiscCapacity) -> CapacityCheck:
    return CapacityCheck(size_bytes=size_bytes, capacity_bytes=disc.bytes)


def preflight(folder: Path, disc: DiscCapacity) -> CapacityCheck:
    """
    Measures `folder` against `disc`.

    Raises:
        DiscCapacityExceededError: If the folder is larger than the disc.
    """
    check = check_capacity(directory_size_bytes(folder), disc)
    if check.oversized:
        raise DiscCapacityExceededError(check.size_bytes, check.capacity_bytes, disc.label)
    return check
