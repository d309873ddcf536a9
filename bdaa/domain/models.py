"""Domain models shared across the build stages."""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from ..config.audio import LPCMFormat, MuxAudioType, OutputCodec
from ..config.disc import DiscCapacity
from ..config.video import DEFAULT_FPS, DEFAULT_GLOW_INTENSITY, DEFAULT_RESOLUTION


@dataclass
class AudioItem:
    """
    One imported audio track.

    Probed attributes stay `None` when ffprobe could not read the file; the
    track is still part of the list.
    """

    path: Path
    display_name: str
    duration: Optional[float] = None
    sample_rate: Optional[int] = None
    bit_depth: Optional[int] = None
    channels: Optional[int] = None
    codec_name: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_path(cls, path: Path) -> "AudioItem":
        return cls(path=path, display_name=path.stem)

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def is_probed(self) -> bool:
        return self.duration is not None

    def describe(self) -> str:
        return (
            f"{self.display_name} - sr={self.sample_rate or 0} Hz, {self.bit_depth or 0}-bit, "
            f"ch={self.channels or 0}, codec={self.codec_name or '?'}"
        )


def _natural_key(text: str) -> list:
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", text)]


class TrackList:
    """
    Ordered, user-editable list of audio items.

    The list can be reordered freely until a build starts; `freeze()` hands the
    build an immutable snapshot.
    """

    def __init__(self, items: Iterable[AudioItem] = ()):
        self._items: list[AudioItem] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> AudioItem:
        return self._items[index]

    def append(self, item: AudioItem):
        self._items.append(item)

    def remove(self, item_ids: Iterable[str]):
        ids = set(item_ids)
        self._items = [item for item in self._items if item.id not in ids]

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise KeyError(item_id)

    def move_up(self, item_id: str):
        index = self._index_of(item_id)
        if index > 0:
            self._items[index - 1], self._items[index] = self._items[index], self._items[index - 1]

    def move_down(self, item_id: str):
        index = self._index_of(item_id)
        if index < len(self._items) - 1:
            self._items[index + 1], self._items[index] = self._items[index], self._items[index + 1]

    def sort_natural(self):
        """Sorts by filename stem in natural order (01 < 2 < 10)."""
        self._items.sort(key=lambda item: _natural_key(item.path.stem))

    @property
    def total_duration(self) -> float:
        return sum(item.duration for item in self._items if item.duration)

    def freeze(self) -> tuple[AudioItem, ...]:
        return tuple(self._items)


@dataclass(frozen=True)
class PreparedAudioResult:
    """
    Output of audio preparation: one continuous audio elementary stream.

    `segment_durations` are the original probed durations of the tracks in list
    order; their sum is `total_duration`.
    """

    audio_path: Path
    mux_audio_type: MuxAudioType
    segment_durations: tuple[float, ...]
    total_duration: float

    @classmethod
    def from_durations(cls, audio_path: Path, mux_audio_type: MuxAudioType, durations: Iterable[float]):
        durations = tuple(durations)
        return cls(audio_path, mux_audio_type, durations, sum(durations))


@dataclass(frozen=True)
class TrackMetadata:
    title: str
    artist: str
    album: str
    track_number: int


@dataclass(frozen=True)
class Overlay:
    """A text overlay shown during `[start, end)` seconds of the black video."""

    start: float
    end: float
    text: str


class BackgroundType(Enum):
    SOLID = "solid"
    GRADIENT = "gradient"
    IMAGE = "image"


@dataclass
class FrameStyle:
    """Visual settings for the per-track still frames."""

    background_type: BackgroundType = BackgroundType.SOLID
    solid_color: str = "black"
    gradient_start: str = "black"
    gradient_end: str = "gray"
    background_image: Optional[Path] = None
    cover_art: Optional[Path] = None
    show_border: bool = False
    border_color: str = "white"
    title_color: str = "white"
    enable_glow: bool = False
    glow_color: str = "white"
    glow_intensity: float = DEFAULT_GLOW_INTENSITY
    show_artist: bool = False
    show_album: bool = False
    custom_artist: str = ""
    custom_album: str = ""

    def artist_line(self, metadata: TrackMetadata) -> str:
        if not self.show_artist:
            return ""
        return self.custom_artist or metadata.artist

    def album_line(self, metadata: TrackMetadata) -> str:
        if not self.show_album:
            return ""
        return self.custom_album or metadata.album


@dataclass
class BuildOptions:
    """Everything a build needs besides the track list."""

    output_dir: Path
    output_codec: OutputCodec = OutputCodec.LPCM
    # None means "auto": resolved from the probed sample rates.
    lpcm_format: Optional[LPCMFormat] = LPCMFormat.FORMAT_24_48
    fps: str = DEFAULT_FPS
    resolution: str = DEFAULT_RESOLUTION
    use_custom_video: bool = True
    frame_style: FrameStyle = field(default_factory=FrameStyle)
    target_disc: DiscCapacity = DiscCapacity.BD25
    keep_workspace: bool = False


def parse_resolution(resolution: str) -> tuple[int, int]:
    """Parses "1920x1080" into (1920, 1080), defaulting missing parts to 1080p."""
    parts = resolution.lower().split("x")
    try:
        width = int(parts[0]) if parts and parts[0] else 1920
        height = int(parts[1]) if len(parts) > 1 and parts[1] else 1080
    except ValueError:
        return 1920, 1080
    return width, height
