"""
Configuration settings related to audio processing.

Defines the output codec choices, the disc-legal LPCM formats, the tokens the
multiplexer uses for each audio type and the file extensions that identify raw
elementary streams and container formats.
"""
from enum import Enum


class OutputCodec(Enum):
    """Audio format written to the disc. Selects the audio preparation branch."""

    LPCM = "lpcm"
    TRUEHD_PASSTHROUGH = "truehd"
    DTSHD_PASSTHROUGH = "dtshd"

    @property
    def label(self) -> str:
        return _CODEC_LABELS[self]


class LPCMFormat(Enum):
    """Common target format all LPCM tracks are normalized to."""

    FORMAT_24_48 = "24/48"
    FORMAT_24_96 = "24/96"
    FORMAT_24_192 = "24/192"

    @property
    def sample_rate(self) -> int:
        return _LPCM_SAMPLE_RATES[self]

    @property
    def bit_depth(self) -> int:
        return 24

    @property
    def label(self) -> str:
        return f"{self.bit_depth}-bit/{self.sample_rate // 1000}kHz"


class MuxAudioType(Enum):
    """Audio stream type as understood by tsMuxeR."""

    LPCM = "lpcm"
    TRUEHD = "truehd"
    DTSHD = "dtshd"

    @property
    def meta_token(self) -> str:
        return _MUX_AUDIO_TOKENS[self]


_CODEC_LABELS = {
    OutputCodec.LPCM: "LPCM (PCM WAV)",
    OutputCodec.TRUEHD_PASSTHROUGH: "Dolby TrueHD / Atmos (pass-through)",
    OutputCodec.DTSHD_PASSTHROUGH: "DTS-HD MA (pass-through)",
}

_LPCM_SAMPLE_RATES = {
    LPCMFormat.FORMAT_24_48: 48000,
    LPCMFormat.FORMAT_24_96: 96000,
    LPCMFormat.FORMAT_24_192: 192000,
}

_MUX_AUDIO_TOKENS = {
    MuxAudioType.LPCM: "A_LPCM",
    MuxAudioType.TRUEHD: "A_TRUEHD",
    MuxAudioType.DTSHD: "A_DTSHD",
}

# Every output codec maps to exactly one multiplexer audio type.
CODEC_TO_MUX_AUDIO_TYPE = {
    OutputCodec.LPCM: MuxAudioType.LPCM,
    OutputCodec.TRUEHD_PASSTHROUGH: MuxAudioType.TRUEHD,
    OutputCodec.DTSHD_PASSTHROUGH: MuxAudioType.DTSHD,
}

for _enum_cls, _mapping in (
    (OutputCodec, _CODEC_LABELS),
    (OutputCodec, CODEC_TO_MUX_AUDIO_TYPE),
    (LPCMFormat, _LPCM_SAMPLE_RATES),
    (MuxAudioType, _MUX_AUDIO_TOKENS),
):
    _missing = set(_enum_cls) - set(_mapping)
    if _missing:
        raise RuntimeError(f"Unmapped {_enum_cls.__name__} members: {sorted(m.name for m in _missing)}")


# ======================================================================================
# File Identification
# ======================================================================================

# Extensions accepted on import.
AUDIO_IMPORT_EXTENSIONS = (
    ".wav", ".flac", ".aiff", ".aif", ".m4a", ".mp3",
    ".thd", ".truehd", ".dtshd", ".dts",
)

# Raw TrueHD / DTS-HD elementary streams that are passed through untouched.
TRUEHD_ELEMENTARY_EXTENSIONS = (".thd", ".truehd")
DTSHD_ELEMENTARY_EXTENSIONS = (".dtshd",)

# Audio containers that need an explicit track selector in the mux descriptor.
AUDIO_CONTAINER_EXTENSIONS = (".mov", ".mp4", ".m4a", ".mkv", ".avi")


# ======================================================================================
# LPCM Encoding Parameters
# ======================================================================================

# Used when no track reports a channel count.
DEFAULT_CHANNELS = 2

# Suffixes and names of the intermediate files in the workspace.
LPCM_INTERMEDIATE_SUFFIX = "_lpcm.wav"
LPCM_CONCAT_LIST = "concat.txt"
LPCM_JOINED_FILENAME = "program_lpcm.wav"


def pcm_sample_format(bit_depth: int) -> str:
    """
    Returns the ffmpeg sample format for a target bit depth.

    24-bit audio has no packed ffmpeg sample format of its own; it is carried in
    `s32` internally and packed by the `pcm_s24le` codec on output.
    """
    if bit_depth <= 16:
        return "s16"
    return "s32"


def pcm_codec_name(bit_depth: int) -> str:
    """Returns the packed little-endian PCM codec for a target bit depth."""
    if bit_depth <= 16:
        return "pcm_s16le"
    return "pcm_s24le"
