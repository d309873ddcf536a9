"""
Disc capacities and the heuristics used to predict the final output size.
"""
from enum import Enum


class DiscCapacity(Enum):
    """Target disc. Its byte capacity is the preflight budget for burning."""

    BD25 = "bd25"
    BD50 = "bd50"
    BD100 = "bd100"

    @property
    def bytes(self) -> int:
        return _DISC_BYTES[self]

    @property
    def label(self) -> str:
        return _DISC_LABELS[self]


_DISC_BYTES = {
    DiscCapacity.BD25: 25_000_000_000,
    DiscCapacity.BD50: 50_000_000_000,
    DiscCapacity.BD100: 100_000_000_000,
}

_DISC_LABELS = {
    DiscCapacity.BD25: "BD 25 (25 GB)",
    DiscCapacity.BD50: "BD DL (50 GB)",
    DiscCapacity.BD100: "BD XL (100 GB)",
}

# Placeholder bitrate for the generated black/still H.264 stream. Very low
# complexity content; overridable in config.user.yaml.
DEFAULT_VIDEO_ESTIMATE_MBPS = 0.5

# Container/multiplexing overhead applied to elementary stream sizes.
DEFAULT_MUX_OVERHEAD = 1.06

# --- Burning ---
UDF_VOLUME_NAME = "BDMV"
DEFAULT_BURN_DEVICE = "/dev/sr0"
