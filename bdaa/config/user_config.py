"""
User-editable configuration stored as YAML.

The file keeps the only state that survives between builds: the paths of the
three external tools and the last chosen output directory. Estimator constants
can also be overridden here.

Example `config.user.yaml`:

    paths:
      ffmpeg: /opt/homebrew/bin/ffmpeg
      ffprobe: /opt/homebrew/bin/ffprobe
      tsmuxer: ~/bin/tsMuxeR
    output_dir: ~/Music/BDAA
    estimator:
      video_mbps: 0.5
      mux_overhead: 1.06
"""
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from .common import USER_CONFIG_PATH
from .disc import DEFAULT_MUX_OVERHEAD, DEFAULT_VIDEO_ESTIMATE_MBPS

TOOL_KEYS = ("ffmpeg", "ffprobe", "tsmuxer")


class UserConfig:
    """
    Loads and saves `config.user.yaml`.

    Attributes:
        path (Path): Location of the YAML file.
        tool_paths (dict): Preferred path per tool key ("ffmpeg", "ffprobe", "tsmuxer").
        output_dir (Optional[Path]): The last chosen output directory.
        video_mbps (float): Video bitrate placeholder for size estimates.
        mux_overhead (float): Container overhead factor for size estimates.
    """

    def __init__(self, path: Path = USER_CONFIG_PATH):
        self.path = path
        self.tool_paths: dict[str, str] = {key: "" for key in TOOL_KEYS}
        self.output_dir: Optional[Path] = None
        self.video_mbps: float = DEFAULT_VIDEO_ESTIMATE_MBPS
        self.mux_overhead: float = DEFAULT_MUX_OVERHEAD

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "UserConfig":
        config = cls(path or USER_CONFIG_PATH)
        if not config.path.is_file():
            logger.debug(f"User config '{config.path}' not found. Using defaults and the system PATH.")
            return config

        try:
            with config.path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load or parse '{config.path}': {e}")
            return config

        if not isinstance(raw, dict):
            logger.warning(f"User config '{config.path}' is not a mapping. Ignoring it.")
            return config

        paths = raw.get("paths") or {}
        if isinstance(paths, dict):
            for key in TOOL_KEYS:
                value = paths.get(key)
                if value:
                    config.tool_paths[key] = str(value)

        output_dir = raw.get("output_dir")
        if output_dir:
            config.output_dir = Path(str(output_dir)).expanduser()

        estimator = raw.get("estimator") or {}
        if isinstance(estimator, dict):
            try:
                if estimator.get("video_mbps") is not None:
                    config.video_mbps = float(estimator["video_mbps"])
                if estimator.get("mux_overhead") is not None:
                    config.mux_overhead = float(estimator["mux_overhead"])
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid estimator settings in '{config.path}': {e}")

        return config

    def to_dict(self) -> dict:
        return {
            "paths": dict(self.tool_paths),
            "output_dir": str(self.output_dir) if self.output_dir else None,
            "estimator": {
                "video_mbps": self.video_mbps,
                "mux_overhead": self.mux_overhead,
            },
        }

    def save(self):
        """Writes the configuration back to its YAML file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)
            logger.debug(f"Saved user config to {self.path}")
        except OSError as e:
            logger.warning(f"Failed to save user config to {self.path}: {e}")
