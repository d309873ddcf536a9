"""
Creating a UDF image of a Blu-ray folder and sending it to the burner.

macOS uses `hdiutil makehybrid` and `drutil burn`; other systems use `mkisofs`
and `growisofs`. The image is written next to the folder as `<folder>.iso`.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import BDMV_DIR_NAME
from ..config.disc import DEFAULT_BURN_DEVICE, UDF_VOLUME_NAME
from ..domain.exceptions import BurnError
from ..utils.ffmpeg_utils import run_cmd


def image_cmd(folder: Path, iso_out: Path, platform: str = sys.platform) -> list[str]:
    if platform == "darwin":
        return ["/usr/bin/hdiutil", "makehybrid", "-udf", "-udf-volume-name", UDF_VOLUME_NAME, "-o", str(iso_out), str(folder)]
    return ["mkisofs", "-udf", "-V", UDF_VOLUME_NAME, "-o", str(iso_out), str(folder)]


def burn_cmd(iso: Path, device: str = DEFAULT_BURN_DEVICE, platform: str = sys.platform) -> list[str]:
    if platform == "darwin":
        return ["/usr/sbin/drutil", "burn", str(iso)]
    return ["growisofs", "-dvd-compat", "-Z", f"{device}={iso}"]


class DiscBurner:
    def __init__(self, device: str = DEFAULT_BURN_DEVICE, platform: Optional[str] = None):
        self.device = device
        self.platform = platform or sys.platform

    def _run(self, cmd: list[str], what: str):
        result = run_cmd(cmd, show_cmd=True)
        if result is None:
            raise BurnError(f"{what} failed: could not run {cmd[0]}")
        if result.returncode != 0:
            output = f"{result.stdout}{result.stderr}".strip()
            raise BurnError(f"{what} failed with exit code {result.returncode}: {output}")

    def burn(self, folder: Path) -> Path:
        """
        Images `folder` and submits the image to the drive.

        Raises:
            BurnError: If the folder has no BDMV directory or a command fails.
        """
        if not (folder / BDMV_DIR_NAME).is_dir():
            raise BurnError("Selected folder does not contain BDMV")

        iso_out = folder.parent / f"{folder.name}.iso"
        self._run(image_cmd(folder, iso_out, self.platform), "Creating ISO")
        logger.info(f"Created ISO: {iso_out}")
        self._run(burn_cmd(iso_out, self.device, self.platform), "Burning")
        logger.info("Burn command sent to drive.")
        return iso_out
