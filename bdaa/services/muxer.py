"""
Running tsMuxeR to produce the Blu-ray folder.

The output goes into a new `BDMV_OUT_<timestamp>` directory under the chosen
output directory. tsMuxeR writes the `BDMV` tree; the `CERTIFICATE` directory
the disc layout also requires is created afterwards.
"""

from pathlib import Path

from loguru import logger

from ..config.common import CERTIFICATE_DIR_NAME, OUTPUT_DIR_PREFIX
from ..utils.ffmpeg_utils import ToolRunner
from ..utils.format_utils import compact_timestamp


def create_output_dir(parent: Path) -> Path:
    """Creates `<parent>/BDMV_OUT_<timestamp>`, adding a suffix if it already exists."""
    parent.mkdir(parents=True, exist_ok=True)
    base = parent / f"{OUTPUT_DIR_PREFIX}{compact_timestamp()}"
    candidate = base
    counter = 1
    while candidate.exists():
        candidate = base.with_name(f"{base.name}_{counter}")
        counter += 1
    candidate.mkdir()
    return candidate


def ensure_certificate_dir(output_dir: Path) -> Path:
    cert_dir = output_dir / CERTIFICATE_DIR_NAME
    cert_dir.mkdir(parents=True, exist_ok=True)
    return cert_dir


def mux_cmd(tsmuxer_path: str, meta_path: Path, output_dir: Path) -> list[str]:
    return [tsmuxer_path, str(meta_path), str(output_dir)]


class MuxOrchestrator:
    def __init__(self, runner: ToolRunner, tsmuxer_path: str):
        self.runner = runner
        self.tsmuxer_path = tsmuxer_path

    def mux(self, meta_path: Path, output_dir: Path) -> Path:
        """
        Runs tsMuxeR on `meta_path` writing into `output_dir`.

        Raises:
            ExternalProcessError: With tsMuxeR's combined output if it fails.
        """
        logger.info(f"Multiplexing into {output_dir}")
        self.runner.run(mux_cmd(self.tsmuxer_path, meta_path, output_dir), "tsMuxeR")
        return output_dir
