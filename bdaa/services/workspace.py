"""Per-build temporary directory for intermediate files."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import COMMAND_TEXT, WORKSPACE_PREFIX


class Workspace:
    """
    A fresh `BDAA_<random>` directory in the system temp location.

    The directory belongs to one build. Removal is best effort: a failed build
    keeps it as diagnostic residue.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=base_dir))
        logger.info(f"Workspace: {self.root}")

    @property
    def cmd_log_path(self) -> Path:
        return self.root / COMMAND_TEXT

    def cleanup(self):
        try:
            shutil.rmtree(self.root)
            logger.debug(f"Removed workspace {self.root}")
        except OSError as e:
            logger.warning(f"Could not remove workspace {self.root}: {e}")
