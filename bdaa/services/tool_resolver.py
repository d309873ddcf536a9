"""
Locating and validating the external tools: ffmpeg, ffprobe and tsMuxeR.

For each tool the resolver walks an ordered candidate list: the path from the
user configuration first, then common install locations (home `bin`, Homebrew,
MacPorts, `/Applications` bundles, the per-user tool directory, binaries
shipped with the checkout) and finally the bare executable name looked up on
the augmented PATH. The first candidate that exists and is executable wins.

A `.app` bundle resolves to its `Contents/MacOS` executable. A file that exists
but lacks the executable bit gets `chmod 755` and, on macOS, its download
quarantine attribute removed before it is tested again.

Resolved tools are then validated by running them: ffmpeg and ffprobe must
succeed on `-version`; tsMuxeR has no version flag, so a bare invocation is
accepted on any of its known exit codes or when its banner is recognized.
"""

import os
import shutil
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import APP_SUPPORT_BIN_DIR, BUNDLED_BIN_DIR
from ..config.user_config import UserConfig
from ..domain.exceptions import ToolMissingError
from ..utils.ffmpeg_utils import augmented_env, run_cmd

TOOL_DISPLAY_NAMES = {"ffmpeg": "ffmpeg", "ffprobe": "ffprobe", "tsmuxer": "tsMuxeR"}

# Exit codes of a bare `tsMuxeR` invocation that still prove it runs.
TSMUXER_BENIGN_EXIT_CODES = {0, 1, 2, 4, 15, 132}
TSMUXER_BANNER_MARKERS = ("tsmuxer", "muxer", "network optix", "version")

APP_BUNDLE_EXECUTABLES = ("Contents/MacOS/tsMuxeR", "Contents/MacOS/tsmuxer")


@dataclass(frozen=True)
class ResolvedTools:
    ffmpeg: str
    ffprobe: str
    tsmuxer: str


def default_candidates(key: str) -> List[str]:
    """Fallback locations for a tool, in the order they are tried."""
    home = Path.home()
    if key == "tsmuxer":
        return [
            str(home / "bin" / "tsMuxeR"),
            "/Applications/tsMuxeR.app",
            str(home / "Applications" / "tsMuxeR.app"),
            "/usr/local/bin/tsmuxer",
            "/opt/homebrew/bin/tsmuxer",
            str(APP_SUPPORT_BIN_DIR / "tsmuxer"),
            str(BUNDLED_BIN_DIR / "tsMuxeR"),
            "tsmuxer",
            "tsMuxeR",
        ]
    return [
        str(home / "bin" / key),
        f"/opt/homebrew/bin/{key}",
        f"/usr/local/bin/{key}",
        f"/opt/local/bin/{key}",
        str(APP_SUPPORT_BIN_DIR / key),
        str(BUNDLED_BIN_DIR / key),
        key,
    ]


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _make_executable(path: Path):
    """Sets mode 755 and clears the macOS quarantine attribute. Failures are only logged."""
    try:
        path.chmod(path.stat().st_mode | stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
        logger.info(f"Marked '{path}' as executable.")
    except OSError as e:
        logger.warning(f"Could not set the executable bit on '{path}': {e}")
    if sys.platform == "darwin":
        run_cmd(["xattr", "-d", "com.apple.quarantine", str(path)])


class ToolResolver:
    """
    Resolves and validates the three tools, persisting the results.

    Attributes:
        user_config (UserConfig): Source of the preferred paths; resolved paths
            are written back into it and saved.
        validate (bool): Whether resolved tools are test-run.
    """

    def __init__(self, user_config: UserConfig, validate: bool = True):
        self.user_config = user_config
        self.validate = validate

    def candidates(self, key: str) -> List[str]:
        preferred = self.user_config.tool_paths.get(key, "")
        return ([preferred] if preferred else []) + default_candidates(key)

    def resolve_path(self, candidates: List[str]) -> Optional[str]:
        """
        Returns the first candidate that exists and is executable, or `None`.
        """
        env_path = augmented_env().get("PATH")
        for candidate in candidates:
            if not candidate:
                continue
            expanded = os.path.expanduser(candidate)

            if os.sep not in expanded and "/" not in expanded:
                found = shutil.which(expanded, path=env_path)
                if found:
                    return found
                continue

            path = Path(expanded)
            if path.is_dir() and path.suffix == ".app":
                inner = next((path / sub for sub in APP_BUNDLE_EXECUTABLES if (path / sub).exists()), None)
                if inner is None:
                    continue
                path = inner

            # Some tsMuxeR builds ship as "tsMuxeR" where the lower-case name is expected.
            if path.name == "tsmuxer" and not path.exists():
                alternate = path.with_name("tsMuxeR")
                if alternate.exists():
                    path = alternate

            if path.is_file() and not _is_executable(path):
                _make_executable(path)
            if _is_executable(path):
                return str(path)
        return None

    def check(self, path: str, key: str):
        """
        Runs a lightweight command to prove the tool works.

        Raises:
            ToolMissingError: If the tool cannot be run or fails the check.
        """
        name = TOOL_DISPLAY_NAMES[key]
        if key == "tsmuxer":
            result = run_cmd([path], timeout=30)
            if result is not None:
                output = f"{result.stdout}{result.stderr}".lower()
                if result.returncode in TSMUXER_BENIGN_EXIT_CODES or any(m in output for m in TSMUXER_BANNER_MARKERS):
                    return
        else:
            result = run_cmd([path, "-version"], timeout=30)
            if result is not None and result.returncode == 0:
                first_line = (result.stdout or "").splitlines()[:1]
                logger.debug(f"{name} version check successful: {first_line[0] if first_line else ''}")
                return

        code = result.returncode if result is not None else "not started"
        output = f"{result.stdout}{result.stderr}".strip() if result is not None else ""
        raise ToolMissingError(name, f"{name} not runnable at {path}. Exit code: {code}. Output: {output}")

    def resolve(self, key: str) -> str:
        """
        Resolves, validates and remembers one tool.

        Raises:
            ToolMissingError: If no candidate is usable.
        """
        name = TOOL_DISPLAY_NAMES[key]
        path = self.resolve_path(self.candidates(key))
        if path is None:
            raise ToolMissingError(name)
        if self.validate:
            self.check(path, key)
        self.user_config.tool_paths[key] = path
        return path

    def resolve_all(self) -> ResolvedTools:
        tools = ResolvedTools(
            ffmpeg=self.resolve("ffmpeg"),
            ffprobe=self.resolve("ffprobe"),
            tsmuxer=self.resolve("tsmuxer"),
        )
        logger.info(f"Using tools:\n  ffmpeg: {tools.ffmpeg}\n  ffprobe: {tools.ffprobe}\n  tsMuxeR: {tools.tsmuxer}")
        self.user_config.save()
        return tools
