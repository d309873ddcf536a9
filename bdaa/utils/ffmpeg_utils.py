"""
This module provides utility functions for running the external tools.

`run_cmd` is a thin wrapper around `subprocess.run` for one-shot commands that
are not part of a build (tool validation, quarantine removal, disc burning).

`ToolRunner` is used by the build stages. It launches commands through the
build's `ProcessSupervisor` so they can be killed on cancellation, logs each
command line (optionally to `cmd.txt` in the workspace), and turns a non-zero
exit into `ExternalProcessError`, or into `BuildCancelledError` when the exit
was caused by a cancellation.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..config.common import EXTRA_SEARCH_PATHS
from ..domain.exceptions import BuildCancelledError, ExternalProcessError, ToolMissingError
from ..services.logging_service import ErrorLog
from ..services.process_supervisor import ProcessSupervisor


def augmented_env(tool_path: Optional[str] = None) -> dict:
    """
    Returns a copy of the environment whose PATH also covers the usual tool
    install locations and the directory of `tool_path`.
    """
    env = os.environ.copy()
    parts = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    extras = list(EXTRA_SEARCH_PATHS)
    if tool_path and os.path.dirname(tool_path):
        extras.insert(0, os.path.dirname(os.path.abspath(os.path.expanduser(tool_path))))
    for extra in extras:
        if extra not in parts:
            parts.append(extra)
    env["PATH"] = os.pathsep.join(parts)
    return env


def display_command(cmd_list: Sequence[str]) -> str:
    """Formats a command list for logging, quoted so it can be pasted into a shell."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(cmd_list)


def _append_command(cmd_log_file_path: Optional[Path], display_cmd_str: str):
    if not cmd_log_file_path:
        return
    try:
        cmd_log_file_path.parent.mkdir(parents=True, exist_ok=True)
        with cmd_log_file_path.open("a", encoding="utf-8") as cmd_f:
            cmd_f.write(display_cmd_str + "\n")
    except OSError as e:
        logger.error(f"Failed to write command to log file {cmd_log_file_path}: {e}")


def run_cmd(
    cmd_list: List[str],
    show_cmd: bool = False,
    cmd_log_file_path: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes a one-shot external command and captures its output.

    Args:
        cmd_list: The command as a list of arguments.
        show_cmd: If True, the command is logged at DEBUG level before execution.
        cmd_log_file_path: If provided, the command line is appended to this file.
        timeout: Optional limit in seconds.

    Returns:
        A `subprocess.CompletedProcess` with decoded stdout and stderr, or `None`
        if the command could not be started or timed out.
    """
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    display_cmd_str = display_command(cmd_list)
    if show_cmd:
        logger.debug(f"Executing command: {display_cmd_str}")
    _append_command(cmd_log_file_path, display_cmd_str)

    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
            env=augmented_env(cmd_list[0]),
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.debug(f"Command not found: '{cmd_list[0]}'.")
        return None
    except PermissionError as e:
        logger.debug(f"Command '{cmd_list[0]}' is not executable: {e}")
        return None
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out: {display_cmd_str}")
        return None

    if result.stderr and result.returncode != 0:
        logger.debug(f"Command stderr (rc={result.returncode}): {result.stderr.strip()[:500]}")
    elif result.stdout:
        logger.trace(f"Command stdout: {result.stdout[:500]}")
    return result


class ToolRunner:
    """
    Runs build commands under a `ProcessSupervisor`.

    Attributes:
        supervisor (ProcessSupervisor): Owner of the running processes.
        cmd_log_file_path (Optional[Path]): `cmd.txt` to append every command to.
        error_log_dir (Optional[Path]): Directory receiving `error.txt` on failures.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        cmd_log_file_path: Optional[Path] = None,
        error_log_dir: Optional[Path] = None,
    ):
        self.supervisor = supervisor
        self.cmd_log_file_path = cmd_log_file_path
        self.error_log_dir = error_log_dir

    def run(self, cmd_list: List[str], tool: str) -> str:
        """
        Runs one command to completion and returns its combined output.

        Args:
            cmd_list: The command; `cmd_list[0]` is the resolved executable.
            tool: Short tool name used in errors ("ffmpeg", "tsMuxeR", ...).

        Raises:
            BuildCancelledError: If cancellation was requested before the start or
                the process failed after cancellation was requested.
            ToolMissingError: If the executable cannot be launched.
            ExternalProcessError: If the process exits with a non-zero status.
        """
        display_cmd_str = display_command(cmd_list)
        logger.debug(f"Executing command: {display_cmd_str}")
        _append_command(self.cmd_log_file_path, display_cmd_str)

        try:
            returncode, output = self.supervisor.run(cmd_list, env=augmented_env(cmd_list[0]))
        except OSError as e:
            raise ToolMissingError(tool, str(e)) from e

        if returncode != 0:
            if self.supervisor.token.cancelled:
                raise BuildCancelledError()
            if self.error_log_dir:
                ErrorLog(self.error_log_dir).write(
                    f"{tool} failed with exit code {returncode}",
                    f"Command: {display_cmd_str}",
                    output.strip(),
                )
            raise ExternalProcessError(tool, returncode, output)

        if output:
            logger.trace(f"{tool} output: {output[-500:]}")
        return output


def concat_list_line(path: Path) -> str:
    """One entry of an ffmpeg concat-demuxer list, with single quotes escaped."""
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


def write_concat_list(list_file: Path, paths: Sequence[Path]) -> Path:
    """Writes an ffmpeg concat-demuxer list referencing `paths` in order."""
    list_file.write_text("\n".join(concat_list_line(p) for p in paths), encoding="utf-8")
    return list_file
