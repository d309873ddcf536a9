"""
This module provides classes for the persistent build logs.

`ErrorLog` appends human-readable failure records (command, exit code and the
captured tool output) to `error.txt` inside the build workspace, which is left
behind for diagnosis when a build fails. `BuildReport` keeps a machine-readable
history of successful builds as a YAML list in the output directory.
"""

from datetime import datetime
from pathlib import Path
from typing import Union

import yaml
from loguru import logger

from ..config.common import BUILD_LOG_FILENAME, ERROR_LOG_FILENAME


class Log:
    """
    Base class for the file logs.

    Handles the log directory: if `log_base_path` is a directory the log file
    lives inside it, otherwise next to it. The directory is created on demand.
    """

    linesep_marker: str = "=" * 50

    def __init__(self, log_base_path: Path):
        self.log_file_path: Path
        if log_base_path.is_dir() or not log_base_path.suffix:
            self.log_dir: Path = log_base_path.resolve()
        else:
            self.log_dir = log_base_path.parent.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, log_content: Union[dict, list, str]):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """Appends plain-text error records to `error.txt`."""

    def __init__(self, error_log_dir: Path, filename: str = ERROR_LOG_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Appends the given message lines followed by a separator line.

        Args:
            *error_messages: Pieces of one error record, each written on its own line.
        """
        if not error_messages:
            return

        timestamp = datetime.now().isoformat(timespec="seconds")
        content_to_write = "\n".join((timestamp,) + error_messages) + "\n" + self.linesep_marker + "\n"
        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Keep the record in the console log if the file cannot be written.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class BuildReport(Log):
    """
    Structured history of successful builds in `build_log.yaml`.

    The file always holds a YAML list. Each `write` re-reads it, appends the new
    entry with the next index and writes the whole list back.
    """

    def __init__(self, output_dir: Path, filename: str = BUILD_LOG_FILENAME):
        super().__init__(output_dir)
        self.log_file_path = self.log_dir / filename

    def read(self) -> list:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading build log {self.log_file_path}: {e}. Starting a new log.")
            return []
        if loaded is None:
            return []
        if not isinstance(loaded, list):
            logger.warning(f"Build log {self.log_file_path} contained unexpected data. Starting a new log.")
            return []
        return loaded

    def write(self, new_log_entry: dict):
        if not isinstance(new_log_entry, dict):
            logger.error("BuildReport.write expects a dictionary as a log entry.")
            return

        entries = self.read()
        current_max_index = max(
            (entry.get("index", 0) for entry in entries if isinstance(entry, dict)),
            default=0,
        )
        entry = {"index": current_max_index + 1}
        entry.update(new_log_entry)
        entries.append(entry)

        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write build log {self.log_file_path}: {e}")
