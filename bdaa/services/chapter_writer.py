"""
Writing the chapter list (`chapters.txt`).

One line per track: the cumulative start time as `HH:MM:SS.mmm` followed by
`Chapter NN`. The first chapter always starts at `00:00:00.000`.
"""

from pathlib import Path
from typing import Sequence

from loguru import logger

from ..config.common import CHAPTERS_FILENAME


def format_chapter_timestamp(seconds: float) -> str:
    """Formats seconds as HH:MM:SS.mmm after rounding to the nearest millisecond."""
    total_ms = int(round(seconds * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def chapter_lines(durations: Sequence[float]) -> list[str]:
    lines = []
    elapsed = 0.0
    for index, duration in enumerate(durations, start=1):
        lines.append(f"{format_chapter_timestamp(elapsed)} Chapter {index:02d}")
        elapsed += duration or 0.0
    return lines


def write_chapters(durations: Sequence[float], out_dir: Path) -> Path:
    """Writes `chapters.txt` into `out_dir` and returns its path."""
    path = out_dir / CHAPTERS_FILENAME
    path.write_text("\n".join(chapter_lines(durations)), encoding="utf-8", newline="\n")
    logger.info(f"Chapters file: {path.name} ({len(durations)} chapter(s))")
    return path
