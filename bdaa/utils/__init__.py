"""
Utilities Package for the BDAA authoring tool.

Helpers that are not specific to any one build stage.

Modules:
    - ffmpeg_utils.py: Running external tools (ffmpeg, ffprobe, tsMuxeR) with the
      augmented search path, command logging and cancellation-aware supervision.
    - format_utils.py: Human-readable sizes and durations, timestamps and
      directory size accounting.
"""
