"""
Core domain layer of the BDAA authoring tool.

Modules:
    exceptions.py: The error taxonomy shared by every build and burn stage.
    models.py: Audio items, the track list, prepared audio results, frame style
               and overlay values.
    session.py: `BuildSession` (progress, status, log, cancellation) and the
                cancellation token handed down the call chain.
    media.py: Probing audio files with ffprobe (via ffmpeg-python).
"""
