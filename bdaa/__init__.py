"""
Blu-ray audio (BDAA) authoring package.

The package turns a list of high-resolution audio tracks into a BDMV folder by
driving three external tools: ffprobe for metadata, ffmpeg for audio/video
preparation and tsMuxeR for the final multiplexing step.

Layout:
    config/    static constants and the user YAML configuration.
    domain/    models, exceptions, build session state and probing.
    services/  one service per pipeline stage (audio, video, chapters, mux...).
    pipeline/  the end-to-end build and burn orchestration.
    utils/     process execution and formatting helpers.
"""
