"""
Services Package for the BDAA authoring tool.

Each service performs one stage of the build or one supporting task and knows
nothing about the stages around it. The build pipeline wires them together.

- **Tools (`ToolResolver`, `ProcessSupervisor`):**
  Locating and validating ffmpeg, ffprobe and tsMuxeR, and owning the external
  processes a build spawns so they can be killed on cancellation.

- **Audio (`AudioPreparer`, `metadata_reader`):**
  Turning the track list into one audio elementary stream, and reading tags
  for the per-track frames.

- **Video (`VideoSynthesizer`, `FrameRenderer`):**
  Producing the black or custom-frame H.264 stream.

- **Authoring (`chapter_writer`, `mux_descriptor`, `MuxOrchestrator`):**
  Chapter list, tsMuxeR descriptor and the multiplexing run itself.

- **Disc (`CapacityEstimator`, `DiscBurner`):**
  Size prediction, burn preflight and image creation.

- **Support (`Workspace`, `logging_service`):**
  The per-build temporary directory and the persistent error and build logs.
"""
