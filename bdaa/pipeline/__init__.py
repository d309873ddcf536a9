"""
This package contains the pipelines of the BDAA authoring tool.

A pipeline sequences the services into one end-to-end operation, owns the
`BuildSession` updates (progress, status, size estimate) and turns any failure
into a logged, terminal outcome for that run.

Modules:
    build_pipeline.py: `BuildPipeline` (tracks -> Blu-ray folder) and
                       `BurnPipeline` (folder -> disc).
"""
