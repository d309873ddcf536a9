"""
Configuration Package for the BDAA authoring tool.

Static settings are split by concern:
- common.py: logging format, workspace and file names, process environment.
- audio.py: output codecs, LPCM formats, multiplexer audio tokens, extensions.
- video.py: H.264 encoder parameters and custom frame layout.
- disc.py: disc capacities and size estimation constants.
- user_config.py: the user-editable YAML file with tool paths and overrides.
"""
