"""
Common configuration settings used throughout the application.

This module holds constants shared by every stage of the build: the loguru
format, workspace naming, the names of the files written into a workspace,
and the search path that external tools are launched with.
"""
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# The user configuration file. Tool paths resolved during a build and the last
# chosen output directory are written back into it.
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


# --- Logging Configuration ---

LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Format used by the session log accumulator (message only, like a UI log pane).
SESSION_LOG_FORMAT = "{message}"

BUILD_FAILED_MARKER = "BUILD FAILED:"
BURN_FAILED_MARKER = "BURN FAILED:"


# --- Workspace and File Names ---

WORKSPACE_PREFIX = "BDAA_"
COMMAND_TEXT = "cmd.txt"
ERROR_LOG_FILENAME = "error.txt"
BUILD_LOG_FILENAME = "build_log.yaml"

CHAPTERS_FILENAME = "chapters.txt"
META_FILENAME = "author.meta"

OUTPUT_DIR_PREFIX = "BDMV_OUT_"
BDMV_DIR_NAME = "BDMV"
CERTIFICATE_DIR_NAME = "CERTIFICATE"

# strftime pattern for the compact timestamp in output folder names.
COMPACT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


# --- Process Environment ---

# Appended to PATH for every external invocation so that tools installed next
# to each other (Homebrew, MacPorts, /usr/local) can find one another.
EXTRA_SEARCH_PATHS = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/opt/local/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin",
)

# Directory where a user can drop self-installed tool binaries.
APP_SUPPORT_BIN_DIR = Path.home() / ".local" / "share" / "bdaa-authoring" / "bin"

# Directory for binaries shipped alongside the project checkout.
BUNDLED_BIN_DIR = PROJECT_ROOT / "bin"


# --- Progress Milestones ---
# Fractions of the overall build reported at each stage boundary. They must be
# strictly increasing.

PROGRESS_START = 0.02
PROGRESS_TOOLS = 0.08
PROGRESS_WORKSPACE = 0.12
PROGRESS_AUDIO_START = 0.18
PROGRESS_AUDIO_END = 0.55
PROGRESS_VIDEO_END = 0.78
PROGRESS_CHAPTERS = 0.80
PROGRESS_META = 0.82
PROGRESS_MUX = 0.85
PROGRESS_FINALIZE = 0.96
PROGRESS_DONE = 1.0
