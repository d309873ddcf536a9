"""
Defines custom exception types for the BDAA authoring tool.

Every error except a probing failure during import aborts the whole build or
burn. Each exception carries the user-facing message shown in the session log.

All custom exceptions inherit from the base `BdaaException`.
"""


class BdaaException(Exception):
    """Base class for all custom exceptions in the authoring tool."""

    pass


# --- Build Input Validation ---
class NoItemsError(BdaaException):
    """Raised when a build is started with an empty track list."""

    def __init__(self):
        super().__init__("No audio items in the list.")


class ExpectedSingleElementaryError(BdaaException):
    """Raised when a pass-through build does not have exactly one input track."""

    def __init__(self):
        super().__init__("Pass-through modes expect exactly one elementary stream file.")


class ExpectedTrueHDError(BdaaException):
    """Raised when TrueHD pass-through is requested for a non-TrueHD input."""

    def __init__(self):
        super().__init__("Expected a TrueHD (.thd/.truehd) input for Atmos/TrueHD pass-through.")


class ExpectedDTSHDError(BdaaException):
    """Raised when DTS-HD pass-through is requested for a non-DTS input."""

    def __init__(self):
        super().__init__("Expected a DTS-HD MA (.dtshd) input for DTS pass-through.")


# --- Tools and Processes ---
class ToolMissingError(BdaaException):
    """Raised when an external tool cannot be resolved or does not run."""

    def __init__(self, name: str, details: str = ""):
        super().__init__(f"Required tool not found: {name}.")
        self.name = name
        self.details = details


class ExternalProcessError(BdaaException):
    """
    Raised when ffprobe, ffmpeg or tsMuxeR exits with a non-zero status.

    The captured combined stdout/stderr is kept as the error detail.
    """

    def __init__(self, tool: str, returncode: int, output: str = ""):
        detail = output.strip() or f"{tool} failed"
        super().__init__(f"{tool} exited with code {returncode}: {detail}")
        self.tool = tool
        self.returncode = returncode
        self.output = output


class BuildCancelledError(BdaaException):
    """Raised when the user cancels a build in flight."""

    def __init__(self):
        super().__init__("Operation cancelled by user.")


class StageError(BdaaException):
    """
    Stage-specific failure carrying a descriptive message, for example a frame
    image that could not be produced for a given track.
    """

    pass


class BuildInProgressError(BdaaException):
    """Raised when a build or burn is requested while another one is running."""

    def __init__(self):
        super().__init__("A build or burn is already in progress.")


# --- Burning ---
class DiscCapacityExceededError(BdaaException):
    """Raised by the burn preflight when the folder does not fit the target disc."""

    def __init__(self, size_bytes: int, capacity_bytes: int, disc_label: str):
        over_gb = size_bytes / 1_000_000_000
        super().__init__(f"Folder size ({over_gb:.2f} GB) exceeds target disc {disc_label}.")
        self.size_bytes = size_bytes
        self.capacity_bytes = capacity_bytes
        self.overage_bytes = size_bytes - capacity_bytes


class BurnError(BdaaException):
    """Raised when image creation or the burner submission fails."""

    pass
