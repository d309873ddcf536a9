"""
Configuration settings related to the synthetic video track.

Blu-ray players need a video stream even on audio discs. The build generates a
low-complexity H.264 stream (black, or one still frame per track) with fixed
keyframe spacing so that chapter marks always land on keyframes.
"""

# --- Defaults exposed on the CLI ---
DEFAULT_FPS = "23.976"
DEFAULT_RESOLUTION = "1920x1080"

# --- H.264 Encoder Settings ---
VIDEO_ENCODER = "libx264"
VIDEO_PIX_FMT = "yuv420p"
VIDEO_PROFILE = "high"
VIDEO_LEVEL = "4.1"
KEYFRAME_INTERVAL = 48
X264_PARAMS = f"keyint={KEYFRAME_INTERVAL}:min-keyint={KEYFRAME_INTERVAL}:no-scenecut=1"

# Extensions of video containers that need an explicit track selector in the
# mux descriptor. Anything else is treated as a raw elementary stream.
VIDEO_CONTAINER_EXTENSIONS = (".mp4", ".mov", ".mkv", ".avi")

# --- Output File Names ---
CUSTOM_FINAL_VIDEO = "custom_final.h264"
VIDEO_CONCAT_LIST = "concat_list.txt"

# --- Drawtext Overlays (black-screen mode) ---
MAX_OVERLAYS = 500
MAX_GLOW_WIDTH = 20
OVERLAY_FONT_SIZE = 24
OVERLAY_FONT_COLOR = "white"
OVERLAY_MARGIN = 40

# Font files tried in order for drawtext; the first existing one wins.
OVERLAY_FONT_CANDIDATES = (
    "/System/Library/Fonts/Helvetica.ttc",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/Library/Fonts/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
)

# Fonts tried for the Pillow frame renderer (bold first for titles).
FRAME_BOLD_FONT_CANDIDATES = (
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
)
FRAME_REGULAR_FONT_CANDIDATES = (
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/Library/Fonts/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
)

# --- Custom Frame Layout (values for a 1080-line frame, scaled by height) ---
REFERENCE_HEIGHT = 1080
COVER_MARGIN = 200
COVER_BORDER_WIDTH = 8
TEXT_OFFSET_X = 50
TEXT_RIGHT_MARGIN = 100
TITLE_FONT_SIZE = 32
ARTIST_FONT_SIZE = 24
ALBUM_FONT_SIZE = 20
TITLE_OFFSET_Y = 50
ARTIST_OFFSET_Y = 80
TEXT_LINE_SPACING = 50
ARTIST_COLOR = "lightgray"
ALBUM_COLOR = "gray"
GLOW_STEP = 0.5
GLOW_ALPHA = 0.3
DEFAULT_GLOW_INTENSITY = 5.0

# Defaults used when a track carries no tags at all.
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
