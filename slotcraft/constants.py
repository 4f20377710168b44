"""Constants and default values for SlotCraft."""

import os
import platform
from pathlib import Path

# Application metadata
APP_NAME = "SlotCraft"
VERSION = "0.4.0"
__version__ = VERSION
__author__ = "Leland Green"
__email__ = "contact@lelandgreen.com"
__license__ = "MIT"
__copyright__ = "Copyright 2025 Leland Green"

# Font defaults
DEFAULT_FONT_FAMILIES = ["Inter", "Roboto", "Arial", "DejaVu Sans"]
DEFAULT_FONT_SIZE = 48
DEFAULT_TEXT_COLOR = "#000000"

# Automatic font sizing for size="auto" main text
AUTO_FONT_MIN_SIZE = 8
AUTO_FONT_MAX_SIZE = 120
AUTO_FONT_FALLBACK_SIZE = 12

# Fallback metric ratios (fraction of the em) when a measurement degenerates
CAP_HEIGHT_RATIO = 0.72
X_HEIGHT_RATIO = 0.5
ASCENT_RATIO = 0.8
DESCENT_RATIO = 0.2

# Spot detection
DEFAULT_MIN_SPOT_SIZE = 50
MIN_SPOT_SIZE_FLOOR = 10
SPOT_MATCH_DISTANCE = 150

# Rendering
LINE_HEIGHT_FACTOR = 1.2
BASELINE_OFFSET = 0.8
RENDER_DEBOUNCE_MS = 300
PLACEHOLDER_COLOR = "#9CA3AF"

# Page and preset limits
MAX_PAGES = 5
MAX_PAGE_SIZE = 60000

# Slot constraint defaults
DEFAULT_TEXT_CONSTRAINTS = {
    "max_characters": 100,
    "font_size_mode": "auto-fit",
    "word_wrap": True,
    "vertical_align": "middle",
    "horizontal_align": "center",
    "line_height": LINE_HEIGHT_FACTOR,
}
MIN_SLOT_FONT_SIZE = 16
MAX_SLOT_FONT_SIZE = 72

DEFAULT_IMAGE_CONSTRAINTS = {
    "image_mode": "cover",
    "focal_point": "center",
    "max_file_size": 10 * 1024 * 1024,  # 10MB
    "allowed_formats": ["jpg", "png", "webp", "gif"],
    "image_scale": 1.0,
    "position_h": "center",
    "position_v": "middle",
}

DEFAULT_EXPORT_CONFIG = {
    "format": "image",
    "image_format": "png",
    "video_duration": 5,
    "fps": 60,
}

# Network
HTTP_TIMEOUT = 30


def get_user_data_dir() -> Path:
    """Get platform-specific user data directory for SlotCraft.

    Returns:
        Path to the user data directory where configuration, logs, and exported
        pages are stored.
    """
    system = platform.system()
    home = Path.home()

    if system == "Windows":
        base = Path(os.getenv("APPDATA", home / "AppData" / "Roaming"))
        return base / APP_NAME
    elif system == "Darwin":  # macOS
        return home / "Library" / "Application Support" / APP_NAME
    else:  # Linux/Unix
        base = Path(os.getenv("XDG_CONFIG_HOME", home / ".config"))
        return base / APP_NAME
