"""Core functionality for SlotCraft."""

from .config import ConfigManager
from .constants import (
    APP_NAME,
    VERSION,
    __version__,
    __author__,
    __email__,
    __license__,
    __copyright__,
)
from .registry import LayoutDefaults, Registry

__all__ = [
    "ConfigManager",
    "Registry",
    "LayoutDefaults",
    "APP_NAME",
    "VERSION",
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    "__copyright__",
]
