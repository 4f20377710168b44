"""
Process-wide registry for SlotCraft.

The application root builds one Registry and hands it to every component
that needs fonts or layout defaults.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from .config import ConfigManager
from .constants import (
    DEFAULT_FONT_FAMILIES,
    DEFAULT_MIN_SPOT_SIZE,
    MAX_PAGE_SIZE,
    MIN_SPOT_SIZE_FLOOR,
    RENDER_DEBOUNCE_MS,
)
from .layout.font_manager import FontManager
from .logging_config import LogManager

logger = LogManager().get_logger("registry")


@dataclass(frozen=True)
class LayoutDefaults:
    """Tunable layout defaults (overridable from the ``layout`` config section)."""
    min_spot_size: int = DEFAULT_MIN_SPOT_SIZE
    render_debounce_ms: int = RENDER_DEBOUNCE_MS
    max_page_size: int = MAX_PAGE_SIZE
    font_families: Tuple[str, ...] = tuple(DEFAULT_FONT_FAMILIES)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutDefaults":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "font_families" in values:
            values["font_families"] = tuple(values["font_families"])
        if "min_spot_size" in values:
            values["min_spot_size"] = max(MIN_SPOT_SIZE_FLOOR, int(values["min_spot_size"]))
        ignored = set(data) - known
        if ignored:
            logger.warning(f"Ignoring unknown layout settings: {', '.join(sorted(ignored))}")
        return cls(**values)


@dataclass
class Registry:
    """Font table plus layout defaults, passed by reference."""
    font_manager: FontManager
    defaults: LayoutDefaults = field(default_factory=LayoutDefaults)
    config: Optional[ConfigManager] = None

    @classmethod
    def from_config(cls, config: ConfigManager, discover_fonts: bool = True) -> "Registry":
        """Build the registry from saved configuration."""
        font_manager = FontManager(custom_dirs=config.get_font_dirs(), discover=discover_fonts)
        defaults = LayoutDefaults.from_dict(config.get_layout_config())
        logger.info(
            f"Registry ready: {len(font_manager.get_available_families())} font families, "
            f"min spot size {defaults.min_spot_size}"
        )
        return cls(font_manager=font_manager, defaults=defaults, config=config)
