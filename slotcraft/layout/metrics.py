"""
Text metrics provider.

Answers "how tall is this font at this size" in both height conventions
the engine uses, caching one result per (family, size, weight, style).
"""

from typing import Dict, Optional, Tuple

from ..constants import ASCENT_RATIO, CAP_HEIGHT_RATIO, DESCENT_RATIO, X_HEIGHT_RATIO
from ..logging_config import LogManager
from .font_manager import FontManager
from .models import BoxMode, FontConfig, TextMetrics
from .surface import MeasureSurface

logger = LogManager().get_logger("layout.metrics")


def has_capitals(text: str) -> bool:
    """True if the text holds any uppercase letter or digit (any script)."""
    return any(ch.isupper() or ch.isdigit() for ch in text)


class TextMetricsProvider:
    """Measures and caches ascent, descent, cap-height and x-height."""

    def __init__(self, surface: MeasureSurface, font_manager: Optional[FontManager] = None):
        """
        Args:
            surface: Surface used for measurement
            font_manager: When given, OS/2 design cap/x heights are preferred
                over measured glyph extents
        """
        self.surface = surface
        self.font_manager = font_manager
        self._cache: Dict[Tuple[str, float, str, str], TextMetrics] = {}

    def metrics(self, font: FontConfig, size: float) -> TextMetrics:
        """Get metrics for ``font`` at ``size`` pixels."""
        key = font.cache_key(size)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        ascent, descent = self.surface.font_extents(font, size)
        cap_height = self.surface.measure_text("H", font, size).ascent
        x_height = self.surface.measure_text("x", font, size).ascent

        if self.font_manager is not None:
            ratios = self.font_manager.design_metrics(
                list(font.family), font.weight, font.style == "italic"
            )
            if ratios:
                cap_height = ratios["cap_height"] * size
                x_height = ratios["x_height"] * size

        if ascent <= 0 and descent <= 0:
            ascent, descent = size * ASCENT_RATIO, size * DESCENT_RATIO
        if cap_height <= 0:
            cap_height = size * CAP_HEIGHT_RATIO
        if x_height <= 0:
            x_height = size * X_HEIGHT_RATIO

        result = TextMetrics(
            font_size=size,
            ascent=ascent,
            descent=descent,
            cap_height=cap_height,
            x_height=x_height,
        )
        self._cache[key] = result
        logger.debug(f"Metrics for {font.primary_family} @ {size}px: {result}")
        return result

    def line_height(self, text: str, font: FontConfig, size: float, mode: BoxMode) -> float:
        """Height of one line of ``text`` under the given box mode."""
        m = self.metrics(font, size)
        if mode == BoxMode.TYPOGRAPHIC:
            return m.cap_height if has_capitals(text) else m.x_height
        elif mode == BoxMode.FULL_LINE:
            return m.full_line_height
        raise ValueError(f"Unknown box mode: {mode}")

    def clear_cache(self) -> None:
        self._cache.clear()
