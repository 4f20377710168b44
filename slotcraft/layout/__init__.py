"""
Layout module for SlotCraft.

Flows the designer's text, finds the open spots around it, builds the grid
and turns chosen cells into locked content slots that end users fill in.

Design-time pipeline:
- Text metrics and flow (typographic and full-line box modes)
- Spot detection and grid building
- Content slot capture

End-user pipeline:
- Auto-fit text and image placement inside slots
- Debounced re-rendering with asynchronous media decode
- Multi-page presets
"""

from .models import (
    BoxMode,
    ContentType,
    FontConfig,
    Line,
    MediaContent,
    Padding,
    Rect,
    Size,
    Spot,
    TextBlockSpec,
    TextContent,
    TextMetrics,
)
from .errors import DecodeError, PersistenceError, SlotCraftError, ValidationError
from .cells import CellKind, GridCell

from .font_manager import FontManager
from .surface import DrawSurface, MeasureSurface, PilSurface, TextMeasurement
from .metrics import TextMetricsProvider
from .text_flow import TextFlowEngine, TextLayout
from .layout_algorithms import FitResult, ImagePlacement, LayoutAlgorithms

# Design time
from .spot_detector import SpotDetector
from .grid_builder import GridBuilder, GridSnapshot, SpotMatch, rematch_spots
from .slot_capture import (
    ContentSlot,
    ContentSlotManager,
    ImageSlotConstraints,
    SlotConfig,
    SlotStyling,
    TextSlotConstraints,
    validate_slot,
)

# End-user rendering
from .image_processor import DecodedMedia, ImageProcessor, MediaLoader
from .slot_renderer import ContentSlotRenderer, TextRenderResult
from .presets import (
    HttpPresetStore,
    InMemoryPresetStore,
    Page,
    PresetPageManager,
    PresetStore,
)
from .engine import DesignResult, LayoutEngine, RenderScheduler, load_page_json
from .session import EndUserSession

__all__ = [
    # Data models
    "BoxMode",
    "ContentType",
    "FontConfig",
    "Line",
    "MediaContent",
    "Padding",
    "Rect",
    "Size",
    "Spot",
    "TextBlockSpec",
    "TextContent",
    "TextMetrics",
    "CellKind",
    "GridCell",
    # Errors
    "SlotCraftError",
    "ValidationError",
    "DecodeError",
    "PersistenceError",
    # Measurement and flow
    "FontManager",
    "MeasureSurface",
    "DrawSurface",
    "PilSurface",
    "TextMeasurement",
    "TextMetricsProvider",
    "TextFlowEngine",
    "TextLayout",
    "LayoutAlgorithms",
    "FitResult",
    "ImagePlacement",
    # Design time
    "SpotDetector",
    "GridBuilder",
    "GridSnapshot",
    "SpotMatch",
    "rematch_spots",
    "ContentSlot",
    "ContentSlotManager",
    "SlotConfig",
    "SlotStyling",
    "TextSlotConstraints",
    "ImageSlotConstraints",
    "validate_slot",
    # End-user rendering
    "DecodedMedia",
    "ImageProcessor",
    "MediaLoader",
    "ContentSlotRenderer",
    "TextRenderResult",
    "Page",
    "PresetStore",
    "InMemoryPresetStore",
    "HttpPresetStore",
    "PresetPageManager",
    "DesignResult",
    "LayoutEngine",
    "RenderScheduler",
    "load_page_json",
    "EndUserSession",
]
