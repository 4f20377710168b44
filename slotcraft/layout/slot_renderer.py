"""
Content slot rendering.

Draws end-user content into captured slots with the layout locked:
- Text auto-fit (binary search for the largest font that fits the box)
- Image modes: cover, fit and free
- Reference-to-presentation coordinate remapping
- Every draw is clipped to the slot's stored box
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..constants import BASELINE_OFFSET, PLACEHOLDER_COLOR
from ..logging_config import LogManager
from .image_processor import DecodedMedia
from .layout_algorithms import FitResult, ImagePlacement, LayoutAlgorithms
from .models import FontConfig, Rect, Size
from .slot_capture import ContentSlot, ImageSlotConstraints, TextSlotConstraints
from .surface import DrawSurface
from .text_flow import TextFlowEngine

logger = LogManager().get_logger("layout.renderer")

PLACEHOLDER_FONT = FontConfig(family=("Arial", "DejaVu Sans"), size=14)


@dataclass
class TextRenderResult:
    """What render_text drew."""
    font_size: int
    lines: List[str]
    box: Rect
    fits: bool


class ContentSlotRenderer:
    """
    Renders slots into a drawing surface.

    Boxes are stored in reference (design-time) pixels. When the surface
    has a different presentation size, boxes scale by independent X/Y
    factors and font sizes by the smaller of the two.
    """

    def __init__(
        self,
        surface: DrawSurface,
        flow: TextFlowEngine,
        reference_size: Size,
        presentation_size: Optional[Size] = None
    ):
        self.surface = surface
        self.flow = flow
        self.reference_size = reference_size
        self.presentation_size = presentation_size or reference_size
        self._fit_cache: Dict[Tuple, bool] = {}

    @property
    def scale_factors(self) -> Tuple[float, float]:
        return LayoutAlgorithms.scale_factors(self.reference_size, self.presentation_size)

    @property
    def font_scale(self) -> float:
        return min(self.scale_factors)

    def remap_box(self, rect: Rect) -> Rect:
        """Reference-pixel box to presentation pixels."""
        return LayoutAlgorithms.remap_rect(rect, self.reference_size, self.presentation_size)

    # Auto-fit

    def text_fits(
        self,
        text: str,
        box: Rect,
        size: int,
        font: FontConfig,
        line_height: float,
        word_wrap: bool = True
    ) -> bool:
        """Wrapped line count x size x line height within the box height."""
        key = (text, box.width, box.height, font.cache_key(size), line_height, word_wrap)
        cached = self._fit_cache.get(key)
        if cached is not None:
            return cached

        lines = self.flow.wrap(text, font, size, box.width, word_wrap)
        fits = len(lines) * size * line_height <= box.height
        self._fit_cache[key] = fits
        return fits

    def find_optimal_font_size(
        self,
        text: str,
        box: Rect,
        font: FontConfig,
        constraints: TextSlotConstraints,
        designer_size: Optional[float] = None
    ) -> FitResult:
        """
        Largest font size at which ``text`` fits ``box``.

        The designer's size wins whenever it fits. Otherwise binary search
        covers [min_font_size, min(max_font_size, designer size)]. In
        ``fixed`` mode the designer's size is returned unconditionally.

        Args:
            text: User text
            box: Presentation-space box
            font: Locked font
            constraints: Slot text constraints (sizes in reference pixels)
            designer_size: Locked size in reference pixels

        Returns:
            FitResult; ``fits`` is False when even the minimum overflows
        """
        scale = self.font_scale
        line_height = constraints.line_height
        wrap = constraints.word_wrap
        min_size = max(1, int(round(constraints.min_font_size * scale)))
        max_size = max(min_size, int(round(constraints.max_font_size * scale)))
        designer = int(round(designer_size * scale)) if designer_size else None

        if constraints.font_size_mode == "fixed":
            size = designer or max_size
            return FitResult(font_size=size, fits=self.text_fits(text, box, size, font, line_height, wrap))

        if designer is not None:
            if self.text_fits(text, box, designer, font, line_height, wrap):
                return FitResult(font_size=designer, fits=True)
            max_size = min(max_size, designer - 1)

        if max_size < min_size:
            return FitResult(font_size=min_size, fits=self.text_fits(text, box, min_size, font, line_height, wrap))

        result = LayoutAlgorithms.auto_fit_size(
            lambda size: self.text_fits(text, box, size, font, line_height, wrap),
            min_size,
            max_size,
        )
        if not result.fits:
            logger.debug(f"Text {text[:30]!r} overflows {box} even at {min_size}px")
        return result

    # Drawing

    def render_text(self, slot: ContentSlot, text: str) -> Optional[TextRenderResult]:
        """Draw user text into a text slot. Blank text draws nothing."""
        if not text or not text.strip():
            return None

        constraints = slot.constraints
        styling = slot.styling
        if len(text) > constraints.max_characters:
            logger.debug(f"Truncating {slot.slot_id} text to {constraints.max_characters} characters")
            text = text[:constraints.max_characters]

        box = self.remap_box(slot.bounding_box)
        font = styling.font
        fit = self.find_optimal_font_size(text, box, font, constraints, styling.font_size)
        size = fit.font_size

        lines = self.flow.wrap(text, font, size, box.width, constraints.word_wrap)
        line_px = size * constraints.line_height
        total_height = len(lines) * line_px

        if constraints.vertical_align == "top":
            start_y = box.y
        elif constraints.vertical_align == "bottom":
            start_y = box.bottom - total_height
        else:
            start_y = box.y + (box.height - total_height) / 2

        align = constraints.horizontal_align
        if align == "left":
            text_x = box.x
        elif align == "right":
            text_x = box.right
        else:
            align = "center"
            text_x = box.x + box.width / 2

        self.surface.save()
        self.surface.clip(box)
        for index, line in enumerate(lines):
            baseline = start_y + (index + BASELINE_OFFSET) * line_px
            self.surface.draw_text(line, text_x, baseline, font, size, styling.color, align)
        self.surface.restore()

        return TextRenderResult(font_size=size, lines=lines, box=box, fits=fit.fits)

    def image_placement(self, slot: ContentSlot, image_size: Tuple[float, float]) -> ImagePlacement:
        """Where an image of ``image_size`` goes inside the slot."""
        constraints: ImageSlotConstraints = slot.constraints
        box = self.remap_box(slot.bounding_box)
        mode = constraints.image_mode

        if mode == "cover":
            return LayoutAlgorithms.cover_placement(image_size, box)
        elif mode == "fit":
            return LayoutAlgorithms.fit_placement(image_size, box)
        elif mode == "free":
            return LayoutAlgorithms.free_placement(
                image_size,
                box,
                constraints.image_scale * self.font_scale,
                constraints.position_h,
                constraints.position_v,
            )
        logger.warning(f"Unknown image mode {mode!r} for {slot.slot_id}, using cover")
        return LayoutAlgorithms.cover_placement(image_size, box)

    def render_image(self, slot: ContentSlot, media: DecodedMedia) -> ImagePlacement:
        """Draw a decoded image into an image slot, clipped to its box."""
        placement = self.image_placement(slot, media.size)
        self.surface.save()
        self.surface.clip(self.remap_box(slot.bounding_box))
        self.surface.draw_image(media.image, placement.source, placement.dest)
        self.surface.restore()
        return placement

    def render_placeholder(self, slot: ContentSlot) -> None:
        """Dashed outline with the field label for an empty slot."""
        box = self.remap_box(slot.bounding_box)
        self.surface.save()
        self.surface.clip(box)
        self.surface.stroke_rect(box, PLACEHOLDER_COLOR, width=1, dash=(5, 5))
        cx, cy = box.center
        self.surface.draw_text(slot.field_label, cx, cy, PLACEHOLDER_FONT, 14, PLACEHOLDER_COLOR, "center")
        self.surface.restore()

    def clear_cache(self) -> None:
        """Forget fit results (call when fonts change)."""
        self._fit_cache.clear()
