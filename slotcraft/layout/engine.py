"""
Layout Engine for SlotCraft.

Runs the designer's detection pass (flow text, find spots, build the grid)
and renders pages with their content slots to a drawing surface or PNG.
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from ..logging_config import LogManager
from .cells import GridCell
from .errors import SlotCraftError
from .grid_builder import GridSnapshot
from .image_processor import DecodedMedia
from .layout_algorithms import LayoutAlgorithms
from .metrics import TextMetricsProvider
from .models import BoxMode, ContentType, Padding, Rect, Size, Spot, TextBlockSpec
from .presets import Page
from .slot_capture import ContentSlot, ContentSlotManager, SlotConfig
from .slot_renderer import ContentSlotRenderer
from .spot_detector import SpotDetector
from .surface import DrawSurface, MeasureSurface, PilSurface
from .text_flow import TextFlowEngine, TextLayout

if TYPE_CHECKING:
    from ..registry import Registry

logger = LogManager().get_logger("layout.engine")


@dataclass
class DesignResult:
    """Everything one detection pass produces."""
    layout: TextLayout
    spots: List[Spot]
    grid: GridSnapshot


class LayoutEngine:
    """
    Main layout engine for designing and rendering pages.
    """

    def __init__(self, registry: "Registry", surface: Optional[MeasureSurface] = None):
        """
        Initialize the layout engine.

        Args:
            registry: Font table and layout defaults
            surface: Measurement surface for the design pass (defaults to a
                Pillow surface backed by the registry's fonts)
        """
        self.registry = registry
        self.surface = surface or PilSurface((1, 1), registry.font_manager)
        self.flow = self._flow_for(self.surface)
        self.slots = ContentSlotManager(self.flow)

    def _flow_for(self, surface: MeasureSurface) -> TextFlowEngine:
        metrics = TextMetricsProvider(surface, self.registry.font_manager)
        return TextFlowEngine(surface, metrics)

    # Design

    def design_pass(
        self,
        canvas_size: Size,
        main_text: TextBlockSpec,
        padding: Optional[Padding] = None,
        min_spot_size: Optional[int] = None,
        previous_grid: Optional[GridSnapshot] = None
    ) -> DesignResult:
        """
        Flow the main text and detect the open spots around it.

        Args:
            canvas_size: Canvas (width, height)
            main_text: The designer's text block
            padding: Canvas padding spots stay inside
            min_spot_size: Minimum spot width/height (registry default if None)
            previous_grid: Previous grid whose content carries over

        Returns:
            DesignResult with the layout, spots and new grid
        """
        layout = self.flow.layout_block(main_text, BoxMode.TYPOGRAPHIC)
        detector = SpotDetector(min_spot_size or self.registry.defaults.min_spot_size)
        spots = detector.detect(
            canvas_size,
            layout.lines,
            padding=padding,
            main_text=main_text,
            previous_grid=previous_grid,
        )
        logger.debug(f"Design pass: {len(layout.lines)} line(s), {len(spots)} spot(s)")
        return DesignResult(layout=layout, spots=spots, grid=detector.last_grid)

    def capture_slot(self, grid: GridSnapshot, cell_id: str, config: SlotConfig) -> ContentSlot:
        """Capture the cell ``cell_id`` as a new content slot."""
        cell = grid.find_by_id(cell_id)
        if cell is None:
            raise KeyError(f"No cell with id {cell_id!r}")
        slot = self.slots.create_slot_from_cell(cell, config)
        self.slots.add_slot(slot)
        return slot

    # Rendering

    def render_page(
        self,
        page: Page,
        values: Optional[Dict[str, str]] = None,
        images: Optional[Dict[str, DecodedMedia]] = None,
        surface: Optional[DrawSurface] = None,
        show_placeholders: bool = False
    ) -> DrawSurface:
        """
        Render a page with end-user content.

        Args:
            page: Page to render
            values: Text per slot id (missing values use the slot default)
            images: Decoded media per slot id, media URL or background URL
            surface: Target surface (a new PilSurface at canvas size if None)
            show_placeholders: Outline empty slots with their field label

        Returns:
            The surface drawn on
        """
        values = values or {}
        images = images or {}
        if surface is None:
            surface = PilSurface(page.canvas, self.registry.font_manager)

        width, height = surface.size
        flow = self.flow if surface is self.surface else self._flow_for(surface)
        renderer = ContentSlotRenderer(surface, flow, page.canvas, surface.size)

        logger.info(f"Rendering page {page.page_number} '{page.page_name}' at {width}x{height}")

        self._render_background(page, images, surface)

        bound_ids = {slot.source_content_id for slot in page.content_slots}
        self._render_static_content(page, bound_ids, images, surface, flow, renderer)

        for slot in page.content_slots:
            try:
                if slot.type == "text":
                    text = values.get(slot.slot_id) or slot.default_content
                    if renderer.render_text(slot, text) is None and show_placeholders:
                        renderer.render_placeholder(slot)
                elif slot.type == "image":
                    media = images.get(slot.slot_id)
                    if media is not None:
                        renderer.render_image(slot, media)
                    elif show_placeholders:
                        renderer.render_placeholder(slot)
                else:
                    raise ValueError(f"Unknown slot type: {slot.type}")
            except (SlotCraftError, OSError, ValueError) as e:
                logger.error(f"Failed to render slot {slot.slot_id}: {e}")

        return surface

    def _render_background(self, page: Page, images: Dict[str, DecodedMedia], surface: DrawSurface) -> None:
        width, height = surface.size
        canvas = Rect(0, 0, width, height)
        color = page.background.get("color") or "#FFFFFF"
        surface.fill_rect(canvas, color)

        image_url = page.background.get("image_url")
        if image_url:
            media = images.get(image_url)
            if media is None:
                logger.warning(f"Background image not loaded: {image_url[:60]}")
                return
            placement = LayoutAlgorithms.cover_placement(media.size, canvas)
            surface.draw_image(media.image, placement.source, placement.dest)

    def _render_static_content(
        self,
        page: Page,
        bound_ids: set,
        images: Dict[str, DecodedMedia],
        surface: DrawSurface,
        flow: TextFlowEngine,
        renderer: ContentSlotRenderer
    ) -> None:
        """Draw main text and designer content that no slot replaces."""
        cells: List[GridCell] = page.grid.cells() if page.grid is not None else []
        main_text_bound = any(c.is_main_text and c.content_id in bound_ids for c in cells)
        if not main_text_bound:
            self._draw_text_block(page.main_text, surface, flow, renderer)

        for cell in cells:
            if cell.is_main_text or cell.content_id in bound_ids:
                continue
            try:
                if cell.content_type == ContentType.TEXT:
                    self._draw_text_block(cell.text.to_block(cell.bounds), surface, flow, renderer)
                elif cell.content_type == ContentType.MEDIA:
                    media = images.get(cell.media.url)
                    if media is None:
                        logger.debug(f"Media for cell {cell.id} not loaded; skipping")
                        continue
                    box = renderer.remap_box(self.slots.capture_media_bounds(cell.bounds, cell.media))
                    placement = LayoutAlgorithms.fit_placement(media.size, box)
                    surface.draw_image(media.image, placement.source, placement.dest)
                elif cell.content_type == ContentType.EMPTY:
                    continue
                else:
                    raise ValueError(f"Unknown content type: {cell.content_type}")
            except (SlotCraftError, OSError, ValueError) as e:
                logger.error(f"Failed to render cell {cell.id}: {e}")

    @staticmethod
    def _draw_text_block(
        block: TextBlockSpec,
        surface: DrawSurface,
        flow: TextFlowEngine,
        renderer: ContentSlotRenderer
    ) -> None:
        if not block.text or not block.text.strip():
            return
        layout = flow.layout_block(block, BoxMode.TYPOGRAPHIC, collapse=False)
        sx, sy = renderer.scale_factors
        size = layout.font_size * renderer.font_scale
        for line in layout.lines:
            surface.draw_text(line.text, line.box.x * sx, line.baseline * sy, block.font, size, block.color, "left")

    def render_page_png(
        self,
        page: Page,
        out_path: Path,
        values: Optional[Dict[str, str]] = None,
        images: Optional[Dict[str, DecodedMedia]] = None,
        presentation_size: Optional[Size] = None
    ) -> Path:
        """
        Render a page to a PNG file.

        Args:
            page: Page to render
            out_path: Output path for the PNG file
            values: Text per slot id
            images: Decoded media per slot id or URL
            presentation_size: Output size (canvas size if None)
        """
        logger.info(f"Rendering page to PNG: {out_path}")
        surface = PilSurface(presentation_size or page.canvas, self.registry.font_manager)
        self.render_page(page, values, images, surface)
        path = surface.export(Path(out_path), "PNG")
        logger.info(f"Page rendered successfully to {path}")
        return path


class RenderScheduler:
    """
    Debounces re-renders.

    Holds a single pending-work token: scheduling again replaces the
    callback and restarts the quiet period.
    """

    def __init__(self, delay_ms: int = 300, clock: Callable[[], float] = time.monotonic):
        self.delay = delay_ms / 1000.0
        self.clock = clock
        self._callback: Optional[Callable[[], None]] = None
        self._due: float = 0.0

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._due = self.clock() + self.delay

    def fire_if_due(self, now: Optional[float] = None) -> bool:
        """Run the pending callback once its quiet period has passed."""
        if self._callback is None:
            return False
        now = self.clock() if now is None else now
        if now < self._due:
            return False
        return self.flush()

    def flush(self) -> bool:
        """Run the pending callback now; False if nothing was pending."""
        callback = self._callback
        if callback is None:
            return False
        self._callback = None
        callback()
        return True

    def cancel(self) -> None:
        self._callback = None


def load_page_json(path: Path) -> Page:
    """
    Load a page from a JSON file.

    Args:
        path: Path to the page JSON file

    Returns:
        Page instance
    """
    logger.info(f"Loading page from {path}")
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    page = Page.from_dict(data)
    logger.info(f"Page loaded: {page.page_name or 'Unnamed'} with {len(page.content_slots)} slot(s)")
    return page
