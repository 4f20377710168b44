"""
End-user editing session.

Holds one loaded page plus the user's values, decodes uploaded media off
the main thread and re-renders on a debounce. Decode completions are queued
and only applied in ``tick``, so every render runs on the caller's thread.
"""

import queue
from concurrent.futures import Future
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from ..logging_config import LogManager
from .engine import LayoutEngine, RenderScheduler
from .errors import DecodeError, ValidationError
from .image_processor import DecodedMedia, MediaLoader
from .presets import Page
from .slot_capture import ContentSlot
from .surface import DrawSurface

logger = LogManager().get_logger("layout.session")

FORMAT_ALIASES = {"jpeg": "jpg"}


def media_format(source: str) -> Optional[str]:
    """Format name of a media source from its data-URL mime type or file suffix."""
    if source.startswith("data:"):
        mime = source[5:].split(";", 1)[0].split(",", 1)[0]
        subtype = mime.split("/", 1)[1] if "/" in mime else ""
    else:
        path = urlparse(source).path if "://" in source else source
        subtype = PurePosixPath(path.replace("\\", "/")).suffix.lstrip(".")
    subtype = subtype.lower()
    if not subtype:
        return None
    return FORMAT_ALIASES.get(subtype, subtype)


class EndUserSession:
    """Form-driven editing of one page's content slots."""

    def __init__(
        self,
        engine: LayoutEngine,
        page: Page,
        loader: Optional[MediaLoader] = None,
        scheduler: Optional[RenderScheduler] = None,
        surface: Optional[DrawSurface] = None,
        on_render: Optional[Callable[[DrawSurface], None]] = None
    ):
        self.engine = engine
        self.page = page
        self.loader = loader or MediaLoader()
        self.scheduler = scheduler or RenderScheduler(engine.registry.defaults.render_debounce_ms)
        self.surface = surface
        self.on_render = on_render
        self.values: Dict[str, str] = {}
        self.media: Dict[str, DecodedMedia] = {}
        self.errors: Dict[str, str] = {}
        self._completed: "queue.SimpleQueue[Tuple[str, str, Future]]" = queue.SimpleQueue()
        self.render_count = 0

    def form_slots(self) -> List[Tuple[ContentSlot, str]]:
        """Slots in page order with the value to pre-fill (saved value, then default)."""
        return [
            (slot, self.values.get(slot.slot_id, slot.default_content))
            for slot in self.page.content_slots
        ]

    def handle_content_update(self, slot_id: str, value: str) -> None:
        """
        Store a new value for a slot and schedule a re-render.

        Image values start an asynchronous decode; the slot draws nothing
        until the decode is applied by ``tick``.

        Raises:
            KeyError: if the page has no slot ``slot_id``
            ValidationError: if an image value has a disallowed format
        """
        slot = self.page.get_slot(slot_id)
        if slot is None:
            raise KeyError(slot_id)

        if slot.type == "image" and value:
            fmt = media_format(value)
            allowed = slot.constraints.allowed_formats
            if fmt is not None and fmt not in allowed:
                raise ValidationError(slot.field_name, f"format {fmt!r} not in {', '.join(allowed)}")

        self.values[slot_id] = value
        self.errors.pop(slot_id, None)

        if slot.type == "image":
            self.media.pop(slot_id, None)
            if value:
                future = self.loader.load_async(value)
                future.add_done_callback(lambda f, sid=slot_id, v=value: self._completed.put((sid, v, f)))
        elif slot.type == "text" and len(value) > slot.constraints.max_characters:
            logger.debug(f"{slot_id}: {len(value)} characters exceeds {slot.constraints.max_characters}")

        self.scheduler.schedule(self.render_pass)

    def _apply_decodes(self) -> int:
        applied = 0
        while True:
            try:
                slot_id, value, future = self._completed.get_nowait()
            except queue.Empty:
                break
            if self.values.get(slot_id) != value:
                logger.debug(f"Ignoring stale decode for {slot_id}")
                continue
            try:
                self.media[slot_id] = future.result()
            except DecodeError as e:
                logger.error(f"Media for slot {slot_id} could not be decoded: {e}")
                self.errors[slot_id] = str(e)
                self.media.pop(slot_id, None)
            applied += 1
        return applied

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Apply finished decodes and run the pending render if it is due.

        Returns:
            True if a render ran
        """
        if self._apply_decodes():
            self.scheduler.schedule(self.render_pass)
        return self.scheduler.fire_if_due(now)

    def render_pass(self) -> DrawSurface:
        """Render the page with the current values and decoded media."""
        surface = self.engine.render_page(
            self.page,
            values=self.values,
            images=self.media,
            surface=self.surface,
            show_placeholders=True,
        )
        self.surface = surface
        self.render_count += 1
        if self.on_render is not None:
            self.on_render(surface)
        return surface

    def close(self) -> None:
        self.scheduler.cancel()
        self.loader.shutdown()
