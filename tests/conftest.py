import io
from concurrent.futures import Future
from typing import Dict, List, Optional, Tuple

import pytest
import requests
from PIL import Image

from slotcraft.layout.engine import LayoutEngine
from slotcraft.layout.errors import DecodeError
from slotcraft.layout.font_manager import FontManager
from slotcraft.layout.image_processor import DecodedMedia
from slotcraft.layout.metrics import TextMetricsProvider, has_capitals
from slotcraft.layout.models import FontConfig, Rect, Size, TextBlockSpec
from slotcraft.layout.presets import Page
from slotcraft.layout.slot_capture import SlotConfig
from slotcraft.layout.surface import DrawSurface, TextMeasurement
from slotcraft.layout.text_flow import TextFlowEngine
from slotcraft.registry import Registry


# Exact widths for strings used by scenario tests (independent of size)
FIXED_WIDTHS = {
    "HELLO": 600.0,
    "WIX": 194.0,
    "STUDIO": 380.0,
    "WIX STUDIO": 600.0,
}


class FakeSurface(DrawSurface):
    """
    Deterministic surface.

    Width is 0.5 x size per character unless the string is in the fixed
    table. Ascent 0.8, descent 0.2, cap-height 0.7 and x-height 0.5 of the
    size. Every draw call is recorded.
    """

    def __init__(self, size: Size = (600, 600), widths: Optional[Dict[str, float]] = None):
        self._size = size
        self.widths = dict(FIXED_WIDTHS if widths is None else widths)
        self.calls: List[Tuple] = []
        self.clips: List[Optional[Rect]] = [None]

    @property
    def size(self) -> Size:
        return self._size

    def measure_text(self, text: str, font: FontConfig, size: float) -> TextMeasurement:
        width = self.widths.get(text, 0.5 * size * len(text))
        ascent = 0.7 * size if has_capitals(text) else 0.5 * size
        return TextMeasurement(width, ascent, 0.2 * size)

    def font_extents(self, font: FontConfig, size: float) -> Tuple[float, float]:
        return (0.8 * size, 0.2 * size)

    def draw_text(self, text, x, baseline_y, font, size, color, align="left") -> None:
        self.calls.append(("text", text, x, baseline_y, size, color, align))

    def draw_image(self, image, source: Rect, dest: Rect) -> None:
        self.calls.append(("image", source, dest))

    def fill_rect(self, rect: Rect, color: str) -> None:
        self.calls.append(("fill", rect, color))

    def stroke_rect(self, rect: Rect, color: str, width: int = 1, dash=None) -> None:
        self.calls.append(("stroke", rect, color, dash))

    def save(self) -> None:
        self.clips.append(self.clips[-1])

    def restore(self) -> None:
        self.clips.pop()

    def clip(self, rect: Rect) -> None:
        self.clips[-1] = rect
        self.calls.append(("clip", rect))

    def calls_of(self, kind: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == kind]


class SyncLoader:
    """MediaLoader stand-in that resolves futures immediately."""

    def __init__(self, results: Optional[Dict[str, object]] = None):
        self.results = results or {}
        self.requested: List[str] = []

    def load_async(self, source: str) -> Future:
        self.requested.append(source)
        future: Future = Future()
        result = self.results.get(source)
        if isinstance(result, Exception):
            future.set_exception(result)
        elif result is None:
            future.set_exception(DecodeError(source, "no such test media"))
        else:
            future.set_result(result)
        return future

    def shutdown(self) -> None:
        pass


class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code: int = 200, json_data=None, content: bytes = b""):
        self.status_code = status_code
        self._json = json_data
        self.content = content

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class StubSession:
    """Records requests and replays queued responses in order."""

    def __init__(self, responses: Optional[List[StubResponse]] = None):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.calls: List[Tuple[str, str, dict]] = []

    def request(self, method: str, url: str, **kwargs) -> StubResponse:
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise requests.ConnectionError(f"No stub response for {method} {url}")
        return self.responses.pop(0)

    def get(self, url: str, **kwargs) -> StubResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> StubResponse:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> StubResponse:
        return self.request("PUT", url, **kwargs)


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def flow(surface):
    return TextFlowEngine(surface, TextMetricsProvider(surface))


@pytest.fixture
def registry():
    return Registry(font_manager=FontManager(discover=False))


@pytest.fixture
def png_bytes():
    """A 80x40 red PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def decoded_media():
    return DecodedMedia(source="test.png", image=Image.new("RGBA", (800, 300), (0, 128, 255, 255)))


@pytest.fixture
def engine(registry, surface):
    return LayoutEngine(registry, surface=surface)


@pytest.fixture
def page(engine):
    """
    A 600x600 page with "HELLO" as main text, the text line captured as a
    text slot and the area above it captured as an image slot.
    """
    main_text = TextBlockSpec(text="HELLO", container=Rect(0, 0, 600, 600), font=FontConfig(size=48))
    design = engine.design_pass((600, 600), main_text)
    engine.capture_slot(design.grid, "main-text-0", SlotConfig("headline", "Headline"))
    engine.capture_slot(design.grid, "content-1", SlotConfig("photo", "Photo"))
    return Page(
        page_name="Card",
        page_number=1,
        canvas=(600, 600),
        main_text=main_text,
        grid=design.grid,
        content_slots=engine.slots.get_all_slots(),
    )
