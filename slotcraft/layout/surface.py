"""
Drawing surfaces.

The layout engine never touches pixels directly: it measures and draws
through a surface. ``PilSurface`` is the Pillow implementation used for
exports and previews; tests plug in deterministic fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw

from ..logging_config import LogManager
from .font_manager import FontManager
from .models import FontConfig, HorizontalAlign, Rect, Size

logger = LogManager().get_logger("layout.surface")

PIL_ANCHORS = {"left": "ls", "center": "ms", "right": "rs"}


@dataclass(frozen=True)
class TextMeasurement:
    """Measured extent of a string, relative to its baseline."""
    width: float  # advance width
    ascent: float  # ink above the baseline
    descent: float  # ink below the baseline


class MeasureSurface(ABC):
    """Anything that can measure text."""

    @abstractmethod
    def measure_text(self, text: str, font: FontConfig, size: float) -> TextMeasurement:
        """Measure the actual bounding box of ``text`` at ``size`` pixels."""
        pass

    @abstractmethod
    def font_extents(self, font: FontConfig, size: float) -> Tuple[float, float]:
        """
        Get the font-wide extents.

        Returns:
            Tuple of (ascent, descent) in pixels, both positive
        """
        pass


class DrawSurface(MeasureSurface):
    """A measurable surface that can also be drawn on."""

    @property
    @abstractmethod
    def size(self) -> Size:
        pass

    @abstractmethod
    def draw_text(
        self,
        text: str,
        x: float,
        baseline_y: float,
        font: FontConfig,
        size: float,
        color: str,
        align: HorizontalAlign = "left",
    ) -> None:
        """Draw text with ``x`` interpreted according to ``align``."""
        pass

    @abstractmethod
    def draw_image(self, image: Image.Image, source: Rect, dest: Rect) -> None:
        """Draw the ``source`` region of ``image`` scaled into ``dest``."""
        pass

    @abstractmethod
    def fill_rect(self, rect: Rect, color: str) -> None:
        pass

    @abstractmethod
    def stroke_rect(self, rect: Rect, color: str, width: int = 1, dash: Optional[Tuple[int, int]] = None) -> None:
        pass

    @abstractmethod
    def save(self) -> None:
        """Push the current clip state."""
        pass

    @abstractmethod
    def restore(self) -> None:
        """Pop the clip state pushed by the matching ``save``."""
        pass

    @abstractmethod
    def clip(self, rect: Rect) -> None:
        """Intersect the current clip with ``rect``."""
        pass


class PilSurface(DrawSurface):
    """Pillow-backed surface; clipping is emulated by compositing layers."""

    def __init__(self, size: Size, font_manager: FontManager, background: Optional[str] = None):
        self._size = (int(size[0]), int(size[1]))
        self.font_manager = font_manager
        self.image = Image.new("RGBA", self._size, background or (0, 0, 0, 0))
        self._measure_draw = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
        self._clip: Optional[Rect] = None
        self._clip_stack: List[Optional[Rect]] = []

    @property
    def size(self) -> Size:
        return self._size

    def _font(self, font: FontConfig, size: float):
        return self.font_manager.pil_font(
            list(font.family),
            max(1, size),
            weight=font.weight,
            italic=font.style == "italic",
        )

    def measure_text(self, text: str, font: FontConfig, size: float) -> TextMeasurement:
        if not text:
            return TextMeasurement(0.0, 0.0, 0.0)
        pil_font = self._font(font, size)
        width = self._measure_draw.textlength(text, font=pil_font)
        left, top, right, bottom = pil_font.getbbox(text, anchor="ls")
        return TextMeasurement(float(width), float(-top), float(max(0, bottom)))

    def font_extents(self, font: FontConfig, size: float) -> Tuple[float, float]:
        ascent, descent = self._font(font, size).getmetrics()
        return float(ascent), float(descent)

    # Clipping

    def save(self) -> None:
        self._clip_stack.append(self._clip)

    def restore(self) -> None:
        if self._clip_stack:
            self._clip = self._clip_stack.pop()
        else:
            logger.warning("restore() called without matching save()")

    def clip(self, rect: Rect) -> None:
        if self._clip is None:
            self._clip = rect
        else:
            self._clip = self._clip.intersection(rect) or Rect(rect.x, rect.y, 0, 0)

    def _clip_box(self) -> Optional[Tuple[int, int, int, int]]:
        """Integer clip box clamped to the canvas, or None when nothing is visible."""
        width, height = self._size
        area = Rect(0, 0, width, height)
        if self._clip is not None:
            area = area.intersection(self._clip)
            if area is None:
                return None
        box = (int(round(area.x)), int(round(area.y)), int(round(area.right)), int(round(area.bottom)))
        if box[2] <= box[0] or box[3] <= box[1]:
            return None
        return box

    def _new_layer(self) -> Optional[Tuple[Image.Image, int, int]]:
        """Transparent layer covering only the visible clip box, with its canvas offset."""
        box = self._clip_box()
        if box is None:
            return None
        layer = Image.new("RGBA", (box[2] - box[0], box[3] - box[1]), (0, 0, 0, 0))
        return layer, box[0], box[1]

    def _composite(self, layer: Image.Image, left: int, top: int) -> None:
        self.image.alpha_composite(layer, dest=(left, top))

    # Drawing

    def draw_text(self, text, x, baseline_y, font, size, color, align="left") -> None:
        if not text:
            return
        target = self._new_layer()
        if target is None:
            return
        layer, left, top = target
        ImageDraw.Draw(layer).text(
            (x - left, baseline_y - top),
            text,
            font=self._font(font, size),
            fill=color,
            anchor=PIL_ANCHORS.get(align, "ls"),
        )
        self._composite(layer, left, top)

    def draw_image(self, image: Image.Image, source: Rect, dest: Rect) -> None:
        target = self._new_layer()
        if target is None:
            return
        layer, left, top = target
        dest_w = max(1, int(round(dest.width)))
        dest_h = max(1, int(round(dest.height)))
        crop_box = (
            int(round(source.x)),
            int(round(source.y)),
            int(round(source.right)),
            int(round(source.bottom)),
        )
        region = image.convert("RGBA").crop(crop_box).resize((dest_w, dest_h), Image.Resampling.LANCZOS)
        layer.paste(region, (int(round(dest.x)) - left, int(round(dest.y)) - top), region)
        self._composite(layer, left, top)

    def fill_rect(self, rect: Rect, color: str) -> None:
        target = self._new_layer()
        if target is None:
            return
        layer, left, top = target
        ImageDraw.Draw(layer).rectangle(
            [rect.x - left, rect.y - top, rect.right - 1 - left, rect.bottom - 1 - top],
            fill=color,
        )
        self._composite(layer, left, top)

    def stroke_rect(self, rect, color, width=1, dash=None) -> None:
        target = self._new_layer()
        if target is None:
            return
        layer, left, top = target
        draw = ImageDraw.Draw(layer)
        x1, y1 = rect.x - left, rect.y - top
        x2, y2 = rect.right - 1 - left, rect.bottom - 1 - top
        corners = [(x1, y1), (x2, y1), (x2, y2), (x1, y2)]
        for start, end in zip(corners, corners[1:] + corners[:1]):
            if dash is None:
                draw.line([start, end], fill=color, width=width)
            else:
                self._dashed_line(draw, start, end, color, width, dash)
        self._composite(layer, left, top)

    @staticmethod
    def _dashed_line(draw, start, end, color, width, dash) -> None:
        on, off = dash
        (x1, y1), (x2, y2) = start, end
        length = ((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5
        if length == 0:
            return
        dx, dy = (x2 - x1) / length, (y2 - y1) / length
        pos = 0.0
        while pos < length:
            seg_end = min(pos + on, length)
            draw.line(
                [(x1 + dx * pos, y1 + dy * pos), (x1 + dx * seg_end, y1 + dy * seg_end)],
                fill=color,
                width=width,
            )
            pos += on + off

    def export(self, path: Path, image_format: str = "PNG") -> Path:
        """Write the surface to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        image = self.image
        if image_format.upper() in ("JPEG", "JPG"):
            image = image.convert("RGB")
            image_format = "JPEG"
        image.save(path, image_format.upper())
        logger.info(f"Exported surface to {path}")
        return path
