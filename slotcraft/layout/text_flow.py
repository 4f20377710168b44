"""
Text flow engine.

Wraps a text block into physical lines, places them against the block's
anchor and produces per-line boxes in either height convention:

- typographic: cap-height (or x-height for lines without capitals). Tight,
  used for layout and spot detection.
- full-line: ascent + descent around the baseline. Used when capturing a
  slot so nothing the glyphs can touch is cropped.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..constants import AUTO_FONT_FALLBACK_SIZE, AUTO_FONT_MAX_SIZE, AUTO_FONT_MIN_SIZE
from ..logging_config import LogManager
from .layout_algorithms import LayoutAlgorithms
from .metrics import TextMetricsProvider
from .models import BoxMode, FontConfig, Line, Point, Rect, TextBlockSpec, union_all
from .surface import MeasureSurface

logger = LogManager().get_logger("layout.flow")


@dataclass
class TextLayout:
    """Result of flowing one text block."""
    lines: List[Line]
    physical_lines: List[str]
    font_size: float
    total_height: float
    anchor: Point
    content_rect: Rect
    mode: BoxMode
    collapsed: bool = False
    line_spacing: float = field(default=0)

    @property
    def bounds(self) -> Optional[Rect]:
        """Union of the mode boxes."""
        return union_all([line.box for line in self.lines if line.box is not None])

    @property
    def line_box_bounds(self) -> Optional[Rect]:
        """Union of the full-line boxes."""
        return union_all([line.line_box for line in self.lines if line.line_box is not None])


def aligned_x(anchor_x: float, width: float, alignment: str) -> float:
    """Left edge of a line of ``width`` aligned against ``anchor_x``."""
    if alignment == "left":
        return anchor_x
    elif alignment == "right":
        return anchor_x - width
    elif alignment == "center":
        return anchor_x - width / 2
    raise ValueError(f"Unknown alignment: {alignment}")


def should_collapse(text: str, physical_line_count: int) -> bool:
    """One logical line (has a space, no explicit break) that soft-wrapped."""
    return "\n" not in text and " " in text and physical_line_count > 1


class TextFlowEngine:
    """Wraps and positions text blocks."""

    def __init__(self, surface: MeasureSurface, metrics: TextMetricsProvider):
        self.surface = surface
        self.metrics = metrics

    def measure_width(self, text: str, font: FontConfig, size: float) -> float:
        return self.surface.measure_text(text, font, size).width

    def wrap(
        self,
        text: str,
        font: FontConfig,
        size: float,
        available_width: float,
        wrap: bool = True
    ) -> List[str]:
        """
        Greedy word wrap.

        Explicit ``\\n`` always breaks; blank input lines are kept as ``""``.
        A word wider than the available width sits alone on its line and is
        never split.

        Returns:
            Physical line strings, in order
        """
        lines: List[str] = []
        for paragraph in text.split("\n"):
            if not paragraph:
                lines.append("")
                continue
            if not wrap:
                lines.append(paragraph)
                continue

            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if current and self.measure_width(candidate, font, size) > available_width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def resolve_font_size(self, block: TextBlockSpec) -> float:
        """Numeric sizes pass through; ``"auto"`` searches for the largest fit."""
        if not block.font.is_auto:
            return float(block.font.size)

        content = block.container.inset(block.padding)
        if content.width <= 0 or content.height <= 0 or not block.text.strip():
            return float(AUTO_FONT_FALLBACK_SIZE)

        spacing = block.font.line_spacing

        def fits(size: int) -> bool:
            lines = self.wrap(block.text, block.font, size, content.width, block.wrap)
            total = len(lines) * size + (len(lines) - 1) * spacing
            if total > content.height:
                return False
            return all(self.measure_width(line, block.font, size) <= content.width for line in lines)

        max_size = min(int(content.height), AUTO_FONT_MAX_SIZE)
        result = LayoutAlgorithms.auto_fit_size(fits, AUTO_FONT_MIN_SIZE, max_size)
        logger.debug(f"Auto font size for {block.text[:30]!r}: {result.font_size} (fits={result.fits})")
        return float(result.font_size)

    def compute_anchor(self, block: TextBlockSpec, total_height: float) -> Point:
        """
        Horizontal anchor and vertical start of the text block.

        The vertical start is not clamped: a block taller than its content
        area starts above it.
        """
        content = block.container.inset(block.padding)

        if block.position_h == "left":
            anchor_x = content.x
        elif block.position_h == "right":
            anchor_x = content.right
        else:
            anchor_x = content.x + content.width / 2

        if block.position_v == "top":
            start_y = content.y
        elif block.position_v == "bottom":
            start_y = content.bottom - total_height
        else:
            start_y = content.y + (content.height - total_height) / 2

        return (anchor_x, start_y)

    def layout_block(
        self,
        block: TextBlockSpec,
        mode: BoxMode = BoxMode.TYPOGRAPHIC,
        collapse: bool = True
    ) -> TextLayout:
        """
        Flow a block and compute every visible line's boxes.

        Args:
            block: Text block to flow
            mode: Height convention for the ``box`` of each line
            collapse: Merge a soft-wrapped single logical line into one box

        Returns:
            TextLayout with one Line per non-blank physical line (or a single
            collapsed Line)
        """
        size = self.resolve_font_size(block)
        font = block.font
        content = block.container.inset(block.padding)
        physical = self.wrap(block.text, font, size, content.width, block.wrap)
        m = self.metrics.metrics(font, size)
        spacing = font.line_spacing

        visible = [(index, text) for index, text in enumerate(physical) if text.strip()]
        heights = [self.metrics.line_height(text, font, size, mode) for _, text in visible]
        total_height = sum(heights) + spacing * max(0, len(visible) - 1)

        anchor = self.compute_anchor(block, total_height)
        anchor_x, current_y = anchor

        lines: List[Line] = []
        for (index, text), height in zip(visible, heights):
            alignment = block.alignment_for(index)
            width = self.measure_width(text, font, size)
            x = aligned_x(anchor_x, width, alignment)

            if mode == BoxMode.TYPOGRAPHIC:
                baseline = current_y + height
            elif mode == BoxMode.FULL_LINE:
                baseline = current_y + m.ascent
            else:
                raise ValueError(f"Unknown box mode: {mode}")

            lines.append(Line(
                text=text,
                index=index,
                alignment=alignment,
                anchor=(anchor_x, current_y),
                box=Rect(x, current_y, width, height),
                line_box=Rect(x, baseline - m.ascent, width, m.full_line_height),
                baseline=baseline,
                font_size=size,
            ))
            current_y += height + spacing

        collapsed = False
        if collapse and should_collapse(block.text, len(lines)):
            lines = [self.collapse_logical_line(block.text, lines, font, size)]
            collapsed = True

        logger.debug(
            f"Laid out {len(lines)} line(s) at {size}px in {mode.value} mode"
            f"{' (collapsed)' if collapsed else ''}"
        )

        return TextLayout(
            lines=lines,
            physical_lines=physical,
            font_size=size,
            total_height=total_height,
            anchor=anchor,
            content_rect=content,
            mode=mode,
            collapsed=collapsed,
            line_spacing=spacing,
        )

    def collapse_logical_line(self, text: str, lines: List[Line], font: FontConfig, size: float) -> Line:
        """
        Replace the physical lines of one soft-wrapped logical line with a
        single Line as wide as the whole string and one line high, centered
        on the wrapped block.
        """
        full_width = self.measure_width(text, font, size)
        first = lines[0]

        def collapse_rects(rects: List[Rect], first_rect: Rect) -> Rect:
            top = min(r.y for r in rects)
            bottom = max(r.bottom for r in rects)
            middle = (top + bottom) / 2
            difference = full_width - first_rect.width
            if first.alignment == "center":
                x = first_rect.x - difference / 2
            elif first.alignment == "right":
                x = first_rect.x - difference
            else:
                x = min(r.x for r in rects)
            return Rect(x, middle - first_rect.height / 2, full_width, first_rect.height)

        box = collapse_rects([line.box for line in lines], first.box)
        line_box = collapse_rects([line.line_box for line in lines], first.line_box)

        return Line(
            text=text,
            index=0,
            alignment=first.alignment,
            anchor=(first.anchor[0], box.y),
            box=box,
            line_box=line_box,
            baseline=line_box.y + (first.baseline - first.line_box.y),
            font_size=size,
        )

    def line_bounds(self, block: TextBlockSpec, mode: BoxMode = BoxMode.TYPOGRAPHIC) -> List[Line]:
        """Laid-out lines of a block (collapsed where applicable)."""
        if not block.text or not block.text.strip():
            return []
        return self.layout_block(block, mode).lines
