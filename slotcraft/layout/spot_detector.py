"""
Spot detection.

Finds the open rectangles a designer can fill around flowed text: beside
each line, in the vertical gaps between lines, and above and below the
block. Text defines the grid; spots are what is left over.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from ..constants import DEFAULT_MIN_SPOT_SIZE, MIN_SPOT_SIZE_FLOOR
from ..logging_config import LogManager
from .grid_builder import GridBuilder, GridSnapshot
from .models import Line, Padding, Rect, Size, Spot, TextBlockSpec

logger = LogManager().get_logger("layout.spots")


class SpotDetector:
    """
    Detects open spots around text lines.

    Detection is pure: identical inputs give identical, identically ordered
    spots. Degenerate inputs yield zero or one spot rather than an error.
    """

    def __init__(self, min_spot_size: int = DEFAULT_MIN_SPOT_SIZE):
        self.min_spot_size = max(MIN_SPOT_SIZE_FLOOR, min_spot_size)
        self.last_grid: Optional[GridSnapshot] = None

    def set_min_spot_size(self, size: int) -> None:
        """Set minimum spot width/height, floored at 10 pixels."""
        self.min_spot_size = max(MIN_SPOT_SIZE_FLOOR, size)

    def detect(
        self,
        canvas_size: Size,
        text_line_bounds: Sequence[Line],
        padding: Optional[Padding] = None,
        min_spot_size: Optional[int] = None,
        main_text: Optional[TextBlockSpec] = None,
        previous_grid: Optional[GridSnapshot] = None,
    ) -> List[Spot]:
        """
        Find all open spots.

        Args:
            canvas_size: Canvas (width, height)
            text_line_bounds: Flowed lines, top to bottom, each with a box
            padding: Canvas padding spots must stay inside
            min_spot_size: Override for this call (floored at 10)
            main_text: Text block the lines came from, attached to the
                main-text cells of the resulting grid
            previous_grid: Grid from the previous detection; content cells
                inherit its content by best-fit distance

        Returns:
            Valid spots numbered 1..n in detection order
        """
        padding = padding or Padding()
        min_size = self.min_spot_size if min_spot_size is None else max(MIN_SPOT_SIZE_FLOOR, min_spot_size)
        canvas_w, canvas_h = canvas_size
        available_w = canvas_w - padding.left - padding.right

        builder = GridBuilder()
        builder.start_build()

        lines = [line for line in text_line_bounds if line.box is not None and line.text.strip()]

        if not lines:
            full = Rect(padding.left, padding.top, available_w, canvas_h - padding.top - padding.bottom)
            spots = [Spot(1, full, 0, 0)] if full.is_positive() else []
            logger.debug(f"No text: {len(spots)} full-canvas spot(s)")
            for spot in spots:
                builder.add_spot_region(spot)
            self.last_grid = builder.finalize_grid(main_text=main_text, previous=previous_grid)
            return spots

        candidates: List[Spot] = []
        row = 0

        # Beside each line
        for line in lines:
            box = line.box
            left_w = box.x - padding.left
            if left_w >= min_size and box.height >= min_size:
                candidates.append(Spot(0, Rect(padding.left, box.y, left_w, box.height), row, 0))

            right_x = box.right
            right_w = canvas_w - padding.right - right_x
            if right_w >= min_size and box.height >= min_size:
                candidates.append(Spot(0, Rect(right_x, box.y, right_w, box.height), row, 2))
            row += 1

        # Between lines
        for current, following in zip(lines, lines[1:]):
            gap_y = current.box.bottom
            gap_h = following.box.y - gap_y
            if gap_h >= min_size:
                candidates.append(Spot(0, Rect(padding.left, gap_y, available_w, gap_h), row, 0))
                row += 1

        # Above the first line
        top_h = lines[0].box.y - padding.top
        if top_h >= min_size:
            candidates.append(Spot(0, Rect(padding.left, padding.top, available_w, top_h), -1, 0))

        # Below the last line
        bottom_y = lines[-1].box.bottom
        bottom_h = canvas_h - padding.bottom - bottom_y
        if bottom_h >= min_size:
            candidates.append(Spot(0, Rect(padding.left, bottom_y, available_w, bottom_h), row, 0))

        spots = self._validate(candidates, canvas_size, min_size)

        for row_index, line in enumerate(lines):
            builder.add_text_region(line.box, line.text, line.index, row=row_index)
        for spot in spots:
            builder.add_spot_region(spot)
        self.last_grid = builder.finalize_grid(main_text=main_text, previous=previous_grid)

        logger.debug(
            f"Detected {len(spots)} spot(s) from {len(candidates)} candidate(s) "
            f"around {len(lines)} line(s) on {canvas_w}x{canvas_h}"
        )
        return spots

    def _validate(self, candidates: List[Spot], canvas_size: Size, min_size: int) -> List[Spot]:
        """Drop undersized, out-of-bounds or non-positive spots and renumber."""
        canvas_w, canvas_h = canvas_size
        valid = []
        for spot in candidates:
            rect = spot.rect
            if rect.width < min_size or rect.height < min_size:
                logger.debug(f"Rejected spot {rect}: too small")
                continue
            if rect.x < 0 or rect.y < 0 or rect.right > canvas_w or rect.bottom > canvas_h:
                logger.debug(f"Rejected spot {rect}: out of bounds")
                continue
            if not rect.is_positive():
                continue
            valid.append(replace(spot, id=len(valid) + 1))
        return valid

    @staticmethod
    def statistics(spots: Sequence[Spot], lines: Sequence[Line], canvas_size: Size) -> Dict[str, Any]:
        """Coverage numbers for a detection run."""
        canvas_area = canvas_size[0] * canvas_size[1]
        text_area = sum(line.box.area for line in lines if line.box is not None)
        spot_areas = [spot.rect.area for spot in spots]
        spot_area = sum(spot_areas)

        def percent(value: float) -> float:
            return round(value / canvas_area * 100, 1) if canvas_area else 0.0

        return {
            "total_spots": len(spots),
            "canvas_area": canvas_area,
            "text_area": text_area,
            "spot_area": spot_area,
            "text_coverage": percent(text_area),
            "spot_coverage": percent(spot_area),
            "average_spot_area": round(spot_area / len(spots)) if spots else 0,
            "largest_spot_area": max(spot_areas) if spot_areas else 0,
            "smallest_spot_area": min(spot_areas) if spot_areas else 0,
        }

