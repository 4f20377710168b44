"""
Geometry algorithms shared by slot capture and slot rendering.

Provides:
- Auto-fit font sizing with binary search
- Aspect-preserving contain/cover sizing
- Anchor placement inside a content area
- Rotated bounding boxes
- Reference-to-presentation coordinate remapping
- Image placement rectangles for cover/fit/free modes
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..logging_config import LogManager
from .models import Point, Rect, Size

logger = LogManager().get_logger("layout.algorithms")


@dataclass
class FitResult:
    """Result of text fitting calculation."""
    font_size: int  # Optimal font size
    fits: bool  # Whether text fits at all


@dataclass
class ImagePlacement:
    """Which part of an image goes where."""
    source: Rect  # region of the decoded image
    dest: Rect  # canvas rectangle it is drawn into


class LayoutAlgorithms:
    """
    Collection of layout geometry algorithms.
    """

    @staticmethod
    def auto_fit_size(
        fits: Callable[[int], bool],
        min_size: int,
        max_size: int
    ) -> FitResult:
        """
        Find the largest integer size in [min_size, max_size] for which
        ``fits(size)`` holds, using binary search.

        Args:
            fits: Predicate telling whether text fits at a given size
            min_size: Minimum font size to try
            max_size: Maximum font size to try

        Returns:
            FitResult with optimal size and fit status. When nothing fits the
            minimum size is returned with ``fits=False``.
        """
        if max_size < min_size:
            logger.warning(f"max_size ({max_size}) < min_size ({min_size})")
            return FitResult(font_size=min_size, fits=False)

        low, high = min_size, max_size
        best_size = min_size
        best_fits = False

        while low <= high:
            mid = (low + high) // 2
            if fits(mid):
                # Fits! Try larger
                best_size = mid
                best_fits = True
                low = mid + 1
            else:
                # Too big, try smaller
                high = mid - 1

        return FitResult(font_size=best_size, fits=best_fits)

    @staticmethod
    def calculate_aspect_ratio(
        source_size: Tuple[float, float],
        target_size: Tuple[float, float],
        maintain_aspect: bool = True
    ) -> Tuple[float, float]:
        """
        Calculate scaled size that fits within the target.

        Args:
            source_size: Original size (width, height)
            target_size: Target size (width, height)
            maintain_aspect: Whether to maintain aspect ratio

        Returns:
            Scaled size that fits within target
        """
        if not maintain_aspect:
            return target_size

        src_w, src_h = source_size
        tgt_w, tgt_h = target_size

        if src_w <= 0 or src_h <= 0:
            return target_size

        scale = min(tgt_w / src_w, tgt_h / src_h)
        return (src_w * scale, src_h * scale)

    @staticmethod
    def cover_size(
        source_size: Tuple[float, float],
        target_size: Tuple[float, float]
    ) -> Tuple[float, float]:
        """Scaled size that covers the target completely, aspect preserved."""
        src_w, src_h = source_size
        tgt_w, tgt_h = target_size

        if src_w <= 0 or src_h <= 0:
            return target_size

        scale = max(tgt_w / src_w, tgt_h / src_h)
        return (src_w * scale, src_h * scale)

    @staticmethod
    def position_anchor(
        area: Rect,
        width: float,
        height: float,
        position_h: str = "center",
        position_v: str = "middle"
    ) -> Point:
        """
        Center point of a width x height box placed in ``area``.

        The box is flush with the named edge (``left``/``right``,
        ``top``/``bottom``) or centered. It may extend past the area.
        """
        if position_h == "left":
            anchor_x = area.x + width / 2
        elif position_h == "right":
            anchor_x = area.right - width / 2
        else:
            anchor_x = area.x + area.width / 2

        if position_v == "top":
            anchor_y = area.y + height / 2
        elif position_v == "bottom":
            anchor_y = area.bottom - height / 2
        else:
            anchor_y = area.y + area.height / 2

        return (anchor_x, anchor_y)

    @staticmethod
    def rotated_size(width: float, height: float, degrees: float) -> Tuple[float, float]:
        """Axis-aligned size of a width x height box rotated by ``degrees``."""
        theta = math.radians(degrees)
        cos_t = abs(math.cos(theta))
        sin_t = abs(math.sin(theta))
        return (width * cos_t + height * sin_t, width * sin_t + height * cos_t)

    @staticmethod
    def centered_rect(center: Point, width: float, height: float) -> Rect:
        return Rect(center[0] - width / 2, center[1] - height / 2, width, height)

    @staticmethod
    def scale_factors(reference_size: Size, presentation_size: Optional[Size]) -> Tuple[float, float]:
        """Independent X/Y factors from reference to presentation pixels."""
        if presentation_size is None:
            return (1.0, 1.0)
        ref_w, ref_h = reference_size
        pres_w, pres_h = presentation_size
        if ref_w <= 0 or ref_h <= 0:
            return (1.0, 1.0)
        return (pres_w / ref_w, pres_h / ref_h)

    @staticmethod
    def remap_rect(rect: Rect, reference_size: Size, presentation_size: Optional[Size]) -> Rect:
        sx, sy = LayoutAlgorithms.scale_factors(reference_size, presentation_size)
        return rect.scaled(sx, sy)

    @staticmethod
    def cover_placement(image_size: Tuple[float, float], box: Rect) -> ImagePlacement:
        """
        Crop the longer axis of the image, centered, so it fills ``box``
        with its aspect ratio preserved.
        """
        img_w, img_h = image_size
        img_ratio = img_w / img_h
        box_ratio = box.width / box.height

        source_x, source_y = 0.0, 0.0
        source_w, source_h = float(img_w), float(img_h)

        if img_ratio > box_ratio:
            # Image wider than box - crop sides
            source_w = img_h * box_ratio
            source_x = (img_w - source_w) / 2
        else:
            # Image taller than box - crop top/bottom
            source_h = img_w / box_ratio
            source_y = (img_h - source_h) / 2

        return ImagePlacement(Rect(source_x, source_y, source_w, source_h), box)

    @staticmethod
    def fit_placement(image_size: Tuple[float, float], box: Rect) -> ImagePlacement:
        """Letterbox the whole image inside ``box``, centered."""
        img_w, img_h = image_size
        draw_w, draw_h = LayoutAlgorithms.calculate_aspect_ratio(image_size, (box.width, box.height))
        dest = Rect(
            box.x + (box.width - draw_w) / 2,
            box.y + (box.height - draw_h) / 2,
            draw_w,
            draw_h,
        )
        return ImagePlacement(Rect(0, 0, img_w, img_h), dest)

    @staticmethod
    def free_placement(
        image_size: Tuple[float, float],
        box: Rect,
        scale: float = 1.0,
        position_h: str = "center",
        position_v: str = "middle"
    ) -> ImagePlacement:
        """Natural size times ``scale``, aligned inside ``box`` but unconstrained."""
        img_w, img_h = image_size
        draw_w = img_w * scale
        draw_h = img_h * scale
        center = LayoutAlgorithms.position_anchor(box, draw_w, draw_h, position_h, position_v)
        dest = LayoutAlgorithms.centered_rect(center, draw_w, draw_h)
        return ImagePlacement(Rect(0, 0, img_w, img_h), dest)
