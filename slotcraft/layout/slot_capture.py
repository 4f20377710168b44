"""
Content slot capture.

Turns a grid cell the designer marks as editable into a ContentSlot: the
exact pixel box its content occupies, the constraints the end user works
within, the styling that stays locked, and the form metadata.

Workflow:
1. Designer marks a cell as editable and names the form field
2. capture_bounding_box() measures what is actually drawn in the cell
3. create_slot_from_cell() builds and validates the slot
4. The slot is stored with the page and looked up by source_content_id so
   it survives grid rebuilds
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union

from ..constants import (
    DEFAULT_FONT_SIZE,
    DEFAULT_IMAGE_CONSTRAINTS,
    DEFAULT_TEXT_CONSTRAINTS,
    MAX_SLOT_FONT_SIZE,
    MIN_SLOT_FONT_SIZE,
)
from ..logging_config import LogManager
from .cells import CellKind, GridCell
from .errors import ValidationError
from .grid_builder import GridSnapshot
from .layout_algorithms import LayoutAlgorithms
from .models import BoxMode, ContentType, FontConfig, MediaContent, Padding, Rect, TextBlockSpec
from .text_flow import TextFlowEngine

logger = LogManager().get_logger("layout.slots")

SLOT_TYPES = ("text", "image")


@dataclass(frozen=True)
class TextSlotConstraints:
    """Limits on what the end user may type into a text slot."""
    max_characters: int = DEFAULT_TEXT_CONSTRAINTS["max_characters"]
    font_size_mode: str = DEFAULT_TEXT_CONSTRAINTS["font_size_mode"]  # auto-fit | fixed
    min_font_size: int = MIN_SLOT_FONT_SIZE
    max_font_size: int = MAX_SLOT_FONT_SIZE
    word_wrap: bool = DEFAULT_TEXT_CONSTRAINTS["word_wrap"]
    vertical_align: str = DEFAULT_TEXT_CONSTRAINTS["vertical_align"]  # top | middle | bottom
    horizontal_align: str = DEFAULT_TEXT_CONSTRAINTS["horizontal_align"]
    line_height: float = DEFAULT_TEXT_CONSTRAINTS["line_height"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_characters": self.max_characters,
            "font_size_mode": self.font_size_mode,
            "min_font_size": self.min_font_size,
            "max_font_size": self.max_font_size,
            "word_wrap": self.word_wrap,
            "vertical_align": self.vertical_align,
            "horizontal_align": self.horizontal_align,
            "line_height": self.line_height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextSlotConstraints":
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ImageSlotConstraints:
    """How an uploaded image is placed and what uploads are accepted."""
    image_mode: str = DEFAULT_IMAGE_CONSTRAINTS["image_mode"]  # cover | fit | free
    focal_point: str = DEFAULT_IMAGE_CONSTRAINTS["focal_point"]
    max_file_size: int = DEFAULT_IMAGE_CONSTRAINTS["max_file_size"]
    allowed_formats: Tuple[str, ...] = tuple(DEFAULT_IMAGE_CONSTRAINTS["allowed_formats"])
    image_scale: float = DEFAULT_IMAGE_CONSTRAINTS["image_scale"]
    position_h: str = DEFAULT_IMAGE_CONSTRAINTS["position_h"]
    position_v: str = DEFAULT_IMAGE_CONSTRAINTS["position_v"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_mode": self.image_mode,
            "focal_point": self.focal_point,
            "max_file_size": self.max_file_size,
            "allowed_formats": list(self.allowed_formats),
            "image_scale": self.image_scale,
            "position_h": self.position_h,
            "position_v": self.position_v,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageSlotConstraints":
        known = cls.__dataclass_fields__
        values = {k: v for k, v in data.items() if k in known}
        if "allowed_formats" in values:
            values["allowed_formats"] = tuple(values["allowed_formats"])
        return cls(**values)


SlotConstraints = Union[TextSlotConstraints, ImageSlotConstraints]


@dataclass(frozen=True)
class SlotStyling:
    """Typography the end user cannot change."""
    font: FontConfig
    color: str
    alignment: str

    @property
    def font_size(self) -> float:
        """Designer's size at capture time."""
        return float(self.font.size)

    def to_dict(self) -> Dict[str, Any]:
        return {"font": self.font.to_dict(), "color": self.color, "alignment": self.alignment}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlotStyling":
        return cls(
            font=FontConfig.from_dict(data["font"]),
            color=data["color"],
            alignment=data.get("alignment", "center"),
        )


@dataclass(frozen=True)
class ContentSlot:
    """An editable region captured from a grid cell."""
    slot_id: str
    source_element_id: str
    source_content_id: str
    type: str  # text | image
    bounding_box: Rect
    constraints: SlotConstraints
    field_name: str
    field_label: str
    styling: Optional[SlotStyling] = None  # text slots only
    default_content: str = ""
    field_description: str = ""
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "source_element_id": self.source_element_id,
            "source_content_id": self.source_content_id,
            "type": self.type,
            "bounding_box": self.bounding_box.to_dict(),
            "constraints": self.constraints.to_dict(),
            "styling": self.styling.to_dict() if self.styling else None,
            "default_content": self.default_content,
            "field_name": self.field_name,
            "field_label": self.field_label,
            "field_description": self.field_description,
            "required": self.required,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentSlot":
        """Rebuild and validate a slot from its serialized form."""
        for key in ("type", "bounding_box", "constraints"):
            if data.get(key) is None:
                raise ValidationError(key, "missing required field")
        slot_type = data["type"]
        if slot_type == "text":
            constraints = TextSlotConstraints.from_dict(data["constraints"])
        elif slot_type == "image":
            constraints = ImageSlotConstraints.from_dict(data["constraints"])
        else:
            raise ValidationError("type", f"must be one of {SLOT_TYPES}, got {slot_type!r}")

        slot = cls(
            slot_id=data.get("slot_id", ""),
            source_element_id=data.get("source_element_id", ""),
            source_content_id=data.get("source_content_id", ""),
            type=slot_type,
            bounding_box=Rect.from_dict(data["bounding_box"]),
            constraints=constraints,
            styling=SlotStyling.from_dict(data["styling"]) if data.get("styling") else None,
            default_content=data.get("default_content", ""),
            field_name=data.get("field_name", ""),
            field_label=data.get("field_label", ""),
            field_description=data.get("field_description", ""),
            required=data.get("required", False),
        )
        validate_slot(slot)
        return slot


@dataclass
class SlotConfig:
    """Designer input when marking a cell editable."""
    field_name: str
    field_label: str
    field_description: str = ""
    required: bool = False
    constraints: Dict[str, Any] = field(default_factory=dict)  # overrides of the defaults


def validate_slot(slot: ContentSlot) -> None:
    """
    Check a slot's invariants.

    Raises:
        ValidationError: naming the first offending field
    """
    for name in ("slot_id", "source_element_id", "source_content_id", "type", "bounding_box", "constraints"):
        value = getattr(slot, name)
        if value is None or value == "":
            raise ValidationError(name, "missing required field")

    if slot.type not in SLOT_TYPES:
        raise ValidationError("type", f"must be one of {SLOT_TYPES}, got {slot.type!r}")

    if slot.type == "text":
        if not isinstance(slot.constraints, TextSlotConstraints):
            raise ValidationError("constraints", "text slot requires text constraints")
        if slot.styling is None:
            raise ValidationError("styling", "text slot requires locked styling")
        if slot.constraints.min_font_size > slot.constraints.max_font_size:
            raise ValidationError("constraints", "min_font_size exceeds max_font_size")
    elif not isinstance(slot.constraints, ImageSlotConstraints):
        raise ValidationError("constraints", "image slot requires image constraints")

    if slot.bounding_box.width <= 0 or slot.bounding_box.height <= 0:
        raise ValidationError("bounding_box", "width and height must be positive")

    if not slot.field_name or not slot.field_name.strip():
        raise ValidationError("field_name", "must not be empty")
    if not slot.field_label or not slot.field_label.strip():
        raise ValidationError("field_label", "must not be empty")


class ContentSlotManager:
    """Captures, validates and keeps the content slots of one page."""

    def __init__(self, flow: TextFlowEngine):
        self.flow = flow
        self._slots: List[ContentSlot] = []

    # Bounding box capture

    def capture_bounding_box(self, cell: GridCell) -> Rect:
        """
        Exact pixel box of what the cell draws.

        Text uses full-line boxes so no ascender or descender is cropped;
        media follows its fill mode, padding, position and rotation; empty
        cells use their bounds unchanged.
        """
        if cell.kind == CellKind.MAIN_TEXT:
            return self._capture_text_bounds(cell, cell.block)
        elif cell.kind == CellKind.CONTENT:
            if cell.content_type == ContentType.TEXT:
                return self._capture_text_bounds(cell, cell.text.to_block(cell.bounds))
            elif cell.content_type == ContentType.MEDIA:
                return self.capture_media_bounds(cell.bounds, cell.media)
            elif cell.content_type == ContentType.EMPTY:
                return cell.bounds
            raise ValueError(f"Unknown content type: {cell.content_type}")
        raise ValueError(f"Unknown cell kind: {cell.kind}")

    def _capture_text_bounds(self, cell: GridCell, block: TextBlockSpec) -> Rect:
        layout = self.flow.layout_block(block, BoxMode.FULL_LINE)
        bounds = layout.line_box_bounds
        if bounds is None:
            logger.debug(f"Cell {cell.id} has no visible text; using cell bounds")
            return cell.bounds
        return bounds

    @staticmethod
    def capture_media_bounds(bounds: Rect, media: MediaContent) -> Rect:
        """Box of a media item placed in ``bounds``."""
        area = bounds.inset(Padding.uniform(media.padding))
        natural_w = media.natural_width or area.width
        natural_h = media.natural_height or area.height
        area_size = (area.width, area.height)

        if media.fill_mode == "fit":
            width, height = LayoutAlgorithms.calculate_aspect_ratio((natural_w, natural_h), area_size)
            width *= media.scale
            height *= media.scale
        elif media.fill_mode == "fill":
            width, height = LayoutAlgorithms.cover_size((natural_w, natural_h), area_size)
        elif media.fill_mode == "stretch":
            width, height = area_size
        else:
            raise ValueError(f"Unknown fill mode: {media.fill_mode}")

        anchor = LayoutAlgorithms.position_anchor(area, width, height, media.position_h, media.position_v)
        box = LayoutAlgorithms.centered_rect(anchor, width, height)

        if media.fill_mode in ("fill", "stretch"):
            box = box.intersection(area) or box

        if media.rotation % 360 != 0:
            rotated_w, rotated_h = LayoutAlgorithms.rotated_size(box.width, box.height, media.rotation)
            box = LayoutAlgorithms.centered_rect(anchor, rotated_w, rotated_h)

        return box

    # Slot creation

    def current_font_size(self, cell: GridCell) -> float:
        """Designer's effective font size for a text cell."""
        if cell.kind == CellKind.MAIN_TEXT:
            return self.flow.resolve_font_size(cell.block)
        if cell.content_type == ContentType.TEXT:
            return self.flow.resolve_font_size(cell.text.to_block(cell.bounds))
        return float(DEFAULT_FONT_SIZE)

    @staticmethod
    def determine_slot_type(cell: GridCell) -> str:
        """``text`` for text cells; media and empty cells become image slots."""
        if cell.kind == CellKind.MAIN_TEXT:
            return "text"
        if cell.content_type == ContentType.TEXT:
            return "text"
        return "image"

    def build_constraints(self, cell: GridCell, slot_type: str, custom: Optional[Dict[str, Any]] = None) -> SlotConstraints:
        custom = custom or {}
        if slot_type == "text":
            size = self.current_font_size(cell)
            values = {
                "min_font_size": max(MIN_SLOT_FONT_SIZE, math.floor(size * 0.5)),
                "max_font_size": max(int(size), MAX_SLOT_FONT_SIZE),
            }
            values.update(custom)
            return TextSlotConstraints.from_dict(values)
        elif slot_type == "image":
            return ImageSlotConstraints.from_dict(custom)
        raise ValueError(f"Unsupported slot type: {slot_type}")

    def extract_styling(self, cell: GridCell) -> SlotStyling:
        size = self.current_font_size(cell)
        if cell.kind == CellKind.MAIN_TEXT:
            block = cell.block
            return SlotStyling(font=replace(block.font, size=size), color=block.color, alignment=block.alignment)
        text = cell.text
        return SlotStyling(font=replace(text.font, size=size), color=text.color, alignment=text.alignment)

    @staticmethod
    def extract_content(cell: GridCell) -> str:
        if cell.kind == CellKind.MAIN_TEXT:
            return cell.block.text
        if cell.content_type == ContentType.TEXT:
            return cell.text.text
        if cell.content_type == ContentType.MEDIA:
            return cell.media.url
        return ""

    def create_slot_from_cell(self, cell: GridCell, config: SlotConfig) -> ContentSlot:
        """
        Build a validated slot from a cell and the designer's configuration.

        Raises:
            ValidationError: if the resulting slot is malformed
        """
        slot_type = self.determine_slot_type(cell)
        slot = ContentSlot(
            slot_id=f"{cell.id}-slot",
            source_element_id=cell.id,
            source_content_id=cell.content_id,
            type=slot_type,
            bounding_box=self.capture_bounding_box(cell),
            constraints=self.build_constraints(cell, slot_type, config.constraints),
            styling=self.extract_styling(cell) if slot_type == "text" else None,
            default_content=self.extract_content(cell),
            field_name=config.field_name,
            field_label=config.field_label,
            field_description=config.field_description or "",
            required=config.required,
        )
        validate_slot(slot)
        logger.info(f"Created content slot: {slot.slot_id} ({slot.type})")
        return slot

    # Slot collection

    def add_slot(self, slot: ContentSlot) -> None:
        validate_slot(slot)
        if self.get_slot(slot.slot_id) is not None:
            raise ValidationError("slot_id", f"duplicate slot id {slot.slot_id!r}")
        self._slots.append(slot)

    def remove_slot(self, slot_id: str) -> bool:
        before = len(self._slots)
        self._slots = [s for s in self._slots if s.slot_id != slot_id]
        return len(self._slots) != before

    def clear_slots(self) -> None:
        self._slots = []

    def get_all_slots(self) -> List[ContentSlot]:
        return list(self._slots)

    def get_slot(self, slot_id: str) -> Optional[ContentSlot]:
        for slot in self._slots:
            if slot.slot_id == slot_id:
                return slot
        return None

    def update_slot(self, slot_id: str, **changes) -> ContentSlot:
        """
        Replace a stored slot with a changed copy.

        Raises:
            KeyError: if no slot has ``slot_id``
            ValidationError: if the changed slot is invalid (the stored slot
                is left untouched)
        """
        for index, slot in enumerate(self._slots):
            if slot.slot_id == slot_id:
                updated = replace(slot, **changes)
                validate_slot(updated)
                if updated.slot_id != slot_id and self.get_slot(updated.slot_id) is not None:
                    raise ValidationError("slot_id", f"duplicate slot id {updated.slot_id!r}")
                self._slots[index] = updated
                return updated
        raise KeyError(slot_id)

    @staticmethod
    def find_cell_for_slot(grid: GridSnapshot, slot: ContentSlot) -> Optional[GridCell]:
        """Current cell behind a slot, found by its stable content id."""
        return grid.find_by_content_id(slot.source_content_id)
