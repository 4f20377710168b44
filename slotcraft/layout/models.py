"""
Data models for the layout engine.

Defines the geometry values, font configuration, flowed lines, spots and
cell payloads shared by the flow engine, detector, grid builder and slot
capture.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from ..constants import DEFAULT_FONT_FAMILIES, DEFAULT_FONT_SIZE, DEFAULT_TEXT_COLOR

# Type aliases for clarity
Size = Tuple[int, int]  # (width, height) in pixels
Point = Tuple[float, float]  # (x, y) in pixels

HorizontalAlign = Literal["left", "center", "right"]
HorizontalPosition = Literal["left", "center", "right"]
VerticalPosition = Literal["top", "middle", "bottom"]


class BoxMode(Enum):
    """Height convention used when measuring a flowed line."""
    TYPOGRAPHIC = "typographic"  # cap-height / x-height, visually tight
    FULL_LINE = "full_line"  # ascent + descent, everything the glyphs can touch


class ContentType(Enum):
    """What a spot or content cell currently holds."""
    EMPTY = "empty"
    TEXT = "text"
    MEDIA = "media"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box in canvas pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def is_positive(self) -> bool:
        return self.width > 0 and self.height > 0

    def intersects(self, other: "Rect") -> bool:
        """True when the interiors overlap; shared edges do not count."""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.right, other.right)
        y2 = min(self.bottom, other.bottom)
        if x2 <= x1 or y2 <= y1:
            return None
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def union(self, other: "Rect") -> "Rect":
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.right, other.right)
        y2 = max(self.bottom, other.bottom)
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def inset(self, padding: "Padding") -> "Rect":
        """Shrink by padding on each side (may go non-positive)."""
        return Rect(
            self.x + padding.left,
            self.y + padding.top,
            self.width - padding.left - padding.right,
            self.height - padding.top - padding.bottom,
        )

    def scaled(self, sx: float, sy: float) -> "Rect":
        return Rect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        return cls(
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
        )


def union_all(rects: List[Rect]) -> Optional[Rect]:
    """Smallest rect covering every rect in the list."""
    result = None
    for rect in rects:
        result = rect if result is None else result.union(rect)
    return result


@dataclass(frozen=True)
class Padding:
    """Per-side inset in pixels."""

    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0

    @classmethod
    def uniform(cls, value: float) -> "Padding":
        return cls(value, value, value, value)

    def to_dict(self) -> Dict[str, float]:
        return {"top": self.top, "right": self.right, "bottom": self.bottom, "left": self.left}

    @classmethod
    def from_value(cls, value: Union[None, float, Dict[str, Any], "Padding"]) -> "Padding":
        """Accept a number, a per-side mapping or an existing Padding."""
        if value is None:
            return cls()
        if isinstance(value, Padding):
            return value
        if isinstance(value, dict):
            return cls(
                top=value.get("top", 0),
                right=value.get("right", 0),
                bottom=value.get("bottom", 0),
                left=value.get("left", 0),
            )
        return cls.uniform(value)


@dataclass(frozen=True)
class FontConfig:
    """Font selection and spacing for a text block."""

    family: Tuple[str, ...] = tuple(DEFAULT_FONT_FAMILIES)  # Priority-ordered font families
    size: Union[int, float, str] = DEFAULT_FONT_SIZE  # pixels, or "auto"
    weight: Literal["normal", "bold"] = "normal"
    style: Literal["normal", "italic"] = "normal"
    line_spacing: float = 0  # pixels between lines

    @property
    def is_auto(self) -> bool:
        return self.size == "auto"

    @property
    def primary_family(self) -> str:
        return self.family[0] if self.family else ""

    def cache_key(self, size: float) -> Tuple[str, float, str, str]:
        return (",".join(self.family), size, self.weight, self.style)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "family": list(self.family),
            "size": self.size,
            "weight": self.weight,
            "style": self.style,
            "line_spacing": self.line_spacing,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FontConfig":
        family = data.get("family", DEFAULT_FONT_FAMILIES)
        if isinstance(family, str):
            family = [part.strip() for part in family.split(",") if part.strip()]
        return cls(
            family=tuple(family),
            size=data.get("size", DEFAULT_FONT_SIZE),
            weight=data.get("weight", "normal"),
            style=data.get("style", "normal"),
            line_spacing=data.get("line_spacing", 0),
        )


@dataclass(frozen=True)
class TextMetrics:
    """Vertical metrics of a font at one size, in pixels."""

    font_size: float
    ascent: float
    descent: float
    cap_height: float
    x_height: float

    @property
    def full_line_height(self) -> float:
        return self.ascent + self.descent


@dataclass(frozen=True)
class Line:
    """A single physical (or collapsed logical) line after flow.

    ``box`` uses the height convention of the layout mode; ``line_box`` always
    spans ascent + descent around the baseline.
    """

    text: str
    index: int
    alignment: HorizontalAlign = "center"
    anchor: Point = (0.0, 0.0)
    box: Optional[Rect] = None
    line_box: Optional[Rect] = None
    baseline: float = 0.0
    font_size: float = 0.0


@dataclass(frozen=True)
class Spot:
    """An empty rectangle discovered around flowed text."""

    id: int
    rect: Rect
    row: int
    column: int
    content_type: ContentType = ContentType.EMPTY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rect": self.rect.to_dict(),
            "row": self.row,
            "column": self.column,
            "content_type": self.content_type.value,
        }


@dataclass(frozen=True)
class TextBlockSpec:
    """The designer's main text block and how it sits in its container."""

    text: str
    container: Rect
    font: FontConfig = field(default_factory=FontConfig)
    color: str = DEFAULT_TEXT_COLOR
    alignment: HorizontalAlign = "center"
    line_alignments: Tuple[Tuple[int, HorizontalAlign], ...] = ()  # (line index, alignment) overrides
    position_h: HorizontalPosition = "center"
    position_v: VerticalPosition = "middle"
    padding: Padding = field(default_factory=Padding)
    wrap: bool = True

    def alignment_for(self, line_index: int) -> HorizontalAlign:
        for index, align in self.line_alignments:
            if index == line_index:
                return align
        return self.alignment

    def with_changes(self, **changes) -> "TextBlockSpec":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "container": self.container.to_dict(),
            "font": self.font.to_dict(),
            "color": self.color,
            "alignment": self.alignment,
            "line_alignments": {str(index): align for index, align in self.line_alignments},
            "position_h": self.position_h,
            "position_v": self.position_v,
            "padding": self.padding.to_dict(),
            "wrap": self.wrap,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextBlockSpec":
        overrides = data.get("line_alignments") or {}
        return cls(
            text=data.get("text", ""),
            container=Rect.from_dict(data["container"]),
            font=FontConfig.from_dict(data.get("font", {})),
            color=data.get("color", DEFAULT_TEXT_COLOR),
            alignment=data.get("alignment", "center"),
            line_alignments=tuple(sorted((int(k), v) for k, v in overrides.items())),
            position_h=data.get("position_h", "center"),
            position_v=data.get("position_v", "middle"),
            padding=Padding.from_value(data.get("padding")),
            wrap=data.get("wrap", True),
        )


@dataclass(frozen=True)
class TextContent:
    """Text placed into a content cell."""

    text: str
    font: FontConfig = field(default_factory=FontConfig)
    color: str = DEFAULT_TEXT_COLOR
    alignment: HorizontalAlign = "center"
    padding: float = 0
    position_h: HorizontalPosition = "center"
    position_v: VerticalPosition = "middle"

    def to_block(self, bounds: Rect) -> TextBlockSpec:
        """Flow spec for this text inside the given cell bounds."""
        return TextBlockSpec(
            text=self.text,
            container=bounds,
            font=self.font,
            color=self.color,
            alignment=self.alignment,
            position_h=self.position_h,
            position_v=self.position_v,
            padding=Padding.uniform(self.padding),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "font": self.font.to_dict(),
            "color": self.color,
            "alignment": self.alignment,
            "padding": self.padding,
            "position_h": self.position_h,
            "position_v": self.position_v,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextContent":
        return cls(
            text=data.get("text", ""),
            font=FontConfig.from_dict(data.get("font", {})),
            color=data.get("color", DEFAULT_TEXT_COLOR),
            alignment=data.get("alignment", "center"),
            padding=data.get("padding", 0),
            position_h=data.get("position_h", "center"),
            position_v=data.get("position_v", "middle"),
        )


@dataclass(frozen=True)
class MediaContent:
    """Image or video placed into a content cell."""

    url: str
    media_type: Literal["image", "video"] = "image"
    natural_width: Optional[float] = None
    natural_height: Optional[float] = None
    fill_mode: Literal["fit", "fill", "stretch"] = "fit"
    scale: float = 1.0
    rotation: float = 0.0  # degrees
    padding: float = 0
    position_h: HorizontalPosition = "center"
    position_v: VerticalPosition = "middle"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "media_type": self.media_type,
            "natural_width": self.natural_width,
            "natural_height": self.natural_height,
            "fill_mode": self.fill_mode,
            "scale": self.scale,
            "rotation": self.rotation,
            "padding": self.padding,
            "position_h": self.position_h,
            "position_v": self.position_v,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaContent":
        return cls(
            url=data["url"],
            media_type=data.get("media_type", "image"),
            natural_width=data.get("natural_width"),
            natural_height=data.get("natural_height"),
            fill_mode=data.get("fill_mode", "fit"),
            scale=data.get("scale", 1.0),
            rotation=data.get("rotation", 0.0),
            padding=data.get("padding", 0),
            position_h=data.get("position_h", "center"),
            position_v=data.get("position_v", "middle"),
        )
