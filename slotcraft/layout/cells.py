"""
Grid cells.

A cell is either the main text (one per flowed line) or a content cell
created from a spot. The kind and content type are explicit discriminants
fixed at construction; the payload must agree with them.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError
from .models import ContentType, MediaContent, Rect, TextBlockSpec, TextContent


class CellKind(Enum):
    MAIN_TEXT = "main-text"
    CONTENT = "content"


@dataclass(frozen=True)
class GridCell:
    """One region of the layout grid."""

    id: str
    kind: CellKind
    content_type: ContentType
    bounds: Rect
    row: int
    column: int
    content_id: str
    line_text: Optional[str] = None
    line_index: Optional[int] = None
    block: Optional[TextBlockSpec] = None
    text: Optional[TextContent] = None
    media: Optional[MediaContent] = None

    def __post_init__(self) -> None:
        """Reject payloads that disagree with the discriminants."""
        if self.kind == CellKind.MAIN_TEXT:
            if self.content_type != ContentType.TEXT:
                raise ValidationError("content_type", "main-text cells always hold text")
            if self.block is None:
                raise ValidationError("block", "main-text cell requires its text block")
            if self.line_index is None:
                raise ValidationError("line_index", "main-text cell requires a line index")
            if self.text is not None or self.media is not None:
                raise ValidationError("content", "main-text cell cannot carry content payloads")
        elif self.kind == CellKind.CONTENT:
            if self.block is not None:
                raise ValidationError("block", "content cells do not own the main text block")
            if self.content_type == ContentType.EMPTY:
                if self.text is not None or self.media is not None:
                    raise ValidationError("content", "empty cell cannot carry a payload")
            elif self.content_type == ContentType.TEXT:
                if self.text is None or self.media is not None:
                    raise ValidationError("text", "text cell requires text content only")
            elif self.content_type == ContentType.MEDIA:
                if self.media is None or self.text is not None:
                    raise ValidationError("media", "media cell requires media content only")
            else:
                raise ValidationError("content_type", f"unknown content type {self.content_type!r}")
        else:
            raise ValidationError("kind", f"unknown cell kind {self.kind!r}")

    @classmethod
    def main_text(
        cls,
        line_index: int,
        line_text: str,
        bounds: Rect,
        block: TextBlockSpec,
        row: int,
        column: int = 1,
    ) -> "GridCell":
        return cls(
            id=f"main-text-{line_index}",
            kind=CellKind.MAIN_TEXT,
            content_type=ContentType.TEXT,
            bounds=bounds,
            row=row,
            column=column,
            content_id=f"main-text-line-{line_index}",
            line_text=line_text,
            line_index=line_index,
            block=block,
        )

    @classmethod
    def content(
        cls,
        cell_id: str,
        bounds: Rect,
        row: int,
        column: int,
        content_id: str,
        text: Optional[TextContent] = None,
        media: Optional[MediaContent] = None,
    ) -> "GridCell":
        if text is not None:
            content_type = ContentType.TEXT
        elif media is not None:
            content_type = ContentType.MEDIA
        else:
            content_type = ContentType.EMPTY
        return cls(
            id=cell_id,
            kind=CellKind.CONTENT,
            content_type=content_type,
            bounds=bounds,
            row=row,
            column=column,
            content_id=content_id,
            text=text,
            media=media,
        )

    @property
    def is_main_text(self) -> bool:
        return self.kind == CellKind.MAIN_TEXT

    def with_changes(self, **changes) -> "GridCell":
        """Snapshot in, changed fields, validated snapshot out."""
        return replace(self, **changes)

    def with_text(self, text: TextContent) -> "GridCell":
        return self.with_changes(content_type=ContentType.TEXT, text=text, media=None)

    def with_media(self, media: MediaContent) -> "GridCell":
        return self.with_changes(content_type=ContentType.MEDIA, media=media, text=None)

    def cleared(self) -> "GridCell":
        return self.with_changes(content_type=ContentType.EMPTY, text=None, media=None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "content_type": self.content_type.value,
            "bounds": self.bounds.to_dict(),
            "row": self.row,
            "column": self.column,
            "content_id": self.content_id,
        }
        if self.kind == CellKind.MAIN_TEXT:
            data["line_text"] = self.line_text
            data["line_index"] = self.line_index
        if self.text is not None:
            data["text"] = self.text.to_dict()
        if self.media is not None:
            data["media"] = self.media.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], block: Optional[TextBlockSpec] = None) -> "GridCell":
        """Rebuild a cell; main-text cells need the page's main text block."""
        kind = CellKind(data["kind"])
        return cls(
            id=data["id"],
            kind=kind,
            content_type=ContentType(data["content_type"]),
            bounds=Rect.from_dict(data["bounds"]),
            row=data["row"],
            column=data["column"],
            content_id=data["content_id"],
            line_text=data.get("line_text"),
            line_index=data.get("line_index"),
            block=block if kind == CellKind.MAIN_TEXT else None,
            text=TextContent.from_dict(data["text"]) if data.get("text") else None,
            media=MediaContent.from_dict(data["media"]) if data.get("media") else None,
        )
