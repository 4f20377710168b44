"""
Multi-page presets.

A preset holds up to five pages addressed by position (page1..page5). Each
page is stored as a JSON string so one field can be replaced without
touching the others.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import jsonschema
import requests

from ..constants import DEFAULT_EXPORT_CONFIG, HTTP_TIMEOUT, MAX_PAGE_SIZE, MAX_PAGES
from ..logging_config import LogManager
from .errors import PersistenceError, ValidationError
from .grid_builder import GridSnapshot
from .models import Size, TextBlockSpec
from .slot_capture import ContentSlot

if TYPE_CHECKING:
    from ..registry import Registry

logger = LogManager().get_logger("layout.presets")

PAGE_FIELDS = tuple(f"page{n}" for n in range(1, MAX_PAGES + 1))

RECT_SCHEMA = {
    "type": "object",
    "required": ["x", "y", "width", "height"],
    "properties": {
        "x": {"type": "number"},
        "y": {"type": "number"},
        "width": {"type": "number"},
        "height": {"type": "number"},
    },
}

PAGE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["page_name", "page_number", "canvas", "background", "main_text", "content_slots"],
    "properties": {
        "page_name": {"type": "string", "minLength": 1},
        "page_number": {"type": "integer", "minimum": 1, "maximum": MAX_PAGES},
        "canvas": {
            "type": "object",
            "required": ["width", "height"],
            "properties": {
                "width": {"type": "number", "exclusiveMinimum": 0},
                "height": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "background": {
            "type": "object",
            "properties": {
                "color": {"type": "string"},
                "image_url": {"type": ["string", "null"]},
            },
        },
        "main_text": {
            "type": "object",
            "required": ["text", "container"],
            "properties": {"text": {"type": "string"}, "container": RECT_SCHEMA},
        },
        "grid": {"type": ["object", "null"]},
        "content_slots": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["slot_id", "type", "bounding_box", "field_name", "field_label"],
                "properties": {
                    "type": {"enum": ["text", "image"]},
                    "bounding_box": RECT_SCHEMA,
                },
            },
        },
        "export_config": {
            "type": "object",
            "properties": {
                "format": {"enum": ["image", "video"]},
                "image_format": {"type": "string"},
                "video_duration": {"type": ["number", "null"]},
                "fps": {"type": "integer"},
            },
        },
    },
}


def check_unique_slot_ids(slots: List[ContentSlot]) -> None:
    """Raise ValidationError if two slots share a slot id."""
    seen = set()
    for slot in slots:
        if slot.slot_id in seen:
            raise ValidationError("content_slots", f"duplicate slot id {slot.slot_id!r}")
        seen.add(slot.slot_id)


@dataclass
class Page:
    """One designed page: canvas, main text, grid and editable slots."""
    page_name: str
    page_number: int
    canvas: Size
    main_text: TextBlockSpec
    background: Dict[str, Any] = field(default_factory=lambda: {"color": "#FFFFFF", "image_url": None})
    grid: Optional[GridSnapshot] = None
    content_slots: List[ContentSlot] = field(default_factory=list)
    export_config: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_EXPORT_CONFIG))

    def get_slot(self, slot_id: str) -> Optional[ContentSlot]:
        for slot in self.content_slots:
            if slot.slot_id == slot_id:
                return slot
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_name": self.page_name,
            "page_number": self.page_number,
            "canvas": {"width": self.canvas[0], "height": self.canvas[1]},
            "background": dict(self.background),
            "main_text": self.main_text.to_dict(),
            "grid": self.grid.to_dict() if self.grid is not None else None,
            "content_slots": [slot.to_dict() for slot in self.content_slots],
            "export_config": dict(self.export_config),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        """
        Rebuild a page. Slots are validated as they load.

        Raises:
            ValidationError: if a required section is missing or a slot is invalid
        """
        for key in ("canvas", "main_text"):
            if not data.get(key):
                raise ValidationError(key, "missing required field")
        main_text = TextBlockSpec.from_dict(data["main_text"])
        grid_data = data.get("grid")
        export_config = dict(DEFAULT_EXPORT_CONFIG)
        export_config.update(data.get("export_config") or {})
        content_slots = [ContentSlot.from_dict(s) for s in data.get("content_slots", [])]
        check_unique_slot_ids(content_slots)
        return cls(
            page_name=data.get("page_name", ""),
            page_number=int(data.get("page_number", 1)),
            canvas=(data["canvas"]["width"], data["canvas"]["height"]),
            background=data.get("background") or {"color": "#FFFFFF", "image_url": None},
            main_text=main_text,
            grid=GridSnapshot.from_dict(grid_data, main_text) if grid_data else None,
            content_slots=content_slots,
            export_config=export_config,
        )

    @classmethod
    def from_json(cls, text: str) -> "Page":
        return cls.from_dict(json.loads(text))


# Stores

class PresetStore(ABC):
    """Where preset records live."""

    @abstractmethod
    def save(self, record: Dict[str, Any]) -> str:
        """Create a record and return its id."""
        pass

    @abstractmethod
    def load(self, preset_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a record, or None if it does not exist."""
        pass

    @abstractmethod
    def update(self, preset_id: str, fields: Dict[str, Any]) -> None:
        """Replace only the given fields of a record."""
        pass

    @abstractmethod
    def list(self) -> List[Dict[str, Any]]:
        """Summaries of every record."""
        pass


class InMemoryPresetStore(PresetStore):
    """Dict-backed store for tests and offline use."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []  # every update payload, in order
        self._next_id = 1

    def save(self, record: Dict[str, Any]) -> str:
        preset_id = f"preset-{self._next_id}"
        self._next_id += 1
        self.records[preset_id] = dict(record, _id=preset_id)
        return preset_id

    def load(self, preset_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(preset_id)
        return dict(record) if record is not None else None

    def update(self, preset_id: str, fields: Dict[str, Any]) -> None:
        if preset_id not in self.records:
            raise PersistenceError(f"Preset not found: {preset_id}", status_code=404)
        self.updates.append(dict(fields))
        self.records[preset_id].update(fields)

    def list(self) -> List[Dict[str, Any]]:
        return [dict(record) for record in self.records.values()]


class HttpPresetStore(PresetStore):
    """
    Preset store behind a JSON HTTP API.

    Endpoints (relative to ``base_url``):
    - ``POST /presets`` creates a record and returns ``{"_id": ...}``
    - ``GET /presets/<id>`` fetches one record
    - ``PATCH /presets/<id>`` replaces the posted fields
    - ``GET /presets`` lists records
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        if api_token:
            self.session.headers.update({"Authorization": f"Bearer {api_token}"})
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Optional[requests.Response]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if response.status_code == 404 and method == "GET":
                return None
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise PersistenceError(f"{method} {url} failed: {e}", status_code=status) from e

    @staticmethod
    def _json(response: requests.Response, expected, what: str) -> Any:
        try:
            body = response.json()
        except ValueError as e:
            raise PersistenceError(f"Preset store returned invalid JSON for {what}: {e}") from e
        if not isinstance(body, expected):
            raise PersistenceError(f"Preset store returned unexpected {type(body).__name__} for {what}")
        return body

    def save(self, record: Dict[str, Any]) -> str:
        response = self._request("POST", "/presets", json=record)
        body = self._json(response, dict, "new preset")
        preset_id = body.get("_id") or body.get("id")
        if not preset_id:
            raise PersistenceError("Preset store did not return an id")
        return str(preset_id)

    def load(self, preset_id: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", f"/presets/{preset_id}")
        return self._json(response, dict, f"preset {preset_id}") if response is not None else None

    def update(self, preset_id: str, fields: Dict[str, Any]) -> None:
        self._request("PATCH", f"/presets/{preset_id}", json=fields)

    def list(self) -> List[Dict[str, Any]]:
        response = self._request("GET", "/presets")
        if response is None:
            return []
        body = self._json(response, (dict, list), "preset list")
        items = body.get("items", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise PersistenceError("Preset store returned unexpected items for preset list")
        return items


# Manager

class PresetPageManager:
    """Validates pages and saves, adds and loads them by preset position."""

    def __init__(self, store: PresetStore, max_page_size: int = MAX_PAGE_SIZE):
        self.store = store
        self.max_page_size = max_page_size

    @classmethod
    def for_registry(cls, store: PresetStore, registry: "Registry") -> "PresetPageManager":
        """Manager using the registry's page size ceiling."""
        return cls(store, max_page_size=registry.defaults.max_page_size)

    def validate_page(self, page: Page) -> str:
        """
        Check a page before it is persisted.

        Returns:
            The serialized page JSON

        Raises:
            ValidationError: missing name, page number out of range, no
                content slots, duplicate slot ids or schema violations
            PersistenceError: serialized page exceeds the size ceiling
        """
        if not page.page_name or not page.page_name.strip():
            raise ValidationError("page_name", "page name is required")
        if not 1 <= page.page_number <= MAX_PAGES:
            raise ValidationError("page_number", f"page number must be between 1 and {MAX_PAGES}")
        if not page.content_slots:
            raise ValidationError(
                "content_slots",
                "at least one content slot is required; unlock a cell to create one before saving",
            )
        check_unique_slot_ids(page.content_slots)

        data = page.to_dict()
        try:
            jsonschema.validate(instance=data, schema=PAGE_SCHEMA)
        except jsonschema.ValidationError as e:
            path = ".".join(str(p) for p in e.absolute_path) or "page"
            raise ValidationError(path, f"schema validation failed: {e.message}") from e

        payload = json.dumps(data)
        size = len(payload.encode("utf-8"))
        if size > self.max_page_size:
            raise PersistenceError(
                f"Page data exceeds maximum size ({self.max_page_size / 1000:g}KB). "
                f"Current: {size / 1000:.1f}KB"
            )
        return payload

    @staticmethod
    def _field(page_number: int) -> str:
        if not 1 <= page_number <= MAX_PAGES:
            raise ValidationError("page_number", f"page number must be between 1 and {MAX_PAGES}")
        return f"page{page_number}"

    def save_to_new_preset(self, preset_name: str, page: Page, page_number: int = 1) -> str:
        """Create a preset holding ``page`` at ``page_number``; returns its id."""
        page.page_number = page_number
        payload = self.validate_page(page)
        record: Dict[str, Any] = {"presetName": preset_name, "description": ""}
        for name in PAGE_FIELDS:
            record[name] = None
        record[self._field(page_number)] = payload

        preset_id = self.store.save(record)
        logger.info(f"Saved page {page_number} to new preset: {preset_name} (ID: {preset_id})")
        return preset_id

    def add_page_to_existing_preset(self, preset_id: str, page: Page, page_number: int) -> None:
        """Write ``page`` into one position of an existing preset."""
        page.page_number = page_number
        payload = self.validate_page(page)
        preset = self.store.load(preset_id)
        if preset is None:
            raise PersistenceError(f"Preset not found: {preset_id}", status_code=404)

        # Only the changed page field goes to the store
        self.store.update(preset_id, {self._field(page_number): payload})
        logger.info(f"Added page {page_number} to preset: {preset.get('presetName')} (ID: {preset_id})")

    def load_page(self, preset_id: str, page_number: int) -> Page:
        preset = self.store.load(preset_id)
        if preset is None:
            raise PersistenceError(f"Preset not found: {preset_id}", status_code=404)
        payload = preset.get(self._field(page_number))
        if not payload:
            raise PersistenceError(f"Page {page_number} does not exist in preset: {preset.get('presetName')}")

        page = Page.from_json(payload) if isinstance(payload, str) else Page.from_dict(payload)
        logger.info(f"Loaded page {page_number} from preset: {preset.get('presetName')}")
        return page

    def list_presets(self) -> List[Dict[str, Any]]:
        """Preset summaries with the positions that hold a page."""
        summaries = []
        for preset in self.store.list():
            pages = [n for n, name in enumerate(PAGE_FIELDS, start=1) if preset.get(name)]
            summaries.append({
                "preset_id": preset.get("_id") or preset.get("id"),
                "preset_name": preset.get("presetName"),
                "description": preset.get("description", ""),
                "pages": pages,
                "page_count": len(pages),
            })
        return summaries
