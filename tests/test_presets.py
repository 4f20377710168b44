"""
Unit tests for pages, preset stores and PresetPageManager.
"""

import json
from dataclasses import replace

import pytest

from slotcraft.layout.errors import PersistenceError, ValidationError
from slotcraft.layout.presets import HttpPresetStore, InMemoryPresetStore, Page, PresetPageManager

from conftest import StubResponse, StubSession


@pytest.fixture
def store():
    return InMemoryPresetStore()


@pytest.fixture
def manager(store):
    return PresetPageManager(store)


class TestPage:
    """Tests for Page serialization."""

    def test_round_trip_when_serialized_then_equal(self, page):
        assert Page.from_json(page.to_json()) == page

    def test_from_dict_when_canvas_missing_then_raises(self, page):
        data = page.to_dict()
        del data["canvas"]
        with pytest.raises(ValidationError) as excinfo:
            Page.from_dict(data)
        assert excinfo.value.field == "canvas"

    def test_from_dict_when_slot_invalid_then_raises(self, page):
        data = page.to_dict()
        data["content_slots"][0]["field_label"] = ""
        with pytest.raises(ValidationError, match="field_label"):
            Page.from_dict(data)

    def test_from_dict_when_slot_ids_repeat_then_raises(self, page):
        data = page.to_dict()
        data["content_slots"].append(dict(data["content_slots"][0]))
        with pytest.raises(ValidationError, match="duplicate slot id 'main-text-0-slot'"):
            Page.from_dict(data)

    def test_get_slot(self, page):
        assert page.get_slot("content-1-slot").type == "image"
        assert page.get_slot("missing") is None


class TestValidation:
    """Tests for validate_page."""

    def test_validate_when_no_slots_then_raises(self, manager, page):
        page.content_slots = []
        with pytest.raises(ValidationError, match="at least one content slot"):
            manager.validate_page(page)

    def test_validate_when_slot_ids_repeat_then_raises(self, manager, store, page):
        page.content_slots = page.content_slots + [page.content_slots[0]]
        with pytest.raises(ValidationError) as excinfo:
            manager.save_to_new_preset("Deck", page)
        assert excinfo.value.field == "content_slots"
        assert store.records == {}

    def test_validate_when_name_blank_then_raises(self, manager, page):
        page.page_name = "  "
        with pytest.raises(ValidationError) as excinfo:
            manager.validate_page(page)
        assert excinfo.value.field == "page_name"

    def test_validate_when_page_number_out_of_range_then_raises(self, manager, page):
        page.page_number = 6
        with pytest.raises(ValidationError, match="between 1 and 5"):
            manager.validate_page(page)

    def test_validate_when_canvas_not_positive_then_schema_error(self, manager, page):
        page.canvas = (0, 600)
        with pytest.raises(ValidationError) as excinfo:
            manager.validate_page(page)
        assert excinfo.value.field == "canvas.width"

    def test_validate_when_too_large_then_persistence_error(self, store, page):
        manager = PresetPageManager(store, max_page_size=100)
        with pytest.raises(PersistenceError, match=r"exceeds maximum size \(0.1KB\). Current: \d+\.\dKB"):
            manager.validate_page(page)

    def test_manager_when_built_for_registry_then_uses_registry_ceiling(self, store, registry, page):
        registry.defaults = replace(registry.defaults, max_page_size=100)
        manager = PresetPageManager.for_registry(store, registry)
        assert manager.max_page_size == 100
        with pytest.raises(PersistenceError, match="exceeds maximum size"):
            manager.validate_page(page)

    def test_validate_when_valid_then_returns_json(self, manager, page):
        payload = manager.validate_page(page)
        assert json.loads(payload)["page_name"] == "Card"


class TestPresetPages:
    """Tests for saving, adding and loading pages."""

    def test_save_when_new_preset_then_only_one_page_set(self, manager, store, page):
        preset_id = manager.save_to_new_preset("Spring", page, page_number=1)
        record = store.records[preset_id]

        assert record["presetName"] == "Spring"
        assert isinstance(record["page1"], str)
        assert [record[f"page{n}"] for n in range(2, 6)] == [None] * 4

    def test_add_when_existing_preset_then_only_that_field_sent(self, manager, store, page):
        preset_id = manager.save_to_new_preset("Spring", page)
        second = replace(page, page_name="Back")
        manager.add_page_to_existing_preset(preset_id, second, 2)

        assert len(store.updates) == 1
        assert list(store.updates[0]) == ["page2"]
        assert json.loads(store.records[preset_id]["page1"])["page_name"] == "Card"

    def test_add_when_preset_missing_then_raises(self, manager, page):
        with pytest.raises(PersistenceError, match="Preset not found"):
            manager.add_page_to_existing_preset("preset-99", page, 2)

    def test_load_when_saved_then_same_page(self, manager, page):
        preset_id = manager.save_to_new_preset("Spring", page)
        assert manager.load_page(preset_id, 1) == page

    def test_load_when_position_empty_then_raises(self, manager, page):
        preset_id = manager.save_to_new_preset("Spring", page)
        with pytest.raises(PersistenceError, match="Page 3 does not exist"):
            manager.load_page(preset_id, 3)

    def test_list_when_two_pages_then_summary_counts_them(self, manager, page):
        preset_id = manager.save_to_new_preset("Spring", page)
        manager.add_page_to_existing_preset(preset_id, replace(page, page_name="Back"), 3)

        summaries = manager.list_presets()
        assert summaries == [{
            "preset_id": preset_id,
            "preset_name": "Spring",
            "description": "",
            "pages": [1, 3],
            "page_count": 2,
        }]


class TestHttpPresetStore:
    """Tests for HttpPresetStore against a stubbed session."""

    def test_save_when_created_then_returns_id(self):
        session = StubSession([StubResponse(201, {"_id": "abc"})])
        store = HttpPresetStore("https://api.example.com/", api_token="t0k", session=session)

        assert store.save({"presetName": "Spring"}) == "abc"
        method, url, kwargs = session.calls[0]
        assert (method, url) == ("POST", "https://api.example.com/presets")
        assert kwargs["json"] == {"presetName": "Spring"}
        assert session.headers["Authorization"] == "Bearer t0k"

    def test_load_when_not_found_then_none(self):
        store = HttpPresetStore("https://api.example.com", session=StubSession([StubResponse(404)]))
        assert store.load("nope") is None

    def test_update_when_server_error_then_persistence_error(self):
        store = HttpPresetStore("https://api.example.com", session=StubSession([StubResponse(500)]))
        with pytest.raises(PersistenceError) as excinfo:
            store.update("abc", {"page2": "{}"})
        assert excinfo.value.status_code == 500

    def test_update_when_sent_then_patch_with_fields(self):
        session = StubSession([StubResponse(200, {})])
        HttpPresetStore("https://api.example.com", session=session).update("abc", {"page2": "{}"})
        method, url, kwargs = session.calls[0]
        assert (method, url, kwargs["json"]) == ("PATCH", "https://api.example.com/presets/abc", {"page2": "{}"})

    def test_list_when_wrapped_in_items_then_unwrapped(self):
        session = StubSession([StubResponse(200, {"items": [{"_id": "abc"}]})])
        assert HttpPresetStore("https://api.example.com", session=session).list() == [{"_id": "abc"}]

    def test_save_when_reply_not_json_then_persistence_error(self):
        store = HttpPresetStore("https://api.example.com", session=StubSession([StubResponse(201)]))
        with pytest.raises(PersistenceError, match="invalid JSON"):
            store.save({"presetName": "Spring"})

    def test_save_when_reply_is_list_then_persistence_error(self):
        session = StubSession([StubResponse(201, [{"_id": "abc"}])])
        with pytest.raises(PersistenceError, match="unexpected list"):
            HttpPresetStore("https://api.example.com", session=session).save({"presetName": "Spring"})

    def test_load_when_reply_not_json_then_persistence_error(self):
        store = HttpPresetStore("https://api.example.com", session=StubSession([StubResponse(200)]))
        with pytest.raises(PersistenceError, match="invalid JSON"):
            store.load("abc")

    def test_list_when_reply_is_string_then_persistence_error(self):
        session = StubSession([StubResponse(200, "oops")])
        with pytest.raises(PersistenceError, match="unexpected str"):
            HttpPresetStore("https://api.example.com", session=session).list()

    def test_request_when_unreachable_then_persistence_error(self):
        store = HttpPresetStore("https://api.example.com", session=StubSession())
        with pytest.raises(PersistenceError) as excinfo:
            store.load("abc")
        assert excinfo.value.status_code is None
