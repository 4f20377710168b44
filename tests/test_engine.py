"""
Unit tests for LayoutEngine, RenderScheduler and page loading.
"""

import json

import pytest
from PIL import Image

from slotcraft.constants import PLACEHOLDER_COLOR
from slotcraft.layout.engine import RenderScheduler, load_page_json
from slotcraft.layout.errors import ValidationError
from slotcraft.layout.models import FontConfig, Padding, Rect, TextBlockSpec, TextContent
from slotcraft.layout.slot_capture import SlotConfig

from conftest import FakeSurface


class TestDesignPass:
    """Tests for design_pass and capture_slot."""

    def test_design_when_text_empty_then_single_spot(self, engine):
        spec = TextBlockSpec(text="", container=Rect(0, 0, 1080, 1350))
        result = engine.design_pass((1080, 1350), spec, padding=Padding.uniform(20))

        assert result.layout.lines == []
        assert len(result.spots) == 1
        assert result.spots[0].rect == Rect(20, 20, 1040, 1310)

    def test_design_when_hello_then_spots_above_and_below(self, engine):
        spec = TextBlockSpec(text="HELLO", container=Rect(0, 0, 600, 600), font=FontConfig(size=48))
        result = engine.design_pass((600, 600), spec)
        assert len(result.spots) == 2
        assert result.grid.find_by_id("main-text-0") is not None

    def test_design_when_min_spot_size_from_registry_then_applied(self, engine):
        spec = TextBlockSpec(text="HELLO", container=Rect(0, 0, 600, 600), font=FontConfig(size=48))
        result = engine.design_pass((600, 600), spec, min_spot_size=300)
        assert result.spots == []

    def test_capture_when_cell_missing_then_key_error(self, engine, page):
        with pytest.raises(KeyError):
            engine.capture_slot(page.grid, "content-42", SlotConfig("x", "X"))

    def test_capture_when_same_cell_twice_then_duplicate_rejected(self, engine, page):
        with pytest.raises(ValidationError, match="duplicate"):
            engine.capture_slot(page.grid, "content-1", SlotConfig("photo", "Photo"))


class TestRenderPage:
    """Tests for render_page against a recording surface."""

    def test_render_when_defaults_then_background_and_slot_text(self, engine, page, surface):
        engine.render_page(page, surface=surface)

        assert surface.calls[0] == ("fill", Rect(0, 0, 600, 600), "#FFFFFF")
        texts = surface.calls_of("text")
        # main text is bound to a slot, so it is drawn once, by the slot
        assert [call[1] for call in texts] == ["HELLO"]
        assert texts[0][4] == 40

    def test_render_when_value_given_then_replaces_default(self, engine, page, surface):
        engine.render_page(page, values={"main-text-0-slot": "Hi"}, surface=surface)
        assert [call[1] for call in surface.calls_of("text")] == ["Hi"]

    def test_render_when_export_then_no_placeholders(self, engine, page, surface):
        engine.render_page(page, surface=surface)
        assert surface.calls_of("stroke") == []

    def test_render_when_preview_then_empty_image_slot_outlined(self, engine, page, surface):
        engine.render_page(page, surface=surface, show_placeholders=True)
        strokes = surface.calls_of("stroke")
        assert len(strokes) == 1
        assert strokes[0][2] == PLACEHOLDER_COLOR
        assert strokes[0][3] == (5, 5)

    def test_render_when_image_given_then_drawn_in_slot(self, engine, page, surface, decoded_media):
        engine.render_page(page, images={"content-1-slot": decoded_media}, surface=surface)
        images = surface.calls_of("image")
        assert len(images) == 1
        assert images[0][2] == page.get_slot("content-1-slot").bounding_box

    def test_render_when_unbound_text_cell_then_drawn_statically(self, engine, page, surface):
        cell = page.grid.find_by_id("content-2")
        page.grid = page.grid.with_cell(cell.with_text(TextContent("bye", font=FontConfig(size=20))))
        engine.render_page(page, surface=surface)
        assert [call[1] for call in surface.calls_of("text")] == ["bye", "HELLO"]

    def test_render_when_main_text_unbound_then_drawn_statically(self, engine, page, surface):
        page.content_slots = [page.get_slot("content-1-slot")]
        engine.render_page(page, surface=surface)
        texts = surface.calls_of("text")
        assert [call[1] for call in texts] == ["HELLO"]
        assert texts[0][4] == 48
        assert texts[0][3] == pytest.approx(316.8)

    def test_render_when_presentation_smaller_then_scaled(self, engine, page):
        small = FakeSurface(size=(300, 300))
        engine.render_page(page, surface=small)
        assert small.calls[0] == ("fill", Rect(0, 0, 300, 300), "#FFFFFF")
        assert small.calls_of("text")[0][4] == 20

    def test_render_when_background_image_then_covers_canvas(self, engine, page, surface, decoded_media):
        page.background = {"color": "#000000", "image_url": "bg.png"}
        engine.render_page(page, images={"bg.png": decoded_media}, surface=surface)
        assert surface.calls[1][0] == "image"
        assert surface.calls[1][2] == Rect(0, 0, 600, 600)

    def test_render_png_when_exported_then_file_written(self, registry, page, tmp_path):
        from slotcraft.layout.engine import LayoutEngine

        engine = LayoutEngine(registry)
        out = engine.render_page_png(page, tmp_path / "out" / "card.png", presentation_size=(300, 300))

        assert out.exists()
        with Image.open(out) as image:
            assert image.size == (300, 300)


class TestRenderScheduler:
    """Tests for the debounce scheduler."""

    def test_fire_when_quiet_period_not_passed_then_waits(self):
        now = [0.0]
        fired = []
        scheduler = RenderScheduler(300, clock=lambda: now[0])
        scheduler.schedule(lambda: fired.append(1))

        assert not scheduler.fire_if_due(0.2)
        assert scheduler.pending
        assert scheduler.fire_if_due(0.3)
        assert fired == [1]
        assert not scheduler.pending

    def test_schedule_when_repeated_then_restarts_and_keeps_latest(self):
        now = [0.0]
        fired = []
        scheduler = RenderScheduler(300, clock=lambda: now[0])
        scheduler.schedule(lambda: fired.append("first"))
        now[0] = 0.2
        scheduler.schedule(lambda: fired.append("second"))

        assert not scheduler.fire_if_due(0.4)
        assert scheduler.fire_if_due(0.5)
        assert fired == ["second"]

    def test_cancel_when_pending_then_nothing_runs(self):
        scheduler = RenderScheduler(300, clock=lambda: 0.0)
        scheduler.schedule(lambda: pytest.fail("cancelled callback ran"))
        scheduler.cancel()
        assert not scheduler.flush()


class TestLoadPage:
    """Tests for load_page_json."""

    def test_load_when_file_written_then_page_restored(self, page, tmp_path):
        path = tmp_path / "page.json"
        path.write_text(json.dumps(page.to_dict()), encoding="utf-8")
        assert load_page_json(path) == page

    def test_load_when_slot_invalid_then_raises(self, page, tmp_path):
        data = page.to_dict()
        data["content_slots"][0]["bounding_box"]["width"] = 0
        path = tmp_path / "page.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ValidationError):
            load_page_json(path)
