"""
Unit tests for ContentSlotRenderer.
"""

import pytest

from slotcraft.constants import PLACEHOLDER_COLOR
from slotcraft.layout.models import FontConfig, Rect
from slotcraft.layout.slot_capture import ContentSlot, ImageSlotConstraints, SlotStyling, TextSlotConstraints
from slotcraft.layout.slot_renderer import ContentSlotRenderer


def text_slot(box=Rect(0, 0, 200, 96), **constraint_values):
    values = {"min_font_size": 16, "max_font_size": 72}
    values.update(constraint_values)
    return ContentSlot(
        slot_id="main-text-0-slot",
        source_element_id="main-text-0",
        source_content_id="main-text-line-0",
        type="text",
        bounding_box=box,
        constraints=TextSlotConstraints(**values),
        styling=SlotStyling(font=FontConfig(size=48), color="#112233", alignment="center"),
        field_name="headline",
        field_label="Headline",
    )


def image_slot(box=Rect(0, 0, 400, 300), **constraint_values):
    return ContentSlot(
        slot_id="content-1-slot",
        source_element_id="content-1",
        source_content_id="abc",
        type="image",
        bounding_box=box,
        constraints=ImageSlotConstraints(**constraint_values),
        field_name="photo",
        field_label="Photo",
    )


@pytest.fixture
def renderer(surface, flow):
    return ContentSlotRenderer(surface, flow, reference_size=(600, 600))


class TestAutoFit:
    """Tests for find_optimal_font_size."""

    def test_fit_when_designer_size_overflows_then_largest_fitting_size(self, renderer):
        slot = text_slot()
        result = renderer.find_optimal_font_size(
            "AAAA BBBB CCCC", slot.bounding_box, slot.styling.font, slot.constraints, 48
        )
        # 40px: two lines of 48px each fill the 96px box exactly; 41px overflows
        assert result.font_size == 40
        assert result.fits

    def test_fit_when_designer_size_fits_then_kept(self, renderer):
        slot = text_slot()
        result = renderer.find_optimal_font_size("Hi", slot.bounding_box, slot.styling.font, slot.constraints, 48)
        assert result.font_size == 48
        assert result.fits

    def test_fit_when_nothing_fits_then_minimum_and_not_fits(self, renderer):
        slot = text_slot(box=Rect(0, 0, 200, 10))
        result = renderer.find_optimal_font_size("Hi", slot.bounding_box, slot.styling.font, slot.constraints, 48)
        assert result.font_size == 16
        assert not result.fits

    def test_fit_when_fixed_mode_then_designer_size_even_if_overflowing(self, renderer):
        slot = text_slot(font_size_mode="fixed")
        result = renderer.find_optimal_font_size(
            "AAAA BBBB CCCC", slot.bounding_box, slot.styling.font, slot.constraints, 48
        )
        assert result.font_size == 48
        assert not result.fits

    def test_text_fits_when_checked_twice_then_cached(self, renderer, monkeypatch):
        font = FontConfig(size=48)
        assert renderer.text_fits("Hi", Rect(0, 0, 200, 96), 40, font, 1.2)

        def fail(*args, **kwargs):
            raise AssertionError("wrap called for a cached fit")

        monkeypatch.setattr(renderer.flow, "wrap", fail)
        assert renderer.text_fits("Hi", Rect(0, 0, 200, 96), 40, font, 1.2)
        renderer.clear_cache()
        with pytest.raises(AssertionError):
            renderer.text_fits("Hi", Rect(0, 0, 200, 96), 40, font, 1.2)


class TestRenderText:
    """Tests for render_text."""

    def test_render_when_wrapped_then_baselines_follow_line_height(self, renderer, surface):
        result = renderer.render_text(text_slot(), "AAAA BBBB CCCC")

        assert result.font_size == 40
        assert result.lines == ["AAAA BBBB", "CCCC"]
        texts = surface.calls_of("text")
        assert [call[1] for call in texts] == ["AAAA BBBB", "CCCC"]
        assert texts[0][2] == pytest.approx(100)
        assert texts[0][3] == pytest.approx(38.4)
        assert texts[1][3] == pytest.approx(86.4)
        assert texts[0][5] == "#112233"
        assert texts[0][6] == "center"

    def test_render_when_drawn_then_clipped_to_slot_box(self, renderer, surface):
        renderer.render_text(text_slot(), "Hi")
        assert surface.calls[0] == ("clip", Rect(0, 0, 200, 96))
        assert surface.clips == [None]

    def test_render_when_blank_then_nothing_drawn(self, renderer, surface):
        assert renderer.render_text(text_slot(), "   ") is None
        assert surface.calls == []

    def test_render_when_too_long_then_truncated(self, renderer, surface):
        result = renderer.render_text(text_slot(max_characters=5), "ABCDEFGHIJ")
        assert result.lines == ["ABCDE"]

    def test_render_when_top_left_then_anchored_to_box_corner(self, renderer, surface):
        slot = text_slot(box=Rect(10, 20, 200, 96), vertical_align="top", horizontal_align="left")
        renderer.render_text(slot, "Hi")
        _, _, x, baseline, size, _, align = surface.calls_of("text")[0]
        assert (x, align) == (10, "left")
        assert baseline == pytest.approx(20 + 0.8 * 48 * 1.2)

    def test_render_when_presentation_smaller_then_box_and_font_scale(self, surface, flow):
        renderer = ContentSlotRenderer(surface, flow, reference_size=(600, 600), presentation_size=(300, 300))
        result = renderer.render_text(text_slot(), "Hi")
        assert result.box == Rect(0, 0, 100, 48)
        assert result.font_size == 24


class TestRenderImage:
    """Tests for image placement and placeholders."""

    def test_placement_when_cover_then_center_cropped(self, renderer):
        placement = renderer.image_placement(image_slot(), (800, 300))
        assert placement.dest == Rect(0, 0, 400, 300)
        assert placement.source.x == pytest.approx(200)
        assert placement.source.width == pytest.approx(400)
        assert placement.source.height == pytest.approx(300)

    def test_placement_when_fit_then_letterboxed(self, renderer):
        placement = renderer.image_placement(image_slot(image_mode="fit"), (800, 300))
        assert placement.source == Rect(0, 0, 800, 300)
        assert placement.dest == Rect(0, 75, 400, 150)

    def test_placement_when_free_then_natural_size_times_scale(self, renderer):
        placement = renderer.image_placement(image_slot(image_mode="free", image_scale=0.5), (800, 300))
        assert (placement.dest.width, placement.dest.height) == (400, 150)
        assert placement.dest.center == (200, 150)

    def test_placement_when_free_and_left_then_flush_left(self, renderer):
        slot = image_slot(image_mode="free", position_h="left", position_v="top")
        placement = renderer.image_placement(slot, (100, 50))
        assert placement.dest == Rect(0, 0, 100, 50)

    def test_placement_when_unknown_mode_then_cover(self, renderer):
        placement = renderer.image_placement(image_slot(image_mode="tile"), (800, 300))
        assert placement.dest == Rect(0, 0, 400, 300)

    def test_render_image_when_drawn_then_clipped(self, renderer, surface, decoded_media):
        renderer.render_image(image_slot(image_mode="fit"), decoded_media)
        assert surface.calls == [
            ("clip", Rect(0, 0, 400, 300)),
            ("image", Rect(0, 0, 800, 300), Rect(0, 75, 400, 150)),
        ]

    def test_placeholder_when_rendered_then_dashed_outline_and_label(self, renderer, surface):
        renderer.render_placeholder(image_slot())
        assert surface.calls_of("stroke") == [("stroke", Rect(0, 0, 400, 300), PLACEHOLDER_COLOR, (5, 5))]
        text = surface.calls_of("text")[0]
        assert text[1:5] == ("Photo", 200, 150, 14)

    def test_remap_when_presentation_differs_then_independent_factors(self, surface, flow):
        renderer = ContentSlotRenderer(surface, flow, reference_size=(600, 600), presentation_size=(300, 600))
        assert renderer.scale_factors == (0.5, 1.0)
        assert renderer.font_scale == 0.5
        assert renderer.remap_box(Rect(100, 100, 200, 200)) == Rect(50, 100, 100, 200)
