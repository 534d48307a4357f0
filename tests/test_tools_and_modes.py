import re

import pytest

from inkform.config import ToolSettings
from inkform.core.annotations import (
    AnnotationKind,
    InteractionMode,
    Interactivity,
    ModeController,
    Tool,
    interactivity_for,
)
from inkform.core.annotations.tools import (
    DEFAULT_TEXT,
    build_placement,
    drag_too_small,
    new_radio_value,
    start_drag,
    update_drag,
)


class TestInteractivity:
    def test_edit_mode_select_tool(self):
        flags = interactivity_for(AnnotationKind.RECT, False, InteractionMode.EDIT, Tool.SELECT)
        assert flags == Interactivity(True, True, True)

    def test_locked_objects_stay_selectable_but_frozen(self):
        flags = interactivity_for(AnnotationKind.TEXTFIELD, True, InteractionMode.EDIT, Tool.SELECT)
        assert flags == Interactivity(True, False, False)

    def test_drawing_tool_makes_objects_inert(self):
        flags = interactivity_for(AnnotationKind.RECT, False, InteractionMode.EDIT, Tool.RECT)
        assert flags == Interactivity(False, False, False)

    @pytest.mark.parametrize("kind", [AnnotationKind.CHECKBOX, AnnotationKind.SIGNATURE,
                                      AnnotationKind.SIGNATURE_FIELD])
    def test_fill_mode_fillable_kinds(self, kind):
        flags = interactivity_for(kind, False, InteractionMode.FILL, Tool.SELECT)
        assert flags == Interactivity(True, False, False)

    def test_fill_mode_markup_is_inert(self):
        flags = interactivity_for(AnnotationKind.HIGHLIGHT, False, InteractionMode.FILL, Tool.SELECT)
        assert flags == Interactivity(False, False, False)


class TestModeController:
    def test_set_mode_accepts_strings_and_emits_once(self):
        controller = ModeController()
        seen = []
        controller.mode_changed.connect(seen.append)
        controller.set_mode("fill")
        controller.set_mode(InteractionMode.FILL)
        assert controller.is_fill_mode
        assert seen == [InteractionMode.FILL]

    def test_toggle(self):
        controller = ModeController()
        assert controller.toggle() == InteractionMode.FILL
        assert controller.toggle() == InteractionMode.EDIT

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            ModeController().set_mode("draw")


class TestPlacement:
    def test_field_sizes_follow_scale(self):
        obj = build_placement(Tool.CHECKBOX, 5, 6, ToolSettings(), 2.0)
        assert obj.kind == AnnotationKind.CHECKBOX
        assert (obj.left, obj.top, obj.width, obj.height) == (5, 6, 40, 40)

    def test_text_uses_settings(self):
        settings = ToolSettings(text_color="#123456", font_size=10)
        obj = build_placement(Tool.TEXT, 0, 0, settings, 1.5)
        assert obj.text == DEFAULT_TEXT
        assert obj.fill == "#123456"
        assert obj.font_size == 15
        assert obj.width > 0 and obj.height > 0

    def test_stamp_text_is_upper_cased(self):
        obj = build_placement(Tool.STAMP, 0, 0, ToolSettings(stamp_text="paid"), 1.0)
        assert obj.stamp_text == "PAID"

    def test_image_needs_data(self, png_bytes):
        assert build_placement(Tool.IMAGE, 0, 0, ToolSettings(), 1.0) is None
        obj = build_placement(Tool.IMAGE, 0, 0, ToolSettings(), 1.0, image_data=png_bytes)
        assert obj.bounds().width == pytest.approx(240)
        assert obj.bounds().height == pytest.approx(120)

    def test_radio_values_are_unique(self):
        first, second = new_radio_value(), new_radio_value()
        assert first != second
        assert re.fullmatch(r"option_[0-9a-f]{8}", first)


class TestDrag:
    def test_rect_drag_normalizes_box(self):
        obj = start_drag(Tool.RECT, 50, 50, ToolSettings(), 1.0)
        assert not obj.selectable
        update_drag(obj, 50, 50, 20, 10)
        assert (obj.left, obj.top, obj.width, obj.height) == (20, 10, 30, 40)

    def test_underline_stays_horizontal(self):
        obj = start_drag(Tool.UNDERLINE, 10, 10, ToolSettings(), 1.0)
        update_drag(obj, 10, 10, 80, 40)
        assert (obj.y1, obj.y2) == (10, 10)
        assert not drag_too_small(obj, 5)

    def test_tiny_box_is_too_small(self):
        obj = start_drag(Tool.WHITEOUT, 10, 10, ToolSettings(), 1.0)
        update_drag(obj, 10, 10, 100, 12)
        assert drag_too_small(obj, 5)

    def test_freehand_collects_points(self):
        obj = start_drag(Tool.DRAW, 0, 0, ToolSettings(), 1.0)
        update_drag(obj, 0, 0, 4, 3)
        update_drag(obj, 0, 0, 12, 8)
        assert obj.points == [(0, 0), (4, 3), (12, 8)]
        assert (obj.width, obj.height) == (12, 8)

    def test_highlight_takes_settings_colour(self):
        obj = start_drag(Tool.HIGHLIGHT, 0, 0, ToolSettings(), 1.0)
        assert obj.fill == "#fff59d"
        assert obj.opacity == pytest.approx(0.55)
