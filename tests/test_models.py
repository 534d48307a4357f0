import pytest

from inkform.core.annotations import (
    Annotation,
    AnnotationKind,
    PageSnapshot,
    SignatureMeta,
    UndoRedoStack,
)


def snapshot_of(*annotations):
    return PageSnapshot.capture(annotations)


class TestAnnotation:
    def test_box_bounds_apply_scale(self):
        ann = Annotation(kind=AnnotationKind.RECT, left=10, top=20, width=50, height=30,
                         scale_x=2, scale_y=3)
        bounds = ann.bounds()
        assert (bounds.left, bounds.top, bounds.width, bounds.height) == (10, 20, 100, 90)

    def test_line_endpoints_mirror_bounds(self):
        ann = Annotation(kind=AnnotationKind.ARROW)
        ann.set_endpoints(100, 80, 20, 10)
        assert (ann.left, ann.top, ann.width, ann.height) == (20, 10, 80, 70)

    def test_move_by_shifts_points(self):
        ann = Annotation(kind=AnnotationKind.FREEHAND, points=[(0, 0), (10, 5)])
        ann.sync_path_bounds()
        ann.move_by(5, 5)
        assert ann.points == [(5, 5), (15, 10)]
        assert (ann.left, ann.top) == (5, 5)

    def test_scale_geometry_for_box(self):
        ann = Annotation(kind=AnnotationKind.TEXTFIELD, left=10, top=20, width=100, height=30)
        ann.scale_geometry(2)
        bounds = ann.bounds()
        assert (bounds.left, bounds.top, bounds.width, bounds.height) == (20, 40, 200, 60)

    def test_scale_geometry_for_line(self):
        ann = Annotation(kind=AnnotationKind.UNDERLINE, stroke_width=2)
        ann.set_endpoints(10, 10, 60, 10)
        ann.scale_geometry(0.5)
        assert (ann.x1, ann.y1, ann.x2, ann.y2) == (5, 5, 30, 5)
        assert ann.stroke_width == 1

    def test_to_dict_only_keeps_persisted_fields(self):
        ann = Annotation(kind=AnnotationKind.TEXT, text="hi", field_name="stray")
        data = ann.to_dict()
        assert data['kind'] == "text"
        assert data['text'] == "hi"
        assert 'field_name' not in data
        assert 'selectable' not in data

    def test_from_dict_ignores_unknown_keys(self):
        ann = Annotation.from_dict({'kind': 'checkbox', 'checked': True, 'bogus': 1,
                                    'text': 'not for checkboxes'})
        assert ann.kind == AnnotationKind.CHECKBOX
        assert ann.checked
        assert ann.text == ""

    def test_signature_payload_survives_serialization(self, png_bytes):
        meta = SignatureMeta("Ada", True, True, document_filename="lease.pdf")
        ann = Annotation(kind=AnnotationKind.SIGNATURE, image_data=png_bytes,
                         signature_meta=meta)
        restored = Annotation.from_dict(ann.to_dict())
        assert restored.image_data == png_bytes
        assert restored.signature_meta == meta
        assert restored.object_id == ann.object_id

    def test_copy_is_deep(self):
        ann = Annotation(kind=AnnotationKind.DROPDOWN, options=["a"])
        clone = ann.copy()
        clone.options.append("b")
        assert ann.options == ["a"]


class TestPageSnapshot:
    def test_restore_builds_fresh_objects(self):
        ann = Annotation(kind=AnnotationKind.RECT, width=5, height=5)
        restored = snapshot_of(ann).restore()
        assert restored[0] is not ann
        assert restored[0].object_id == ann.object_id

    def test_equal_content_compares_equal(self):
        ann = Annotation(kind=AnnotationKind.RECT, width=5, height=5)
        assert snapshot_of(ann) == snapshot_of(ann)

    def test_unknown_version_rejected(self):
        snapshot = PageSnapshot(objects=(), version=99)
        with pytest.raises(ValueError):
            snapshot.restore()

    def test_scaled(self):
        ann = Annotation(kind=AnnotationKind.RECT, left=10, top=10, width=5, height=5)
        scaled = snapshot_of(ann).scaled(2).restore()[0]
        assert (scaled.left, scaled.scale_x) == (20, 2)

    def test_json_round_trip(self):
        snapshot = snapshot_of(Annotation(kind=AnnotationKind.NOTE, note_text="n"))
        assert PageSnapshot.from_json(snapshot.to_json()) == snapshot


class TestUndoRedoStack:
    @pytest.fixture
    def stack(self):
        stack = UndoRedoStack(max_size=3)
        stack.push_state(snapshot_of())
        return stack

    def test_baseline_cannot_be_undone(self, stack):
        assert not stack.can_undo()
        assert stack.undo() is None

    def test_undo_redo_inverse(self, stack):
        one = snapshot_of(Annotation(kind=AnnotationKind.RECT))
        stack.push_state(one)
        assert stack.undo() == snapshot_of()
        assert stack.redo() == one
        assert stack.current == one

    def test_push_clears_redo(self, stack):
        stack.push_state(snapshot_of(Annotation(kind=AnnotationKind.RECT)))
        stack.undo()
        stack.push_state(snapshot_of(Annotation(kind=AnnotationKind.ELLIPSE)))
        assert not stack.can_redo()

    def test_max_size_drops_oldest(self, stack):
        for _ in range(5):
            stack.push_state(snapshot_of(Annotation(kind=AnnotationKind.RECT)))
        assert len(stack.undo_stack) == 3

    def test_transform_rewrites_both_stacks(self, stack):
        stack.push_state(snapshot_of(Annotation(kind=AnnotationKind.RECT, left=1)))
        stack.push_state(snapshot_of(Annotation(kind=AnnotationKind.RECT, left=2)))
        stack.undo()
        stack.transform(lambda s: s.scaled(10))
        assert stack.current.restore()[0].left == 10
        assert stack.redo().restore()[0].left == 20
