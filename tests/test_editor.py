import os
import tempfile
import unittest

from PIL import Image

from gst_canvas.core.editor import EditorEngine, RenderSurface
from gst_canvas.core.image_loader import ImageLoadError, LoadedImage
from gst_canvas.core.models import SceneGraph
from gst_canvas.core.store import MemoryStore, StoreError, TemplateStore

PIXEL = "data:image/png;base64,iVBORw0KGgo="


class RecordingSurface(RenderSurface):
    def __init__(self):
        self.renders = 0
        self.last_selection = ()
        self.disposed = False

    def render_graph(self, graph, selected_ids):
        self.renders += 1
        self.last_selection = selected_ids

    def dispose(self):
        self.disposed = True


class BrokenStore(TemplateStore):
    def load(self):
        return None

    def save(self, payload):
        raise StoreError("disk full")


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self.surface = RecordingSurface()
        self.engine = EditorEngine(surface=self.surface)
        self.warnings = []
        self.dirty_events = []
        self.selections = []
        self.engine.on_warning.append(lambda title, message: self.warnings.append((title, message)))
        self.engine.on_dirty_changed.append(self.dirty_events.append)
        self.engine.on_selection_changed.append(self.selections.append)

    def graph_copy(self):
        copy = SceneGraph()
        copy.restore(self.engine.graph.snapshot())
        return copy


class AddAndSelectTest(EngineTestCase):
    def test_new_engine_is_clean(self):
        self.assertFalse(self.engine.dirty)
        self.assertFalse(self.engine.can_undo())
        self.assertEqual(len(self.engine.history), 1)
        self.assertGreaterEqual(self.surface.renders, 1)

    def test_add_selects_and_marks_dirty(self):
        rect_id = self.engine.add_rect()
        self.assertTrue(rect_id.startswith("rect_"))
        self.assertEqual(self.engine.selection, (rect_id,))
        self.assertEqual(self.engine.selected_element.width, 120)
        self.assertTrue(self.engine.dirty)
        self.assertEqual(self.dirty_events, [True])
        self.assertEqual(self.selections[-1], (rect_id,))
        self.assertEqual(self.surface.last_selection, (rect_id,))

    def test_add_helpers_use_their_prefixes(self):
        self.assertTrue(self.engine.add_text().startswith("text_"))
        self.assertTrue(self.engine.add_circle().startswith("circle_"))
        self.assertTrue(self.engine.add_line().startswith("line_"))
        watermark = self.engine.add_watermark()
        self.assertTrue(watermark.startswith("watermark_"))
        self.assertEqual(self.engine.element(watermark).angle, -30)
        self.assertEqual(len(set(self.engine.graph.ids())), 4)

    def test_rejected_add_changes_nothing(self):
        self.assertIsNone(self.engine.add_element("Polygon"))
        self.assertIsNone(self.engine.add_element("Rect", {"opacity": 5}))
        self.assertIsNone(self.engine.add_element("Rect", {"radius": 5}))
        self.assertEqual(len(self.engine.graph), 0)
        self.assertFalse(self.engine.dirty)
        self.assertEqual(len(self.warnings), 3)

    def test_select_all_and_remove_selected(self):
        for _ in range(3):
            self.engine.add_rect()
        self.assertTrue(self.engine.select_all())
        self.assertEqual(len(self.engine.selection), 3)
        self.assertTrue(self.engine.remove_selected())
        self.assertEqual(len(self.engine.graph), 0)
        self.assertEqual(self.engine.selection, ())
        self.engine.undo()
        self.assertEqual(len(self.engine.graph), 3)


class GuideTest(EngineTestCase):
    def test_guide_is_out_of_reach(self):
        guide = self.engine.graph.guide
        self.engine.add_rect()
        self.assertFalse(self.engine.set_selection(guide.id))
        self.engine.select_all()
        self.assertNotIn(guide.id, self.engine.selection)
        self.engine.remove_selected()
        self.engine.clear()
        self.engine.clear_selection()
        self.assertFalse(self.engine.bring_forward(guide.id))
        self.assertFalse(self.engine.send_backward(guide.id))
        self.assertFalse(self.engine.move(guide.id, 100, 100))
        self.assertIs(self.engine.graph.elements[0], guide)
        self.assertEqual((guide.left, guide.top), (0, 0))
        self.assertNotIn("Page Border", self.engine.serialize())

    def test_clear_keeps_only_the_guide(self):
        self.engine.add_rect()
        self.engine.add_text()
        self.assertTrue(self.engine.clear())
        self.assertEqual(self.engine.graph.elements, (self.engine.graph.guide,))
        self.assertFalse(self.engine.clear())


class HistoryTest(EngineTestCase):
    def test_sixty_mutations_keep_fifty_snapshots(self):
        for _ in range(60):
            self.engine.add_rect()
        self.assertEqual(len(self.engine.history), 50)
        undos = 0
        while self.engine.undo():
            undos += 1
        self.assertEqual(undos, 49)
        self.assertEqual(len(self.engine.graph), 11)

    def test_one_undo_after_fifty_one_adds(self):
        for _ in range(51):
            self.engine.add_rect()
        self.assertTrue(self.engine.undo())
        self.assertEqual(len(self.engine.graph), 50)

    def test_undo_and_redo_are_inverse(self):
        engine = self.engine
        rect_id = engine.add_rect()
        text_id = engine.add_text("Total")
        engine.update_property(rect_id, "fill", "#ff0000")
        engine.move(text_id, 10, 20)
        engine.bring_forward(rect_id)
        final = self.graph_copy()
        steps = 5

        for _ in range(steps):
            self.assertTrue(engine.undo())
        self.assertFalse(engine.undo())
        self.assertTrue(engine.graph.same_content(SceneGraph()))

        for _ in range(steps):
            self.assertTrue(engine.redo())
        self.assertFalse(engine.redo())
        self.assertTrue(engine.graph.same_content(final))

    def test_undo_prunes_selection_of_removed_elements(self):
        rect_id = self.engine.add_rect()
        self.engine.undo()
        self.assertNotIn(rect_id, self.engine.selection)
        self.assertTrue(self.engine.dirty)

    def test_new_mutation_after_undo_discards_redo(self):
        self.engine.add_rect()
        self.engine.add_rect()
        self.engine.undo()
        self.engine.add_circle()
        self.assertFalse(self.engine.can_redo())


class EditTest(EngineTestCase):
    def test_z_order(self):
        a = self.engine.add_rect()
        b = self.engine.add_rect()
        c = self.engine.add_rect()
        self.assertTrue(self.engine.send_backward(c))
        self.assertEqual(self.engine.graph.ids(), [a, c, b])
        self.assertTrue(self.engine.bring_forward(a))
        self.assertEqual(self.engine.graph.ids(), [c, a, b])
        self.assertFalse(self.engine.bring_forward(b))

    def test_resize_changes_scale_not_intrinsic_size(self):
        rect_id = self.engine.add_rect()
        self.assertTrue(self.engine.resize(rect_id, width=240))
        self.assertTrue(self.engine.update_property(rect_id, "height", 30))
        element = self.engine.element(rect_id)
        self.assertEqual((element.width, element.height), (120, 60))
        self.assertEqual((element.scale_x, element.scale_y), (2.0, 0.5))
        self.assertEqual(element.scaled_size(), (240, 30))

    def test_bad_resize_is_rejected(self):
        rect_id = self.engine.add_rect()
        line_id = self.engine.add_line()
        zero_id = self.engine.add_rect(width=0)
        self.assertFalse(self.engine.resize(rect_id, width=-5))
        self.assertFalse(self.engine.resize(line_id, width=50))
        self.assertFalse(self.engine.resize(zero_id, width=50))
        self.assertEqual(self.engine.element(rect_id).scale_x, 1.0)
        self.assertEqual(len(self.warnings), 3)

    def test_invalid_property_leaves_element_untouched(self):
        rect_id = self.engine.add_rect()
        history = len(self.engine.history)
        self.assertFalse(self.engine.update_property(rect_id, "opacity", 2))
        self.assertFalse(self.engine.update_property("missing", "fill", "#000"))
        self.assertEqual(self.engine.element(rect_id).opacity, 1.0)
        self.assertEqual(len(self.engine.history), history)
        self.assertEqual(len(self.warnings), 2)

    def test_line_moves_as_a_whole(self):
        line_id = self.engine.add_line()
        self.engine.move(line_id, 0, 0)
        line = self.engine.element(line_id)
        self.assertEqual((line.x1, line.y1, line.x2, line.y2), (0, 0, 160, 0))

    def test_text_edit_updates_text_once(self):
        text_id = self.engine.add_text()
        history = len(self.engine.history)
        self.assertTrue(self.engine.begin_text_edit(text_id))
        self.assertTrue(self.engine.editing_text)
        self.assertTrue(self.engine.end_text_edit("Invoice"))
        self.assertFalse(self.engine.editing_text)
        self.assertEqual(self.engine.element(text_id).text, "Invoice")
        self.assertEqual(len(self.engine.history), history + 1)

    def test_text_edit_needs_a_textbox(self):
        rect_id = self.engine.add_rect()
        self.assertFalse(self.engine.begin_text_edit(rect_id))


class KeyboardTest(EngineTestCase):
    def test_delete_undo_redo_shortcuts(self):
        rect_id = self.engine.add_rect()
        self.assertTrue(self.engine.handle_key("Delete"))
        self.assertIsNone(self.engine.element(rect_id))
        self.assertTrue(self.engine.handle_key("z", ctrl=True))
        self.assertIsNotNone(self.engine.element(rect_id))
        self.assertTrue(self.engine.handle_key("Z", meta=True, shift=True))
        self.assertIsNone(self.engine.element(rect_id))
        self.engine.undo()
        self.engine.set_selection(rect_id)
        self.assertTrue(self.engine.handle_key("Backspace"))
        self.assertTrue(self.engine.handle_key("z", ctrl=True))
        self.assertTrue(self.engine.handle_key("y", ctrl=True))
        self.assertEqual(len(self.engine.graph), 0)

    def test_keys_ignored_in_text_inputs(self):
        rect_id = self.engine.add_rect()
        self.assertFalse(self.engine.handle_key("Delete", in_text_input=True))
        self.assertFalse(self.engine.handle_key("z", ctrl=True, in_text_input=True))
        self.assertIsNotNone(self.engine.element(rect_id))

    def test_keys_ignored_while_editing_text(self):
        text_id = self.engine.add_text()
        self.engine.begin_text_edit(text_id)
        self.assertFalse(self.engine.handle_key("Backspace"))
        self.assertIsNotNone(self.engine.element(text_id))

    def test_plain_letters_are_not_consumed(self):
        self.engine.add_rect()
        self.assertFalse(self.engine.handle_key("z"))
        self.assertEqual(len(self.engine.graph), 1)


class ImageTest(EngineTestCase):
    def test_loaded_image_fits_box(self):
        token = self.engine.request_image("logo.png")
        image_id = self.engine.complete_image(token, LoadedImage(300, 150, PIXEL))
        element = self.engine.element(image_id)
        self.assertTrue(image_id.startswith("img_"))
        self.assertEqual((element.width, element.height), (300, 150))
        self.assertEqual((element.scale_x, element.scale_y), (0.5, 0.5))

    def test_stale_results_are_dropped(self):
        token = self.engine.request_image("slow.png")
        self.engine.load_graph(None)
        self.assertIsNone(self.engine.complete_image(token, LoadedImage(10, 10, PIXEL)))
        self.assertFalse(self.engine.fail_image(token, "late"))
        self.assertEqual(len(self.engine.graph), 0)
        self.assertEqual(self.warnings, [])

    def test_result_after_close_is_dropped(self):
        token = self.engine.request_image("slow.png")
        self.engine.close()
        self.assertIsNone(self.engine.complete_image(token, LoadedImage(10, 10, PIXEL)))

    def test_add_image_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logo.png")
            Image.new("RGB", (30, 60), "red").save(path)
            image_id = self.engine.add_image(path)
        element = self.engine.element(image_id)
        self.assertEqual((element.width, element.height), (30, 60))
        self.assertEqual(element.scale_x, 2.5)
        self.assertTrue(element.src.startswith("data:image/png;base64,"))

    def test_failed_load_warns(self):
        def failing_loader(source):
            raise ImageLoadError("not found")

        self.assertIsNone(self.engine.add_image("missing.png", loader=failing_loader))
        self.assertEqual(len(self.engine.graph), 0)
        self.assertEqual(len(self.warnings), 1)


class SaveLoadTest(EngineTestCase):
    def test_save_clears_dirty(self):
        store = MemoryStore()
        self.engine.add_rect()
        self.assertTrue(self.engine.can_save)
        self.assertTrue(self.engine.save(store))
        self.assertFalse(self.engine.dirty)
        self.assertEqual(store.payload, self.engine.serialize())
        self.assertEqual(self.dirty_events, [True, False])

    def test_failed_save_keeps_dirty(self):
        self.engine.add_rect()
        before = self.engine.serialize()
        self.assertFalse(self.engine.save(BrokenStore()))
        self.assertTrue(self.engine.dirty)
        self.assertEqual(self.engine.serialize(), before)
        self.assertEqual(len(self.warnings), 1)

    def test_only_one_save_in_flight(self):
        self.engine.add_rect()
        payload = self.engine.begin_save()
        self.assertIsNotNone(payload)
        self.assertIsNone(self.engine.begin_save())
        self.assertFalse(self.engine.can_save)
        self.assertFalse(self.engine.save(MemoryStore()))
        self.engine.finish_save(True)
        self.assertFalse(self.engine.dirty)
        self.assertTrue(self.engine.begin_save() is not None)

    def test_edit_during_save_stays_dirty(self):
        self.engine.add_rect()
        self.engine.begin_save()
        self.engine.add_circle()
        self.engine.finish_save(True)
        self.assertTrue(self.engine.dirty)

    def test_load_round_trip(self):
        self.engine.add_rect()
        self.engine.add_text("Hello")
        payload = self.engine.serialize()
        other = EditorEngine(initial_data=payload)
        self.assertTrue(other.graph.same_content(self.engine.graph))
        self.assertEqual(other.graph.ids(), self.engine.graph.ids())
        self.assertFalse(other.dirty)
        self.assertFalse(other.can_undo())

    def test_malformed_load_falls_back_to_empty_page(self):
        self.engine.add_rect()
        self.assertFalse(self.engine.load_graph("{definitely not json"))
        self.assertEqual(len(self.engine.graph), 0)
        self.assertIs(self.engine.graph.elements[0], self.engine.graph.guide)
        self.assertFalse(self.engine.dirty)
        self.assertFalse(self.engine.can_undo())
        self.assertEqual(len(self.warnings), 1)

    def test_undecodable_or_too_deep_load_falls_back_to_empty_page(self):
        for payload in (b'{"objects": ["\x80"]}', "[" * 200000 + "]" * 200000):
            self.engine.add_rect()
            self.assertFalse(self.engine.load_graph(payload))
            self.assertEqual(len(self.engine.graph), 0)
            self.assertFalse(self.engine.can_undo())
        self.assertEqual(len(self.warnings), 2)

    def test_close_disposes_surface(self):
        self.engine.close()
        self.assertTrue(self.surface.disposed)
        self.assertTrue(self.engine.closed)
        self.assertIsNone(self.engine.add_rect())
        self.assertFalse(self.engine.undo())
        self.assertFalse(self.engine.handle_key("Delete"))
        self.assertIsNone(self.engine.begin_save())


if __name__ == "__main__":
    unittest.main()
