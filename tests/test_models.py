import unittest

from gst_canvas.core.models import (
    PAGE_HEIGHT,
    PAGE_WIDTH,
    CircleElement,
    LineElement,
    RectElement,
    SceneGraph,
    TextboxElement,
)


def rect(element_id, **kwargs):
    return RectElement(id=element_id, width=10, height=10, **kwargs)


class ElementTest(unittest.TestCase):
    def test_attribute_checks(self):
        el = rect("a")
        el.set_attribute("fill", "#ff0000")
        self.assertEqual(el.fill, "#ff0000")
        for key, value in (("opacity", 1.5), ("width", -1), ("left", "10"), ("radius", 5)):
            with self.assertRaises(ValueError):
                el.set_attribute(key, value)
        with self.assertRaises(ValueError):
            TextboxElement(id="t", text_align="justify")

    def test_circle_intrinsic_size_is_diameter(self):
        circle = CircleElement(id="c", radius=30, scale_x=2)
        self.assertEqual(circle.intrinsic_size(), (60, 60))
        self.assertEqual(circle.scaled_size(), (120, 60))

    def test_line_moves_both_endpoints(self):
        line = LineElement(id="l", x1=10, y1=20, x2=110, y2=20)
        self.assertEqual((line.left, line.top), (10, 20))
        line.set_attribute("left", 50)
        line.set_attribute("top", 0)
        self.assertEqual((line.x1, line.x2, line.y1, line.y2), (50, 150, 0, 0))
        self.assertIsNone(line.intrinsic_size())

    def test_textbox_height_follows_lines(self):
        text = TextboxElement(id="t", text="a\nb", font_size=10, line_height=1.5)
        self.assertEqual(text.height, 30)

    def test_clone_is_independent(self):
        original = rect("a", extras={"custom": [1]})
        copy = original.clone()
        copy.set_attribute("left", 99)
        copy.extras["custom"].append(2)
        self.assertEqual(original.left, 0)
        self.assertEqual(original.extras, {"custom": [1]})
        self.assertTrue(copy.same_attributes(copy.clone()))
        self.assertFalse(copy.same_attributes(original))


class SceneGraphTest(unittest.TestCase):
    def test_new_graph_holds_only_the_guide(self):
        graph = SceneGraph()
        self.assertEqual(len(graph), 0)
        self.assertEqual(len(graph.elements), 1)
        guide = graph.elements[0]
        self.assertTrue(guide.is_guide)
        self.assertFalse(guide.selectable)
        self.assertFalse(guide.evented)
        self.assertEqual((guide.width, guide.height), (PAGE_WIDTH - 1, PAGE_HEIGHT - 1))
        self.assertEqual(guide.stroke, "#e5e7eb")

    def test_append_rejects_duplicates_and_guides(self):
        graph = SceneGraph()
        graph.append(rect("a"))
        with self.assertRaises(ValueError):
            graph.append(rect("a"))
        with self.assertRaises(ValueError):
            graph.append(rect("b", exclude_from_export=True))
        with self.assertRaises(ValueError):
            graph.append(rect(""))

    def test_reorder(self):
        graph = SceneGraph()
        for element_id in "ABC":
            graph.append(rect(element_id))
        self.assertTrue(graph.move_backward("C"))
        self.assertEqual(graph.ids(), ["A", "C", "B"])
        self.assertTrue(graph.move_forward("A"))
        self.assertEqual(graph.ids(), ["C", "A", "B"])
        self.assertFalse(graph.move_forward("B"))
        self.assertFalse(graph.move_backward("C"))
        self.assertIs(graph.elements[0], graph.guide)

    def test_guide_cannot_be_removed_or_moved(self):
        graph = SceneGraph()
        graph.append(rect("a"))
        self.assertIsNone(graph.remove(""))
        self.assertFalse(graph.move_forward(""))
        self.assertEqual(len(graph.clear()), 1)
        self.assertEqual(graph.elements, (graph.guide,))

    def test_snapshot_and_restore(self):
        graph = SceneGraph()
        graph.append(rect("a", fill="#111111"))
        saved = graph.snapshot()
        graph.get("a").set_attribute("fill", "#222222")
        other = SceneGraph()
        other.restore(saved)
        self.assertEqual(other.get("a").fill, "#111111")
        self.assertFalse(graph.same_content(other))
        graph.restore(saved)
        self.assertTrue(graph.same_content(other))


if __name__ == "__main__":
    unittest.main()
