import unittest

from gst_canvas.core.history import History


class HistoryTest(unittest.TestCase):
    def test_undo_redo_walks_the_stack(self):
        history = History()
        history.reset("a")
        history.push("b")
        history.push("c")
        self.assertEqual(history.undo(), "b")
        self.assertEqual(history.undo(), "a")
        self.assertIsNone(history.undo())
        self.assertEqual(history.redo(), "b")
        self.assertEqual(history.current, "b")

    def test_push_after_undo_drops_redo_branch(self):
        history = History()
        history.reset("a")
        history.push("b")
        history.undo()
        history.push("x")
        self.assertEqual(history.entries(), ["a", "x"])
        self.assertFalse(history.can_redo())

    def test_limit_evicts_oldest(self):
        history = History(limit=50)
        history.reset("s0")
        for n in range(1, 61):
            history.push(f"s{n}")
        self.assertEqual(len(history), 50)
        self.assertEqual(history.entries()[0], "s11")
        steps = 0
        while history.undo() is not None:
            steps += 1
        self.assertEqual(steps, 49)
        self.assertEqual(history.current, "s11")

    def test_limit_must_be_positive(self):
        with self.assertRaises(ValueError):
            History(limit=0)


if __name__ == "__main__":
    unittest.main()
