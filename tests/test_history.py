"""
Tests for HistoryManager.
"""
from imagor_editor.history import HistoryManager, Snapshot
from imagor_editor.models import TransformParameters


def snap(hue):
    return Snapshot(TransformParameters(hue=hue), (), None, f"hue {hue}")


class TestHistoryManager:

    def test_empty(self):
        history = HistoryManager()
        assert not history.can_undo()
        assert history.undo(snap(0)) is None
        assert history.redo(snap(0)) is None

    def test_undo_then_redo(self):
        history = HistoryManager()
        history.record(snap(1))
        assert history.undo(snap(2)) == snap(1)
        assert history.can_redo()
        assert history.redo(snap(1)) == snap(2)
        assert history.can_undo() and not history.can_redo()

    def test_depth_is_bounded(self):
        history = HistoryManager(max_history=3)
        for hue in range(5):
            history.record(snap(hue))
        restored = []
        current = snap(99)
        while history.can_undo():
            current = history.undo(current)
            restored.append(current.base.hue)
        assert restored == [4, 3, 2]

    def test_record_clears_redo(self):
        history = HistoryManager()
        history.record(snap(1))
        history.undo(snap(2))
        history.record(snap(3))
        assert not history.can_redo()

    def test_clear(self):
        history = HistoryManager()
        history.record(snap(1))
        history.undo(snap(2))
        history.clear()
        assert not history.can_undo() and not history.can_redo()
