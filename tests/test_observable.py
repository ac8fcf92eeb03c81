"""
Unit tests for observable objects, lists and the tri-state selector.
"""

import pytest

from observable import (
    CollectionAction, ObservableList, ObservableObject, select_from_all
)


class Recorder:
    def __init__(self):
        self.events = []

    def record(self, *args):
        self.events.append(args if len(args) > 1 else args[0])


class TestObservableList:
    def test_append_emits_single_add(self) -> None:
        items = ObservableList()
        recorder = Recorder()
        items.collection_changed.connect(recorder.record)

        items.append("a")

        assert len(recorder.events) == 1
        change = recorder.events[0]
        assert change.action == CollectionAction.ADD
        assert change.new_items == ["a"]
        assert list(items) == ["a"]

    def test_extend_with_nothing_is_silent(self) -> None:
        items = ObservableList()
        recorder = Recorder()
        items.collection_changed.connect(recorder.record)

        items.extend([])

        assert recorder.events == []

    def test_remove_reports_old_item(self) -> None:
        items = ObservableList(["a", "b"])
        recorder = Recorder()
        items.collection_changed.connect(recorder.record)

        items.remove("a")

        change = recorder.events[0]
        assert change.action == CollectionAction.REMOVE
        assert change.old_items == ["a"]
        assert list(items) == ["b"]

    def test_reset_carries_previous_items(self) -> None:
        items = ObservableList(["a", "b"])
        recorder = Recorder()
        items.collection_changed.connect(recorder.record)

        items.reset(["c"])

        change = recorder.events[0]
        assert change.action == CollectionAction.RESET
        assert change.old_items == ["a", "b"]
        assert change.new_items == ["c"]

    def test_clear_is_a_reset(self) -> None:
        items = ObservableList([1, 2, 3])
        recorder = Recorder()
        items.collection_changed.connect(recorder.record)

        items.clear()

        assert len(items) == 0
        assert recorder.events[0].old_items == [1, 2, 3]

    def test_pop_and_contains(self) -> None:
        items = ObservableList([1, 2, 3])
        assert items.pop() == 3
        assert 3 not in items
        assert items[0] == 1
        assert items.index(2) == 1


class TestObservableObject:
    def test_set_field_only_notifies_on_change(self) -> None:
        class Item(ObservableObject):
            def __init__(self):
                super().__init__()
                self._value = 1

        item = Item()
        recorder = Recorder()
        item.property_changed.connect(recorder.record)

        assert item._set_field("_value", 1, "value") is False
        assert item._set_field("_value", 2, "value") is True

        assert recorder.events == [(item, "value")]


class TestSelectFromAll:
    @pytest.mark.parametrize("values, expected", [
        ([True, True, True], True),
        ([False, False], False),
        ([True, False, True], None),
        ([False, True], None),
        ([True], True),
    ])
    def test_tri_state(self, values, expected) -> None:
        assert select_from_all(values, lambda v: v) is expected

    def test_empty_collection_is_false(self) -> None:
        assert select_from_all([], lambda v: v) is False

    def test_selector_is_applied(self) -> None:
        items = [{"on": True}, {"on": True}]
        assert select_from_all(items, lambda i: i["on"]) is True
