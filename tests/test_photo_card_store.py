"""Tests for the ordered photo-card collection."""

import pytest

from app.viewmodels.photo_card_store import (
    CHANGE_INSERTED,
    CHANGE_REMOVED,
    CHANGE_REPLACED,
    CHANGE_RESET,
    DEFAULT_DETACH_DELAY,
    PhotoCardStore,
)
from core.models import PhotoCard


def _card(tag: str, caption: str = "") -> PhotoCard:
    return PhotoCard(preview_image=f"data:p,{tag}", print_image=f"data:q,{tag}", caption=caption)


def _tags(store: PhotoCardStore) -> list[str]:
    return [c.preview_image.split(",")[1] if c.preview_image else "-" for c in store]


class TestInsertion:
    def test_append_blank_and_prefilled(self):
        store = PhotoCardStore()
        blank = store.append()
        filled = store.append(_card("x", caption="porch"))
        assert blank.is_blank
        assert filled.caption == "porch"
        assert store.cards == [blank, filled]

    def test_append_copies_data(self):
        store = PhotoCardStore()
        data = _card("x")
        card = store.append(data)
        data.caption = "changed later"
        assert card is not data
        assert card.caption == ""

    def test_prepend_batch_keeps_batch_order_before_first_card(self):
        store = PhotoCardStore()
        store.append(_card("old1"))
        store.append(_card("old2"))
        store.prepend_batch([_card("n1"), _card("n2"), _card("n3")])
        assert _tags(store) == ["n1", "n2", "n3", "old1", "old2"]

    def test_prepend_batch_before_explicit_anchor(self):
        store = PhotoCardStore()
        store.append(_card("a"))
        anchor = store.append(_card("b"))
        store.prepend_batch([_card("n")], before=anchor)
        assert _tags(store) == ["a", "n", "b"]

    def test_prepend_batch_into_empty_store_appends(self):
        store = PhotoCardStore()
        created = store.prepend_batch([_card("n1"), _card("n2")])
        assert _tags(store) == ["n1", "n2"]
        assert store.cards == created

    def test_prepend_batch_with_stale_anchor_appends(self):
        store = PhotoCardStore()
        store.append(_card("a"))
        store.prepend_batch([_card("n")], before=_card("ghost"))
        assert _tags(store) == ["a", "n"]

    def test_insert_batch_at_index(self):
        store = PhotoCardStore()
        store.append(_card("a"))
        store.append(_card("b"))
        store.insert_batch([_card("n1"), _card("n2")], 1)
        assert _tags(store) == ["a", "n1", "n2", "b"]

    @pytest.mark.parametrize("index", [-1, 99])
    def test_insert_batch_out_of_range_appends(self, index):
        store = PhotoCardStore()
        store.append(_card("a"))
        store.insert_batch([_card("n")], index)
        assert _tags(store) == ["a", "n"]

    def test_empty_batch_is_a_no_op(self):
        store = PhotoCardStore()
        events = []
        store.subscribe(events.append)
        assert store.prepend_batch([]) == []
        assert events == []


class TestRemoveAndReplace:
    def test_remove_by_identity(self):
        store = PhotoCardStore()
        first = store.append(_card("same"))
        second = store.append(_card("same"))
        assert store.remove(second)
        assert store.cards == [first]
        assert second not in store

    def test_remove_absent_card_returns_false(self):
        store = PhotoCardStore()
        store.append(_card("a"))
        assert not store.remove(_card("a"))
        assert len(store) == 1

    def test_remove_notifies_with_detach_delay(self):
        store = PhotoCardStore()
        card = store.append(_card("a"))
        events = []
        store.subscribe(events.append)
        store.remove(card)
        assert events[0].kind == CHANGE_REMOVED
        assert events[0].index == 0
        assert events[0].cards == [card]
        assert events[0].detach_delay == DEFAULT_DETACH_DELAY

    def test_replace_keeps_identity_position_and_caption(self):
        store = PhotoCardStore()
        store.append(_card("a"))
        card = store.append(_card("b", caption="kitchen"))
        store.append(_card("c"))
        new = PhotoCard(preview_image="data:p,z", print_image="data:q,z", size_label="2.0 MB")
        store.replace(card, new)
        assert store[1] is card
        assert _tags(store) == ["a", "z", "c"]
        assert card.caption == "kitchen"
        assert card.size_label == "2.0 MB"

    def test_replace_absent_card_raises(self):
        store = PhotoCardStore()
        with pytest.raises(KeyError):
            store.replace(_card("ghost"), _card("x"))


class TestSnapshotsAndListeners:
    def test_reset_and_snapshot_are_detached(self):
        store = PhotoCardStore()
        source = [_card("a"), _card("b")]
        store.reset(source)
        assert store[0] is not source[0]
        snap = store.snapshot()
        snap[0].caption = "edited"
        assert store[0].caption == ""

    def test_change_kinds(self):
        store = PhotoCardStore(detach_delay=0)
        kinds = []
        store.subscribe(lambda change: kinds.append(change.kind))
        card = store.append()
        store.prepend_batch([_card("a")])
        store.replace(card, _card("b"))
        store.remove(card)
        store.reset()
        assert kinds == [
            CHANGE_INSERTED,
            CHANGE_INSERTED,
            CHANGE_REPLACED,
            CHANGE_REMOVED,
            CHANGE_RESET,
        ]

    def test_unsubscribe(self):
        store = PhotoCardStore()
        events = []
        store.subscribe(events.append)
        store.unsubscribe(events.append)
        store.unsubscribe(events.append)
        store.append()
        assert events == []

    def test_index_of_and_iteration_snapshot(self):
        store = PhotoCardStore()
        a = store.append(_card("a"))
        b = store.append(_card("b"))
        assert store.index_of(b) == 1
        assert store.index_of(_card("b")) == -1
        for card in store:
            store.remove(card)
        assert len(store) == 0
        assert a not in store
