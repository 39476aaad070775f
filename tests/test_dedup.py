"""Tests for the dedup filter."""

from conftest import make_ref, seed_item, seed_skip

from podsync.db import list_events
from podsync.pipeline import filter_new_items


class TestFilterNewItems:
    def test_returns_candidates_in_neither_store(self):
        candidates = [make_ref(f"video{i:06d}") for i in range(10)]
        for i in (1, 2, 3):
            seed_item(f"video{i:06d}")
        for i in (3, 4, 8):
            seed_skip(f"video{i:06d}")

        pending = filter_new_items(candidates, "Test Channel")

        # N - |M ∪ K| = 10 - 5
        assert [c.item_id for c in pending] == [
            "video000000",
            "video000005",
            "video000006",
            "video000007",
            "video000009",
        ]

    def test_drops_duplicate_candidates_keeping_first(self):
        a, b = make_ref("aaaaaaaaaaa", "first"), make_ref("bbbbbbbbbbb")
        duplicate = make_ref("aaaaaaaaaaa", "second")
        pending = filter_new_items([a, b, duplicate])
        assert pending == [a, b]

    def test_empty_input(self):
        assert filter_new_items([], "Test Channel") == []

    def test_large_candidate_lists(self):
        candidates = [make_ref(f"v{i:010d}") for i in range(1500)]
        seed_item("v0000001499")
        seed_skip("v0000000000")
        pending = filter_new_items(candidates, "Test Channel")
        assert len(pending) == 1498
        assert pending[0].item_id == "v0000000001"

    def test_ledger_conflict_is_reported_not_resolved(self):
        seed_item("aaaaaaaaaaa")
        seed_skip("aaaaaaaaaaa")

        pending = filter_new_items([make_ref("aaaaaaaaaaa"), make_ref("bbbbbbbbbbb")], "Test Channel")

        assert [c.item_id for c in pending] == ["bbbbbbbbbbb"]
        events = list_events(kind="error")
        assert len(events) == 1
        assert events[0].details["itemIds"] == ["aaaaaaaaaaa"]
