"""Tests for the store-facing cut applier and the in-memory store.

WHY: The applier is what the editor actually calls. It must commit the
two passes in order, leave the store consistent, move the playhead and
support exactly one level of undo.

HOW: CutPlanApplier runs against InMemoryTimelineStore. A recording
store subclass captures the applier phase at each commit so the phase
sequence can be asserted without patching internals.
"""

import logging
import threading

import pytest

from conftest import assert_no_overlap, make_item

from fillercut.core.ir import Cut, CutPlan, TrackItemPatch
from fillercut.timeline.applier import ApplierPhase, CutPlanApplier
from fillercut.timeline.store import InMemoryTimelineStore


def plan(item_id, *cuts):
    return CutPlan(track_item_id=item_id, cuts=[Cut(s, e) for s, e in cuts])


class RecordingStore(InMemoryTimelineStore):
    """Records the applier phase every time a batch is committed."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.applier = None
        self.commits = []

    def batch_mutate(self, adds=(), removes=(), updates=()):
        self.commits.append((self.applier.phase, len(adds), len(removes), len(updates)))
        super().batch_mutate(adds=adds, removes=removes, updates=updates)


class TestInMemoryStore:
    def test_read_all_sorted_by_track_then_position(self):
        store = InMemoryTimelineStore([
            make_item("b", 0, 5, 5, track_id="t1"),
            make_item("v", 0, 5, 0, track_id="t2"),
            make_item("a", 0, 5, 0, track_id="t1"),
        ])
        assert [i.id for i in store.read_all()] == ["a", "b", "v"]

    def test_batch_mutate(self):
        store = InMemoryTimelineStore([make_item("a", 0, 5, 0), make_item("b", 0, 5, 5)])
        store.batch_mutate(
            adds=[make_item("c", 0, 1, 9)],
            removes=["b"],
            updates=[TrackItemPatch(id="a", track_position=1.0), TrackItemPatch(id="b", in_s=2.0)],
        )
        assert len(store) == 2
        assert store.get("a").track_position == 1.0
        assert store.get("b") is None
        assert store.get("c") is not None

    def test_playhead_clamped(self):
        store = InMemoryTimelineStore(playhead_s=-3.0)
        assert store.get_playhead() == 0.0
        store.set_playhead(-1.0)
        assert store.get_playhead() == 0.0
        store.set_playhead(2.5)
        assert store.get_playhead() == 2.5

    def test_replace_all(self):
        store = InMemoryTimelineStore([make_item("a", 0, 5, 0)])
        store.replace_all([make_item("z", 0, 1, 0)])
        assert [i.id for i in store.read_all()] == ["z"]


class TestApply:
    def test_reference_scenario(self, reference_item, id_factory):
        follower = make_item("b", 0.0, 5.0, 10.0, clip_id="c2")
        store = InMemoryTimelineStore([reference_item, follower], playhead_s=4.0)
        applier = CutPlanApplier(store, id_factory=id_factory)

        report = applier.apply([plan("a", (3.96, 4.34))])

        assert report.updated_ids == ["a"]
        assert report.added_ids == ["frag-1"]
        assert report.removed_ids == []
        assert report.rippled_ids == ["b"]
        assert report.playhead_relocated
        assert store.get("a").out_s == pytest.approx(3.96)
        assert store.get("frag-1").track_position == pytest.approx(3.96)
        assert store.get("b").track_position == pytest.approx(9.62)
        assert store.get_playhead() == pytest.approx(3.96)
        assert report.playhead_s == pytest.approx(3.96)
        assert_no_overlap(store.read_all())

    def test_phases_in_order(self, reference_item, id_factory):
        follower = make_item("b", 0.0, 5.0, 10.0, clip_id="c2")
        store = RecordingStore([reference_item, follower])
        applier = CutPlanApplier(store, id_factory=id_factory)
        store.applier = applier

        applier.apply([plan("a", (3.96, 4.34))])

        assert [c[0] for c in store.commits] == [
            ApplierPhase.BATCHING_PASS1,
            ApplierPhase.BATCHING_PASS2,
        ]
        assert store.commits[0][1:] == (1, 0, 1)
        assert store.commits[1][1:] == (0, 0, 1)
        assert applier.phase == ApplierPhase.IDLE

    def test_no_ripple_batch_when_nothing_moves(self, reference_item, id_factory):
        store = RecordingStore([reference_item])
        applier = CutPlanApplier(store, id_factory=id_factory)
        store.applier = applier
        applier.apply([plan("a", (3.96, 4.34))])
        assert [c[0] for c in store.commits] == [ApplierPhase.BATCHING_PASS1]

    def test_phase_reset_after_failure(self, reference_item, id_factory):
        class FailingStore(InMemoryTimelineStore):
            def batch_mutate(self, adds=(), removes=(), updates=()):
                raise RuntimeError("store offline")

        applier = CutPlanApplier(FailingStore([reference_item]), id_factory=id_factory)
        with pytest.raises(RuntimeError, match="store offline"):
            applier.apply([plan("a", (3.96, 4.34))])
        assert applier.phase == ApplierPhase.IDLE

    def test_missing_item_skipped(self, reference_item, id_factory, caplog):
        store = InMemoryTimelineStore([reference_item])
        applier = CutPlanApplier(store, id_factory=id_factory)
        with caplog.at_level(logging.WARNING):
            report = applier.apply([plan("ghost", (1.0, 2.0)), plan("a", (3.96, 4.34))])
        assert report.skipped_plan_ids == ["ghost"]
        assert "Track item ghost not found" in caplog.text
        assert len(store) == 2

    def test_playhead_untouched_without_relocation(self, reference_item, id_factory):
        store = InMemoryTimelineStore([reference_item], playhead_s=1.0)
        report = CutPlanApplier(store, id_factory=id_factory).apply([plan("a", (3.96, 4.34))])
        assert not report.playhead_relocated
        assert store.get_playhead() == 1.0

    def test_default_ids_are_fresh(self, reference_item):
        store = InMemoryTimelineStore([reference_item])
        report = CutPlanApplier(store).apply([plan("a", (2.0, 3.0), (5.0, 6.0))])
        assert len(report.added_ids) == 2
        assert len(set(report.added_ids)) == 2
        assert all(i.startswith("item-") for i in report.added_ids)


class TestUndo:
    def test_undo_restores_items(self, reference_item, id_factory):
        follower = make_item("b", 0.0, 5.0, 10.0, clip_id="c2")
        store = InMemoryTimelineStore([reference_item, follower])
        applier = CutPlanApplier(store, id_factory=id_factory)
        before = store.read_all()

        applier.apply([plan("a", (3.96, 4.34))])
        assert applier.has_snapshot
        assert applier.undo() is True

        assert store.read_all() == before
        assert not applier.has_snapshot

    def test_undo_without_snapshot(self, reference_item, caplog):
        store = InMemoryTimelineStore([reference_item])
        applier = CutPlanApplier(store)
        with caplog.at_level(logging.WARNING):
            assert applier.undo() is False
        assert "No cut snapshot to undo" in caplog.text
        assert store.read_all() == [reference_item]

    def test_second_undo_is_noop(self, reference_item, id_factory):
        store = InMemoryTimelineStore([reference_item])
        applier = CutPlanApplier(store, id_factory=id_factory)
        applier.apply([plan("a", (3.96, 4.34))])
        assert applier.undo() is True
        assert applier.undo() is False
        assert store.read_all() == [reference_item]

    def test_only_last_apply_is_undoable(self, reference_item, id_factory):
        store = InMemoryTimelineStore([reference_item])
        applier = CutPlanApplier(store, id_factory=id_factory)
        applier.apply([plan("a", (1.0, 2.0))])
        after_first = store.read_all()
        applier.apply([plan("a", (5.0, 6.0))])

        applier.undo()
        assert store.read_all() == after_first

    def test_discard_snapshot(self, reference_item, id_factory):
        store = InMemoryTimelineStore([reference_item])
        applier = CutPlanApplier(store, id_factory=id_factory)
        applier.apply([plan("a", (1.0, 2.0))])
        applier.discard_snapshot()
        assert applier.undo() is False


class TestConcurrency:
    def test_concurrent_applies_do_not_interleave(self):
        items = [
            make_item("item-{}".format(n), 0.0, 10.0, 0.0, track_id="t{}".format(n))
            for n in range(8)
        ]
        store = InMemoryTimelineStore(items)
        applier = CutPlanApplier(store)
        errors = []

        def worker(n):
            try:
                applier.apply([plan("item-{}".format(n), (1.0, 2.0))])
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert_no_overlap(store.read_all())
        total = sum(i.duration_s for i in store.read_all())
        assert total == pytest.approx(80.0 - 8.0)
