"""Store-facing cut applier with single-generation undo.

WHY: The pure reducer in core.splice computes what should change; the
editor needs those changes committed to its store in two ordered
batches, the playhead moved, and a way to take the whole operation back.

HOW: CutPlanApplier holds the store lock for the full operation. It
captures the undo snapshot, reads a fresh TimelineSnapshot, runs Pass 1
and commits it, re-reads the store, runs Pass 2 and commits it, then
finalises the playhead. ``phase`` exposes where a running apply is.

RULES:
- apply() calls never interleave; each runs under the store lock
- Phases: IDLE → FRAGMENTING → BATCHING_PASS1 → RIPPLING_PASS2 →
  BATCHING_PASS2 → IDLE
- Only one undo snapshot is kept; a second apply() replaces it
- undo() with no snapshot logs a warning and changes nothing
- A failure mid-apply leaves the store as the last committed batch left it
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from fillercut.core.ir import CutPlan, TrackItem
from fillercut.core.splice import (
    IdFactory,
    TimelineSnapshot,
    finalize_playhead,
    fragment_pass,
    new_item_id,
    ripple_pass,
)
from fillercut.timeline.store import TimelineStore

logger = logging.getLogger(__name__)


class ApplierPhase(str, enum.Enum):
    """Where a running apply() is. Inherits from str so it serialises cleanly."""

    IDLE = "idle"
    FRAGMENTING = "fragmenting"
    BATCHING_PASS1 = "batching_pass1"
    RIPPLING_PASS2 = "rippling_pass2"
    BATCHING_PASS2 = "batching_pass2"


@dataclass
class ApplyReport:
    """Summary of one apply() call, for logging and UI messages."""

    plans: int = 0
    added_ids: List[str] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)
    rippled_ids: List[str] = field(default_factory=list)
    skipped_plan_ids: List[str] = field(default_factory=list)
    dropped_fragments: int = 0
    playhead_s: float = 0.0
    playhead_relocated: bool = False


class CutPlanApplier:
    """Apply cut plans to a TimelineStore and undo the last application.

    The undo slot is an Optional, not a stack: only the state before the
    most recent apply() can be restored.
    """

    def __init__(self, store: TimelineStore, id_factory: IdFactory = new_item_id) -> None:
        self._store = store
        self._id_factory = id_factory
        self._snapshot: Optional[Dict[str, TrackItem]] = None
        self.phase = ApplierPhase.IDLE

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def discard_snapshot(self) -> None:
        self._snapshot = None

    def apply(self, plans: Sequence[CutPlan]) -> ApplyReport:
        """Apply cut plans in two committed passes and move the playhead.

        Plans referencing missing items are logged and skipped; the rest
        still apply.
        """
        report = ApplyReport(plans=len(plans))
        store = self._store

        with store.lock:
            try:
                items = store.read_all()
                self._snapshot = {item.id: item for item in items}
                logger.info("Stored undo snapshot with %d items", len(self._snapshot))

                self.phase = ApplierPhase.FRAGMENTING
                snapshot = TimelineSnapshot.from_items(items, store.get_playhead())
                first = fragment_pass(snapshot, plans, self._id_factory)

                self.phase = ApplierPhase.BATCHING_PASS1
                store.batch_mutate(
                    adds=first.batch.adds,
                    removes=first.batch.removes,
                    updates=first.batch.updates,
                )

                self.phase = ApplierPhase.RIPPLING_PASS2
                fresh = {item.id: item for item in store.read_all()}
                ripple_updates = ripple_pass(fresh, first.tagged, first.cut_regions)

                self.phase = ApplierPhase.BATCHING_PASS2
                if ripple_updates:
                    store.batch_mutate(updates=ripple_updates)

                playhead = store.get_playhead()
                if first.relocation is not None:
                    playhead = finalize_playhead(
                        store.read_all(), first.relocation, first.cut_regions, playhead,
                    )
                    store.set_playhead(playhead)
            finally:
                self.phase = ApplierPhase.IDLE

        report.added_ids = [item.id for item in first.batch.adds]
        report.removed_ids = list(first.batch.removes)
        report.updated_ids = [patch.id for patch in first.batch.updates]
        report.rippled_ids = [patch.id for patch in ripple_updates]
        report.skipped_plan_ids = list(first.skipped_plan_ids)
        report.dropped_fragments = first.dropped_fragments
        report.playhead_s = playhead
        report.playhead_relocated = first.relocation is not None

        logger.info(
            "Applied cuts: removed %d items, added %d fragments, rippled %d items",
            len(report.removed_ids), len(report.added_ids), len(report.rippled_ids),
        )
        return report

    def undo(self) -> bool:
        """Restore the track items captured by the last apply().

        Returns True if a snapshot was restored, False if there was none.
        """
        with self._store.lock:
            if self._snapshot is None:
                logger.warning("No cut snapshot to undo")
                return False
            logger.info("Undoing last cuts, restoring %d items", len(self._snapshot))
            self._store.replace_all(self._snapshot.values())
            self._snapshot = None
        return True
