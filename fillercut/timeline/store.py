"""Timeline store interface and a thread-safe in-memory implementation.

WHY: The editor's document store owns the authoritative set of track
items. The cut engine only needs four operations from it (read
everything, commit a batch, read and set the playhead) plus a lock so
one logical mutation runs at a time. Keeping that surface small lets
the engine run against the real editor store or against the in-memory
store used by the CLI, the HTTP API and the tests.

HOW: TimelineStore is an ABC with the collaborator contract.
InMemoryTimelineStore keeps items in a plain dict keyed by id and guards
every access with a threading.RLock, exposed as ``lock`` so callers can
hold it across a multi-step operation.

RULES:
- batch_mutate() commits removes → updates → adds as one unit under the lock
- Updates for unknown ids are ignored (the item was removed concurrently
  or by the same batch)
- read_all() returns items ordered by track, then position
- set_playhead() clamps negative values to 0
- replace_all() swaps the whole item map (used by undo)
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

from fillercut.core.ir import MutationBatch, TrackItem, TrackItemPatch
from fillercut.core.splice import apply_batch

logger = logging.getLogger(__name__)


class TimelineStore(ABC):
    """Mutation interface the cut applier consumes."""

    @property
    @abstractmethod
    def lock(self) -> "threading.RLock":
        """Re-entrant lock enforcing one logical mutation at a time."""

    @abstractmethod
    def read_all(self) -> List[TrackItem]:
        """Return every track item."""

    @abstractmethod
    def batch_mutate(
        self,
        adds: Sequence[TrackItem] = (),
        removes: Sequence[str] = (),
        updates: Sequence[TrackItemPatch] = (),
    ) -> None:
        """Commit adds, removes and updates together."""

    @abstractmethod
    def replace_all(self, items: Iterable[TrackItem]) -> None:
        """Replace the whole track-item map."""

    @abstractmethod
    def get_playhead(self) -> float:
        """Current playhead position in timeline seconds."""

    @abstractmethod
    def set_playhead(self, position_s: float) -> None:
        """Move the playhead."""


class InMemoryTimelineStore(TimelineStore):
    """Dict-backed timeline store.

    WHY: The CLI and the HTTP API have no editor document behind them, and
    tests need a store whose state they can inspect directly.

    HOW: Items live in a dict keyed by id. Every public method takes
    self._lock; batch_mutate() delegates to core.splice.apply_batch() so
    the store and the pure reducer agree on batch semantics.
    """

    def __init__(
        self,
        items: Optional[Iterable[TrackItem]] = None,
        playhead_s: float = 0.0,
    ) -> None:
        self._items: Dict[str, TrackItem] = {item.id: item for item in (items or [])}
        self._playhead_s = max(0.0, playhead_s)
        self._lock = threading.RLock()

    @property
    def lock(self) -> "threading.RLock":
        return self._lock

    def read_all(self) -> List[TrackItem]:
        with self._lock:
            return sorted(
                self._items.values(),
                key=lambda item: (item.track_id, item.track_position, item.id),
            )

    def get(self, item_id: str) -> Optional[TrackItem]:
        with self._lock:
            return self._items.get(item_id)

    def batch_mutate(
        self,
        adds: Sequence[TrackItem] = (),
        removes: Sequence[str] = (),
        updates: Sequence[TrackItemPatch] = (),
    ) -> None:
        batch = MutationBatch(adds=list(adds), removes=list(removes), updates=list(updates))
        if batch.is_empty:
            return
        with self._lock:
            self._items = apply_batch(self._items, batch)
        logger.debug(
            "Committed batch: %d added, %d removed, %d updated",
            len(batch.adds), len(batch.removes), len(batch.updates),
        )

    def replace_all(self, items: Iterable[TrackItem]) -> None:
        with self._lock:
            self._items = {item.id: item for item in items}

    def get_playhead(self) -> float:
        with self._lock:
            return self._playhead_s

    def set_playhead(self, position_s: float) -> None:
        with self._lock:
            self._playhead_s = max(0.0, position_s)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
