"""Two-pass cut-plan application as a pure timeline reducer.

WHY: Applying cuts means splitting track items into surviving fragments,
removing fully-cut items, and ripple-shifting everything downstream so
the timeline has no holes. Doing fragmentation and ripple in one pass is
where most correctness bugs live, so the work is split in two passes
over an immutable snapshot. Nothing here touches a live store; the
store-facing wrapper (fillercut.timeline.applier) commits the batches.

HOW: fragment_pass() walks each plan against its item and produces the
Pass 1 batch (first fragment updates the item, later fragments are new
items, fully consumed items are removed), tags every item as Unchanged
or Fragment, and records the cut regions per track. ripple_pass() reads
the post-Pass-1 items and shifts them back by the cuts that precede them
on their track. finalize_playhead() relocates a playhead that sat inside
a removed range. apply_cut_plans() composes the three.

RULES:
- Fragment positions are rippled within their own item during Pass 1
- Pass 2 never re-applies an item's own cuts to its fragments
- Each track's cuts form one flat, globally ordered list; an item moves
  back by every cut on its track that ends at or before its original
  position, whichever item the cut came from
- Tracks never shift each other
- A plan whose item is missing is logged and skipped
- Fragments with inverted, out-of-bounds or sub-MIN_SEGMENT_SEC clip
  bounds are logged and dropped, and their time is closed like a cut;
  an item with no valid fragment is removed
- A playhead inside a removed range moves to the first item starting at
  or after the (rippled) end of that range, else to 0
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from fillercut.config import MIN_SEGMENT_SEC, TIME_EPSILON
from fillercut.core.cut_plan import merge_cuts
from fillercut.core.ir import Cut, CutPlan, MutationBatch, TrackItem, TrackItemPatch
from fillercut.core.timebase import (
    approx_eq,
    approx_gte,
    approx_lte,
    timeline_to_clip,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def new_item_id() -> str:
    """Fresh id for a fragment created by a split."""
    return "item-{}".format(uuid.uuid4().hex)


# ---------------------------------------------------------------------------
# Snapshot and tagged items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineSnapshot:
    """Immutable view of the timeline: track items by id plus the playhead."""

    items: Mapping[str, TrackItem] = field(default_factory=dict)
    playhead_s: float = 0.0

    @classmethod
    def from_items(cls, items: Iterable[TrackItem], playhead_s: float = 0.0) -> "TimelineSnapshot":
        return cls(items={item.id: item for item in items}, playhead_s=playhead_s)


@dataclass(frozen=True)
class Unchanged:
    """An item Pass 1 did not touch; its position is still pre-cut."""

    item: TrackItem


@dataclass(frozen=True)
class Fragment:
    """A surviving slice of a cut item.

    origin_position is where the slice started on the timeline before any
    cut was applied; item.track_position already includes the shift from
    the source item's own cuts.
    """

    item: TrackItem
    source_id: str
    origin_position: float


TaggedItem = Union[Unchanged, Fragment]


@dataclass(frozen=True)
class CutRegion:
    """A cut that was actually applied, remembered for ripple and playhead."""

    track_id: str
    track_item_id: str
    start_s: float
    end_s: float

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s


@dataclass(frozen=True)
class PlayheadRelocation:
    """Where the playhead should go, in pre-ripple timeline time.

    track_id is None for the fallback-to-zero case (item fully removed).
    """

    target_s: float
    track_id: Optional[str] = None


@dataclass
class FragmentPassResult:
    """Everything Pass 1 produced."""

    batch: MutationBatch
    tagged: Dict[str, TaggedItem]
    cut_regions: List[CutRegion]
    relocation: Optional[PlayheadRelocation] = None
    skipped_plan_ids: List[str] = field(default_factory=list)
    dropped_fragments: int = 0


@dataclass
class SpliceResult:
    """Outcome of apply_cut_plans(): the new snapshot and both batches."""

    snapshot: TimelineSnapshot
    pass1: MutationBatch
    pass2: MutationBatch
    playhead_relocated: bool = False
    skipped_plan_ids: List[str] = field(default_factory=list)
    dropped_fragments: int = 0


# ---------------------------------------------------------------------------
# Batch application (shared with the in-memory store)
# ---------------------------------------------------------------------------


def apply_batch(items: Mapping[str, TrackItem], batch: MutationBatch) -> Dict[str, TrackItem]:
    """Return a new id → item mapping with the batch applied.

    Order is removes, then updates, then adds. Updates for ids that are
    not present are ignored.
    """
    result: Dict[str, TrackItem] = dict(items)
    for item_id in batch.removes:
        result.pop(item_id, None)
    for patch in batch.updates:
        current = result.get(patch.id)
        if current is not None:
            result[patch.id] = patch.apply_to(current)
    for item in batch.adds:
        result[item.id] = item
    return result


# ---------------------------------------------------------------------------
# Pass 1: fragmentation
# ---------------------------------------------------------------------------


def _combine_plans(plans: Sequence[CutPlan]) -> "OrderedDict[str, List[Cut]]":
    """Group cuts by track item id, keeping first-seen plan order."""
    combined: "OrderedDict[str, List[Cut]]" = OrderedDict()
    for plan in plans:
        combined.setdefault(plan.track_item_id, []).extend(plan.cuts)
    return combined


def _clip_cuts_to_item(cuts: Sequence[Cut], item: TrackItem) -> list[Cut]:
    """Clamp cuts to the item's timeline range and merge overlaps."""
    start, end = item.track_position, item.end_position
    clipped: list[Cut] = []
    for cut in cuts:
        cut_start = max(cut.start_s, start)
        cut_end = min(cut.end_s, end)
        if cut_end - cut_start > TIME_EPSILON:
            clipped.append(Cut(cut_start, cut_end))
    return merge_cuts(clipped)


def _surviving_ranges(item: TrackItem, cuts: Sequence[Cut]) -> list[tuple[float, float]]:
    """Sweep the item's timeline range and collect the parts no cut covers."""
    ranges: list[tuple[float, float]] = []
    cursor = item.track_position
    for cut in cuts:
        if cut.start_s - cursor > TIME_EPSILON:
            ranges.append((cursor, cut.start_s))
        cursor = max(cursor, cut.end_s)
    if item.end_position - cursor > TIME_EPSILON:
        ranges.append((cursor, item.end_position))
    return ranges


def _fragment_clip_bounds(
    item: TrackItem,
    timeline_start: float,
    timeline_end: float,
) -> Optional[tuple[float, float]]:
    """Inverse-transform a surviving range and validate its clip bounds.

    Returns None when the fragment is inverted, outside the item's trim
    bounds, or shorter than MIN_SEGMENT_SEC.
    """
    new_in = timeline_to_clip(timeline_start, item)
    new_out = timeline_to_clip(timeline_end, item)

    # Snap float noise at the item edges back onto the exact trim bounds
    if approx_eq(new_in, item.in_s):
        new_in = item.in_s
    if approx_eq(new_out, item.out_s):
        new_out = item.out_s

    if not new_in < new_out:
        return None
    if not (approx_gte(new_in, item.in_s) and approx_lte(new_out, item.out_s)):
        return None
    new_in = max(new_in, item.in_s)
    new_out = min(new_out, item.out_s)
    if new_out - new_in + TIME_EPSILON < MIN_SEGMENT_SEC:
        return None
    return new_in, new_out


def fragment_pass(
    snapshot: TimelineSnapshot,
    plans: Sequence[CutPlan],
    id_factory: IdFactory = new_item_id,
) -> FragmentPassResult:
    """Pass 1: split planned items into fragments and build the first batch.

    WHY: Each plan turns one item into zero or more fragments. The first
    fragment keeps the item's id so selection and references survive;
    the rest become new items on the same clip and track.

    HOW: For each item, clamp and merge its cuts, sweep the uncovered
    ranges, validate each range's clip bounds, and pull each fragment
    back by the item's own cuts that end before it. Playhead containment
    is checked against every cut as it is swept.

    RULES:
    - Multiple plans for the same item are combined into one
    - Zero valid fragments → the item is removed
    - Playhead inside a cut → relocation target is the end of that cut
    - Playhead inside a fully removed item → relocation target is 0
    - The first relocation found wins
    """
    playhead = snapshot.playhead_s
    adds: list[TrackItem] = []
    removes: list[str] = []
    updates: list[TrackItemPatch] = []
    tagged: Dict[str, TaggedItem] = {
        item_id: Unchanged(item) for item_id, item in snapshot.items.items()
    }
    cut_regions: list[CutRegion] = []
    relocation: Optional[PlayheadRelocation] = None
    skipped: list[str] = []
    dropped = 0

    for item_id, raw_cuts in _combine_plans(plans).items():
        item = snapshot.items.get(item_id)
        if item is None:
            logger.warning("Track item %s not found, skipping its cut plan", item_id)
            skipped.append(item_id)
            continue

        cuts = _clip_cuts_to_item(raw_cuts, item)
        if not cuts:
            logger.info("Cut plan for %s lies outside the item, nothing to cut", item_id)
            continue

        relocation_before = relocation
        for cut in cuts:
            cut_regions.append(CutRegion(
                track_id=item.track_id,
                track_item_id=item.id,
                start_s=cut.start_s,
                end_s=cut.end_s,
            ))
            if relocation is None and cut.start_s <= playhead < cut.end_s:
                relocation = PlayheadRelocation(target_s=cut.end_s, track_id=item.track_id)

        playhead_in_item = item.track_position <= playhead < item.end_position

        fragments: list[Fragment] = []
        removed: list[Cut] = list(cuts)
        for timeline_start, timeline_end in _surviving_ranges(item, cuts):
            bounds = _fragment_clip_bounds(item, timeline_start, timeline_end)
            if bounds is None:
                logger.warning(
                    "Dropping invalid fragment %.6f-%.6f of track item %s",
                    timeline_start, timeline_end, item.id,
                )
                dropped += 1
                # A dropped sliver is removed time like any cut
                removed.append(Cut(timeline_start, timeline_end))
                cut_regions.append(CutRegion(
                    track_id=item.track_id,
                    track_item_id=item.id,
                    start_s=timeline_start,
                    end_s=timeline_end,
                ))
                continue
            new_in, new_out = bounds
            shift = sum(
                cut.duration_s for cut in removed if approx_lte(cut.end_s, timeline_start)
            )
            fragment_id = item.id if not fragments else id_factory()
            fragments.append(Fragment(
                item=TrackItem(
                    id=fragment_id,
                    clip_id=item.clip_id,
                    track_id=item.track_id,
                    in_s=new_in,
                    out_s=new_out,
                    track_position=timeline_start - shift,
                ),
                source_id=item.id,
                origin_position=timeline_start,
            ))

        if not fragments:
            removes.append(item.id)
            del tagged[item.id]
            if playhead_in_item and relocation_before is None:
                relocation = PlayheadRelocation(target_s=0.0)
            continue

        first = fragments[0].item
        updates.append(TrackItemPatch(
            id=first.id,
            in_s=first.in_s,
            out_s=first.out_s,
            track_position=first.track_position,
        ))
        adds.extend(fragment.item for fragment in fragments[1:])
        for fragment in fragments:
            tagged[fragment.item.id] = fragment

    logger.info(
        "Fragment pass: %d updated, %d added, %d removed, %d plans skipped",
        len(updates), len(adds), len(removes), len(skipped),
    )
    return FragmentPassResult(
        batch=MutationBatch(adds=adds, removes=removes, updates=updates),
        tagged=tagged,
        cut_regions=cut_regions,
        relocation=relocation,
        skipped_plan_ids=skipped,
        dropped_fragments=dropped,
    )


# ---------------------------------------------------------------------------
# Pass 2: ripple tightening
# ---------------------------------------------------------------------------


def _regions_by_track(cut_regions: Iterable[CutRegion]) -> Dict[str, List[CutRegion]]:
    grouped: Dict[str, List[CutRegion]] = defaultdict(list)
    for region in cut_regions:
        grouped[region.track_id].append(region)
    for regions in grouped.values():
        regions.sort(key=lambda r: r.start_s)
    return grouped


def _removed_before(
    regions: Iterable[CutRegion],
    position: float,
    exclude_item_id: Optional[str] = None,
) -> float:
    return sum(
        region.duration_s
        for region in regions
        if region.track_item_id != exclude_item_id and approx_lte(region.end_s, position)
    )


def ripple_pass(
    items: Mapping[str, TrackItem],
    tagged: Mapping[str, TaggedItem],
    cut_regions: Sequence[CutRegion],
) -> list[TrackItemPatch]:
    """Pass 2: shift items back to close the gaps the cuts left behind.

    WHY: After Pass 1, untouched items downstream of a cut still sit at
    their old positions, and fragments of a later item know nothing of
    cuts made in earlier items on the same track.

    HOW: Group cut regions by track. Unchanged items move back by every
    cut on their track ending at or before their position. Fragments move
    back by the cuts of *other* items on their track ending at or before
    their original position; their own item's cuts were applied in Pass 1.

    RULES:
    - items is the fresh post-Pass-1 state
    - Items with no tag are treated as Unchanged
    - Only items that actually move get a patch
    """
    regions_by_track = _regions_by_track(cut_regions)
    patches: list[TrackItemPatch] = []

    ordered = sorted(items.values(), key=lambda item: (item.track_id, item.track_position, item.id))
    for item in ordered:
        regions = regions_by_track.get(item.track_id)
        if not regions:
            continue
        tag = tagged.get(item.id, Unchanged(item))
        if isinstance(tag, Fragment):
            shift = _removed_before(regions, tag.origin_position, exclude_item_id=tag.source_id)
        else:
            shift = _removed_before(regions, item.track_position)
        if shift > TIME_EPSILON:
            patches.append(TrackItemPatch(id=item.id, track_position=item.track_position - shift))

    if patches:
        logger.info("Ripple pass: shifting %d track items", len(patches))
    return patches


# ---------------------------------------------------------------------------
# Playhead
# ---------------------------------------------------------------------------


def finalize_playhead(
    items: Iterable[TrackItem],
    relocation: Optional[PlayheadRelocation],
    cut_regions: Sequence[CutRegion],
    current_s: float,
) -> float:
    """Resolve the playhead after both passes.

    The relocation target is mapped through its track's ripple shift, then
    the playhead lands on the first item starting at or after it. With no
    such item it goes to 0. Without a relocation the playhead stays put.
    """
    if relocation is None:
        return current_s

    target = relocation.target_s
    if relocation.track_id is not None:
        regions = _regions_by_track(cut_regions).get(relocation.track_id, [])
        target = max(0.0, target - _removed_before(regions, target))

    for item in sorted(items, key=lambda i: (i.track_position, i.track_id, i.id)):
        if approx_gte(item.track_position, target):
            return item.track_position
    return 0.0


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def apply_cut_plans(
    snapshot: TimelineSnapshot,
    plans: Sequence[CutPlan],
    id_factory: IdFactory = new_item_id,
) -> SpliceResult:
    """Apply cut plans to a snapshot and return the resulting snapshot.

    Example: item a (in 0, out 10, at 0) with cut 3.96–4.34 becomes
    a (in 0, out 3.96, at 0) plus a new item (in 4.34, out 10, at 3.96).

    Args:
        snapshot: Timeline state before the cuts.
        plans: Cut plans from generate_cut_plan().
        id_factory: Produces ids for new fragments.

    Returns:
        SpliceResult with the new snapshot and the two batches a store
        would commit, in order.
    """
    first = fragment_pass(snapshot, plans, id_factory)
    after_pass1 = apply_batch(snapshot.items, first.batch)

    ripple_updates = ripple_pass(after_pass1, first.tagged, first.cut_regions)
    second = MutationBatch(updates=ripple_updates)
    after_pass2 = apply_batch(after_pass1, second)

    playhead = finalize_playhead(
        after_pass2.values(), first.relocation, first.cut_regions, snapshot.playhead_s,
    )

    return SpliceResult(
        snapshot=TimelineSnapshot(items=after_pass2, playhead_s=playhead),
        pass1=first.batch,
        pass2=second,
        playhead_relocated=first.relocation is not None,
        skipped_plan_ids=first.skipped_plan_ids,
        dropped_fragments=first.dropped_fragments,
    )
