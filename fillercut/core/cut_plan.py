"""Cut-plan generation: map clip-relative filler spans onto track items.

WHY: Fillers are detected in source-clip time, but editing happens on the
timeline. A clip may be placed several times, trimmed differently each
time, so one filler can land in zero, one or many track items. The cut
plan is the bridge: per track item, the timeline ranges to delete.

HOW: Fillers are grouped by clip_id. For each track item, the spans that
overlap its trim bounds are clamped to those bounds, converted to
timeline time, sorted, and merged when the gap between two cuts is
within the ripple gap (so no sliver narrower than the threshold is left
behind).

RULES:
- Overlap test is half-open: padded_start < out_s and padded_end > in_s
- Clamp to [in_s, out_s]; discard empty or inverted results
- Merge when next.start_s <= current.end_s + ripple gap
- Items with nothing to cut get no plan; absence means "no change"
- Plans are emitted in the order of the input track items
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from fillercut.config import DEFAULT_RIPPLE_GAP_MS
from fillercut.core.ir import Cut, CutPlan, FillerSpan, TrackItem
from fillercut.core.timebase import approx_lte, clip_to_timeline, overlaps

logger = logging.getLogger(__name__)


def merge_cuts(cuts: Sequence[Cut], gap_s: float = 0.0) -> list[Cut]:
    """Sort cuts and merge those whose gap is at most gap_s.

    Overlapping and touching cuts always merge.
    """
    if not cuts:
        return []
    ordered = sorted(cuts, key=lambda c: (c.start_s, c.end_s))
    merged: list[Cut] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if approx_lte(nxt.start_s, current.end_s + gap_s):
            current = Cut(current.start_s, max(current.end_s, nxt.end_s))
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def _cuts_for_item(item: TrackItem, spans: Sequence[FillerSpan]) -> list[Cut]:
    """Clamp overlapping spans to the item's trim bounds, in timeline time."""
    cuts: list[Cut] = []
    for span in spans:
        if not overlaps(span.padded_start, span.padded_end, item.in_s, item.out_s):
            continue
        clip_start = max(span.padded_start, item.in_s)
        clip_end = min(span.padded_end, item.out_s)
        if clip_start >= clip_end:
            continue
        cuts.append(Cut(
            start_s=clip_to_timeline(clip_start, item),
            end_s=clip_to_timeline(clip_end, item),
        ))
    return cuts


def generate_cut_plan(
    track_items: Sequence[TrackItem],
    filler_spans: Sequence[FillerSpan],
    ripple_gap_ms: float = DEFAULT_RIPPLE_GAP_MS,
) -> list[CutPlan]:
    """Generate one cut plan per track item that contains fillers.

    Example: item trackPosition=10, in_s=2, out_s=5 and a filler at clip
    time 3.0–3.5 produce a cut at timeline 11.0–11.5.

    Args:
        track_items: All track items on the timeline.
        filler_spans: Detected filler spans (clip-relative).
        ripple_gap_ms: Cuts closer than this are merged. Clamped to >= 0.

    Returns:
        CutPlan list, possibly empty.
    """
    ripple_gap_s = max(0.0, ripple_gap_ms) / 1000.0

    spans_by_clip: Dict[str, List[FillerSpan]] = defaultdict(list)
    for span in filler_spans:
        spans_by_clip[span.clip_id].append(span)

    plans: list[CutPlan] = []
    for item in track_items:
        spans = spans_by_clip.get(item.clip_id)
        if not spans:
            continue
        cuts = merge_cuts(_cuts_for_item(item, spans), ripple_gap_s)
        if cuts:
            plans.append(CutPlan(track_item_id=item.id, cuts=cuts))

    logger.debug(
        "Generated %d cut plans from %d filler spans over %d track items",
        len(plans), len(filler_spans), len(track_items),
    )
    return plans


def total_cut_duration(plans: Sequence[CutPlan]) -> float:
    """Total timeline seconds the plans would remove."""
    return sum(cut.duration_s for plan in plans for cut in plan.cuts)
