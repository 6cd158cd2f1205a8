"""Coordinate transforms and epsilon-aware interval comparisons.

WHY: Cut boundaries are computed by adding and subtracting float seconds
across two coordinate systems. Exact comparisons at those boundaries
flip the wrong way often enough to create zero-length slivers or to
reject valid fragments. One epsilon and one set of helpers keeps every
call site consistent.

HOW: clip_to_timeline() and timeline_to_clip() implement the transform
for a single TrackItem. approx_eq/approx_lte/approx_gte compare with
TIME_EPSILON tolerance. overlaps() is the half-open interval test used
throughout the planner.

RULES:
- timeline = item.track_position + (clip - item.in_s)
- clip = timeline - item.track_position + item.in_s
- The transform is only meaningful for clip ∈ [in_s, out_s]
- No module re-derives its own epsilon; import TIME_EPSILON from config
"""

from __future__ import annotations

from fillercut.config import TIME_EPSILON
from fillercut.core.ir import TrackItem


def clip_to_timeline(clip_time: float, item: TrackItem) -> float:
    """Convert clip-relative time to timeline-relative time for an item.

    Example: item at track_position=10 with in_s=2 maps clip time 3 to 11.
    """
    return item.track_position + (clip_time - item.in_s)


def timeline_to_clip(timeline_time: float, item: TrackItem) -> float:
    """Convert timeline-relative time to clip-relative time for an item."""
    return timeline_time - item.track_position + item.in_s


def approx_eq(a: float, b: float, eps: float = TIME_EPSILON) -> bool:
    return abs(a - b) <= eps


def approx_lte(a: float, b: float, eps: float = TIME_EPSILON) -> bool:
    """True when a <= b, allowing a to exceed b by at most eps."""
    return a <= b + eps


def approx_gte(a: float, b: float, eps: float = TIME_EPSILON) -> bool:
    """True when a >= b, allowing a to fall short of b by at most eps."""
    return a + eps >= b


def overlaps(start_a: float, end_a: float, start_b: float, end_b: float) -> bool:
    """Half-open interval overlap test for [start_a, end_a) and [start_b, end_b)."""
    return start_a < end_b and end_a > start_b
