"""Shared test fixtures for the fillercut test suite.

WHY: Most test modules need the same small timelines and transcripts,
in particular the reference scenario of one 10-second item with a single
"um" at 4.0–4.3s. Centralising them keeps expected values in one place.

HOW: Plain helper functions build TrackItems and Words with short
signatures; pytest fixtures wrap the reference scenario and a
deterministic fragment id factory.

RULES:
- Times are chosen so expected values can be written by hand
- Fragment ids from the factory are "frag-1", "frag-2", ... in creation order
- Floating-point comparisons use pytest.approx
"""

from __future__ import annotations

import itertools
from typing import Iterable, List

import pytest

from fillercut.core.ir import TrackItem, Transcript, Word


def make_item(
    item_id: str,
    in_s: float,
    out_s: float,
    position: float,
    track_id: str = "t1",
    clip_id: str = "c1",
) -> TrackItem:
    return TrackItem(
        id=item_id,
        clip_id=clip_id,
        track_id=track_id,
        in_s=in_s,
        out_s=out_s,
        track_position=position,
    )


def make_transcript(*words: tuple) -> Transcript:
    """Build a Transcript from (text, start, end[, confidence]) tuples."""
    built = [
        Word(text=w[0], start_s=w[1], end_s=w[2], confidence=w[3] if len(w) > 3 else 0.95)
        for w in words
    ]
    return Transcript(
        words=built,
        duration_s=max((w.end_s for w in built), default=0.0),
        audio_duration_s=max((w.end_s for w in built), default=0.0),
        model_version="test-model",
    )


def assert_no_overlap(items: Iterable[TrackItem]) -> None:
    """Assert that no two items on the same track overlap."""
    by_track = {}
    for item in items:
        by_track.setdefault(item.track_id, []).append(item)
    for track_items in by_track.values():
        ordered = sorted(track_items, key=lambda i: i.track_position)
        for left, right in zip(ordered, ordered[1:]):
            assert left.end_position <= right.track_position + 1e-9, (
                "{} overlaps {}".format(left, right)
            )


def by_position(items: Iterable[TrackItem]) -> List[TrackItem]:
    return sorted(items, key=lambda i: (i.track_id, i.track_position))


@pytest.fixture
def id_factory():
    """Deterministic fragment ids: frag-1, frag-2, ..."""
    counter = itertools.count(1)
    return lambda: "frag-{}".format(next(counter))


@pytest.fixture
def reference_item():
    """The 10-second item used by the end-to-end scenario."""
    return make_item("a", 0.0, 10.0, 0.0)


@pytest.fixture
def reference_transcript():
    """A clip transcript with an "um" at 4.0–4.3s and a low-confidence "So,"."""
    return make_transcript(
        ("So,", 0.5, 0.8, 0.4),
        ("today", 1.0, 1.5),
        ("we", 1.6, 1.8),
        ("talk", 1.9, 2.3),
        ("about", 2.4, 2.8),
        ("editing.", 2.9, 3.6),
        ("Um", 4.0, 4.3, 0.9),
        ("first", 4.5, 4.9),
        ("step", 5.0, 5.4),
    )
