"""Dataclasses shared by the detection, planning and splicing stages.

WHY: The pipeline moves data through two coordinate systems: clip-relative
time (seconds into the source media) and timeline-relative time (seconds
into the edited sequence). Mixing them up is the classic bug in this kind
of code, so every type states which space its times live in.

HOW: Frozen dataclasses form the vocabulary of the engine:
  Word: one transcribed word (clip-relative)
  Transcript: the word list plus duration and model metadata
  FillerSpan: a detected filler with padding (clip-relative)
  TrackItem: a trimmed, placed segment of a clip on a track
  Cut: a range to delete (timeline-relative)
  CutPlan: all cuts for one track item
  TrackItemPatch, MutationBatch: proposed store mutations

RULES:
- Every time value is float seconds
- FillerSpan and Word times are clip-relative
- Cut times are timeline-relative
- TrackItem.in_s/out_s are clip-relative; track_position is timeline-relative
- Instances are immutable; use dataclasses.replace() to derive new ones
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class Word:
    """A single transcribed word with clip-relative timing."""

    text: str
    start_s: float
    end_s: float
    confidence: float


@dataclass(frozen=True)
class Transcript:
    """Word-level transcript of one source clip.

    RULES:
    - words: in transcript order (normally ascending start_s)
    - duration_s: end of the last word
    - audio_duration_s: duration of the analysed audio, when known
    - model_version: identifier of the speech-to-text model
    """

    words: list[Word] = field(default_factory=list)
    duration_s: float = 0.0
    audio_duration_s: float = 0.0
    model_version: str = ""


@dataclass(frozen=True)
class FillerSpan:
    """A detected filler word (or merged run of fillers) in one clip.

    WHY: The raw word bounds are kept for display; the padded bounds are
    what actually gets cut, so breath sounds around the filler go too.

    RULES:
    - word: normalised filler text, "um/uh" when merged words differ
    - start_s / end_s: raw word bounds (clip-relative)
    - padded_start >= 0; padded_end >= end_s
    """

    clip_id: str
    word: str
    start_s: float
    end_s: float
    confidence: float
    padded_start: float
    padded_end: float


@dataclass(frozen=True)
class TrackItem:
    """A trimmed reference to a source clip placed on a track.

    RULES:
    - in_s < out_s (clip-relative trim bounds)
    - out_s - in_s >= MIN_SEGMENT_SEC
    - track_position is the timeline-relative start of the item
    """

    id: str
    clip_id: str
    track_id: str
    in_s: float
    out_s: float
    track_position: float

    @property
    def duration_s(self) -> float:
        return self.out_s - self.in_s

    @property
    def end_position(self) -> float:
        """Timeline-relative end (exclusive) of the item."""
        return self.track_position + self.duration_s


@dataclass(frozen=True)
class Cut:
    """A timeline-relative range scheduled for removal."""

    start_s: float
    end_s: float

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s


@dataclass(frozen=True)
class CutPlan:
    """The cuts to apply to one track item.

    RULES:
    - One plan per affected TrackItem; unaffected items get no plan
    - cuts are sorted by start and non-overlapping when produced by
      generate_cut_plan(); the applier re-sorts them anyway
    """

    track_item_id: str
    cuts: list[Cut] = field(default_factory=list)


@dataclass(frozen=True)
class TrackItemPatch:
    """Partial update to a track item. None means "leave unchanged"."""

    id: str
    in_s: float | None = None
    out_s: float | None = None
    track_position: float | None = None

    def apply_to(self, item: TrackItem) -> TrackItem:
        changes = {
            name: value
            for name, value in (
                ("in_s", self.in_s),
                ("out_s", self.out_s),
                ("track_position", self.track_position),
            )
            if value is not None
        }
        return replace(item, **changes)


@dataclass(frozen=True)
class MutationBatch:
    """Adds, removes and updates that commit together against the store.

    RULES:
    - Applied in the order removes → updates → adds
    - Updates for ids not present are ignored
    """

    adds: list[TrackItem] = field(default_factory=list)
    removes: list[str] = field(default_factory=list)
    updates: list[TrackItemPatch] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.adds or self.removes or self.updates)
