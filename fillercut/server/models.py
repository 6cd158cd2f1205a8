"""Pydantic request/response models for the HTTP API.

WHY: The editor front-end talks to the engine over HTTP. Typed schemas
give request validation, response serialisation and OpenAPI docs for
free, and keep the wire format identical to the JSON files (camelCase).

HOW: Every model derives from ApiModel, which generates camelCase aliases
and accepts either spelling on input. Conversion to and from the core
IR lives next to each model so app.py stays thin.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Wire names are camelCase; Python attribute names are snake_case
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fillercut.core.ir import Cut, CutPlan, FillerSpan, TrackItem


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class TrackItemModel(ApiModel):
    """A placed, trimmed clip segment."""

    id: str = Field(description="Track item id.")
    clip_id: str = Field(description="Source clip id.")
    track_id: str = Field(description="Track the item sits on.")
    in_sec: float = Field(ge=0, description="Trim start within the clip (seconds).")
    out_sec: float = Field(ge=0, description="Trim end within the clip (seconds).")
    track_position: float = Field(ge=0, description="Timeline start of the item (seconds).")

    @classmethod
    def from_item(cls, item: TrackItem) -> "TrackItemModel":
        return cls(
            id=item.id,
            clip_id=item.clip_id,
            track_id=item.track_id,
            in_sec=item.in_s,
            out_sec=item.out_s,
            track_position=item.track_position,
        )

    def to_item(self) -> TrackItem:
        return TrackItem(
            id=self.id,
            clip_id=self.clip_id,
            track_id=self.track_id,
            in_s=self.in_sec,
            out_s=self.out_sec,
            track_position=self.track_position,
        )


class TimelineModel(ApiModel):
    """Full timeline state: track items and playhead."""

    track_items: List[TrackItemModel] = Field(description="All track items, by track then position.")
    playhead_sec: float = Field(default=0.0, ge=0, description="Playhead position (seconds).")


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class DetectRequest(ApiModel):
    """Transcript and options for filler detection."""

    clip_id: str = Field(description="Clip the transcript belongs to.")
    transcript: Dict[str, Any] = Field(
        description="Transcript document, native or whisper.cpp JSON.",
    )
    conf_min: Optional[float] = Field(
        default=None, ge=0, le=1,
        description="Minimum word confidence. Omit to disable the filter.",
    )
    pad_ms: Optional[float] = Field(default=None, description="Padding per side (ms).")
    merge_gap_ms: Optional[float] = Field(default=None, description="Merge gap (ms).")


class FillerSpanModel(ApiModel):
    """A detected filler span in clip-relative time."""

    clip_id: str = Field(description="Clip id.")
    word: str = Field(description="Filler label, 'um/uh' when merged words differ.")
    start_sec: float = Field(description="Raw start (seconds, clip-relative).")
    end_sec: float = Field(description="Raw end (seconds, clip-relative).")
    confidence: float = Field(description="Word confidence (minimum when merged).")
    padded_start: float = Field(description="Padded start (seconds, clip-relative).")
    padded_end: float = Field(description="Padded end (seconds, clip-relative).")

    @classmethod
    def from_span(cls, span: FillerSpan) -> "FillerSpanModel":
        return cls(
            clip_id=span.clip_id,
            word=span.word,
            start_sec=span.start_s,
            end_sec=span.end_s,
            confidence=span.confidence,
            padded_start=span.padded_start,
            padded_end=span.padded_end,
        )

    def to_span(self) -> FillerSpan:
        return FillerSpan(
            clip_id=self.clip_id,
            word=self.word,
            start_s=self.start_sec,
            end_s=self.end_sec,
            confidence=self.confidence,
            padded_start=self.padded_start,
            padded_end=self.padded_end,
        )


# ---------------------------------------------------------------------------
# Cut plans
# ---------------------------------------------------------------------------


class CutModel(ApiModel):
    start_sec: float = Field(description="Cut start (seconds, timeline-relative).")
    end_sec: float = Field(description="Cut end (seconds, timeline-relative).")


class CutPlanModel(ApiModel):
    """Cuts for one track item."""

    track_item_id: str = Field(description="Track item the cuts apply to.")
    cuts: List[CutModel] = Field(description="Timeline ranges to remove, sorted by start.")

    @classmethod
    def from_plan(cls, plan: CutPlan) -> "CutPlanModel":
        return cls(
            track_item_id=plan.track_item_id,
            cuts=[CutModel(start_sec=c.start_s, end_sec=c.end_s) for c in plan.cuts],
        )

    def to_plan(self) -> CutPlan:
        return CutPlan(
            track_item_id=self.track_item_id,
            cuts=[Cut(c.start_sec, c.end_sec) for c in self.cuts],
        )


class PlanRequest(ApiModel):
    """Filler spans to plan against the current timeline."""

    filler_spans: List[FillerSpanModel] = Field(description="Spans from /fillers/detect.")
    ripple_gap_ms: Optional[float] = Field(default=None, description="Cut merge gap (ms).")


class PlanResponse(ApiModel):
    plans: List[CutPlanModel] = Field(description="One plan per affected track item.")
    total_cut_sec: float = Field(description="Total timeline seconds the plans remove.")
    message: Optional[str] = Field(
        default=None,
        description="Set to 'No fillers to cut' when plans is empty.",
    )


class ApplyRequest(ApiModel):
    plans: List[CutPlanModel] = Field(description="Cut plans to apply.")


class ApplyResponse(ApiModel):
    """Result of applying cut plans."""

    added_ids: List[str] = Field(description="Ids of fragments created by splits.")
    removed_ids: List[str] = Field(description="Ids of fully removed track items.")
    updated_ids: List[str] = Field(description="Ids of items trimmed to their first fragment.")
    rippled_ids: List[str] = Field(description="Ids of items moved to close gaps.")
    skipped_plan_ids: List[str] = Field(description="Plan item ids not found on the timeline.")
    playhead_relocated: bool = Field(description="Whether the playhead was moved.")
    timeline: TimelineModel = Field(description="Timeline after the cuts.")


class UndoResponse(ApiModel):
    restored: bool = Field(description="False when there was nothing to undo.")
    timeline: TimelineModel = Field(description="Timeline after the undo.")


class HealthResponse(ApiModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
