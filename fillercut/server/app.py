"""FastAPI application exposing the cut engine to the editor front-end.

WHY: The editor UI runs in a separate process. It needs to load its
timeline into the engine, detect fillers from a transcript, review the
cut plan, apply it and take it back, over a small local HTTP API with
OpenAPI docs.

HOW: One in-memory editing session per process: a TimelineStore and a
CutPlanApplier bound to it, created at import time like a singleton.
Endpoints convert pydantic models to the core IR and back.

RULES:
- PUT /timeline replaces the timeline and discards any undo snapshot
- POST /cut-plans plans against the current timeline; an empty result
  carries the message "No fillers to cut"
- POST /cut-plans/apply and POST /undo run under the store lock
- Invalid transcripts and timelines return 422
- Unknown track item ids return 404
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import FastAPI, HTTPException

from fillercut import __version__
from fillercut.config import DEFAULT_MERGE_GAP_MS, DEFAULT_PAD_MS, DEFAULT_RIPPLE_GAP_MS
from fillercut.core.cut_plan import generate_cut_plan, total_cut_duration
from fillercut.core.fillers import detect_filler_spans
from fillercut.io.transcripts import TranscriptFormatError, parse_transcript
from fillercut.server.models import (
    ApplyRequest,
    ApplyResponse,
    CutPlanModel,
    DetectRequest,
    FillerSpanModel,
    HealthResponse,
    PlanRequest,
    PlanResponse,
    TimelineModel,
    TrackItemModel,
    UndoResponse,
)
from fillercut.timeline.applier import CutPlanApplier
from fillercut.timeline.store import InMemoryTimelineStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and session setup
# ---------------------------------------------------------------------------

timeline_store = InMemoryTimelineStore()
applier = CutPlanApplier(timeline_store)

app = FastAPI(
    title="fillercut API",
    description=(
        "Detect filler words in transcripts, plan timeline cuts, apply them "
        "with ripple tightening, and undo the last application."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


def _timeline_response() -> TimelineModel:
    return TimelineModel(
        track_items=[TrackItemModel.from_item(item) for item in timeline_store.read_all()],
        playhead_sec=timeline_store.get_playhead(),
    )


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


@app.get("/timeline", response_model=TimelineModel, tags=["timeline"])
async def get_timeline() -> TimelineModel:
    """Return the current timeline."""
    return _timeline_response()


@app.put("/timeline", response_model=TimelineModel, tags=["timeline"])
async def put_timeline(body: TimelineModel) -> TimelineModel:
    """Replace the timeline. Any pending undo snapshot is discarded."""
    items = [model.to_item() for model in body.track_items]
    ids = [item.id for item in items]
    if len(set(ids)) != len(ids):
        raise HTTPException(status_code=422, detail="Duplicate track item ids")
    for item in items:
        if not item.in_s < item.out_s:
            raise HTTPException(
                status_code=422,
                detail="Track item {} has inSec >= outSec".format(item.id),
            )
    with timeline_store.lock:
        timeline_store.replace_all(items)
        timeline_store.set_playhead(body.playhead_sec)
        applier.discard_snapshot()
    logger.info("Loaded timeline with %d track items", len(items))
    return _timeline_response()


@app.get("/timeline/items/{item_id}", response_model=TrackItemModel, tags=["timeline"])
async def get_track_item(item_id: str) -> TrackItemModel:
    """Return one track item. Returns 404 if it is not on the timeline."""
    item = timeline_store.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Track item not found")
    return TrackItemModel.from_item(item)


# ---------------------------------------------------------------------------
# Detection and planning
# ---------------------------------------------------------------------------


@app.post("/fillers/detect", response_model=List[FillerSpanModel], tags=["fillers"])
async def detect_fillers(body: DetectRequest) -> List[FillerSpanModel]:
    """Detect filler spans in a transcript for one clip."""
    try:
        transcript = parse_transcript(body.transcript)
    except TranscriptFormatError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    spans = detect_filler_spans(
        transcript,
        body.clip_id,
        conf_min=body.conf_min,
        pad_ms=DEFAULT_PAD_MS if body.pad_ms is None else body.pad_ms,
        merge_gap_ms=DEFAULT_MERGE_GAP_MS if body.merge_gap_ms is None else body.merge_gap_ms,
    )
    return [FillerSpanModel.from_span(span) for span in spans]


@app.post("/cut-plans", response_model=PlanResponse, tags=["cuts"])
async def create_cut_plans(body: PlanRequest) -> PlanResponse:
    """Plan cuts for the given filler spans against the current timeline."""
    plans = generate_cut_plan(
        timeline_store.read_all(),
        [model.to_span() for model in body.filler_spans],
        ripple_gap_ms=DEFAULT_RIPPLE_GAP_MS if body.ripple_gap_ms is None else body.ripple_gap_ms,
    )
    return PlanResponse(
        plans=[CutPlanModel.from_plan(plan) for plan in plans],
        total_cut_sec=total_cut_duration(plans),
        message=None if plans else "No fillers to cut",
    )


# ---------------------------------------------------------------------------
# Apply and undo
# ---------------------------------------------------------------------------


@app.post("/cut-plans/apply", response_model=ApplyResponse, tags=["cuts"])
async def apply_cut_plans(body: ApplyRequest) -> ApplyResponse:
    """Apply cut plans to the timeline with ripple tightening."""
    report = applier.apply([model.to_plan() for model in body.plans])
    return ApplyResponse(
        added_ids=report.added_ids,
        removed_ids=report.removed_ids,
        updated_ids=report.updated_ids,
        rippled_ids=report.rippled_ids,
        skipped_plan_ids=report.skipped_plan_ids,
        playhead_relocated=report.playhead_relocated,
        timeline=_timeline_response(),
    )


@app.post("/undo", response_model=UndoResponse, tags=["cuts"])
async def undo_cuts() -> UndoResponse:
    """Restore the timeline from before the last apply, if any."""
    restored = applier.undo()
    return UndoResponse(restored=restored, timeline=_timeline_response())


@app.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Start the API server with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="127.0.0.1", port=8000)
