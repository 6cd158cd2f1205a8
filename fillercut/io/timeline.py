"""Timeline, cut-plan and filler-span JSON documents.

WHY: The CLI and the HTTP API exchange timelines and plans with the
editor as JSON. The editor's project files use camelCase keys
(``trackItems``, ``inSec``, ``trackPosition``); these helpers keep that
shape at the boundary and the snake_case IR inside.

HOW: Each document type has a jsonschema schema, a ``*_from_dict`` parser
that validates before building IR objects, and a ``*_to_dict`` serialiser.
load_/save_ wrappers add file I/O.

RULES:
- Timeline document: {"trackItems": [...], "playheadSec": float}
- trackItems may also be an object keyed by id (editor store shape)
- Track items must satisfy inSec < outSec
- Cut plan document: [{"trackItemId": str, "cuts": [{"startSec", "endSec"}]}]
- Invalid documents raise TimelineFormatError
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

import jsonschema

from fillercut.core.ir import Cut, CutPlan, FillerSpan, TrackItem
from fillercut.core.splice import TimelineSnapshot


_TRACK_ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "clipId", "trackId", "inSec", "outSec", "trackPosition"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "clipId": {"type": "string"},
        "trackId": {"type": "string"},
        "inSec": {"type": "number", "minimum": 0},
        "outSec": {"type": "number", "minimum": 0},
        "trackPosition": {"type": "number", "minimum": 0},
    },
}

TIMELINE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["trackItems"],
    "properties": {
        "trackItems": {
            "oneOf": [
                {"type": "array", "items": _TRACK_ITEM_SCHEMA},
                {"type": "object", "additionalProperties": _TRACK_ITEM_SCHEMA},
            ],
        },
        "playheadSec": {"type": "number", "minimum": 0},
    },
}

CUT_PLANS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["trackItemId", "cuts"],
        "properties": {
            "trackItemId": {"type": "string"},
            "cuts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["startSec", "endSec"],
                    "properties": {
                        "startSec": {"type": "number"},
                        "endSec": {"type": "number"},
                    },
                },
            },
        },
    },
}


class TimelineFormatError(ValueError):
    """The document is not a valid timeline or cut-plan document."""


def _validate(data: Any, schema: Dict[str, Any], what: str) -> None:
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as exc:
        raise TimelineFormatError("Invalid {}: {}".format(what, exc.message)) from exc


# ---------------------------------------------------------------------------
# Track items and timelines
# ---------------------------------------------------------------------------


def track_item_from_dict(data: Dict[str, Any]) -> TrackItem:
    _validate(data, _TRACK_ITEM_SCHEMA, "track item")
    item = TrackItem(
        id=data["id"],
        clip_id=data["clipId"],
        track_id=data["trackId"],
        in_s=float(data["inSec"]),
        out_s=float(data["outSec"]),
        track_position=float(data["trackPosition"]),
    )
    if not item.in_s < item.out_s:
        raise TimelineFormatError(
            "Track item {} has inSec >= outSec ({} >= {})".format(item.id, item.in_s, item.out_s)
        )
    return item


def track_item_to_dict(item: TrackItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "clipId": item.clip_id,
        "trackId": item.track_id,
        "inSec": item.in_s,
        "outSec": item.out_s,
        "trackPosition": item.track_position,
    }


def timeline_from_dict(data: Any) -> TimelineSnapshot:
    """Parse a timeline document into a TimelineSnapshot."""
    _validate(data, TIMELINE_SCHEMA, "timeline")
    raw_items = data["trackItems"]
    if isinstance(raw_items, dict):
        raw_items = list(raw_items.values())
    items = [track_item_from_dict(raw) for raw in raw_items]
    ids = [item.id for item in items]
    if len(set(ids)) != len(ids):
        raise TimelineFormatError("Timeline contains duplicate track item ids")
    return TimelineSnapshot.from_items(items, float(data.get("playheadSec", 0.0)))


def timeline_to_dict(snapshot: TimelineSnapshot) -> Dict[str, Any]:
    items = sorted(
        snapshot.items.values(),
        key=lambda item: (item.track_id, item.track_position, item.id),
    )
    return {
        "trackItems": [track_item_to_dict(item) for item in items],
        "playheadSec": snapshot.playhead_s,
    }


# ---------------------------------------------------------------------------
# Cut plans and filler spans
# ---------------------------------------------------------------------------


def cut_plans_from_list(data: Any) -> List[CutPlan]:
    _validate(data, CUT_PLANS_SCHEMA, "cut plans")
    return [
        CutPlan(
            track_item_id=plan["trackItemId"],
            cuts=[Cut(float(c["startSec"]), float(c["endSec"])) for c in plan["cuts"]],
        )
        for plan in data
    ]


def cut_plans_to_list(plans: Sequence[CutPlan]) -> List[Dict[str, Any]]:
    return [
        {
            "trackItemId": plan.track_item_id,
            "cuts": [{"startSec": c.start_s, "endSec": c.end_s} for c in plan.cuts],
        }
        for plan in plans
    ]


def filler_spans_to_list(spans: Sequence[FillerSpan]) -> List[Dict[str, Any]]:
    return [
        {
            "clipId": span.clip_id,
            "word": span.word,
            "startSec": span.start_s,
            "endSec": span.end_s,
            "confidence": span.confidence,
            "paddedStart": span.padded_start,
            "paddedEnd": span.padded_end,
        }
        for span in spans
    ]


# ---------------------------------------------------------------------------
# File wrappers
# ---------------------------------------------------------------------------


def _read_json(path: str | Path) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TimelineFormatError("{} is not valid JSON: {}".format(path, exc)) from exc


def write_json(data: Any, path: str | Path) -> None:
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_timeline(path: str | Path) -> TimelineSnapshot:
    return timeline_from_dict(_read_json(path))


def save_timeline(snapshot: TimelineSnapshot, path: str | Path) -> None:
    write_json(timeline_to_dict(snapshot), path)


def load_cut_plans(path: str | Path) -> List[CutPlan]:
    return cut_plans_from_list(_read_json(path))


def save_cut_plans(plans: Sequence[CutPlan], path: str | Path) -> None:
    write_json(cut_plans_to_list(plans), path)
