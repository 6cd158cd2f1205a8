"""Command-line interface for filler detection and cutting.

WHY: Editors and scripts need to run the engine outside the desktop app:
to preview which fillers would go, to produce a cut plan for review, or
to batch-apply cuts to a saved timeline. The CLI wires the pipeline
stages to JSON files behind three subcommands.

HOW: argparse with subparsers:
  detect  TRANSCRIPT --clip-id ID          → filler spans JSON
  plan    TIMELINE --transcript CLIP=PATH  → cut plans JSON
  apply   TIMELINE (--plans FILE | --transcript CLIP=PATH ...) → timeline JSON
Transcript paths that are not ``.json`` files are treated as media files
and looked up in the transcript cache by content hash. Results go to
--output or stdout; status messages go to stderr.

RULES:
- Status output goes to stderr (not stdout) so results can be piped
- An empty cut plan prints "No fillers to cut" and is not an error
- Input format errors and cache misses exit with status 1
- Detection/planning options default to the values in config.py
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fillercut.config import (
    DEFAULT_CONF_MIN,
    DEFAULT_MERGE_GAP_MS,
    DEFAULT_PAD_MS,
    DEFAULT_RIPPLE_GAP_MS,
)
from fillercut.core.cut_plan import generate_cut_plan, total_cut_duration
from fillercut.core.fillers import detect_filler_spans
from fillercut.core.ir import CutPlan, FillerSpan, Transcript
from fillercut.core.splice import TimelineSnapshot
from fillercut.io.cache import TranscriptCache
from fillercut.io.timeline import (
    TimelineFormatError,
    cut_plans_to_list,
    filler_spans_to_list,
    load_cut_plans,
    load_timeline,
    timeline_to_dict,
)
from fillercut.io.transcripts import TranscriptFormatError, load_transcript
from fillercut.timeline.applier import CutPlanApplier
from fillercut.timeline.store import InMemoryTimelineStore


class CLIError(Exception):
    """A user-facing failure; the message is printed and the CLI exits 1."""


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _emit(data: Any, output: Optional[str]) -> None:
    """Write JSON to the output file, or to stdout when none is given."""
    text = json.dumps(data, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        _status("Wrote {}".format(output))
    else:
        print(text)


def _read_transcript(path_str: str, cache: TranscriptCache) -> Transcript:
    """Load a transcript file, or a cached transcript for a media file."""
    path = Path(path_str)
    if not path.is_file():
        raise CLIError("File not found: {}".format(path))
    if path.suffix.lower() == ".json":
        return load_transcript(path)
    transcript = cache.get_for_media(path)
    if transcript is None:
        raise CLIError("No cached transcript for media file: {}".format(path))
    return transcript


def _parse_transcript_args(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated CLIP_ID=PATH arguments."""
    mapping: Dict[str, str] = {}
    for value in values or []:
        clip_id, sep, path = value.partition("=")
        if not sep or not clip_id or not path:
            raise CLIError("Expected CLIP_ID=PATH, got '{}'".format(value))
        mapping[clip_id] = path
    return mapping


def _detect_all(args: argparse.Namespace, cache: TranscriptCache) -> List[FillerSpan]:
    spans: List[FillerSpan] = []
    for clip_id, path in _parse_transcript_args(args.transcript).items():
        transcript = _read_transcript(path, cache)
        found = detect_filler_spans(
            transcript,
            clip_id,
            conf_min=args.conf_min,
            pad_ms=args.pad_ms,
            merge_gap_ms=args.merge_gap_ms,
        )
        _status("Clip {}: {} filler spans".format(clip_id, len(found)))
        spans.extend(found)
    return spans


def _plan(args: argparse.Namespace, snapshot: TimelineSnapshot, cache: TranscriptCache) -> List[CutPlan]:
    spans = _detect_all(args, cache)
    plans = generate_cut_plan(
        list(snapshot.items.values()), spans, ripple_gap_ms=args.ripple_gap_ms,
    )
    if plans:
        _status("{} cut plans, {:.2f}s to remove".format(len(plans), total_cut_duration(plans)))
    else:
        _status("No fillers to cut")
    return plans


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_detect(args: argparse.Namespace, cache: TranscriptCache) -> None:
    transcript = _read_transcript(args.transcript_file, cache)
    spans = detect_filler_spans(
        transcript,
        args.clip_id,
        conf_min=args.conf_min,
        pad_ms=args.pad_ms,
        merge_gap_ms=args.merge_gap_ms,
    )
    _status("Found {} filler spans in {} words".format(len(spans), len(transcript.words)))
    _emit(filler_spans_to_list(spans), args.output)


def _cmd_plan(args: argparse.Namespace, cache: TranscriptCache) -> None:
    snapshot = load_timeline(args.timeline)
    _emit(cut_plans_to_list(_plan(args, snapshot, cache)), args.output)


def _cmd_apply(args: argparse.Namespace, cache: TranscriptCache) -> None:
    snapshot = load_timeline(args.timeline)
    if args.plans:
        plans = load_cut_plans(args.plans)
    elif args.transcript:
        plans = _plan(args, snapshot, cache)
    else:
        raise CLIError("apply needs --plans or at least one --transcript")

    store = InMemoryTimelineStore(snapshot.items.values(), snapshot.playhead_s)
    if plans:
        report = CutPlanApplier(store).apply(plans)
        _status("Removed {} items, added {} fragments, rippled {} items".format(
            len(report.removed_ids), len(report.added_ids), len(report.rippled_ids),
        ))
        for item_id in report.skipped_plan_ids:
            _status("Warning: track item {} not found, plan skipped".format(item_id))

    result = TimelineSnapshot.from_items(store.read_all(), store.get_playhead())
    _emit(timeline_to_dict(result), args.output)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_detection_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--conf-min",
        type=float,
        default=DEFAULT_CONF_MIN,
        help="Minimum word confidence for a filler (default: no filter).",
    )
    parser.add_argument(
        "--pad-ms",
        type=float,
        default=DEFAULT_PAD_MS,
        help="Padding around each filler in ms (default: %(default)s).",
    )
    parser.add_argument(
        "--merge-gap-ms",
        type=float,
        default=DEFAULT_MERGE_GAP_MS,
        help="Merge fillers closer than this, in ms (default: %(default)s).",
    )


def _add_planning_options(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument(
        "--transcript",
        action="append",
        required=required,
        metavar="CLIP_ID=PATH",
        help="Transcript JSON (or cached media file) for a clip. Repeatable.",
    )
    parser.add_argument(
        "--ripple-gap-ms",
        type=float,
        default=DEFAULT_RIPPLE_GAP_MS,
        help="Merge cuts closer than this, in ms (default: %(default)s).",
    )
    _add_detection_options(parser)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate from main() for testability)."""
    parser = argparse.ArgumentParser(
        prog="fillercut",
        description="Detect filler words in transcripts and cut them from a timeline.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log engine details to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="List filler spans in a transcript.")
    detect.add_argument("transcript_file", help="Transcript JSON, or a media file with a cached transcript.")
    detect.add_argument("--clip-id", required=True, help="Clip id to stamp on each span.")
    detect.add_argument("--output", "-o", default=None, help="Output file (default: stdout).")
    _add_detection_options(detect)

    plan = subparsers.add_parser("plan", help="Generate cut plans for a timeline.")
    plan.add_argument("timeline", help="Timeline JSON file.")
    plan.add_argument("--output", "-o", default=None, help="Output file (default: stdout).")
    _add_planning_options(plan, required=True)

    apply = subparsers.add_parser("apply", help="Apply cut plans to a timeline.")
    apply.add_argument("timeline", help="Timeline JSON file.")
    apply.add_argument("--plans", default=None, help="Cut plans JSON from 'plan'.")
    apply.add_argument("--output", "-o", default=None, help="Output file (default: stdout).")
    _add_planning_options(apply, required=False)

    return parser


_COMMANDS = {
    "detect": _cmd_detect,
    "plan": _cmd_plan,
    "apply": _cmd_apply,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        _COMMANDS[args.command](args, TranscriptCache())
    except (CLIError, TranscriptFormatError, TimelineFormatError, OSError) as exc:
        print("Error: {}".format(exc), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
