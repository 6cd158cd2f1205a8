"""Transcript JSON loading: native format and whisper.cpp output.

WHY: Transcripts arrive in two shapes. The editor caches its own format
(a flat ``words`` array with ``startSec``/``endSec``), while the local
whisper.cpp runner writes either word-level ``segments`` or, when word
timestamps are off, only segment-level ``transcription`` entries. The
detector needs one Transcript IR regardless of origin.

HOW: parse_transcript() looks at the document shape and dispatches.
Native documents are validated against TRANSCRIPT_SCHEMA with jsonschema.
Whisper documents are read leniently with three fallbacks:
  1. segments[].words[] with text/start/end/probability
  2. transcription[] segments, words spread evenly across each segment
  3. the top-level text as one word spanning the known duration

RULES:
- Native: words[].text/startSec/endSec/confidence, plus durationSec,
  audioDurationSec, modelVersion
- Whisper segment words: confidence = probability (0 if missing)
- Segment-level words: punctuation stripped, confidence 0.8
- Text fallback: one word from 0 to the known end (or 1s), confidence 0.5
- Timestamps "HH:MM:SS,mmm" are parsed; otherwise offsets are in ms
- Invalid documents raise TranscriptFormatError
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from fillercut.core.ir import Transcript, Word

logger = logging.getLogger(__name__)

DEFAULT_WHISPER_MODEL = "ggml-base.en"

SEGMENT_WORD_CONFIDENCE = 0.8
TEXT_FALLBACK_CONFIDENCE = 0.5

_PUNCTUATION_RE = re.compile(r"[.,!?;:]")

TRANSCRIPT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["words"],
    "properties": {
        "words": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["text", "startSec", "endSec"],
                "properties": {
                    "text": {"type": "string"},
                    "startSec": {"type": "number", "minimum": 0},
                    "endSec": {"type": "number", "minimum": 0},
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                },
            },
        },
        "durationSec": {"type": "number", "minimum": 0},
        "audioDurationSec": {"type": "number", "minimum": 0},
        "modelVersion": {"type": "string"},
    },
}


class TranscriptFormatError(ValueError):
    """The document is not a transcript this module understands."""


def _is_whisper_document(data: Dict[str, Any]) -> bool:
    return "words" not in data and any(
        key in data for key in ("segments", "transcription", "text")
    )


def _parse_native(data: Dict[str, Any]) -> Transcript:
    try:
        jsonschema.validate(data, TRANSCRIPT_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise TranscriptFormatError("Invalid transcript: {}".format(exc.message)) from exc

    words = [
        Word(
            text=w["text"],
            start_s=float(w["startSec"]),
            end_s=float(w["endSec"]),
            confidence=float(w.get("confidence", 1.0)),
        )
        for w in data["words"]
    ]
    last_end = max((w.end_s for w in words), default=0.0)
    duration = float(data.get("durationSec", last_end))
    return Transcript(
        words=words,
        duration_s=duration,
        audio_duration_s=float(data.get("audioDurationSec", duration)),
        model_version=data.get("modelVersion", ""),
    )


def parse_timestamp(value: str) -> Optional[float]:
    """Parse a whisper.cpp "HH:MM:SS,mmm" timestamp into seconds.

    Returns None when the value does not have three colon-separated parts.
    """
    parts = value.split(":")
    if len(parts) != 3:
        return None
    try:
        hours = float(parts[0])
        minutes = float(parts[1])
        seconds = float(parts[2].replace(",", "."))
    except ValueError:
        return None
    return hours * 3600 + minutes * 60 + seconds


def _segment_bound(segment: Dict[str, Any], key: str) -> float:
    """Read the 'from'/'to' bound of a transcription segment in seconds."""
    timestamps = segment.get("timestamps") or {}
    if timestamps.get(key):
        parsed = parse_timestamp(str(timestamps[key]))
        if parsed is not None:
            return parsed
    offsets = segment.get("offsets") or {}
    return float(offsets.get(key) or 0) / 1000.0


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _parse_whisper(data: Dict[str, Any], model_version: str) -> Transcript:
    words: List[Word] = []
    max_end = 0.0

    for segment in data.get("segments") or []:
        for w in segment.get("words") or []:
            word = Word(
                text=str(w.get("text") or w.get("word") or "").strip(),
                start_s=_to_float(w.get("start")),
                end_s=_to_float(w.get("end")),
                confidence=_to_float(w.get("probability")),
            )
            words.append(word)
            max_end = max(max_end, word.end_s)

    if not words:
        for segment in data.get("transcription") or []:
            text = str(segment.get("text") or "").strip()
            if not text:
                continue
            start = _segment_bound(segment, "from")
            end = _segment_bound(segment, "to")
            tokens = text.split()
            step = (end - start) / len(tokens)
            for index, token in enumerate(tokens):
                word_end = end if index == len(tokens) - 1 else start + (index + 1) * step
                words.append(Word(
                    text=_PUNCTUATION_RE.sub("", token),
                    start_s=start + index * step,
                    end_s=word_end,
                    confidence=SEGMENT_WORD_CONFIDENCE,
                ))
                max_end = max(max_end, word_end)
        if words:
            logger.info("Transcript has no word timestamps, approximated %d words", len(words))

    if not words:
        text = str(data.get("text") or "").strip()
        if text:
            max_end = max_end or 1.0
            words.append(Word(text=text, start_s=0.0, end_s=max_end,
                              confidence=TEXT_FALLBACK_CONFIDENCE))
            logger.warning("Transcript has no timing at all, using whole text as one word")

    return Transcript(
        words=words,
        duration_s=max_end,
        audio_duration_s=max_end,
        model_version=model_version,
    )


def parse_transcript(data: Any, model_version: str = DEFAULT_WHISPER_MODEL) -> Transcript:
    """Build a Transcript from a decoded JSON document.

    Args:
        data: Decoded JSON (native or whisper.cpp shape).
        model_version: Model id recorded for whisper documents, which do
            not carry one.

    Raises:
        TranscriptFormatError: If the document is not a JSON object or
            fails native schema validation.
    """
    if not isinstance(data, dict):
        raise TranscriptFormatError("Transcript must be a JSON object")
    if _is_whisper_document(data):
        return _parse_whisper(data, model_version)
    return _parse_native(data)


def transcript_to_dict(transcript: Transcript) -> Dict[str, Any]:
    """Serialise a Transcript to the native JSON shape."""
    return {
        "words": [
            {
                "text": w.text,
                "startSec": w.start_s,
                "endSec": w.end_s,
                "confidence": w.confidence,
            }
            for w in transcript.words
        ],
        "durationSec": transcript.duration_s,
        "audioDurationSec": transcript.audio_duration_s,
        "modelVersion": transcript.model_version,
    }


def load_transcript(path: str | Path) -> Transcript:
    """Read a transcript JSON file (native or whisper.cpp)."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TranscriptFormatError("{} is not valid JSON: {}".format(path, exc)) from exc
    return parse_transcript(data)


def save_transcript(transcript: Transcript, path: str | Path) -> None:
    Path(path).write_text(
        json.dumps(transcript_to_dict(transcript), indent=2),
        encoding="utf-8",
    )
