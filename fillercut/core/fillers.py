"""Filler-word detection over a word-level transcript.

WHY: Disfluencies like "um", "uh" and "you know" are the bulk of what
editors cut from talking-head footage. The transcript already carries
word timing, so finding them is a lookup plus some interval bookkeeping.

HOW: Each transcript word is normalised (lowercase, punctuation stripped,
trimmed) and matched against the filler vocabulary. Multi-word fillers
("you know") are matched across consecutive words, longest phrase first.
Candidates below the confidence threshold are dropped, padded on both
sides, sorted, and merged when the gap between them is small enough
that cutting them separately would leave a stutter.

RULES:
- Matching is on normalised text only; no stemming, no fuzzy matching
- conf_min filters on the word confidence (minimum across a phrase)
- padded_start = max(0, start - pad); padded_end = end + pad
- Merge when next.start_s - current.end_s <= merge gap (epsilon-aware)
- Merged label is "a/b" when the words differ; identical words keep one label
- Output is sorted by start_s; the function is pure and idempotent
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence

from fillercut.config import (
    DEFAULT_MERGE_GAP_MS,
    DEFAULT_PAD_MS,
    FILLER_WORDS,
)
from fillercut.core.ir import FillerSpan, Transcript, Word
from fillercut.core.timebase import approx_lte

logger = logging.getLogger(__name__)

# Punctuation removed before matching ("Um," → "um").
_PUNCTUATION_RE = re.compile(r"[.,!?;:]")


def normalize_word(text: str) -> str:
    """Normalise a transcript word for filler matching.

    Examples: "Um," → "um", " Uh? " → "uh", "You know" → "you know".
    """
    return " ".join(_PUNCTUATION_RE.sub("", text.lower()).split())


def is_filler(text: str, fillers: Iterable[str] = FILLER_WORDS) -> bool:
    """Return True if the text normalises to a filler word or phrase."""
    return normalize_word(text) in set(fillers)


def _split_vocabulary(fillers: Iterable[str]) -> tuple[set[str], dict[int, set[str]]]:
    """Separate single-word fillers from multi-word phrases keyed by length."""
    singles: set[str] = set()
    phrases: dict[int, set[str]] = {}
    for filler in fillers:
        normalized = normalize_word(filler)
        if not normalized:
            continue
        n_tokens = len(normalized.split(" "))
        if n_tokens == 1:
            singles.add(normalized)
        else:
            phrases.setdefault(n_tokens, set()).add(normalized)
    return singles, phrases


def _find_candidates(
    words: Sequence[Word],
    fillers: Iterable[str],
) -> list[tuple[str, Word, Word, float]]:
    """Find filler matches as (label, first_word, last_word, confidence).

    WHY: A phrase filler spans several transcript words; the span runs from
    the first word's start to the last word's end.

    HOW: At each position try phrase lengths from longest to shortest,
    then the single-word set. A match consumes its words.

    RULES:
    - Longest match wins ("you know" beats nothing at "you")
    - Phrase confidence is the minimum across its words
    - A transcript word whose own text is a phrase ("you know") matches as one word
    """
    singles, phrases = _split_vocabulary(fillers)
    lengths = sorted(phrases, reverse=True)
    normalized = [normalize_word(w.text) for w in words]

    matches: list[tuple[str, Word, Word, float]] = []
    i = 0
    while i < len(words):
        matched = False
        for n in lengths:
            if i + n > len(words):
                continue
            joined = " ".join(t for t in normalized[i:i + n] if t)
            if joined in phrases[n]:
                group = words[i:i + n]
                matches.append((
                    joined,
                    group[0],
                    group[-1],
                    min(w.confidence for w in group),
                ))
                i += n
                matched = True
                break
        if matched:
            continue

        token = normalized[i]
        if token in singles or any(token in p for p in phrases.values()):
            word = words[i]
            matches.append((token, word, word, word.confidence))
        i += 1

    return matches


def _merge_label(current: str, nxt: str) -> str:
    if current.split("/")[-1] == nxt:
        return current
    return "{}/{}".format(current, nxt)


def detect_filler_spans(
    transcript: Transcript,
    clip_id: str,
    conf_min: Optional[float] = None,
    pad_ms: float = DEFAULT_PAD_MS,
    merge_gap_ms: float = DEFAULT_MERGE_GAP_MS,
    fillers: Iterable[str] = FILLER_WORDS,
) -> list[FillerSpan]:
    """Detect filler words in a transcript and return padded, merged spans.

    Args:
        transcript: Word-level transcript of the clip.
        clip_id: Clip the transcript belongs to; copied onto every span.
        conf_min: Optional minimum confidence. None disables filtering.
        pad_ms: Padding added to each side of a filler. Clamped to >= 0.
        merge_gap_ms: Largest gap between fillers that still merges them.
            Clamped to >= 0.
        fillers: Filler vocabulary, defaults to the configured list.

    Returns:
        FillerSpan list sorted by start_s. Empty when nothing matches.
    """
    pad_s = max(0.0, pad_ms) / 1000.0
    merge_gap_s = max(0.0, merge_gap_ms) / 1000.0

    candidates: list[FillerSpan] = []
    for label, first, last, confidence in _find_candidates(transcript.words, fillers):
        if conf_min is not None and confidence < conf_min:
            continue
        candidates.append(FillerSpan(
            clip_id=clip_id,
            word=label,
            start_s=first.start_s,
            end_s=last.end_s,
            confidence=confidence,
            padded_start=max(0.0, first.start_s - pad_s),
            padded_end=last.end_s + pad_s,
        ))

    if not candidates:
        return []

    candidates.sort(key=lambda span: span.start_s)

    merged: list[FillerSpan] = []
    current = candidates[0]
    for nxt in candidates[1:]:
        gap = nxt.start_s - current.end_s
        if approx_lte(gap, merge_gap_s):
            current = FillerSpan(
                clip_id=clip_id,
                word=_merge_label(current.word, nxt.word),
                start_s=current.start_s,
                end_s=max(current.end_s, nxt.end_s),
                confidence=min(current.confidence, nxt.confidence),
                padded_start=current.padded_start,
                # Nested words must not pull the padded end backwards
                padded_end=max(current.padded_end, nxt.padded_end),
            )
        else:
            merged.append(current)
            current = nxt
    merged.append(current)

    logger.debug(
        "Detected %d filler spans (%d candidates) in clip %s",
        len(merged), len(candidates), clip_id,
    )
    return merged
