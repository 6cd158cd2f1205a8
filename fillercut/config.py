"""Configuration constants, filler vocabulary, and .env loading.

WHY: Detection padding, merge gaps, ripple thresholds and floating-point
tolerances are tuning knobs that users adjust per recording style. They
live here as plain module-level values, not buried in the algorithms,
so they are easy to find, override, and reason about.

HOW: python-dotenv loads the .env file on import. Each constant reads
an environment variable with a documented default. parse_filler_words()
turns a comma-separated override into the filler vocabulary.

RULES:
- All times in environment variables are milliseconds, except
  MIN_SEGMENT_SEC and TIME_EPSILON which are seconds
- Padding and gap values are clamped to >= 0 at the point of use
- FILLER_WORDS entries are stored normalised (lowercase, trimmed)
- Every default can be overridden via environment variables
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the app is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Filler vocabulary
# ---------------------------------------------------------------------------

DEFAULT_FILLER_WORDS: tuple[str, ...] = (
    "um",
    "uh",
    "like",
    "you know",
    "so",
    "actually",
    "well",
)


def parse_filler_words(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated filler list, falling back to the defaults.

    WHY: Different speakers lean on different crutch words ("basically",
    "right"). Users extend the list through FILLER_WORDS in .env.

    HOW: Split on commas, lowercase and trim each entry, drop empties.

    RULES:
    - None or blank input returns DEFAULT_FILLER_WORDS
    - Duplicate entries are removed, first occurrence wins
    """
    if not raw or not raw.strip():
        return DEFAULT_FILLER_WORDS
    words: list[str] = []
    for part in raw.split(","):
        word = " ".join(part.lower().split())
        if word and word not in words:
            words.append(word)
    return tuple(words) if words else DEFAULT_FILLER_WORDS


FILLER_WORDS: tuple[str, ...] = parse_filler_words(os.getenv("FILLER_WORDS"))

# ---------------------------------------------------------------------------
# Detection and planning defaults
# ---------------------------------------------------------------------------

DEFAULT_PAD_MS = float(os.getenv("FILLER_PAD_MS", "40"))
"""Padding added on each side of a detected filler to catch breath sounds."""

DEFAULT_MERGE_GAP_MS = float(os.getenv("FILLER_MERGE_GAP_MS", "120"))
"""Adjacent fillers closer than this are merged into one span."""

DEFAULT_RIPPLE_GAP_MS = float(os.getenv("RIPPLE_GAP_MS", "500"))
"""Timeline cuts closer than this are merged so no sliver survives between them."""

_conf_min = os.getenv("FILLER_CONF_MIN", "").strip()
DEFAULT_CONF_MIN: float | None = float(_conf_min) if _conf_min else None
"""Minimum word confidence for a filler to count. None disables the filter."""

# ---------------------------------------------------------------------------
# Timeline tolerances
# ---------------------------------------------------------------------------

MIN_SEGMENT_SEC = float(os.getenv("MIN_SEGMENT_SEC", "0.01"))
"""Shortest track item the timeline accepts. Shorter fragments are dropped."""

TIME_EPSILON = float(os.getenv("TIME_EPSILON", "1e-6"))
"""Tolerance for every boundary comparison between float timestamps."""

# ---------------------------------------------------------------------------
# Transcript cache
# ---------------------------------------------------------------------------

TRANSCRIPT_CACHE_DIR = Path(
    os.getenv(
        "TRANSCRIPT_CACHE_DIR",
        str(Path.home() / ".fillercut" / "cache" / "transcripts"),
    )
).expanduser()
