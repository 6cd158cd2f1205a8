"""Filler-word cut planning and timeline splicing for the video editor.

WHY: Spoken recordings are full of "um", "uh" and "you know". Removing
them by hand means finding each one in the transcript, locating it on
the timeline, splitting the segment and closing the gap. This package
does all of that from a word-level transcript.

HOW: Three-stage pipeline: detect (filler spans from a transcript),
plan (timeline cut ranges per track item), apply (split, remove and
ripple-shift track items). Each stage is independently testable; the
apply stage is a pure reducer with a thin store-facing wrapper.

RULES:
- Data flows strictly forward: transcript → spans → cut plans → timeline
- Detection and planning are pure functions with no hidden state
- The timeline store is the source of truth; the engine only proposes
  batched mutations against it
"""

__version__ = "0.1.0"
