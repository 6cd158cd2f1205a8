"""JSON file formats and the on-disk transcript cache.

WHY: The engine is fed by files (transcripts from the speech-to-text
runner, timelines saved by the editor) and the CLI writes cut plans and
updated timelines back out. These modules own those formats so the core
never parses JSON.

HOW: transcripts.py reads native and whisper.cpp transcript JSON,
timeline.py reads and writes timelines, cut plans and filler spans, and
cache.py stores transcripts keyed by the SHA-1 of the source media.

RULES:
- Every input document is validated with jsonschema before use
- Invalid input raises a ValueError subclass naming the problem
"""
