"""On-disk transcript cache keyed by the SHA-1 of the source media.

WHY: Transcribing a long recording takes minutes. The same media file is
often re-imported or re-opened, so transcripts are cached under a hash
of the file content rather than its path, so renames and copies still hit.

HOW: One JSON file per hash (``<sha1>.json``) in the cache directory,
written in the native transcript format. Reads go through
parse_transcript(), so a corrupt or foreign file is treated as a miss.

RULES:
- Cache directory defaults to TRANSCRIPT_CACHE_DIR and is created on demand
- get() returns None on a miss or on an unreadable/invalid entry
- put() raises on write failure (the caller asked for a durable result)
- invalidate() is best-effort: failures are logged, not raised
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

from fillercut import config
from fillercut.core.ir import Transcript
from fillercut.io.transcripts import (
    TranscriptFormatError,
    parse_transcript,
    transcript_to_dict,
)

logger = logging.getLogger(__name__)

_HASH_CHUNK_BYTES = 1024 * 1024


def hash_file(path: str | Path) -> str:
    """SHA-1 hex digest of a file's content, read in 1 MiB chunks."""
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_HASH_CHUNK_BYTES), b""):
            digest.update(chunk)
    return digest.hexdigest()


class TranscriptCache:
    """Transcript cache directory."""

    def __init__(self, cache_dir: Optional[str | Path] = None) -> None:
        self.cache_dir = Path(cache_dir) if cache_dir else config.TRANSCRIPT_CACHE_DIR

    def _ensure_dir(self) -> None:
        if not self.cache_dir.is_dir():
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created cache directory: %s", self.cache_dir)

    def path_for(self, file_hash: str) -> Path:
        return self.cache_dir / "{}.json".format(file_hash)

    def get(self, file_hash: str) -> Optional[Transcript]:
        path = self.path_for(file_hash)
        if not path.is_file():
            return None
        try:
            transcript = parse_transcript(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, TranscriptFormatError) as exc:
            logger.warning("Invalid transcript cache for hash %s, ignoring: %s", file_hash, exc)
            return None
        logger.info("Cache hit for hash: %s", file_hash)
        return transcript

    def put(self, file_hash: str, transcript: Transcript) -> Path:
        self._ensure_dir()
        path = self.path_for(file_hash)
        path.write_text(json.dumps(transcript_to_dict(transcript), indent=2), encoding="utf-8")
        logger.info("Cached transcript for hash: %s", file_hash)
        return path

    def invalidate(self, file_hash: str) -> None:
        path = self.path_for(file_hash)
        try:
            if path.is_file():
                path.unlink()
                logger.info("Invalidated cache for hash: %s", file_hash)
        except OSError:
            logger.exception("Failed to invalidate cache for hash %s", file_hash)

    def get_for_media(self, media_path: str | Path) -> Optional[Transcript]:
        """Look up the cached transcript of a media file by content hash."""
        return self.get(hash_file(media_path))
