"""Tests for transcript, timeline and cache I/O.

WHY: Everything the engine reads arrives as JSON from another process.
A schema drift (a renamed key, a string where a number belongs) should
fail loudly at the boundary instead of producing a silently wrong cut.

HOW: Documents are built as dicts, written with tmp_path where file I/O
matters, and parsed through the public helpers. The cache tests point
TRANSCRIPT_CACHE_DIR at tmp_path via monkeypatch.
"""

import json

import pytest

from conftest import make_item, make_transcript

from fillercut import config
from fillercut.core.ir import Cut, CutPlan
from fillercut.core.splice import TimelineSnapshot
from fillercut.io.cache import TranscriptCache, hash_file
from fillercut.io.timeline import (
    TimelineFormatError,
    cut_plans_from_list,
    cut_plans_to_list,
    load_cut_plans,
    load_timeline,
    save_cut_plans,
    save_timeline,
    timeline_from_dict,
    timeline_to_dict,
    track_item_from_dict,
)
from fillercut.io.transcripts import (
    DEFAULT_WHISPER_MODEL,
    SEGMENT_WORD_CONFIDENCE,
    TEXT_FALLBACK_CONFIDENCE,
    TranscriptFormatError,
    load_transcript,
    parse_timestamp,
    parse_transcript,
    save_transcript,
    transcript_to_dict,
)


def item_dict(item_id="a", in_sec=0.0, out_sec=10.0, position=0.0, track_id="t1", clip_id="c1"):
    return {
        "id": item_id,
        "clipId": clip_id,
        "trackId": track_id,
        "inSec": in_sec,
        "outSec": out_sec,
        "trackPosition": position,
    }


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------


class TestNativeTranscript:
    def test_parse(self):
        data = {
            "words": [
                {"text": "Um", "startSec": 4.0, "endSec": 4.3, "confidence": 0.9},
                {"text": "first", "startSec": 4.5, "endSec": 4.9},
            ],
            "durationSec": 5.0,
            "modelVersion": "stt-v2",
        }
        transcript = parse_transcript(data)
        assert [w.text for w in transcript.words] == ["Um", "first"]
        assert transcript.words[0].confidence == 0.9
        assert transcript.words[1].confidence == 1.0
        assert transcript.duration_s == 5.0
        assert transcript.audio_duration_s == 5.0
        assert transcript.model_version == "stt-v2"

    def test_duration_defaults_to_last_word(self):
        transcript = parse_transcript({"words": [{"text": "hi", "startSec": 0.0, "endSec": 0.7}]})
        assert transcript.duration_s == 0.7

    def test_missing_field_rejected(self):
        with pytest.raises(TranscriptFormatError, match="Invalid transcript"):
            parse_transcript({"words": [{"text": "um", "startSec": 1.0}]})

    def test_wrong_type_rejected(self):
        with pytest.raises(TranscriptFormatError):
            parse_transcript({"words": [{"text": "um", "startSec": "1.0", "endSec": 1.2}]})

    def test_not_an_object(self):
        with pytest.raises(TranscriptFormatError, match="JSON object"):
            parse_transcript([1, 2, 3])

    def test_roundtrip_through_file(self, tmp_path):
        transcript = make_transcript(("Um", 4.0, 4.3, 0.9), ("first", 4.5, 4.9))
        path = tmp_path / "t.json"
        save_transcript(transcript, path)
        assert load_transcript(path) == transcript

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(TranscriptFormatError, match="not valid JSON"):
            load_transcript(path)


class TestWhisperTranscript:
    def test_segment_words(self):
        data = {
            "segments": [
                {"words": [
                    {"text": " Um", "start": 0.5, "end": 0.8, "probability": 0.7},
                    {"word": "hello", "start": 0.9, "end": 1.3},
                ]},
            ],
        }
        transcript = parse_transcript(data)
        assert [w.text for w in transcript.words] == ["Um", "hello"]
        assert transcript.words[0].confidence == 0.7
        assert transcript.words[1].confidence == 0.0
        assert transcript.duration_s == 1.3
        assert transcript.model_version == DEFAULT_WHISPER_MODEL

    def test_transcription_segments_spread_words(self):
        data = {
            "transcription": [
                {
                    "timestamps": {"from": "00:00:01,000", "to": "00:00:02,000"},
                    "offsets": {"from": 1000, "to": 2000},
                    "text": " Um, hello.",
                },
            ],
        }
        transcript = parse_transcript(data, model_version="ggml-small")
        assert [w.text for w in transcript.words] == ["Um", "hello"]
        assert transcript.words[0].start_s == pytest.approx(1.0)
        assert transcript.words[0].end_s == pytest.approx(1.5)
        assert transcript.words[1].start_s == pytest.approx(1.5)
        assert transcript.words[1].end_s == pytest.approx(2.0)
        assert all(w.confidence == SEGMENT_WORD_CONFIDENCE for w in transcript.words)
        assert transcript.model_version == "ggml-small"

    def test_transcription_offsets_when_no_timestamps(self):
        data = {"transcription": [{"offsets": {"from": 2000, "to": 3000}, "text": "uh"}]}
        transcript = parse_transcript(data)
        assert transcript.words[0].start_s == pytest.approx(2.0)
        assert transcript.words[0].end_s == pytest.approx(3.0)

    def test_text_only_fallback(self):
        transcript = parse_transcript({"text": "um hello"})
        assert len(transcript.words) == 1
        assert transcript.words[0].text == "um hello"
        assert transcript.words[0].end_s == 1.0
        assert transcript.words[0].confidence == TEXT_FALLBACK_CONFIDENCE

    def test_empty_whisper_document(self):
        assert parse_transcript({"segments": []}).words == []

    def test_parse_timestamp(self):
        assert parse_timestamp("01:02:03,500") == pytest.approx(3723.5)
        assert parse_timestamp("12.5") is None
        assert parse_timestamp("aa:bb:cc") is None


# ---------------------------------------------------------------------------
# Timelines and plans
# ---------------------------------------------------------------------------


class TestTimelineDocument:
    def test_parse_array(self):
        snapshot = timeline_from_dict({
            "trackItems": [item_dict("a"), item_dict("b", position=10.0, clip_id="c2")],
            "playheadSec": 4.0,
        })
        assert set(snapshot.items) == {"a", "b"}
        assert snapshot.items["b"].clip_id == "c2"
        assert snapshot.playhead_s == 4.0

    def test_parse_object_keyed_by_id(self):
        snapshot = timeline_from_dict({"trackItems": {"a": item_dict("a")}})
        assert snapshot.items["a"] == make_item("a", 0.0, 10.0, 0.0)
        assert snapshot.playhead_s == 0.0

    def test_inverted_item_rejected(self):
        with pytest.raises(TimelineFormatError, match="inSec >= outSec"):
            track_item_from_dict(item_dict(in_sec=5.0, out_sec=5.0))

    def test_duplicate_ids_rejected(self):
        with pytest.raises(TimelineFormatError, match="duplicate"):
            timeline_from_dict({"trackItems": [item_dict("a"), item_dict("a")]})

    def test_missing_key_rejected(self):
        bad = item_dict()
        del bad["trackPosition"]
        with pytest.raises(TimelineFormatError, match="Invalid timeline"):
            timeline_from_dict({"trackItems": [bad]})

    def test_negative_position_rejected(self):
        with pytest.raises(TimelineFormatError):
            timeline_from_dict({"trackItems": [item_dict(position=-1.0)]})

    def test_to_dict_sorted(self):
        snapshot = TimelineSnapshot.from_items(
            [make_item("b", 0, 5, 5), make_item("a", 0, 5, 0)], playhead_s=1.0,
        )
        data = timeline_to_dict(snapshot)
        assert [i["id"] for i in data["trackItems"]] == ["a", "b"]
        assert data["playheadSec"] == 1.0
        assert data["trackItems"][0]["trackPosition"] == 0

    def test_file_roundtrip(self, tmp_path):
        snapshot = TimelineSnapshot.from_items([make_item("a", 1.0, 4.0, 2.0)], playhead_s=2.5)
        path = tmp_path / "timeline.json"
        save_timeline(snapshot, path)
        assert load_timeline(path) == snapshot

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "timeline.json"
        path.write_text("[", encoding="utf-8")
        with pytest.raises(TimelineFormatError, match="not valid JSON"):
            load_timeline(path)


class TestCutPlanDocument:
    def test_parse(self):
        plans = cut_plans_from_list([
            {"trackItemId": "a", "cuts": [{"startSec": 3.96, "endSec": 4.34}]},
        ])
        assert plans == [CutPlan("a", [Cut(3.96, 4.34)])]

    def test_serialise(self):
        data = cut_plans_to_list([CutPlan("a", [Cut(1.0, 2.0)])])
        assert data == [{"trackItemId": "a", "cuts": [{"startSec": 1.0, "endSec": 2.0}]}]

    def test_rejects_non_list(self):
        with pytest.raises(TimelineFormatError, match="Invalid cut plans"):
            cut_plans_from_list({"trackItemId": "a"})

    def test_file_roundtrip(self, tmp_path):
        plans = [CutPlan("a", [Cut(1.0, 2.0), Cut(3.0, 3.5)])]
        path = tmp_path / "plans.json"
        save_cut_plans(plans, path)
        assert json.loads(path.read_text(encoding="utf-8"))[0]["trackItemId"] == "a"
        assert load_cut_plans(path) == plans


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    directory = tmp_path / "cache"
    monkeypatch.setattr(config, "TRANSCRIPT_CACHE_DIR", directory)
    return directory


class TestTranscriptCache:
    def test_hash_file_is_content_based(self, tmp_path):
        first = tmp_path / "one.wav"
        second = tmp_path / "two.wav"
        first.write_bytes(b"RIFF....data")
        second.write_bytes(b"RIFF....data")
        assert hash_file(first) == hash_file(second)
        assert len(hash_file(first)) == 40

    def test_default_dir_from_config(self, cache_dir):
        assert TranscriptCache().cache_dir == cache_dir

    def test_miss(self, cache_dir):
        assert TranscriptCache().get("deadbeef") is None

    def test_put_then_get(self, cache_dir):
        cache = TranscriptCache()
        transcript = make_transcript(("um", 1.0, 1.2))
        path = cache.put("deadbeef", transcript)
        assert path == cache_dir / "deadbeef.json"
        assert cache.get("deadbeef") == transcript

    def test_corrupt_entry_is_a_miss(self, cache_dir, caplog):
        cache_dir.mkdir(parents=True)
        (cache_dir / "deadbeef.json").write_text("{oops", encoding="utf-8")
        assert TranscriptCache().get("deadbeef") is None
        assert "Invalid transcript cache" in caplog.text

    def test_invalidate(self, cache_dir):
        cache = TranscriptCache()
        cache.put("deadbeef", make_transcript(("um", 1.0, 1.2)))
        cache.invalidate("deadbeef")
        assert cache.get("deadbeef") is None
        # Invalidating a missing entry is fine
        cache.invalidate("deadbeef")

    def test_get_for_media(self, cache_dir, tmp_path):
        media = tmp_path / "clip.mov"
        media.write_bytes(b"\x00\x01\x02")
        cache = TranscriptCache()
        transcript = make_transcript(("uh", 0.2, 0.4))
        cache.put(hash_file(media), transcript)
        assert cache.get_for_media(media) == transcript

    def test_stored_in_native_format(self, cache_dir):
        transcript = make_transcript(("um", 1.0, 1.2))
        path = TranscriptCache().put("abc", transcript)
        assert json.loads(path.read_text(encoding="utf-8")) == transcript_to_dict(transcript)
