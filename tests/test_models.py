"""Tests for Pydantic data models."""

import json

import pytest

from podskip.models import (
    AdSegment,
    DetectionResult,
    DetectionType,
    Episode,
    SegmentType,
    Transcript,
    TranscriptSegment,
)


class TestTranscript:
    def test_create_transcript(self):
        transcript = Transcript(
            duration=120.0,
            segments=[TranscriptSegment(start=0.0, end=5.5, text="Hello world", speaker="Host")],
        )
        assert transcript.duration == 120.0
        assert transcript.segments[0].speaker == "Host"
        assert transcript.segments[0].words is None

    def test_transcript_from_dict_with_words(self):
        data = {
            "duration": 30.0,
            "segments": [
                {
                    "start": 0.0,
                    "end": 2.0,
                    "text": "Hi there",
                    "words": [
                        {"word": "Hi", "start": 0.0, "end": 0.5},
                        {"word": "there", "start": 0.6, "end": 1.0, "speaker": "Guest"},
                    ],
                }
            ],
        }
        transcript = Transcript.model_validate(data)
        assert len(transcript.segments[0].words) == 2
        assert transcript.segments[0].words[1].speaker == "Guest"

    def test_segments_default_empty(self):
        assert Transcript(duration=10.0).segments == []


class TestAdSegment:
    def test_duration_and_display_times(self):
        segment = AdSegment(
            start=125.0,
            end=3725.0,
            type=SegmentType.ADVERTISEMENT,
            confidence=90,
        )
        assert segment.duration == 3600.0
        assert segment.start_time == "2:05"
        assert segment.end_time == "1:02:05"

    def test_contains_is_half_open(self):
        segment = AdSegment(start=10.0, end=20.0, type=SegmentType.INTRO_OUTRO, confidence=80)
        assert segment.contains(10.0)
        assert segment.contains(19.9)
        assert not segment.contains(20.0)
        assert not segment.contains(9.9)

    def test_type_from_string_value(self):
        segment = AdSegment(start=0.0, end=10.0, type="closing credits", confidence=70)
        assert segment.type == SegmentType.CLOSING_CREDITS

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            AdSegment(start=0.0, end=10.0, type="sponsor", confidence=70)


class TestEpisode:
    def test_is_downloaded(self):
        assert not Episode(id="ep1").is_downloaded
        assert Episode(id="ep1", local_path="/tmp/ep1.mp3").is_downloaded

    def test_defaults(self):
        episode = Episode(id="ep1")
        assert episode.playback_position == 0.0
        assert episode.ad_segments is None
        assert episode.ad_detection_type is None


class TestDetectionResult:
    def test_json_serialization(self):
        result = DetectionResult(
            source="/path/to/transcript.json",
            duration=600.0,
            detection_type=DetectionType.ADVANCED,
            segments=[
                AdSegment(
                    start=60.0,
                    end=120.0,
                    type=SegmentType.SELF_PROMOTION,
                    confidence=85,
                    description="Patreon plug",
                )
            ],
            model_info={"llm_model": "google/gemini-2.5-flash"},
        )

        parsed = json.loads(result.model_dump_json())
        assert parsed["detection_type"] == "advanced"
        assert parsed["segments"][0]["type"] == "self-promotion"
        assert parsed["segments"][0]["confidence"] == 85
        assert parsed["model_info"]["llm_model"] == "google/gemini-2.5-flash"

    def test_round_trip_from_json(self):
        result = DetectionResult(
            source="x.json",
            duration=60.0,
            detection_type=DetectionType.BASIC,
            segments=[],
        )
        restored = DetectionResult.model_validate_json(result.model_dump_json())
        assert restored == result
