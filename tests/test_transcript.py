"""Tests for transcript formatting."""

from podskip.models import (
    AdSegment,
    DetectionResult,
    DetectionType,
    SegmentType,
    Transcript,
    TranscriptSegment,
    WordTimestamp,
)
from podskip.transcript import generate_summary, preprocess_transcript


def words(*items):
    return [WordTimestamp(word=w, start=s, end=s + 0.4) for w, s in items]


class TestPreprocessTranscript:
    def test_empty_transcript(self):
        assert preprocess_transcript(Transcript(duration=0.0)) == ""

    def test_segments_without_words(self):
        transcript = Transcript(
            duration=60.0,
            segments=[
                TranscriptSegment(start=0.0, end=5.0, text="Welcome to the show.", speaker="Host"),
                TranscriptSegment(start=5.0, end=9.0, text="Glad to be here.", speaker="Host"),
                TranscriptSegment(start=65.0, end=70.0, text="Try Acme today.", speaker="Advertiser"),
            ],
        )
        assert preprocess_transcript(transcript) == (
            "[0:00] (Host): Welcome to the show.\n"
            "[0:05] Glad to be here.\n"
            "[1:05] (Advertiser): Try Acme today."
        )

    def test_stamps_on_speaker_change(self):
        transcript = Transcript(
            duration=10.0,
            segments=[
                TranscriptSegment(
                    start=0.0,
                    end=2.0,
                    text="Hi there",
                    speaker="Host",
                    words=words(("Hi", 0.0), ("there", 0.5)),
                ),
                TranscriptSegment(
                    start=1.0,
                    end=2.0,
                    text="Hello",
                    speaker="Guest",
                    words=words(("Hello", 1.0)),
                ),
            ],
        )
        assert preprocess_transcript(transcript) == "[0:00] (Host): Hi there\n[0:01] (Guest): Hello"

    def test_stamps_every_three_words(self):
        transcript = Transcript(
            duration=10.0,
            segments=[
                TranscriptSegment(
                    start=0.0,
                    end=3.0,
                    text="one two three four five",
                    speaker="Host",
                    words=words(("one", 0.0), ("two", 0.5), ("three", 1.0), ("four", 1.5), ("five", 2.0)),
                )
            ],
        )
        assert preprocess_transcript(transcript) == "[0:00] (Host): one two three [0:01] four five"

    def test_stamps_after_sentence_end_and_gap(self):
        transcript = Transcript(
            duration=30.0,
            segments=[
                TranscriptSegment(
                    start=0.0,
                    end=20.0,
                    text="Done. Next after pause",
                    speaker="Host",
                    words=words(("Done.", 0.0), ("Next", 1.0), ("after", 10.0)),
                )
            ],
        )
        assert preprocess_transcript(transcript) == "[0:00] (Host): Done. [0:01] Next [0:10] after"

    def test_word_speaker_overrides_segment(self):
        transcript = Transcript(
            duration=10.0,
            segments=[
                TranscriptSegment(
                    start=0.0,
                    end=2.0,
                    text="Buy now",
                    words=[
                        WordTimestamp(word="Buy", start=0.0, end=0.3, speaker="Advertiser"),
                        WordTimestamp(word="now", start=0.4, end=0.6, speaker="Advertiser"),
                    ],
                )
            ],
        )
        assert preprocess_transcript(transcript) == "[0:00] (Advertiser): Buy now"


class TestGenerateSummary:
    def test_summary_lists_segments(self):
        result = DetectionResult(
            source="episode.json",
            duration=600.0,
            detection_type=DetectionType.ADVANCED,
            segments=[
                AdSegment(
                    start=120.0,
                    end=180.0,
                    type=SegmentType.ADVERTISEMENT,
                    confidence=95,
                    description="Acme",
                )
            ],
        )
        summary = generate_summary(result)

        assert "Skippable segments: 1" in summary
        assert "1. 2:00 - 3:00 [advertisement] (60s, 95% confidence)" in summary
        assert "   Acme" in summary
        assert "Total skippable time: 1:00 (10.0% of episode)" in summary

    def test_summary_without_segments(self):
        result = DetectionResult(
            source="episode.json",
            duration=600.0,
            detection_type=DetectionType.BASIC,
            segments=[],
        )
        assert "No skippable segments detected." in generate_summary(result)
