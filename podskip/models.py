"""Pydantic data models for PodSkip."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from .timecodes import format_timestamp


class SegmentType(str, Enum):
    """Kinds of skippable content."""

    ADVERTISEMENT = "advertisement"
    SELF_PROMOTION = "self-promotion"
    INTRO_OUTRO = "intro/outro"
    CLOSING_CREDITS = "closing credits"


class DetectionType(str, Enum):
    """How an episode's skippable segments were produced."""

    BASIC = "basic"
    ADVANCED = "advanced"


class WordTimestamp(BaseModel):
    """A single word with its timestamp."""

    word: str
    start: float
    end: float
    speaker: Optional[str] = None


class TranscriptSegment(BaseModel):
    """A single segment from the transcript."""

    start: float
    end: float
    text: str
    speaker: Optional[str] = None
    words: Optional[list[WordTimestamp]] = None


class Transcript(BaseModel):
    """An externally produced transcript."""

    duration: float
    segments: list[TranscriptSegment] = []


class AdSegment(BaseModel):
    """A skippable time range inside an episode."""

    start: float
    end: float
    type: SegmentType
    confidence: int
    description: str = ""

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def start_time(self) -> str:
        """Display form of the start, e.g. ``2:05`` or ``1:02:05``."""
        return format_timestamp(self.start)

    @property
    def end_time(self) -> str:
        """Display form of the end."""
        return format_timestamp(self.end)

    def contains(self, position: float) -> bool:
        return self.start <= position < self.end


class ValidatedSegment(BaseModel):
    """A segment record from a model response after validation."""

    start_time: str
    end_time: str
    confidence: int
    type: SegmentType
    description: str = ""


class Episode(BaseModel):
    """The slice of an episode record this package reads and writes."""

    id: str
    title: str = ""
    feed_title: Optional[str] = None
    enclosure_url: str = ""
    local_path: Optional[str] = None
    playback_position: float = 0.0
    transcript: Optional[Transcript] = None
    ad_segments: Optional[list[AdSegment]] = None
    ad_detection_type: Optional[DetectionType] = None

    @property
    def is_downloaded(self) -> bool:
        return self.local_path is not None


class DetectionResult(BaseModel):
    """Complete result of a detection run, as written by the CLI."""

    source: str
    duration: float
    detection_type: DetectionType
    segments: list[AdSegment]
    model_info: dict[str, Any] = {}
