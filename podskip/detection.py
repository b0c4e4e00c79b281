"""Basic and advanced detection runs for stored episodes."""

import logging

from .ad_llm import DetectionError, SegmentLLMClient
from .config import Config, DetectConfig
from .models import AdSegment, DetectionType, SegmentType, Transcript
from .segments import validate_and_mitigate
from .store import EpisodeStore

logger = logging.getLogger(__name__)

AD_SPEAKER_LABELS = {"advertiser", "advertisement", "ad", "sponsor"}

BASIC_DESCRIPTION = "Detected from transcript speaker labels"
BASIC_CONFIDENCE = 100


def is_ad_speaker(speaker: str | None) -> bool:
    """Check whether a diarization label marks an advertiser."""
    return bool(speaker) and speaker.strip().lower() in AD_SPEAKER_LABELS


def detect_basic_segments(
    transcript: Transcript,
    duration: float,
    config: DetectConfig | None = None,
) -> list[AdSegment]:
    """Find ads from speaker labels alone.

    Consecutive segments spoken by an advertiser form one candidate, kept
    when the run lasts at least ``basic_min_run`` seconds.

    Args:
        transcript: Transcript with speaker labels.
        duration: Episode duration in seconds.
        config: Pipeline thresholds.

    Returns:
        Validated advertisement segments.
    """
    config = config or DetectConfig()
    if not transcript.segments:
        return []

    candidates: list[AdSegment] = []
    run_start: float | None = None
    run_end: float | None = None

    def close_run() -> None:
        if run_start is not None and run_end is not None and run_end - run_start >= config.basic_min_run:
            candidates.append(
                AdSegment(
                    start=run_start,
                    end=run_end,
                    type=SegmentType.ADVERTISEMENT,
                    confidence=BASIC_CONFIDENCE,
                    description=BASIC_DESCRIPTION,
                )
            )

    for segment in transcript.segments:
        if is_ad_speaker(segment.speaker):
            if run_start is None:
                run_start = segment.start
            run_end = segment.end
        else:
            close_run()
            run_start = run_end = None

    # Episode ends with an ad
    close_run()

    logger.info(f"Basic detection found {len(candidates)} advertiser runs")
    return validate_and_mitigate(candidates, duration, config)


class SegmentDetector:
    """Runs detection for episodes in a store and commits the results."""

    def __init__(
        self,
        store: EpisodeStore,
        llm_client: SegmentLLMClient | None = None,
        config: Config | None = None,
    ):
        self.store = store
        self.llm_client = llm_client
        self.config = config or Config()

    def run_basic(self, episode_id: str) -> list[AdSegment] | None:
        """Run speaker-label detection.

        Returns:
            The committed segments, or None if a later run won.
        """
        generation = self.store.begin_detection(episode_id)
        episode = self.store.get(episode_id)
        if episode.transcript is None:
            raise DetectionError(f"No transcript available for episode {episode_id}")

        segments = detect_basic_segments(
            episode.transcript, episode.transcript.duration, self.config.detect
        )
        if self.store.commit_segments(episode_id, generation, segments, DetectionType.BASIC):
            return segments
        return None

    async def run_advanced(self, episode_id: str) -> list[AdSegment] | None:
        """Run LLM detection.

        The result wholly replaces any earlier segment set, unless a run that
        started later has already committed.

        Returns:
            The committed segments, or None if a later run won.
        """
        if self.llm_client is None:
            raise DetectionError("No LLM client configured for advanced detection")

        generation = self.store.begin_detection(episode_id)
        episode = self.store.get(episode_id)

        segments = await self.llm_client.detect(episode)
        logger.info(f"Advanced detection finished for episode {episode_id}: {len(segments)} segments")

        if self.store.commit_segments(episode_id, generation, segments, DetectionType.ADVANCED):
            return segments
        return None
