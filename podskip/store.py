"""In-memory episode store with detection generations.

Durable storage is somebody else's job; this store is the hand-off point.
It keeps the authoritative segment set for each episode, makes sure a slow
detection run cannot overwrite the result of a later one, and pushes every
change to subscribers such as the playback engine.
"""

import logging
from typing import Callable, Optional

from .models import AdSegment, DetectionType, Episode

logger = logging.getLogger(__name__)

SegmentListener = Callable[[str, Optional[list[AdSegment]]], None]


class EpisodeStore:
    """Episodes keyed by id."""

    def __init__(self) -> None:
        self._episodes: dict[str, Episode] = {}
        self._issued: dict[str, int] = {}
        self._committed: dict[str, int] = {}
        self._listeners: list[SegmentListener] = []

    def add(self, episode: Episode) -> None:
        self._episodes[episode.id] = episode

    def get(self, episode_id: str) -> Episode:
        """Return the episode, raising KeyError if unknown."""
        return self._episodes[episode_id]

    def save(self, episode: Episode) -> None:
        """Replace the stored record for an episode."""
        self._episodes[episode.id] = episode

    def subscribe(self, listener: SegmentListener) -> Callable[[], None]:
        """Register a listener for segment changes.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def begin_detection(self, episode_id: str) -> int:
        """Issue the next detection generation for an episode."""
        generation = self._issued.get(episode_id, 0) + 1
        self._issued[episode_id] = generation
        return generation

    def commit_segments(
        self,
        episode_id: str,
        generation: int,
        segments: list[AdSegment],
        detection_type: DetectionType,
    ) -> bool:
        """Store a detection result unless a later generation already did.

        Returns:
            True if the result was applied.
        """
        if generation <= self._committed.get(episode_id, 0):
            logger.info(
                f"Discarding stale {detection_type.value} detection for episode {episode_id} "
                f"(generation {generation}, already at {self._committed[episode_id]})"
            )
            return False

        episode = self.get(episode_id)
        self._episodes[episode_id] = episode.model_copy(
            update={"ad_segments": list(segments), "ad_detection_type": detection_type}
        )
        self._committed[episode_id] = generation
        logger.info(
            f"Stored {len(segments)} {detection_type.value} segments for episode {episode_id}"
        )
        self._notify(episode_id, list(segments))
        return True

    def clear_segments(self, episode_id: str) -> None:
        """Drop detected segments, e.g. when the user clears data."""
        episode = self.get(episode_id)
        self._episodes[episode_id] = episode.model_copy(
            update={"ad_segments": None, "ad_detection_type": None}
        )
        self._notify(episode_id, None)

    def reset_for_recovery(self, episode_id: str, position: float) -> Episode:
        """Clear local file and derived data ahead of a fresh download."""
        episode = self.get(episode_id).model_copy(
            update={
                "local_path": None,
                "transcript": None,
                "ad_segments": None,
                "ad_detection_type": None,
                "playback_position": position,
            }
        )
        self._episodes[episode_id] = episode
        self._notify(episode_id, None)
        return episode

    def _notify(self, episode_id: str, segments: Optional[list[AdSegment]]) -> None:
        for listener in list(self._listeners):
            listener(episode_id, segments)
