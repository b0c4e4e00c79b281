"""Real-time skipping of detected segments during playback.

The engine sits between a media backend (anything that can load, play,
pause and seek audio) and the detected segment set. It is driven entirely by
callbacks on a single event loop: position samples, metadata and error
events from the backend, and completion of the skip cue. Reentrancy is
guarded by an explicit session state rather than by locks.

Wiring, for a backend:

- time updates -> ``on_time_update(position, duration)``
- metadata loaded -> ``on_metadata_loaded(duration)``
- load error -> ``await on_load_error()``
- end of media -> ``on_ended()``
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .config import PlaybackConfig
from .models import AdSegment, Episode
from .recovery import EpisodeRecovery, RecoveryError

logger = logging.getLogger(__name__)


class PlaybackSourceError(Exception):
    """The current source cannot be played."""

    pass


class SessionState(str, Enum):
    """What the engine is doing right now."""

    IDLE = "idle"
    SKIPPING = "skipping"
    ENDING = "ending"
    RECOVERING = "recovering"


class SourceState(str, Enum):
    """Progress of loading the current source."""

    LOADING = "loading"
    LOADED = "loaded"
    RECOVERING = "recovering"  # waiting for the redownload
    RELOADING = "reloading"  # loading the redownloaded file
    FAILED = "failed"


class MediaBackend(ABC):
    """The audio subsystem the engine controls."""

    @abstractmethod
    def load_source(self, uri: str) -> None:
        """Start loading a source. Answer with metadata or an error event."""

    @abstractmethod
    def unload(self) -> None:
        """Drop the current source and release the file."""

    @abstractmethod
    def play(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def seek(self, position: float) -> None: ...

    @abstractmethod
    def set_rate(self, rate: float) -> None: ...

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Set volume for both the episode and the skip cue."""

    @abstractmethod
    def play_cue(self, on_finished: Callable[[], None]) -> None:
        """Play the skip cue and call ``on_finished`` when it ends."""

    @abstractmethod
    def dispatch_ended(self) -> None:
        """Raise the backend's normal end-of-media event."""


@dataclass
class PlaybackSession:
    """State of one loaded episode."""

    episode: Episode
    state: SessionState = SessionState.IDLE
    source_state: SourceState = SourceState.LOADING
    active_segment: Optional[AdSegment] = None
    restore_position: float = 0.0
    error: Optional[PlaybackSourceError] = None


def source_uri(episode: Episode) -> str:
    """Local file URI when downloaded, otherwise the enclosure URL."""
    if episode.local_path:
        return Path(episode.local_path).absolute().as_uri()
    return episode.enclosure_url


class PlaybackSkipEngine:
    """Skips detected segments exactly once as playback crosses them."""

    def __init__(
        self,
        media: MediaBackend,
        recovery: EpisodeRecovery | None = None,
        config: PlaybackConfig | None = None,
        on_finished: Callable[[str], None] | None = None,
        on_error: Callable[[PlaybackSourceError], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the engine.

        Args:
            media: Backend to control.
            recovery: Recovery service for missing local files.
            config: Timing configuration.
            on_finished: Called with the episode id when an episode ends.
            on_error: Called when the source fails for good.
            clock: Monotonic clock used to throttle position samples.
        """
        self.media = media
        self.recovery = recovery
        self.config = config or PlaybackConfig()
        self.on_finished = on_finished
        self.on_error = on_error
        self.clock = clock

        self.session: Optional[PlaybackSession] = None
        self.segments: list[AdSegment] = []
        self.position = 0.0
        self.media_position = 0.0
        self.duration = 0.0
        self.is_playing = False
        self.rate = 1.0
        self.volume = 1.0
        self._last_tick: float | None = None
        # Engine-wide so a cue from an earlier episode never matches
        self._skip_sequence = 0

    @property
    def state(self) -> SessionState:
        return self.session.state if self.session else SessionState.IDLE

    # -- commands -----------------------------------------------------------

    def load(self, episode: Episode, position: float = 0.0) -> None:
        """Switch to an episode and start loading its source."""
        self.session = PlaybackSession(episode=episode, restore_position=position)
        self.segments = list(episode.ad_segments or [])
        self.position = position
        self.media_position = 0.0
        self.duration = 0.0
        self._last_tick = None

        uri = source_uri(episode)
        logger.info(f"Loading {'local' if episode.local_path else 'stream'} source: {uri}")
        self.media.load_source(uri)

    def play(self) -> None:
        self.is_playing = True
        session = self.session
        if session and session.state == SessionState.IDLE and session.source_state == SourceState.LOADED:
            self.media.play()

    def pause(self) -> None:
        self.is_playing = False
        if self.session:
            self.media.pause()

    def set_rate(self, rate: float) -> None:
        self.rate = rate
        self.media.set_rate(rate)

    def set_volume(self, volume: float) -> None:
        self.volume = volume
        self.media.set_volume(volume)

    def set_segments(self, episode_id: str, segments: list[AdSegment] | None) -> None:
        """Receive a newly committed segment set.

        Matches the EpisodeStore listener signature, so the engine can be
        subscribed directly.
        """
        if self.session is None or self.session.episode.id != episode_id:
            return
        self.segments = list(segments or [])
        logger.debug(f"Segment set updated for episode {episode_id}: {len(self.segments)} segments")

    def seek(self, position: float) -> None:
        """User-initiated seek.

        A jump beyond the seek tolerance cancels any skip or ending in
        progress.
        """
        self.position = position
        session = self.session
        if session is None:
            return

        if session.source_state != SourceState.LOADED:
            session.restore_position = position
            return

        if abs(self.media_position - position) <= self.config.seek_tolerance:
            return

        if session.state in (SessionState.SKIPPING, SessionState.ENDING):
            logger.info("Manual seek, cancelling skip")
            self._reset_to_idle(session)

        self.media.seek(position)
        self.media_position = position
        if self.is_playing:
            self.media.play()

    # -- backend events -----------------------------------------------------

    def on_metadata_loaded(self, duration: float) -> None:
        """The current source is ready."""
        session = self.session
        if session is None or session.source_state == SourceState.FAILED:
            return

        self.duration = duration
        restore = session.restore_position
        if 0 < restore < duration:
            self.media.seek(restore)
            self.position = self.media_position = restore
            logger.info(f"Restored playback position to {restore:.1f}s")

        # A source swap resets rate and volume on most backends
        self.media.set_rate(self.rate)
        self.media.set_volume(self.volume)

        if session.source_state == SourceState.RELOADING:
            logger.info(f"Recovered source loaded for episode {session.episode.id}")
        session.source_state = SourceState.LOADED
        if session.state == SessionState.RECOVERING:
            session.state = SessionState.IDLE

        if self.is_playing:
            self.media.play()

    async def on_load_error(self) -> None:
        """The current source failed to load.

        A local file gets one recovery attempt: redownload and reload. Any
        further error on the same load is final.
        """
        session = self.session
        if session is None:
            return

        if session.source_state == SourceState.FAILED:
            return
        if session.source_state == SourceState.RECOVERING:
            logger.debug("Load error while recovery is in flight, ignoring")
            return
        if session.source_state == SourceState.RELOADING:
            self._fail(session, PlaybackSourceError("Recovered source still failed to load"))
            return
        if not session.episode.local_path:
            self._fail(session, PlaybackSourceError(f"Could not load stream for episode {session.episode.id}"))
            return
        if self.recovery is None:
            self._fail(session, PlaybackSourceError(f"Local file missing for episode {session.episode.id}"))
            return

        logger.info(f"Local file failed to load, recovering episode {session.episode.id}")
        session.source_state = SourceState.RECOVERING
        session.state = SessionState.RECOVERING
        session.active_segment = None
        position_before = self.position

        try:
            result = await self.recovery.recover(session.episode.id, position_before)
        except RecoveryError as e:
            if self.session is session:
                self._fail(session, PlaybackSourceError(str(e)))
            return

        if self.session is not session:
            logger.debug("Episode changed during recovery, dropping recovered source")
            return

        session.episode = result.episode
        if self.position != position_before:
            # The user seeked while the file was downloading
            session.restore_position = self.position
        elif result.position > 0:
            session.restore_position = result.position
        else:
            session.restore_position = self.position
        session.source_state = SourceState.RELOADING

        self.media.unload()
        self.media.load_source(source_uri(result.episode))

    def on_time_update(self, position: float, duration: float | None = None, now: float | None = None) -> None:
        """Position sample from the backend, throttled to ``tick_interval``."""
        now = self.clock() if now is None else now
        if self._last_tick is not None and now - self._last_tick < self.config.tick_interval:
            return
        self._last_tick = now

        self.media_position = position
        if duration:
            self.duration = duration

        session = self.session
        if session is None:
            return
        # Finalization or recovery owns the session until it completes
        if session.state in (SessionState.ENDING, SessionState.RECOVERING):
            return

        self.position = position

        if self.duration <= 0:
            return
        safe_end = self.duration - self.config.end_margin
        if position >= safe_end:
            return

        current = next(
            (seg for seg in self.segments if seg.start <= position < min(seg.end, safe_end)),
            None,
        )

        if current is not None:
            if session.state == SessionState.IDLE:
                self._start_skip(session, current)
        elif session.state == SessionState.SKIPPING:
            logger.debug("Left the segment mid-skip, back to idle")
            self._reset_to_idle(session)
            if self.is_playing:
                self.media.play()

    def on_cue_finished(self, sequence: int) -> None:
        """The skip cue for skip ``sequence`` has ended."""
        session = self.session
        if session is None or session.state != SessionState.SKIPPING or sequence != self._skip_sequence:
            logger.debug(f"Ignoring cue completion for stale skip {sequence}")
            return

        segment = session.active_segment
        effective_end = min(segment.end, self.duration)

        if effective_end >= self.duration - self.config.end_margin:
            logger.info("Segment runs to the end of the episode, finishing")
            session.state = SessionState.ENDING
            session.active_segment = None
            # Seeking to the exact end does not reliably raise end-of-media
            self.media.dispatch_ended()
            return

        self.media.seek(effective_end)
        self.position = self.media_position = effective_end
        session.state = SessionState.IDLE
        session.active_segment = None
        if self.is_playing:
            self.media.play()

    def on_ended(self) -> None:
        """End of media: release the source and hand off to ``on_finished``."""
        session = self.session
        if session is None:
            return

        session.state = SessionState.ENDING
        session.active_segment = None
        try:
            self.media.pause()
            self.media.unload()
            if self.on_finished:
                self.on_finished(session.episode.id)
        finally:
            if session.state == SessionState.ENDING:
                session.state = SessionState.IDLE

    # -- internals ----------------------------------------------------------

    def _start_skip(self, session: PlaybackSession, segment: AdSegment) -> None:
        session.state = SessionState.SKIPPING
        session.active_segment = segment
        self._skip_sequence += 1
        sequence = self._skip_sequence

        logger.info(
            f"Skipping {segment.type.value} {segment.start_time} -> {segment.end_time}: "
            f"{segment.description}"
        )
        self.media.pause()
        self.media.play_cue(lambda: self.on_cue_finished(sequence))

    def _reset_to_idle(self, session: PlaybackSession) -> None:
        session.state = SessionState.IDLE
        session.active_segment = None
        # Invalidate the cue callback of the abandoned skip
        self._skip_sequence += 1

    def _fail(self, session: PlaybackSession, error: PlaybackSourceError) -> None:
        session.source_state = SourceState.FAILED
        session.state = SessionState.IDLE
        session.error = error
        logger.error(f"Playback failed for episode {session.episode.id}: {error}")
        if self.on_error:
            self.on_error(error)
