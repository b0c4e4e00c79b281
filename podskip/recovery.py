"""Recovery of episodes whose local audio file is missing.

When a downloaded file disappears (deleted, corrupted, moved) the episode is
reset and downloaded again while keeping the listener's position. At most
one recovery runs per episode; concurrent callers share it.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .models import Episode
from .store import EpisodeStore

logger = logging.getLogger(__name__)


class RecoveryError(Exception):
    """An episode could not be recovered."""

    pass


class Downloader(Protocol):
    async def download(self, episode: Episode) -> Path: ...


@dataclass
class RecoveryResult:
    """Outcome of a successful recovery."""

    episode: Episode
    position: float


class EpisodeRecovery:
    """Redownloads episodes with missing files."""

    def __init__(self, store: EpisodeStore, downloader: Downloader):
        self.store = store
        self.downloader = downloader
        self._active: dict[str, asyncio.Task] = {}

    def is_recovering(self, episode_id: str) -> bool:
        return episode_id in self._active

    async def recover(self, episode_id: str, preserve_position: float | None = None) -> RecoveryResult:
        """Recover an episode, joining a recovery already in flight.

        Args:
            episode_id: Episode to recover.
            preserve_position: Position to restore. The stored position is
                used when this is missing or zero.

        Raises:
            RecoveryError: If the episode is unknown or the download fails.
        """
        task = self._active.get(episode_id)
        if task is not None:
            logger.info(f"Recovery already in progress for episode {episode_id}, waiting for it")
            return await asyncio.shield(task)

        task = asyncio.ensure_future(self._run(episode_id, preserve_position))
        self._active[episode_id] = task
        return await asyncio.shield(task)

    async def _run(self, episode_id: str, preserve_position: float | None) -> RecoveryResult:
        try:
            return await self._perform(episode_id, preserve_position)
        finally:
            self._active.pop(episode_id, None)

    async def _perform(self, episode_id: str, preserve_position: float | None) -> RecoveryResult:
        logger.info(f"Starting recovery for episode {episode_id}")

        try:
            episode = self.store.get(episode_id)
        except KeyError:
            raise RecoveryError(f"Episode {episode_id} not found")

        if preserve_position and preserve_position > 0:
            position = preserve_position
        else:
            position = episode.playback_position

        reset = self.store.reset_for_recovery(episode_id, position)
        logger.info(f"Episode {episode_id} reset, redownloading (position {position:.1f}s)")

        try:
            path = await self.downloader.download(reset)
        except Exception as e:
            logger.error(f"Recovery download failed for episode {episode_id}: {e}")
            raise RecoveryError(f"Download failed for episode {episode_id}: {e}") from e

        recovered = self.store.get(episode_id).model_copy(
            update={"local_path": str(path), "playback_position": position}
        )
        self.store.save(recovered)

        logger.info(f"Recovery successful for episode {episode_id}")
        return RecoveryResult(episode=recovered, position=position)

    async def verify_and_recover(self, episodes: list[Episode]) -> list[RecoveryResult | RecoveryError]:
        """Recover every downloaded episode whose file is gone.

        Failures are logged and returned alongside successes.
        """
        results: list[RecoveryResult | RecoveryError] = []

        for episode in episodes:
            if not episode.is_downloaded or verify_episode_file(episode):
                continue

            logger.info(f"Episode {episode.title or episode.id} has a missing file, recovering")
            try:
                results.append(await self.recover(episode.id, episode.playback_position))
            except RecoveryError as e:
                logger.error(str(e))
                results.append(e)

        return results


def verify_episode_file(episode: Episode) -> bool:
    """Check that a downloaded episode's file exists."""
    if not episode.local_path:
        return False

    exists = Path(episode.local_path).is_file()
    if not exists:
        logger.warning(f"File missing for episode {episode.id}: {episode.local_path}")
    return exists
