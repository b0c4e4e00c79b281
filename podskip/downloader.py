"""Episode audio downloads."""

import asyncio
import logging
from pathlib import Path

import httpx

from .models import Episode

logger = logging.getLogger(__name__)

USER_AGENT = "PodSkip/1.0 (Podcast Downloader)"


class DownloadError(Exception):
    """An episode could not be downloaded."""

    pass


class EpisodeDownloader:
    """Downloads episode audio into a local directory."""

    def __init__(
        self,
        download_dir: Path,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the downloader.

        Args:
            download_dir: Directory audio files are written to.
            timeout: Request timeout in seconds.
            transport: Optional transport, e.g. for tests.
        """
        self.download_dir = Path(download_dir)
        self.timeout = timeout
        self.transport = transport

    def path_for(self, episode_id: str) -> Path:
        return self.download_dir / f"{episode_id}.mp3"

    async def download(self, episode: Episode) -> Path:
        """Download an episode's enclosure.

        The file is written to ``<id>.mp3.part`` and renamed on success, so a
        partial download never looks like a complete file.

        Raises:
            DownloadError: If the request fails.
        """
        if not episode.enclosure_url:
            raise DownloadError(f"Episode {episode.id} has no enclosure URL")

        self.download_dir.mkdir(parents=True, exist_ok=True)
        dest = self.path_for(episode.id)
        partial = dest.with_name(dest.name + ".part")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self.transport,
            ) as client:
                async with client.stream("GET", episode.enclosure_url) as response:
                    response.raise_for_status()
                    f = await asyncio.to_thread(open, partial, "wb")
                    try:
                        async for chunk in response.aiter_bytes():
                            await asyncio.to_thread(f.write, chunk)
                    finally:
                        await asyncio.to_thread(f.close)
        except OSError as e:
            partial.unlink(missing_ok=True)
            logger.error(f"Could not write {partial}: {e}")
            raise DownloadError(f"Could not save episode {episode.id}: {e}") from e
        except httpx.HTTPStatusError as e:
            partial.unlink(missing_ok=True)
            raise DownloadError(
                f"Download failed for episode {episode.id} ({e.response.status_code})"
            ) from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Download failed for episode {episode.id}: {e}") from e

        partial.replace(dest)
        logger.info(f"Downloaded episode {episode.id} to {dest}")
        return dest
