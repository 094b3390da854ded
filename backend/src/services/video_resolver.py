"""Resolve a video locator to a local file for export.

Locators come from the render pipeline: either an absolute URL, or a path
served from the web app's public directory (optionally with a query
string). Paths that are not on local disk are fetched from the render
worker when one is configured.
"""

import logging
from pathlib import Path

import httpx

from src.config import Settings, get_settings
from src.exceptions import SourceNotFoundError
from src.services.export_workspace import ExportWorkspace

logger = logging.getLogger(__name__)


def _is_url(locator: str) -> bool:
    return locator.startswith("http://") or locator.startswith("https://")


def _within(candidate: Path, base: Path) -> bool:
    try:
        candidate.resolve().relative_to(base.resolve())
    except ValueError:
        return False
    return True


class VideoResolver:
    """Finds or downloads the source video behind a locator."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or get_settings()
        self._client = client

    async def resolve(self, locator: str, workspace: ExportWorkspace) -> Path:
        """
        Resolve a locator to a readable local path.

        Downloads land in the export workspace so they are cleaned up with
        the rest of the export's temp files.

        Args:
            locator: URL or public path of the rendered video
            workspace: Temp file scope of the current export

        Returns:
            Local path of the video

        Raises:
            SourceNotFoundError: If no resolution succeeds
        """
        if not locator:
            raise SourceNotFoundError(locator, reason="empty video path")

        attempted: list[str] = []

        if _is_url(locator):
            attempted.append(locator)
            target = workspace.new_file("source", ".mp4")
            try:
                await self._download(locator, target)
            except (httpx.HTTPError, OSError) as e:
                logger.error("Error downloading video file %s: %s", locator, e)
                raise SourceNotFoundError(locator, attempted=attempted, reason=str(e)) from e
            return target

        clean_path = locator.split("?", 1)[0]
        root = Path(self.settings.project_root)
        public_dir = root / self.settings.public_dir

        for base, relative in ((public_dir, clean_path.lstrip("/")), (root, clean_path)):
            candidate = base / relative.lstrip("/")
            attempted.append(str(candidate))
            if not _within(candidate, base):
                logger.warning("Rejecting video path outside %s: %s", base, locator)
                continue
            if candidate.is_file():
                logger.info("Resolved video path %s -> %s", locator, candidate)
                return candidate

        if self.settings.worker_url:
            video_url = f"{self.settings.worker_url.rstrip('/')}/{clean_path.lstrip('/')}"
            attempted.append(video_url)
            target = workspace.new_file("source", ".mp4")
            logger.info("Trying to download from worker URL: %s", video_url)
            try:
                await self._download(video_url, target)
            except (httpx.HTTPError, OSError) as e:
                logger.error("Error downloading from worker URL %s: %s", video_url, e)
                raise SourceNotFoundError(locator, attempted=attempted, reason=str(e)) from e
            return target

        raise SourceNotFoundError(locator, attempted=attempted)

    async def _download(self, url: str, target: Path) -> None:
        logger.info("Downloading file from %s to %s", url, target)
        if self._client is not None:
            await self._stream_to(self._client, url, target)
            return
        async with httpx.AsyncClient(
            timeout=self.settings.download_timeout_seconds,
            follow_redirects=True,
        ) as client:
            await self._stream_to(client, url, target)

    async def _stream_to(self, client: httpx.AsyncClient, url: str, target: Path) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with target.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
        logger.info("Download completed: %s (%d bytes)", target, target.stat().st_size)
