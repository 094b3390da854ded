"""Tests for resolving export video locators."""

from pathlib import Path

import httpx
import pytest

from src.exceptions import SourceNotFoundError
from src.services.export_workspace import ExportWorkspace
from src.services.video_resolver import VideoResolver


@pytest.fixture
def workspace(test_settings):
    ws = ExportWorkspace(test_settings.temp_dir)
    yield ws
    ws.cleanup()


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestLocalResolution:
    @pytest.mark.asyncio
    async def test_public_dir(self, test_settings, public_video, workspace):
        resolved = await VideoResolver(test_settings).resolve("/videos/scene.mp4", workspace)
        assert resolved == public_video

    @pytest.mark.asyncio
    async def test_query_string_stripped(self, test_settings, public_video, workspace):
        resolved = await VideoResolver(test_settings).resolve("/videos/scene.mp4?v=1712", workspace)
        assert resolved == public_video

    @pytest.mark.asyncio
    async def test_project_root_fallback(self, test_settings, workspace):
        path = Path(test_settings.project_root) / "renders" / "out.mp4"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"video")

        resolved = await VideoResolver(test_settings).resolve("/renders/out.mp4", workspace)

        assert resolved == path

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, test_settings, workspace):
        # Sits beside public/, so only reachable by climbing out of it
        (Path(test_settings.project_root) / "secret.mp4").write_bytes(b"not yours")

        with pytest.raises(SourceNotFoundError):
            await VideoResolver(test_settings).resolve("/../secret.mp4", workspace)

    @pytest.mark.asyncio
    async def test_not_found_lists_attempts(self, test_settings, workspace):
        with pytest.raises(SourceNotFoundError) as exc_info:
            await VideoResolver(test_settings).resolve("/videos/none.mp4", workspace)

        error = exc_info.value
        assert error.status_code == 404
        assert error.details["requestedPath"] == "/videos/none.mp4"
        assert len(error.details["attempted"]) == 2

    @pytest.mark.asyncio
    async def test_empty_locator(self, test_settings, workspace):
        with pytest.raises(SourceNotFoundError):
            await VideoResolver(test_settings).resolve("", workspace)


class TestDownloads:
    @pytest.mark.asyncio
    async def test_absolute_url_downloaded_into_workspace(self, test_settings, workspace):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://cdn.example.com/v.mp4"
            return httpx.Response(200, content=b"remote-video")

        async with _client(handler) as client:
            resolved = await VideoResolver(test_settings, client).resolve(
                "https://cdn.example.com/v.mp4", workspace
            )

        assert resolved.read_bytes() == b"remote-video"
        assert resolved.parent == workspace.root

    @pytest.mark.asyncio
    async def test_worker_fallback(self, test_settings, workspace):
        settings = test_settings.model_copy(update={"worker_url": "http://worker:8080/"})
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=b"worker-video")

        async with _client(handler) as client:
            resolved = await VideoResolver(settings, client).resolve("/videos/remote.mp4?t=1", workspace)

        assert requested == ["http://worker:8080/videos/remote.mp4"]
        assert resolved.read_bytes() == b"worker-video"

    @pytest.mark.asyncio
    async def test_http_error_is_not_found(self, test_settings, workspace):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with _client(handler) as client:
            with pytest.raises(SourceNotFoundError) as exc_info:
                await VideoResolver(test_settings, client).resolve("https://cdn.example.com/gone.mp4", workspace)

        assert exc_info.value.attempted == ["https://cdn.example.com/gone.mp4"]

    @pytest.mark.asyncio
    async def test_downloads_removed_with_workspace(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"remote-video")

        workspace = ExportWorkspace(test_settings.temp_dir)
        async with _client(handler) as client:
            resolved = await VideoResolver(test_settings, client).resolve("https://cdn.example.com/v.mp4", workspace)
        workspace.cleanup()

        assert not resolved.exists()
        assert not workspace.root.exists()
