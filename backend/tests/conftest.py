"""
Pytest fixtures for Angle backend tests.

Most tests are pure (timeline math, command construction, fakes for the
media tools). Tests that run the real ffmpeg/ffprobe are marked with
@pytest.mark.requires_ffmpeg and synthesize their own media with lavfi.

CI/CD Note:
Run `pytest -m "not requires_ffmpeg"` to skip them where ffmpeg is missing.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

from src.config import Settings
from src.timeline.models import AudioClip


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg/ffprobe on PATH (skipped otherwise)"
    )


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def pytest_collection_modifyitems(config, items):
    """Skip requires_ffmpeg tests when the tools are missing."""
    if _ffmpeg_available():
        return
    skip = pytest.mark.skip(reason="ffmpeg/ffprobe not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


def make_clip(
    clip_id: str = "clip-1",
    start_time: float = 0.0,
    duration: float = 1.0,
    payload: bytes = b"audio-bytes",
    name: str = "",
) -> AudioClip:
    """Build an AudioClip with a dummy payload."""
    return AudioClip(
        id=clip_id,
        name=name or clip_id,
        source_bytes=payload,
        start_time=start_time,
        duration=duration,
    )


@pytest.fixture
def clip_factory():
    """Factory for AudioClips with dummy payloads."""
    return make_clip


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="angle_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_output_dir: Path) -> Settings:
    """Settings isolated to a temp directory."""
    public_dir = temp_output_dir / "public"
    public_dir.mkdir()
    return Settings(
        _env_file=None,
        project_root=str(temp_output_dir),
        public_dir="public",
        temp_dir=str(temp_output_dir / "tmp"),
        worker_url="",
        export_timeout_seconds=60,
    )


@pytest.fixture
def public_video(test_settings: Settings) -> Path:
    """A placeholder file where the resolver looks for public videos."""
    path = Path(test_settings.project_root) / "public" / "videos" / "scene.mp4"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"not really a video")
    return path


def _run_ffmpeg(*args: str) -> None:
    subprocess.run(["ffmpeg", "-y", "-loglevel", "error", *args], capture_output=True, check=True)


@pytest.fixture
def video_with_audio(temp_output_dir: Path) -> Path:
    """A 6 second test pattern with a 440Hz tone."""
    path = temp_output_dir / "with_audio.mp4"
    _run_ffmpeg(
        "-f", "lavfi", "-i", "testsrc=size=320x240:rate=25:duration=6",
        "-f", "lavfi", "-i", "sine=frequency=440:duration=6",
        "-c:v", "libx264", "-g", "25", "-pix_fmt", "yuv420p", "-c:a", "aac",
        "-shortest", str(path),
    )
    return path


@pytest.fixture
def video_no_audio(temp_output_dir: Path) -> Path:
    """A 6 second test pattern without audio."""
    path = temp_output_dir / "no_audio.mp4"
    _run_ffmpeg(
        "-f", "lavfi", "-i", "testsrc=size=320x240:rate=25:duration=6",
        "-c:v", "libx264", "-g", "25", "-pix_fmt", "yuv420p", str(path),
    )
    return path


@pytest.fixture
def tone_audio(temp_output_dir: Path) -> bytes:
    """Two seconds of 880Hz tone as WAV bytes."""
    path = temp_output_dir / "tone.wav"
    _run_ffmpeg("-f", "lavfi", "-i", "sine=frequency=880:duration=2", str(path))
    return path.read_bytes()
