"""FFprobe helpers used by the export pipeline."""

import json
import logging
import subprocess

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _run_ffprobe(file_path: str, *args: str, settings: Settings | None = None) -> dict:
    """Run ffprobe on one file and return its JSON report."""
    ffprobe_path = (settings or get_settings()).ffprobe_path
    cmd = [ffprobe_path, "-v", "error", "-of", "json", *args, file_path]

    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise RuntimeError(
            f"ffprobe exited with {result.returncode} for {file_path}: {result.stderr.strip()}"
        )

    try:
        return json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Unparseable ffprobe output for {file_path}: {e}") from e


def get_media_duration(file_path: str, settings: Settings | None = None) -> float:
    """
    Container duration in seconds.

    Raises:
        RuntimeError: If ffprobe fails or reports no duration
    """
    report = _run_ffprobe(file_path, "-show_entries", "format=duration", settings=settings)
    duration = report.get("format", {}).get("duration")
    if duration is None:
        raise RuntimeError(f"No duration reported for {file_path}")
    return float(duration)


def has_audio_track(file_path: str, settings: Settings | None = None) -> bool:
    """
    Whether the file carries at least one audio stream.

    A probe failure counts as "no audio" so an export can still go ahead
    with the overlay tracks only.
    """
    try:
        report = _run_ffprobe(
            file_path,
            "-select_streams", "a",
            "-show_entries", "stream=codec_type",
            settings=settings,
        )
    except (RuntimeError, OSError) as e:
        logger.warning("Audio stream probe failed for %s: %s", file_path, e)
        return False
    return any(stream.get("codec_type") == "audio" for stream in report.get("streams", []))
