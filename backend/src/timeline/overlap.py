"""Audio clip overlap with the export trim window."""

import logging
from typing import Iterable

from src.timeline.models import AudioClip, AudioExportClip, VideoTrim

logger = logging.getLogger(__name__)


def adjust_for_export(clip: AudioClip, video_trim: VideoTrim) -> AudioExportClip | None:
    """
    Cut an audio clip down to the part that survives the export trim.

    Args:
        clip: Audio clip positioned on the timeline
        video_trim: Export window on the timeline

    Returns:
        AudioExportClip positioned relative to the trimmed output, or None
        if the clip lies entirely outside the window
    """
    overlap_start = max(clip.start_time, video_trim.start)
    overlap_end = min(clip.end_time, video_trim.end)

    if overlap_end <= overlap_start:
        return None

    return AudioExportClip(
        id=clip.id,
        name=clip.name,
        start_time_in_output=max(0.0, overlap_start - video_trim.start),
        duration_in_output=overlap_end - overlap_start,
        source_bytes=clip.source_bytes,
        source_offset=overlap_start - clip.start_time,
        mime_type=clip.mime_type,
    )


def adjust_clips_for_export(clips: Iterable[AudioClip], video_trim: VideoTrim) -> list[AudioExportClip]:
    """Apply adjust_for_export to every clip, dropping those outside the window."""
    adjusted: list[AudioExportClip] = []
    for clip in clips:
        export_clip = adjust_for_export(clip, video_trim)
        if export_clip is None:
            logger.info(
                "Dropping audio clip %s (%.3fs-%.3fs) outside export window %.3fs-%.3fs",
                clip.id, clip.start_time, clip.end_time, video_trim.start, video_trim.end,
            )
            continue
        adjusted.append(export_clip)
    return adjusted
