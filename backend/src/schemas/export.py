"""Export API request schemas.

Field names on the wire are the web client's camelCase names.
"""

import math

from pydantic import BaseModel, ConfigDict, Field

from src.timeline.models import VideoTrim


def _finite(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return value


class AudioClipPayload(BaseModel):
    """One audio overlay as sent by the editor."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str = ""
    start_time: float | None = Field(default=None, alias="startTime")
    duration: float | None = None
    blob_base64: str | None = Field(default=None, alias="blobBase64")
    blob_type: str | None = Field(default=None, alias="blobType")


class ExportRequest(BaseModel):
    """POST /api/export body."""

    model_config = ConfigDict(populate_by_name=True)

    video_path: str | None = Field(default=None, alias="videoPath")
    video_trim_start: float | None = Field(default=None, alias="videoTrimStart")
    video_trim_end: float | None = Field(default=None, alias="videoTrimEnd")
    audio_trim_start: float | None = Field(default=None, alias="audioTrimStart")
    audio_trim_end: float | None = Field(default=None, alias="audioTrimEnd")
    audio_clips: list[AudioClipPayload] = Field(default_factory=list, alias="audioClips")

    def video_trim(self, default_end: float) -> VideoTrim:
        """Trim window with missing/non-finite bounds replaced by defaults.

        Negative starts clamp to 0.
        """
        start = _finite(self.video_trim_start)
        end = _finite(self.video_trim_end)
        return VideoTrim(
            start=max(0.0, start) if start is not None else 0.0,
            end=end if end is not None else default_end,
        )

    def audio_trim(self, video_trim: VideoTrim) -> VideoTrim:
        """Audio trim window; missing bounds follow the video trim."""
        start = _finite(self.audio_trim_start)
        end = _finite(self.audio_trim_end)
        return VideoTrim(
            start=max(0.0, start) if start is not None else video_trim.start,
            end=end if end is not None else video_trim.end,
        )
