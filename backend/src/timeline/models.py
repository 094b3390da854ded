"""Clip model for the editor timeline.

All times are float seconds. The primary video is represented only by its
trim window; audio overlays are positioned on the timeline independently
of the video's native length.
"""

import uuid
from dataclasses import dataclass, field, replace

from src.exceptions import InvalidClipError

DEFAULT_AUDIO_MIME_TYPE = "audio/webm"
MIN_TRIM_SECONDS = 0.1


def new_clip_id() -> str:
    return f"audio-{uuid.uuid4().hex}"


@dataclass
class VideoTrim:
    """Sub-range of the source video that is kept.

    Every mutation clamps into ``[0, source_duration]`` so that
    ``0 <= start < end <= source_duration`` holds whenever the source is
    longer than zero.
    """

    start: float
    end: float

    @classmethod
    def full(cls, source_duration: float) -> "VideoTrim":
        return cls(start=0.0, end=max(0.0, source_duration))

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, time: float) -> bool:
        return self.start <= time < self.end

    def clamped(self, source_duration: float) -> "VideoTrim":
        """Return a copy clamped into ``[0, source_duration]``."""
        upper = max(0.0, source_duration)
        start = min(max(0.0, self.start), upper)
        end = min(max(0.0, self.end), upper)
        if end <= start:
            # Collapsed window: keep start, push end to the bound
            if start >= upper:
                start = 0.0
            end = upper
        return VideoTrim(start=start, end=end)

    def set_start(self, value: float, source_duration: float) -> None:
        # Never past the end handle
        value = min(value, self.end - MIN_TRIM_SECONDS)
        trimmed = VideoTrim(start=value, end=self.end).clamped(source_duration)
        self.start, self.end = trimmed.start, trimmed.end

    def set_end(self, value: float, source_duration: float) -> None:
        value = max(value, self.start + MIN_TRIM_SECONDS)
        trimmed = VideoTrim(start=self.start, end=value).clamped(source_duration)
        self.start, self.end = trimmed.start, trimmed.end

    def reset(self, source_duration: float) -> None:
        self.start = 0.0
        self.end = max(0.0, source_duration)


@dataclass(frozen=True)
class AudioCandidate:
    """Recorded or imported audio that has not been placed yet."""

    source_bytes: bytes
    duration: float
    name: str = ""
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE


@dataclass(frozen=True)
class AudioClip:
    """Audio overlay placed on the timeline.

    ``start_time`` is a timeline position, not an offset into the source.
    ``start_time + duration`` may run past the video's native duration,
    which is what extends the effective timeline.
    """

    id: str
    name: str
    source_bytes: bytes = field(repr=False)
    start_time: float
    duration: float
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE

    def __post_init__(self):
        if not self.id:
            raise InvalidClipError(reason="missing id")
        if self.start_time < 0:
            raise InvalidClipError(self.id, f"negative start time {self.start_time}")
        if self.duration <= 0:
            raise InvalidClipError(self.id, f"non-positive duration {self.duration}")

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def moved_to(self, start_time: float) -> "AudioClip":
        return replace(self, start_time=start_time)


@dataclass
class AudioExportClip:
    """Post-overlap view of an AudioClip, positioned in the trimmed output."""

    id: str
    name: str
    start_time_in_output: float
    duration_in_output: float
    source_bytes: bytes = field(repr=False)
    # Seconds skipped at the head of the clip because the trim window
    # starts inside it
    source_offset: float = 0.0
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    file_path: str | None = None

    @property
    def end_time_in_output(self) -> float:
        return self.start_time_in_output + self.duration_in_output


@dataclass(frozen=True)
class NeedsUserDecision:
    """Candidate audio is longer than the video; the user must choose.

    Not an error: the caller offers "auto-trim to fit" or "choose
    different audio".
    """

    candidate: AudioCandidate
    requested_start: float
    video_duration: float
    name: str = ""

    @property
    def overflow(self) -> float:
        return self.candidate.duration - self.video_duration
