"""Audio clip insertion and drag repositioning.

These are pure functions: they return new clips or positions and never
touch the session's clip list.
"""

from dataclasses import dataclass

from src.exceptions import InvalidClipError
from src.timeline.models import AudioCandidate, AudioClip, NeedsUserDecision, new_clip_id


def insert_audio_clip(
    candidate: AudioCandidate,
    requested_start: float,
    video_duration: float,
    name: str | None = None,
) -> AudioClip | NeedsUserDecision:
    """
    Place recorded/imported audio on the timeline.

    Audio longer than the video is never inserted directly; the caller gets
    a NeedsUserDecision to offer auto-trim. A clip dropped so close to the
    end that it would run past the video is pulled back so it ends with
    the video.

    The cap is the video's native duration, not the effective timeline.

    Args:
        candidate: Audio payload and its full duration
        requested_start: Timeline position (usually the playhead)
        video_duration: Native video duration in seconds
        name: Display label, defaults to the candidate's name

    Returns:
        New AudioClip, or NeedsUserDecision when the audio is too long
    """
    if candidate.duration <= 0:
        raise InvalidClipError(reason=f"non-positive duration {candidate.duration}")

    label = name if name is not None else candidate.name
    start = max(0.0, requested_start)

    if candidate.duration > video_duration:
        return NeedsUserDecision(
            candidate=candidate,
            requested_start=start,
            video_duration=video_duration,
            name=label,
        )

    if start + candidate.duration > video_duration:
        start = max(0.0, video_duration - candidate.duration)

    return AudioClip(
        id=new_clip_id(),
        name=label,
        source_bytes=candidate.source_bytes,
        start_time=start,
        duration=candidate.duration,
        mime_type=candidate.mime_type,
    )


def accept_auto_trim(
    decision: NeedsUserDecision,
    timeline_duration: float | None = None,
) -> AudioClip:
    """Resolve a NeedsUserDecision by cutting the audio to the video's length."""
    duration = decision.video_duration
    if duration <= 0:
        raise InvalidClipError(reason="video has no duration to trim against")

    limit = timeline_duration if timeline_duration is not None else decision.video_duration
    start = min(decision.requested_start, limit - duration)
    start = max(0.0, start)

    return AudioClip(
        id=new_clip_id(),
        name=decision.name,
        source_bytes=decision.candidate.source_bytes,
        start_time=start,
        duration=duration,
        mime_type=decision.candidate.mime_type,
    )


def reposition(clip: AudioClip, delta_seconds: float, timeline_duration: float) -> float:
    """New start time for a clip dragged by ``delta_seconds``, kept on the timeline."""
    upper = max(0.0, timeline_duration - clip.duration)
    return min(max(0.0, clip.start_time + delta_seconds), upper)


@dataclass
class DragSession:
    """One drag gesture on an audio clip.

    Positions are always derived from the drag-start clip plus the total
    pointer displacement, so per-event rounding never accumulates.
    """

    clip: AudioClip
    timeline_duration: float
    pixels_per_second: float

    def __post_init__(self):
        if self.pixels_per_second <= 0:
            raise ValueError("pixels_per_second must be positive")

    def start_time_for(self, total_dx_pixels: float) -> float:
        return reposition(self.clip, total_dx_pixels / self.pixels_per_second, self.timeline_duration)

    def update(self, total_dx_pixels: float) -> AudioClip:
        """Clip as it would sit after ``total_dx_pixels`` of pointer travel."""
        return self.clip.moved_to(self.start_time_for(total_dx_pixels))
