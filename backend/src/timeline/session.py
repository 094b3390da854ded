"""Editor session: the clip model for one open video."""

import logging
from typing import TYPE_CHECKING

from src.config import get_settings
from src.exceptions import ClipNotFoundError, ExportInProgressError
from src.timeline.duration import extend_pinned_bound, resolve_effective_duration
from src.timeline.editing import accept_auto_trim, insert_audio_clip, reposition
from src.timeline.models import AudioCandidate, AudioClip, NeedsUserDecision, VideoTrim
from src.timeline.store import ClipStore, InMemoryClipStore

if TYPE_CHECKING:
    from src.services.export_service import ExportResult, ExportService

logger = logging.getLogger(__name__)


class TimelineSession:
    """
    Owns the video trim window, the audio trim window and the audio clip list.

    Trim ends pinned to the end of the timeline follow it when audio
    extends the timeline; trim ends the user moved stay put. Clip changes
    are written through to the ClipStore.
    """

    def __init__(
        self,
        video_duration: float,
        store: ClipStore | None = None,
        *,
        pin_tolerance: float | None = None,
    ):
        self.video_duration = max(0.0, video_duration)
        self.store = store or InMemoryClipStore()
        if pin_tolerance is None:
            pin_tolerance = get_settings().trim_pin_tolerance_seconds
        self.pin_tolerance = pin_tolerance
        self._clips: list[AudioClip] = self.store.load()
        self._effective_duration = resolve_effective_duration(self.video_duration, self._clips)
        self.video_trim = VideoTrim.full(self._effective_duration)
        self.audio_trim = VideoTrim.full(self._effective_duration)
        self.volume = 1.0
        self.muted = False
        self.looping = False
        self.exporting = False

    # ------------------------------------------------------------------
    # Clip model
    # ------------------------------------------------------------------

    @property
    def clips(self) -> tuple[AudioClip, ...]:
        return tuple(self._clips)

    @property
    def effective_duration(self) -> float:
        return self._effective_duration

    def snapshot(self) -> tuple[AudioClip, ...]:
        """Immutable view of the clip list as of now."""
        return tuple(self._clips)

    def get_clip(self, clip_id: str) -> AudioClip:
        for clip in self._clips:
            if clip.id == clip_id:
                return clip
        raise ClipNotFoundError(clip_id)

    def add_clip(self, clip: AudioClip) -> AudioClip:
        self._clips.append(clip)
        self._clips_changed()
        return clip

    def insert_candidate(
        self,
        candidate: AudioCandidate,
        requested_start: float,
        name: str | None = None,
    ) -> AudioClip | NeedsUserDecision:
        """Insert recorded/imported audio, or hand back the auto-trim decision."""
        result = insert_audio_clip(candidate, requested_start, self.video_duration, name)
        if isinstance(result, AudioClip):
            self.add_clip(result)
        else:
            logger.info(
                "Audio clip exceeds video duration by %.3fs; waiting for user decision",
                result.overflow,
            )
        return result

    def accept_auto_trim(self, decision: NeedsUserDecision) -> AudioClip:
        return self.add_clip(accept_auto_trim(decision, self._effective_duration))

    def remove_clip(self, clip_id: str) -> AudioClip:
        clip = self.get_clip(clip_id)
        self._clips = [c for c in self._clips if c.id != clip_id]
        self._clips_changed()
        return clip

    def clear_clips(self) -> None:
        self._clips = []
        self._clips_changed()

    def move_clip(self, clip_id: str, delta_seconds: float) -> AudioClip:
        clip = self.get_clip(clip_id)
        return self.set_clip_start(clip_id, reposition(clip, delta_seconds, self._effective_duration))

    def set_clip_start(self, clip_id: str, start_time: float) -> AudioClip:
        """Commit a position computed elsewhere (e.g. by a DragSession)."""
        moved = self.get_clip(clip_id).moved_to(max(0.0, start_time))
        self._clips = [moved if c.id == clip_id else c for c in self._clips]
        self._clips_changed()
        return moved

    # ------------------------------------------------------------------
    # Trim windows
    # ------------------------------------------------------------------

    def set_video_trim(self, start: float, end: float) -> VideoTrim:
        self.video_trim = VideoTrim(start=start, end=end).clamped(self._effective_duration)
        return self.video_trim

    def set_audio_trim(self, start: float, end: float) -> VideoTrim:
        self.audio_trim = VideoTrim(start=start, end=end).clamped(self._effective_duration)
        return self.audio_trim

    def reset_trim(self) -> None:
        self.video_trim.reset(self._effective_duration)
        self.audio_trim.reset(self._effective_duration)

    def set_video_duration(self, video_duration: float) -> None:
        """New source loaded (e.g. a fresh render)."""
        self.video_duration = max(0.0, video_duration)
        self._recompute_duration()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(self, service: "ExportService", video_locator: str) -> "ExportResult":
        """Export the current state; a second export while one runs is rejected."""
        if self.exporting:
            raise ExportInProgressError()
        self.exporting = True
        try:
            return await service.export(
                video_locator,
                VideoTrim(self.video_trim.start, self.video_trim.end),
                self.snapshot(),
                VideoTrim(self.audio_trim.start, self.audio_trim.end),
            )
        finally:
            self.exporting = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clips_changed(self) -> None:
        self.store.save(list(self._clips))
        self._recompute_duration()

    def _recompute_duration(self) -> None:
        previous = self._effective_duration
        resolved = resolve_effective_duration(self.video_duration, self._clips)
        self._effective_duration = resolved
        if resolved == previous:
            return

        video_end = extend_pinned_bound(self.video_trim.end, previous, resolved, self.pin_tolerance)
        audio_end = extend_pinned_bound(self.audio_trim.end, previous, resolved, self.pin_tolerance)
        self.video_trim = VideoTrim(self.video_trim.start, video_end).clamped(resolved)
        self.audio_trim = VideoTrim(self.audio_trim.start, audio_end).clamped(resolved)
        logger.debug(
            "Timeline duration %.3fs -> %.3fs (video trim end %.3fs)",
            previous, resolved, self.video_trim.end,
        )
