from src.timeline.duration import extend_pinned_bound, resolve_effective_duration
from src.timeline.editing import DragSession, accept_auto_trim, insert_audio_clip, reposition
from src.timeline.models import AudioCandidate, AudioClip, AudioExportClip, NeedsUserDecision, VideoTrim
from src.timeline.overlap import adjust_clips_for_export, adjust_for_export
from src.timeline.playback import ClipPlaybackState, PlaybackController, PlaybackUrlCache
from src.timeline.session import TimelineSession
from src.timeline.store import ClipStore, InMemoryClipStore, LocalDiskClipStore

__all__ = [
    "AudioCandidate",
    "AudioClip",
    "AudioExportClip",
    "ClipPlaybackState",
    "ClipStore",
    "DragSession",
    "InMemoryClipStore",
    "LocalDiskClipStore",
    "NeedsUserDecision",
    "PlaybackController",
    "PlaybackUrlCache",
    "TimelineSession",
    "VideoTrim",
    "accept_auto_trim",
    "adjust_clips_for_export",
    "adjust_for_export",
    "extend_pinned_bound",
    "insert_audio_clip",
    "reposition",
    "resolve_effective_duration",
]
