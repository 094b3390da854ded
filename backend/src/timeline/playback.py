"""Synchronized multi-track playback.

Drives one audio handle per overlay clip in lockstep with the primary
video's clock. The controller is polled from the host's time-update
notifications (a single cooperative loop), so no locking is involved;
every handler is safe to call repeatedly for the same tick.

Host integration goes through two small protocols:

- ``VideoTransport``: the video element (position, play/pause, volume)
- ``AudioHandle``: one playing instance of an audio clip, created by an
  ``AudioHandleFactory`` from a playback URL
"""

import base64
import logging
from enum import Enum
from functools import partial
from typing import Callable, Iterable, Protocol

from src.timeline.models import AudioClip, VideoTrim

logger = logging.getLogger(__name__)


class ClipPlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class VideoTransport(Protocol):
    current_time: float
    volume: float
    muted: bool

    @property
    def paused(self) -> bool: ...

    def seek(self, time: float) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class AudioHandle(Protocol):
    current_time: float
    volume: float
    on_ended: Callable[[], None] | None

    def play(self) -> None: ...

    def stop(self) -> None: ...


AudioHandleFactory = Callable[[str], AudioHandle]


def data_url(payload: bytes, mime_type: str) -> str:
    """Inline playback URL for a clip payload."""
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


class PlaybackUrlCache:
    """Playback URLs derived from clip payloads.

    URLs are a cache: they are rebuilt from the clip bytes whenever missing
    and released when the clip goes away. They are never persisted.
    """

    def __init__(
        self,
        create_url: Callable[[bytes, str], str] = data_url,
        revoke_url: Callable[[str], None] | None = None,
    ):
        self._create_url = create_url
        self._revoke_url = revoke_url
        self._urls: dict[str, str] = {}

    def __contains__(self, clip_id: str) -> bool:
        return clip_id in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def url_for(self, clip: AudioClip) -> str:
        url = self._urls.get(clip.id)
        if url is None:
            url = self._create_url(clip.source_bytes, clip.mime_type)
            self._urls[clip.id] = url
        return url

    def release(self, clip_id: str) -> None:
        url = self._urls.pop(clip_id, None)
        if url is not None and self._revoke_url is not None:
            self._revoke_url(url)

    def release_all(self) -> None:
        for clip_id in list(self._urls):
            self.release(clip_id)


class PlaybackController:
    """Keeps audio overlay handles in sync with the video's playback position."""

    def __init__(
        self,
        transport: VideoTransport,
        handle_factory: AudioHandleFactory,
        url_cache: PlaybackUrlCache | None = None,
        *,
        clips: Iterable[AudioClip] = (),
        trim: VideoTrim | None = None,
        looping: bool = False,
    ):
        self.transport = transport
        self._handle_factory = handle_factory
        self._urls = url_cache if url_cache is not None else PlaybackUrlCache()
        self._clips: dict[str, AudioClip] = {clip.id: clip for clip in clips}
        self._trim = trim
        self.looping = looping
        self._handles: dict[str, AudioHandle] = {}
        # Clips whose audio ran out while the playhead is still in their window
        self._finished: set[str] = set()

    # ------------------------------------------------------------------
    # State inspection
    # ------------------------------------------------------------------

    @property
    def clips(self) -> list[AudioClip]:
        return list(self._clips.values())

    @property
    def trim(self) -> VideoTrim | None:
        return self._trim

    @property
    def active_clip_ids(self) -> set[str]:
        return set(self._handles)

    def state(self, clip_id: str) -> ClipPlaybackState:
        if clip_id in self._handles:
            return ClipPlaybackState.PLAYING
        return ClipPlaybackState.IDLE

    def handle_for(self, clip_id: str) -> AudioHandle | None:
        return self._handles.get(clip_id)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_clips(self, clips: Iterable[AudioClip]) -> None:
        """Replace the clip set; handles of removed or moved clips are dropped."""
        new_clips = {clip.id: clip for clip in clips}
        for clip_id, old in self._clips.items():
            new = new_clips.get(clip_id)
            if new is None:
                self._deactivate(clip_id)
                self._urls.release(clip_id)
                self._finished.discard(clip_id)
            elif (new.start_time, new.duration) != (old.start_time, old.duration):
                self._deactivate(clip_id)
                self._finished.discard(clip_id)
        self._clips = new_clips

    def set_trim(self, trim: VideoTrim | None) -> None:
        self._trim = trim

    def set_looping(self, looping: bool) -> None:
        self.looping = looping

    def set_volume(self, volume: float) -> None:
        self.transport.volume = min(max(0.0, volume), 1.0)
        self._apply_gain()

    def set_muted(self, muted: bool) -> None:
        self.transport.muted = muted
        self._apply_gain()

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Handle one time-update notification from the video."""
        current_time = self.transport.current_time
        trim = self._trim

        if trim is not None:
            if current_time >= trim.end:
                self._reached_trim_end(trim)
                return
            if current_time < trim.start:
                self.transport.seek(trim.start)
                current_time = trim.start

        playing = not self.transport.paused
        for clip in list(self._clips.values()):
            in_window = clip.start_time <= current_time < clip.end_time
            if not in_window:
                self._finished.discard(clip.id)

            active = (
                playing
                and in_window
                and (trim is None or trim.contains(current_time))
                and clip.id not in self._finished
            )
            if active and clip.id not in self._handles:
                self._activate(clip, current_time)
            elif not active and clip.id in self._handles:
                self._deactivate(clip.id)

    def seek(self, time: float) -> None:
        """User scrub: silence everything, jump, then resume in sync."""
        self.stop_all()
        self.transport.seek(max(0.0, time))
        if not self.transport.paused:
            self.tick()

    def play(self) -> None:
        self.transport.play()
        self.tick()

    def pause(self) -> None:
        self.transport.pause()
        self.stop_all()

    def handle_ended(self) -> None:
        """The video element reached its natural end."""
        self.stop_all()
        if self.looping:
            self.transport.seek(self._trim.start if self._trim is not None else 0.0)
            self.transport.play()
            self.tick()
        else:
            self.transport.seek(0.0)

    def stop_all(self) -> None:
        for clip_id in list(self._handles):
            self._deactivate(clip_id)
        self._finished.clear()

    def release(self) -> None:
        """Tear down: stop playback and drop every cached URL."""
        self.stop_all()
        self._urls.release_all()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reached_trim_end(self, trim: VideoTrim) -> None:
        self.stop_all()
        self.transport.seek(trim.start)
        if self.looping:
            if not self.transport.paused:
                self.transport.play()
                self.tick()
        else:
            self.transport.pause()

    def _gain(self) -> float:
        return 0.0 if self.transport.muted else self.transport.volume

    def _apply_gain(self) -> None:
        gain = self._gain()
        for handle in self._handles.values():
            handle.volume = gain

    def _activate(self, clip: AudioClip, current_time: float) -> None:
        handle: AudioHandle | None = None
        try:
            handle = self._handle_factory(self._urls.url_for(clip))
            handle.current_time = min(max(0.0, current_time - clip.start_time), clip.duration)
            handle.volume = self._gain()
            handle.on_ended = partial(self._clip_ended, clip.id, handle)
            self._handles[clip.id] = handle
            handle.play()
        except Exception:
            logger.exception("Failed to start audio clip %s", clip.id)
            # Stays idle until the playhead leaves its window or the user seeks.
            self._finished.add(clip.id)
            self._handles.pop(clip.id, None)
            if handle is not None:
                self._stop_handle(clip.id, handle)

    def _deactivate(self, clip_id: str) -> None:
        handle = self._handles.pop(clip_id, None)
        if handle is not None:
            self._stop_handle(clip_id, handle)

    def _stop_handle(self, clip_id: str, handle: AudioHandle) -> None:
        handle.on_ended = None
        try:
            handle.stop()
        except Exception:
            logger.exception("Failed to stop audio clip %s", clip_id)

    def _clip_ended(self, clip_id: str, handle: AudioHandle) -> None:
        # Ignore late callbacks from a handle that was already replaced
        if self._handles.get(clip_id) is not handle:
            return
        del self._handles[clip_id]
        handle.on_ended = None
        self._finished.add(clip_id)
