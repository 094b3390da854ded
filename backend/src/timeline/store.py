"""Pluggable persistence for a session's audio clips.

The in-memory model holds raw bytes only. Backends that need a text
format (JSON on disk, browser storage) base64-encode payloads at their own
boundary.
"""

import base64
import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from src.timeline.models import DEFAULT_AUDIO_MIME_TYPE, AudioClip

logger = logging.getLogger(__name__)


class ClipStore(Protocol):
    def save(self, clips: list[AudioClip]) -> None: ...

    def load(self) -> list[AudioClip]: ...


class InMemoryClipStore:
    """Keeps the last saved clip list in process memory."""

    def __init__(self) -> None:
        self._clips: list[AudioClip] = []

    def save(self, clips: list[AudioClip]) -> None:
        self._clips = list(clips)

    def load(self) -> list[AudioClip]:
        return list(self._clips)


class StoredAudioClip(BaseModel):
    """On-disk representation of an AudioClip."""

    id: str
    name: str = ""
    start_time: float
    duration: float
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    blob_base64: str

    @classmethod
    def from_clip(cls, clip: AudioClip) -> "StoredAudioClip":
        return cls(
            id=clip.id,
            name=clip.name,
            start_time=clip.start_time,
            duration=clip.duration,
            mime_type=clip.mime_type,
            blob_base64=base64.b64encode(clip.source_bytes).decode("ascii"),
        )

    def to_clip(self) -> AudioClip:
        return AudioClip(
            id=self.id,
            name=self.name,
            source_bytes=base64.b64decode(self.blob_base64),
            start_time=self.start_time,
            duration=self.duration,
            mime_type=self.mime_type,
        )


class StoredClipDocument(BaseModel):
    version: int = 1
    clips: list[StoredAudioClip] = Field(default_factory=list)


class LocalDiskClipStore:
    """JSON file per session on local disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, clips: list[AudioClip]) -> None:
        document = StoredClipDocument(clips=[StoredAudioClip.from_clip(c) for c in clips])
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(document.model_dump_json(), encoding="utf-8")
        tmp_path.replace(self.path)

    def load(self) -> list[AudioClip]:
        if not self.path.exists():
            return []
        document = StoredClipDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        logger.debug("Loaded %d audio clips from %s", len(document.clips), self.path)
        return [stored.to_clip() for stored in document.clips]
