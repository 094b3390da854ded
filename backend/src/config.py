import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Angle API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via GIT_HASH env var at build time
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Pipe-separated (for Cloud Run compatibility)
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Video locator resolution
    # Rendered videos are served from the web app's public directory;
    # anything not found locally is fetched from the render worker.
    project_root: str = "."
    public_dir: str = "public"
    worker_url: str = ""
    download_timeout_seconds: float = 120.0

    # Scratch space for exports (downloaded sources, clip payloads, segments)
    temp_dir: str = "tmp"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "medium"
    export_video_crf: int = 22
    export_pixel_format: str = "yuv420p"
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"
    export_audio_sample_rate: int = 44100
    export_audio_channel_layout: str = "stereo"
    # Coarse seek lands this many seconds before the trim start, the
    # inner seek skips it again
    export_seek_padding_seconds: float = 0.5
    # Used when the client sends no usable trim end
    export_default_trim_end: float = 300.0
    # Upper bound for each ffmpeg invocation. 0 = unbounded.
    export_timeout_seconds: float = 600.0

    # Timeline editing
    trim_pin_tolerance_seconds: float = 0.1


@lru_cache
def get_settings() -> Settings:
    return Settings()
