"""Export API endpoint - trims the video and mixes audio overlays synchronously."""

import base64
import binascii
import logging

from fastapi import APIRouter
from fastapi.responses import Response

from src.api.deps import ExportServiceDep
from src.config import get_settings
from src.exceptions import InvalidClipError, InvalidTimeRangeError, MissingRequiredFieldError
from src.schemas.export import AudioClipPayload, ExportRequest
from src.timeline.models import DEFAULT_AUDIO_MIME_TYPE, AudioClip

router = APIRouter()
logger = logging.getLogger(__name__)


def decode_audio_clips(payloads: list[AudioClipPayload]) -> list[AudioClip]:
    """Turn wire payloads into AudioClips, dropping malformed ones with a warning."""
    clips: list[AudioClip] = []
    for payload in payloads:
        try:
            if not payload.id:
                raise InvalidClipError(reason="missing id")
            if not payload.blob_base64:
                raise InvalidClipError(payload.id, "no blob data")
            try:
                source_bytes = base64.b64decode(payload.blob_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidClipError(payload.id, f"undecodable blob data: {e}") from e

            clips.append(
                AudioClip(
                    id=payload.id,
                    name=payload.name,
                    source_bytes=source_bytes,
                    start_time=payload.start_time or 0.0,
                    duration=payload.duration or 0.0,
                    mime_type=payload.blob_type or DEFAULT_AUDIO_MIME_TYPE,
                )
            )
        except InvalidClipError as e:
            logger.warning("%s, skipping", e.message)
    return clips


@router.post("/export")
async def export_video(export_request: ExportRequest, service: ExportServiceDep) -> Response:
    """
    Export the trimmed video with its audio overlays mixed in.

    Returns the MP4 as an attachment. Errors are returned as JSON by the
    application's error handler.
    """
    logger.info("Received request to export video: %s", export_request.video_path)

    if not export_request.video_path:
        raise MissingRequiredFieldError("videoPath", "Video path is required")

    settings = get_settings()
    video_trim = export_request.video_trim(settings.export_default_trim_end)
    if video_trim.duration <= 0:
        raise InvalidTimeRangeError(start=video_trim.start, end=video_trim.end)
    audio_trim = export_request.audio_trim(video_trim)

    clips = decode_audio_clips(export_request.audio_clips)
    logger.info("Processing %d of %d audio clips for export", len(clips), len(export_request.audio_clips))

    result = await service.export(export_request.video_path, video_trim, clips, audio_trim)

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
