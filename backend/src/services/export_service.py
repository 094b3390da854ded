"""Timeline export: trim the video, mix audio overlays, re-encode.

Sequence for one export:
1. Resolve the video locator to a local file
2. Drop clips without a payload, adjust the rest to the trim window
3. Write surviving clip payloads to temp files
4. Probe the source for a native audio stream
5. Extract the trimmed segment (stream copy)
6. Mix & encode
7. Read the result into memory

Every temp file lives in an ExportWorkspace that is cleaned up on every
exit path.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from src.config import Settings, get_settings
from src.exceptions import (
    EncodeFailedError,
    ExportStageError,
    InvalidClipError,
    InvalidTimeRangeError,
    SegmentExtractionFailedError,
)
from src.render.filter_graph import ExportCommand, ExportFilterGraphBuilder
from src.services.export_workspace import ExportWorkspace
from src.services.video_resolver import VideoResolver
from src.timeline.models import AudioClip, AudioExportClip, VideoTrim
from src.timeline.overlap import adjust_clips_for_export
from src.utils.media_info import has_audio_track

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


CommandRunner = Callable[[list[str], float | None], Awaitable[CommandResult]]
AudioProbe = Callable[[str], bool]


async def run_command(args: list[str], timeout: float | None = None) -> CommandResult:
    """Run an external tool as a child process and wait for it."""
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="ignore"),
        stderr=stderr.decode("utf-8", errors="ignore"),
    )


@dataclass
class ExportResult:
    """Finished export, fully loaded into memory."""

    filename: str
    content: bytes
    media_type: str = "video/mp4"

    @property
    def size(self) -> int:
        return len(self.content)


def _clip_suffix(clip: AudioExportClip) -> str:
    if clip.mime_type == "audio/webm":
        return ".webm"
    return mimetypes.guess_extension(clip.mime_type) or ".webm"


class ExportService:
    """Runs the two-stage ffmpeg export for one timeline."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        resolver: VideoResolver | None = None,
        builder: ExportFilterGraphBuilder | None = None,
        runner: CommandRunner = run_command,
        audio_probe: AudioProbe = has_audio_track,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or VideoResolver(self.settings)
        self.builder = builder or ExportFilterGraphBuilder(self.settings)
        self._runner = runner
        self._audio_probe = audio_probe

    def _new_workspace(self) -> ExportWorkspace:
        return ExportWorkspace(self.settings.temp_dir)

    async def export(
        self,
        video_locator: str,
        video_trim: VideoTrim,
        audio_clips: Iterable[AudioClip],
        audio_trim: VideoTrim | None = None,
    ) -> ExportResult:
        """
        Export the trimmed video with all overlapping audio clips mixed in.

        Args:
            video_locator: URL or public path of the source video
            video_trim: Export window in seconds
            audio_clips: Audio overlays; a snapshot is taken immediately
            audio_trim: Audio trim window, only used when there are no overlays

        Returns:
            ExportResult with the MP4 bytes and a generated filename

        Raises:
            InvalidTimeRangeError: If the trim window is empty
            SourceNotFoundError: If the video cannot be resolved
            SegmentExtractionFailedError: If stage 1 produces no segment
            EncodeFailedError: If stage 2 produces no output
        """
        clips = list(audio_clips)
        if video_trim.start < 0:
            video_trim = VideoTrim(start=0.0, end=video_trim.end)
        trim_duration = video_trim.duration
        if trim_duration <= 0:
            raise InvalidTimeRangeError(start=video_trim.start, end=video_trim.end)

        logger.info(
            "Exporting %s: trim %.3fs-%.3fs (duration %.3fs), %d audio clips",
            video_locator, video_trim.start, video_trim.end, trim_duration, len(clips),
        )

        with self._new_workspace() as workspace:
            source_path = await self.resolver.resolve(video_locator, workspace)

            export_clips = adjust_clips_for_export(self._usable_clips(clips), video_trim)
            for clip in export_clips:
                path = workspace.write_bytes(clip.id, clip.source_bytes, _clip_suffix(clip), subdir="audio")
                clip.file_path = str(path)
                logger.info(
                    "Saved audio clip %s to %s (start=%.3fs, duration=%.3fs)",
                    clip.id, path, clip.start_time_in_output, clip.duration_in_output,
                )

            has_native_audio = await asyncio.to_thread(self._audio_probe, str(source_path))
            logger.info("Main video %s audio stream", "has" if has_native_audio else "does not have")

            segment_path = workspace.new_file("segment", ".mp4")
            extract = self.builder.build_extract_command(
                str(source_path), str(segment_path), video_trim.start, trim_duration
            )
            await self._run_stage(extract, SegmentExtractionFailedError, "extract")

            output_path = workspace.new_file("export", ".mp4")
            filter_script_path = workspace.new_file("filter", ".txt")
            audio_trim_filter = None
            if not export_clips:
                audio_trim_filter = self.builder.build_audio_trim_filter(video_trim, audio_trim)
            mix = self.builder.build_mix_command(
                str(segment_path),
                has_native_audio,
                export_clips,
                trim_duration,
                str(output_path),
                str(filter_script_path),
                audio_trim_filter=audio_trim_filter,
            )
            if mix.filter_graph is not None:
                filter_script_path.write_text(mix.filter_graph, encoding="utf-8")
            await self._run_stage(mix, EncodeFailedError, "encode")

            content = self._read_output(output_path, mix)
            logger.info("Export finished: %s (%d bytes)", output_path.name, len(content))
            return ExportResult(filename=output_path.name, content=content)

    def _usable_clips(self, clips: list[AudioClip]) -> list[AudioClip]:
        usable: list[AudioClip] = []
        for clip in clips:
            if not clip.source_bytes:
                error = InvalidClipError(clip.id, "no audio payload")
                logger.warning("%s, skipping", error.message)
                continue
            usable.append(clip)
        return usable

    def _timeout(self) -> float | None:
        timeout = self.settings.export_timeout_seconds
        return timeout if timeout > 0 else None

    async def _run_stage(
        self,
        command: ExportCommand,
        error_cls: type[ExportStageError],
        stage: str,
    ) -> None:
        command_str = command.command_string()
        logger.info("Executing %s command: %s", stage, command_str)

        try:
            result = await self._runner(command.args, self._timeout())
        except asyncio.TimeoutError as e:
            logger.error("%s command timed out after %ss: %s", stage, self._timeout(), command_str)
            raise error_cls(command_str, reason="timeout") from e
        except OSError as e:
            logger.error("%s command could not be started: %s (%s)", stage, command_str, e)
            raise error_cls(command_str, reason=str(e)) from e

        if result.returncode != 0 or not Path(command.output_path).exists():
            logger.error(
                "%s command failed (rc=%d). Command: %s", stage, result.returncode, command_str
            )
            logger.error("FFmpeg stderr (last 2000): %s", result.stderr[-2000:])
            raise error_cls(command_str, stderr=result.stderr)

        logger.debug("%s stderr: %s", stage, result.stderr[-2000:])

    def _read_output(self, output_path: Path, command: ExportCommand) -> bytes:
        try:
            return output_path.read_bytes()
        except OSError as e:
            logger.error("Could not read export output %s: %s", output_path, e)
            raise EncodeFailedError(command.command_string(), reason=str(e)) from e
