"""
FFmpeg command construction for timeline export.

Export runs in two stages:
- Segment extraction: coarse input seek + precise output seek, stream copy
- Mix & encode: every audio overlay is normalized, delayed to its position
  in the trimmed output, mixed with the segment's own audio, and the
  video is re-encoded against the new timeline

The builder only produces commands; running them is the export service's job.
Given identical inputs it produces identical filter graphs and argument
lists, apart from the temp file paths passed in by the caller.
"""

import math
import shlex
from dataclasses import dataclass
from typing import Sequence

from src.config import Settings, get_settings
from src.timeline.models import AudioExportClip, VideoTrim


def format_seconds(value: float) -> str:
    """Seconds with at most millisecond precision and no trailing zeros."""
    text = f"{round(value, 3) + 0.0:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def to_milliseconds(value: float) -> int:
    """Nearest whole millisecond (halves round up)."""
    return int(math.floor(value * 1000 + 0.5))


@dataclass
class ExportCommand:
    """One ffmpeg invocation."""

    args: list[str]
    output_path: str
    filter_graph: str | None = None
    filter_script_path: str | None = None

    def command_string(self) -> str:
        return shlex.join(self.args)


class ExportFilterGraphBuilder:
    """Builds the extraction and mix/encode commands for one export."""

    MAIN_AUDIO_LABEL = "main"
    OUTPUT_AUDIO_LABEL = "aout"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Stage 1: segment extraction
    # ------------------------------------------------------------------

    def build_extract_command(
        self,
        source_path: str,
        segment_path: str,
        trim_start: float,
        trim_duration: float,
    ) -> ExportCommand:
        """
        Cut ``[trim_start, trim_start + trim_duration]`` out of the source without re-encoding.

        The input-side seek jumps to just before the cut point (fast,
        keyframe based); the output-side seek then skips the remaining
        padding exactly.

        Args:
            source_path: Local path of the source video
            segment_path: Where the extracted segment is written
            trim_start: Trim window start in seconds
            trim_duration: Trim window length in seconds

        Returns:
            ExportCommand for the extraction
        """
        coarse_seek = max(0.0, trim_start - self.settings.export_seek_padding_seconds)
        fine_seek = max(0.0, trim_start - coarse_seek)

        args = [
            self.settings.ffmpeg_path,
            "-y",
            "-ss", format_seconds(coarse_seek),
            "-i", source_path,
            "-ss", format_seconds(fine_seek),
            "-t", format_seconds(trim_duration),
            "-c", "copy",
            segment_path,
        ]
        return ExportCommand(args=args, output_path=segment_path)

    # ------------------------------------------------------------------
    # Stage 2: mix & encode
    # ------------------------------------------------------------------

    def _aformat(self) -> str:
        return (
            "aformat=sample_fmts=fltp"
            f":sample_rates={self.settings.export_audio_sample_rate}"
            f":channel_layouts={self.settings.export_audio_channel_layout}"
        )

    def _build_clip_filter(self, clip: AudioExportClip, input_index: int, label: str) -> str:
        """Normalize, position and cut one overlay clip."""
        parts = [self._aformat()]

        # Skip the head of the clip that fell before the trim window
        if clip.source_offset > 0:
            parts.append(f"atrim=start={format_seconds(clip.source_offset)}")
            parts.append("asetpts=PTS-STARTPTS")

        delay_ms = to_milliseconds(clip.start_time_in_output)
        parts.append(f"adelay={delay_ms}|{delay_ms}")
        # After the delay the clip's audio occupies [start, start + duration]
        parts.append(f"atrim=0:{format_seconds(clip.start_time_in_output + clip.duration_in_output)}")

        return f"[{input_index}:a]" + ",".join(parts) + f"[{label}]"

    def build_filter_graph(
        self,
        has_native_audio: bool,
        clips: Sequence[AudioExportClip],
        trim_duration: float,
    ) -> str:
        """
        Build the audio filter graph that mixes every overlay into the segment.

        Input 0 is the extracted segment; overlay ``i`` is input ``i + 1``.

        Args:
            has_native_audio: Whether the segment carries its own audio stream
            clips: Overlay clips, already adjusted to the trim window
            trim_duration: Output length in seconds

        Returns:
            Filter graph text, one filter chain per line
        """
        if not clips:
            raise ValueError("Filter graph requires at least one audio clip")

        filter_parts: list[str] = []
        mix_inputs: list[str] = []

        if has_native_audio:
            filter_parts.append(f"[0:a]{self._aformat()}[{self.MAIN_AUDIO_LABEL}]")
            mix_inputs.append(self.MAIN_AUDIO_LABEL)

        for i, clip in enumerate(clips):
            label = f"a{i}"
            filter_parts.append(self._build_clip_filter(clip, i + 1, label))
            mix_inputs.append(label)

        mix_input_str = "".join(f"[{label}]" for label in mix_inputs)
        filter_parts.append(
            f"{mix_input_str}amix=inputs={len(mix_inputs)}:duration=longest:normalize=0,"
            f"atrim=0:{format_seconds(trim_duration)},asetpts=PTS-STARTPTS"
            f"[{self.OUTPUT_AUDIO_LABEL}]"
        )

        return ";\n".join(filter_parts)

    def _video_encode_args(self) -> list[str]:
        return [
            "-c:v", self.settings.export_video_codec,
            "-preset", self.settings.export_video_preset,
            "-crf", str(self.settings.export_video_crf),
            "-pix_fmt", self.settings.export_pixel_format,
        ]

    def _audio_encode_args(self) -> list[str]:
        return [
            "-c:a", self.settings.export_audio_codec,
            "-b:a", self.settings.export_audio_bitrate,
        ]

    def build_audio_trim_filter(
        self,
        video_trim: VideoTrim,
        audio_trim: VideoTrim | None,
    ) -> str | None:
        """
        Filter that shifts/cuts the segment's own audio to the audio trim window.

        Only used when there are no overlays. Returns None when the audio
        window matches the video window (or covers all of it).
        """
        if audio_trim is None:
            return None
        if (audio_trim.start, audio_trim.end) == (video_trim.start, video_trim.end):
            return None

        trim_duration = video_trim.duration
        audio_start = max(0.0, audio_trim.start - video_trim.start)
        audio_duration = min(trim_duration, audio_trim.end - audio_trim.start)
        if audio_start <= 0 and audio_duration >= trim_duration:
            return None

        delay_ms = to_milliseconds(audio_start)
        audio_end = min(trim_duration, audio_start + max(0.0, audio_duration))
        return f"adelay={delay_ms}|{delay_ms},apad,atrim=0:{format_seconds(audio_end)}"

    def build_mix_command(
        self,
        segment_path: str,
        has_native_audio: bool,
        clips: Sequence[AudioExportClip],
        trim_duration: float,
        output_path: str,
        filter_script_path: str,
        *,
        audio_trim_filter: str | None = None,
    ) -> ExportCommand:
        """
        Build the final mix & encode command.

        With overlays, the filter graph goes into ``filter_script_path`` (the
        caller writes ``ExportCommand.filter_graph`` there) and audio is
        re-encoded. Without overlays the segment's audio is stream-copied,
        unless an audio trim filter has to touch it.

        Args:
            segment_path: Output of the extraction stage
            has_native_audio: Whether the source carries an audio stream
            clips: Overlay clips with ``file_path`` set
            trim_duration: Output length in seconds
            output_path: Final export file
            filter_script_path: Where the filter graph script will live
            audio_trim_filter: Optional ``-af`` chain for the native audio

        Returns:
            ExportCommand for the mix & encode stage
        """
        args = [self.settings.ffmpeg_path, "-y", "-i", segment_path]

        if clips:
            for clip in clips:
                if not clip.file_path:
                    raise ValueError(f"Audio clip {clip.id} has not been written to disk")
                args.extend(["-i", clip.file_path])

            filter_graph = self.build_filter_graph(has_native_audio, clips, trim_duration)
            args.extend([
                "-filter_complex_script", filter_script_path,
                "-map", "0:v",
                "-map", f"[{self.OUTPUT_AUDIO_LABEL}]",
            ])
            args.extend(self._video_encode_args())
            args.extend(self._audio_encode_args())
            args.append(output_path)
            return ExportCommand(
                args=args,
                output_path=output_path,
                filter_graph=filter_graph,
                filter_script_path=filter_script_path,
            )

        args.extend(["-map", "0:v"])
        if has_native_audio:
            args.extend(["-map", "0:a"])
        args.extend(self._video_encode_args())

        if has_native_audio:
            if audio_trim_filter:
                args.extend(["-af", audio_trim_filter])
                args.extend(self._audio_encode_args())
            else:
                args.extend(["-c:a", "copy"])

        args.append(output_path)
        return ExportCommand(args=args, output_path=output_path)
