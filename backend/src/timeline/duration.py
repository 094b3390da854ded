"""Effective timeline duration and ruler helpers."""

from typing import Iterable

from src.timeline.models import AudioClip

DEFAULT_PIN_TOLERANCE = 0.1


def resolve_effective_duration(video_duration: float, clips: Iterable[AudioClip]) -> float:
    """
    Compute the virtual timeline length.

    The timeline is at least as long as the video and grows to cover the
    furthest-extending audio clip.

    Args:
        video_duration: Native duration of the primary video in seconds
        clips: Audio clips on the timeline (any order)

    Returns:
        Effective duration in seconds
    """
    return max([video_duration, *(clip.end_time for clip in clips)])


def extend_pinned_bound(
    bound: float,
    previous: float,
    resolved: float,
    tolerance: float = DEFAULT_PIN_TOLERANCE,
) -> float:
    """Grow a trim-end bound with the timeline only if it was pinned to the old maximum.

    A bound the user moved away from the end stays where it is.
    """
    if resolved > previous and abs(bound - previous) <= tolerance:
        return resolved
    return bound


def format_timecode(seconds: float) -> str:
    """Format seconds as MM:SS."""
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes:02d}:{remaining:02d}"


def ruler_interval(duration: float) -> int:
    if duration <= 30:
        return 1
    if duration <= 60:
        return 5
    if duration <= 300:
        return 15
    return 30


def ruler_markers(duration: float) -> list[tuple[float, str]]:
    """Tick marks for the timeline ruler as (fraction of width, label) pairs."""
    if duration <= 0:
        return []

    interval = ruler_interval(duration)
    markers: list[tuple[float, str]] = []
    tick = 0
    while tick <= duration:
        markers.append((tick / duration, format_timecode(tick)))
        tick += interval
    return markers
