"""Tests for audio clip insertion, auto-trim and drag repositioning."""

import pytest

from src.exceptions import InvalidClipError
from src.timeline.editing import DragSession, accept_auto_trim, insert_audio_clip, reposition
from src.timeline.models import AudioCandidate, AudioClip, NeedsUserDecision, VideoTrim


class TestInsertAudioClip:
    """Placement rules for newly recorded/imported audio."""

    def test_short_clip_at_playhead(self):
        result = insert_audio_clip(AudioCandidate(b"x", 5.0), 10.0, 30.0, name="Voice")

        assert isinstance(result, AudioClip)
        assert result.start_time == 10.0
        assert result.duration == 5.0
        assert result.name == "Voice"
        assert result.id.startswith("audio-")

    def test_clip_near_end_pulled_back(self):
        result = insert_audio_clip(AudioCandidate(b"x", 8.0), 27.0, 30.0)

        assert isinstance(result, AudioClip)
        assert result.start_time == pytest.approx(22.0)
        assert result.end_time == pytest.approx(30.0)

    def test_clip_exactly_video_length(self):
        result = insert_audio_clip(AudioCandidate(b"x", 30.0), 12.0, 30.0)

        assert isinstance(result, AudioClip)
        assert result.start_time == 0.0

    def test_too_long_needs_decision(self):
        result = insert_audio_clip(AudioCandidate(b"x", 50.0), 4.0, 30.0)

        assert isinstance(result, NeedsUserDecision)
        assert result.overflow == pytest.approx(20.0)
        assert result.requested_start == 4.0

    def test_auto_trim_after_decision(self):
        decision = insert_audio_clip(AudioCandidate(b"payload", 50.0), 0.0, 30.0)
        assert isinstance(decision, NeedsUserDecision)

        clip = accept_auto_trim(decision)

        assert clip.duration == 30.0
        assert clip.start_time == 0.0
        assert clip.source_bytes == b"payload"

    def test_auto_trim_clamps_start(self):
        decision = insert_audio_clip(AudioCandidate(b"x", 50.0), 12.0, 30.0)
        clip = accept_auto_trim(decision, timeline_duration=35.0)

        assert clip.duration == 30.0
        assert clip.start_time == pytest.approx(5.0)
        assert clip.end_time <= 35.0

    def test_insert_never_returns_clip_for_long_audio(self):
        for start in (0.0, 5.0, 29.0, 100.0):
            result = insert_audio_clip(AudioCandidate(b"x", 50.0), start, 30.0)
            assert isinstance(result, NeedsUserDecision)

    def test_fresh_ids(self):
        first = insert_audio_clip(AudioCandidate(b"x", 1.0), 0.0, 30.0)
        second = insert_audio_clip(AudioCandidate(b"x", 1.0), 0.0, 30.0)
        assert first.id != second.id

    def test_rejects_empty_duration(self):
        with pytest.raises(InvalidClipError):
            insert_audio_clip(AudioCandidate(b"x", 0.0), 0.0, 30.0)


class TestReposition:
    """Dragging clamps the clip onto the timeline."""

    def test_simple_move(self, clip_factory):
        clip = clip_factory(start_time=5, duration=3)
        assert reposition(clip, 2.5, 30.0) == pytest.approx(7.5)

    def test_clamped_at_zero(self, clip_factory):
        clip = clip_factory(start_time=1, duration=3)
        assert reposition(clip, -10, 30.0) == 0.0

    def test_clamped_at_end(self, clip_factory):
        clip = clip_factory(start_time=20, duration=4)
        assert reposition(clip, 100, 30.0) == pytest.approx(26.0)

    def test_clip_longer_than_timeline_stays_at_zero(self, clip_factory):
        clip = clip_factory(start_time=0, duration=40)
        assert reposition(clip, 5, 30.0) == 0.0


class TestDragSession:
    """Drag positions come from the drag-start clip plus total displacement."""

    def test_update_uses_total_displacement(self, clip_factory):
        clip = clip_factory(start_time=10, duration=2)
        drag = DragSession(clip, timeline_duration=60, pixels_per_second=30)

        # Many small pointer events, each carrying the running total
        for dx in range(1, 91):
            moved = drag.update(dx)

        assert moved.start_time == pytest.approx(13.0)
        assert drag.clip.start_time == 10

    def test_drag_back_returns_to_origin(self, clip_factory):
        clip = clip_factory(start_time=10, duration=2)
        drag = DragSession(clip, timeline_duration=60, pixels_per_second=7)

        drag.update(333)
        assert drag.update(0).start_time == 10

    def test_rejects_zero_scale(self, clip_factory):
        with pytest.raises(ValueError):
            DragSession(clip_factory(), timeline_duration=10, pixels_per_second=0)


class TestVideoTrim:
    """Trim window stays inside the source."""

    def test_clamped(self):
        trim = VideoTrim(-2, 50).clamped(30)
        assert (trim.start, trim.end) == (0.0, 30.0)

    def test_set_start_and_end(self):
        trim = VideoTrim.full(30)
        trim.set_start(4, 30)
        trim.set_end(40, 30)
        assert (trim.start, trim.end) == (4.0, 30.0)

    def test_start_past_end_clamps_to_end(self):
        trim = VideoTrim(5, 10)
        trim.set_start(12, 30)
        assert trim.start == pytest.approx(9.9)
        assert trim.end == 10

    def test_end_before_start_clamps_to_start(self):
        trim = VideoTrim(5, 10)
        trim.set_end(3, 30)
        assert trim.start == 5
        assert trim.end == pytest.approx(5.1)

    def test_reset(self):
        trim = VideoTrim(3, 7)
        trim.reset(12)
        assert (trim.start, trim.end) == (0.0, 12.0)

    def test_contains_half_open(self):
        trim = VideoTrim(2, 4)
        assert trim.contains(2)
        assert not trim.contains(4)


class TestAudioClipValidation:
    def test_negative_start_rejected(self):
        with pytest.raises(InvalidClipError):
            AudioClip(id="a", name="", source_bytes=b"x", start_time=-1, duration=1)

    def test_missing_id_rejected(self):
        with pytest.raises(InvalidClipError):
            AudioClip(id="", name="", source_bytes=b"x", start_time=0, duration=1)
