"""Tests for the EditState model and its copy-on-write mutators."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from vioraedit.errors import ValidationError
from vioraedit.models import (
    AspectRatio,
    AudioTrack,
    CompressionLevel,
    EditState,
    FilterKind,
    OutputFormat,
    StickerOverlay,
    TextOverlay,
    VideoFilter,
)


@pytest.fixture
def state():
    return EditState.for_source("/videos/in.mp4", 10_000)


class TestDefaults:
    """Tests for a freshly loaded state."""

    def test_for_source(self, state):
        assert state.source_location == "/videos/in.mp4"
        assert state.trim_start_ms == 0
        assert state.trim_end_ms == 10_000
        assert state.crop_aspect is AspectRatio.ORIGINAL
        assert state.filters == ()
        assert state.playback_speed == 1.0
        assert not state.is_reversed
        assert state.compression_level is CompressionLevel.MEDIUM
        assert state.output_format is OutputFormat.MP4

    def test_open_trim_end_means_full_duration(self):
        state = EditState(source_location="/a.mp4", duration_ms=4000)
        assert state.trim_end_ms == 4000
        assert not state.is_trimmed

    def test_frozen(self, state):
        with pytest.raises(PydanticValidationError):
            state.playback_speed = 2.0


class TestDerivedValues:
    """Tests for derived properties."""

    def test_output_duration_applies_trim_and_speed(self, state):
        edited = state.with_trim(2000, 8000).with_speed(2.0)
        assert edited.is_trimmed
        assert edited.output_duration_ms == 3000

    def test_output_duration_slow_motion(self, state):
        assert state.with_speed(0.5).output_duration_ms == 20_000

    def test_aspect_ratio_values(self):
        assert AspectRatio.ORIGINAL.ratio is None
        assert AspectRatio("9:16").ratio == (9, 16)

    def test_compression_presets(self):
        assert (CompressionLevel.LOW.crf, CompressionLevel.LOW.preset) == (28, "ultrafast")
        assert (CompressionLevel.MEDIUM.crf, CompressionLevel.MEDIUM.preset) == (23, "medium")
        assert (CompressionLevel.HIGH.crf, CompressionLevel.HIGH.preset) == (18, "slow")

    def test_output_format_mime(self):
        assert OutputFormat.MOV.mime_type == "video/quicktime"
        assert OutputFormat.MP4.extension == "mp4"


class TestFilters:
    """Tests for filter mutators."""

    def test_mutators_leave_receiver_untouched(self, state):
        edited = state.add_filter(VideoFilter.of("sepia"))
        assert state.filters == ()
        assert len(edited.filters) == 1

    def test_default_intensity(self):
        assert VideoFilter.of(FilterKind.BLUR).intensity == 5.0
        assert VideoFilter.of("brightness", 0.2).intensity == 0.2

    def test_identity(self):
        assert VideoFilter.of("contrast", 1.0).is_identity
        assert not VideoFilter.of("contrast", 1.2).is_identity

    def test_add_same_kind_replaces_in_place(self, state):
        edited = (
            state.add_filter(VideoFilter.of("brightness", 0.1))
            .add_filter(VideoFilter.of("sepia"))
            .add_filter(VideoFilter.of("brightness", 0.4))
        )
        assert [f.name for f in edited.filters] == ["brightness", "sepia"]
        assert edited.filters[0].intensity == 0.4

    def test_update_filter(self, state):
        edited = state.add_filter(VideoFilter.of("blur", 2.0))
        edited = edited.update_filter(0, VideoFilter.of("blur", 8.0))
        assert edited.filters[0].intensity == 8.0

    def test_update_filter_rejects_duplicate_kind(self, state):
        edited = state.add_filter(VideoFilter.of("blur")).add_filter(VideoFilter.of("sepia"))
        with pytest.raises(ValidationError) as exc_info:
            edited.update_filter(1, VideoFilter.of("blur"))
        assert exc_info.value.field == "filters"

    def test_update_filter_bad_index(self, state):
        with pytest.raises(ValidationError):
            state.update_filter(3, VideoFilter.of("blur"))

    def test_remove_filter(self, state):
        edited = state.add_filter(VideoFilter.of("vignette")).remove_filter("vignette")
        assert edited.filters == ()


class TestAudioTracks:
    """Tests for audio track mutators."""

    def test_add_and_set_volume(self, state):
        track = AudioTrack(source_location="/music/song.mp3")
        edited = state.add_audio_track(track).set_track_volume(track.id, 0.3)
        assert edited.audio_tracks[0].volume == 0.3

    def test_duplicate_id_rejected(self, state):
        track = AudioTrack(source_location="/music/song.mp3")
        with pytest.raises(ValidationError):
            state.add_audio_track(track).add_audio_track(track)

    def test_single_original_track(self, state):
        edited = state.add_audio_track(AudioTrack(is_original=True))
        with pytest.raises(ValidationError, match="already present"):
            edited.add_audio_track(AudioTrack(is_original=True))

    def test_original_track_cannot_be_removed(self, state):
        original = AudioTrack(is_original=True)
        edited = state.add_audio_track(original)
        with pytest.raises(ValidationError, match="cannot be removed"):
            edited.remove_audio_track(original.id)

    def test_remove_added_track(self, state):
        track = AudioTrack(source_location="/music/song.mp3")
        assert state.add_audio_track(track).remove_audio_track(track.id).audio_tracks == ()


class TestOverlays:
    """Tests for text and sticker overlay mutators."""

    def test_text_overlay_lifecycle(self, state):
        overlay = TextOverlay(text="Hello")
        edited = state.add_text_overlay(overlay)
        edited = edited.update_text_overlay(overlay.model_copy(update={"text": "Bye"}))
        assert edited.text_overlays[0].text == "Bye"
        assert edited.remove_text_overlay(overlay.id).text_overlays == ()

    def test_update_unknown_overlay(self, state):
        with pytest.raises(ValidationError) as exc_info:
            state.update_text_overlay(TextOverlay(text="nope"))
        assert exc_info.value.field == "text_overlays"

    def test_sticker_overlay_lifecycle(self, state):
        sticker = StickerOverlay(image_location="/img/star.png", scale=0.5)
        edited = state.add_sticker_overlay(sticker)
        with pytest.raises(ValidationError):
            edited.add_sticker_overlay(sticker)
        edited = edited.update_sticker_overlay(sticker.model_copy(update={"scale": 2.0}))
        assert edited.sticker_overlays[0].scale == 2.0
        assert edited.remove_sticker_overlay(sticker.id).sticker_overlays == ()


class TestSimpleSetters:
    """Tests for the scalar setters."""

    def test_toggle_reverse_twice(self, state):
        assert state.toggle_reverse().is_reversed
        assert not state.toggle_reverse().toggle_reverse().is_reversed

    def test_string_enums_accepted(self, state):
        edited = state.with_crop("1:1").with_compression("high").with_output_format("mov")
        assert edited.crop_aspect is AspectRatio.SQUARE
        assert edited.compression_level is CompressionLevel.HIGH
        assert edited.output_format is OutputFormat.MOV

    def test_with_source(self, state):
        edited = state.with_source("/videos/other.mp4", 5000)
        assert edited.source_location == "/videos/other.mp4"
        assert edited.duration_ms == 5000
