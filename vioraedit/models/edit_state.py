"""Edit state model.

An :class:`EditState` describes every pending, not-yet-realized edit on
one media input. Snapshots are frozen: each mutator returns a new
``EditState`` and leaves the receiver untouched, so history entries that
hold earlier snapshots stay valid.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError


def _new_id() -> str:
    return uuid.uuid4().hex


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class AspectRatio(str, Enum):
    """Target crop aspect ratios."""
    ORIGINAL = "original"
    SQUARE = "1:1"
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    STORY = "4:5"

    @property
    def ratio(self) -> Optional[tuple[int, int]]:
        """``(width, height)`` ratio, or None for ORIGINAL."""
        if self is AspectRatio.ORIGINAL:
            return None
        w, h = self.value.split(":")
        return int(w), int(h)


class FilterKind(str, Enum):
    """Color/effect filter kinds."""
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    BLUR = "blur"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    VIGNETTE = "vignette"
    VINTAGE = "vintage"


# Intensity at which a filter kind leaves the picture unchanged.
FILTER_IDENTITY: dict[FilterKind, float] = {
    FilterKind.BRIGHTNESS: 0.0,
    FilterKind.CONTRAST: 1.0,
    FilterKind.SATURATION: 1.0,
    FilterKind.BLUR: 0.0,
    FilterKind.GRAYSCALE: 0.0,
    FilterKind.SEPIA: 0.0,
    FilterKind.VIGNETTE: 0.0,
    FilterKind.VINTAGE: 0.0,
}

# Intensity a filter gets when added without one.
FILTER_DEFAULTS: dict[FilterKind, float] = {
    FilterKind.BRIGHTNESS: 0.0,
    FilterKind.CONTRAST: 1.0,
    FilterKind.SATURATION: 1.0,
    FilterKind.BLUR: 5.0,
    FilterKind.GRAYSCALE: 1.0,
    FilterKind.SEPIA: 1.0,
    FilterKind.VIGNETTE: 0.5,
    FilterKind.VINTAGE: 1.0,
}


class CompressionLevel(str, Enum):
    """Quality presets, each mapped to a CRF value and an x264 preset."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def crf(self) -> int:
        return {"low": 28, "medium": 23, "high": 18}[self.value]

    @property
    def preset(self) -> str:
        return {"low": "ultrafast", "medium": "medium", "high": "slow"}[self.value]


class OutputFormat(str, Enum):
    """Output containers."""
    MP4 = "mp4"
    MOV = "mov"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return {"mp4": "video/mp4", "mov": "video/quicktime"}[self.value]


class TrimRange(_Frozen):
    """Kept window of the input; ``end_ms=None`` means the full duration."""
    start_ms: int = 0
    end_ms: Optional[int] = None


class VideoFilter(_Frozen):
    """One color/effect filter: a kind plus an intensity."""
    kind: FilterKind
    intensity: float = 1.0

    @classmethod
    def of(cls, kind: FilterKind | str, intensity: Optional[float] = None) -> "VideoFilter":
        kind = FilterKind(kind)
        if intensity is None:
            intensity = FILTER_DEFAULTS[kind]
        return cls(kind=kind, intensity=intensity)

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def is_identity(self) -> bool:
        return self.intensity == FILTER_IDENTITY[self.kind]


class AudioTrack(_Frozen):
    """An audio track placed on the output timeline."""
    id: str = Field(default_factory=_new_id)
    source_location: str = ""
    start_ms: int = 0
    end_ms: Optional[int] = None
    volume: float = 1.0
    fade_in_ms: int = 0
    fade_out_ms: int = 0
    is_original: bool = False


class Position(_Frozen):
    x: float = 0.0
    y: float = 0.0


class TextOverlay(_Frozen):
    """Text drawn over the video during ``[start_ms, end_ms)``."""
    id: str = Field(default_factory=_new_id)
    text: str
    position: Position = Position()
    font_size: float = 24.0
    color: str = "white"
    background_color: Optional[str] = None
    font_family: str = "default"
    rotation: float = 0.0
    start_ms: int = 0
    end_ms: Optional[int] = None
    stroke_width: float = 0.0
    stroke_color: str = "black"


class StickerOverlay(_Frozen):
    """An image composited over the video during ``[start_ms, end_ms)``."""
    id: str = Field(default_factory=_new_id)
    image_location: str
    position: Position = Position()
    scale: float = 1.0
    rotation: float = 0.0
    start_ms: int = 0
    end_ms: Optional[int] = None


class EditState(_Frozen):
    """All pending edits for one media input."""
    source_location: str = ""
    duration_ms: int = 0
    trim_range: TrimRange = TrimRange()
    crop_aspect: AspectRatio = AspectRatio.ORIGINAL
    filters: tuple[VideoFilter, ...] = ()
    audio_tracks: tuple[AudioTrack, ...] = ()
    text_overlays: tuple[TextOverlay, ...] = ()
    sticker_overlays: tuple[StickerOverlay, ...] = ()
    playback_speed: float = 1.0
    is_reversed: bool = False
    compression_level: CompressionLevel = CompressionLevel.MEDIUM
    output_format: OutputFormat = OutputFormat.MP4
    has_audio: bool = True

    @classmethod
    def for_source(cls, location: str, duration_ms: int, has_audio: bool = True) -> "EditState":
        """Default state for a freshly loaded source."""
        return cls(
            source_location=location,
            duration_ms=duration_ms,
            has_audio=has_audio,
            trim_range=TrimRange(start_ms=0, end_ms=duration_ms),
        )

    # ------------------------------------------------------------------ #
    #  Derived values                                                      #
    # ------------------------------------------------------------------ #

    @property
    def trim_start_ms(self) -> int:
        return self.trim_range.start_ms

    @property
    def trim_end_ms(self) -> int:
        end = self.trim_range.end_ms
        return self.duration_ms if end is None else end

    @property
    def is_trimmed(self) -> bool:
        return self.trim_start_ms > 0 or self.trim_end_ms < self.duration_ms

    @property
    def output_duration_ms(self) -> int:
        """Duration of the rendered output, after trim and speed."""
        kept = max(self.trim_end_ms - self.trim_start_ms, 0)
        if self.playback_speed <= 0:
            return kept
        return int(round(kept / self.playback_speed))

    @property
    def original_track(self) -> Optional[AudioTrack]:
        for track in self.audio_tracks:
            if track.is_original:
                return track
        return None

    # ------------------------------------------------------------------ #
    #  Copy-on-write mutators                                              #
    # ------------------------------------------------------------------ #

    def _replace(self, **changes) -> "EditState":
        return self.model_copy(update=changes)

    def with_source(self, location: str, duration_ms: Optional[int] = None) -> "EditState":
        changes: dict = {"source_location": location}
        if duration_ms is not None:
            changes["duration_ms"] = duration_ms
        return self._replace(**changes)

    def with_trim(self, start_ms: int, end_ms: Optional[int]) -> "EditState":
        return self._replace(trim_range=TrimRange(start_ms=start_ms, end_ms=end_ms))

    def with_crop(self, aspect: AspectRatio | str) -> "EditState":
        return self._replace(crop_aspect=AspectRatio(aspect))

    def add_filter(self, video_filter: VideoFilter) -> "EditState":
        """Add a filter; a kind that is already present is updated in place."""
        filters = list(self.filters)
        for i, existing in enumerate(filters):
            if existing.kind == video_filter.kind:
                filters[i] = video_filter
                break
        else:
            filters.append(video_filter)
        return self._replace(filters=tuple(filters))

    def update_filter(self, index: int, video_filter: VideoFilter) -> "EditState":
        if not 0 <= index < len(self.filters):
            raise ValidationError("filters", f"no filter at index {index}")
        filters = list(self.filters)
        for i, existing in enumerate(filters):
            if i != index and existing.kind == video_filter.kind:
                raise ValidationError(
                    "filters", f"{video_filter.kind.value} is already applied"
                )
        filters[index] = video_filter
        return self._replace(filters=tuple(filters))

    def remove_filter(self, kind: FilterKind | str) -> "EditState":
        kind = FilterKind(kind)
        return self._replace(
            filters=tuple(f for f in self.filters if f.kind != kind)
        )

    def add_audio_track(self, track: AudioTrack) -> "EditState":
        if any(t.id == track.id for t in self.audio_tracks):
            raise ValidationError("audio_tracks", f"duplicate track id {track.id}")
        if track.is_original and self.original_track is not None:
            raise ValidationError("audio_tracks", "original audio track already present")
        return self._replace(audio_tracks=self.audio_tracks + (track,))

    def remove_audio_track(self, track_id: str) -> "EditState":
        for track in self.audio_tracks:
            if track.id == track_id and track.is_original:
                raise ValidationError(
                    "audio_tracks", "the original audio track cannot be removed"
                )
        return self._replace(
            audio_tracks=tuple(t for t in self.audio_tracks if t.id != track_id)
        )

    def set_track_volume(self, track_id: str, volume: float) -> "EditState":
        return self._replace(audio_tracks=tuple(
            t.model_copy(update={"volume": volume}) if t.id == track_id else t
            for t in self.audio_tracks
        ))

    def add_text_overlay(self, overlay: TextOverlay) -> "EditState":
        if any(o.id == overlay.id for o in self.text_overlays):
            raise ValidationError("text_overlays", f"duplicate overlay id {overlay.id}")
        return self._replace(text_overlays=self.text_overlays + (overlay,))

    def update_text_overlay(self, overlay: TextOverlay) -> "EditState":
        return self._replace(
            text_overlays=_replace_by_id(self.text_overlays, overlay, "text_overlays")
        )

    def remove_text_overlay(self, overlay_id: str) -> "EditState":
        return self._replace(
            text_overlays=tuple(o for o in self.text_overlays if o.id != overlay_id)
        )

    def add_sticker_overlay(self, overlay: StickerOverlay) -> "EditState":
        if any(o.id == overlay.id for o in self.sticker_overlays):
            raise ValidationError("sticker_overlays", f"duplicate overlay id {overlay.id}")
        return self._replace(sticker_overlays=self.sticker_overlays + (overlay,))

    def update_sticker_overlay(self, overlay: StickerOverlay) -> "EditState":
        return self._replace(
            sticker_overlays=_replace_by_id(self.sticker_overlays, overlay, "sticker_overlays")
        )

    def remove_sticker_overlay(self, overlay_id: str) -> "EditState":
        return self._replace(
            sticker_overlays=tuple(o for o in self.sticker_overlays if o.id != overlay_id)
        )

    def with_speed(self, speed: float) -> "EditState":
        return self._replace(playback_speed=float(speed))

    def toggle_reverse(self) -> "EditState":
        return self._replace(is_reversed=not self.is_reversed)

    def with_compression(self, level: CompressionLevel | str) -> "EditState":
        return self._replace(compression_level=CompressionLevel(level))

    def with_output_format(self, fmt: OutputFormat | str) -> "EditState":
        return self._replace(output_format=OutputFormat(fmt))


def _replace_by_id(items: tuple, item, field: str) -> tuple:
    if not any(existing.id == item.id for existing in items):
        raise ValidationError(field, f"no overlay with id {item.id}")
    return tuple(item if existing.id == item.id else existing for existing in items)
