"""Filter-graph compiler: EditState -> PipelineDescription.

Pure and deterministic: no I/O, and compiling the same state twice yields
identical descriptions. Video stages always come out in this order:

1. trim
2. crop
3. color filters (insertion order)
4. speed, then reverse
5. text overlays, then sticker overlays (insertion order)

followed by the compression stage when the level is not the default.
Audio stages are built independently: tempo, reverse, then track mixing.
"""

import logging
import math
import re
from typing import Optional

from ..config import EditorConfig
from ..errors import ValidationError
from ..models.edit_state import EditState, FilterKind
from .handlers.audio import track_stages
from .handlers.encoding import compression_stage, encoding_settings
from .handlers.overlay import overlay_stages
from .handlers.spatial import crop_stage
from .handlers.temporal import (
    audio_reverse_stage,
    reverse_stage,
    speed_stage,
    tempo_stage,
    trim_stage,
)
from .handlers.visual import color_stages
from .pipeline import PipelineDescription

logger = logging.getLogger("vioraedit")

# Named colors, #RRGGBB[AA] / 0xRRGGBB[AA], with an optional @alpha suffix.
_COLOR_RE = re.compile(
    r"^(?:[A-Za-z]+|(?:#|0x)[0-9A-Fa-f]{6}(?:[0-9A-Fa-f]{2})?)(?:@(?:0|1|0?\.\d+|1\.0+))?$"
)

# Inclusive bounds for filter intensities; None means unbounded.
_FILTER_BOUNDS: dict[FilterKind, tuple[float, Optional[float]]] = {
    FilterKind.BRIGHTNESS: (-1.0, 1.0),
    FilterKind.CONTRAST: (0.0, 2.0),
    FilterKind.SATURATION: (0.0, 3.0),
    FilterKind.BLUR: (0.0, None),
    FilterKind.GRAYSCALE: (0.0, 1.0),
    FilterKind.SEPIA: (0.0, 1.0),
    FilterKind.VIGNETTE: (0.0, 1.0),
    FilterKind.VINTAGE: (0.0, 1.0),
}


def _check_window(field: str, start_ms: int, end_ms: Optional[int], what: str) -> None:
    if start_ms < 0:
        raise ValidationError(field, f"{what} starts before 0 ms")
    if end_ms is not None and end_ms <= start_ms:
        raise ValidationError(field, f"{what} ends at {end_ms} ms, not after its start {start_ms} ms")


def _check_color(field: str, value: Optional[str], what: str) -> None:
    if value is not None and not _COLOR_RE.match(value):
        raise ValidationError(field, f"{what} has an invalid color {value!r}")


def validate_edit_state(state: EditState) -> None:
    """Check every invariant the compiler relies on.

    Raises:
        ValidationError: naming the first offending field.
    """
    if not state.source_location:
        raise ValidationError("source_location", "no source loaded")
    if state.duration_ms <= 0:
        raise ValidationError("duration_ms", f"must be positive, got {state.duration_ms}")

    start, end = state.trim_start_ms, state.trim_end_ms
    if not 0 <= start < end <= state.duration_ms:
        raise ValidationError(
            "trim_range",
            f"expected 0 <= start < end <= {state.duration_ms}, got start={start} end={end}",
        )

    speed = state.playback_speed
    if not math.isfinite(speed) or speed <= 0:
        raise ValidationError("playback_speed", f"must be a positive number, got {speed}")

    seen = set()
    for video_filter in state.filters:
        if video_filter.kind in seen:
            raise ValidationError("filters", f"{video_filter.kind.value} appears more than once")
        seen.add(video_filter.kind)
        low, high = _FILTER_BOUNDS[video_filter.kind]
        value = video_filter.intensity
        if not math.isfinite(value) or value < low or (high is not None and value > high):
            raise ValidationError(
                "filters", f"{video_filter.kind.value} intensity {value} out of range"
            )

    originals = 0
    for track in state.audio_tracks:
        what = f"audio track {track.id}"
        _check_window("audio_tracks", track.start_ms, track.end_ms, what)
        if not 0.0 <= track.volume <= 1.0:
            raise ValidationError("audio_tracks", f"{what} volume {track.volume} outside [0, 1]")
        if track.fade_in_ms < 0 or track.fade_out_ms < 0:
            raise ValidationError("audio_tracks", f"{what} has a negative fade")
        if track.is_original:
            originals += 1
        elif not track.source_location:
            raise ValidationError("audio_tracks", f"{what} has no source")
        elif not state.has_audio:
            raise ValidationError(
                "audio_tracks", f"{what} needs an audio stream in the source to mix into"
            )
    if originals > 1:
        raise ValidationError("audio_tracks", "more than one original audio track")

    for overlay in state.text_overlays:
        what = f"text overlay {overlay.id}"
        _check_window("text_overlays", overlay.start_ms, overlay.end_ms, what)
        if not overlay.text:
            raise ValidationError("text_overlays", f"{what} has no text")
        if overlay.font_size <= 0:
            raise ValidationError("text_overlays", f"{what} font size must be positive")
        _check_color("text_overlays", overlay.color, what)
        _check_color("text_overlays", overlay.stroke_color, what)
        _check_color("text_overlays", overlay.background_color, what)

    for overlay in state.sticker_overlays:
        what = f"sticker overlay {overlay.id}"
        _check_window("sticker_overlays", overlay.start_ms, overlay.end_ms, what)
        if not overlay.image_location:
            raise ValidationError("sticker_overlays", f"{what} has no image")
        if overlay.scale <= 0:
            raise ValidationError("sticker_overlays", f"{what} scale must be positive")


def compile_edit_state(
    state: EditState,
    config: Optional[EditorConfig] = None,
) -> PipelineDescription:
    """Compile an edit state into an ordered pipeline description.

    Args:
        state: The edit state to realize.
        config: Supplies codec defaults. Uses ``EditorConfig()`` if None.

    Returns:
        A fresh PipelineDescription.

    Raises:
        ValidationError: If the state violates an invariant.
    """
    validate_edit_state(state)
    config = config or EditorConfig()
    out_ms = state.output_duration_ms

    video = [
        trim_stage(state.trim_start_ms, state.trim_end_ms, state.duration_ms),
        crop_stage(state.crop_aspect),
        *color_stages(state.filters),
        speed_stage(state.playback_speed),
        reverse_stage(state.is_reversed),
        *overlay_stages(state.text_overlays, state.sticker_overlays, out_ms),
        compression_stage(state.compression_level),
    ]
    audio = [
        tempo_stage(state.playback_speed),
        audio_reverse_stage(state.is_reversed),
        *track_stages(state.audio_tracks, out_ms),
    ] if state.has_audio else []

    pipeline = PipelineDescription(
        input_location=state.source_location,
        duration_ms=state.duration_ms,
        output_duration_ms=out_ms,
        video_stages=tuple(s for s in video if s is not None),
        audio_stages=tuple(s for s in audio if s is not None),
        encoding=encoding_settings(
            state.compression_level,
            state.output_format,
            video_codec=config.video_codec,
            audio_codec=config.audio_codec,
            audio_bitrate=config.audio_bitrate,
        ),
    )
    logger.debug(
        "Compiled %d video / %d audio stages: %s",
        len(pipeline.video_stages),
        len(pipeline.audio_stages),
        ", ".join(s.describe() for s in pipeline.stages),
    )
    return pipeline
