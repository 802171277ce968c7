"""Audio track stage handlers."""

from typing import Optional

from ...models.edit_state import AudioTrack
from ...sanitize import sanitize_text_param
from ..pipeline import Stage, StageCategory
from ._numbers import fmt, seconds


def _fades(track: AudioTrack, start_ms: int, length_ms: int) -> list[str]:
    af = []
    if track.fade_in_ms > 0:
        af.append(f"afade=t=in:st={seconds(start_ms)}:d={seconds(track.fade_in_ms)}")
    if track.fade_out_ms > 0:
        fade_start = max(start_ms + length_ms - track.fade_out_ms, start_ms)
        af.append(f"afade=t=out:st={seconds(fade_start)}:d={seconds(track.fade_out_ms)}")
    return af


def original_track_stage(track: AudioTrack, output_duration_ms: int) -> Optional[Stage]:
    """Volume and fades applied to the input's own audio."""
    af = []
    if track.volume != 1.0:
        af.append(f"volume={fmt(track.volume)}")
    end_ms = output_duration_ms if track.end_ms is None else track.end_ms
    af.extend(_fades(track, track.start_ms, end_ms - track.start_ms))
    if not af:
        return None
    return Stage(name="original-audio", category=StageCategory.AUDIO, expression=",".join(af))


def mix_track_stage(track: AudioTrack, output_duration_ms: int) -> Stage:
    """Mix an added track into the main audio at its timeline position."""
    end_ms = output_duration_ms if track.end_ms is None else track.end_ms
    length_ms = max(end_ms - track.start_ms, 0)

    source = [
        f"amovie=filename={sanitize_text_param(track.source_location)}",
        f"atrim=duration={seconds(length_ms)}",
    ]
    if track.volume != 1.0:
        source.append(f"volume={fmt(track.volume)}")
    source.extend(_fades(track, 0, length_ms))
    if track.start_ms > 0:
        source.append(f"adelay=delays={track.start_ms}:all=1")

    return Stage(
        name=f"mix:{track.id}",
        category=StageCategory.AUDIO,
        expression="amix=inputs=2:duration=first:dropout_transition=0:normalize=0",
        source=",".join(source),
    )


def track_stages(tracks, output_duration_ms: int) -> list[Stage]:
    """Original-track adjustments first, then added tracks in insertion order."""
    stages = []
    for track in tracks:
        if track.is_original:
            stage = original_track_stage(track, output_duration_ms)
            if stage is not None:
                stages.append(stage)
    for track in tracks:
        if not track.is_original:
            stages.append(mix_track_stage(track, output_duration_ms))
    return stages
