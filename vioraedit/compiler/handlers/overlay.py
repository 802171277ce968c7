"""Overlay stage handlers: drawtext for text, movie+overlay for stickers.

Every overlay is gated by an ``enable='between(t,...)'`` predicate on the
output timeline, even when its window lies outside the output.
"""

import math

from ...models.edit_state import StickerOverlay, TextOverlay
from ...sanitize import sanitize_text_param
from ..pipeline import Stage, StageCategory
from ._numbers import between, fmt


def _window_end(end_ms, output_duration_ms: int) -> int:
    return output_duration_ms if end_ms is None else end_ms


def text_overlay_stage(overlay: TextOverlay, output_duration_ms: int) -> Stage:
    params = [f"text={sanitize_text_param(overlay.text)}"]
    if overlay.font_family and overlay.font_family != "default":
        params.append(f"font={sanitize_text_param(overlay.font_family)}")
    params.extend([
        f"fontsize={int(round(overlay.font_size))}",
        f"fontcolor={overlay.color}",
        f"x={int(overlay.position.x)}",
        f"y={int(overlay.position.y)}",
    ])
    if overlay.stroke_width > 0:
        params.append(f"borderw={int(round(overlay.stroke_width))}")
        params.append(f"bordercolor={overlay.stroke_color}")
    if overlay.background_color:
        params.append("box=1")
        params.append(f"boxcolor={overlay.background_color}")
    # Literal text: no %{...} expansion
    params.append("expansion=none")
    params.append(between(overlay.start_ms, _window_end(overlay.end_ms, output_duration_ms)))

    return Stage(
        name=f"text:{overlay.id}",
        category=StageCategory.OVERLAY,
        expression="drawtext=" + ":".join(params),
    )


def sticker_overlay_stage(overlay: StickerOverlay, output_duration_ms: int) -> Stage:
    source = [f"movie=filename={sanitize_text_param(overlay.image_location)}"]
    if overlay.scale != 1.0:
        source.append(f"scale=w=iw*{fmt(overlay.scale)}:h=ih*{fmt(overlay.scale)}")
    if overlay.rotation:
        rad = fmt(math.radians(overlay.rotation))
        source.append("format=rgba")
        source.append(f"rotate=a={rad}:c=none:ow=rotw({rad}):oh=roth({rad})")

    expr = (
        f"overlay=x={int(overlay.position.x)}:y={int(overlay.position.y)}:"
        + between(overlay.start_ms, _window_end(overlay.end_ms, output_duration_ms))
    )
    return Stage(
        name=f"sticker:{overlay.id}",
        category=StageCategory.OVERLAY,
        expression=expr,
        source=",".join(source),
    )


def overlay_stages(text_overlays, sticker_overlays, output_duration_ms: int) -> list[Stage]:
    """Text overlays first, then stickers, each in insertion order."""
    stages = [text_overlay_stage(o, output_duration_ms) for o in text_overlays]
    stages.extend(sticker_overlay_stage(o, output_duration_ms) for o in sticker_overlays)
    return stages
