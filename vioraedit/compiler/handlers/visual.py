"""Color/effect stage handlers.

Each filter kind maps to one fixed expression template. Brightness,
contrast and saturation share the ``eq`` family; the rest are
independent templates.
"""

import math
from typing import Callable, Optional

from ...models.edit_state import FilterKind, VideoFilter
from ..pipeline import Stage, StageCategory
from ._numbers import fmt

_SEPIA_MATRIX = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)


def _brightness(v: float) -> str:
    return f"eq=brightness={fmt(v)}"


def _contrast(v: float) -> str:
    return f"eq=contrast={fmt(v)}"


def _saturation(v: float) -> str:
    return f"eq=saturation={fmt(v)}"


def _blur(radius: float) -> str:
    return f"boxblur={fmt(radius)}:1"


def _grayscale(amount: float) -> str:
    return f"hue=s={fmt(1.0 - amount)}"


def _sepia(amount: float) -> str:
    # Blend between the identity matrix and the sepia matrix.
    keys = ("r", "g", "b")
    params = []
    for i, row in enumerate(_SEPIA_MATRIX):
        for j, coeff in enumerate(row):
            identity = 1.0 if i == j else 0.0
            value = identity + amount * (coeff - identity)
            params.append(f"{keys[i]}{keys[j]}={fmt(value)}")
    return "colorchannelmixer=" + ":".join(params)


def _vignette(intensity: float) -> str:
    # Map intensity [0,1] to angle [PI/6, PI/2] for visible vignette
    angle = (math.pi / 6) + intensity * (math.pi / 2 - math.pi / 6)
    return f"vignette=angle={fmt(angle)}"


def _vintage(strength: float) -> str:
    contrast = 1.0 + 0.1 * strength
    brightness = -0.1 * strength
    return f"curves=preset=vintage,eq=contrast={fmt(contrast)}:brightness={fmt(brightness)}"


FILTER_TEMPLATES: dict[FilterKind, Callable[[float], str]] = {
    FilterKind.BRIGHTNESS: _brightness,
    FilterKind.CONTRAST: _contrast,
    FilterKind.SATURATION: _saturation,
    FilterKind.BLUR: _blur,
    FilterKind.GRAYSCALE: _grayscale,
    FilterKind.SEPIA: _sepia,
    FilterKind.VIGNETTE: _vignette,
    FilterKind.VINTAGE: _vintage,
}


def filter_stage(video_filter: VideoFilter) -> Optional[Stage]:
    """Stage for one filter, or None at its identity intensity."""
    if video_filter.is_identity:
        return None
    template = FILTER_TEMPLATES[video_filter.kind]
    return Stage(
        name=video_filter.name,
        category=StageCategory.COLOR,
        expression=template(video_filter.intensity),
    )


def color_stages(filters) -> list[Stage]:
    """Stages for all filters, in the order they were added."""
    stages = []
    for video_filter in filters:
        stage = filter_stage(video_filter)
        if stage is not None:
            stages.append(stage)
    return stages
