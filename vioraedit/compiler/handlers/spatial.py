"""Geometry stage handlers."""

from typing import Optional

from ...models.edit_state import AspectRatio
from ..pipeline import Stage, StageCategory


def _even(expr: str) -> str:
    # x264 with yuv420p needs even frame sizes
    return f"trunc({expr}/2)*2"


def crop_stage(aspect: AspectRatio) -> Optional[Stage]:
    """Centered crop to ``aspect``, computed from the input frame size.

    Commas inside ``min()`` are escaped so the filtergraph parser does not
    read them as filter separators.
    """
    ratio = aspect.ratio
    if ratio is None:
        return None

    w, h = ratio
    if w == h:
        side = _even("min(iw\\,ih)")
        expr = f"crop=w={side}:h={side}"
    else:
        out_w = _even(f"min(iw\\,ih*{w}/{h})")
        out_h = _even(f"min(ih\\,iw*{h}/{w})")
        expr = f"crop=w={out_w}:h={out_h}"

    return Stage(name="crop", category=StageCategory.GEOMETRY, expression=expr)
