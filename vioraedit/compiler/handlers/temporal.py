"""Temporal stage handlers: trim, speed, reverse, audio tempo."""

from typing import Optional

from ..pipeline import Stage, StageCategory
from ._numbers import fmt, seconds

# atempo's single-filter range; factors outside it are chained.
ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0


def trim_stage(start_ms: int, end_ms: int, duration_ms: int) -> Optional[Stage]:
    """Input seek and read length; no stage when the whole input is kept.

    Both options sit before ``-i`` so the cut happens on the input timeline,
    ahead of every speed, reverse or overlay filter.
    """
    if start_ms <= 0 and end_ms >= duration_ms:
        return None

    input_opts: tuple[str, ...] = ()
    if start_ms > 0:
        input_opts = ("-ss", seconds(start_ms))

    return Stage(
        name="trim",
        category=StageCategory.TRIM,
        input_options=input_opts + ("-t", seconds(end_ms - start_ms)),
    )


def speed_stage(speed: float) -> Optional[Stage]:
    if speed == 1.0:
        return None
    return Stage(
        name="speed",
        category=StageCategory.TEMPORAL,
        expression=f"setpts={fmt(1.0 / speed)}*PTS",
    )


def reverse_stage(is_reversed: bool) -> Optional[Stage]:
    if not is_reversed:
        return None
    return Stage(name="reverse", category=StageCategory.TEMPORAL, expression="reverse")


def atempo_chain(factor: float) -> list[str]:
    """Split a tempo factor into atempo filters that each stay in range."""
    if ATEMPO_MIN <= factor <= ATEMPO_MAX:
        return [f"atempo={fmt(factor)}"]

    af = []
    remaining = factor
    if factor < ATEMPO_MIN:
        while remaining < ATEMPO_MIN:
            af.append(f"atempo={fmt(ATEMPO_MIN)}")
            remaining /= ATEMPO_MIN
    else:
        while remaining > ATEMPO_MAX:
            af.append(f"atempo={fmt(ATEMPO_MAX)}")
            remaining /= ATEMPO_MAX
    if remaining != 1.0:
        af.append(f"atempo={fmt(remaining)}")
    return af


def tempo_stage(speed: float) -> Optional[Stage]:
    if speed == 1.0:
        return None
    return Stage(
        name="tempo",
        category=StageCategory.AUDIO,
        expression=",".join(atempo_chain(speed)),
    )


def audio_reverse_stage(is_reversed: bool) -> Optional[Stage]:
    if not is_reversed:
        return None
    return Stage(name="areverse", category=StageCategory.AUDIO, expression="areverse")
