"""Compiled pipeline types.

A :class:`PipelineDescription` is what the compiler hands to the
serializer: ordered video and audio :class:`Stage` tuples plus the
encoding choices. It is built fresh on every compile and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..video.formats import EncodingSettings


class StageCategory(str, Enum):
    """Logical category of a stage."""
    TRIM = "trim"
    GEOMETRY = "geometry"
    COLOR = "color"
    TEMPORAL = "temporal"
    OVERLAY = "overlay"
    AUDIO = "audio"
    CODEC = "codec"


@dataclass(frozen=True, slots=True)
class Stage:
    """One named unit of the compiled pipeline.

    Fields
    ------
    name : str
        Stage name (e.g. ``"crop"``, ``"brightness"``, ``"text:<id>"``).
    category : StageCategory
        Logical category used for ordering checks and progress labels.
    expression : str
        Filter expression joined into ``-vf``/``-af``; ``""`` for stages
        that only carry command-line options (trim, compression).
    input_options : tuple[str, ...]
        Raw CLI flags placed *before* ``-i`` (e.g. ``("-ss", "2.0")``).
    output_options : tuple[str, ...]
        Raw output CLI flags (e.g. ``("-t", "6.0")``).
    source : str | None
        Source filter (``movie=...``/``amovie=...``) producing the second
        input of an ``overlay``/``amix`` expression.
    """

    name: str
    category: StageCategory
    expression: str = ""
    input_options: tuple[str, ...] = ()
    output_options: tuple[str, ...] = ()
    source: Optional[str] = None

    @property
    def is_filter(self) -> bool:
        return bool(self.expression)

    def describe(self) -> str:
        """Short human-readable form, e.g. ``speed(setpts=0.5*PTS)``."""
        detail = self.expression or " ".join(self.input_options + self.output_options)
        return f"{self.name}({detail})"


@dataclass(frozen=True, slots=True)
class PipelineDescription:
    """Ordered stages and encoding choices for one invocation."""

    input_location: str
    duration_ms: int
    output_duration_ms: int
    video_stages: tuple[Stage, ...] = ()
    audio_stages: tuple[Stage, ...] = ()
    encoding: EncodingSettings = field(default_factory=EncodingSettings)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self.video_stages + self.audio_stages

    def stage_names(self) -> list[str]:
        return [s.name for s in self.video_stages]

    def categories(self) -> list[StageCategory]:
        return [s.category for s in self.video_stages]
