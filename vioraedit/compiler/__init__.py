"""Filter-graph compiler."""

from .graph import compile_edit_state, validate_edit_state
from .pipeline import PipelineDescription, Stage, StageCategory

__all__ = [
    "compile_edit_state",
    "validate_edit_state",
    "PipelineDescription",
    "Stage",
    "StageCategory",
]
