"""
VioraEdit - declarative video editing compiled to ffmpeg invocations.

Edits are collected in an immutable EditState, compiled into an ordered
pipeline of filter stages, serialized to a single ffmpeg command and run
with progress reporting, cancellation and undo/redo.
"""

from .compiler import PipelineDescription, compile_edit_state
from .config import EditorConfig, load_config
from .errors import Cancelled, EditorError, EngineFailure, SourceUnavailable, ValidationError
from .executor import JobState, ProgressEvent, TranscodeJob, TranscodeOutcome, serialize_pipeline
from .history import EditHistory
from .models import EditState
from .session import EditSession

__version__ = "1.0.0"
__author__ = "VioraEdit Team"

__all__ = [
    "PipelineDescription",
    "compile_edit_state",
    "EditorConfig",
    "load_config",
    "Cancelled",
    "EditorError",
    "EngineFailure",
    "SourceUnavailable",
    "ValidationError",
    "JobState",
    "ProgressEvent",
    "TranscodeJob",
    "TranscodeOutcome",
    "serialize_pipeline",
    "EditHistory",
    "EditState",
    "EditSession",
]
