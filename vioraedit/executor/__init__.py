"""Serialization and execution of compiled pipelines."""

from .command_builder import CommandBuilder, FFMPEGCommand, FilterChain, serialize_pipeline
from .orchestrator import (
    JobState,
    ProcessingOperation,
    ProgressEvent,
    TranscodeJob,
    TranscodeOutcome,
)
from .process_manager import EngineSession, MediaEngine, ProcessManager, ProgressInfo

__all__ = [
    "CommandBuilder",
    "FFMPEGCommand",
    "FilterChain",
    "serialize_pipeline",
    "JobState",
    "ProcessingOperation",
    "ProgressEvent",
    "TranscodeJob",
    "TranscodeOutcome",
    "EngineSession",
    "MediaEngine",
    "ProcessManager",
    "ProgressInfo",
]
