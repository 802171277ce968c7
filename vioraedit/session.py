"""Edit session: one working media file, its pending edits and its history.

The session is the only stateful piece. It resolves and probes the
source on :meth:`EditSession.load`, compiles and runs the pending edits
on :meth:`EditSession.apply`, and swaps the working file on undo/redo.
A failed or cancelled run leaves the state and the history untouched.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .compiler import compile_edit_state
from .config import EditorConfig, load_config
from .errors import SourceUnavailable, ValidationError
from .executor.command_builder import CommandBuilder, FFMPEGCommand, serialize_pipeline
from .executor.orchestrator import (
    ProcessingOperation,
    ProgressSink,
    TranscodeJob,
    TranscodeOutcome,
)
from .executor.process_manager import MediaEngine, ProcessManager
from .history import EditHistory
from .models.edit_state import EditState, OutputFormat
from .resolver import ContentResolver
from .sanitize import validate_output_path
from .video.analyzer import VideoAnalyzer

logger = logging.getLogger("vioraedit")


class EditSession:
    """Drives load, apply, export, quick trim, undo and redo."""

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        engine: Optional[MediaEngine] = None,
        analyzer: Optional[VideoAnalyzer] = None,
        resolver: Optional[ContentResolver] = None,
    ):
        """Initialize the session.

        Args:
            config: Editor configuration. Loaded with ``load_config()`` if None.
            engine: Media engine; a ProcessManager is created on first use.
            analyzer: Anything with ``analyze(path) -> VideoMetadata``; a
                VideoAnalyzer is created on first use.
            resolver: Content resolver; built from the config if None.
        """
        self.config = config or load_config()
        self._engine = engine
        self._analyzer = analyzer
        self.resolver = resolver or ContentResolver(
            self.config.scratch_path(),
            timeout=self.config.download_timeout_s,
        )
        self.history = EditHistory(self.config.history_capacity)
        self._state = EditState()
        self._current_location: Optional[str] = None
        self._job: Optional[TranscodeJob] = None
        self._busy = False

    # ------------------------------------------------------------------ #
    #  Properties                                                          #
    # ------------------------------------------------------------------ #

    @property
    def engine(self) -> MediaEngine:
        if self._engine is None:
            self._engine = ProcessManager(self.config.ffmpeg_path)
        return self._engine

    @property
    def analyzer(self) -> VideoAnalyzer:
        if self._analyzer is None:
            self._analyzer = VideoAnalyzer(self.config.ffprobe_path)
        return self._analyzer

    @property
    def state(self) -> EditState:
        return self._state

    @state.setter
    def state(self, value: EditState) -> None:
        self._state = value

    @property
    def current_location(self) -> Optional[str]:
        return self._current_location

    @property
    def is_processing(self) -> bool:
        return self._busy

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def update(self, change: Callable[[EditState], EditState]) -> EditState:
        """Replace the state with ``change(state)`` and return it.

        Example::

            session.update(lambda s: s.with_speed(2.0).toggle_reverse())
        """
        self._state = change(self._state)
        return self._state

    # ------------------------------------------------------------------ #
    #  Loading                                                             #
    # ------------------------------------------------------------------ #

    async def load(self, reference: str) -> EditState:
        """Make ``reference`` the working file and reset edits and history.

        Raises:
            SourceUnavailable: If the reference cannot be read or probed.
        """
        path = await self.resolver.resolve(reference)
        try:
            metadata = await asyncio.to_thread(self.analyzer.analyze, path)
        except (FileNotFoundError, RuntimeError) as exc:
            raise SourceUnavailable(reference, str(exc)) from exc
        if metadata.duration_ms <= 0:
            raise SourceUnavailable(reference, "media has no duration")

        self._state = EditState.for_source(path, metadata.duration_ms, metadata.has_audio)
        self._current_location = path
        self.history.clear()
        logger.info("Loaded %s (%d ms)", path, metadata.duration_ms)
        return self._state

    async def _resolve_assets(self, state: EditState) -> EditState:
        tracks = []
        for track in state.audio_tracks:
            if not track.is_original and track.source_location:
                track = track.model_copy(
                    update={"source_location": await self.resolver.resolve(track.source_location)}
                )
            tracks.append(track)
        stickers = []
        for sticker in state.sticker_overlays:
            if sticker.image_location:
                sticker = sticker.model_copy(
                    update={"image_location": await self.resolver.resolve(sticker.image_location)}
                )
            stickers.append(sticker)
        return state.model_copy(
            update={"audio_tracks": tuple(tracks), "sticker_overlays": tuple(stickers)}
        )

    # ------------------------------------------------------------------ #
    #  Running                                                             #
    # ------------------------------------------------------------------ #

    def generate_output_path(self, output_format: OutputFormat = OutputFormat.MP4) -> str:
        """Return a fresh ``VID_<yyyyMMdd_HHmmss>_<token>.<ext>`` path."""
        output_dir = self.config.output_path()
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        name = f"VID_{stamp}_{uuid.uuid4().hex[:8]}.{OutputFormat(output_format).extension}"
        return validate_output_path(str(output_dir / name))

    def _require_source(self) -> str:
        if not self._current_location:
            raise ValidationError("source_location", "no source loaded")
        return self._current_location

    async def _run(
        self,
        command: FFMPEGCommand,
        duration_ms: int,
        progress_sink: Optional[ProgressSink],
        label: ProcessingOperation,
    ) -> TranscodeOutcome:
        self._job = TranscodeJob(
            command,
            duration_ms,
            engine=self.engine,
            progress_sink=progress_sink,
            label=label,
        )
        try:
            return await self._job.run()
        finally:
            self._job = None
            self.resolver.cleanup_scratch(self.config.scratch_max_age_s)

    def _begin(self) -> None:
        if self._busy:
            raise RuntimeError("Another operation is already running")
        self._busy = True

    async def apply(self, progress_sink: Optional[ProgressSink] = None) -> TranscodeOutcome:
        """Render the pending edits into a new working file.

        On success the output becomes the working file, the edits are
        reset against it and the transformation is recorded for undo.

        Raises:
            ValidationError: If the pending edits are invalid.
            SourceUnavailable: If an audio track or sticker cannot be resolved.
            RuntimeError: If another operation is running.
        """
        self._begin()
        try:
            pre_location = self._require_source()
            pre_state = self._state
            state = await self._resolve_assets(pre_state)
            pipeline = compile_edit_state(state, self.config)
            output = self.generate_output_path(state.output_format)
            command = serialize_pipeline(pipeline, output)
            outcome = await self._run(
                command,
                pipeline.output_duration_ms,
                progress_sink,
                ProcessingOperation.APPLYING_FILTERS,
            )
            if outcome.succeeded:
                post_state = EditState.for_source(
                    outcome.output_path, pipeline.output_duration_ms, state.has_audio
                )
                self.history.record_applied(pre_state, pre_location, post_state, outcome.output_path)
                self._state = post_state
                self._current_location = outcome.output_path
            return outcome
        finally:
            self._busy = False

    async def export(
        self,
        destination: Optional[str] = None,
        progress_sink: Optional[ProgressSink] = None,
    ) -> TranscodeOutcome:
        """Render the pending edits to ``destination`` without touching the session."""
        self._begin()
        try:
            self._require_source()
            state = await self._resolve_assets(self._state)
            pipeline = compile_edit_state(state, self.config)
            if destination is None:
                output = self.generate_output_path(state.output_format)
            else:
                output = validate_output_path(destination)
                Path(output).parent.mkdir(parents=True, exist_ok=True)
            command = serialize_pipeline(pipeline, output)
            return await self._run(
                command,
                pipeline.output_duration_ms,
                progress_sink,
                ProcessingOperation.EXPORTING,
            )
        finally:
            self._busy = False

    async def quick_trim(
        self,
        start_ms: int,
        end_ms: int,
        progress_sink: Optional[ProgressSink] = None,
    ) -> TranscodeOutcome:
        """Write ``[start_ms, end_ms)`` of the working file to a new file by stream copy.

        Nothing is re-encoded. Like :meth:`export`, the working file, the
        pending edits and the history stay as they are.
        """
        self._begin()
        try:
            source = self._require_source()
            if not 0 <= start_ms < end_ms <= self._state.duration_ms:
                raise ValidationError(
                    "trim_range",
                    f"expected 0 <= start < end <= {self._state.duration_ms}, "
                    f"got start={start_ms} end={end_ms}",
                )
            length_ms = end_ms - start_ms
            output = self.generate_output_path(self._state.output_format)
            builder = CommandBuilder()
            builder.input(source, [
                "-ss", f"{start_ms / 1000:.3f}",
                "-t", f"{length_ms / 1000:.3f}",
            ])
            builder.stream_copy()
            builder.output(output)
            return await self._run(
                builder.build(),
                length_ms,
                progress_sink,
                ProcessingOperation.TRIMMING,
            )
        finally:
            self._busy = False

    def cancel(self) -> None:
        """Cancel the running operation, if any."""
        if self._job is not None:
            self._job.cancel()

    # ------------------------------------------------------------------ #
    #  History                                                             #
    # ------------------------------------------------------------------ #

    def undo(self) -> Optional[EditState]:
        """Go back to the file and edits from before the last apply."""
        restored = self.history.undo()
        if restored is None:
            return None
        self._state, self._current_location = restored
        logger.debug("Undo -> %s", self._current_location)
        return self._state

    def redo(self) -> Optional[EditState]:
        """Reapply the last undone transformation."""
        restored = self.history.redo()
        if restored is None:
            return None
        self._state, self._current_location = restored
        logger.debug("Redo -> %s", self._current_location)
        return self._state

    async def close(self) -> None:
        await self.resolver.close()
