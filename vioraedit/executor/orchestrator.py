"""Transcode orchestration: run one invocation, report progress, classify the outcome.

A :class:`TranscodeJob` moves through ``IDLE -> RUNNING`` and then into
exactly one terminal state (``SUCCEEDED``, ``FAILED`` or ``CANCELLED``).
Progress fractions only ever go up, and once cancellation is requested
nothing the engine reports can turn the job into a success.

Example::

    job = TranscodeJob(command, duration_ms=10_000, progress_sink=print)
    outcome = await job.run()

or, as a stream::

    async for event in TranscodeJob(command, 10_000).stream():
        if isinstance(event, ProgressEvent):
            ...
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from ..errors import Cancelled, EngineFailure
from .command_builder import FFMPEGCommand
from .process_manager import MediaEngine, ProcessManager, parse_error

logger = logging.getLogger("vioraedit")

# Seconds to wait after terminate() before killing the process.
TERMINATE_GRACE_S = 5.0


class ProcessingOperation(str, Enum):
    """Labels reported alongside progress fractions."""
    IDLE = "idle"
    LOADING = "loading"
    TRIMMING = "trimming"
    APPLYING_FILTERS = "applying_filters"
    ADDING_AUDIO = "adding_audio"
    ADDING_OVERLAYS = "adding_overlays"
    COMPRESSING = "compressing"
    EXPORTING = "exporting"
    COMPLETED = "completed"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED)


@dataclass(frozen=True)
class ProgressEvent:
    fraction: float
    label: ProcessingOperation


@dataclass(frozen=True)
class TranscodeOutcome:
    """Terminal result of one invocation."""
    state: JobState
    output_path: Optional[str] = None
    output_size: Optional[int] = None
    error_message: Optional[str] = None
    return_code: Optional[int] = None
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.SUCCEEDED

    @property
    def output_size_mb(self) -> Optional[float]:
        if self.output_size is None:
            return None
        return self.output_size / (1024 * 1024)

    def raise_for_state(self) -> "TranscodeOutcome":
        """Return self on success, raise EngineFailure or Cancelled otherwise."""
        if self.state is JobState.CANCELLED:
            raise Cancelled(self.error_message or "Cancelled")
        if self.state is JobState.FAILED:
            raise EngineFailure(
                self.error_message or "Unknown error",
                return_code=self.return_code,
                stderr=self.stderr,
            )
        return self


ProgressSink = Callable[[float, ProcessingOperation], None]


class TranscodeJob:
    """Runs one serialized invocation against the media engine.

    The job keeps no state beyond its own invocation and never retries.
    """

    def __init__(
        self,
        command: FFMPEGCommand | list[str],
        duration_ms: int,
        engine: Optional[MediaEngine] = None,
        progress_sink: Optional[ProgressSink] = None,
        output_path: Optional[str] = None,
        label: ProcessingOperation = ProcessingOperation.EXPORTING,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize the job.

        Args:
            command: FFMPEGCommand object or list of arguments.
            duration_ms: Nominal duration used to normalize progress.
            engine: Engine to run on. Creates a ProcessManager if not provided.
            progress_sink: Called with ``(fraction, label)`` on each increase.
            output_path: Output to verify; taken from the command if omitted.
            label: Label reported with in-flight progress.
            loop: When given, sink calls are scheduled on this loop with
                ``call_soon_threadsafe`` instead of being called directly.
        """
        if isinstance(command, FFMPEGCommand):
            self._args = command.to_args()
            self._output_path = output_path or command.output_path
        else:
            self._args = list(command)
            self._output_path = output_path
        self._duration_ms = duration_ms
        self._engine = engine
        self._sink = progress_sink
        self._label = label
        self._loop = loop

        self._state = JobState.IDLE
        self._session = None
        self._cancel_requested = False
        self._stopper: Optional[asyncio.Task] = None
        self._last_fraction: Optional[float] = None
        self._outcome: Optional[TranscodeOutcome] = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def outcome(self) -> Optional[TranscodeOutcome]:
        return self._outcome

    @property
    def last_fraction(self) -> float:
        return self._last_fraction or 0.0

    @property
    def args(self) -> list[str]:
        return list(self._args)

    # ------------------------------------------------------------------ #
    #  Progress                                                            #
    # ------------------------------------------------------------------ #

    def _fraction(self, elapsed_s: float) -> float:
        if self._duration_ms <= 0:
            return 0.0
        return min(max(elapsed_s * 1000.0 / self._duration_ms, 0.0), 1.0)

    def _emit(self, fraction: float, label: ProcessingOperation) -> None:
        if self._last_fraction is not None and fraction <= self._last_fraction:
            return
        self._last_fraction = fraction
        if self._sink is None:
            return
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._sink, fraction, label)
        else:
            self._sink(fraction, label)

    # ------------------------------------------------------------------ #
    #  Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    def cancel(self) -> None:
        """Request cancellation; a no-op once the job is terminal.

        A running invocation is terminated right away and killed if it is
        still alive ``TERMINATE_GRACE_S`` seconds later. Call from the
        loop the job runs on.
        """
        if self._state.is_terminal:
            return
        self._cancel_requested = True
        if self._session is not None and self._stopper is None:
            logger.info("Cancelling ffmpeg invocation")
            self._stopper = asyncio.ensure_future(self._stop_session())

    def _finish(self, outcome: TranscodeOutcome) -> TranscodeOutcome:
        self._state = outcome.state
        self._outcome = outcome
        return outcome

    def _cancelled(self) -> TranscodeOutcome:
        return self._finish(TranscodeOutcome(JobState.CANCELLED, error_message="Cancelled"))

    async def _stop_session(self) -> None:
        self._session.terminate()
        try:
            await asyncio.wait_for(self._session.wait(), TERMINATE_GRACE_S)
        except asyncio.TimeoutError:
            logger.warning("ffmpeg ignored terminate, killing it")
            self._session.kill()
            await self._session.wait()

    async def _await_stop(self) -> None:
        if self._stopper is None:
            self._stopper = asyncio.ensure_future(self._stop_session())
        await self._stopper

    async def run(self) -> TranscodeOutcome:
        """Run the invocation to a terminal state.

        Raises:
            RuntimeError: If the job was already started.
        """
        if self._state is not JobState.IDLE:
            raise RuntimeError(f"Job already {self._state.value}")
        self._state = JobState.RUNNING
        if self._cancel_requested:
            return self._cancelled()

        engine = self._engine or ProcessManager()
        logger.debug("Running: %s", " ".join(self._args))
        try:
            self._session = await engine.start(self._args)
        except OSError as exc:
            logger.error("Failed to start ffmpeg: %s", exc)
            return self._finish(TranscodeOutcome(JobState.FAILED, error_message=str(exc)))

        if self._cancel_requested:
            await self._await_stop()
            return self._cancelled()

        try:
            async for sample in self._session.progress():
                if self._cancel_requested:
                    break
                self._emit(self._fraction(sample.time), self._label)
            if self._cancel_requested:
                await self._await_stop()
                return self._cancelled()
            return_code, stderr = await self._session.wait()
        except asyncio.CancelledError:
            self._cancel_requested = True
            await asyncio.shield(self._await_stop())
            self._cancelled()
            raise

        if self._cancel_requested:
            await self._await_stop()
            return self._cancelled()
        return self._classify(return_code, stderr)

    def _classify(self, return_code: int, stderr: str) -> TranscodeOutcome:
        if return_code != 0:
            message = parse_error(stderr)
            logger.error("ffmpeg failed (exit %s): %s", return_code, message)
            return self._finish(TranscodeOutcome(
                JobState.FAILED,
                error_message=message,
                return_code=return_code,
                stderr=stderr,
            ))

        path = Path(self._output_path) if self._output_path else None
        size = path.stat().st_size if path is not None and path.is_file() else 0
        if size <= 0:
            logger.error("ffmpeg reported success but %s is missing or empty", path)
            return self._finish(TranscodeOutcome(
                JobState.FAILED,
                error_message="Output file is empty or not created",
                return_code=return_code,
                stderr=stderr,
            ))

        self._emit(1.0, ProcessingOperation.COMPLETED)
        logger.info("Transcode finished: %s (%d bytes)", path, size)
        return self._finish(TranscodeOutcome(
            JobState.SUCCEEDED,
            output_path=str(path),
            output_size=size,
            return_code=return_code,
            stderr=stderr,
        ))

    async def stream(self) -> AsyncIterator[ProgressEvent | TranscodeOutcome]:
        """Yield ProgressEvents in order, then exactly one TranscodeOutcome."""
        queue: asyncio.Queue = asyncio.Queue()
        user_sink = self._sink

        def sink(fraction: float, label: ProcessingOperation) -> None:
            queue.put_nowait(ProgressEvent(fraction, label))
            if user_sink is not None:
                user_sink(fraction, label)

        self._sink = sink
        self._loop = None
        task = asyncio.create_task(self.run())
        task.add_done_callback(lambda t: queue.put_nowait(None))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            yield task.result()
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
