"""Process management for FFMPEG execution."""

import asyncio
import logging
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import AsyncIterator, Optional

logger = logging.getLogger("vioraedit")


@dataclass
class ProgressInfo:
    """Progress information during FFMPEG execution."""
    frame: int = 0
    fps: float = 0.0
    time: float = 0.0
    bitrate: str = ""
    speed: str = ""
    size: int = 0
    finished: bool = False


class EngineSession(ABC):
    """One running engine invocation."""

    @abstractmethod
    def progress(self) -> AsyncIterator[ProgressInfo]:
        """Yield progress samples until the engine closes its progress channel."""

    @abstractmethod
    async def wait(self) -> tuple[int, str]:
        """Wait for exit and return ``(return_code, stderr)``."""

    @abstractmethod
    def terminate(self) -> None:
        """Ask the engine to stop."""

    @abstractmethod
    def kill(self) -> None:
        """Stop the engine unconditionally."""


class MediaEngine(ABC):
    """Something that can start an ffmpeg-style invocation."""

    @abstractmethod
    async def start(self, args: list[str]) -> EngineSession:
        """Start ``args`` (``args[0]`` is the program name) and return its session."""


def parse_progress_line(line: str, progress: ProgressInfo) -> bool:
    """Fold one ``-progress`` ``key=value`` line into ``progress``.

    Returns True when the line closes a progress block.
    """
    if "=" not in line:
        return False
    key, value = line.split("=", 1)
    value = value.strip()
    try:
        if key == "frame":
            progress.frame = int(value)
        elif key == "fps":
            progress.fps = float(value) if value else 0.0
        elif key in ("out_time_us", "out_time_ms"):
            # out_time_ms is reported in microseconds as well
            progress.time = int(value) / 1_000_000
        elif key == "bitrate":
            progress.bitrate = value
        elif key == "speed":
            progress.speed = value
        elif key == "total_size":
            progress.size = int(value) if value.isdigit() else 0
        elif key == "progress":
            progress.finished = value == "end"
            return True
    except ValueError:
        # ffmpeg prints N/A before the first frame is muxed
        pass
    return False


def parse_error(stderr: str) -> str:
    """Extract meaningful error message from ffmpeg stderr."""
    lines = stderr.strip().split("\n")

    # Look for common error patterns
    error_patterns = [
        r"Error.*",
        r"Invalid.*",
        r"No such file.*",
        r".*not found.*",
        r"Permission denied.*",
        r"Discarding.*",
    ]

    for line in reversed(lines):
        for pattern in error_patterns:
            if re.search(pattern, line, re.IGNORECASE):
                return line.strip()

    # Return last non-empty line if no pattern matched
    for line in reversed(lines):
        if line.strip():
            return line.strip()

    return "Unknown error"


class FFmpegSession(EngineSession):
    """A running ffmpeg subprocess with ``-progress pipe:1`` on stdout."""

    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process
        self._stderr_data: list[str] = []
        self._stderr_task = asyncio.create_task(self._collect_stderr())

    @property
    def pid(self) -> int:
        return self._process.pid

    async def _collect_stderr(self):
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            self._stderr_data.append(line.decode(errors="replace"))

    async def progress(self) -> AsyncIterator[ProgressInfo]:
        progress = ProgressInfo()
        while True:
            line = await self._process.stdout.readline()
            if not line:
                break
            if parse_progress_line(line.decode(errors="replace").strip(), progress):
                yield replace(progress)

    async def wait(self) -> tuple[int, str]:
        # A timed-out wait must not take the stderr reader down with it.
        await asyncio.shield(self._stderr_task)
        return_code = await self._process.wait()
        return return_code, "".join(self._stderr_data)

    def terminate(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

    def kill(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass


class ProcessManager(MediaEngine):
    """Starts ffmpeg processes with progress reporting enabled."""

    def __init__(self, ffmpeg_path: Optional[str] = None):
        """Initialize process manager.

        Args:
            ffmpeg_path: Path to ffmpeg executable. If None, searches PATH.
        """
        self.ffmpeg_path = ffmpeg_path or shutil.which("ffmpeg")
        if not self.ffmpeg_path:
            raise RuntimeError("ffmpeg not found in PATH")

    def prepare_args(self, args: list[str]) -> list[str]:
        """Resolve the binary and switch on machine-readable progress."""
        args = list(args)
        if args and args[0] == "ffmpeg":
            args[0] = self.ffmpeg_path
        return [args[0], "-progress", "pipe:1", "-nostats"] + args[1:]

    async def start(self, args: list[str]) -> FFmpegSession:
        args = self.prepare_args(args)
        logger.debug("Starting ffmpeg: %s", " ".join(args))
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        return FFmpegSession(process)
