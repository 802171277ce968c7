"""Pytest configuration for vioraedit tests.

Puts the project root on sys.path so ``import vioraedit`` works without an
install, and provides a scripted stand-in for the ffmpeg engine.
"""

import asyncio
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from vioraedit.config import EditorConfig  # noqa: E402
from vioraedit.executor.process_manager import (  # noqa: E402
    EngineSession,
    MediaEngine,
    ProgressInfo,
)
from vioraedit.video.analyzer import AudioStreamInfo, VideoMetadata  # noqa: E402


@dataclass
class EngineScript:
    """What a fake invocation reports.

    ``elapsed`` are the ``out_time`` samples in seconds. With ``hang`` the
    invocation blocks after its samples until terminated. With
    ``ignore_terminate`` only a kill stops it.
    """
    elapsed: list = field(default_factory=list)
    return_code: int = 0
    stderr: str = ""
    output_bytes: bytes = b"\x00" * 1024
    hang: bool = False
    start_error: Exception = None
    ignore_terminate: bool = False


class FakeSession(EngineSession):
    def __init__(self, script: EngineScript, args: list):
        self.script = script
        self.args = args
        self.terminated = False
        self.killed = False
        self._stopped = asyncio.Event()

    async def progress(self):
        for elapsed in self.script.elapsed:
            if self._stopped.is_set():
                return
            yield ProgressInfo(time=elapsed)
            await asyncio.sleep(0)
        if self.script.hang:
            await self._stopped.wait()

    async def wait(self):
        if self.script.hang:
            await self._stopped.wait()
        if self.terminated or self.killed:
            return 255, "Exiting normally, received signal 15."
        return self.script.return_code, self.script.stderr

    def terminate(self):
        self.terminated = True
        if not self.script.ignore_terminate:
            self._stopped.set()

    def kill(self):
        self.killed = True
        self._stopped.set()


class FakeEngine(MediaEngine):
    """Records each invocation and plays back the next script."""

    def __init__(self, *scripts: EngineScript):
        self.scripts = list(scripts) or [EngineScript()]
        self.calls: list[list[str]] = []
        self.sessions: list[FakeSession] = []

    async def start(self, args):
        self.calls.append(list(args))
        script = self.scripts.pop(0) if len(self.scripts) > 1 else self.scripts[0]
        if script.start_error is not None:
            raise script.start_error
        if script.output_bytes and script.return_code == 0:
            output = args[-1]
            if output.startswith("file:"):
                output = output[len("file:"):]
            Path(output).write_bytes(script.output_bytes)
        session = FakeSession(script, list(args))
        self.sessions.append(session)
        return session


class FakeAnalyzer:
    """Reports a fixed duration, with or without audio, for any path."""

    def __init__(self, duration_s: float = 10.0, has_audio: bool = True):
        self.duration_s = duration_s
        self.has_audio = has_audio
        self.analyzed: list[str] = []

    def analyze(self, video_path):
        self.analyzed.append(str(video_path))
        return VideoMetadata(
            file_path=str(video_path),
            file_size=1024,
            format_name="mov,mp4,m4a,3gp,3g2,mj2",
            duration=self.duration_s,
            audio_streams=[
                AudioStreamInfo(index=1, codec_name="aac", codec_type="audio")
            ] if self.has_audio else [],
        )


async def wait_for_session(engine: FakeEngine, count: int = 1):
    """Yield to the loop until the engine has started ``count`` sessions."""
    for _ in range(1000):
        if len(engine.sessions) >= count:
            return engine.sessions[count - 1]
        await asyncio.sleep(0)
    raise AssertionError("engine was never started")


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "input.mp4"
    path.write_bytes(b"fake video data")
    return path


@pytest.fixture
def editor_config(tmp_path):
    return EditorConfig(
        output_dir=str(tmp_path / "out"),
        scratch_dir=str(tmp_path / "scratch"),
    )
