"""Video metadata extraction using ffprobe."""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


class StreamInfo(BaseModel):
    """Information about a single stream."""
    index: int
    codec_name: str
    codec_type: str
    bit_rate: Optional[int] = None


class VideoStreamInfo(StreamInfo):
    """Video stream specific information."""
    width: int
    height: int
    frame_rate: Optional[float] = None
    duration: Optional[float] = None


class AudioStreamInfo(StreamInfo):
    """Audio stream specific information."""
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    duration: Optional[float] = None


class VideoMetadata(BaseModel):
    """Probe results for one media file."""
    file_path: str
    file_size: int
    format_name: str
    duration: float
    video_streams: list[VideoStreamInfo] = []
    audio_streams: list[AudioStreamInfo] = []

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))

    @property
    def primary_video(self) -> Optional[VideoStreamInfo]:
        return self.video_streams[0] if self.video_streams else None

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_streams)

    @property
    def resolution(self) -> Optional[tuple[int, int]]:
        """Get video resolution as (width, height)."""
        if self.primary_video:
            return (self.primary_video.width, self.primary_video.height)
        return None


class VideoAnalyzer:
    """Analyzes video files using ffprobe."""

    def __init__(self, ffprobe_path: Optional[str] = None):
        """Initialize the analyzer.

        Args:
            ffprobe_path: Path to ffprobe executable. If None, will search PATH.
        """
        self.ffprobe_path = ffprobe_path or shutil.which("ffprobe")
        if not self.ffprobe_path:
            raise RuntimeError("ffprobe not found in PATH")

    def analyze(self, video_path: str | Path) -> VideoMetadata:
        """Analyze a video file and extract metadata.

        Raises:
            FileNotFoundError: If the video file doesn't exist.
            RuntimeError: If ffprobe fails to analyze the file.
        """
        video_path = Path(video_path)
        if not video_path.exists():
            raise FileNotFoundError(f"Video file not found: {video_path}")

        cmd = [
            self.ffprobe_path,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(video_path),
        ]

        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise RuntimeError(f"ffprobe failed: {result.stderr}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"ffprobe returned invalid JSON: {exc}") from exc
        return parse_probe_data(str(video_path), data)


def _int_or_none(value) -> Optional[int]:
    return int(value) if value else None


def _float_or_none(value) -> Optional[float]:
    return float(value) if value else None


def _frame_rate(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        num, den = map(int, value.split("/"))
        return num / den if den != 0 else None
    except ValueError:
        return None


def parse_probe_data(file_path: str, data: dict) -> VideoMetadata:
    """Parse ffprobe JSON output into VideoMetadata."""
    format_info = data.get("format", {})
    video_streams = []
    audio_streams = []

    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type", "")
        common = dict(
            index=stream.get("index", 0),
            codec_name=stream.get("codec_name", "unknown"),
            codec_type=codec_type,
            bit_rate=_int_or_none(stream.get("bit_rate")),
        )
        if codec_type == "video":
            video_streams.append(VideoStreamInfo(
                **common,
                width=stream.get("width", 0),
                height=stream.get("height", 0),
                frame_rate=_frame_rate(stream.get("r_frame_rate")),
                duration=_float_or_none(stream.get("duration")),
            ))
        elif codec_type == "audio":
            audio_streams.append(AudioStreamInfo(
                **common,
                sample_rate=_int_or_none(stream.get("sample_rate")),
                channels=stream.get("channels"),
                duration=_float_or_none(stream.get("duration")),
            ))

    return VideoMetadata(
        file_path=file_path,
        file_size=int(format_info.get("size", 0)),
        format_name=format_info.get("format_name", "unknown"),
        duration=float(format_info.get("duration", 0) or 0),
        video_streams=video_streams,
        audio_streams=audio_streams,
    )
