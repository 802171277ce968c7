"""Video, audio, and container format definitions."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class VideoCodec(str, Enum):
    """Common video encoders."""
    H264 = "libx264"


class AudioCodec(str, Enum):
    """Common audio encoders."""
    AAC = "aac"


class ContainerFormat(str, Enum):
    """Muxer names passed to ``-f``."""
    MP4 = "mp4"
    MOV = "mov"


class PixelFormat(str, Enum):
    """Common pixel formats."""
    YUV420P = "yuv420p"


class VideoFormat(BaseModel):
    """Video encoder settings."""
    model_config = ConfigDict(frozen=True)

    codec: str = VideoCodec.H264.value
    bitrate: Optional[str] = None
    pixel_format: Optional[PixelFormat] = PixelFormat.YUV420P

    def to_ffmpeg_args(self) -> list[str]:
        """Convert to FFMPEG command arguments."""
        args = ["-c:v", self.codec]

        if self.bitrate:
            args.extend(["-b:v", self.bitrate])

        if self.pixel_format is not None:
            args.extend(["-pix_fmt", self.pixel_format.value])

        return args


class AudioFormat(BaseModel):
    """Audio encoder settings."""
    model_config = ConfigDict(frozen=True)

    codec: str = AudioCodec.AAC.value
    bitrate: Optional[str] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None

    def to_ffmpeg_args(self) -> list[str]:
        """Convert to FFMPEG command arguments."""
        args = ["-c:a", self.codec]

        if self.bitrate:
            args.extend(["-b:a", self.bitrate])

        if self.sample_rate:
            args.extend(["-ar", str(self.sample_rate)])

        if self.channels:
            args.extend(["-ac", str(self.channels)])

        return args


class EncodingSettings(BaseModel):
    """Codec, bitrate and container choices for one invocation."""
    model_config = ConfigDict(frozen=True)

    container: ContainerFormat = ContainerFormat.MP4
    extension: str = "mp4"
    mime_type: str = "video/mp4"
    video: VideoFormat = VideoFormat()
    audio: AudioFormat = AudioFormat(bitrate="128k")

    def to_ffmpeg_args(self) -> list[str]:
        """Convert to FFMPEG command arguments."""
        args = self.video.to_ffmpeg_args() + self.audio.to_ffmpeg_args()
        args.extend(["-f", self.container.value])
        # moov atom first
        args.extend(["-movflags", "+faststart"])
        return args


# Lower CRF means higher visual quality and therefore a higher bitrate tier.
_BITRATE_TIERS = (
    (18, "8000k"),
    (23, "4000k"),
    (28, "2000k"),
)
_FLOOR_BITRATE = "1000k"


def bitrate_for_crf(crf: int) -> str:
    """Map a CRF value onto a fixed, monotone bitrate tier."""
    for ceiling, bitrate in _BITRATE_TIERS:
        if crf <= ceiling:
            return bitrate
    return _FLOOR_BITRATE


# output format name -> (muxer, mime type)
CONTAINERS: dict[str, tuple[ContainerFormat, str]] = {
    "mp4": (ContainerFormat.MP4, "video/mp4"),
    "mov": (ContainerFormat.MOV, "video/quicktime"),
}
