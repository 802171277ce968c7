"""Encoding handlers: bitrate tier, x264 preset, container lookup."""

from typing import Optional

from ...models.edit_state import CompressionLevel, OutputFormat
from ...video.formats import (
    CONTAINERS,
    AudioFormat,
    EncodingSettings,
    VideoFormat,
    bitrate_for_crf,
)
from ..pipeline import Stage, StageCategory

DEFAULT_COMPRESSION = CompressionLevel.MEDIUM


def compression_stage(level: CompressionLevel) -> Optional[Stage]:
    """Encoder preset for non-default levels (``medium`` is x264's own default)."""
    if level == DEFAULT_COMPRESSION:
        return None
    return Stage(
        name="compression",
        category=StageCategory.CODEC,
        output_options=("-preset", level.preset),
    )


def encoding_settings(
    level: CompressionLevel,
    output_format: OutputFormat,
    video_codec: str = "libx264",
    audio_codec: str = "aac",
    audio_bitrate: str = "128k",
) -> EncodingSettings:
    container, mime_type = CONTAINERS[output_format.value]
    return EncodingSettings(
        container=container,
        extension=output_format.extension,
        mime_type=mime_type,
        video=VideoFormat(codec=video_codec, bitrate=bitrate_for_crf(level.crf)),
        audio=AudioFormat(codec=audio_codec, bitrate=audio_bitrate),
    )
