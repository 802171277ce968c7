"""Edit state data model."""

from .edit_state import (
    AspectRatio,
    AudioTrack,
    CompressionLevel,
    EditState,
    FilterKind,
    OutputFormat,
    Position,
    StickerOverlay,
    TextOverlay,
    TrimRange,
    VideoFilter,
)

__all__ = [
    "AspectRatio",
    "AudioTrack",
    "CompressionLevel",
    "EditState",
    "FilterKind",
    "OutputFormat",
    "Position",
    "StickerOverlay",
    "TextOverlay",
    "TrimRange",
    "VideoFilter",
]
