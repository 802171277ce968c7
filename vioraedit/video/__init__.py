"""Video probing and encoding formats."""

from .analyzer import VideoAnalyzer, VideoMetadata
from .formats import EncodingSettings, bitrate_for_crf

__all__ = ["VideoAnalyzer", "VideoMetadata", "EncodingSettings", "bitrate_for_crf"]
