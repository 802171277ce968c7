"""Editor configuration.

Settings are read from a YAML file. The path is taken from the
``load_config`` argument, then from the ``VIORAEDIT_CONFIG`` environment
variable; with neither, the built-in defaults apply.

Example ``vioraedit.yaml``::

    ffmpeg_path: /opt/ffmpeg/bin/ffmpeg
    output_dir: ~/Videos/VideoEditor
    history_capacity: 30
    video_codec: libx264
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

logger = logging.getLogger("vioraedit")

CONFIG_ENV_VAR = "VIORAEDIT_CONFIG"


def _default_output_dir() -> str:
    return str(Path.home() / "Downloads" / "VideoEditor")


def _default_scratch_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "vioraedit_processing")


class EditorConfig(BaseModel):
    """Configuration for an editing session."""
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    output_dir: str = Field(default_factory=_default_output_dir)
    scratch_dir: str = Field(default_factory=_default_scratch_dir)
    history_capacity: int = Field(default=50, ge=1)
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    scratch_max_age_s: float = 3600.0
    download_timeout_s: float = 120.0

    def output_path(self) -> Path:
        return Path(os.path.expanduser(self.output_dir))

    def scratch_path(self) -> Path:
        return Path(os.path.expanduser(self.scratch_dir))


def load_config(path: Optional[str | Path] = None) -> EditorConfig:
    """Load an :class:`EditorConfig` from YAML.

    A missing file is not an error; an unreadable or malformed one is
    logged and the defaults are used instead.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return EditorConfig()

    path = Path(os.path.expanduser(str(path)))
    if not path.exists():
        logger.debug("Config file %s not found, using defaults", path)
        return EditorConfig()

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data: Any = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to read config %s: %s", path, exc)
        return EditorConfig()

    if data is None:
        return EditorConfig()
    if not isinstance(data, dict):
        logger.warning("Invalid config %s: top-level must be a mapping", path)
        return EditorConfig()

    try:
        return EditorConfig(**data)
    except SchemaError as exc:
        logger.warning("Invalid config %s: %s", path, exc)
        return EditorConfig()
