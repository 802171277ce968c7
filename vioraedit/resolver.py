"""Content resolution: opaque media references -> local readable paths.

``file://`` URIs and plain paths are used in place. ``http(s)://``
references are downloaded into the scratch directory first. Anything
else raises :class:`SourceUnavailable`.
"""

import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from .errors import SourceUnavailable
from .sanitize import ALLOWED_EXTENSIONS, validate_video_path

logger = logging.getLogger("vioraedit")

SCRATCH_PREFIX = "temp_media_"

_MIME_EXTENSIONS = {
    "mp4": ".mp4",
    "quicktime": ".mov",
    "matroska": ".mkv",
    "webm": ".webm",
    "avi": ".avi",
    "png": ".png",
    "jpeg": ".jpg",
    "mpeg": ".mp3",
    "wav": ".wav",
    "aac": ".aac",
}


def _extension_for(url_path: str, content_type: Optional[str]) -> str:
    suffix = Path(url_path).suffix.lower()
    if suffix in ALLOWED_EXTENSIONS:
        return suffix
    if content_type:
        for needle, ext in _MIME_EXTENSIONS.items():
            if needle in content_type:
                return ext
    return ".mp4"


class ContentResolver:
    """Turns input references into local files ffmpeg can read directly."""

    def __init__(
        self,
        scratch_dir: str | Path,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.scratch_dir = Path(scratch_dir)
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(connect=30.0, read=self.timeout, write=30.0, pool=30.0),
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def resolve(self, reference: str) -> str:
        """Return a local, readable path for ``reference``.

        Raises:
            SourceUnavailable: If the reference cannot be resolved or read.
        """
        if not reference:
            raise SourceUnavailable(reference, "empty reference")

        parsed = urlparse(reference)
        scheme = parsed.scheme.lower()

        # Single letters are Windows drive letters, not schemes.
        if scheme in ("", "file") or len(scheme) == 1:
            path = unquote(parsed.path) if scheme == "file" else reference
            return self._check_local(reference, path)
        if scheme in ("http", "https"):
            return await self._download(reference)
        raise SourceUnavailable(reference, f"unsupported scheme {scheme!r}")

    def _check_local(self, reference: str, path: str) -> str:
        local = Path(path).expanduser()
        if not local.exists():
            raise SourceUnavailable(reference, "file not found")
        if not local.is_file():
            raise SourceUnavailable(reference, "not a file")
        if not os.access(local, os.R_OK):
            raise SourceUnavailable(reference, "permission denied")
        try:
            return validate_video_path(str(local))
        except ValueError as exc:
            raise SourceUnavailable(reference, str(exc)) from exc

    async def _download(self, reference: str) -> str:
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        target: Optional[Path] = None
        try:
            async with self.client.stream("GET", reference) as response:
                response.raise_for_status()
                ext = _extension_for(urlparse(reference).path, response.headers.get("content-type"))
                target = self.scratch_dir / f"{SCRATCH_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{ext}"
                with open(target, "wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
        except (httpx.HTTPError, OSError) as exc:
            if target is not None and target.exists():
                target.unlink()
            logger.warning("Failed to download %s: %s", reference, exc)
            raise SourceUnavailable(reference, str(exc)) from exc

        if target.stat().st_size == 0:
            target.unlink()
            raise SourceUnavailable(reference, "downloaded file is empty")

        logger.debug("Downloaded %s to %s", reference, target)
        return str(target)

    def cleanup_scratch(self, max_age_s: float = 3600.0) -> int:
        """Delete scratch downloads older than ``max_age_s``. Returns the count."""
        if not self.scratch_dir.is_dir():
            return 0
        removed = 0
        cutoff = time.time() - max_age_s
        for entry in self.scratch_dir.iterdir():
            if not entry.name.startswith(SCRATCH_PREFIX) or not entry.is_file():
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed += 1
                    logger.debug("Deleted old scratch file: %s", entry.name)
            except OSError as exc:
                logger.warning("Could not remove scratch file %s: %s", entry, exc)
        return removed
