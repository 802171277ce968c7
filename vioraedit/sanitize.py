"""Path validation and filter-expression escaping for vioraedit.

Provides validation for file paths handed to ffmpeg and escaping for
user-supplied strings embedded in ffmpeg filtergraph expressions.

Filtergraph strings are parsed twice by ffmpeg: once when the graph is
split into filters (``,`` ``;`` ``[`` ``]`` are delimiters) and once when
each filter's option string is split (``:`` is the delimiter). Both levels
honour ``\\`` and ``'``, so a literal value has to be escaped for the
option level first and for the graph level second.
"""

import os
from pathlib import Path

# Common video, image, and audio extensions
ALLOWED_EXTENSIONS = {
    # Video
    '.mp4', '.mkv', '.avi', '.mov', '.webm', '.flv', '.wmv', '.m4v', '.mpg', '.mpeg', '.3gp', '.ts',
    '.m2ts', '.mts', '.vob', '.ogv',
    # Image (stickers)
    '.png', '.jpg', '.jpeg', '.webp', '.bmp', '.gif', '.tiff',
    # Audio
    '.mp3', '.wav', '.aac', '.flac', '.m4a', '.ogg', '.wma', '.opus'
}

# Critical system directories that should be protected from write operations
UNSAFE_DIRECTORIES = {
    "/bin", "/boot", "/dev", "/etc", "/lib", "/lib64", "/proc",
    "/run", "/sbin", "/sys", "/usr",
}

_OPTION_SPECIALS = ("\\", "'", ":")
_GRAPH_SPECIALS = ("\\", "'", "[", "]", ",", ";")


def _check_unsafe_path(path: Path) -> None:
    """Check if the path targets a sensitive system directory.

    Raises:
        ValueError: If path is unsafe.
    """
    path_str = str(path)
    for unsafe in UNSAFE_DIRECTORIES:
        if path_str == unsafe or path_str.startswith(f"{unsafe}{os.sep}"):
            raise ValueError(f"Path targets unsafe system directory: {path}")

    if os.name == 'nt':
        lower_path = path_str.lower()
        if (lower_path.startswith("c:\\windows") or
                lower_path.startswith("c:\\program files")):
            raise ValueError(f"Path targets unsafe system directory: {path}")


def validate_path(path: str, allowed_extensions: set[str], must_exist: bool = True) -> str:
    """Generic path validator for file inputs.

    Args:
        path: The path string to validate.
        allowed_extensions: Set of allowed file extensions (e.g. {'.mp4', '.mov'}).
        must_exist: If True, raises ValueError when the file doesn't exist.

    Returns:
        The resolved, absolute path string.

    Raises:
        ValueError: If path is invalid, contains traversal, has invalid extension,
                    or file doesn't exist (when must_exist=True).
    """
    if not path or not path.strip():
        raise ValueError("Path cannot be empty")

    if ".." in Path(path).parts:
        raise ValueError(
            f"Path contains directory traversal (..): {path}"
        )

    resolved = Path(path).resolve()

    if resolved.suffix.lower() not in allowed_extensions:
        raise ValueError(
            f"Invalid file extension: {resolved.suffix}. "
            f"Allowed: {sorted(allowed_extensions)}"
        )

    if must_exist:
        if not resolved.exists():
            raise ValueError(f"File not found: {resolved}")
        if not resolved.is_file():
            raise ValueError(f"Path is not a file: {resolved}")

    return str(resolved)


def validate_video_path(path: str, must_exist: bool = True) -> str:
    """Validate and resolve a media file path."""
    return validate_path(path, ALLOWED_EXTENSIONS, must_exist=must_exist)


def validate_output_path(path: str) -> str:
    """Validate an output file path.

    The file does not need to exist, but it must carry a known media
    extension and must not live under a protected system directory.

    Raises:
        ValueError: If the path is empty, contains traversal sequences,
                    has no media extension, or targets a protected directory.
    """
    if not path or not path.strip():
        raise ValueError("Output path cannot be empty")

    resolved = Path(path).resolve()
    if not resolved.suffix:
        raise ValueError(
            f"Output file path must have an extension: {path}"
        )
    _check_unsafe_path(resolved)

    return validate_path(path, ALLOWED_EXTENSIONS, must_exist=False)


def _backslash_escape(text: str, specials: tuple[str, ...]) -> str:
    # Backslash is always first in ``specials`` so added escapes are not doubled.
    for ch in specials:
        if ch in text:
            text = text.replace(ch, "\\" + ch)
    return text


def escape_filter_option(text: str) -> str:
    """Escape a value for a filter's option string (``key=value:key=value``)."""
    if not text:
        return text
    return _backslash_escape(text, _OPTION_SPECIALS)


def escape_filtergraph(text: str) -> str:
    """Escape a filter description for the filtergraph parser."""
    if not text:
        return text
    return _backslash_escape(text, _GRAPH_SPECIALS)


def sanitize_text_param(text: str) -> str:
    """Escape a user-supplied string for use as a filter option value.

    Colons, single quotes, backslashes, commas, semicolons and brackets all
    come out as literal characters once ffmpeg has parsed the graph, so the
    value cannot end its option, its filter, or its chain early.

    Args:
        text: The raw text string.

    Returns:
        Escaped text safe for embedding in a filtergraph.
    """
    return escape_filtergraph(escape_filter_option(text))
