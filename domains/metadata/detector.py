"""
File type detection.

Classifies a file into one of the supported format categories, first by
magic numbers and content heuristics, then by extension.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

from app.models.schemas import FileType, FormatCategory
from app.utils.errors import DetectionError
from app.utils.helpers import get_file_extension


# (prefix, category, extension, mime type)
_SIGNATURES = [
    (b"\xff\xd8\xff", FormatCategory.IMAGE, "jpg", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", FormatCategory.IMAGE, "png", "image/png"),
    (b"GIF8", FormatCategory.IMAGE, "gif", "image/gif"),
    (b"II*\x00", FormatCategory.IMAGE, "tiff", "image/tiff"),
    (b"MM\x00*", FormatCategory.IMAGE, "tiff", "image/tiff"),
    (b"ID3", FormatCategory.AUDIO, "mp3", "audio/mpeg"),
    (b"\xff\xfb", FormatCategory.AUDIO, "mp3", "audio/mpeg"),
    (b"\xff\xf3", FormatCategory.AUDIO, "mp3", "audio/mpeg"),
    (b"\xff\xf2", FormatCategory.AUDIO, "mp3", "audio/mpeg"),
    (b"fLaC", FormatCategory.AUDIO, "flac", "audio/flac"),
    (b"OggS", FormatCategory.AUDIO, "ogg", "audio/ogg"),
]

_EXTENSIONS: Dict[str, Tuple[FormatCategory, str]] = {
    "jpg": (FormatCategory.IMAGE, "image/jpeg"),
    "jpeg": (FormatCategory.IMAGE, "image/jpeg"),
    "png": (FormatCategory.IMAGE, "image/png"),
    "gif": (FormatCategory.IMAGE, "image/gif"),
    "tiff": (FormatCategory.IMAGE, "image/tiff"),
    "svg": (FormatCategory.IMAGE, "image/svg+xml"),
    "mp3": (FormatCategory.AUDIO, "audio/mpeg"),
    "flac": (FormatCategory.AUDIO, "audio/flac"),
    "opus": (FormatCategory.AUDIO, "audio/opus"),
    "ogg": (FormatCategory.AUDIO, "audio/ogg"),
    "mp4": (FormatCategory.VIDEO, "video/mp4"),
    "avi": (FormatCategory.VIDEO, "video/x-msvideo"),
    "txt": (FormatCategory.TEXT, "text/plain"),
    "md": (FormatCategory.TEXT, "text/markdown"),
    "html": (FormatCategory.TEXT, "text/html"),
    "htm": (FormatCategory.TEXT, "text/html"),
}

SUPPORTED_EXTENSIONS = frozenset(_EXTENSIONS)

_MARKDOWN_PATTERNS = [
    "# ", "## ", "### ", "```", "*****", "-----",
    "- [ ]", "- [x]", "[](", "![](", "|---|",
]


def is_supported(extension: str) -> bool:
    """Check if a file extension (with or without dot) is supported."""
    return extension.lstrip(".").lower() in SUPPORTED_EXTENSIONS


def detect_file(path: str) -> FileType:
    """
    Detect the type of a file.

    Args:
        path: File path

    Returns:
        Detected file type

    Raises:
        DetectionError: If the file cannot be classified
    """
    try:
        detected = _detect_by_content(Path(path))
    except OSError as e:
        raise DetectionError(f"cannot read {path}: {e}") from e

    if detected is not None:
        return detected

    detected = _detect_by_extension(get_file_extension(Path(path)))
    if detected is not None:
        return detected

    raise DetectionError(f"unknown file type for {path}")


def _detect_by_content(path: Path) -> Optional[FileType]:
    with open(path, "rb") as handle:
        head = handle.read(1024)

    for prefix, category, extension, mime in _SIGNATURES:
        if head.startswith(prefix):
            return FileType(category=category, extension=extension, mime_type=mime)

    if head[4:8] == b"ftyp":
        return FileType(category=FormatCategory.VIDEO, extension="mp4", mime_type="video/mp4")

    if head.startswith(b"RIFF") and head[8:12] == b"AVI ":
        return FileType(category=FormatCategory.VIDEO, extension="avi", mime_type="video/x-msvideo")

    if b"<svg" in head.lower():
        return FileType(category=FormatCategory.IMAGE, extension="svg", mime_type="image/svg+xml")

    if _looks_like_text(head[:512]):
        return _classify_text(path)

    return None


def _looks_like_text(sample: bytes) -> bool:
    """Fewer than 5% NUL or control bytes."""
    if not sample:
        return False

    nulls = sample.count(0)
    controls = sum(1 for b in sample if 0 < b < 32 and b not in (9, 10, 13))
    threshold = len(sample) / 20
    return nulls < threshold and controls < threshold


def _classify_text(path: Path) -> FileType:
    text = path.read_text(encoding="utf-8", errors="replace").lower()

    if "<!doctype html>" in text or "<html" in text or ("<head" in text and "<body" in text):
        return FileType(category=FormatCategory.TEXT, extension="html", mime_type="text/html")

    if sum(1 for pattern in _MARKDOWN_PATTERNS if pattern in text) >= 3:
        return FileType(category=FormatCategory.TEXT, extension="md", mime_type="text/markdown")

    return FileType(category=FormatCategory.TEXT, extension="txt", mime_type="text/plain")


def _detect_by_extension(extension: str) -> Optional[FileType]:
    entry = _EXTENSIONS.get(extension)
    if entry is None:
        return None
    category, mime = entry
    return FileType(category=category, extension=extension, mime_type=mime)
