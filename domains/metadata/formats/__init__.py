"""
Format Handlers

One handler per format category:
- media.py - Image, audio and video via exiftool, ffmpeg and identify
- text.py - Plain text, Markdown and HTML
"""

from typing import Dict

from app.models.schemas import FormatCategory
from domains.metadata.formats.base import ExifToolHandler, FormatHandler
from domains.metadata.formats.media import AudioHandler, ImageHandler, VideoHandler
from domains.metadata.formats.text import TextHandler


_HANDLERS: Dict[FormatCategory, FormatHandler] = {
    FormatCategory.IMAGE: ImageHandler(),
    FormatCategory.AUDIO: AudioHandler(),
    FormatCategory.VIDEO: VideoHandler(),
    FormatCategory.TEXT: TextHandler(),
}


def get_handler(category: FormatCategory) -> FormatHandler:
    """Handler for a format category."""
    return _HANDLERS[FormatCategory(category)]


__all__ = [
    "AudioHandler",
    "ExifToolHandler",
    "FormatHandler",
    "ImageHandler",
    "TextHandler",
    "VideoHandler",
    "get_handler",
]
