"""Image, audio and video handlers."""

from app.utils.config import get_settings
from app.utils.errors import MetadataToolError
from domains.metadata.exiftool import run_tool
from domains.metadata.formats.base import ExifToolHandler


def _tool_succeeds(args) -> bool:
    try:
        result = run_tool(args, timeout=get_settings().tool_timeout)
    except MetadataToolError:
        return False
    return result.returncode == 0


class ImageHandler(ExifToolHandler):
    """Images, validated with ImageMagick ``identify``."""

    label = "image"
    tag_map = {
        "author": "Artist",
        "software": "Software",
        "created": "CreateDate",
        "organization": "Copyright",
        "location": "Location",
        "comment": "UserComment",
    }
    date_tags = frozenset({"CreateDate"})

    def verify_integrity(self, path: str) -> bool:
        return _tool_succeeds([get_settings().identify_bin, path])


class AudioHandler(ExifToolHandler):
    """Audio, validated by decoding with ffmpeg."""

    label = "audio"
    tag_map = {
        "author": "Artist",
        "software": "EncodedBy",
        "created": "Date",
        "organization": "Publisher",
        "location": "Composer",  # no native location tag
        "comment": "Comment",
    }

    def verify_integrity(self, path: str) -> bool:
        return _tool_succeeds(
            [get_settings().ffmpeg_bin, "-v", "error", "-i", path, "-f", "null", "-"]
        )


class VideoHandler(AudioHandler):
    """Video, validated by decoding with ffmpeg."""

    label = "video"
    tag_map = {
        "author": "Artist",
        "software": "Software",
        "created": "CreateDate",
        "organization": "Copyright",
        "location": "Location",
        "comment": "Comment",
    }
    date_tags = frozenset({"CreateDate"})
