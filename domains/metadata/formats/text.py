"""
Text format handler.

Text metadata lives in the content itself: HTML ``<meta>`` tags and
``<title>``, Markdown YAML front matter, and ``Key: value`` header lines in
plain text. Injected plain-text metadata is written as a ``# File Metadata``
comment block at the top of the file.
"""

import html
import re
from pathlib import Path
from typing import Any, Dict

from app.utils.errors import MetadataToolError
from domains.metadata.formats.base import FormatHandler


_META_TAG = re.compile(
    r"""<meta\s+(?:name|property)=["']([^"']+)["']\s+content=["']([^"']+)["'][^>]*>""",
    re.IGNORECASE,
)
_TITLE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_HEAD = re.compile(r"<head[^>]*>", re.IGNORECASE)
_HTML = re.compile(r"<html[^>]*>", re.IGNORECASE)

_FRONT_MATTER = re.compile(r"^---\s*(.*?)\s*---\n*", re.DOTALL)
_KEY_VALUE = re.compile(r"^([^:\n]+):[ \t]*(.*)$", re.MULTILINE)

_COMMON_HEADER = re.compile(
    r"^(?:#[ \t]*)?(Author|Date|Created|Version|Copyright):[ \t]*([^\r\n]+)$",
    re.IGNORECASE | re.MULTILINE,
)
_COMMON_HEADER_LINE = re.compile(
    r"^(?:#[ \t]*)?(?:Author|Date|Created|Version|Copyright):[ \t]*[^\r\n]+\n?",
    re.IGNORECASE | re.MULTILINE,
)

_BLOCK_MARKER = "# File Metadata\n"
_BLOCK = re.compile(r"\A# File Metadata\n(?:#[^\n]*\n)*\n?")
_BLOCK_LINE = re.compile(r"^#[ \t]*([^:\n]+):[ \t]*(.*)$", re.MULTILINE)


class TextHandler(FormatHandler):
    """Handler for plain text, Markdown and HTML."""

    def extract_metadata(self, path: str) -> Dict[str, Any]:
        content = self._read(path)
        kind = _kind(path)
        metadata: Dict[str, Any] = {}

        if kind == "html":
            for name, value in _META_TAG.findall(content):
                metadata[name] = html.unescape(value)
            title = _TITLE.search(content)
            if title:
                metadata["title"] = title.group(1)
        elif kind == "md":
            match = _FRONT_MATTER.match(content)
            if match:
                for key, value in _KEY_VALUE.findall(match.group(1)):
                    metadata[key.strip()] = value.strip()
        elif content.startswith(_BLOCK_MARKER):
            block = _BLOCK.match(content).group(0)
            for key, value in _BLOCK_LINE.findall(block[len(_BLOCK_MARKER):]):
                metadata[key.strip()] = value.strip()

        for key, value in _COMMON_HEADER.findall(content):
            metadata.setdefault(key.lower(), value.strip())

        return metadata

    def wipe_metadata(self, path: str) -> None:
        content = self._read(path)
        kind = _kind(path)

        if kind == "html":
            content = _META_TAG.sub("", content)
            content = _TITLE.sub("<title></title>", content)
        elif kind == "md":
            content = _FRONT_MATTER.sub("", content, count=1)
        else:
            content = _BLOCK.sub("", content, count=1)
            content = _COMMON_HEADER_LINE.sub("", content)

        self._write(path, content)

    def inject_metadata(self, path: str, profile: Dict[str, str]) -> None:
        content = self._read(path)
        kind = _kind(path)

        if kind == "html":
            content = _inject_html(content, profile)
        elif kind == "md":
            content = _FRONT_MATTER.sub("", content, count=1)
            lines = "".join(f"{key}: {value}\n" for key, value in profile.items())
            content = f"---\n{lines}---\n\n{content}"
        else:
            lines = "".join(f"# {key}: {value}\n" for key, value in profile.items())
            content = f"{_BLOCK_MARKER}{lines}\n{content}"

        self._write(path, content)

    def verify_integrity(self, path: str) -> bool:
        try:
            Path(path).read_bytes()
        except OSError:
            return False
        return True

    @staticmethod
    def _read(path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise MetadataToolError(f"failed to read text file: {e}") from e

    @staticmethod
    def _write(path: str, content: str) -> None:
        try:
            Path(path).write_text(content, encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise MetadataToolError(f"failed to write text file: {e}") from e


def _kind(path: str) -> str:
    suffix = Path(path).suffix.lower()
    if suffix in (".html", ".htm"):
        return "html"
    if suffix == ".md":
        return "md"
    return "txt"


def _inject_html(content: str, profile: Dict[str, str]) -> str:
    tags = "".join(
        f'<meta name="{html.escape(key)}" content="{html.escape(value)}">'
        for key, value in profile.items()
    )

    if _HEAD.search(content):
        return _HEAD.sub(lambda m: m.group(0) + tags, content, count=1)

    if _HTML.search(content):
        return _HTML.sub(lambda m: f"{m.group(0)}<head>{tags}</head>", content, count=1)

    return f"<head>{tags}</head>{content}"
