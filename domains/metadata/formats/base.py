"""Format handler interface and the shared exiftool-backed implementation."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Dict

from app.utils.errors import MetadataToolError
from domains.metadata import exiftool


class FormatHandler(ABC):
    """Format-specific metadata operations."""

    @abstractmethod
    def extract_metadata(self, path: str) -> Dict[str, Any]:
        """Extract all metadata."""

    @abstractmethod
    def wipe_metadata(self, path: str) -> None:
        """Remove all metadata."""

    @abstractmethod
    def inject_metadata(self, path: str, profile: Dict[str, str]) -> None:
        """Write profile metadata using format-native field names."""

    @abstractmethod
    def verify_integrity(self, path: str) -> bool:
        """Check the file is still valid. Never raises."""


_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class ExifToolHandler(FormatHandler):
    """
    Handler for binary formats whose metadata is managed by exiftool.

    Subclasses provide ``tag_map`` (generic profile key -> native tag) and an
    integrity check. Generic keys missing from ``tag_map`` are skipped.
    """

    label = "file"
    tag_map: Dict[str, str] = {}
    date_tags: frozenset = frozenset()

    def extract_metadata(self, path: str) -> Dict[str, Any]:
        try:
            return exiftool.extract(path)
        except MetadataToolError as e:
            raise MetadataToolError(f"failed to extract {self.label} metadata: {e}") from e

    def wipe_metadata(self, path: str) -> None:
        try:
            exiftool.remove_all(path)
        except MetadataToolError as e:
            raise MetadataToolError(f"failed to wipe {self.label} metadata: {e}") from e

    def inject_metadata(self, path: str, profile: Dict[str, str]) -> None:
        tags = {}
        for key, value in profile.items():
            tag = self.tag_map.get(key.lower())
            if not tag:
                continue
            tags[tag] = self._native_value(tag, value)

        try:
            exiftool.write_tags(path, tags)
        except MetadataToolError as e:
            raise MetadataToolError(f"failed to inject {self.label} metadata: {e}") from e

    def _native_value(self, tag: str, value: str) -> str:
        # exiftool date tags require "YYYY:mm:dd HH:MM:SS"
        if tag in self.date_tags:
            match = _ISO_DATE.match(value)
            if match:
                return f"{match.group(1)}:{match.group(2)}:{match.group(3)} 00:00:00"
        return value
