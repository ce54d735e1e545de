import subprocess
from typing import Dict

import pytest

from app.models.schemas import FormatCategory
from app.utils.config import get_settings
from app.utils.errors import MetadataToolError
from domains.metadata import exiftool, formats
from domains.metadata.formats import media
from domains.metadata.formats.base import FormatHandler


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a temporary home and keep config search out of the repo."""
    home = tmp_path / "scrubwatch-home"
    monkeypatch.setenv("SCRUBWATCH_HOME_DIR", str(home))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


class FakeExifTool:
    """In-memory stand-in for the exiftool command, keyed by path."""

    def __init__(self):
        self.tags: Dict[str, Dict[str, str]] = {}

    def extract(self, path):
        return {"SourceFile": path, **self.tags.get(path, {})}

    def remove_all(self, path):
        self.tags[path] = {}

    def write_tags(self, path, tags):
        self.tags.setdefault(path, {}).update(tags)


@pytest.fixture
def fake_exiftool(monkeypatch):
    """Replace exiftool calls and make integrity tools succeed."""
    fake = FakeExifTool()
    monkeypatch.setattr(exiftool, "extract", fake.extract)
    monkeypatch.setattr(exiftool, "remove_all", fake.remove_all)
    monkeypatch.setattr(exiftool, "write_tags", fake.write_tags)
    monkeypatch.setattr(
        media,
        "run_tool",
        lambda args, timeout=None: subprocess.CompletedProcess(args, 0, "", ""),
    )
    return fake


class FakeHandler(FormatHandler):
    """Format handler with scripted behaviour and call counters."""

    def __init__(self, metadata=None, intact=True, fail_wipe=False, fail_inject=False):
        self.default = dict(metadata or {})
        self.store: Dict[str, dict] = {}
        self.intact = intact
        self.fail_wipe = fail_wipe
        self.fail_inject = fail_inject
        self.extract_calls = 0
        self.integrity_calls = 0

    def extract_metadata(self, path):
        self.extract_calls += 1
        return dict(self.store.get(path, self.default))

    def wipe_metadata(self, path):
        if self.fail_wipe:
            raise MetadataToolError("wipe tool crashed")
        self.store[path] = {}

    def inject_metadata(self, path, profile):
        if self.fail_inject:
            raise MetadataToolError("inject tool crashed")
        self.store.setdefault(path, {}).update(profile)

    def verify_integrity(self, path):
        self.integrity_calls += 1
        return self.intact


def jpeg_bytes() -> bytes:
    """Bytes that detect as a JPEG."""
    return b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
def make_handler():
    """Factory for FakeHandler instances."""
    return FakeHandler


@pytest.fixture
def install_handler(monkeypatch):
    """Register a handler for a format category for the duration of a test."""

    def _install(handler, category=FormatCategory.TEXT):
        monkeypatch.setitem(formats._HANDLERS, category, handler)
        return handler

    return _install


@pytest.fixture
def jpeg_file(tmp_path):
    """Factory writing a file that detects as a JPEG."""

    def _make(name="photo.jpg"):
        path = tmp_path / name
        path.write_bytes(jpeg_bytes())
        return path

    return _make
