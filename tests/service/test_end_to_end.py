"""
Service-level tests with real external tools.

These run the whole sanitization flow against real exiftool and ImageMagick
binaries, and the daemon against real inotify events. They are skipped when
the tools are not installed.
"""

import os
import shutil
import subprocess
import time

import pytest

from app.models.schemas import WipeOptions
from domains.metadata import exiftool
from domains.metadata.analyzer import analyze
from domains.sanitize.pipeline import wipe_file

pytestmark = pytest.mark.service

CONVERT = shutil.which("magick") or shutil.which("convert")

requires_tools = pytest.mark.skipif(
    not (shutil.which("exiftool") and shutil.which("identify") and CONVERT),
    reason="exiftool and ImageMagick are required",
)


@pytest.fixture
def tagged_jpeg(tmp_path):
    path = tmp_path / "photo.jpg"
    subprocess.run([CONVERT, "-size", "8x8", "xc:white", str(path)], check=True)
    subprocess.run(
        [
            "exiftool",
            "-overwrite_original",
            "-Artist=John Doe",
            "-Make=Canon",
            "-GPSLatitude=52.1",
            "-GPSLatitudeRef=N",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


@requires_tools
def test_jpeg_copy_mode(tagged_jpeg):
    report = analyze(str(tagged_jpeg))
    assert "Artist" in report.sensitive_fields
    assert "Make" in report.sensitive_fields

    result = wipe_file(str(tagged_jpeg))

    assert result.success, result.wipe_errors
    assert result.verification.remaining_fields == []
    written = exiftool.extract(result.output_path)
    assert written["Artist"] == "anonymous"
    assert "Make" not in written
    assert "GPSLatitude" not in written

    # original is untouched
    assert exiftool.extract(str(tagged_jpeg))["Artist"] == "John Doe"


@requires_tools
def test_jpeg_in_place_without_profile(tagged_jpeg):
    result = wipe_file(
        str(tagged_jpeg), WipeOptions(create_copy=False, inject_profile=False, keep_backup=False)
    )

    assert result.success, result.wipe_errors
    assert result.backup_path is None
    assert "Artist" not in exiftool.extract(str(tagged_jpeg))


def test_daemon_sanitizes_new_files(tmp_path):
    pytest.importorskip("watchdog")
    from domains.watch_daemon.daemon import Daemon

    inbox = tmp_path / "inbox"
    inbox.mkdir()
    config = tmp_path / "watch.toml"
    config.write_text(f'[watch]\npaths = ["{inbox}"]\n\n[filter]\nextensions = [".txt"]\n')

    daemon = Daemon(config)
    daemon.start()
    try:
        path = inbox / "notes.txt"
        path.write_text("Author: Jane Doe\nhello\n")
        # backdate so the file passes the minimum age check; the attribute
        # change is itself delivered as a modification event
        stamp = time.time() - 60
        os.utime(path, (stamp, stamp))

        output = inbox / "notes.scrubbed.txt"
        deadline = time.monotonic() + 10
        while time.monotonic() < deadline and not output.exists():
            time.sleep(0.05)
    finally:
        daemon.stop()

    assert output.exists()
    assert "Jane Doe" not in output.read_text()
    assert not (inbox / "notes.scrubbed.scrubbed.txt").exists()
