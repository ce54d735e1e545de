"""
File staging operations.

Verified copies, backups, output naming, path validation and best-effort
secure deletion.
"""

import os
import re
import secrets
import shutil
from pathlib import Path

from loguru import logger

from app.utils.errors import InvalidPathError, StagingError
from app.utils.helpers import hash_file


OUTPUT_MARKER = ".scrubbed"
BACKUP_SUFFIX = ".bak"

_OVERWRITE_CHUNK = 1024 * 1024

_OUTPUT_STEM = re.compile(re.escape(OUTPUT_MARKER) + r"(?:-\d+)?$")
_BACKUP_NAME = re.compile(r"^(.+)" + re.escape(BACKUP_SUFFIX) + r"(?:-\d+)?$")


def validate_path(path: str) -> None:
    """
    Check that ``path`` is an existing, readable and writable regular file.

    Raises:
        InvalidPathError: If any check fails
    """
    try:
        info = os.stat(path)
    except OSError as e:
        raise InvalidPathError(f"path validation failed: {e}") from e

    if os.path.isdir(path):
        raise InvalidPathError(f"path is a directory, expected a file: {path}")

    if not os.path.isfile(path):
        raise InvalidPathError(f"not a regular file: {path} (mode {info.st_mode:o})")

    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise InvalidPathError(f"file is not readable: {e}") from e

    try:
        fd = os.open(path, os.O_WRONLY)
    except OSError as e:
        raise InvalidPathError(f"file is not writable: {e}") from e
    os.close(fd)


def safe_copy(src: str, dst: str) -> None:
    """
    Copy ``src`` to ``dst`` and confirm both have the same SHA-256.

    Raises:
        StagingError: If the copy fails or the hashes differ
    """
    try:
        Path(dst).parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dst)
        with open(dst, "rb+") as handle:
            os.fsync(handle.fileno())
        src_hash = hash_file(Path(src))
        dst_hash = hash_file(Path(dst))
    except OSError as e:
        raise StagingError(f"failed to copy {src} to {dst}: {e}") from e

    if src_hash != dst_hash:
        raise StagingError("integrity verification failed: file checksums don't match")


def generate_output_path(path: str) -> str:
    """Sibling path with the output marker before the extension."""
    base, ext = os.path.splitext(path)
    return f"{base}{OUTPUT_MARKER}{ext}"


def unique_output_path(path: str) -> str:
    """
    Output path that does not collide with an existing file.

    ``photo.jpg`` maps to ``photo.scrubbed.jpg``, then ``photo.scrubbed-1.jpg``
    and so on if earlier outputs exist.
    """
    candidate = generate_output_path(path)
    base, ext = os.path.splitext(path)
    counter = 1
    while os.path.exists(candidate):
        candidate = f"{base}{OUTPUT_MARKER}-{counter}{ext}"
        counter += 1
    return candidate


def is_output_path(path: str) -> bool:
    """True if ``path`` looks like a file produced in copy mode."""
    stem = os.path.splitext(os.path.basename(path))[0]
    return _OUTPUT_STEM.search(stem) is not None


def unique_backup_path(path: str) -> str:
    """``<path>.bak``, or ``<path>.bak-1``, ``<path>.bak-2``, ... if taken."""
    candidate = path + BACKUP_SUFFIX
    counter = 1
    while os.path.exists(candidate):
        candidate = f"{path}{BACKUP_SUFFIX}-{counter}"
        counter += 1
    return candidate


def create_backup(path: str) -> str:
    """
    Back up the current content of ``path`` via a verified copy.

    Earlier backups are never overwritten; a new one gets the next free name.
    """
    backup_path = unique_backup_path(path)

    try:
        safe_copy(path, backup_path)
    except StagingError as e:
        raise StagingError(f"failed to create backup: {e}") from e

    return backup_path


def restore_backup(backup_path: str) -> str:
    """Copy a backup file back over its original. Returns the original path."""
    match = _BACKUP_NAME.match(backup_path)
    if match is None:
        raise StagingError(f"invalid backup path: {backup_path}")

    original_path = match.group(1)
    safe_copy(backup_path, original_path)
    return original_path


def secure_overwrite_file(path: str) -> None:
    """
    Overwrite a file with zeros, ones and random bytes, then delete it.

    Best effort only: filesystems with copy-on-write, journaling or wear
    levelling may retain old blocks.
    """
    size = os.path.getsize(path)

    with open(path, "r+b") as handle:
        for pattern in (b"\x00", b"\xff", None):
            handle.seek(0)
            remaining = size
            while remaining > 0:
                chunk = min(remaining, _OVERWRITE_CHUNK)
                handle.write(secrets.token_bytes(chunk) if pattern is None else pattern * chunk)
                remaining -= chunk
            handle.flush()
            os.fsync(handle.fileno())

    os.remove(path)
    logger.debug(f"Securely removed {path}")
