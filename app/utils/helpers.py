"""
Helper utilities for scrubwatch.

Common functions used across domains.
"""

import hashlib
import secrets
from datetime import date
from pathlib import Path
from typing import Dict, Iterable


NOW_TOKEN = "{{now}}"
RANDOM_TOKEN = "{{random}}"
RANDOM_ID_PREFIX = "scrubwatch-"


def generate_random_id() -> str:
    """Generate a random identifier for profile values."""
    return f"{RANDOM_ID_PREFIX}{secrets.token_hex(8)}"


def today_iso() -> str:
    """Get current local date as YYYY-MM-DD."""
    return date.today().isoformat()


def hash_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """Generate SHA256 hash of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def get_file_extension(path: Path) -> str:
    """Get lowercase file extension without dot."""
    return path.suffix.lstrip('.').lower()


def should_exclude_path(path: str, exclude_patterns: Iterable[str]) -> bool:
    """
    Check if path should be excluded based on substring patterns.

    Args:
        path: Path to check
        exclude_patterns: Substrings that exclude a path when present

    Returns:
        True if should exclude, False otherwise
    """
    return any(pattern in path for pattern in exclude_patterns)


def format_value(value) -> str:
    """Flatten a metadata value into a display string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(s for s in (format_value(v) for v in value) if s)
    if isinstance(value, dict):
        return ", ".join(
            f"{k}:{s}" for k, s in ((k, format_value(v)) for k, v in value.items()) if s
        )
    return str(value)


def resolve_dynamic_fields(profile: Dict[str, str]) -> Dict[str, str]:
    """
    Replace placeholder values in a profile.

    ``{{now}}`` becomes today's date and ``{{random}}`` a fresh random
    identifier; all other values pass through unchanged.
    """
    resolved = {}
    for key, value in profile.items():
        if value == NOW_TOKEN:
            resolved[key] = today_iso()
        elif value == RANDOM_TOKEN:
            resolved[key] = generate_random_id()
        else:
            resolved[key] = value
    return resolved
