"""
exiftool wrapper for metadata operations.

All metadata reads and writes for binary formats go through the exiftool
command-line tool. System and ExifTool pseudo-tags (file name, timestamps,
permissions, tool version) are excluded from extraction since they describe
the filesystem entry rather than embedded metadata.
"""

import json
import subprocess
from typing import Any, Dict, List, Optional

from loguru import logger

from app.utils.config import get_settings
from app.utils.errors import MetadataToolError


SENSITIVE_METADATA_FIELDS = [
    "GPSLatitude", "GPSLongitude", "GPSPosition", "Location",
    "Author", "Creator", "Artist", "Owner", "Copyright",
    "Email", "CameraSerialNumber", "SerialNumber", "DeviceID",
    "OriginalFilename", "FileName", "UserName", "HostComputer",
    "Make", "Model", "Software", "CreateDate", "ModifyDate",
]

_EXCLUDED_GROUPS = ["--System:all", "--ExifTool:all"]


def is_sensitive_field(field_name: str) -> bool:
    """True if the field name matches, or contains, a known sensitive name."""
    lowered = field_name.lower()
    return any(sensitive.lower() in lowered for sensitive in SENSITIVE_METADATA_FIELDS)


def run_tool(args: List[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    """
    Run an external tool and capture its output.

    Raises:
        MetadataToolError: If the tool is missing or times out
    """
    try:
        return subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise MetadataToolError(f"{args[0]} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise MetadataToolError(f"{args[0]} timed out after {timeout}s") from e


def _run_exiftool(args: List[str]) -> subprocess.CompletedProcess:
    settings = get_settings()
    return run_tool([settings.exiftool_bin, *args], timeout=settings.tool_timeout)


def parse_exiftool_output(output: str) -> Dict[str, Any]:
    """
    Parse exiftool -json output.

    exiftool emits a list with one object per file; only the first is used.
    """
    output = output.strip()
    if not output:
        return {}

    try:
        results = json.loads(output)
    except json.JSONDecodeError as e:
        raise MetadataToolError(f"failed to parse exiftool JSON: {e}") from e

    if not results:
        return {}

    return results[0]


def extract(path: str) -> Dict[str, Any]:
    """Extract all embedded metadata from a file."""
    result = _run_exiftool(["-json", *_EXCLUDED_GROUPS, path])
    if result.returncode != 0:
        raise MetadataToolError(
            f"exiftool extraction failed for {path}: {result.stderr.strip()}"
        )
    return parse_exiftool_output(result.stdout)


def remove_all(path: str) -> None:
    """Strip all writable metadata from a file in place."""
    result = _run_exiftool(["-all=", "-overwrite_original", path])
    if result.returncode != 0:
        raise MetadataToolError(
            f"exiftool removal failed for {path}: {result.stderr.strip()}"
        )
    logger.debug(f"Metadata removed: {path}")


def write_tags(path: str, tags: Dict[str, str]) -> None:
    """Write native tags to a file in place with a single exiftool call."""
    if not tags:
        return

    args = [f"-{tag}={value}" for tag, value in tags.items()]
    result = _run_exiftool([*args, "-overwrite_original", path])
    if result.returncode != 0:
        raise MetadataToolError(
            f"exiftool write failed for {path}: {result.stderr.strip()}"
        )
    logger.debug(f"Wrote {len(tags)} tags to {path}")
