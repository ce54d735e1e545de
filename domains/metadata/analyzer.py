"""
Metadata analysis.

Extracts a file's metadata through its format handler and flags fields that
are likely to leak identity. Fields whose value equals the configured
anonymization profile are not flagged, so the tool's own signature is never
reported as sensitive.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from app.models.schemas import AnalysisReport
from app.utils.config import resolve_profile
from app.utils.errors import (
    AnalysisError,
    DetectionError,
    InvalidPathError,
    MetadataToolError,
    UnsupportedFormatError,
)
from app.utils.helpers import (
    NOW_TOKEN,
    RANDOM_ID_PREFIX,
    RANDOM_TOKEN,
    format_value,
    today_iso,
)
from domains.metadata.detector import detect_file, is_supported
from domains.metadata.exiftool import is_sensitive_field
from domains.metadata.formats import get_handler
from domains.sanitize.fileops import validate_path


# native key (lowercase) -> generic profile key
PROFILE_KEY_MAP = {
    "artist": "author",
    "author": "author",
    "creator": "author",
    "software": "software",
    "createdate": "created",
    "datecreated": "created",
    "created": "created",
    "copyright": "organization",
    "organization": "organization",
    "location": "location",
    "usercomment": "comment",
    "comment": "comment",
}


def analyze(path: str) -> AnalysisReport:
    """
    Analyze a file's metadata.

    Args:
        path: File path

    Returns:
        Analysis report with metadata and sensitive field names

    Raises:
        InvalidPathError: If the path is not a usable file
        DetectionError: If the file type cannot be determined
        UnsupportedFormatError: If the type is not supported
        AnalysisError: If metadata extraction fails
    """
    validate_path(path)

    file_type = detect_file(path)

    if not is_supported(file_type.extension):
        raise UnsupportedFormatError(f"unsupported file type: {file_type.extension}")

    handler = get_handler(file_type.category)

    try:
        metadata = handler.extract_metadata(path)
    except MetadataToolError as e:
        raise AnalysisError(f"metadata extraction failed: {e}") from e

    sensitive = identify_sensitive_fields(metadata)
    logger.debug(f"Analyzed {path}: {len(metadata)} fields, {len(sensitive)} sensitive")

    return AnalysisReport(
        path=path,
        file_type=file_type,
        metadata=metadata,
        sensitive_fields=sensitive,
    )


def analyze_files(paths: List[str]) -> List[AnalysisReport]:
    """Analyze several files, skipping any that cannot be analyzed."""
    reports = []
    for path in paths:
        try:
            reports.append(analyze(path))
        except (InvalidPathError, DetectionError, UnsupportedFormatError, AnalysisError) as e:
            logger.warning(f"Skipping {path}: {e}")
    return reports


def identify_sensitive_fields(
    metadata: Dict[str, Any], profile: Optional[Dict[str, str]] = None
) -> List[str]:
    """Names of metadata fields that may contain sensitive information."""
    profile = profile if profile is not None else resolve_profile()
    sensitive = []

    for key, value in metadata.items():
        if key.startswith("_"):
            continue

        if is_profile_metadata(key, format_value(value), profile):
            continue

        if is_sensitive_field(key):
            sensitive.append(key)

    return sensitive


def is_profile_metadata(key: str, value: str, profile: Dict[str, str]) -> bool:
    """True if ``key``/``value`` is a field written from the profile."""
    profile_key = PROFILE_KEY_MAP.get(key.lower())
    if profile_key is None or profile_key not in profile:
        return False

    expected = profile[profile_key]
    if expected == RANDOM_TOKEN:
        return value.startswith(RANDOM_ID_PREFIX)
    if expected == NOW_TOKEN:
        expected = today_iso()

    if profile_key == "created":
        normalized_value = value.replace(":", "-")
        normalized_expected = expected.replace(":", "-")
        return normalized_value.startswith(normalized_expected)

    return value.lower() == expected.lower()
