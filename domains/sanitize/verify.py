"""
Post-processing verification.

Confirms a processed file is still valid, carries no sensitive metadata and,
when a profile is expected, contains every profile field.
"""

import os
from typing import Any, Dict, List, Optional

from loguru import logger

from app.models.schemas import VerificationResult
from app.utils.errors import ScrubwatchError, VerificationError
from app.utils.helpers import format_value
from domains.metadata.analyzer import analyze, identify_sensitive_fields
from domains.metadata.detector import detect_file
from domains.metadata.formats import get_handler


AUTHOR_ALIASES = frozenset({"author", "creator", "artist", "by"})
LOCATION_ALIASES = frozenset({"location", "place", "where"})
DATE_ALIASES = frozenset({"date", "created", "createdate", "when"})

_ALIAS_CLASSES = (AUTHOR_ALIASES, LOCATION_ALIASES, DATE_ALIASES)


def keys_match(key1: str, key2: str) -> bool:
    """True if two metadata keys are equal ignoring case, or aliases."""
    a, b = key1.lower(), key2.lower()
    if a == b:
        return True
    return any(a in aliases and b in aliases for aliases in _ALIAS_CLASSES)


def values_match(profile_key: str, actual: str, expected: str) -> bool:
    """
    Compare a metadata value to an expected profile value.

    Dates are compared with ':' normalised to '-' and accept a prefix match,
    so ``2024-01-01`` matches ``2024:01:01 00:00:00``.
    """
    if profile_key.lower() in DATE_ALIASES:
        normalized_actual = actual.replace(":", "-")
        normalized_expected = expected.replace(":", "-")
        return normalized_actual.startswith(normalized_expected)

    return actual.lower() == expected.lower()


def verify_profile_fields(metadata: Dict[str, Any], profile: Dict[str, str]) -> List[str]:
    """Profile keys with a non-empty value that are not present in ``metadata``."""
    missing = []

    for key, expected in profile.items():
        if not expected:
            continue

        found = any(
            keys_match(meta_key, key) and values_match(key, format_value(meta_value), expected)
            for meta_key, meta_value in metadata.items()
        )

        if not found:
            missing.append(key)

    return missing


def verify_file(path: str, expected_profile: Optional[Dict[str, str]] = None) -> VerificationResult:
    """
    Verify a processed file.

    Args:
        path: File to verify
        expected_profile: Profile fields that must be present, or None to
            skip the profile check

    Returns:
        Verification result. When the integrity check fails, metadata is not
        re-analyzed and remaining/missing fields are left unset.

    Raises:
        VerificationError: If the file is gone or cannot be analyzed
    """
    result = VerificationResult()

    if not os.path.exists(path):
        raise VerificationError(f"file not found: {path}")

    try:
        file_type = detect_file(path)
    except ScrubwatchError as e:
        raise VerificationError(f"file type detection failed: {e}") from e

    handler = get_handler(file_type.category)

    result.file_intact = handler.verify_integrity(path)
    if not result.file_intact:
        result.validation_errors.append("File integrity check failed")
        logger.warning(f"Integrity check failed: {path}")
        return result

    try:
        report = analyze(path)
    except ScrubwatchError as e:
        raise VerificationError(f"failed to verify metadata: {e}") from e

    if expected_profile is None:
        result.remaining_fields = list(report.sensitive_fields)
    else:
        # values written from the expected profile are not leftovers
        result.remaining_fields = identify_sensitive_fields(report.metadata, expected_profile)
    result.metadata_removed = not result.remaining_fields

    if not result.metadata_removed:
        result.validation_errors.append(
            f"Found {len(result.remaining_fields)} sensitive fields that should have been removed"
        )

    if expected_profile is not None:
        result.missing_fields = verify_profile_fields(report.metadata, expected_profile)
        result.profile_injected = not result.missing_fields

        if not result.profile_injected:
            result.validation_errors.append(
                f"Profile injection incomplete ({len(result.missing_fields)} fields missing)"
            )
    else:
        result.missing_fields = []
        result.profile_injected = True

    return result
