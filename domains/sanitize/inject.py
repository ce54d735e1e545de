"""Profile injection into sanitized files."""

from typing import Dict, Optional

from loguru import logger

from app.models.schemas import ProfileInjectionResult
from app.utils.config import resolve_profile
from app.utils.errors import InjectionError, MetadataToolError, ScrubwatchError
from app.utils.helpers import resolve_dynamic_fields
from domains.metadata.detector import detect_file
from domains.metadata.formats import get_handler
from domains.sanitize.verify import verify_file


def inject_profile(
    path: str, custom_profile: Optional[Dict[str, str]] = None
) -> ProfileInjectionResult:
    """
    Write an anonymization profile into a file.

    Placeholders are resolved here rather than at load time, so two
    injections from the same stored profile get different ``{{now}}`` and
    ``{{random}}`` values.

    Args:
        path: File to modify in place
        custom_profile: Profile override; the configured profile (or the
            built-in default) is used when None

    Returns:
        Injection result with per-field outcome

    Raises:
        InjectionError: If detection, the write, or verification fails. The
            partial result is attached as ``error.result``.
    """
    result = ProfileInjectionResult()

    profile = custom_profile if custom_profile is not None else resolve_profile()
    profile = resolve_dynamic_fields(profile)
    result.profile = profile

    try:
        file_type = detect_file(path)
    except ScrubwatchError as e:
        raise InjectionError(f"file type detection failed: {e}", result) from e

    handler = get_handler(file_type.category)

    try:
        handler.inject_metadata(path, profile)
    except MetadataToolError as e:
        raise InjectionError(f"metadata injection failed: {e}", result) from e

    try:
        verification = verify_file(path, profile)
    except ScrubwatchError as e:
        raise InjectionError(f"failed to verify injection: {e}", result) from e

    # missing_fields is unset when the integrity check short-circuits
    if verification.missing_fields is None:
        missing = set(profile)
    else:
        missing = set(verification.missing_fields)

    for field in profile:
        if field in missing:
            result.fields_failed.append(field)
        else:
            result.fields_added.append(field)

    result.success = verification.profile_injected

    if result.fields_failed:
        logger.warning(f"Profile fields not found after injection in {path}: {result.fields_failed}")
    else:
        logger.debug(f"Injected {len(result.fields_added)} profile fields into {path}")

    return result
