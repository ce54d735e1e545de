"""
Sanitization pipeline.

Runs analyze -> stage -> wipe -> inject -> verify -> cleanup for one file.

Failures before any mutation (bad path, unknown or unsupported type, staging
copy) raise and nothing is processed. Failures from the wipe stage onward are
recorded on the result and the remaining stages still run, so the caller can
see what was attempted and what verification found.
"""

import os
from typing import Optional

from loguru import logger

from app.models.schemas import WipeOptions, WipeResult
from app.utils.errors import InjectionError, MetadataToolError, VerificationError
from domains.metadata.analyzer import analyze
from domains.metadata.formats import get_handler
from domains.sanitize.fileops import (
    create_backup,
    safe_copy,
    secure_overwrite_file,
    unique_output_path,
    validate_path,
)
from domains.sanitize.inject import inject_profile
from domains.sanitize.verify import verify_file


def wipe_file(path: str, options: Optional[WipeOptions] = None) -> WipeResult:
    """
    Remove metadata from a file and optionally inject a profile.

    Args:
        path: File to sanitize
        options: Wipe behaviour; defaults to copy mode with profile injection

    Returns:
        Wipe result. ``success`` is derived from recorded errors and the
        verification outcome.

    Raises:
        InvalidPathError: If the path is not a usable file
        DetectionError: If the file type cannot be determined
        UnsupportedFormatError: If the file type is not supported
        AnalysisError: If pre-wipe analysis fails
        StagingError: If the output copy or backup cannot be created
    """
    options = options or WipeOptions()
    result = WipeResult(original_path=path)

    validate_path(path)

    report = analyze(path)
    result.sensitive_data = list(report.sensitive_fields)

    handler = get_handler(report.file_type.category)

    if options.create_copy:
        working_path = unique_output_path(path)
        safe_copy(path, working_path)
        result.output_path = working_path
        logger.debug(f"Staged copy: {working_path}")
    else:
        working_path = path
        result.backup_path = create_backup(path)
        logger.debug(f"Backup created: {result.backup_path}")

    try:
        handler.wipe_metadata(working_path)
    except MetadataToolError as e:
        result.wipe_errors.append(f"Metadata wipe failed: {e}")
        logger.error(f"Metadata wipe failed for {working_path}: {e}")

    if options.inject_profile and not result.wipe_errors:
        try:
            result.injection = inject_profile(working_path, options.custom_profile)
        except InjectionError as e:
            result.injection = e.result
            result.wipe_errors.append(f"Profile injection failed: {e}")
            logger.error(f"Profile injection failed for {working_path}: {e}")

    # a custom profile is checked with its placeholders resolved as written
    expected = options.custom_profile
    if expected is not None and result.injection is not None:
        expected = result.injection.profile
    try:
        result.verification = verify_file(working_path, expected)
    except VerificationError as e:
        result.wipe_errors.append(f"Verification failed: {e}")
        logger.error(f"Verification failed for {working_path}: {e}")

    if (
        not options.create_copy
        and not options.keep_backup
        and result.backup_path
        and not result.wipe_errors
    ):
        _discard_backup(result, options.secure_delete)

    if result.success:
        logger.success(f"Sanitized {path}")
    else:
        logger.warning(f"Sanitized {path} with issues: {result.wipe_errors}")

    return result


def _discard_backup(result: WipeResult, secure: bool) -> None:
    try:
        if secure:
            secure_overwrite_file(result.backup_path)
        else:
            os.remove(result.backup_path)
    except OSError as e:
        logger.warning(f"Failed to remove backup {result.backup_path}: {e}")
        return
    result.backup_path = None
