"""Plain-text reports for analysis and sanitization results."""

from typing import List

from app.models.schemas import (
    AnalysisReport,
    ProfileInjectionResult,
    VerificationResult,
    WipeResult,
)
from app.utils.helpers import format_value


def format_analysis_report(report: AnalysisReport) -> str:
    """Human-readable metadata listing with sensitive fields marked '!'."""
    lines = [
        f"File: {report.path}",
        f"Type: {report.file_type.category.value} ({report.file_type.mime_type})",
        "",
    ]

    if not report.metadata:
        lines.append("No metadata detected")
        return "\n".join(lines) + "\n"

    lines.append("Detected Metadata:")
    sensitive = set(report.sensitive_fields)

    for key in sorted(report.metadata):
        if key.startswith("_") or key == "SourceFile":
            continue
        value = format_value(report.metadata[key])
        if not value:
            continue
        marker = "!" if key in sensitive else "-"
        lines.append(f" {marker} {key}: {value}")

    lines.append("")
    if sensitive:
        lines.append(f"[!] Found {len(sensitive)} potentially sensitive metadata fields.")
    else:
        lines.append("No sensitive metadata detected")

    return "\n".join(lines) + "\n"


def format_verification_result(result: VerificationResult) -> str:
    if result.success:
        return "File successfully processed and verified\n"

    lines: List[str] = []
    if not result.file_intact:
        lines.append("[!] File integrity check failed. File may be corrupted.")
    if result.remaining_fields:
        lines.append(
            f"[!] Found {len(result.remaining_fields)} remaining sensitive fields that were not removed."
        )
        lines.extend(f"  - {field}" for field in result.remaining_fields)
    if result.missing_fields:
        lines.append(f"[!] Profile injection incomplete ({len(result.missing_fields)} fields missing).")
        lines.extend(f"  - {field}" for field in result.missing_fields)
    return "\n".join(lines) + "\n"


def format_injection_result(result: ProfileInjectionResult) -> str:
    if result.success:
        return f"Profile successfully injected ({len(result.fields_added)} fields)\n"

    lines: List[str] = []
    if result.fields_added:
        lines.append(f"Added {len(result.fields_added)} profile fields:")
        lines.extend(f"  - {f}: {result.profile.get(f, '')}" for f in result.fields_added)
    if result.fields_failed:
        lines.append(f"[!] Failed to add {len(result.fields_failed)} profile fields:")
        lines.extend(f"  - {f}: {result.profile.get(f, '')}" for f in result.fields_failed)
    return "\n".join(lines) + "\n"


def format_wipe_result(result: WipeResult) -> str:
    """Summary of a wipe, including verification and injection details on failure."""
    lines: List[str] = []

    if result.sensitive_data:
        lines.append(f"Found {len(result.sensitive_data)} sensitive metadata fields")
    else:
        lines.append("No sensitive metadata detected")

    if result.success:
        lines.append("[+] File successfully processed")
        if result.output_path and result.output_path != result.original_path:
            lines.append(f"Output saved to: {result.output_path}")
        if result.backup_path:
            lines.append(f"Backup created at: {result.backup_path}")
    else:
        lines.append("[!] Processing completed with issues:")
        lines.extend(f"  - {error}" for error in result.wipe_errors)
        if result.backup_path:
            lines.append(f"Original preserved at: {result.backup_path}")

    text = "\n".join(lines) + "\n"

    if result.verification is not None and not result.verification.success:
        text += format_verification_result(result.verification)

    if result.injection is not None and not result.injection.success:
        text += format_injection_result(result.injection)

    return text
