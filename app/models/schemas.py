"""
Pydantic models for scrubwatch.

Shared data models across the application.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


# =====================================================
# Detection & Analysis Models
# =====================================================

class FormatCategory(str, Enum):
    """Closed set of supported format categories."""
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    TEXT = "text"


class FileType(BaseModel):
    """Detected file type."""
    category: FormatCategory
    extension: str  # lowercase, no leading dot
    mime_type: str


class AnalysisReport(BaseModel):
    """Result of metadata analysis for one file."""
    path: str
    file_type: FileType
    metadata: Dict[str, Any] = Field(default_factory=dict)
    sensitive_fields: List[str] = Field(default_factory=list)


# =====================================================
# Sanitization Models
# =====================================================

class WipeOptions(BaseModel):
    """Behaviour of a wipe operation."""
    inject_profile: bool = True
    custom_profile: Optional[Dict[str, str]] = None  # None uses the loaded profile
    create_copy: bool = True
    keep_backup: bool = True
    secure_delete: bool = False


class VerificationResult(BaseModel):
    """Outcome of post-processing verification."""
    file_intact: bool = False
    metadata_removed: bool = False
    profile_injected: bool = False
    remaining_fields: Optional[List[str]] = None
    missing_fields: Optional[List[str]] = None
    validation_errors: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def success(self) -> bool:
        return self.file_intact and self.metadata_removed and self.profile_injected


class ProfileInjectionResult(BaseModel):
    """Outcome of profile injection."""
    success: bool = False
    fields_added: List[str] = Field(default_factory=list)
    fields_failed: List[str] = Field(default_factory=list)
    profile: Dict[str, str] = Field(default_factory=dict)


class WipeResult(BaseModel):
    """Outcome of a wipe operation on one file."""
    original_path: str
    output_path: Optional[str] = None
    backup_path: Optional[str] = None
    sensitive_data: List[str] = Field(default_factory=list)
    wipe_errors: List[str] = Field(default_factory=list)
    verification: Optional[VerificationResult] = None
    injection: Optional[ProfileInjectionResult] = None

    @computed_field
    @property
    def success(self) -> bool:
        return not self.wipe_errors and (
            self.verification is None or self.verification.success
        )


# =====================================================
# Daemon Models
# =====================================================

class DaemonConfig(BaseModel):
    """Watch configuration for the daemon."""
    watch_paths: List[str] = Field(default_factory=list)
    extensions: List[str] = Field(default_factory=list)


class DaemonStatus(BaseModel):
    """Current daemon state."""
    running: bool
    watched_dirs: List[str] = Field(default_factory=list)
    file_types: List[str] = Field(default_factory=list)
