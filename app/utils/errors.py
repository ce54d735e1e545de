"""
Exception types for scrubwatch.

Abort-class failures raise one of these; recoverable pipeline failures are
recorded on the result instead.
"""


class ScrubwatchError(Exception):
    """Base class for all scrubwatch errors."""


class ConfigError(ScrubwatchError):
    """Configuration or profile could not be loaded."""


class InvalidPathError(ScrubwatchError):
    """Input path is missing, not a regular file, or not read/writable."""


class DetectionError(ScrubwatchError):
    """File type could not be determined."""


class UnsupportedFormatError(ScrubwatchError):
    """File type is outside the supported set."""


class AnalysisError(ScrubwatchError):
    """Metadata analysis failed."""


class MetadataToolError(ScrubwatchError):
    """An external metadata tool failed."""


class StagingError(ScrubwatchError):
    """Output copy or backup could not be created."""


class InjectionError(ScrubwatchError):
    """Profile injection failed. Carries the partial result when one exists."""

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class VerificationError(ScrubwatchError):
    """Verification could not be performed."""


class WatcherError(ScrubwatchError):
    """Directory watcher could not be created or started."""


class DaemonError(ScrubwatchError):
    """Daemon lifecycle failure."""
