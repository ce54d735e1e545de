"""
Daemon log file.

A loguru file sink that only receives records bound to this logger, so the
daemon's activity log stays separate from console output. Closing is
idempotent and logging after close is a no-op, which keeps late messages
from worker threads harmless.
"""

import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger


LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}"


class DaemonLogger:
    """Leveled logger writing to a single daemon log file."""

    def __init__(self, path: Path, level: str = "INFO"):
        """
        Open the log file.

        Args:
            path: Log file path; parent directories are created
            level: Minimum level written (DEBUG, INFO, WARNING, ERROR)
        """
        self.path = Path(path)
        self.level = level.upper()
        self._key = uuid.uuid4().hex
        self._lock = threading.Lock()
        self._sink_id: Optional[int] = None
        self._logger = logger.bind(daemon_log=self._key)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._open()

    def _open(self):
        self._sink_id = logger.add(
            str(self.path),
            level=self.level,
            format=LOG_FORMAT,
            filter=lambda record: record["extra"].get("daemon_log") == self._key,
            encoding="utf-8",
        )

    @property
    def closed(self) -> bool:
        return self._sink_id is None

    def log(self, level: str, message: str):
        """Write a message at ``level``. Ignored once closed."""
        if self._sink_id is None:
            return
        self._logger.log(level.upper(), message)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def success(self, message: str):
        self.log("SUCCESS", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def close(self):
        """Close the log file. Safe to call more than once."""
        with self._lock:
            if self._sink_id is None:
                return
            sink_id, self._sink_id = self._sink_id, None
            logger.remove(sink_id)

    def rotate(self) -> Path:
        """
        Archive the current log as ``<path>.<YYYYmmdd-HHMMSS>`` and reopen.

        Returns:
            Path of the archived log
        """
        with self._lock:
            if self._sink_id is not None:
                logger.remove(self._sink_id)
                self._sink_id = None

            archived = self.path.with_name(
                f"{self.path.name}.{datetime.now().strftime('%Y%m%d-%H%M%S')}"
            )
            if self.path.exists():
                self.path.rename(archived)

            self._open()

        self.info(f"Log rotated, previous log saved as {archived}")
        return archived
