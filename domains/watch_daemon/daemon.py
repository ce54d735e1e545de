#!/usr/bin/env python3
"""
Sanitization daemon.

Watches the configured directories and sanitizes files that carry sensitive
metadata, writing a cleaned copy next to each original.
"""

import signal
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from app.models.schemas import DaemonConfig, DaemonStatus, WipeOptions
from app.utils.config import (
    Settings,
    default_watch_config,
    get_settings,
    load_watch_config,
)
from app.utils.errors import ConfigError, DaemonError, ScrubwatchError, WatcherError
from domains.metadata.analyzer import analyze
from domains.sanitize.fileops import is_output_path
from domains.sanitize.pipeline import wipe_file
from domains.watch_daemon.logger import DaemonLogger
from domains.watch_daemon.watcher import WatchOptions, Watcher


LOG_FILE_NAME = "scrubwatch-daemon.log"
EXCLUDE_DIRS = (".git", "node_modules", ".venv")
MIN_FILE_AGE = 2.0  # seconds


def daemon_wipe_options() -> WipeOptions:
    """Fixed policy for files processed by the daemon."""
    return WipeOptions(
        inject_profile=True,
        custom_profile=None,
        create_copy=True,
        keep_backup=True,
        secure_delete=False,
    )


class Daemon:
    """Background service that sanitizes files in watched directories."""

    def __init__(self, config_path: Optional[Path] = None, settings: Optional[Settings] = None):
        """
        Initialize the daemon.

        Args:
            config_path: Explicit watch config file; searched for when omitted
            settings: Application settings

        Raises:
            DaemonError: If the log directory or log file cannot be created
        """
        self.settings = settings or get_settings()

        try:
            self.config: DaemonConfig = load_watch_config(config_path, self.settings)
        except ConfigError as e:
            logger.warning(f"Using default watch configuration: {e}")
            self.config = default_watch_config()

        log_dir = self.settings.get_log_dir()
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            self.logger = DaemonLogger(log_dir / LOG_FILE_NAME, self.settings.daemon_log_level)
        except OSError as e:
            raise DaemonError(f"failed to initialize logger: {e}") from e

        self.watcher: Optional[Watcher] = None
        self.running = False

    @property
    def is_running(self) -> bool:
        return self.running

    def process_file(self, path: str):
        """
        Sanitize one file if it carries sensitive metadata.

        Raises:
            ScrubwatchError: If analysis fails or the file cannot be staged
        """
        if is_output_path(path):
            self.logger.debug(f"Skipping sanitized output {path}")
            return

        try:
            report = analyze(path)
        except ScrubwatchError as e:
            self.logger.warning(f"Analysis failed for {path}: {e}")
            raise

        if not report.sensitive_fields:
            self.logger.debug(f"No sensitive metadata in {path}, skipping")
            return

        self.logger.info(f"Found {len(report.sensitive_fields)} sensitive fields in {path}, wiping")

        try:
            result = wipe_file(path, daemon_wipe_options())
        except ScrubwatchError as e:
            self.logger.error(f"Wipe failed for {path}: {e}")
            raise

        if result.success:
            self.logger.info(f"Successfully processed {path} -> {result.output_path}")
        else:
            self.logger.warning(f"Wipe completed with issues for {path}: {result.wipe_errors}")

    def start(self):
        """
        Start watching.

        Raises:
            DaemonError: If already running or the watcher cannot start
        """
        if self.running:
            raise DaemonError("daemon already running")

        self.logger.info("Starting daemon")

        options = WatchOptions(
            extensions=tuple(self.config.extensions),
            exclude_dirs=EXCLUDE_DIRS,
            min_file_age=MIN_FILE_AGE,
            recursive=True,
            max_workers=self.settings.worker_threads,
        )

        try:
            watcher = Watcher(self.config.watch_paths, options, self.process_file, self.logger)
        except WatcherError as e:
            self.logger.error(f"Failed to create watcher: {e}")
            raise DaemonError(f"failed to create watcher: {e}") from e

        try:
            watcher.start()
        except WatcherError as e:
            self.logger.error(f"Failed to start watcher: {e}")
            raise DaemonError(f"failed to start watcher: {e}") from e

        self.watcher = watcher
        self.running = True
        self.logger.info("Daemon started successfully")

    def stop(self):
        """
        Stop the daemon. No-op when not running.

        Watcher shutdown problems are logged; the watcher has drained its
        workers before the log file is closed.
        """
        if not self.running:
            return

        self.logger.info("Stopping daemon")

        if self.watcher is not None:
            try:
                self.watcher.stop()
            except WatcherError as e:
                self.logger.warning(f"Error stopping watcher: {e}")

        self.logger.close()
        self.running = False

    def status(self) -> DaemonStatus:
        """Current daemon status."""
        if not self.running:
            return DaemonStatus(running=False)

        return DaemonStatus(
            running=True,
            watched_dirs=list(self.config.watch_paths),
            file_types=list(self.config.extensions),
        )

    def run_forever(self):
        """Run until SIGINT or SIGTERM."""
        stop_event = threading.Event()

        def _signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down.")
            stop_event.set()

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        self.start()
        logger.success(f"Watching: {', '.join(self.config.watch_paths)}")

        try:
            while not stop_event.is_set():
                stop_event.wait(1.0)
        finally:
            self.stop()
            logger.info("Daemon stopped")
