"""
Watch Daemon Domain

Background sanitization of files landing in watched directories:
- watcher.py - watchdog subscription, debounce/dedupe, worker pool
- daemon.py - Lifecycle wiring the watcher to the sanitization pipeline
- logger.py - Leveled daemon log file with rotation
"""

__all__ = ["daemon", "logger", "watcher"]
