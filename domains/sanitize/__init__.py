"""
Sanitization Domain

Per-file metadata removal workflow:
- fileops.py - Verified copies, backups and secure deletion
- pipeline.py - analyze -> stage -> wipe -> inject -> verify -> cleanup
- inject.py - Anonymization profile injection
- verify.py - Integrity, removal and profile verification
- report.py - Plain-text result reports
"""

__all__ = ["fileops", "inject", "pipeline", "report", "verify"]
