"""
Metadata Domain

File type detection and metadata analysis:
- detector.py - Magic-number and extension based type resolution
- analyzer.py - Metadata extraction and sensitive field detection
- exiftool.py - exiftool command wrapper
- formats/ - Per-category handlers delegating to external tools
"""

__all__ = ["analyzer", "detector", "exiftool", "formats"]
