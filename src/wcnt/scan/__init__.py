from .discovery import DiscoveredFiles, discover_files, iter_files
from .scanner import (
    DEFAULT_QUEUE_SIZE,
    LogScanner,
    ScanResult,
    default_max_workers,
    extract_warnings,
    normalize_culprit,
)

__all__ = [
    "DEFAULT_QUEUE_SIZE",
    "DiscoveredFiles",
    "LogScanner",
    "ScanResult",
    "default_max_workers",
    "discover_files",
    "extract_warnings",
    "iter_files",
    "normalize_culprit",
]
