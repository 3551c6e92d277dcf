"""
Watch scanner.

Finds new statement files in watched directories, runs the processor on
each, and moves/records the ones it accepted.
"""

from .filesystem import LocalFilesystem, WatchFilesystem, collision_free_name
from .lock import ScanLockError, lock_path_for, scan_lock
from .runners import InProcessRunner, ProcessorRunner, RunResult, SubprocessRunner
from .scanner import FileOutcome, FileState, ScanResult, WatchScanner

__all__ = [
    "FileOutcome",
    "FileState",
    "InProcessRunner",
    "LocalFilesystem",
    "ProcessorRunner",
    "RunResult",
    "ScanLockError",
    "ScanResult",
    "SubprocessRunner",
    "WatchFilesystem",
    "WatchScanner",
    "collision_free_name",
    "lock_path_for",
    "scan_lock",
]
