"""
CLI runner module.

Provides commands:
- statement-processor: Process one statement file
- statement-watcher: Scan watched directories and process new files
- statement-query: Read stored transactions and the processing log
"""

from .main import create_processor_cli, create_watcher_cli, processor_main, watcher_main
from .query import create_query_cli, query_main

__all__ = [
    "create_processor_cli",
    "create_query_cli",
    "create_watcher_cli",
    "processor_main",
    "query_main",
    "watcher_main",
]
