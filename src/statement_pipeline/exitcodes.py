"""
Process exit codes shared by the CLIs.

The watcher interprets the processor's exit code, so these values are part of
the external contract and must not change.
"""

SUCCESS = 0

# Processor
PARSE_ERROR = 1
STORE_ERROR = 2
CONFIG_ERROR = 3

# Watcher
LOCKED = 4

# Query
ARGS_ERROR = 1

# Reported by the subprocess runner when the executable could not be started
# or was killed after a timeout.
LAUNCH_FAILED = -1
