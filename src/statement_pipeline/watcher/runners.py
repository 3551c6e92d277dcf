"""
Ways of running the document processor for one file.

The scanner only looks at the exit code: 0 means the file may be moved and
recorded; anything else leaves the file where it is.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Protocol

from .. import exitcodes
from ..processor import DocumentProcessor

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Exit code and combined stdout/stderr of one processor run."""

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == exitcodes.SUCCESS


class ProcessorRunner(Protocol):
    def run(self, executable: str, file_path: str) -> RunResult:
        ...


class SubprocessRunner:
    """
    Runs the processor as an external program with the file path as its
    only argument. Launch failures and timeouts report exit code -1.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(self, executable: str, file_path: str) -> RunResult:
        try:
            completed = subprocess.run(
                [executable, file_path],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output.decode(errors="replace") if isinstance(e.output, bytes) else e.output
            return RunResult(
                exit_code=exitcodes.LAUNCH_FAILED,
                output=f"{output or ''}processor timed out after {self.timeout}s",
            )
        except OSError as e:
            return RunResult(
                exit_code=exitcodes.LAUNCH_FAILED, output=f"failed to start processor: {e}"
            )

        return RunResult(exit_code=completed.returncode, output=completed.stdout or "")


class InProcessRunner:
    """
    Calls DocumentProcessor.process directly.

    The executable path is ignored; every watch uses the same processor.
    """

    def __init__(self, processor: DocumentProcessor):
        self.processor = processor

    def run(self, executable: str, file_path: str) -> RunResult:
        outcome = self.processor.process(file_path)
        output = getattr(outcome, "reason", "")
        return RunResult(exit_code=outcome.exit_code, output=output)
