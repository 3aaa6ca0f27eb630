"""Narrow command-execution interface for external CLIs.

Every container engine invocation goes through a CommandRunner so the
orchestration logic can be exercised with a fake runner in tests.
"""
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from homeport.core.logger import get_logger

logger = get_logger(__name__)

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of an external command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Stripped stdout, or stderr when stdout is empty."""
        return (self.stdout or self.stderr or "").strip()


class CommandRunner:
    """Run external commands and capture their output.

    A missing binary or a timeout produces a failed CommandResult rather
    than an exception.
    """

    def __init__(self, timeout: int = 120, mock: bool = False):
        self.timeout = timeout
        self.mock = mock

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Run a command and return its captured result.

        Args:
            args: Command and arguments
            cwd: Working directory
            timeout: Override the runner's default timeout

        Returns:
            CommandResult (never raises for process failures)
        """
        argv = [str(a) for a in args]

        if self.mock:
            logger.info(f"MOCK: Would run {shlex.join(argv)}")
            return CommandResult(argv, 0)

        logger.debug(f"$ {shlex.join(argv)}" + (f"  (cwd={cwd})" if cwd else ""))

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(argv, EXIT_NOT_FOUND, "", str(e))
        except subprocess.TimeoutExpired:
            return CommandResult(argv, EXIT_TIMEOUT, "", f"Command timed out: {shlex.join(argv)}")

        result = CommandResult(argv, completed.returncode, completed.stdout or "", completed.stderr or "")
        if not result.ok:
            logger.debug(f"exit {result.returncode}: {result.stderr.strip()}")
        return result

    def which(self, name: str) -> Optional[str]:
        """Resolve an executable on PATH."""
        if self.mock:
            return f"/usr/bin/{name}"
        return shutil.which(name)
