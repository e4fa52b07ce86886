"""
Subprocess runner used to invoke downloaded installers.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Union

logger = logging.getLogger(__name__)


class ProcessLaunchError(Exception):
    """Raised when an executable cannot be started at all."""

    pass


def run_command(
    executable: Union[str, Path],
    args: Sequence[str],
    timeout: Optional[float] = None,
) -> int:
    """
    Run an executable with arguments and return its exit status.

    Output is not captured; installers write straight to the console the
    same way they would when run by hand.

    Args:
        executable: Program to run
        args: Arguments passed after the program
        timeout: Optional timeout in seconds

    Returns:
        Process exit code

    Raises:
        ProcessLaunchError: If the process cannot be started or times out
    """
    cmd = [str(executable), *args]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, check=False, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise ProcessLaunchError(f"Timed out after {timeout}s: {cmd[0]}") from e
    except OSError as e:
        raise ProcessLaunchError(f"Failed to start {cmd[0]}: {e}") from e

    logger.debug(f"{cmd[0]} exited with code {result.returncode}")
    return result.returncode
