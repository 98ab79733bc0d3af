"""Async execution of external tools with a time budget."""

import asyncio
import logging
from typing import List, Optional, Sequence

from discnorm.errors import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300


async def run_command(
    args: Sequence[str],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    cwd: Optional[str] = None
) -> str:
    """
    Run an external command and return its combined output.

    Args:
        args: Program and arguments (no shell)
        timeout: Seconds before the process is killed
        cwd: Working directory for the process

    Returns:
        Decoded stdout+stderr

    Raises:
        CommandError: If the program is missing or exits non-zero
        CommandTimeoutError: If the time budget is exceeded
    """
    command: List[str] = [str(arg) for arg in args]
    logger.debug(f"Running: {' '.join(command)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd
        )
    except FileNotFoundError:
        raise CommandError(f"{command[0]} is not installed or not on PATH", returncode=127)

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(
            f"{command[0]} timed out after {timeout} seconds",
            returncode=-1
        )

    output = stdout.decode('utf-8', errors='replace') if stdout else ''
    if process.returncode != 0:
        raise CommandError(
            f"{command[0]} exited with status {process.returncode}",
            returncode=process.returncode,
            output=output
        )

    return output
