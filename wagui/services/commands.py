"""Async external-process runner used by the completion gate."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass
from pathlib import Path

from wagui.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stderr if present, otherwise stdout."""
        return self.stderr or self.stdout


def head_lines(text: str, count: int) -> str:
    return "\n".join(text.split("\n")[:count])


async def run_command(command: str, cwd: str | Path, timeout: float | None = None) -> CommandResult:
    """Run ``command`` (shell-style string, no shell) in ``cwd``.

    A missing executable or an expired timeout is reported as a failed
    result (returncode -1) rather than raised.
    """
    argv = shlex.split(command)
    logger.info("Running command", data={"command": command, "cwd": str(cwd)})
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
        return CommandResult(command=command, returncode=-1, stdout="", stderr=str(exc))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning("Command timed out", data={"command": command, "timeout_s": timeout})
        return CommandResult(
            command=command,
            returncode=-1,
            stdout="",
            stderr=f"{command} timed out after {timeout:g}s",
        )

    result = CommandResult(
        command=command,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.info("Command finished", data={"command": command, "returncode": result.returncode})
    return result
