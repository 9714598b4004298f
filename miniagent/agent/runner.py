"""Child-process execution and exit-status classification.

Running a process yields a ProcessResult; turning that into an Observation
(or an ExecutionError) is done by classify(), which never spawns anything and
can be exercised with hand-built results.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from ..errors import ExecutionError

logger = logging.getLogger("miniagent.runner")


@dataclass(frozen=True)
class ProcessResult:
    command: str
    argv: tuple[str, ...]
    output: str  # stdout and stderr, interleaved
    exit_code: int

    @property
    def command_line(self) -> str:
        return format_command(self.command, self.argv)


Runner = Callable[..., Awaitable[ProcessResult]]


def format_command(command: str, argv: tuple[str, ...] | list[str]) -> str:
    return " ".join(shlex.quote(part) for part in (command, *argv))


async def run_process(command: str, *argv: str) -> ProcessResult:
    """Run a command to completion, capturing stdout and stderr together."""
    command_line = format_command(command, argv)
    logger.info(f"Running: {command_line}")
    try:
        proc = await asyncio.create_subprocess_exec(
            command, *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        raise ExecutionError(command_line, f"'{command}' was not found on this system") from e
    except PermissionError as e:
        raise ExecutionError(command_line, f"permission denied running '{command}'") from e

    stdout, _ = await proc.communicate()
    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    logger.debug(f"'{command_line}' exited with {proc.returncode} ({len(output)} chars)")
    return ProcessResult(command=command, argv=tuple(argv), output=output, exit_code=proc.returncode)


def classify(
    result: ProcessResult,
    no_match: Mapping[int, str] | None = None,
    empty: str | None = None,
) -> str:
    """Map a finished process onto an Observation.

    Exit 0 is success (or the ``empty`` sentence when nothing was printed),
    a code listed in ``no_match`` yields its fixed sentence, anything else
    raises ExecutionError with the captured output attached.
    """
    if result.exit_code == 0:
        if empty is not None and not result.output.strip():
            return empty
        return result.output
    if no_match and result.exit_code in no_match:
        return no_match[result.exit_code]
    raise ExecutionError(
        result.command_line,
        f"exit status {result.exit_code}",
        output=result.output,
        exit_code=result.exit_code,
    )
