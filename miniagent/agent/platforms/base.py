from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Mapping

from ...errors import UnsupportedOperationError
from ..policy import ToolPolicy
from ..runner import Runner, classify, run_process
from ..tool_defs import TOOL_NAMES

logger = logging.getLogger("miniagent.platforms")

NO_MATCHING_PROCESSES = "No matching processes found."
NO_MATCHING_FILES = "No matching files found."
NO_MATCHING_LINES = "No matching lines found."


def _header_only(output: str) -> bool:
    lines = output.strip().splitlines()
    if not lines:
        return True
    return len(lines) == 1 and "PID" in lines[0].split()


class PlatformExecutor:
    """Shared capability interface of all platforms.

    Every capability takes the raw JSON argument string of a tool call and
    returns the Observation text, raising a ToolError subclass on failure.
    The base implementation supports nothing.
    """

    platform = "unknown"

    def __init__(
        self,
        runner: Runner = run_process,
        policy: ToolPolicy | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.runner = runner
        self.policy = policy
        self.which = which

    async def ps(self, arguments: str) -> str:
        raise UnsupportedOperationError("ps", self.platform)

    async def find(self, arguments: str) -> str:
        raise UnsupportedOperationError("find", self.platform)

    async def grep(self, arguments: str) -> str:
        raise UnsupportedOperationError("grep", self.platform)

    async def wget(self, arguments: str) -> str:
        raise UnsupportedOperationError("wget", self.platform)

    async def ss(self, arguments: str) -> str:
        raise UnsupportedOperationError("ss", self.platform)

    async def lsof(self, arguments: str) -> str:
        raise UnsupportedOperationError("lsof", self.platform)

    async def _run(
        self,
        command: str,
        *argv: str,
        no_match: Mapping[int, str] | None = None,
        empty: str | None = None,
    ) -> str:
        result = await self.runner(command, *argv)
        return classify(result, no_match=no_match, empty=empty)

    async def _run_ps(self, *argv: str, no_match: str) -> str:
        """ps exits 1 both for an empty selection and for errors; only the former prints no rows."""
        result = await self.runner("ps", *argv)
        if result.exit_code == 1 and _header_only(result.output):
            return no_match
        return classify(result)

    async def _substitute(
        self,
        requested: str,
        substitute: str,
        note: str,
        command: str,
        *argv: str,
        no_match: Mapping[int, str] | None = None,
        empty: str | None = None,
    ) -> str:
        """Run a stand-in tool for a capability this platform lacks."""
        # Only catalog tools are subject to the policy; helpers like curl are not
        if self.policy is not None and substitute in TOOL_NAMES:
            self.policy.enforce(substitute)
        logger.info(f"[{self.platform}] substituting '{substitute}' for '{requested}'")
        observation = await self._run(command, *argv, no_match=no_match, empty=empty)
        return f"{note}\n{observation}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform!r})"


class UnsupportedExecutor(PlatformExecutor):
    """Fallback for operating systems without a registered executor."""

    def __init__(self, platform: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.platform = platform or "unknown"
