from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from ..errors import UnknownToolError
from .models import ToolCall
from .platforms import PlatformExecutor
from .policy import ToolPolicy
from .tool_defs import TOOL_NAMES

logger = logging.getLogger("miniagent.dispatcher")


class ToolDispatcher:
    """Routes a tool call through the policy to the platform executor."""

    def __init__(
        self,
        executor: PlatformExecutor,
        policy: ToolPolicy,
        tool_names: Iterable[str] = TOOL_NAMES,
    ) -> None:
        self.executor = executor
        self.policy = policy
        self.tool_names = frozenset(tool_names)

    async def execute(self, tool_call: ToolCall) -> str:
        """Return the Observation for ``tool_call``; ToolError subclasses propagate."""
        name = tool_call.name
        self.policy.enforce(name)
        capability = getattr(self.executor, name, None) if name in self.tool_names else None
        if capability is None:
            raise UnknownToolError(name)

        start_time = time.time()
        try:
            return await capability(tool_call.arguments)
        finally:
            logger.info(f"{name} finished in {time.time() - start_time:.2f}s on {self.executor.platform}")
