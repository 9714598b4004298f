"""Confirmation gate providers.

A provider answers one question per tool call: may it run? It raises
EOFError when its input is gone for good.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from .models import ToolCall

CONFIRM_PROMPT = "Do you want to execute this command? [Y/n]: "
DECLINE_ANSWERS = frozenset({"n", "no"})


def is_decline(answer: str | None) -> bool:
    """Only an explicit n/no declines; anything else, blank included, approves."""
    return (answer or "").strip().lower() in DECLINE_ANSWERS


class ConfirmationProvider(Protocol):
    async def confirm(self, tool_call: ToolCall) -> bool:
        ...


class QueueConfirmation:
    """Confirmation over a pair of asyncio queues.

    Pending tool calls are published on ``requests``; whoever owns the user
    interface puts the raw answer text on ``answers`` (``None`` closes it).
    """

    def __init__(self) -> None:
        self.requests: asyncio.Queue[ToolCall] = asyncio.Queue()
        self.answers: asyncio.Queue[str | None] = asyncio.Queue()

    async def confirm(self, tool_call: ToolCall) -> bool:
        await self.requests.put(tool_call)
        answer = await self.answers.get()
        if answer is None:
            raise EOFError("confirmation channel closed")
        return not is_decline(answer)
