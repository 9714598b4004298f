"""Terminal surface: user prompt, confirmation gate and event rendering."""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console
from rich.text import Text

from .agent.confirm import CONFIRM_PROMPT, is_decline
from .agent.models import AgentEvent, ToolCall

logger = logging.getLogger("miniagent.console")

USER_PROMPT = "> "
MAX_OBSERVATION_LINES = 200


class ConsoleConfirmation:
    """Asks on the terminal before each tool runs."""

    def __init__(self, console: Console) -> None:
        self.console = console

    async def confirm(self, tool_call: ToolCall) -> bool:
        # console.input raises EOFError when stdin is closed
        answer = await asyncio.to_thread(self.console.input, CONFIRM_PROMPT)
        return not is_decline(answer)


async def read_user_input(console: Console) -> str | None:
    console.print()
    try:
        return await asyncio.to_thread(console.input, USER_PROMPT)
    except EOFError:
        return None


def _clip(text: str, max_lines: int = MAX_OBSERVATION_LINES) -> str:
    lines = text.rstrip("\n").splitlines()
    if len(lines) <= max_lines:
        return "\n".join(lines)
    hidden = len(lines) - max_lines
    return "\n".join(lines[:max_lines] + [f"... ({hidden} more lines sent to the model)"])


class EventRenderer:
    def __init__(self, console: Console) -> None:
        self.console = console

    def __call__(self, event: AgentEvent) -> None:
        handler = getattr(self, f"_on_{event.type}", None)
        if handler is not None:
            handler(event.data)

    def _on_thinking(self, data: dict) -> None:
        self.console.print(Text("🤔 Thinking...", style="dim"))

    def _on_thought(self, data: dict) -> None:
        self.console.print(Text.assemble(("📝 Thought: ", "bold cyan"), data.get("content", "")))

    def _on_tool_start(self, data: dict) -> None:
        self.console.print(Text.assemble(
            ("🔧 Executing tool: ", "bold yellow"),
            f"{data.get('tool')}({data.get('arguments')})",
        ))

    def _on_cancelled(self, data: dict) -> None:
        self.console.print(Text("❌ Execution cancelled by user.", style="red"))

    def _on_tool_end(self, data: dict) -> None:
        if data.get("error"):
            self.console.print(Text(f"❌ Error executing tool '{data.get('tool')}': {data['error']}", style="red"))
        self.console.print(Text.assemble(("🔭 Observation: ", "bold"), _clip(data.get("observation", ""))))

    def _on_answer(self, data: dict) -> None:
        content = data.get("content", "")
        if content:
            self.console.print()
            self.console.print(Text("✅ Final Answer:", style="bold green"))
            self.console.print(Text(content))

    def _on_error(self, data: dict) -> None:
        self.console.print(Text(data.get("message", "Unknown error"), style="bold red"))
