from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import ModelTransportError, ToolError
from ..system import get_system_prompt
from .confirm import ConfirmationProvider
from .dispatcher import ToolDispatcher
from .models import AgentEvent, ConversationState, ToolCall
from .tool_defs import get_tool_definitions

if TYPE_CHECKING:
    from ..llm import ModelClient

logger = logging.getLogger("miniagent.agent")

EXIT_KEYWORDS = frozenset({"exit", "quit"})
CANCELLED_OBSERVATION = "User cancelled the execution of this tool."
EMPTY_OBSERVATION = "(No output)"

# Scaffolding some models put in front of their final answer
_ANSWER_PREFIXES = ("Thought:", "Final Answer:")


class LoopPhase(str, Enum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    CONFIRMING_TOOL = "confirming_tool"
    EXECUTING_TOOL = "executing_tool"
    TURN_COMPLETE = "turn_complete"
    SESSION_ENDED = "session_ended"


def clean_final_answer(content: str | None) -> str:
    text = (content or "").strip()
    for prefix in _ANSWER_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):].strip()
    return text


def render_error(err: BaseException | str) -> str:
    return f"Error: {err}"


class AgentLoop:
    """Thought/Action/Observation controller for one interactive session."""

    def __init__(
        self,
        client: ModelClient,
        dispatcher: ToolDispatcher,
        confirmation: ConfirmationProvider,
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
    ) -> None:
        self.client = client
        self.dispatcher = dispatcher
        self.confirmation = confirmation
        self.tools = tools if tools is not None else get_tool_definitions()
        self.state = ConversationState()
        self.state.append_system(system_prompt or get_system_prompt())
        self.phase = LoopPhase.AWAITING_USER_INPUT

    @property
    def ended(self) -> bool:
        return self.phase is LoopPhase.SESSION_ENDED

    def end_session(self) -> None:
        if not self.ended:
            logger.info("Session ended")
        self.phase = LoopPhase.SESSION_ENDED

    async def run(
        self,
        read_input: Callable[[], Awaitable[str | None]],
        emit: Callable[[AgentEvent], None],
    ) -> None:
        """Outer loop: read user turns until an exit keyword or end of input."""
        while not self.ended:
            line = await read_input()
            if line is None:
                self.end_session()
                emit(AgentEvent(type="session_end", data={"reason": "end of input"}))
                break
            async for event in self.process_message(line):
                emit(event)

    async def process_message(self, user_message: str) -> AsyncIterator[AgentEvent]:
        """Handle one line of user input, yielding events as the turn unfolds."""
        if self.ended:
            return

        text = user_message.strip()
        if text.lower() in EXIT_KEYWORDS:
            self.end_session()
            yield AgentEvent(type="session_end", data={"reason": "exit keyword"})
            return
        if not text:
            return

        self.state.append_user(text)
        try:
            async for event in self._react_cycle():
                yield event
        finally:
            if not self.ended:
                self.phase = LoopPhase.AWAITING_USER_INPUT
        yield AgentEvent(type="done", data={})

    async def _react_cycle(self) -> AsyncIterator[AgentEvent]:
        while True:
            self.phase = LoopPhase.AWAITING_MODEL_RESPONSE
            yield AgentEvent(type="thinking", data={})

            try:
                response = await self.client.chat(self.state.snapshot(), self.tools)
            except ModelTransportError as e:
                logger.error(f"Error from model: {e}")
                yield AgentEvent(type="error", data={"message": f"Error from model: {e}"})
                return

            if not response.choices:
                logger.error("Received no choices from the model")
                yield AgentEvent(type="error", data={"message": "Received no choices from the model."})
                return

            message = self.state.append_assistant(response.choices[0])

            if not message.tool_calls:
                self.phase = LoopPhase.TURN_COMPLETE
                yield AgentEvent(type="answer", data={"content": clean_final_answer(message.content)})
                return

            if message.content and message.content.strip():
                yield AgentEvent(type="thought", data={"content": message.content.strip()})

            logger.info(f"Model requested {len(message.tool_calls)} tool call(s): "
                        f"{', '.join(tc.name for tc in message.tool_calls)}")

            for tool_call in message.tool_calls:
                async for event in self._handle_tool_call(tool_call):
                    yield event
                if self.ended:
                    self._cancel_pending()
                    yield AgentEvent(type="session_end", data={"reason": "input closed"})
                    return

    async def _handle_tool_call(self, tool_call: ToolCall) -> AsyncIterator[AgentEvent]:
        self.phase = LoopPhase.CONFIRMING_TOOL
        yield AgentEvent(type="tool_start", data={
            "tool_id": tool_call.id, "tool": tool_call.name, "arguments": tool_call.arguments,
        })

        try:
            approved = await self.confirmation.confirm(tool_call)
        except EOFError:
            logger.warning("Input closed while waiting for confirmation; cancelling")
            self.end_session()
            return

        if not approved:
            logger.info(f"User cancelled {tool_call.name} ({tool_call.id})")
            self._record(tool_call, CANCELLED_OBSERVATION)
            yield AgentEvent(type="cancelled", data={
                "tool_id": tool_call.id, "tool": tool_call.name, "observation": CANCELLED_OBSERVATION,
            })
            return

        self.phase = LoopPhase.EXECUTING_TOOL
        error: str | None = None
        try:
            observation = await self.dispatcher.execute(tool_call)
        except ToolError as e:
            logger.warning(f"Tool '{tool_call.name}' failed: {e}")
            error = str(e)
            observation = render_error(e)
        except Exception as e:
            logger.exception(f"Unexpected error running '{tool_call.name}'")
            error = str(e) or type(e).__name__
            observation = render_error(error)

        observation = self._record(tool_call, observation)
        yield AgentEvent(type="tool_end", data={
            "tool_id": tool_call.id, "tool": tool_call.name,
            "observation": observation, "error": error,
        })

    def _record(self, tool_call: ToolCall, observation: str | None) -> str:
        if not observation or not observation.strip():
            observation = EMPTY_OBSERVATION
        self.state.append_tool_observation(tool_call.id, observation)
        return observation

    def _cancel_pending(self) -> None:
        for tool_call in self.state.pending_tool_calls():
            self._record(tool_call, CANCELLED_OBSERVATION)
