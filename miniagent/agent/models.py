from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any

logger = logging.getLogger("miniagent.agent")

ROLES = frozenset({"system", "user", "assistant", "tool"})


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str = "{}"  # raw JSON-encoded argument object

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        function = data.get("function") or {}
        arguments = function.get("arguments", "{}")
        # Some providers hand back an already decoded object
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(id=str(data.get("id", "")), name=function.get("name", ""), arguments=arguments)


@dataclass(frozen=True)
class Message:
    role: str
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            msg["tool_call_id"] = self.tool_call_id
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        content = data.get("content")
        return cls(
            role=data.get("role") or "assistant",
            content=content if content else None,
            tool_calls=tuple(ToolCall.from_dict(tc) for tc in data.get("tool_calls") or ()),
            tool_call_id=data.get("tool_call_id"),
        )


@dataclass
class ChatResponse:
    choices: list[Message] = field(default_factory=list)
    model: str = ""
    id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatResponse:
        choices = [
            Message.from_dict(choice.get("message") or {})
            for choice in data.get("choices") or []
        ]
        return cls(choices=choices, model=data.get("model", ""), id=data.get("id", ""))


@dataclass
class AgentEvent:
    type: str  # "thinking", "thought", "tool_start", "tool_end", "cancelled", "answer", "error", "session_end", "done"
    data: dict[str, Any] = field(default_factory=dict)


class ConversationState:
    """Append-only message log; the model's working memory for one session."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def append_system(self, text: str) -> None:
        if any(m.role == "system" for m in self._messages):
            logger.warning("System message already present; ignoring a second one")
            return
        self._messages.append(Message(role="system", content=text))

    def append_user(self, text: str) -> None:
        self._messages.append(Message(role="user", content=text))

    def append_assistant(self, message: Message) -> Message:
        if message.role != "assistant":
            message = replace(message, role="assistant")
        if message.tool_call_id is not None:
            message = replace(message, tool_call_id=None)
        self._messages.append(message)
        return message

    def append_tool_observation(self, tool_call_id: str, text: str) -> None:
        pending = self.pending_tool_calls()
        if not pending or pending[0].id != tool_call_id:
            logger.warning(f"Tool observation for '{tool_call_id}' does not answer the next pending call")
        self._messages.append(Message(role="tool", content=text, tool_call_id=tool_call_id))

    def pending_tool_calls(self) -> list[ToolCall]:
        """Tool calls of the latest assistant message that have not been answered yet."""
        answered = 0
        for msg in reversed(self._messages):
            if msg.role == "tool":
                answered += 1
            elif msg.role == "assistant":
                return list(msg.tool_calls[answered:])
            else:
                break
        return []

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def to_wire(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self._messages]
